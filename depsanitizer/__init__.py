"""dep-sanitizer - audit and repair Pants BUILD file dependency declarations."""

__version__ = "0.3.0"
