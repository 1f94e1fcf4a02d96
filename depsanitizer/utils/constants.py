"""Centralized constants for dep-sanitizer.

Single source of truth for file names, markers and environment variable
names. Tunable values live in config_runtime.DEFAULTS; these are the
fixed vocabulary of the tool.
"""

# ============================================================================
# BUILD FILE VOCABULARY
# ============================================================================

DEPENDENCIES_KEYWORD = "dependencies"
EXPORTS_KEYWORD = "exports"
BLOCK_KEYWORDS = (DEPENDENCIES_KEYWORD, EXPORTS_KEYWORD)

# Inline comment marker that protects an entry from automatic removal
DEFAULT_SKIP_MARKER = "skip-sanitize"

# Canonical string delimiter written by the formatter
CANONICAL_QUOTE = "'"

# Indentation unit used when synthesizing new lines
INDENT_UNIT = "    "

# ============================================================================
# FILES
# ============================================================================

# Output of `./pants -q dep-usage.jvm --no-summary src/:: > deps.json`
DEFAULT_REPORT_FILE = "deps.json"

# Project-level config file, looked up in the project root
CONFIG_FILE = ".dep-sanitizer.json"

# ============================================================================
# ENVIRONMENT VARIABLES
# ============================================================================

ENV_PREFIX = "DEP_SANITIZER"
