"""Exception hierarchy for dep-sanitizer.

Two failure classes matter to the run:

- ReportError and its subclasses are FATAL. Without the usage report no
  analysis is meaningful, so the run stops before any build file is read.
- BuildFileParseError is PER-FILE. The offending file is skipped with a
  warning and every other file is still processed.
"""


class ReportError(Exception):
    """Raised when the usage report cannot be turned into a usage graph.

    Attributes:
        path: Report path that failed to load
    """

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class ReportNotFoundError(ReportError):
    """The report file does not exist or cannot be opened."""


class MalformedReportError(ReportError):
    """The report file is not valid JSON or does not have the expected shape."""


class BuildFileParseError(Exception):
    """Raised when a BUILD file cannot be parsed into an editable model.

    Attributes:
        line: 1-based line where the problem was detected (None if unknown)
        path: BUILD file path, filled in by the caller that knows it
    """

    def __init__(self, message: str, line: int | None = None, path: str | None = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.path = path

    def __str__(self) -> str:
        location = self.path or "<build file>"
        if self.line is not None:
            location = f"{location}:{self.line}"
        return f"{location}: {self.message}"
