"""Centralized exit codes for the dep-sanitizer CLI."""


class ExitCodes:
    """Standard exit codes for dep-sanitizer commands."""

    SUCCESS = 0

    # show found outstanding issues, or sort --check found unsorted files
    ISSUES_FOUND = 1

    # usage report missing or malformed; no file was touched
    FATAL = 2

    @classmethod
    def get_description(cls, code: int) -> str:
        """Get human-readable description for an exit code."""
        descriptions = {
            cls.SUCCESS: "Success - No issues found",
            cls.ISSUES_FOUND: "Outstanding dependency issues detected",
            cls.FATAL: "Run aborted - usage report missing or malformed",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")
