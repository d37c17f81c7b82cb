"""Exceptions raised by routescan."""


class RouteScanError(Exception):
    """Base exception for all routescan errors."""


class SourceReadError(RouteScanError):
    """Raised when a source file is missing or cannot be decoded."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"cannot read {path}: {reason}")


class SourceParseError(RouteScanError):
    """Raised when the parser cannot recover from a syntax error."""

    def __init__(self, filename: str, line: int, column: int, detail: str):
        self.filename = filename
        self.line = line
        self.column = column
        super().__init__(f"{filename}:{line}:{column}: {detail}")


class ManifestError(RouteScanError):
    """Raised when a package manifest exists but is not valid JSON5."""


class ConfigError(RouteScanError):
    """Raised when the generator is given an unusable configuration."""
