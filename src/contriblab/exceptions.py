"""Custom exceptions for ContribLab."""


class ContribLabError(Exception):
    """Base exception for ContribLab errors."""


class ValidationError(ContribLabError, ValueError):
    """Raised when input validation fails."""


class LengthMismatchError(ValidationError):
    """Raised when inputs that must share a dimension do not."""

    def __init__(self, lengths: dict[str, int]) -> None:
        self.lengths = dict(lengths)
        detail = ", ".join(f"{name}={n}" for name, n in self.lengths.items())
        super().__init__(f"Length mismatch: {detail}")


class ConfigurationError(ContribLabError):
    """Raised when configuration is invalid or missing."""
