from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class ResolutionError(RuntimeError):
    """Raised when the resolver API returns nothing usable for a post."""


class TransferError(RuntimeError):
    """Raised when a media stream fails or produces an empty file."""


class AssemblyError(RuntimeError):
    """Raised when ffmpeg fails to build a slideshow video."""


class PreconditionError(RuntimeError):
    """Raised when a required external tool or input file is missing. Fatal for the run."""


class ExhaustedRetriesError(RuntimeError):
    """Raised when an operation failed on every attempt of its retry budget."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException) -> None:
        message = (str(last_error) or "").strip() or type(last_error).__name__
        super().__init__(f"{operation} failed after {attempts} attempts: {message}")
        self.operation = operation
        self.attempts = int(attempts)
        self.last_error = last_error
