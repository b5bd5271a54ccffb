from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class RepoConcatError(Exception):
    """Base exception for errors in the repo_concat package."""


@dataclass(frozen=True)
class InputValidationError(RepoConcatError):
    """Raised when command-line input or a config file fails validation."""

    errors: tuple[str, ...]
    message: str = "Invalid input"

    def __str__(self) -> str:
        return f"{self.message}: {'; '.join(self.errors)}"


@dataclass(frozen=True)
class RemoteApiError(RepoConcatError):
    """Raised when a call to the repository hosting API fails.

    Authentication failures, missing repositories and rate limiting are
    reported the same way; `status_code` is None for transport failures.
    """

    path: str
    status_code: int | None
    message: str

    def __str__(self) -> str:
        code = self.status_code if self.status_code is not None else "unknown"
        where = self.path or "/"
        return f"HTTP {code} for {where}: {self.message}"


@dataclass(frozen=True)
class OutputWriteError(RepoConcatError):
    """Raised when the aggregated output cannot be written."""

    path: Path
    reason: str

    def __str__(self) -> str:
        return f"Cannot write {self.path}: {self.reason}"


@dataclass(frozen=True)
class AggregationCancelledError(RepoConcatError):
    """Raised when the run is cancelled before the traversal completes."""

    path: str
    message: str = "Download cancelled"

    def __str__(self) -> str:
        return f"{self.message} at {self.path or '/'}"
