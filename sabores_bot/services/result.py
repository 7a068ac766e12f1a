from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

# Error codes used across message processing.
STORAGE_ERROR = "storage_error"
GATEWAY_ERROR = "gateway_error"


@dataclass
class Result(Generic[T]):
    """Outcome of a side-effecting step (persist a quote, deliver a reply)."""

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @staticmethod
    def success(value: T) -> "Result[T]":
        return Result(ok=True, value=value)

    @staticmethod
    def failure(error: str, code: str = "unknown") -> "Result[T]":
        return Result(ok=False, error=error, error_code=code)

    @staticmethod
    def from_exception(exc: Exception, code: str) -> "Result[T]":
        return Result(ok=False, error=str(exc) or exc.__class__.__name__, error_code=code)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default
