from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

ALREADY_EXISTS = "already_exists"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an operation whose expected failures are values, not exceptions."""

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

    def failed_with(self, code: str) -> bool:
        return not self.ok and self.error_code == code
