from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

AI_ERROR = "ai_error"
DISPATCH_ERROR = "dispatch_error"
STORAGE_ERROR = "storage_error"
INVALID_PAYLOAD = "invalid_payload"


@dataclass
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @staticmethod
    def success(value: T) -> "Result[T]":
        return Result(ok=True, value=value)

    @staticmethod
    def failure(error: str, code: str = AI_ERROR) -> "Result[T]":
        return Result(ok=False, error=error, error_code=code)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default
