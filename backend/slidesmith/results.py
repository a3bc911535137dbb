from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from slidesmith.errors import SlidesmithError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    ok: bool
    value: T | None = None
    error: SlidesmithError | None = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: SlidesmithError) -> "Result[T]":
        return cls(ok=False, error=error)

    def unwrap(self) -> T:
        if not self.ok:
            raise self.error or SlidesmithError("Result has no value")
        return self.value  # type: ignore[return-value]

    def as_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "error": None if self.error is None else {"code": self.error.code, "message": str(self.error)},
        }
