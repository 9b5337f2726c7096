from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Result(Generic[T, E]):
    """Typed success/failure value returned across non-throwing boundaries."""

    success: bool
    data: Optional[T] = None
    error: Optional[E] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "Result[T, E]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: E) -> "Result[T, E]":
        return cls(success=False, error=error)
