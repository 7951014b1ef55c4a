"""Tagged result type for outcomes that cross a process boundary."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Err:
    kind: str
    message: str

    def is_ok(self) -> bool:
        return False


Result = Ok[T] | Err
