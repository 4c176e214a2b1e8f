"""
MealCoach - Result types for collaborator boundaries.

Repositories return `Ok(data)` or `Err(error)` instead of raising, so the
caller decides whether a failure fails open or closed.
"""

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result."""

    data: T
    ok: Literal[True] = True


@dataclass(frozen=True)
class Err:
    """Failed result with a human-readable message."""

    error: str
    code: str = "UNKNOWN_ERROR"
    ok: Literal[False] = False


Result = Ok[T] | Err
