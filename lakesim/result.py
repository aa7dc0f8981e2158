"""Result type for explicit success/failure handling.

Spawn calls and state transitions return a Result instead of raising, so the
external spawner (or the behavior layer) decides what a failure means.

Usage:
------
    result = engine.spawn_agent("lake_trout", SizeClass.MEDIUM, Vector2(300, 200))
    if result.is_ok():
        trout_id = result.unwrap()
    else:
        logger.warning(f"Spawn refused: {result.error}")

    # Safe unwrap with default
    trout_id = result.unwrap_or(None)

Note: Uses `from __future__ import annotations` so the generic aliases below
stay cheap at import time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

T = TypeVar("T")  # Success value type
E = TypeVar("E")  # Error type
U = TypeVar("U")  # Transformed value type
F = TypeVar("F")  # Transformed error type


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A successful outcome carrying a value.

    Example:
        def find_school(school_id: str) -> Result[School, str]:
            school = schools.get(school_id)
            if school is None:
                return Err(f"School {school_id} not found")
            return Ok(school)
    """

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the success value."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    @property
    def error(self) -> None:
        """Ok has no error, returns None."""
        return None

    def map(self, f: Callable[[T], U]) -> "Ok[U]":
        """Transform the success value.

        Example:
            Ok(5).map(lambda x: x * 2)  # Ok(10)
        """
        return Ok(f(self.value))

    def map_err(self, f: Callable[[E], F]) -> "Ok[T]":
        return self

    def and_then(self, f: Callable[[T], "Result[U, E]"]) -> "Result[U, E]":
        """Chain another Result-returning operation."""
        return f(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True)
class Err(Generic[E]):
    """A failed outcome carrying an error (usually a message string)."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raises ValueError since Err has no success value.

        Don't call this without checking is_ok() first!
        """
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    @property
    def value(self) -> None:
        """Err has no value, returns None."""
        return None

    def map(self, f: Callable[[T], U]) -> "Err[E]":
        return self

    def map_err(self, f: Callable[[E], F]) -> "Err[F]":
        """Transform the error.

        Example:
            Err("capacity").map_err(lambda e: f"spawn failed: {e}")
        """
        return Err(f(self.error))

    def and_then(self, f: Callable[[T], "Result[U, E]"]) -> "Err[E]":
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Union[Ok[T], Err[E]]

# Operation that might fail with a string message
StringResult = Result[T, str]


def err(message: str) -> Err[str]:
    """Create an Err with a string message."""
    return Err(message)
