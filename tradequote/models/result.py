"""
Tagged success/failure values for fallible swap flows.

Route composition returns ``Ok(value)`` or ``Err(error)`` instead of raising,
so callers can tell "no route found" apart from a provider outage.

Example:
    >>> result: Result[int, str] = Ok(2)
    >>> result.map(lambda value: value * 2).unwrap()
    4
    >>> Err("boom").is_err
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


class UnwrapError(RuntimeError):
    """Raised when unwrapping the wrong variant of a Result."""


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> object:
        raise UnwrapError(f"Called unwrap_err on Ok: {self.value!r}")

    def map(self, fn: Callable[[T], U]) -> "Ok[U]":
        return Ok(fn(self.value))

    def and_then(self, fn: Callable[[T], "Result[U, E]"]) -> "Result[U, E]":
        return fn(self.value)


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True

    def unwrap(self) -> object:
        raise UnwrapError(f"Called unwrap on Err: {self.error!r}")

    def unwrap_err(self) -> E:
        return self.error

    def map(self, fn: Callable[[object], object]) -> "Err[E]":
        return self

    def and_then(self, fn: Callable[[object], object]) -> "Err[E]":
        return self


Result = Union[Ok[T], Err[E]]
