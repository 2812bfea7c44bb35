"""Success/failure outcome of a single context effect run."""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

A = TypeVar("A")


@dataclass(frozen=True)
class Success(Generic[A]):
    """A settled computation that produced ``value`` (``None`` is ordinary data)."""

    value: A


@dataclass(frozen=True)
class Failure:
    """A settled computation that produced nothing. Carries no payload."""

    def __repr__(self) -> str:
        return "FAILURE"


FAILURE = Failure()

Result = Union[Success[A], Failure]


def is_success(result: "Result[A]") -> bool:
    return isinstance(result, Success)
