"""
Outcomes of update/delete operations.

Callers branch on the type instead of catching an exception: a missing record
is an expected answer, not an error.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Found(Generic[T]):
    value: T


@dataclass(frozen=True)
class Deleted:
    id: str


@dataclass(frozen=True)
class NotFound:
    id: str


UpdateResult = Union[Found[T], NotFound]
DeleteResult = Union[Deleted, NotFound]
