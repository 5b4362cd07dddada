"""Cursor pagination driver.

Any remote "list" call that hands back a continuation cursor can be drained
through ``PaginatedIterator`` once it is wrapped in an object satisfying the
``PaginatedRequestor`` contract::

    requestor.next_page() -> list[record] | None   (None == exhausted)

Errors do not travel through the iteration protocol. A requestor signals a
failed fetch by raising ``PollerError``; the iterator stops as if exhausted
and parks the error in an ``ErrorSlot`` owned by the caller, who MUST check
it after consuming the sequence before trusting that it saw everything.

Usage:
    errors = ErrorSlot()
    for instance in PaginatedIterator(requestor, errors):
        ...
    if errors:
        handle(errors.error)
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

from .provider.errors import PollerError

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


@dataclass
class Page(Generic[T]):
    """Records of one fetch plus the cursor to resume from (None when last)."""
    records: list[T] = field(default_factory=list)
    next_token: str | None = None


class PaginatedRequestor(Protocol[T_co]):
    def next_page(self) -> list[T_co] | None: ...


class ErrorSlot:
    """Out-of-band holder for the error that cut a pagination short."""

    def __init__(self) -> None:
        self.error: PollerError | None = None

    def set(self, error: PollerError) -> None:
        self.error = error

    def clear(self) -> None:
        self.error = None

    def __bool__(self) -> bool:
        return self.error is not None

    def __repr__(self) -> str:
        return f"ErrorSlot({self.error!r})"


class PaginatedIterator(Iterator[T]):
    """Lazy, finite, single-pass sequence of records across all pages.

    Each page is stored reversed so records can be popped from the tail in
    O(1) while still coming out in the original page order. A page is taken
    whole or not at all.
    """

    def __init__(self, requestor: PaginatedRequestor[T], error_slot: ErrorSlot | None = None) -> None:
        self._requestor = requestor
        self._errors = error_slot if error_slot is not None else ErrorSlot()
        self._buffer: list[T] = []
        self._exhausted = False
        self.pages = 0

    @property
    def errors(self) -> ErrorSlot:
        return self._errors

    def __iter__(self) -> PaginatedIterator[T]:
        return self

    def __next__(self) -> T:
        while not self._buffer:
            if self._exhausted:
                raise StopIteration
            self._advance_page()
        return self._buffer.pop()

    def _advance_page(self) -> None:
        try:
            page = self._requestor.next_page()
        except PollerError as e:
            self._errors.set(e)
            page = None
        if page is None:
            self._exhausted = True
            self._buffer = []
            return
        self.pages += 1
        self._buffer = list(reversed(page))


class CursorRequestor(ABC, Generic[T]):
    """Carries the continuation cursor between calls of a cursor-based API.

    The first call always fetches; later calls fetch only while a cursor is
    present. An empty-string cursor means "no more pages", as some APIs
    signal exhaustion that way instead of omitting the field.
    """

    def __init__(self) -> None:
        self._next_token: str | None = None
        self._first_page = True

    @property
    def next_token(self) -> str | None:
        return self._next_token

    def next_page(self) -> list[T] | None:
        if self._next_token is None and not self._first_page:
            return None
        self._first_page = False
        page = self.fetch_page(self._next_token)
        self._next_token = page.next_token or None
        return page.records

    @abstractmethod
    def fetch_page(self, next_token: str | None) -> Page[T]:
        """Perform one remote call resuming at *next_token* (None for the first page)."""


__all__ = [
    "Page",
    "PaginatedRequestor",
    "ErrorSlot",
    "PaginatedIterator",
    "CursorRequestor",
]
