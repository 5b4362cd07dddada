from __future__ import annotations

from deucalion.pagination import CursorRequestor, ErrorSlot, Page, PaginatedIterator
from deucalion.provider.errors import NetworkError


class ListRequestor(CursorRequestor[int]):
    """Serves pages[i] with cursor str(i+1); ``last_token`` is what the final page carries."""

    def __init__(self, pages, *, fail_at=None, last_token=None):
        super().__init__()
        self.pages = pages
        self.fail_at = fail_at
        self.last_token = last_token
        self.tokens = []

    def fetch_page(self, next_token):
        self.tokens.append(next_token)
        index = int(next_token) if next_token else 0
        if index == self.fail_at:
            raise NetworkError("connection reset")
        more = index + 1 < len(self.pages)
        return Page(records=list(self.pages[index]), next_token=str(index + 1) if more else self.last_token)


def test_yields_all_records_in_page_order():
    req = ListRequestor([[1, 2, 3], [4], [5, 6]])
    errors = ErrorSlot()
    it = PaginatedIterator(req, errors)
    assert list(it) == [1, 2, 3, 4, 5, 6]
    assert not errors
    assert it.pages == 3
    assert req.tokens == [None, "1", "2"]


def test_empty_string_cursor_means_exhausted():
    req = ListRequestor([[1], [2]], last_token="")
    assert list(PaginatedIterator(req)) == [1, 2]
    assert req.tokens == [None, "1"]


def test_first_page_fetched_even_without_cursor():
    req = ListRequestor([[]])
    it = PaginatedIterator(req)
    assert list(it) == []
    assert req.tokens == [None]
    assert it.pages == 1


def test_empty_middle_page_is_skipped_over():
    req = ListRequestor([[1], [], [2]])
    assert list(PaginatedIterator(req)) == [1, 2]


def test_page_error_stops_iteration_and_fills_slot():
    req = ListRequestor([[1, 2], [3], [4]], fail_at=2)
    errors = ErrorSlot()
    assert list(PaginatedIterator(req, errors)) == [1, 2, 3]
    assert errors
    assert errors.error == NetworkError("connection reset")


def test_error_on_first_page_yields_nothing():
    req = ListRequestor([[1]], fail_at=0)
    it = PaginatedIterator(req)
    assert list(it) == []
    assert isinstance(it.errors.error, NetworkError)
    assert it.pages == 0


def test_iterator_is_single_pass():
    req = ListRequestor([[1], [2]])
    it = PaginatedIterator(req)
    assert list(it) == [1, 2]
    assert list(it) == []
    assert req.tokens == [None, "1"]


def test_requestor_not_called_again_after_exhaustion():
    req = ListRequestor([[1]])
    assert req.next_page() == [1]
    assert req.next_page() is None
    assert req.tokens == [None]


def test_error_slot_clear():
    slot = ErrorSlot()
    slot.set(NetworkError("x"))
    assert slot
    slot.clear()
    assert not slot and slot.error is None
