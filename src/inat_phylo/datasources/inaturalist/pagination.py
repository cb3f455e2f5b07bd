"""Page-number pagination as an explicit, bounded state machine.

``RequestCursor`` tracks one retrieval::

    AWAITING_FIRST_PAGE --first success--> PAGING --last page--> EXHAUSTED
            |                                 |
            +--first page fails--> EXHAUSTED  +--max_requests hit--> CAPPED_OUT

The page count comes from the first successful response
(``ceil(total_results / per_page)``). Failed pages still count as issued
requests and advance the cursor; they are simply not yielded.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import requests

from inat_phylo.datasources.inaturalist.client import MAX_PER_PAGE, MAX_REQUESTS

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from inat_phylo.datasources.inaturalist.client import RateLimiter


class MalformedPageError(ValueError):
    """Response body is not a usable observation page."""


# Everything that makes a single page unusable without aborting the retrieval.
# requests' JSONDecodeError is both a RequestException and a ValueError.
PAGE_ERRORS: tuple[type[Exception], ...] = (requests.RequestException, ValueError)


class CursorState(StrEnum):
    """Retrieval progress."""

    AWAITING_FIRST_PAGE = "awaiting_first_page"
    PAGING = "paging"
    EXHAUSTED = "exhausted"
    CAPPED_OUT = "capped_out"


@dataclass
class Page:
    """One parsed API response."""

    number: int
    total_results: int
    per_page: int
    results: list[dict[str, Any]] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        """Pages implied by this response's totals."""
        if self.per_page <= 0:
            return 0
        return math.ceil(self.total_results / self.per_page)

    @classmethod
    def from_payload(
        cls, number: int, payload: Any, default_per_page: int = MAX_PER_PAGE
    ) -> Page:
        """Validate a raw JSON body. Raises ``MalformedPageError``."""
        if not isinstance(payload, dict):
            msg = f"page {number}: expected a JSON object, got {type(payload).__name__}"
            raise MalformedPageError(msg)
        results = payload.get("results")
        if not isinstance(results, list):
            msg = f"page {number}: missing 'results' array"
            raise MalformedPageError(msg)
        try:
            total = int(payload["total_results"])
            per_page = int(payload.get("per_page") or default_per_page)
        except (KeyError, TypeError, ValueError) as e:
            msg = f"page {number}: bad pagination metadata ({e})"
            raise MalformedPageError(msg) from e
        return cls(number=number, total_results=total, per_page=per_page, results=results)


@dataclass
class RequestCursor:
    """Mutable progress of one paginated retrieval."""

    max_requests: int = MAX_REQUESTS
    next_page: int = 1
    requests_issued: int = 0
    total_pages: int | None = None
    state: CursorState = CursorState.AWAITING_FIRST_PAGE

    @property
    def done(self) -> bool:
        return self.state in (CursorState.EXHAUSTED, CursorState.CAPPED_OUT)

    def record(self, page: Page | None) -> None:
        """Advance past the request just issued. ``page`` is None if it failed."""
        if self.done:
            msg = f"cursor is already {self.state}"
            raise RuntimeError(msg)

        self.requests_issued += 1
        if self.state is CursorState.AWAITING_FIRST_PAGE and page is not None:
            self.total_pages = page.page_count
        self.next_page += 1

        if self.total_pages is None or self.next_page > self.total_pages:
            self.state = CursorState.EXHAUSTED
        elif self.requests_issued >= self.max_requests:
            self.state = CursorState.CAPPED_OUT
        else:
            self.state = CursorState.PAGING


def iter_pages(
    fetch_page: Callable[[int], Any],
    *,
    per_page: int = MAX_PER_PAGE,
    cursor: RequestCursor | None = None,
    limiter: RateLimiter | None = None,
    on_error: Callable[[int, Exception], None] | None = None,
) -> Iterator[Page]:
    """
    Yield successfully parsed pages, one request at a time.

    Args:
        fetch_page: Called with a 1-based page number, returns the JSON body.
        per_page: Fallback page size when a response omits ``per_page``.
        cursor: Progress state (a fresh one by default). Pass your own to
            inspect the final state afterwards.
        limiter: Called before every request, including the first.
        on_error: Called with (page number, exception) for each dropped page.
    """
    cursor = cursor if cursor is not None else RequestCursor()
    while not cursor.done:
        number = cursor.next_page
        if limiter is not None:
            limiter.wait()
        try:
            page = Page.from_payload(number, fetch_page(number), per_page)
        except PAGE_ERRORS as e:
            cursor.record(None)
            if on_error is not None:
                on_error(number, e)
            continue
        cursor.record(page)
        yield page
