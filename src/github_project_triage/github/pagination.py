"""Exhaustive page-by-page collection for REST list endpoints."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from github_project_triage.errors import OperationCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")

# GitHub rejects per_page values above this.
MAX_PER_PAGE = 100


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    """One page of results plus the server's pointer to the next page.

    ``next_page`` is ``None`` (or 0) when the server reports no further page.
    """

    items: list[T] = field(default_factory=list)
    next_page: int | None = None

    @property
    def has_more(self) -> bool:
        return bool(self.next_page)


def collect_pages(
    fetch: Callable[[int, int], Page[T]],
    *,
    per_page: int = MAX_PER_PAGE,
    cancel: threading.Event | None = None,
) -> list[T]:
    """Call ``fetch(page, per_page)`` until the server signals the last page.

    Items are returned in server order. A failing fetch propagates its error and
    nothing collected so far is returned.

    Raises:
        ValueError: If ``per_page`` is outside 1..MAX_PER_PAGE.
        OperationCancelled: If ``cancel`` is set before a fetch.
    """

    if not 1 <= per_page <= MAX_PER_PAGE:
        raise ValueError(f"per_page must be between 1 and {MAX_PER_PAGE}, got {per_page}")

    items: list[T] = []
    page = 1
    fetches = 0
    while True:
        if cancel is not None and cancel.is_set():
            raise OperationCancelled(f"Cancelled before fetching page {page}")

        result = fetch(page, per_page)
        fetches += 1
        items.extend(result.items)

        if not result.has_more:
            break
        assert result.next_page is not None
        page = result.next_page

    logger.debug("Collected pages", extra={"pages": fetches, "items": len(items)})
    return items
