"""Deterministic page slicing shared by the list view, popups and calendar."""

import math
from collections.abc import Hashable, Sequence
from typing import TypeVar

T = TypeVar("T")

ELLIPSIS = "..."
WINDOW = 2  # pages shown on each side of the current page


def total_pages(count: int, page_size: int) -> int:
    """ceil(count / page_size); zero items gives zero pages."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return math.ceil(count / page_size)


def page(items: Sequence[T], page_number: int, page_size: int) -> list[T]:
    """Return the 1-based ``page_number`` slice of ``items``."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    start = (max(page_number, 1) - 1) * page_size
    return list(items[start:start + page_size])


def visible_pages(current: int, total: int) -> list[int | str]:
    """Page numbers to render, collapsing gaps into ELLIPSIS.

    First and last page are always present, plus up to WINDOW pages on each
    side of ``current``. Nothing is rendered for a single page or none.
    """
    if total <= 1:
        return []
    middle = list(range(max(2, current - WINDOW), min(total - 1, current + WINDOW) + 1))
    pages: list[int | str] = [1]
    if current - WINDOW > 2:
        pages.append(ELLIPSIS)
    pages.extend(middle)
    if current + WINDOW < total - 1:
        pages.append(ELLIPSIS)
    pages.append(total)
    return pages


class Pagination:
    """Current page for one paginated view.

    The page resets to 1 whenever the filters, the view mode or the dataset
    identity change.
    """

    def __init__(self, page_size: int) -> None:
        self.page_size = page_size
        self.current_page = 1
        self._context: Hashable = None

    def reset(self) -> None:
        self.current_page = 1

    def bind(self, context: Hashable) -> None:
        """Attach the (filters, view, dataset) identity; resets on change."""
        if context != self._context:
            self._context = context
            self.reset()

    def go_to(self, page_number: int, count: int) -> None:
        pages = total_pages(count, self.page_size)
        self.current_page = min(max(page_number, 1), max(pages, 1))

    def slice(self, items: Sequence[T]) -> list[T]:
        return page(items, self.current_page, self.page_size)

    def total_pages(self, count: int) -> int:
        return total_pages(count, self.page_size)

    def show_controls(self, count: int) -> bool:
        return self.total_pages(count) > 1

    def visible_pages(self, count: int) -> list[int | str]:
        return visible_pages(self.current_page, self.total_pages(count))
