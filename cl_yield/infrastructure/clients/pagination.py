from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Generic, TypeVar


T = TypeVar("T")

FetchPage = Callable[[int, int], Awaitable[list[T]]]


class PagedQuery(Generic[T]):
    """Finite, restartable sequence of `first`/`skip` pages.

    `fetch_page(first, skip)` is awaited once per page. Iteration ends after
    the first page holding fewer than `page_size` rows, an empty page
    included. Every `async for` starts again from the first page.
    """

    def __init__(self, fetch_page: FetchPage[T], *, page_size: int = 1000):
        if page_size <= 0:
            raise ValueError("page_size must be positive.")
        self._fetch_page = fetch_page
        self._page_size = page_size

    @property
    def page_size(self) -> int:
        return self._page_size

    def __aiter__(self) -> AsyncIterator[list[T]]:
        return self._pages()

    async def _pages(self) -> AsyncIterator[list[T]]:
        page = 0
        while True:
            rows = await self._fetch_page(self._page_size, page * self._page_size)
            if rows:
                yield rows
            if len(rows) < self._page_size:
                return
            page += 1

    async def collect(self) -> list[T]:
        result: list[T] = []
        async for rows in self:
            result.extend(rows)
        return result
