"""
Tests for the lazy paged sequence used by provider list endpoints.
"""
from typing import List, Optional, Tuple

import pytest

from possync.domains.integrations.base.pagination import Page, PagedSequence


def make_fetcher(pages: List[Page]):
    """Fetcher returning ``pages`` in order, repeating the last one."""
    calls: List[Tuple[int, Optional[str]]] = []

    async def fetch_page(page_number: int, cursor: Optional[str]) -> Page:
        calls.append((page_number, cursor))
        return pages[min(page_number, len(pages)) - 1]

    return fetch_page, calls


class TestPagedSequence:
    """Test suite for PagedSequence."""

    @pytest.mark.asyncio
    async def test_stops_on_short_page(self) -> None:
        # Arrange
        fetch_page, calls = make_fetcher([Page(items=[1, 2]), Page(items=[3])])

        # Act
        items = await PagedSequence(fetch_page, page_size=2).collect()

        # Assert
        assert items == [1, 2, 3]
        assert calls == [(1, None), (2, None)]

    @pytest.mark.asyncio
    async def test_stops_after_max_pages(self) -> None:
        fetch_page, calls = make_fetcher([Page(items=["a", "b"])])

        items = await PagedSequence(fetch_page, page_size=2).collect()

        assert len(calls) == 10
        assert len(items) == 20

    @pytest.mark.asyncio
    async def test_follows_next_cursor(self) -> None:
        # Arrange
        fetch_page, calls = make_fetcher(
            [
                Page(items=[1, 2], next_cursor="cursor-2", cursor_aware=True),
                Page(items=[3, 4], next_cursor="cursor-3", cursor_aware=True),
                Page(items=[5, 6], next_cursor=None, cursor_aware=True),
            ]
        )

        # Act
        items = await PagedSequence(fetch_page, page_size=2).collect()

        # Assert
        assert items == [1, 2, 3, 4, 5, 6]
        assert calls == [(1, None), (2, "cursor-2"), (3, "cursor-3")]

    @pytest.mark.asyncio
    async def test_empty_first_page(self) -> None:
        fetch_page, calls = make_fetcher([Page(items=[])])

        assert await PagedSequence(fetch_page, page_size=50).collect() == []
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_is_lazy_and_restartable(self) -> None:
        # Arrange
        fetch_page, calls = make_fetcher([Page(items=[1, 2]), Page(items=[3])])
        sequence = PagedSequence(fetch_page, page_size=2)

        # Nothing is fetched until iteration starts
        assert calls == []

        # Act
        first = [item async for item in sequence]
        second = await sequence.collect()

        # Assert
        assert first == second == [1, 2, 3]
        assert calls == [(1, None), (2, None), (1, None), (2, None)]

    @pytest.mark.asyncio
    async def test_custom_max_pages(self) -> None:
        fetch_page, calls = make_fetcher([Page(items=[1])])

        items = await PagedSequence(fetch_page, page_size=1, max_pages=3).collect()

        assert items == [1, 1, 1]
        assert len(calls) == 3
