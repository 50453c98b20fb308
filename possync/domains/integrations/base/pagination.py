import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 10


@dataclass
class Page:
    """One page of a list endpoint."""

    items: List[Any] = field(default_factory=list)
    # Cursor for the next page; only meaningful when cursor_aware is set
    next_cursor: Optional[str] = None
    # True when the provider reported pagination links for this page
    cursor_aware: bool = False


# (page_number, cursor) -> Page
PageFetcher = Callable[[int, Optional[str]], Awaitable[Page]]


class PagedSequence:
    """
    Lazy, restartable sequence of items from a paginated list endpoint.

    Nothing is requested until the sequence is iterated, and every iteration
    starts again from the first page. Paging stops when:

    - a page holds fewer items than the page size
    - the provider sent pagination links without a next cursor
    - ``max_pages`` pages have been read
    """

    def __init__(
        self,
        fetch_page: PageFetcher,
        page_size: int,
        max_pages: int = DEFAULT_MAX_PAGES,
        name: str = "",
    ):
        self.fetch_page = fetch_page
        self.page_size = page_size
        self.max_pages = max_pages
        self.name = name

    async def pages(self) -> AsyncIterator[Page]:
        cursor: Optional[str] = None

        for page_number in range(1, self.max_pages + 1):
            page = await self.fetch_page(page_number, cursor)
            yield page

            if len(page.items) < self.page_size:
                return
            if page.cursor_aware and not page.next_cursor:
                return
            cursor = page.next_cursor
        else:
            logger.warning(
                f"Stopped paging {self.name or 'resource'} after {self.max_pages} "
                "pages; remaining results were not fetched"
            )

    async def __aiter__(self) -> AsyncIterator[Any]:
        async for page in self.pages():
            for item in page.items:
                yield item

    async def collect(self) -> List[Any]:
        """Read every page and return all items."""
        return [item async for item in self]
