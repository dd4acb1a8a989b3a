# axiss_nav/scroll.py
"""
Virtual windowing over a growing list of paged items.

`compute_window` answers "which items are on screen" for a grid of fixed-height
rows; `InfiniteFeed` owns the fetched items and pulls the next page through an
async loader when the viewport nears the bottom.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger("axiss_nav.scroll")

T = TypeVar("T")

DEFAULT_GAP = 16
DEFAULT_BUFFER_ROWS = 2
LOAD_THRESHOLD_PX = 200


@dataclass
class PageResult(Generic[T]):
    data: List[T]
    has_more: bool
    total: Optional[int] = None


Loader = Callable[[int, str], Awaitable[PageResult]]


@dataclass
class VisibleItem(Generic[T]):
    item: T
    index: int
    row: int
    col: int


@dataclass
class Window(Generic[T]):
    start_row: int
    end_row: int
    start_index: int
    end_index: int
    total_rows: int
    total_height: int
    offset_top: int
    items: List[VisibleItem] = field(default_factory=list)


def compute_window(
    items: List[T],
    scroll_top: float,
    item_height: int,
    container_height: int,
    columns: int,
    gap: int = DEFAULT_GAP,
    buffer: int = DEFAULT_BUFFER_ROWS,
) -> Window:
    if columns <= 0:
        raise ValueError("columns must be positive")
    if item_height <= 0:
        raise ValueError("item_height must be positive")
    if gap < 0 or buffer < 0:
        raise ValueError("gap and buffer must not be negative")

    count = len(items)
    stride = item_height + gap
    total_rows = math.ceil(count / columns)
    total_height = max(0, total_rows * stride - gap)

    visible_rows = math.ceil(max(0, container_height) / stride)
    start_row = max(0, math.floor(max(0.0, scroll_top) / stride) - buffer)
    start_row = min(start_row, total_rows)
    end_row = min(start_row + visible_rows + buffer * 2, total_rows)

    start_index = start_row * columns
    end_index = min(end_row * columns, count)

    visible = [
        VisibleItem(item=items[i], index=i, row=i // columns, col=i % columns)
        for i in range(start_index, end_index)
    ]
    return Window(
        start_row=start_row,
        end_row=end_row,
        start_index=start_index,
        end_index=end_index,
        total_rows=total_rows,
        total_height=total_height,
        offset_top=start_row * stride,
        items=visible,
    )


def near_bottom(scroll_top: float, scroll_height: float, client_height: float,
                threshold: float = LOAD_THRESHOLD_PX) -> bool:
    return scroll_height - scroll_top - client_height < threshold


class InfiniteFeed(Generic[T]):
    """Paged item list that grows as the viewport approaches its end.

    Every `reset` or `set_search` starts a new generation. A fetch that
    completes after its generation was superseded is dropped.
    """

    def __init__(
        self,
        loader: Loader,
        initial_items: Optional[List[T]] = None,
        total_count: int = 0,
        search: str = "",
        on_loading_change: Optional[Callable[[bool], Any]] = None,
    ):
        self.loader = loader
        self.on_loading_change = on_loading_change
        self.items: List[T] = []
        self.page = 1
        self.has_more = True
        self.loading = False
        self.search = ""
        self.scroll_top = 0.0
        self.generation = 0
        self.reset(initial_items or [], total_count, search)

    def reset(self, initial_items: List[T], total_count: int, search: str = "") -> None:
        self.generation += 1
        if self.loading:
            self._set_loading(False)
        self.items = list(initial_items)
        self.page = 1
        self.has_more = len(self.items) < total_count
        self.search = search
        self.scroll_top = 0.0

    def _set_loading(self, value: bool) -> None:
        self.loading = value
        if self.on_loading_change:
            self.on_loading_change(value)

    async def set_search(self, search: str) -> None:
        """Restart from page 1 for a new search term."""
        self.generation += 1
        mine = self.generation
        self.search = search
        self.page = 1
        self.scroll_top = 0.0
        self._set_loading(True)
        try:
            result = await self.loader(1, search)
        except Exception:
            logger.exception("first page fetch failed for search %r", search)
            if mine == self.generation:
                self._set_loading(False)
                # page 0 makes the next load_more ask for page 1 again
                self.items = []
                self.page = 0
                self.has_more = True
            return

        if mine != self.generation:
            logger.debug("dropping first page for superseded search %r", search)
            return
        self._set_loading(False)
        self.items = list(result.data)
        self.has_more = result.has_more

    async def load_more(self) -> bool:
        """Fetch the next page. Returns True when a page was appended."""
        if self.loading or not self.has_more:
            return False

        mine = self.generation
        self._set_loading(True)
        next_page = self.page + 1
        try:
            result = await self.loader(next_page, self.search)
        except Exception:
            logger.exception("page %d fetch failed", next_page)
            if mine == self.generation:
                self._set_loading(False)
            return False

        if mine != self.generation:
            logger.debug("dropping page %d from a superseded feed", next_page)
            return False
        self._set_loading(False)
        self.items.extend(result.data)
        self.page = next_page
        self.has_more = result.has_more
        return True

    async def on_scroll(self, scroll_top: float, scroll_height: float, client_height: float) -> bool:
        self.scroll_top = scroll_top
        if self.has_more and not self.loading and near_bottom(scroll_top, scroll_height, client_height):
            return await self.load_more()
        return False

    def window(self, item_height: int, container_height: int, columns: int,
               gap: int = DEFAULT_GAP, buffer: int = DEFAULT_BUFFER_ROWS) -> Window:
        return compute_window(self.items, self.scroll_top, item_height, container_height,
                              columns, gap=gap, buffer=buffer)
