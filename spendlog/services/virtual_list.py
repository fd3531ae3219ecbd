"""Virtual list windowing.

Pure function of list geometry: given N fixed-height rows and the current
scroll position, return the contiguous index range worth materializing plus
each row's absolute offset. Cost is O(1) in N plus O(k) in the rows
returned; rows outside the range are never produced.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence, Tuple, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class VirtualItem:
    index: int
    offset: int


@dataclass(frozen=True)
class VirtualWindow:
    start: int
    end: int  # inclusive; end < start means nothing to render
    total_height: int
    items: Tuple[VirtualItem, ...]

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, index: object) -> bool:
        return isinstance(index, int) and self.start <= index <= self.end


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def compute_window(
    item_count: int,
    item_height: int,
    scroll_top: float,
    viewport_height: float,
    container_top: float = 0,
    overscan: int = 5,
) -> VirtualWindow:
    if item_height <= 0:
        raise ValueError("item_height must be positive")
    if item_count < 0 or overscan < 0 or viewport_height < 0:
        raise ValueError("item_count, overscan and viewport_height must be non-negative")
    total = item_count * item_height
    if item_count == 0:
        return VirtualWindow(start=0, end=-1, total_height=0, items=())

    # Above the list, the relative scroll position is pinned at zero
    relative = max(0.0, scroll_top - container_top)
    last = item_count - 1
    start = _clamp(int(relative // item_height) - overscan, 0, last)
    end = _clamp(int((relative + viewport_height) // item_height) + overscan, 0, last)
    items = tuple(VirtualItem(index=i, offset=i * item_height) for i in range(start, end + 1))
    return VirtualWindow(start=start, end=end, total_height=total, items=items)


def materialize(
    window: VirtualWindow, fetch: Callable[[int], T]
) -> Tuple[Tuple[VirtualItem, T], ...]:
    """Build only the rows inside ``window``; ``fetch`` is called once per row."""
    return tuple((item, fetch(item.index)) for item in window.items)


def newest_first(rows: Sequence[T]) -> Callable[[int], T]:
    """Index accessor presenting an insertion-ordered sequence newest first."""
    last = len(rows) - 1
    return lambda i: rows[last - i]
