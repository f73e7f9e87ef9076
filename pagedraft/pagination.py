"""Page count derivation from a measured content height.

Only the first page carries live content; the others are placeholders of
page height. Content is never redistributed across pages, the page count is
simply how many page bodies the measured height would fill.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from .constants import PageGeometry

logger = logging.getLogger(__name__)


class MeasurementUnavailable(Exception):
    """Raised by a height measurer when nothing can be measured yet."""


MeasureHeight = Callable[[], Optional[float]]


@dataclass(frozen=True)
class PageDescriptor:
    index: int
    height_budget: int = PageGeometry.AVAILABLE_HEIGHT


def page_count_for_height(height: float,
                          available_height: int = PageGeometry.AVAILABLE_HEIGHT) -> int:
    """Return max(1, ceil(height / available_height))."""
    return max(1, math.ceil(height / available_height))


class PaginationEngine:
    """Tracks the page count of the current content.

    The measurer is called on every recompute. When it has nothing to report
    (returns None, raises MeasurementUnavailable, or gives a negative or
    non-finite height) the previous page count is kept.
    """

    def __init__(self, measure: MeasureHeight):
        self._measure = measure
        self.page_count = 1
        self.content_height: Optional[float] = None

    def _read_height(self) -> Optional[float]:
        try:
            height = self._measure()
        except MeasurementUnavailable:
            return None
        if height is None:
            return None
        if not math.isfinite(height) or height < 0:
            logger.warning(f"Ignoring invalid content height {height!r}")
            return None
        return height

    def recompute(self) -> int:
        """Re-measure the content and update the page count."""
        height = self._read_height()
        if height is None:
            logger.debug(f"Measurement unavailable, keeping {self.page_count} page(s)")
            return self.page_count
        self.content_height = height
        self.page_count = page_count_for_height(height)
        logger.debug(f"Content height {height} -> {self.page_count} page(s)")
        return self.page_count

    @property
    def pages(self) -> tuple[PageDescriptor, ...]:
        return tuple(PageDescriptor(index) for index in range(1, self.page_count + 1))
