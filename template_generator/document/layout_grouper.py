"""
Groups template elements into visual rows.
"""

from typing import Iterable, List, Optional

from ..core.config import Config
from ..core.models import LayoutGroup, TemplateElement


class LayoutGrouper:
    """
    Clusters elements whose vertical positions lie within a tolerance.

    Elements are stably sorted by ``y`` and walked once. An element joins the
    current row while ``|y - lastY| <= tolerance``, where ``lastY`` is the ``y``
    of the previous element; a larger jump closes the row. Each closed row is
    stably sorted by ``x``.
    """

    def __init__(self, tolerance: float = Config.INLINE_GROUPING_TOLERANCE):
        if tolerance < 0:
            raise ValueError("Grouping tolerance must be non-negative")
        self.tolerance = tolerance

    def group(self, elements: Iterable[TemplateElement]) -> List[LayoutGroup]:
        groups: List[LayoutGroup] = []
        current: List[TemplateElement] = []
        last_y: Optional[float] = None

        for element in sorted(elements, key=lambda e: e.y):
            if last_y is None or abs(element.y - last_y) <= self.tolerance:
                current.append(element)
            else:
                groups.append(self._close_row(current))
                current = [element]
            last_y = element.y

        if current:
            groups.append(self._close_row(current))
        return groups

    @staticmethod
    def _close_row(row: List[TemplateElement]) -> LayoutGroup:
        return LayoutGroup(sorted(row, key=lambda e: e.x))


def group_elements(elements: Iterable[TemplateElement],
                   tolerance: float = Config.INLINE_GROUPING_TOLERANCE) -> List[LayoutGroup]:
    return LayoutGrouper(tolerance).group(elements)
