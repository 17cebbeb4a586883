from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional

from app.services.elements import Element

DEFAULT_CANVAS_WIDTH = 842
DEFAULT_CANVAS_HEIGHT = 595


def clamp(value: float, low: float, high: Optional[float]) -> float:
    if high is not None and value > high:
        value = high
    if value < low:
        value = low
    return value


@dataclass
class Template:
    canvas_width: float = DEFAULT_CANVAS_WIDTH
    canvas_height: float = DEFAULT_CANVAS_HEIGHT
    background_image: str = ""
    elements: list[Element] = field(default_factory=list)

    @property
    def is_draft(self) -> bool:
        return not str(self.background_image or "").strip()

    def __iter__(self) -> Iterator[Element]:
        return iter(self.elements)

    def element_ids(self) -> set[str]:
        return {el.id for el in self.elements}

    def find(self, element_id: Optional[str]) -> Optional[Element]:
        if not element_id:
            return None
        for el in self.elements:
            if el.id == element_id:
                return el
        return None

    def index_of(self, element_id: str) -> int:
        for i, el in enumerate(self.elements):
            if el.id == element_id:
                return i
        return -1

    def clamped_position(self, element: Element, x: float, y: float) -> tuple[float, float]:
        # An axis without a determinate extent is only bounded by the origin.
        w, h = element.extent
        max_x = max(0.0, self.canvas_width - w) if w is not None else None
        max_y = max(0.0, self.canvas_height - h) if h is not None else None
        return clamp(x, 0, max_x), clamp(y, 0, max_y)

    def fits(self, element: Element) -> bool:
        x, y = self.clamped_position(element, element.x, element.y)
        return x == element.x and y == element.y
