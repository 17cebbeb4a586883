from __future__ import annotations

import logging
import math
from typing import Dict, Optional

from app.services.assets import AssetTracker
from app.services.elements import Element
from app.services.template import Template

logger = logging.getLogger(__name__)


def _finite_number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return value


class CanvasController:
    """Selection and drag state for one live template."""

    def __init__(self, template: Template, assets: Optional[AssetTracker] = None) -> None:
        self.template = template
        self.assets = assets or AssetTracker()
        self.selected_id: Optional[str] = None
        self._drag_origins: Dict[str, tuple[float, float]] = {}

    @property
    def selected(self) -> Optional[Element]:
        return self.template.find(self.selected_id)

    def select_element(self, element_id: Optional[str]) -> Optional[str]:
        if not element_id:
            self.selected_id = None
        elif self.template.find(element_id) is not None:
            self.selected_id = element_id
        return self.selected_id

    def clear_selection_if(self, element_id: str) -> None:
        if self.selected_id == element_id:
            self.selected_id = None
        self._drag_origins.pop(element_id, None)

    def begin_drag(self, element_id: str) -> bool:
        element = self.template.find(element_id)
        if element is None or self.assets.is_pending(element_id):
            return False
        self._drag_origins[element_id] = (element.x, element.y)
        return True

    def on_drag_end(self, element_id: str, delta_x, delta_y) -> Optional[Element]:
        self._drag_origins.pop(element_id, None)
        element = self.template.find(element_id)
        if element is None:
            return None
        if self.assets.is_pending(element_id):
            logger.debug("DRAG_REFUSED_PENDING_ASSET", extra={"element_id": element_id})
            return None

        dx = _finite_number(delta_x)
        dy = _finite_number(delta_y)
        if dx is None or dy is None:
            return None

        element.x, element.y = self.template.clamped_position(element, element.x + dx, element.y + dy)
        return element

    def cancel_drag(self, element_id: str) -> Optional[Element]:
        origin = self._drag_origins.pop(element_id, None)
        element = self.template.find(element_id)
        if element is None or origin is None:
            return None
        element.x, element.y = origin
        return element
