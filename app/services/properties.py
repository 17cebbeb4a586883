from __future__ import annotations

import logging
import math
import re
from typing import Any, Callable, Dict, Mapping, Optional

from app.services.assets import AssetTracker
from app.services.canvas import CanvasController
from app.services.elements import (
    FONT_FAMILIES,
    FONT_SIZE_MAX,
    FONT_SIZE_MIN,
    TEXT_TYPES,
    WIDTH_MAX,
    WIDTH_MIN,
    Element,
    ElementType,
    FontStyle,
    FontWeight,
    TextAlign,
)
from app.services.template import Template, clamp

logger = logging.getLogger(__name__)

HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

_STYLE_ATTRS = frozenset({"width", "font_size", "color", "font_family", "font_weight", "font_style", "text_align"})

SUPPORTED_ATTRS: dict[ElementType, frozenset[str]] = {
    t: frozenset({"x", "y"}) | _STYLE_ATTRS | ({"content"} if t == ElementType.STATIC_TEXT else set())
    for t in TEXT_TYPES
}
SUPPORTED_ATTRS[ElementType.QR_CODE] = frozenset({"x", "y", "width", "color"})
SUPPORTED_ATTRS[ElementType.SIGNATURE] = frozenset({"x", "y", "width", "signature_asset", "required"})

_WIRE_NAMES = {
    "fontSize": "font_size",
    "fontFamily": "font_family",
    "fontWeight": "font_weight",
    "fontStyle": "font_style",
    "textAlign": "text_align",
    "signatureAsset": "signature_asset",
}


class _Rejected(Exception):
    pass


def parse_number(value: Any) -> float:
    if isinstance(value, bool):
        raise _Rejected("boolean is not a number")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise _Rejected(f"not a number: {value!r}")
        if value.is_integer():
            value = int(value)
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        raise _Rejected(f"not a number: {value!r}")
    return value


def _enum_parser(enum_cls) -> Callable[[Any], Any]:
    def parse(value: Any):
        try:
            return enum_cls(value)
        except ValueError:
            raise _Rejected(f"{value!r} is not a valid {enum_cls.__name__}")

    return parse


def _parse_font_size(value: Any) -> float:
    return clamp(parse_number(value), FONT_SIZE_MIN, FONT_SIZE_MAX)


def _parse_width(value: Any) -> float:
    return clamp(parse_number(value), WIDTH_MIN, WIDTH_MAX)


def _parse_color(value: Any) -> str:
    if not isinstance(value, str) or not HEX_COLOR_RE.match(value.strip()):
        raise _Rejected(f"malformed color: {value!r}")
    return value.strip()


def _parse_font_family(value: Any) -> str:
    if value not in FONT_FAMILIES:
        raise _Rejected(f"unsupported font family: {value!r}")
    return value


def _parse_content(value: Any) -> str:
    if not isinstance(value, str):
        raise _Rejected("content must be a string")
    return value


def _parse_asset(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise _Rejected("signature asset must be a string reference")
    return value.strip() or None


def _parse_required(value: Any) -> bool:
    if not isinstance(value, bool):
        raise _Rejected("required must be a boolean")
    return value


_PARSERS: Dict[str, Callable[[Any], Any]] = {
    "x": parse_number,
    "y": parse_number,
    "width": _parse_width,
    "font_size": _parse_font_size,
    "color": _parse_color,
    "font_family": _parse_font_family,
    "font_weight": _enum_parser(FontWeight),
    "font_style": _enum_parser(FontStyle),
    "text_align": _enum_parser(TextAlign),
    "content": _parse_content,
    "signature_asset": _parse_asset,
    "required": _parse_required,
}


class PropertyEditor:
    """Validated attribute mutation. Rejected values keep the prior value and never raise."""

    def __init__(self, template: Template, canvas: CanvasController, assets: Optional[AssetTracker] = None) -> None:
        self.template = template
        self.canvas = canvas
        self.assets = assets or canvas.assets

    def update(self, element_id: str, attrs: Mapping[str, Any]) -> Optional[Element]:
        element = self.template.find(element_id)
        if element is None:
            return None

        supported = SUPPORTED_ATTRS[element.type]
        accepted: Dict[str, Any] = {}
        for raw_name, raw_value in (attrs or {}).items():
            name = _WIRE_NAMES.get(raw_name, raw_name)
            if name not in supported:
                continue
            if name == "width" and self.assets.is_pending(element_id):
                logger.debug("PROPERTY_REJECTED", extra={"element_id": element_id, "attr": name, "reason": "asset pending"})
                continue
            try:
                accepted[name] = _PARSERS[name](raw_value)
            except _Rejected as e:
                logger.debug("PROPERTY_REJECTED", extra={"element_id": element_id, "attr": name, "reason": str(e)})

        for name, value in accepted.items():
            if name in ("x", "y"):
                continue
            setattr(element, name, value)
        if "width" in accepted and element.type == ElementType.QR_CODE:
            element.height = element.width

        # Position last: a new width can shrink the room left on the canvas.
        x = accepted.get("x", element.x)
        y = accepted.get("y", element.y)
        element.x, element.y = self.template.clamped_position(element, x, y)
        return element

    def remove(self, element_id: str) -> bool:
        index = self.template.index_of(element_id)
        if index < 0:
            return False
        del self.template.elements[index]
        self.canvas.clear_selection_if(element_id)
        self.assets.forget(element_id)
        logger.info("ELEMENT_REMOVED", extra={"element_id": element_id})
        return True
