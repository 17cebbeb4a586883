from __future__ import annotations

import logging
import uuid

from app.services.elements import (
    DEFAULT_COLOR,
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    DEFAULT_QR_SIZE,
    DEFAULT_SIGNATURE_WIDTH,
    DEFAULT_STATIC_TEXT,
    DEFAULT_TEXT_ALIGN,
    TEXT_TYPES,
    Element,
    ElementType,
    FontStyle,
    FontWeight,
)
from app.services.template import Template

CASCADE_STEP = 20

logger = logging.getLogger(__name__)


def new_element_id(template: Template) -> str:
    taken = template.element_ids()
    while True:
        candidate = uuid.uuid4().hex
        if candidate not in taken:
            return candidate


def _with_defaults(element_id: str, element_type: ElementType) -> Element:
    if element_type in TEXT_TYPES:
        return Element(
            id=element_id,
            type=element_type,
            font_size=DEFAULT_FONT_SIZE,
            color=DEFAULT_COLOR,
            font_family=DEFAULT_FONT_FAMILY,
            font_weight=FontWeight.NORMAL,
            font_style=FontStyle.NORMAL,
            text_align=DEFAULT_TEXT_ALIGN,
            content=DEFAULT_STATIC_TEXT if element_type == ElementType.STATIC_TEXT else None,
        )
    if element_type == ElementType.QR_CODE:
        return Element(
            id=element_id,
            type=element_type,
            width=DEFAULT_QR_SIZE,
            height=DEFAULT_QR_SIZE,
            color=DEFAULT_COLOR,
        )
    if element_type == ElementType.SIGNATURE:
        return Element(id=element_id, type=element_type, width=DEFAULT_SIGNATURE_WIDTH)
    raise ValueError(f"unsupported element type: {element_type!r}")


def create_element(template: Template, element_type: ElementType | str) -> Element:
    """Append a new element of `element_type` with type defaults and return it.

    The first element lands at the canvas origin; later ones cascade from the
    most recently added element so they never sit exactly on top of it.
    """
    element_type = ElementType(element_type)
    element = _with_defaults(new_element_id(template), element_type)

    if template.elements:
        last = template.elements[-1]
        element.x, element.y = template.clamped_position(element, last.x + CASCADE_STEP, last.y + CASCADE_STEP)
    else:
        element.x, element.y = template.clamped_position(element, 0, 0)

    template.elements.append(element)
    logger.info("ELEMENT_CREATED", extra={"element_id": element.id, "type": element_type.value})
    return element
