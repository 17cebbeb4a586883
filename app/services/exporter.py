from __future__ import annotations

import json
import math
from typing import Any, Dict

from app.errors import TemplateFormatError
from app.services.elements import Element, ElementType, FontStyle, FontWeight, TextAlign
from app.services.template import Template

# (attribute, wire key) for optional element fields; omitted from the form when None.
_OPTIONAL_FIELDS: list[tuple[str, str]] = [
    ("width", "width"),
    ("height", "height"),
    ("font_size", "fontSize"),
    ("color", "color"),
    ("font_family", "fontFamily"),
    ("font_weight", "fontWeight"),
    ("font_style", "fontStyle"),
    ("text_align", "textAlign"),
    ("content", "content"),
    ("signature_asset", "signatureAsset"),
]

_ENUM_FIELDS = {
    "font_weight": FontWeight,
    "font_style": FontStyle,
    "text_align": TextAlign,
}

_NUMERIC_FIELDS = frozenset({"width", "height", "font_size"})
_STRING_FIELDS = frozenset({"color", "font_family", "content", "signature_asset"})


def serialize_element(element: Element) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "id": element.id,
        "type": element.type.value,
        "x": element.x,
        "y": element.y,
    }
    for attr, key in _OPTIONAL_FIELDS:
        value = getattr(element, attr)
        if value is None:
            continue
        out[key] = value.value if attr in _ENUM_FIELDS else value
    if element.required:
        out["required"] = True
    return out


def serialize(template: Template) -> Dict[str, Any]:
    return {
        "canvasWidth": template.canvas_width,
        "canvasHeight": template.canvas_height,
        "backgroundImage": template.background_image,
        "elements": [serialize_element(el) for el in template.elements],
    }


def _number(raw: Dict[str, Any], key: str, *, where: str) -> float:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise TemplateFormatError(f"{where}.{key} must be a finite number")
    return value


def deserialize_element(raw: Any, *, index: int = 0) -> Element:
    where = f"elements[{index}]"
    if not isinstance(raw, dict):
        raise TemplateFormatError(f"{where} must be an object")

    element_id = str(raw.get("id") or "").strip()
    if not element_id:
        raise TemplateFormatError(f"{where}.id is required")
    try:
        element_type = ElementType(raw.get("type"))
    except ValueError as e:
        raise TemplateFormatError(f"{where}.type is not a known element type: {raw.get('type')!r}") from e

    kwargs: Dict[str, Any] = {}
    for attr, key in _OPTIONAL_FIELDS:
        value = raw.get(key)
        if value is None:
            continue
        enum_cls = _ENUM_FIELDS.get(attr)
        if attr in _NUMERIC_FIELDS:
            value = _number(raw, key, where=where)
        elif attr in _STRING_FIELDS and not isinstance(value, str):
            raise TemplateFormatError(f"{where}.{key} must be a string")
        elif enum_cls is not None:
            try:
                value = enum_cls(value)
            except ValueError as e:
                raise TemplateFormatError(f"{where}.{key} has invalid value {value!r}") from e
        kwargs[attr] = value

    required = raw.get("required")
    if required is None:
        required = False
    if not isinstance(required, bool):
        raise TemplateFormatError(f"{where}.required must be a boolean")

    return Element(
        id=element_id,
        type=element_type,
        x=_number(raw, "x", where=where),
        y=_number(raw, "y", where=where),
        required=required,
        **kwargs,
    )


def deserialize(form: Any) -> Template:
    if not isinstance(form, dict):
        raise TemplateFormatError("template form must be an object")

    raw_elements = form.get("elements")
    if raw_elements is None:
        raw_elements = []
    if not isinstance(raw_elements, list):
        raise TemplateFormatError("elements must be a list")

    elements = [deserialize_element(raw, index=i) for i, raw in enumerate(raw_elements)]
    seen: set[str] = set()
    for el in elements:
        if el.id in seen:
            raise TemplateFormatError(f"duplicate element id: {el.id}")
        seen.add(el.id)

    canvas_width = _number(form, "canvasWidth", where="template")
    canvas_height = _number(form, "canvasHeight", where="template")
    if canvas_width <= 0 or canvas_height <= 0:
        raise TemplateFormatError("canvas dimensions must be > 0")

    return Template(
        canvas_width=canvas_width,
        canvas_height=canvas_height,
        background_image=str(form.get("backgroundImage") or ""),
        elements=elements,
    )


def to_json(template: Template) -> str:
    return json.dumps(serialize(template), ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def from_json(raw: str) -> Template:
    try:
        form = json.loads(raw)
    except json.JSONDecodeError as e:
        raise TemplateFormatError("template form is not valid JSON") from e
    return deserialize(form)
