"""Binds a template to one certificate instance.

Every element type maps to exactly one resolver in ``_RESOLVERS``; the
module refuses to import if a type is left out.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from app.errors import InstanceDataError, MissingDependencyError
from app.services.elements import DYNAMIC_FIELDS, PLACEHOLDER_LABELS, Element, ElementType
from app.services.qr import is_url_safe, verification_url
from app.services.template import Template

ARABIC_INDIC_DIGITS = str.maketrans("0123456789", "٠١٢٣٤٥٦٧٨٩")

_WIRE_FIELDS = {
    "student_name": "studentName",
    "course_name": "courseName",
    "issue_date": "issueDate",
    "certificate_id": "certificateId",
}


class RenderMode(str, Enum):
    PREVIEW = "preview"
    FINAL = "final"


@dataclass(frozen=True)
class CertificateInstance:
    student_name: Optional[str] = None
    course_name: Optional[str] = None
    issue_date: Optional[dt.date | str] = None
    certificate_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "CertificateInstance":
        data = data or {}
        kwargs = {}
        for attr, wire in _WIRE_FIELDS.items():
            value = data.get(wire, data.get(attr))
            kwargs[attr] = value
        return cls(**kwargs)

    def value(self, attr: str) -> Any:
        value = getattr(self, attr)
        if isinstance(value, str) and not value.strip():
            return None
        return value


@dataclass(frozen=True)
class ResolvedElement:
    element: Element
    text: Optional[str] = None
    qr_payload: Optional[str] = None
    image_ref: Optional[str] = None
    placeholder: bool = False

    @property
    def label(self) -> str:
        return PLACEHOLDER_LABELS.get(self.element.type, "") if self.placeholder else ""


@dataclass(frozen=True)
class ResolvedCertificate:
    canvas_width: float
    canvas_height: float
    background_image: str
    mode: RenderMode
    elements: List[ResolvedElement] = field(default_factory=list)


def parse_issue_date(value: dt.date | str) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    raw = str(value).strip()
    try:
        return dt.date.fromisoformat(raw[:10])
    except ValueError as e:
        raise InstanceDataError(f"issue date is not an ISO-8601 date: {raw!r}", code="INVALID_ISSUE_DATE") from e


def format_issue_date(value: dt.date | str, locale: str = "ar-EG") -> str:
    d = parse_issue_date(value)
    lang = str(locale or "").strip().replace("_", "-")
    if lang.lower() == "ar" or lang.lower().startswith("ar-"):
        return f"{d.day}/{d.month}/{d.year}".translate(ARABIC_INDIC_DIGITS)
    if lang == "en-US":
        return f"{d.month}/{d.day}/{d.year}"
    if lang == "en-GB":
        return d.strftime("%d/%m/%Y")
    return d.isoformat()


@dataclass(frozen=True)
class _Context:
    instance: CertificateInstance
    mode: RenderMode
    verify_base_url: str
    locale: str


def _placeholder(element: Element) -> ResolvedElement:
    if element.type == ElementType.QR_CODE:
        return ResolvedElement(element=element, placeholder=True)
    return ResolvedElement(element=element, text=PLACEHOLDER_LABELS[element.type], placeholder=True)


def _resolve_static_text(element: Element, ctx: _Context) -> ResolvedElement:
    return ResolvedElement(element=element, text=element.content or "")


def _resolve_field(element: Element, ctx: _Context) -> ResolvedElement:
    value = ctx.instance.value(DYNAMIC_FIELDS[element.type])
    if value is None:
        return _placeholder(element)
    return ResolvedElement(element=element, text=str(value))


def _resolve_issue_date(element: Element, ctx: _Context) -> ResolvedElement:
    value = ctx.instance.value("issue_date")
    if value is None:
        return _placeholder(element)
    try:
        return ResolvedElement(element=element, text=format_issue_date(value, ctx.locale))
    except InstanceDataError:
        if ctx.mode == RenderMode.FINAL:
            raise
        return _placeholder(element)


def _resolve_qr_code(element: Element, ctx: _Context) -> ResolvedElement:
    certificate_id = ctx.instance.value("certificate_id")
    if certificate_id is None:
        return _placeholder(element)
    try:
        return ResolvedElement(element=element, qr_payload=verification_url(ctx.verify_base_url, certificate_id))
    except InstanceDataError:
        if ctx.mode == RenderMode.FINAL:
            raise
        return _placeholder(element)


def _resolve_signature(element: Element, ctx: _Context) -> ResolvedElement:
    if element.signature_asset:
        return ResolvedElement(element=element, image_ref=element.signature_asset)
    if ctx.mode == RenderMode.FINAL:
        if element.required:
            raise MissingDependencyError(
                f"signature element {element.id} is required but has no asset",
                code="SIGNATURE_REQUIRED",
            )
        return ResolvedElement(element=element)
    return _placeholder(element)


_RESOLVERS: Dict[ElementType, Callable[[Element, _Context], ResolvedElement]] = {
    ElementType.STATIC_TEXT: _resolve_static_text,
    ElementType.STUDENT_NAME: _resolve_field,
    ElementType.COURSE_NAME: _resolve_field,
    ElementType.ISSUE_DATE: _resolve_issue_date,
    ElementType.SERIAL_NUMBER: _resolve_field,
    ElementType.QR_CODE: _resolve_qr_code,
    ElementType.SIGNATURE: _resolve_signature,
}

_missing = set(ElementType) - set(_RESOLVERS)
if _missing:
    raise RuntimeError(f"element types without a resolver: {sorted(t.value for t in _missing)}")


def required_fields(template: Template) -> list[str]:
    out: list[str] = []
    for el in template.elements:
        attr = DYNAMIC_FIELDS.get(el.type)
        if attr and attr not in out:
            out.append(attr)
    return out


def resolve(
    template: Template,
    instance: Optional[CertificateInstance] = None,
    *,
    mode: RenderMode | str = RenderMode.PREVIEW,
    verify_base_url: str,
    locale: str = "ar-EG",
) -> ResolvedCertificate:
    mode = RenderMode(mode)
    if template.is_draft:
        raise MissingDependencyError("template has no background image", code="BACKGROUND_REQUIRED")

    instance = instance or CertificateInstance()
    if mode == RenderMode.FINAL:
        missing = [_WIRE_FIELDS[a] for a in required_fields(template) if instance.value(a) is None]
        if missing:
            raise MissingDependencyError(
                f"instance is missing required fields: {', '.join(missing)}",
                code="INSTANCE_FIELD_MISSING",
            )
        certificate_id = instance.value("certificate_id")
        if certificate_id is not None and not is_url_safe(certificate_id):
            raise InstanceDataError(
                f"certificate id is not URL-safe: {certificate_id!r}",
                code="CERTIFICATE_ID_NOT_URL_SAFE",
            )

    ctx = _Context(instance=instance, mode=mode, verify_base_url=verify_base_url, locale=locale)
    resolved = [_RESOLVERS[el.type](el, ctx) for el in template.elements]
    return ResolvedCertificate(
        canvas_width=template.canvas_width,
        canvas_height=template.canvas_height,
        background_image=template.background_image,
        mode=mode,
        elements=resolved,
    )
