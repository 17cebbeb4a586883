from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional

import arabic_reshaper
from bidi.algorithm import get_display
from pdfrw import PdfReader
from pdfrw.buildxobj import pagexobj
from pdfrw.toreportlab import makerl
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen.canvas import Canvas

from app.config import Settings
from app.errors import MissingDependencyError
from app.services.assets import load_asset_bytes, pdf_bytes_cached, svg_to_pdf_cached
from app.services.binding import ResolvedCertificate, ResolvedElement
from app.services.elements import DEFAULT_FONT_FAMILY, DEFAULT_FONT_SIZE, ElementType, FontStyle, FontWeight, TextAlign
from app.services.font_registry import resolve_font
from app.services.qr import qr_png_bytes

# Matches the editor's element padding so preview and print line up.
TEXT_PADDING_PX = 4
SIGNATURE_PLACEHOLDER_RATIO = 0.4
PLACEHOLDER_STROKE = colors.HexColor("#9CA3AF")
PLACEHOLDER_FILL = colors.HexColor("#F9FAFB")

_ARABIC_RE = re.compile(r"[\u0600-\u06FF\u0750-\u077F\u08A0-\u08FF\uFB50-\uFDFF\uFE70-\uFEFF]")

logger = logging.getLogger(__name__)


def _ensure_dir(path: Path) -> None:
    if not path.exists():
        path.mkdir(parents=True, exist_ok=True)


def _hex6(raw: Optional[str]) -> str:
    value = str(raw or "").strip()
    if re.fullmatch(r"#[0-9a-fA-F]{3}", value):
        return "#" + "".join(ch * 2 for ch in value[1:])
    if re.fullmatch(r"#[0-9a-fA-F]{6}", value):
        return value
    return "#000000"


def _fill_color(raw: Optional[str]):
    return colors.HexColor(_hex6(raw))


def shape_text(text: Optional[str]) -> str:
    # reportlab draws glyphs in logical order without joining; Arabic needs both fixed up front.
    text = text or ""
    if not _ARABIC_RE.search(text):
        return text
    return get_display(arabic_reshaper.reshape(text))


def _pdf_page_size_pt(pdf_path: str) -> tuple[float, float]:
    pdf = PdfReader(pdf_path)
    if not pdf.pages:
        raise ValueError("asset PDF has no pages")
    mb = pdf.pages[0].MediaBox
    if not mb or len(mb) != 4:
        raise ValueError("PDF MediaBox missing")
    return float(mb[2]) - float(mb[0]), float(mb[3]) - float(mb[1])


class _Asset:
    """A loaded image asset, placed as a vector form (SVG/PDF) or a raster image."""

    def __init__(self, data: bytes, mime: str) -> None:
        self.form_path: Optional[str] = None
        self.image: Optional[ImageReader] = None
        if "svg" in mime:
            self.form_path = svg_to_pdf_cached(data)
        elif mime == "application/pdf":
            self.form_path = pdf_bytes_cached(data)
        else:
            self.image = ImageReader(io.BytesIO(data))

    @property
    def size(self) -> tuple[float, float]:
        if self.form_path:
            return _pdf_page_size_pt(self.form_path)
        w, h = self.image.getSize()
        return float(w), float(h)

    def draw(self, canvas: Canvas, x: float, y_bottom: float, w: float, h: float) -> None:
        if self.image is not None:
            canvas.drawImage(self.image, x, y_bottom, width=w, height=h, mask="auto")
            return
        src_w, src_h = self.size
        if src_w <= 0 or src_h <= 0:
            raise ValueError("INVALID_ASSET_PDF: MediaBox must be > 0")
        xobj = pagexobj(PdfReader(self.form_path).pages[0])
        canvas.saveState()
        canvas.translate(x, y_bottom)
        canvas.scale(w / src_w, h / src_h)
        canvas.doForm(makerl(canvas, xobj))
        canvas.restoreState()


def _load_asset(settings: Settings, ref: str) -> _Asset:
    data, mime = load_asset_bytes(settings, ref)
    try:
        asset = _Asset(data, mime)
        w, h = asset.size
    except Exception as e:
        # Pillow, cairosvg and pdfrw each raise their own errors on undecodable bytes.
        logger.warning("ASSET_UNDECODABLE", extra={"mime": mime, "bytes": len(data)})
        raise MissingDependencyError(f"asset is not a usable image ({mime})", code="ASSET_UNAVAILABLE") from e
    if w <= 0 or h <= 0:
        raise MissingDependencyError("asset has no drawable area", code="ASSET_UNAVAILABLE")
    return asset


def _draw_background(canvas: Canvas, asset: _Asset, page_w: float, page_h: float) -> None:
    # Cover: fill the page keeping aspect ratio, centred, overflow clipped.
    src_w, src_h = asset.size
    if src_w <= 0 or src_h <= 0:
        raise ValueError("INVALID_BACKGROUND: empty image")
    scale = max(page_w / src_w, page_h / src_h)
    w = src_w * scale
    h = src_h * scale

    canvas.saveState()
    clip = canvas.beginPath()
    clip.rect(0, 0, page_w, page_h)
    canvas.clipPath(clip, stroke=0, fill=0)
    asset.draw(canvas, (page_w - w) / 2.0, (page_h - h) / 2.0, w, h)
    canvas.restoreState()


def _draw_placeholder_box(
    canvas: Canvas,
    *,
    x: float,
    y_top: float,
    w: float,
    h: float,
    label: str,
    page_h: float,
    settings: Settings,
) -> None:
    y_bottom = page_h - y_top - h
    canvas.saveState()
    canvas.setStrokeColor(PLACEHOLDER_STROKE)
    canvas.setFillColor(PLACEHOLDER_FILL)
    canvas.setDash(3, 3)
    canvas.setLineWidth(1)
    canvas.rect(x, y_bottom, w, h, stroke=1, fill=1)
    if label:
        size = max(6.0, min(10.0, h / 3.0))
        font_name, _source, _embedded = resolve_font(DEFAULT_FONT_FAMILY, extra_dir=settings.FONTS_DIR)
        canvas.setFillColor(PLACEHOLDER_STROKE)
        canvas.setFont(font_name, size)
        canvas.drawCentredString(x + w / 2.0, y_bottom + (h - size) / 2.0 + size * 0.2, shape_text(label))
    canvas.restoreState()


def _draw_text(canvas: Canvas, item: ResolvedElement, *, page_h: float, settings: Settings, fonts_used: Dict[str, str]) -> None:
    el = item.element
    text = shape_text(item.text)
    if not text:
        return

    font_size = float(el.font_size or DEFAULT_FONT_SIZE)
    font_name, source, _embedded = resolve_font(
        el.font_family or "",
        bold=el.font_weight == FontWeight.BOLD,
        italic=el.font_style == FontStyle.ITALIC,
        extra_dir=settings.FONTS_DIR,
    )
    fonts_used[str(el.font_family or "")] = font_name

    ascent = pdfmetrics.getAscent(font_name, font_size)
    baseline_y = page_h - (float(el.y) + TEXT_PADDING_PX + ascent)

    canvas.saveState()
    canvas.setFont(font_name, font_size)
    canvas.setFillColor(_fill_color(el.color))
    align = el.text_align or TextAlign.LEFT
    if el.width is None or align == TextAlign.LEFT:
        canvas.drawString(float(el.x) + TEXT_PADDING_PX, baseline_y, text)
    elif align == TextAlign.CENTER:
        canvas.drawCentredString(float(el.x) + float(el.width) / 2.0, baseline_y, text)
    else:
        canvas.drawRightString(float(el.x) + float(el.width) - TEXT_PADDING_PX, baseline_y, text)
    canvas.restoreState()


def _draw_qr(canvas: Canvas, item: ResolvedElement, *, page_h: float, settings: Settings) -> None:
    el = item.element
    size = float(el.width or 0)
    if item.placeholder or not item.qr_payload:
        _draw_placeholder_box(canvas, x=float(el.x), y_top=float(el.y), w=size, h=size, label=item.label, page_h=page_h, settings=settings)
        return
    png = qr_png_bytes(item.qr_payload, fill_color=_hex6(el.color))
    canvas.drawImage(ImageReader(io.BytesIO(png)), float(el.x), page_h - float(el.y) - size, width=size, height=size)


def _draw_signature(canvas: Canvas, item: ResolvedElement, *, page_h: float, settings: Settings) -> None:
    el = item.element
    w = float(el.width or 0)
    if item.placeholder:
        h = w * SIGNATURE_PLACEHOLDER_RATIO
        _draw_placeholder_box(canvas, x=float(el.x), y_top=float(el.y), w=w, h=h, label=item.label, page_h=page_h, settings=settings)
        return
    if not item.image_ref:
        return
    asset = _load_asset(settings, item.image_ref)
    src_w, src_h = asset.size
    h = float(el.height) if el.height is not None else (w * src_h / src_w if src_w > 0 else w)
    asset.draw(canvas, float(el.x), page_h - float(el.y) - h, w, h)


def write_certificate_pdf(
    *,
    resolved: ResolvedCertificate,
    settings: Settings,
    output_path: str,
) -> tuple[int, str, Dict[str, Any]]:
    """Draw one certificate page. Canvas pixels map 1:1 onto PDF points."""
    page_w = float(resolved.canvas_width)
    page_h = float(resolved.canvas_height)
    if page_w <= 0 or page_h <= 0:
        raise ValueError("canvas dimensions must be > 0")

    out_path = Path(output_path)
    _ensure_dir(out_path.parent)

    background = _load_asset(settings, resolved.background_image)

    canvas = Canvas(str(out_path), pagesize=(page_w, page_h))
    canvas.setTitle("Certificate")
    _draw_background(canvas, background, page_w, page_h)

    fonts_used: Dict[str, str] = {}
    placeholders = 0
    for item in resolved.elements:
        placeholders += int(item.placeholder)
        el_type = item.element.type
        if el_type == ElementType.QR_CODE:
            _draw_qr(canvas, item, page_h=page_h, settings=settings)
        elif el_type == ElementType.SIGNATURE:
            _draw_signature(canvas, item, page_h=page_h, settings=settings)
        else:
            _draw_text(canvas, item, page_h=page_h, settings=settings, fonts_used=fonts_used)

    canvas.showPage()
    canvas.save()

    engine_metrics: Dict[str, Any] = {
        "page_pt": {"w": page_w, "h": page_h},
        "elements": len(resolved.elements),
        "placeholders": placeholders,
        "fonts": fonts_used,
        "mode": resolved.mode.value,
    }
    logger.info("CERTIFICATE_PDF_WRITTEN", extra={"path": str(out_path), **{k: engine_metrics[k] for k in ("elements", "placeholders")}})
    return 1, str(out_path), engine_metrics
