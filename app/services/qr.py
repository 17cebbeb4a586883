from __future__ import annotations

import io
import re

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from app.errors import InstanceDataError

URL_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9._~-]+$")


def is_url_safe(certificate_id: str) -> bool:
    return bool(URL_SAFE_ID_RE.match(str(certificate_id or "")))


def verification_url(base_verify_url: str, certificate_id: str) -> str:
    certificate_id = str(certificate_id or "").strip()
    if not is_url_safe(certificate_id):
        raise InstanceDataError(
            f"certificate id is not URL-safe: {certificate_id!r}",
            code="CERTIFICATE_ID_NOT_URL_SAFE",
        )
    return f"{str(base_verify_url).rstrip('/')}/verify/{certificate_id}"


def qr_png_bytes(payload: str, *, fill_color: str = "#000000", box_size: int = 10, border: int = 1) -> bytes:
    qr_code = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=box_size, border=border)
    qr_code.add_data(payload)
    qr_code.make(fit=True)
    image = qr_code.make_image(fill_color=fill_color, back_color="white")
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()
