from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

import boto3
import cairosvg

from app.config import Settings
from app.errors import AssetStateError, MissingDependencyError
from app.utils.hash import sha256_hex

SVG_TO_PDF_VERSION = "orig_v1"
BACKGROUND_TARGET = "background"

logger = logging.getLogger(__name__)


class AssetState(str, Enum):
    EMPTY = "empty"
    PENDING = "pending"
    READY = "ready"


_TRANSITIONS: dict[AssetState, set[AssetState]] = {
    AssetState.EMPTY: {AssetState.PENDING, AssetState.EMPTY},
    AssetState.PENDING: {AssetState.READY, AssetState.EMPTY},
    AssetState.READY: {AssetState.PENDING, AssetState.EMPTY},
}


class AssetTracker:
    """Per-target acquisition state. Targets are element ids or BACKGROUND_TARGET."""

    def __init__(self) -> None:
        self._states: Dict[str, AssetState] = {}

    def state(self, target: str) -> AssetState:
        return self._states.get(target, AssetState.EMPTY)

    def is_pending(self, target: Optional[str]) -> bool:
        return bool(target) and self.state(str(target)) == AssetState.PENDING

    def transition(self, target: str, new_state: AssetState) -> None:
        current = self.state(target)
        if new_state not in _TRANSITIONS[current]:
            raise AssetStateError(
                f"asset {target!r} cannot go from {current.value} to {new_state.value}",
                code="INVALID_ASSET_TRANSITION",
            )
        if new_state == AssetState.EMPTY:
            self._states.pop(target, None)
        else:
            self._states[target] = new_state

    def mark_ready(self, target: str) -> None:
        # Loading a template with references already set skips the pending step.
        self._states[target] = AssetState.READY

    def forget(self, target: str) -> None:
        self._states.pop(target, None)


def _s3_client(settings: Settings):
    session = boto3.session.Session(
        aws_access_key_id=settings.S3_ACCESS_KEY_ID,
        aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY,
        region_name=settings.S3_REGION or None,
    )

    # For S3-compatible endpoints, boto3 expects endpoint_url.
    endpoint_url = settings.S3_ENDPOINT or None
    return session.client("s3", endpoint_url=endpoint_url)


def decode_data_url(data_url: str) -> tuple[bytes, str]:
    s = str(data_url or "")
    if not s.startswith("data:"):
        raise ValueError("Invalid data_url")

    header, _, payload = s.partition(",")
    if not payload:
        raise ValueError("Invalid data_url")

    mime = header[5:].split(";")[0]
    if ";base64" in header:
        return base64.b64decode(payload.encode("ascii")), mime
    return payload.encode("utf-8"), mime


def encode_data_url(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(bytes(data)).decode('ascii')}"


def sniff_mime(data: bytes, hint: str = "") -> str:
    head = bytes(data[:512])
    if head.startswith(b"%PDF-"):
        return "application/pdf"
    if head.startswith(b"\x89PNG"):
        return "image/png"
    if head.startswith(b"\xff\xd8"):
        return "image/jpeg"
    if head.startswith(b"RIFF") and head[8:12] == b"WEBP":
        return "image/webp"
    if b"<svg" in head.lower():
        return "image/svg+xml"
    return hint or "application/octet-stream"


def load_asset_bytes(settings: Settings, ref: str) -> tuple[bytes, str]:
    """Resolve an opaque asset reference (data URL, local path or S3 key) to bytes and mime."""
    ref = str(ref or "").strip()
    if not ref:
        raise MissingDependencyError("empty asset reference", code="ASSET_UNAVAILABLE")

    if ref.startswith("data:"):
        try:
            data, mime = decode_data_url(ref)
        except (ValueError, binascii.Error) as e:
            raise MissingDependencyError("asset data URL is malformed", code="ASSET_UNAVAILABLE") from e
        return data, sniff_mime(data, mime)

    if ref.lower().startswith(("http://", "https://")):
        raise MissingDependencyError(f"remote asset URLs are not fetched, upload the bytes first: {ref}", code="ASSET_UNAVAILABLE")

    p = Path(ref)
    try:
        is_local = p.is_file()
    except OSError:
        is_local = False
    if is_local:
        data = p.read_bytes()
        return data, sniff_mime(data, mimetypes.guess_type(p.name)[0] or "")

    if not settings.s3_enabled:
        raise MissingDependencyError(f"asset not found: {ref}", code="ASSET_UNAVAILABLE")

    client = _s3_client(settings)
    try:
        obj = client.get_object(Bucket=settings.S3_BUCKET, Key=ref)
    except client.exceptions.NoSuchKey as e:
        raise MissingDependencyError(f"asset not found: {ref}", code="ASSET_UNAVAILABLE") from e
    data = obj["Body"].read()
    return data, sniff_mime(data, str(obj.get("ContentType") or ""))


def store_asset(settings: Settings, data: bytes, mime: str = "") -> str:
    """Turn uploaded image bytes into an opaque reference."""
    if not data:
        raise ValueError("asset is empty")
    mime = sniff_mime(data, mime)
    if not settings.s3_enabled:
        return encode_data_url(data, mime)

    ext = (mimetypes.guess_extension(mime) or ".bin").lstrip(".")
    key = f"assets/{sha256_hex(data)}.{ext}"
    client = _s3_client(settings)
    client.put_object(Bucket=settings.S3_BUCKET, Key=key, Body=bytes(data), ContentType=mime)
    logger.info("ASSET_STORED", extra={"key": key, "mime": mime, "bytes": len(data)})
    return key


def _ensure_dir(path: Path) -> None:
    if not path.exists():
        path.mkdir(parents=True, exist_ok=True)


def _has_pdf_header(path: Path) -> bool:
    try:
        with open(path, "rb") as f:
            return f.read(5) == b"%PDF-"
    except OSError:
        return False


def pdf_bytes_cached(pdf_bytes: bytes, cache_dir: str = "tmp/backgrounds") -> str:
    if bytes(pdf_bytes[:5]) != b"%PDF-":
        raise ValueError("INVALID_ASSET_PDF: expected %PDF- header")
    out_dir = Path(cache_dir)
    _ensure_dir(out_dir)
    cached_pdf_path = out_dir / f"{sha256_hex(pdf_bytes)}.pdf"
    if not _has_pdf_header(cached_pdf_path):
        cached_pdf_path.write_bytes(bytes(pdf_bytes))
    return str(cached_pdf_path)


def svg_to_pdf_cached(svg_bytes: bytes, cache_dir: str = "tmp/backgrounds") -> str:
    # Keeps the SVG's own dimensions; scaling to the canvas happens at placement time.
    svg_hash = sha256_hex(svg_bytes)

    out_dir = Path(cache_dir)
    _ensure_dir(out_dir)

    cached_pdf_path = out_dir / f"{svg_hash}_{SVG_TO_PDF_VERSION}.pdf"
    if cached_pdf_path.exists():
        if _has_pdf_header(cached_pdf_path):
            return str(cached_pdf_path)
        cached_pdf_path.unlink(missing_ok=True)

    cairosvg.svg2pdf(bytestring=svg_bytes, write_to=str(cached_pdf_path))

    if not _has_pdf_header(cached_pdf_path):
        cached_pdf_path.unlink(missing_ok=True)
        raise RuntimeError("INVALID_SVG_TO_PDF_OUTPUT: expected PDF")

    return str(cached_pdf_path)
