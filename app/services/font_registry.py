from __future__ import annotations

import logging
import os
import sys
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from fontTools.ttLib import TTFont as FTFont
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont as RLTTFont

logger = logging.getLogger(__name__)

# (bold, italic) -> core face, used when no embeddable file is found.
_CORE_VARIANTS: dict[str, dict[tuple[bool, bool], str]] = {
    "Helvetica": {
        (False, False): "Helvetica",
        (True, False): "Helvetica-Bold",
        (False, True): "Helvetica-Oblique",
        (True, True): "Helvetica-BoldOblique",
    },
    "Courier": {
        (False, False): "Courier",
        (True, False): "Courier-Bold",
        (False, True): "Courier-Oblique",
        (True, True): "Courier-BoldOblique",
    },
}

# Editor faces that map straight onto a core face.
_GENERIC_FAMILIES = {"monospace": "Courier", "sans-serif": "Helvetica"}

_SUBFAMILY_BY_VARIANT = {
    (False, False): ("regular", "normal", "book", "roman"),
    (True, False): ("bold",),
    (False, True): ("italic", "oblique"),
    (True, True): ("bold italic", "bold oblique", "bolditalic"),
}


def _system_font_dirs() -> list[Path]:
    if os.name == "nt":
        return [Path(os.environ.get("WINDIR", r"C:\\Windows")) / "Fonts"]

    home = Path.home()
    if sys.platform == "darwin":
        return [
            Path("/System/Library/Fonts"),
            Path("/Library/Fonts"),
            home / "Library" / "Fonts",
        ]

    return [
        Path("/usr/share/fonts"),
        Path("/usr/local/share/fonts"),
        home / ".fonts",
        home / ".local" / "share" / "fonts",
    ]


def _iter_font_files(extra_dir: str = "") -> list[Path]:
    out: list[Path] = []
    seen: set[str] = set()
    dirs = ([Path(extra_dir)] if extra_dir else []) + _system_font_dirs()
    for d in dirs:
        if not d.exists() or not d.is_dir():
            continue
        try:
            candidates = sorted(d.rglob("*"))
        except OSError:
            continue
        for p in candidates:
            if not p.is_file() or p.suffix.lower() not in {".ttf", ".otf"}:
                continue
            key = str(p).lower()
            if key in seen:
                continue
            seen.add(key)
            out.append(p)
    return out


def _name_record(font: FTFont, name_id: int) -> Optional[str]:
    try:
        name_table = font["name"]
    except KeyError:
        return None

    best: Optional[str] = None
    for rec in getattr(name_table, "names", []) or []:
        if getattr(rec, "nameID", None) != name_id:
            continue
        try:
            value = str(rec.toUnicode())
        except UnicodeDecodeError:
            continue
        if not value:
            continue
        best = value
        if getattr(rec, "platformID", None) == 3:
            break
    return best


def _read_font_names(path: Path) -> Optional[tuple[str, str, bool]]:
    """(family, subfamily, embeddable) or None when the file is unreadable."""
    try:
        font = FTFont(str(path), recalcBBoxes=False, recalcTimestamp=False, lazy=True)
    except Exception:
        # fontTools raises assorted errors on damaged or unsupported files.
        logger.debug("FONT_UNREADABLE", extra={"path": str(path)})
        return None

    family = _name_record(font, 16) or _name_record(font, 1)
    subfamily = _name_record(font, 17) or _name_record(font, 2) or "Regular"
    if not family:
        return None

    os2 = font.get("OS/2") if "OS/2" in font else None
    fs_type = int(getattr(os2, "fsType", 0) or 0) if os2 is not None else 0
    return family, subfamily, not bool(fs_type & 0x0002)


@lru_cache(maxsize=4)
def get_font_registry(extra_dir: str = "") -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    seen: set[tuple[str, str]] = set()

    for variants in _CORE_VARIANTS.values():
        for name in variants.values():
            family, _, sub = name.partition("-")
            key = (family.lower(), (sub or "Regular").lower())
            if key in seen:
                continue
            seen.add(key)
            out.append({"family": family, "subfamily": sub or "Regular", "source": "pdf-core", "path": None, "embeddable": False})

    for p in _iter_font_files(extra_dir):
        names = _read_font_names(p)
        if names is None:
            continue
        family, subfamily, embeddable = names
        key = (family.lower(), subfamily.lower())
        if key in seen:
            continue
        seen.add(key)
        source = "bundled" if extra_dir and str(p).startswith(str(Path(extra_dir))) else "system"
        out.append({"family": family, "subfamily": subfamily, "source": source, "path": str(p), "embeddable": embeddable})

    out.sort(key=lambda x: (str(x.get("family") or "").lower(), str(x.get("subfamily") or "").lower()))
    return out


def _core_face(family: str, bold: bool, italic: bool) -> str:
    return _CORE_VARIANTS[family][(bold, italic)]


def _find_file(registry: list[dict[str, Any]], family: str, bold: bool, italic: bool) -> Optional[dict[str, Any]]:
    family_hits = [f for f in registry if str(f.get("family") or "").lower() == family.lower() and f.get("path")]
    if not family_hits:
        return None
    wanted = _SUBFAMILY_BY_VARIANT[(bold, italic)]
    for f in family_hits:
        if str(f.get("subfamily") or "").lower() in wanted:
            return f
    # Variant missing: fall back to the regular face of the same family.
    for f in family_hits:
        if str(f.get("subfamily") or "").lower() in _SUBFAMILY_BY_VARIANT[(False, False)]:
            return f
    return family_hits[0]


def resolve_font(requested_family: str, *, bold: bool = False, italic: bool = False, extra_dir: str = "") -> tuple[str, str, bool]:
    """Return (reportlab font name, source, embedded) for an editor face."""
    requested = str(requested_family or "").strip()
    generic = _GENERIC_FAMILIES.get(requested.lower())
    if generic:
        return _core_face(generic, bold, italic), "pdf-core", False
    if not requested:
        return _core_face("Helvetica", bold, italic), "pdf-core", False

    hit = _find_file(get_font_registry(extra_dir), requested, bold, italic)
    if not hit or not hit.get("embeddable"):
        logger.warning(
            "FONT_FAMILY_FALLBACK",
            extra={"requested_font_family": requested, "bold": bold, "italic": italic, "found": bool(hit)},
        )
        return _core_face("Helvetica", bold, italic), str((hit or {}).get("source") or "pdf-core"), False

    font_name = f"{hit['family']}-{hit['subfamily']}".replace(" ", "")
    if font_name in pdfmetrics.getRegisteredFontNames():
        return font_name, str(hit.get("source")), True

    try:
        pdfmetrics.registerFont(RLTTFont(font_name, str(hit["path"])))
    except Exception:
        # reportlab rejects some OpenType (CFF) files; degrade instead of failing the render.
        logger.warning("FONT_REGISTER_FAILED", extra={"font_name": font_name, "path": hit.get("path")})
        return _core_face("Helvetica", bold, italic), str(hit.get("source")), False
    return font_name, str(hit.get("source")), True
