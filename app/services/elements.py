from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ElementType(str, Enum):
    STATIC_TEXT = "staticText"
    STUDENT_NAME = "studentName"
    COURSE_NAME = "courseName"
    ISSUE_DATE = "issueDate"
    SERIAL_NUMBER = "serialNumber"
    QR_CODE = "qrCode"
    SIGNATURE = "signature"


class FontWeight(str, Enum):
    NORMAL = "normal"
    BOLD = "bold"


class FontStyle(str, Enum):
    NORMAL = "normal"
    ITALIC = "italic"


class TextAlign(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


# Faces offered by the editor; resolved to real fonts by the font registry.
FONT_FAMILIES: tuple[str, ...] = ("Cairo", "Amiri", "Reem Kufi", "Aref Ruqaa", "monospace")
DEFAULT_FONT_FAMILY = "Cairo"

TEXT_TYPES = frozenset(
    {
        ElementType.STATIC_TEXT,
        ElementType.STUDENT_NAME,
        ElementType.COURSE_NAME,
        ElementType.ISSUE_DATE,
        ElementType.SERIAL_NUMBER,
    }
)

# Instance field each dynamic type reads.
DYNAMIC_FIELDS: dict[ElementType, str] = {
    ElementType.STUDENT_NAME: "student_name",
    ElementType.COURSE_NAME: "course_name",
    ElementType.ISSUE_DATE: "issue_date",
    ElementType.SERIAL_NUMBER: "certificate_id",
    ElementType.QR_CODE: "certificate_id",
}

PLACEHOLDER_LABELS: dict[ElementType, str] = {
    ElementType.STUDENT_NAME: "[اسم الطالب]",
    ElementType.COURSE_NAME: "[اسم الدورة]",
    ElementType.ISSUE_DATE: "[تاريخ الإصدار]",
    ElementType.SERIAL_NUMBER: "[رقم السيريال]",
    ElementType.QR_CODE: "QR Code",
    ElementType.SIGNATURE: "التوقيع",
}

FONT_SIZE_MIN = 8
FONT_SIZE_MAX = 100
WIDTH_MIN = 20
WIDTH_MAX = 500

DEFAULT_FONT_SIZE = 16
DEFAULT_COLOR = "#000000"
DEFAULT_TEXT_ALIGN = TextAlign.RIGHT
DEFAULT_STATIC_TEXT = "نص جديد"
DEFAULT_QR_SIZE = 100
DEFAULT_SIGNATURE_WIDTH = 150


@dataclass
class Element:
    id: str
    type: ElementType
    x: float = 0
    y: float = 0
    width: Optional[float] = None
    height: Optional[float] = None
    font_size: Optional[float] = None
    color: Optional[str] = None
    font_family: Optional[str] = None
    font_weight: Optional[FontWeight] = None
    font_style: Optional[FontStyle] = None
    text_align: Optional[TextAlign] = None
    content: Optional[str] = None
    signature_asset: Optional[str] = None
    required: bool = False

    @property
    def is_text(self) -> bool:
        return self.type in TEXT_TYPES

    @property
    def extent(self) -> tuple[Optional[float], Optional[float]]:
        """Width/height used for clamping; None on an axis that is content-sized."""
        if self.type == ElementType.QR_CODE and self.width is not None:
            return self.width, self.width
        return self.width, self.height
