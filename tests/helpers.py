import io

from PIL import Image

from app.services.elements import ElementType

VERIFY_BASE_URL = "https://academy.example"

ALL_TYPES = [
    ElementType.STATIC_TEXT,
    ElementType.STUDENT_NAME,
    ElementType.COURSE_NAME,
    ElementType.ISSUE_DATE,
    ElementType.SERIAL_NUMBER,
    ElementType.QR_CODE,
    ElementType.SIGNATURE,
]


def png_bytes(size=(40, 28), color="white") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()
