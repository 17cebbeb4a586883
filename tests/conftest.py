import pytest

from app.config import Settings
from app.services.assets import encode_data_url
from app.services.editor import EditorSession
from app.services.template import Template

from tests.helpers import ALL_TYPES, VERIFY_BASE_URL, png_bytes


@pytest.fixture
def background_ref() -> str:
    return encode_data_url(png_bytes(), "image/png")


@pytest.fixture
def signature_ref() -> str:
    return encode_data_url(png_bytes(size=(60, 20), color="black"), "image/png")


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        APP_ENV="test",
        SERVICE_PORT=9000,
        INTERNAL_API_KEY="secret",
        VERIFY_BASE_URL=VERIFY_BASE_URL,
        DATE_LOCALE="ar-EG",
        TEMPLATE_STORE_DIR=str(tmp_path / "templates"),
        FONTS_DIR=str(tmp_path / "fonts"),
        S3_BUCKET="",
        S3_REGION="",
        S3_ENDPOINT="",
        S3_ACCESS_KEY_ID="",
        S3_SECRET_ACCESS_KEY="",
    )


@pytest.fixture
def session(background_ref) -> EditorSession:
    return EditorSession(Template(background_image=background_ref), verify_base_url=VERIFY_BASE_URL)


@pytest.fixture
def full_session(session) -> EditorSession:
    """A session holding one element of every type, in declaration order."""
    for element_type in ALL_TYPES:
        session.add_element(element_type)
    return session
