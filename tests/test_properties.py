import pytest

from app.services.elements import ElementType, FontWeight, TextAlign


@pytest.fixture
def text(session):
    return session.add_element(ElementType.STATIC_TEXT)


@pytest.mark.parametrize("value, expected", [(500, 100), (-5, 8), (24, 24), ("32", 32), (8, 8), (100, 100)])
def test_font_size_is_clamped(session, text, value, expected):
    session.update(text.id, {"fontSize": value})
    assert text.font_size == expected


@pytest.mark.parametrize("value", ["abc", None, True, float("inf"), [12]])
def test_non_numeric_font_size_keeps_prior_value(session, text, value):
    session.update(text.id, {"fontSize": 30})
    session.update(text.id, {"fontSize": value})
    assert text.font_size == 30


def test_update_merges_only_given_attributes(session, text):
    session.update(text.id, {"color": "#ff0000"})
    assert text.color == "#ff0000"
    assert text.font_size == 16
    assert text.text_align == TextAlign.RIGHT


@pytest.mark.parametrize("color", ["red", "#12345", "#gggggg", "", 255])
def test_malformed_color_is_retained(session, text, color):
    session.update(text.id, {"color": color})
    assert text.color == "#000000"


def test_short_hex_color_accepted(session, text):
    session.update(text.id, {"color": "#abc"})
    assert text.color == "#abc"


def test_enum_attributes(session, text):
    session.update(text.id, {"fontWeight": "bold", "textAlign": "center", "fontStyle": "oblique"})
    assert text.font_weight == FontWeight.BOLD
    assert text.text_align == TextAlign.CENTER
    assert text.font_style.value == "normal"


def test_font_family_must_be_supported(session, text):
    session.update(text.id, {"fontFamily": "Amiri"})
    assert text.font_family == "Amiri"
    session.update(text.id, {"fontFamily": "Comic Sans"})
    assert text.font_family == "Amiri"


def test_snake_case_names_accepted(session, text):
    session.update(text.id, {"font_size": 40, "text_align": "left"})
    assert text.font_size == 40
    assert text.text_align == TextAlign.LEFT


def test_unsupported_attribute_ignored_others_apply(session):
    qr = session.add_element(ElementType.QR_CODE)
    session.update(qr.id, {"content": "hello", "fontSize": 40, "width": 150})
    assert qr.content is None
    assert qr.font_size is None
    assert qr.width == 150


def test_qr_width_keeps_square(session):
    qr = session.add_element(ElementType.QR_CODE)
    session.update(qr.id, {"width": 999})
    assert qr.width == 500
    assert qr.height == 500
    session.update(qr.id, {"width": 1})
    assert qr.width == qr.height == 20


def test_width_change_reclamps_position(session):
    qr = session.add_element(ElementType.QR_CODE)
    session.drag_end(qr.id, 10_000, 10_000)
    session.update(qr.id, {"width": 400})
    assert qr.x == 842 - 400
    assert qr.y == 595 - 400


def test_position_update_is_clamped(session):
    qr = session.add_element(ElementType.QR_CODE)
    session.update(qr.id, {"x": "900", "y": -20})
    assert qr.x == 742
    assert qr.y == 0


def test_non_numeric_position_rejected(session):
    qr = session.add_element(ElementType.QR_CODE)
    session.update(qr.id, {"x": 15, "y": 25})
    session.update(qr.id, {"x": "left", "y": None})
    assert (qr.x, qr.y) == (15, 25)


def test_content_only_for_static_text(session, text):
    name = session.add_element(ElementType.STUDENT_NAME)
    session.update(text.id, {"content": "شهادة إتمام"})
    session.update(name.id, {"content": "ignored"})
    assert text.content == "شهادة إتمام"
    assert name.content is None


def test_signature_asset_and_required(session, signature_ref):
    sig = session.add_element(ElementType.SIGNATURE)
    session.update(sig.id, {"signatureAsset": signature_ref, "required": True, "color": "#ff0000"})
    assert sig.signature_asset == signature_ref
    assert sig.required is True
    assert sig.color is None


def test_width_refused_while_asset_pending(session):
    sig = session.add_element(ElementType.SIGNATURE)
    session.begin_asset_upload(sig.id)
    session.update(sig.id, {"width": 300, "x": 40})
    assert sig.width == 150
    assert sig.x == 40


def test_update_stale_id_is_noop(session, text):
    session.remove(text.id)
    assert session.update(text.id, {"fontSize": 20}) is None


def test_update_selected(session, text):
    session.select(text.id)
    session.update_selected({"fontSize": 50})
    assert text.font_size == 50
    session.select(None)
    assert session.update_selected({"fontSize": 60}) is None


def test_remove_selected_clears_selection(session, text):
    assert session.selected_id == text.id
    assert session.remove(text.id) is True
    assert session.selected_id is None
    assert session.template.find(text.id) is None


def test_remove_other_keeps_selection(session, text):
    other = session.add_element(ElementType.QR_CODE)
    session.select(text.id)
    session.remove(other.id)
    assert session.selected_id == text.id


def test_remove_unknown_returns_false(session):
    assert session.remove("missing") is False
