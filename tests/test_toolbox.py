import pytest

from app.services.elements import ElementType, FontStyle, FontWeight, TextAlign
from app.services.template import Template
from app.services.toolbox import CASCADE_STEP, create_element

from tests.helpers import ALL_TYPES


@pytest.mark.parametrize(
    "element_type",
    [ElementType.STATIC_TEXT, ElementType.STUDENT_NAME, ElementType.COURSE_NAME, ElementType.ISSUE_DATE, ElementType.SERIAL_NUMBER],
)
def test_text_defaults(element_type):
    template = Template()
    el = create_element(template, element_type)

    assert el.font_size == 16
    assert el.color == "#000000"
    assert el.font_family == "Cairo"
    assert el.font_weight == FontWeight.NORMAL
    assert el.font_style == FontStyle.NORMAL
    assert el.text_align == TextAlign.RIGHT
    assert el.width is None and el.height is None
    assert template.elements == [el]


def test_static_text_gets_default_content():
    el = create_element(Template(), "staticText")
    assert el.content == "نص جديد"


def test_dynamic_text_has_no_content():
    el = create_element(Template(), "studentName")
    assert el.content is None


def test_qr_defaults_are_square():
    el = create_element(Template(), ElementType.QR_CODE)
    assert el.width == 100
    assert el.height == 100
    assert el.font_size is None


def test_signature_defaults():
    el = create_element(Template(), ElementType.SIGNATURE)
    assert el.width == 150
    assert el.height is None
    assert el.signature_asset is None
    assert el.required is False


def test_first_element_at_origin_then_cascades():
    template = Template()
    first = create_element(template, ElementType.STUDENT_NAME)
    second = create_element(template, ElementType.COURSE_NAME)

    assert (first.x, first.y) == (0, 0)
    assert (second.x, second.y) == (CASCADE_STEP, CASCADE_STEP)


def test_cascade_is_clamped_inside_canvas():
    template = Template(canvas_width=120, canvas_height=120)
    for _ in range(10):
        el = create_element(template, ElementType.QR_CODE)
        assert 0 <= el.x <= 20
        assert 0 <= el.y <= 20


def test_unknown_type_is_rejected():
    with pytest.raises(ValueError):
        create_element(Template(), "rectangle")


def test_ids_never_collide_across_create_delete_cycles(session):
    seen = set()
    for i in range(200):
        el = session.add_element(ALL_TYPES[i % len(ALL_TYPES)])
        assert el.id not in seen
        seen.add(el.id)
        if i % 3 == 0:
            session.remove(el.id)
    ids = [el.id for el in session.template.elements]
    assert len(ids) == len(set(ids))


def test_added_element_becomes_selection(session):
    el = session.add_element(ElementType.SIGNATURE)
    assert session.selected_id == el.id
