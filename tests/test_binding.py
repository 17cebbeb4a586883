import datetime as dt

import pytest

from app.errors import InstanceDataError, MissingDependencyError
from app.services.binding import (
    CertificateInstance,
    RenderMode,
    format_issue_date,
    required_fields,
    resolve,
)
from app.services.elements import ElementType
from app.services.template import Template

from tests.helpers import VERIFY_BASE_URL

FULL_INSTANCE = CertificateInstance(
    student_name="أحمد",
    course_name="الخط الديواني",
    issue_date="2025-01-01",
    certificate_id="ABC123",
)


def _by_type(resolved):
    return {item.element.type: item for item in resolved.elements}


def test_final_binds_every_type(full_session, signature_ref):
    sig = full_session.template.elements[-1]
    full_session.update(sig.id, {"signatureAsset": signature_ref})

    resolved = resolve(full_session.template, FULL_INSTANCE, mode="final", verify_base_url=VERIFY_BASE_URL)
    items = _by_type(resolved)

    assert resolved.mode == RenderMode.FINAL
    assert items[ElementType.STATIC_TEXT].text == "نص جديد"
    assert items[ElementType.STUDENT_NAME].text == "أحمد"
    assert items[ElementType.COURSE_NAME].text == "الخط الديواني"
    assert items[ElementType.ISSUE_DATE].text == "١/١/٢٠٢٥"
    assert items[ElementType.SERIAL_NUMBER].text == "ABC123"
    assert items[ElementType.QR_CODE].qr_payload == "https://academy.example/verify/ABC123"
    assert items[ElementType.SIGNATURE].image_ref == signature_ref
    assert not any(item.placeholder for item in resolved.elements)


def test_resolved_order_matches_template(full_session):
    resolved = resolve(full_session.template, FULL_INSTANCE, mode="final", verify_base_url=VERIFY_BASE_URL)
    assert [item.element.id for item in resolved.elements] == [el.id for el in full_session.template.elements]


def test_final_without_certificate_id_fails(full_session):
    instance = CertificateInstance(student_name="أحمد", course_name="الخط الديواني", issue_date="2025-01-01")
    with pytest.raises(MissingDependencyError) as exc:
        resolve(full_session.template, instance, mode=RenderMode.FINAL, verify_base_url=VERIFY_BASE_URL)
    assert exc.value.code == "INSTANCE_FIELD_MISSING"
    assert "certificateId" in str(exc.value)


def test_final_only_requires_fields_in_use(session):
    session.add_element(ElementType.STUDENT_NAME)
    resolved = resolve(session.template, CertificateInstance(student_name="سارة"), mode="final", verify_base_url=VERIFY_BASE_URL)
    assert resolved.elements[0].text == "سارة"


def test_blank_value_counts_as_missing(session):
    session.add_element(ElementType.COURSE_NAME)
    with pytest.raises(MissingDependencyError):
        resolve(session.template, CertificateInstance(course_name="   "), mode="final", verify_base_url=VERIFY_BASE_URL)


def test_preview_uses_placeholders(full_session):
    resolved = full_session.preview(CertificateInstance(student_name="أحمد"))
    items = _by_type(resolved)

    assert items[ElementType.STUDENT_NAME].text == "أحمد"
    assert not items[ElementType.STUDENT_NAME].placeholder
    assert items[ElementType.SERIAL_NUMBER].text == "[رقم السيريال]"
    assert items[ElementType.COURSE_NAME].text == "[اسم الدورة]"
    assert items[ElementType.ISSUE_DATE].text == "[تاريخ الإصدار]"
    assert items[ElementType.QR_CODE].placeholder
    assert items[ElementType.QR_CODE].qr_payload is None
    assert items[ElementType.QR_CODE].label == "QR Code"
    assert items[ElementType.SIGNATURE].label == "التوقيع"


def test_preview_without_instance(full_session):
    resolved = full_session.preview()
    assert sum(item.placeholder for item in resolved.elements) == 6


def test_preview_tolerates_bad_values(session):
    session.add_element(ElementType.ISSUE_DATE)
    session.add_element(ElementType.QR_CODE)
    instance = CertificateInstance(issue_date="yesterday", certificate_id="has space")
    resolved = session.preview(instance)
    assert all(item.placeholder for item in resolved.elements)


def test_draft_cannot_be_resolved():
    with pytest.raises(MissingDependencyError) as exc:
        resolve(Template(), FULL_INSTANCE, mode="preview", verify_base_url=VERIFY_BASE_URL)
    assert exc.value.code == "BACKGROUND_REQUIRED"


def test_final_rejects_unsafe_certificate_id(session):
    session.add_element(ElementType.SERIAL_NUMBER)
    with pytest.raises(InstanceDataError) as exc:
        resolve(session.template, CertificateInstance(certificate_id="a/b?c"), mode="final", verify_base_url=VERIFY_BASE_URL)
    assert exc.value.code == "CERTIFICATE_ID_NOT_URL_SAFE"


def test_final_rejects_malformed_date(session):
    session.add_element(ElementType.ISSUE_DATE)
    with pytest.raises(InstanceDataError) as exc:
        resolve(session.template, CertificateInstance(issue_date="01/02/2025"), mode="final", verify_base_url=VERIFY_BASE_URL)
    assert exc.value.code == "INVALID_ISSUE_DATE"


def test_unset_signature_is_blank_in_final(session):
    session.add_element(ElementType.SIGNATURE)
    resolved = resolve(session.template, None, mode="final", verify_base_url=VERIFY_BASE_URL)
    item = resolved.elements[0]
    assert item.image_ref is None
    assert not item.placeholder


def test_required_signature_must_be_set(session):
    sig = session.add_element(ElementType.SIGNATURE)
    session.update(sig.id, {"required": True})
    with pytest.raises(MissingDependencyError) as exc:
        resolve(session.template, None, mode="final", verify_base_url=VERIFY_BASE_URL)
    assert exc.value.code == "SIGNATURE_REQUIRED"


def test_resolve_does_not_mutate_template(full_session):
    before = [(el.id, el.x, el.y, el.content) for el in full_session.template.elements]
    resolve(full_session.template, FULL_INSTANCE, mode="final", verify_base_url=VERIFY_BASE_URL)
    assert [(el.id, el.x, el.y, el.content) for el in full_session.template.elements] == before


def test_required_fields_lists_each_field_once(full_session):
    assert required_fields(full_session.template) == ["student_name", "course_name", "issue_date", "certificate_id"]


@pytest.mark.parametrize(
    "locale, expected",
    [
        ("ar-EG", "١٥/٣/٢٠٢٥"),
        ("ar", "١٥/٣/٢٠٢٥"),
        ("en-US", "3/15/2025"),
        ("en-GB", "15/03/2025"),
        ("fr-FR", "2025-03-15"),
    ],
)
def test_format_issue_date(locale, expected):
    assert format_issue_date("2025-03-15", locale) == expected


def test_format_issue_date_accepts_date_objects():
    assert format_issue_date(dt.datetime(2024, 12, 31, 10, 30), "en-US") == "12/31/2024"
    assert format_issue_date(dt.date(2024, 2, 9), "ar-EG") == "٩/٢/٢٠٢٤"


def test_instance_from_dict_accepts_both_spellings():
    a = CertificateInstance.from_dict({"studentName": "أحمد", "certificateId": "X1"})
    b = CertificateInstance.from_dict({"student_name": "أحمد", "certificate_id": "X1"})
    assert a == b
    assert a.course_name is None
