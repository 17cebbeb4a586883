from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

import boto3

from app.config import Settings
from app.services.binding import CertificateInstance, RenderMode, ResolvedCertificate, resolve
from app.services.pdf_writer import write_certificate_pdf
from app.services.template import Template

logger = logging.getLogger(__name__)


def resolve_for_settings(
    *,
    settings: Settings,
    template: Template,
    instance: Optional[CertificateInstance],
    mode: RenderMode | str,
) -> ResolvedCertificate:
    return resolve(
        template,
        instance,
        mode=mode,
        verify_base_url=settings.VERIFY_BASE_URL,
        locale=settings.DATE_LOCALE,
    )


def summarize(resolved: ResolvedCertificate) -> list[Dict[str, Any]]:
    return [
        {
            "id": item.element.id,
            "type": item.element.type.value,
            "text": item.text,
            "qr_payload": item.qr_payload,
            "image_ref": item.image_ref,
            "placeholder": item.placeholder,
        }
        for item in resolved.elements
    ]


def render_job(
    *,
    settings: Settings,
    template: Template,
    instance: Optional[CertificateInstance] = None,
    mode: RenderMode | str = RenderMode.FINAL,
    job_id: Optional[str] = None,
    output_dir: str = "tmp/certificates",
) -> dict:
    mode = RenderMode(mode)
    job_id = job_id or uuid.uuid4().hex
    resolved = resolve_for_settings(settings=settings, template=template, instance=instance, mode=mode)

    tmp_dir = Path(output_dir)
    if not tmp_dir.exists():
        tmp_dir.mkdir(parents=True, exist_ok=True)

    final_local_path = str(tmp_dir / f"{job_id}.pdf")
    pages, _, engine_metrics = write_certificate_pdf(resolved=resolved, settings=settings, output_path=final_local_path)

    pdf_s3_key: Optional[str] = None
    if settings.s3_enabled:
        pdf_s3_key = f"certificates/{mode.value}/{job_id}.pdf"
        upload_pdf_to_s3(settings=settings, local_path=final_local_path, s3_key=pdf_s3_key)

    logger.info("CERTIFICATE_RENDERED", extra={"job_id": job_id, "mode": mode.value, "pdf_s3_key": pdf_s3_key})
    return {
        "status": "DONE",
        "job_id": job_id,
        "mode": mode.value,
        "pdf_s3_key": pdf_s3_key,
        "pdf_path": final_local_path,
        "pages": pages,
        "elements": summarize(resolved),
        "engine_metrics": engine_metrics,
    }


def upload_pdf_to_s3(*, settings: Settings, local_path: str, s3_key: str) -> None:
    session = boto3.session.Session(
        aws_access_key_id=settings.S3_ACCESS_KEY_ID,
        aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY,
        region_name=settings.S3_REGION or None,
    )
    client = session.client("s3", endpoint_url=settings.S3_ENDPOINT or None)
    client.upload_file(local_path, settings.S3_BUCKET, s3_key, ExtraArgs={"ContentType": "application/pdf"})
