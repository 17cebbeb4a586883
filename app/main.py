import logging
import os

from fastapi import FastAPI, Header, HTTPException, Request
from dotenv import load_dotenv

from app.config import load_settings
from app.errors import CertificateError, TemplateFormatError
from app.schemas import (
    AssetResponse,
    RenderRequest,
    RenderResponse,
    ResolveResponse,
    SaveTemplateRequest,
    SaveTemplateResponse,
    TemplateForm,
)
from app.services.assets import store_asset
from app.services.binding import CertificateInstance
from app.services.exporter import deserialize, serialize
from app.services.font_registry import get_font_registry
from app.services.render import render_job, resolve_for_settings, summarize
from app.services.store import TemplateStore
from app.services.template import Template

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)
settings = load_settings()
store = TemplateStore(settings.TEMPLATE_STORE_DIR)

app = FastAPI(title="certificate-engine")

MAX_ASSET_BYTES = 10 * 1024 * 1024


def _authorize(x_internal_key: str) -> None:
    if x_internal_key != settings.INTERNAL_API_KEY:
        raise HTTPException(status_code=401, detail="Unauthorized")


def _bad_request(e: CertificateError) -> HTTPException:
    return HTTPException(status_code=400, detail=e.to_detail())


def _load_template(template: TemplateForm | None, template_id: str | None) -> Template:
    if template is not None:
        return deserialize(template.to_form())
    if not template_id:
        raise TemplateFormatError("either template or template_id is required", code="TEMPLATE_REQUIRED")
    try:
        return store.load(template_id)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Template not found")


def _instance(payload: RenderRequest) -> CertificateInstance | None:
    if payload.instance is None:
        return None
    return CertificateInstance.from_dict(payload.instance.model_dump())


@app.get("/health")
def health() -> dict:
    return {
        "ok": True,
        "version": os.getenv("RAILWAY_GIT_COMMIT_SHA")
        or os.getenv("GIT_COMMIT_SHA")
        or os.getenv("RENDER_GIT_COMMIT")
        or "unknown",
    }


@app.get("/fonts")
def fonts_endpoint(x_internal_key: str = Header(default="", alias="x-internal-key")) -> list[dict]:
    _authorize(x_internal_key)

    fonts = get_font_registry(settings.FONTS_DIR)
    return [
        {
            "family": str(f.get("family") or ""),
            "subfamily": str(f.get("subfamily") or ""),
            "source": str(f.get("source") or "unknown"),
        }
        for f in fonts
        if str(f.get("family") or "").strip()
    ]


@app.post("/templates", response_model=SaveTemplateResponse)
def save_template_endpoint(payload: SaveTemplateRequest, x_internal_key: str = Header(default="", alias="x-internal-key")) -> SaveTemplateResponse:
    _authorize(x_internal_key)
    try:
        template = deserialize(payload.template.to_form())
        template_id = store.save(template, payload.template_id)
    except CertificateError as e:
        raise _bad_request(e)
    return SaveTemplateResponse(template_id=template_id)


@app.get("/templates/{template_id}")
def get_template_endpoint(template_id: str, x_internal_key: str = Header(default="", alias="x-internal-key")) -> dict:
    _authorize(x_internal_key)
    try:
        return serialize(store.load(template_id))
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Template not found")
    except CertificateError as e:
        raise _bad_request(e)


@app.post("/resolve", response_model=ResolveResponse)
def resolve_endpoint(payload: RenderRequest, x_internal_key: str = Header(default="", alias="x-internal-key")) -> ResolveResponse:
    _authorize(x_internal_key)
    try:
        template = _load_template(payload.template, payload.template_id)
        resolved = resolve_for_settings(settings=settings, template=template, instance=_instance(payload), mode=payload.render_mode)
    except CertificateError as e:
        raise _bad_request(e)

    return ResolveResponse(
        mode=resolved.mode.value,
        canvasWidth=resolved.canvas_width,
        canvasHeight=resolved.canvas_height,
        backgroundImage=resolved.background_image,
        elements=summarize(resolved),
    )


@app.post("/render", response_model=RenderResponse)
def render_endpoint(payload: RenderRequest, x_internal_key: str = Header(default="", alias="x-internal-key")) -> RenderResponse:
    _authorize(x_internal_key)

    try:
        template = _load_template(payload.template, payload.template_id)
        result = render_job(
            settings=settings,
            template=template,
            instance=_instance(payload),
            mode=payload.render_mode,
            job_id=payload.job_id,
        )
    except CertificateError as e:
        raise _bad_request(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("/render", extra={"job_id": result.get("job_id"), "mode": result.get("mode"), "pages": result.get("pages")})
    return RenderResponse(**result)


@app.post("/assets", response_model=AssetResponse)
async def upload_asset_endpoint(request: Request, x_internal_key: str = Header(default="", alias="x-internal-key")) -> AssetResponse:
    _authorize(x_internal_key)
    data = await request.body()
    if not data:
        raise HTTPException(status_code=400, detail="Empty body")
    if len(data) > MAX_ASSET_BYTES:
        raise HTTPException(status_code=413, detail="Asset too large")

    ref = store_asset(settings, data, request.headers.get("content-type", ""))
    return AssetResponse(ref=ref)
