from typing import Any, Literal

from pydantic import BaseModel
from pydantic import ConfigDict, Field

from app.services.elements import ElementType, FontStyle, FontWeight, TextAlign


class ElementForm(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    type: ElementType
    x: float
    y: float
    width: float | None = None
    height: float | None = None
    fontSize: float | None = None
    color: str | None = None
    fontFamily: str | None = None
    fontWeight: FontWeight | None = None
    fontStyle: FontStyle | None = None
    textAlign: TextAlign | None = None
    content: str | None = None
    signatureAsset: str | None = None
    required: bool | None = None


class TemplateForm(BaseModel):
    model_config = ConfigDict(extra="forbid")

    canvasWidth: float = Field(default=842, gt=0)
    canvasHeight: float = Field(default=595, gt=0)
    backgroundImage: str = ""
    elements: list[ElementForm] = Field(default_factory=list)

    def to_form(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class InstanceData(BaseModel):
    model_config = ConfigDict(extra="forbid")

    studentName: str | None = None
    courseName: str | None = None
    issueDate: str | None = None
    certificateId: str | None = None


class SaveTemplateRequest(BaseModel):
    template: TemplateForm
    template_id: str | None = None


class SaveTemplateResponse(BaseModel):
    template_id: str


class RenderRequest(BaseModel):
    template: TemplateForm | None = None
    template_id: str | None = None
    instance: InstanceData | None = None
    render_mode: Literal["preview", "final"] = "final"
    job_id: str | None = Field(default=None, pattern=r"^[A-Za-z0-9_-]{1,64}$")


class ResolvedElementOut(BaseModel):
    id: str
    type: str
    text: str | None = None
    qr_payload: str | None = None
    image_ref: str | None = None
    placeholder: bool = False


class ResolveResponse(BaseModel):
    mode: str
    canvasWidth: float
    canvasHeight: float
    backgroundImage: str
    elements: list[ResolvedElementOut]


class RenderResponse(BaseModel):
    status: str
    job_id: str
    mode: str
    pdf_s3_key: str | None = None
    pdf_path: str
    pages: int
    elements: list[ResolvedElementOut]
    engine_metrics: dict[str, Any] | None = None


class AssetResponse(BaseModel):
    ref: str
