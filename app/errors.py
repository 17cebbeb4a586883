class CertificateError(ValueError):
    """Base error; `code` is a stable identifier surfaced to API callers."""

    code = "CERTIFICATE_ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code:
            self.code = code

    def to_detail(self) -> dict:
        return {"code": self.code, "message": str(self)}


class MissingDependencyError(CertificateError):
    code = "MISSING_DEPENDENCY"


class InstanceDataError(CertificateError):
    code = "INVALID_INSTANCE_DATA"


class TemplateFormatError(CertificateError):
    code = "INVALID_TEMPLATE_FORM"


class AssetStateError(CertificateError):
    code = "INVALID_ASSET_STATE"
