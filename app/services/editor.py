from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from app.errors import MissingDependencyError
from app.services.assets import BACKGROUND_TARGET, AssetState, AssetTracker
from app.services.binding import CertificateInstance, RenderMode, ResolvedCertificate, resolve
from app.services.canvas import CanvasController
from app.services.elements import Element, ElementType
from app.services.exporter import serialize
from app.services.properties import PropertyEditor
from app.services.template import Template
from app.services.toolbox import create_element

logger = logging.getLogger(__name__)


class EditorSession:
    """One operator editing one template.

    The canvas controller, property editor and asset tracker all hold the
    same live `Template`; every mutation goes through them synchronously.
    """

    def __init__(self, template: Optional[Template] = None, *, verify_base_url: str = "", locale: str = "ar-EG") -> None:
        self.template = template if template is not None else Template()
        self.assets = AssetTracker()
        self.canvas = CanvasController(self.template, self.assets)
        self.properties = PropertyEditor(self.template, self.canvas, self.assets)
        self.verify_base_url = verify_base_url
        self.locale = locale

        if not self.template.is_draft:
            self.assets.mark_ready(BACKGROUND_TARGET)
        for el in self.template.elements:
            if el.signature_asset:
                self.assets.mark_ready(el.id)

    @property
    def selected_id(self) -> Optional[str]:
        return self.canvas.selected_id

    def add_element(self, element_type: ElementType | str) -> Element:
        element = create_element(self.template, element_type)
        self.canvas.select_element(element.id)
        return element

    def select(self, element_id: Optional[str]) -> Optional[str]:
        return self.canvas.select_element(element_id)

    def begin_drag(self, element_id: str) -> bool:
        return self.canvas.begin_drag(element_id)

    def drag_end(self, element_id: str, delta_x, delta_y) -> Optional[Element]:
        return self.canvas.on_drag_end(element_id, delta_x, delta_y)

    def cancel_drag(self, element_id: str) -> Optional[Element]:
        return self.canvas.cancel_drag(element_id)

    def update(self, element_id: str, attrs: Mapping[str, Any]) -> Optional[Element]:
        return self.properties.update(element_id, attrs)

    def update_selected(self, attrs: Mapping[str, Any]) -> Optional[Element]:
        if not self.canvas.selected_id:
            return None
        return self.properties.update(self.canvas.selected_id, attrs)

    def remove(self, element_id: str) -> bool:
        return self.properties.remove(element_id)

    # Asset acquisition. The upload itself happens elsewhere; only its outcome lands here.

    def _check_target(self, target: str) -> None:
        if target == BACKGROUND_TARGET:
            return
        element = self.template.find(target)
        if element is None or element.type != ElementType.SIGNATURE:
            raise MissingDependencyError(f"no signature element {target!r}", code="ASSET_TARGET_UNKNOWN")

    def begin_asset_upload(self, target: str) -> None:
        self._check_target(target)
        self.assets.transition(target, AssetState.PENDING)

    def complete_asset_upload(self, target: str, ref: str) -> None:
        self._check_target(target)
        self.assets.transition(target, AssetState.READY)
        if target == BACKGROUND_TARGET:
            self.template.background_image = ref
        else:
            self.properties.update(target, {"signature_asset": ref})
        logger.info("ASSET_READY", extra={"target": target})

    def fail_asset_upload(self, target: str) -> None:
        if self.assets.state(target) != AssetState.PENDING:
            return
        # A failed replacement keeps whichever reference was there before.
        has_ref = bool(self.template.background_image) if target == BACKGROUND_TARGET else bool(
            getattr(self.template.find(target), "signature_asset", None)
        )
        self.assets.transition(target, AssetState.EMPTY)
        if has_ref:
            self.assets.mark_ready(target)

    def set_background(self, ref: str) -> None:
        self.template.background_image = str(ref or "")
        if self.template.is_draft:
            self.assets.forget(BACKGROUND_TARGET)
        else:
            self.assets.mark_ready(BACKGROUND_TARGET)

    def _require_exportable(self) -> None:
        if self.template.is_draft:
            raise MissingDependencyError("template has no background image", code="BACKGROUND_REQUIRED")
        if self.assets.is_pending(BACKGROUND_TARGET):
            raise MissingDependencyError("background image is still loading", code="BACKGROUND_PENDING")

    def export(self) -> Dict[str, Any]:
        self._require_exportable()
        return serialize(self.template)

    def preview(self, instance: Optional[CertificateInstance] = None) -> ResolvedCertificate:
        self._require_exportable()
        return resolve(
            self.template,
            instance,
            mode=RenderMode.PREVIEW,
            verify_base_url=self.verify_base_url,
            locale=self.locale,
        )
