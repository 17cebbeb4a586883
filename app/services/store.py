from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Optional

from app.errors import MissingDependencyError, TemplateFormatError
from app.services.exporter import deserialize, serialize
from app.services.template import Template
from app.utils.hash import canonical_json_hash

logger = logging.getLogger(__name__)

_TEMPLATE_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def _ensure_dir(path: Path) -> None:
    if not path.exists():
        path.mkdir(parents=True, exist_ok=True)


def compute_template_id(template: Template) -> str:
    return canonical_json_hash(serialize(template))


class TemplateStore:
    """Whole-template persistence: one JSON form per template id, no partial writes."""

    def __init__(self, cache_dir: str = "tmp/templates") -> None:
        self.root = Path(cache_dir)

    def _path(self, template_id: str) -> Path:
        if not _TEMPLATE_ID_RE.match(str(template_id or "")):
            raise TemplateFormatError(f"invalid template id: {template_id!r}")
        return self.root / f"{template_id}.json"

    def save(self, template: Template, template_id: Optional[str] = None) -> str:
        if template.is_draft:
            raise MissingDependencyError("template has no background image", code="BACKGROUND_REQUIRED")

        template_id = template_id or compute_template_id(template)
        path = self._path(template_id)
        _ensure_dir(self.root)

        # Write then rename so a reader never sees a half-written form.
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(
            json.dumps(serialize(template), ensure_ascii=False, sort_keys=True, separators=(",", ":")),
            encoding="utf-8",
        )
        tmp_path.replace(path)
        logger.info("TEMPLATE_SAVED", extra={"template_id": template_id, "elements": len(template.elements)})
        return template_id

    def exists(self, template_id: str) -> bool:
        return self._path(template_id).exists()

    def load(self, template_id: str) -> Template:
        path = self._path(template_id)
        if not path.exists():
            raise FileNotFoundError(f"template not found: {template_id}")
        try:
            form = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise TemplateFormatError(f"stored template is corrupt: {template_id}") from e
        return deserialize(form)
