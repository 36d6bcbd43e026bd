"""Helpers for working with form schema files stored on disk."""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Dict

from form_builder.document import FormDocument

logger = logging.getLogger(__name__)

FORM_SCHEMA_FILENAME = "form_schema.json"
SCHEMAS_ROOT = Path("form_schemas")


def _checked_key(form_id: str) -> str:
    key = str(form_id or "").strip()
    if not key or key in {".", ".."} or "/" in key or "\\" in key:
        raise ValueError(f"Invalid form identifier: {form_id!r}")
    return key


def discover_local_forms() -> Dict[str, Path]:
    """Return a mapping of ``form_id -> path`` for local schema files."""

    forms: Dict[str, Path] = {}
    if SCHEMAS_ROOT.exists():
        for entry in sorted(SCHEMAS_ROOT.iterdir()):
            if not entry.is_dir():
                continue
            schema_path = entry / FORM_SCHEMA_FILENAME
            if schema_path.exists():
                forms[entry.name] = schema_path
    return forms


def ensure_form_directory(form_id: str) -> Path:
    """Ensure the directory for ``form_id`` exists and return it."""

    target_dir = SCHEMAS_ROOT / _checked_key(form_id)
    target_dir.mkdir(parents=True, exist_ok=True)
    return target_dir


def local_form_path(form_id: str) -> Path:
    return SCHEMAS_ROOT / _checked_key(form_id) / FORM_SCHEMA_FILENAME


def load_local_form(form_id: str) -> FormDocument:
    """Read the stored form ``form_id``.

    Raises ``FileNotFoundError`` when it does not exist.
    """

    path = local_form_path(form_id)
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return FormDocument.from_dict(payload, form_id=form_id)


def load_local_forms() -> Dict[str, FormDocument]:
    """Load every readable local form, skipping files that fail to parse."""

    forms: Dict[str, FormDocument] = {}
    for form_id, path in discover_local_forms().items():
        try:
            forms[form_id] = load_local_form(form_id)
        except (OSError, ValueError):
            logger.exception("Unable to read form schema %s", path)
    return forms


def save_local_form(document: FormDocument) -> Path:
    path = ensure_form_directory(document.id) / FORM_SCHEMA_FILENAME
    with path.open("w", encoding="utf-8") as handle:
        json.dump(document.to_dict(), handle, indent=2, ensure_ascii=False)
        handle.write("\n")
    return path


def delete_local_form(form_id: str) -> bool:
    """Remove the directory of ``form_id``; return whether anything was deleted."""

    target_dir = SCHEMAS_ROOT / _checked_key(form_id)
    if not target_dir.exists():
        return False
    shutil.rmtree(target_dir)
    return True


__all__ = [
    "FORM_SCHEMA_FILENAME",
    "SCHEMAS_ROOT",
    "delete_local_form",
    "discover_local_forms",
    "ensure_form_directory",
    "load_local_form",
    "load_local_forms",
    "local_form_path",
    "save_local_form",
]
