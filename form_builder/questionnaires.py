"""Persist form documents in the backend's ``questionnaire_config`` table."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from form_builder.document import FormDocument
from form_builder.form_utils import derive_form_label, ensure_mapping
from form_builder.rest_backend import RestBackend

logger = logging.getLogger(__name__)

QUESTIONNAIRE_TABLE = "questionnaire_config"
STATUS_PUBLISHED = "published"
STATUS_DRAFT = "draft"


def form_row(document: FormDocument) -> Dict[str, Any]:
    """Return the table row representing ``document``."""

    return {
        "id": document.id,
        "title": document.title,
        "description": document.description,
        "status": STATUS_PUBLISHED if document.is_active else STATUS_DRAFT,
        "config_data": document.to_dict(),
        "updated_at": document.updated_at,
    }


def document_from_row(row: Dict[str, Any]) -> FormDocument:
    """Rebuild a document from a table row.

    Rows written before ``config_data`` existed only carry the summary
    columns; those become a document with a single empty page.
    """

    payload = ensure_mapping(row.get("config_data"))
    if not payload:
        payload = {
            "id": row.get("id"),
            "title": row.get("title"),
            "description": row.get("description"),
            "isActive": row.get("status") == STATUS_PUBLISHED,
            "createdAt": row.get("created_at"),
            "updatedAt": row.get("updated_at"),
        }
    return FormDocument.from_dict(payload, form_id=row.get("id"))


def save_form(backend: RestBackend, document: FormDocument) -> FormDocument:
    rows = backend.upsert(QUESTIONNAIRE_TABLE, form_row(document))
    logger.info("Saved form %s (%d pages)", document.id, len(document.pages))
    return document_from_row(rows[0]) if rows else document


def load_form(backend: RestBackend, form_id: str) -> Optional[FormDocument]:
    row = backend.select_one(QUESTIONNAIRE_TABLE, {"id": form_id})
    if row is None:
        logger.warning("Form %s not found", form_id)
        return None
    return document_from_row(row)


def list_forms(backend: RestBackend, published_only: bool = False) -> List[Dict[str, Any]]:
    """Return summary rows (id, label, status, updated) newest first."""

    filters = {"status": STATUS_PUBLISHED} if published_only else None
    rows = backend.select(
        QUESTIONNAIRE_TABLE,
        filters,
        order="created_at.desc",
        columns="id,title,status,created_at,updated_at",
    )
    return [
        {
            "id": row.get("id"),
            "label": derive_form_label(str(row.get("id") or ""), row),
            "status": row.get("status") or STATUS_DRAFT,
            "updated_at": row.get("updated_at"),
        }
        for row in rows
    ]


def delete_form(backend: RestBackend, form_id: str) -> None:
    backend.delete(QUESTIONNAIRE_TABLE, {"id": form_id})
    logger.info("Deleted form %s", form_id)


__all__ = [
    "QUESTIONNAIRE_TABLE",
    "delete_form",
    "document_from_row",
    "form_row",
    "list_forms",
    "load_form",
    "save_form",
]
