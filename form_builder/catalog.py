"""Load and store forms from the backend when configured, local files otherwise."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from form_builder import form_store, questionnaires
from form_builder.document import FormDocument
from form_builder.rest_backend import RestBackend

logger = logging.getLogger(__name__)


def load_forms(backend: Optional[RestBackend]) -> Dict[str, FormDocument]:
    """Return every known form keyed by id, newest first for the backend."""

    if backend is None:
        return form_store.load_local_forms()

    rows = backend.select(questionnaires.QUESTIONNAIRE_TABLE, order="created_at.desc")
    forms: Dict[str, FormDocument] = {}
    for row in rows:
        document = questionnaires.document_from_row(row)
        forms[document.id] = document
    return forms


def save_form(backend: Optional[RestBackend], document: FormDocument) -> str:
    """Persist ``document`` and return a short description of where it went."""

    if backend is None:
        path = form_store.save_local_form(document)
        logger.info("Saved form %s to %s", document.id, path)
        return str(path)
    questionnaires.save_form(backend, document)
    return "backend"


def delete_form(backend: Optional[RestBackend], form_id: str) -> None:
    if backend is None:
        form_store.delete_local_form(form_id)
        return
    questionnaires.delete_form(backend, form_id)


__all__ = ["delete_form", "load_forms", "save_form"]
