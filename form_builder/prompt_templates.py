"""AI prompt templates attached to a plan's questionnaires."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any, Dict, List, Optional

from form_builder.form_utils import clean_text, utc_now_iso
from form_builder.rest_backend import RestBackend

logger = logging.getLogger(__name__)

PROMPT_TEMPLATES_TABLE = "prompt_templates"
DEFAULT_PROMPT_TITLE = "New prompt"

_VARIABLE_RE = re.compile(r"\{\{\s*([A-Za-z0-9_.-]+)\s*\}\}")


def extract_prompt_variables(content: str) -> List[str]:
    """Return the distinct ``{{name}}`` placeholders of ``content`` in order."""

    seen: List[str] = []
    for name in _VARIABLE_RE.findall(content or ""):
        if name not in seen:
            seen.append(name)
    return seen


def fetch_plan_prompt_templates(backend: RestBackend, plan_id: str) -> List[Dict[str, Any]]:
    return backend.select(PROMPT_TEMPLATES_TABLE, {"plan_id": plan_id}, order="sequence_index.asc")


def fetch_prompts_for_questionnaire(
    backend: RestBackend,
    questionnaire_id: str,
    plan_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    filters: Dict[str, Any] = {"questionnaire_id": questionnaire_id}
    if plan_id:
        filters["plan_id"] = plan_id
    return backend.select(PROMPT_TEMPLATES_TABLE, filters, order="sequence_index.asc")


def group_prompts_by_questionnaire(prompts: Iterable[Mapping[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Group prompt rows by ``questionnaire_id`` keeping their sequence order."""

    grouped: Dict[str, List[Dict[str, Any]]] = {}
    ordered = sorted(prompts, key=lambda row: row.get("sequence_index") or 0)
    for prompt in ordered:
        key = prompt.get("questionnaire_id")
        if not key:
            continue
        grouped.setdefault(str(key), []).append(dict(prompt))
    return grouped


def save_prompt_template(backend: RestBackend, template: Mapping[str, Any]) -> Dict[str, Any]:
    """Update ``template`` when it has an id, otherwise insert it.

    Raises ``ValueError`` when the template has no questionnaire.
    """

    questionnaire_id = clean_text(template.get("questionnaire_id"))
    if not questionnaire_id:
        raise ValueError("Questionnaire ID is required")

    content = template.get("content") or ""
    values = {
        "title": clean_text(template.get("title")) or DEFAULT_PROMPT_TITLE,
        "content": content,
        "system_prompt": template.get("system_prompt") or "",
        "variables": template.get("variables") or extract_prompt_variables(content),
        "sequence_index": int(template.get("sequence_index") or 0),
        "report_template": template.get("report_template"),
        "updated_at": utc_now_iso(),
    }

    template_id = template.get("id")
    if template_id:
        rows = backend.update(PROMPT_TEMPLATES_TABLE, values, {"id": template_id})
    else:
        plan_id = clean_text(template.get("plan_id"))
        if not plan_id:
            raise ValueError("Plan ID is required")
        values.update(
            plan_id=plan_id,
            questionnaire_id=questionnaire_id,
            created_at=values["updated_at"],
        )
        rows = backend.insert(PROMPT_TEMPLATES_TABLE, values)

    if not rows:
        logger.warning("Saving prompt template %s returned no row", template_id or "(new)")
        return {**dict(template), **values}
    return rows[0]


def delete_prompt_template(backend: RestBackend, template_id: str) -> None:
    backend.delete(PROMPT_TEMPLATES_TABLE, {"id": template_id})


__all__ = [
    "delete_prompt_template",
    "extract_prompt_variables",
    "fetch_plan_prompt_templates",
    "fetch_prompts_for_questionnaire",
    "group_prompts_by_questionnaire",
    "save_prompt_template",
]
