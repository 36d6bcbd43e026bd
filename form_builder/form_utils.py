"""Small helpers shared by the form document model and its editors."""

from __future__ import annotations

import numbers
import re
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, List

EDITOR_SELECTED_STATE_KEY = "editor_selected_form"
PREVIEW_SELECTED_STATE_KEY = "preview_selected_form"

_WHITESPACE_RE = re.compile(r"\s+")


def ensure_mapping(value: Any) -> Dict[str, Any]:
    """Return ``value`` as a dict if it is a mapping, otherwise an empty dict."""

    return dict(value) if isinstance(value, Mapping) else {}


def ensure_list(value: Any) -> List[Any]:
    """Return ``value`` if it is a list, otherwise an empty list."""

    return list(value) if isinstance(value, list) else []


def clean_text(value: Any) -> str:
    """Return ``value`` converted to a trimmed string."""

    if isinstance(value, str):
        return value.strip()
    if value is None:
        return ""
    return str(value).strip()


def optional_text(value: Any) -> str | None:
    text = clean_text(value)
    return text or None


def slugify_option_label(label: str) -> str:
    """Return the option value derived from ``label``.

    The label is lowercased and every run of whitespace becomes a single
    underscore, so ``"Very Often"`` becomes ``"very_often"``.
    """

    return _WHITESPACE_RE.sub("_", (label or "").lower())


def default_option_value(position: int) -> str:
    """Return the untouched default value for the option at 1-based ``position``."""

    return f"option{position}"


def default_option_label(position: int) -> str:
    return f"Option {position}"


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""

    return datetime.now(timezone.utc).isoformat()


def new_identifier(prefix: str) -> str:
    """Return a fresh identifier such as ``field-3f2a...``."""

    return f"{prefix}-{uuid.uuid4().hex}"


def derive_form_label(form_id: str, payload: Mapping[str, Any]) -> str:
    """Return a human-friendly label for a stored form payload."""

    title = payload.get("title")
    if isinstance(title, str) and title.strip():
        return title.strip()

    return form_id.replace("_", " ").replace("-", " ").title() if form_id else "Questionnaire"


def coerce_number(value: Any) -> float:
    """Convert ``value`` to a float, returning NaN when that is impossible."""

    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, numbers.Real):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return float("nan")
        try:
            return float(text)
        except ValueError:
            return float("nan")
    return float("nan")


__all__ = [
    "EDITOR_SELECTED_STATE_KEY",
    "PREVIEW_SELECTED_STATE_KEY",
    "clean_text",
    "coerce_number",
    "default_option_label",
    "default_option_value",
    "derive_form_label",
    "ensure_list",
    "ensure_mapping",
    "new_identifier",
    "optional_text",
    "slugify_option_label",
    "utc_now_iso",
]
