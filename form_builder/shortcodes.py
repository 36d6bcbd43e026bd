"""Shortcode strings used to embed forms, pages and AI reports elsewhere.

The strings are only built here; resolving them is left to the site that
renders them.
"""

from __future__ import annotations

from typing import Optional


def _attribute(name: str, value: str) -> str:
    cleaned = str(value or "").replace('"', "").strip()
    return f'{name}="{cleaned}"'


def form_shortcode(form_id: str) -> str:
    return f"[simoly_form {_attribute('id', form_id)}]"


def page_shortcode(page_id: str) -> str:
    return f"[simoly_page {_attribute('id', page_id)}]"


def ai_report_shortcode(
    questionnaire_id: str,
    prompt_id: str,
    provider: Optional[str] = None,
) -> str:
    """Return the shortcode for an AI-generated report."""

    parts = [
        "simoly_ai_report",
        _attribute("questionnaire_id", questionnaire_id),
        _attribute("prompt_id", prompt_id),
    ]
    if provider:
        parts.append(_attribute("provider", provider))
    return f"[{' '.join(parts)}]"


__all__ = ["ai_report_shortcode", "form_shortcode", "page_shortcode"]
