"""Edit the AI report prompts attached to a plan's questionnaires."""

from __future__ import annotations

import html
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import requests
import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from Home import load_forms_or_local
from form_builder import plans, prompt_templates
from form_builder.app_config import get_backend, require_authentication
from form_builder.rest_backend import RestBackend
from form_builder.shortcodes import ai_report_shortcode
from form_builder.ui_theme import apply_app_theme, page_header, section_card, shortcode_markup

logger = logging.getLogger(__name__)

NEW_PROMPT_CHOICE = ""
PROVIDERS = ("", "openai", "anthropic")


def blank_prompt(plan_id: str, questionnaire_id: str, sequence_index: int) -> Dict[str, Any]:
    return {
        "id": None,
        "plan_id": plan_id,
        "questionnaire_id": questionnaire_id,
        "title": prompt_templates.DEFAULT_PROMPT_TITLE,
        "system_prompt": "",
        "content": "",
        "sequence_index": sequence_index,
        "report_template": "",
    }


def render_prompt_editor(backend: RestBackend, prompt: Mapping[str, Any]) -> None:
    prompt_id = prompt.get("id") or NEW_PROMPT_CHOICE
    with st.form(f"prompt_{prompt_id or 'new'}_{prompt.get('questionnaire_id')}"):
        title = st.text_input("Title", value=prompt.get("title") or "")
        sequence_index = st.number_input(
            "Sequence", min_value=0, step=1, value=int(prompt.get("sequence_index") or 0)
        )
        system_prompt = st.text_area("System prompt", value=prompt.get("system_prompt") or "", height=120)
        content = st.text_area(
            "Prompt",
            value=prompt.get("content") or "",
            height=240,
            help="Use {{variable}} placeholders for answers and profile data.",
        )
        report_template = st.text_area("Report template", value=prompt.get("report_template") or "")
        submitted = st.form_submit_button("Save prompt", type="primary")

    variables = prompt_templates.extract_prompt_variables(content)
    if variables:
        st.caption("Variables: " + ", ".join(f"`{name}`" for name in variables))

    if submitted:
        template = {
            **dict(prompt),
            "title": title,
            "sequence_index": int(sequence_index),
            "system_prompt": system_prompt,
            "content": content,
            "variables": variables,
            "report_template": report_template or None,
        }
        try:
            prompt_templates.save_prompt_template(backend, template)
        except (requests.RequestException, ValueError) as exc:
            logger.exception("Saving prompt template %s failed", prompt_id or "(new)")
            st.error(f"Could not save the prompt: {exc}")
            return
        st.success("Prompt saved.")
        st.rerun()

    if prompt_id and st.button("Delete prompt", key=f"delete_prompt_{prompt_id}"):
        try:
            prompt_templates.delete_prompt_template(backend, prompt_id)
        except requests.RequestException as exc:
            logger.exception("Deleting prompt template %s failed", prompt_id)
            st.error(f"Could not delete the prompt: {exc}")
            return
        st.rerun()


def render_shortcodes(questionnaire_id: str, prompts: List[Mapping[str, Any]]) -> None:
    provider = st.selectbox(
        "Report provider",
        options=PROVIDERS,
        format_func=lambda value: value or "Default",
        key=f"provider_{questionnaire_id}",
    )
    for prompt in prompts:
        code = ai_report_shortcode(questionnaire_id, str(prompt["id"]), provider or None)
        title = html.escape(str(prompt.get("title") or ""))
        st.markdown(f"**{title}** {shortcode_markup(code)}", unsafe_allow_html=True)


def main() -> None:
    """Render the prompt templates page."""

    apply_app_theme(page_title="Prompt templates", page_icon="🤖")
    page_header("Prompt templates", "Configure the AI reports generated from questionnaire answers.", icon="🤖")
    require_authentication()

    backend = get_backend()
    if backend is None:
        st.info("Prompt templates are stored in the backend. Configure [backend] in the app secrets.")
        return

    try:
        plan_rows = plans.fetch_plans(backend)
    except requests.RequestException as exc:
        logger.exception("Loading plans failed")
        st.error(f"Could not load plans: {exc}")
        return
    if not plan_rows:
        st.info("No plans found.")
        return

    names = {str(row["id"]): row.get("name") or str(row["id"]) for row in plan_rows}
    plan_id = st.selectbox("Plan", options=list(names), format_func=names.get)

    forms = load_forms_or_local()
    try:
        links = plans.fetch_plan_questionnaires(backend, plan_id)
        grouped = prompt_templates.group_prompts_by_questionnaire(
            prompt_templates.fetch_plan_prompt_templates(backend, plan_id)
        )
    except requests.RequestException as exc:
        logger.exception("Loading prompts of plan %s failed", plan_id)
        st.error(f"Could not load prompt templates: {exc}")
        return

    questionnaire_ids = [str(link["questionnaire_id"]) for link in links if link.get("questionnaire_id")]
    if not questionnaire_ids:
        st.info("This plan has no questionnaires yet. Add some on the Plans page.")
        return

    questionnaire_id = st.selectbox(
        "Questionnaire",
        options=questionnaire_ids,
        format_func=lambda key: forms[key].title if key in forms else key,
    )
    prompts = grouped.get(questionnaire_id, [])

    prompt_ids = [NEW_PROMPT_CHOICE, *(str(prompt["id"]) for prompt in prompts)]
    titles = {str(prompt["id"]): prompt.get("title") or str(prompt["id"]) for prompt in prompts}
    selected = st.selectbox(
        "Prompt",
        options=prompt_ids,
        index=1 if prompts else 0,
        format_func=lambda key: titles.get(key, "➕ New prompt"),
    )
    current: Optional[Mapping[str, Any]] = next(
        (prompt for prompt in prompts if str(prompt["id"]) == selected), None
    )
    with section_card("Prompt"):
        render_prompt_editor(backend, current or blank_prompt(plan_id, questionnaire_id, len(prompts)))

    if prompts:
        with section_card("Shortcodes", "Paste these into a page to render the report."):
            render_shortcodes(questionnaire_id, prompts)


if __name__ == "__main__":
    main()
