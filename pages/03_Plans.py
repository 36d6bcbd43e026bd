"""Manage plan settings and the questionnaires each plan offers."""

from __future__ import annotations

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
from form_builder import plans
from form_builder.app_config import get_backend, require_authentication
from form_builder.rest_backend import RestBackend
from form_builder.ui_theme import apply_app_theme, page_header, section_card

logger = logging.getLogger(__name__)

SELECTED_PLAN_STATE_KEY = "plans_selected_plan"


def settings_defaults(settings: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Return plan settings with unset values filled in."""

    source = dict(settings or {})
    return {
        "is_free": bool(source.get("is_free")),
        "can_retake": bool(source.get("can_retake")),
        "retake_period_days": int(source.get("retake_period_days") or 0),
        "retake_limit": int(source.get("retake_limit") or 0),
        "is_sequential": bool(source.get("is_sequential")),
        "is_progress_tracking": bool(source.get("is_progress_tracking")),
        "is_periodic": bool(source.get("is_periodic")),
    }


def ordered_questionnaire_ids(links: List[Mapping[str, Any]]) -> List[str]:
    """Return questionnaire ids of plan links in sequence order."""

    ordered = sorted(links, key=lambda link: link.get("sequence_order") or 0)
    return [str(link["questionnaire_id"]) for link in ordered if link.get("questionnaire_id")]


def render_settings(backend: RestBackend, plan_id: str, settings: Optional[Mapping[str, Any]]) -> None:
    values = settings_defaults(settings)
    with section_card("Plan settings"):
        with st.form(f"plan_settings_{plan_id}"):
            is_free = st.checkbox("Free plan", value=values["is_free"])
            can_retake = st.checkbox("Questionnaires can be retaken", value=values["can_retake"])
            retake_col, limit_col = st.columns(2)
            retake_period_days = retake_col.number_input(
                "Days between retakes", min_value=0, step=1, value=values["retake_period_days"]
            )
            retake_limit = limit_col.number_input(
                "Retake limit", min_value=0, step=1, value=values["retake_limit"]
            )
            is_sequential = st.checkbox("Questionnaires unlock in sequence", value=values["is_sequential"])
            is_progress_tracking = st.checkbox("Track progress", value=values["is_progress_tracking"])
            is_periodic = st.checkbox("Periodic questionnaires", value=values["is_periodic"])
            submitted = st.form_submit_button("Save settings", type="primary")

    if not submitted:
        return
    try:
        plans.save_plan_settings(
            backend,
            plan_id,
            {
                "is_free": is_free,
                "can_retake": can_retake,
                "retake_period_days": int(retake_period_days),
                "retake_limit": int(retake_limit),
                "is_sequential": is_sequential,
                "is_progress_tracking": is_progress_tracking,
                "is_periodic": is_periodic,
            },
        )
    except requests.RequestException as exc:
        logger.exception("Saving settings of plan %s failed", plan_id)
        st.error(f"Could not save plan settings: {exc}")
        return
    st.success("Plan settings saved.")


def render_questionnaires(backend: RestBackend, plan_id: str) -> None:
    forms = load_forms_or_local()
    try:
        links = plans.fetch_plan_questionnaires(backend, plan_id)
    except requests.RequestException as exc:
        logger.exception("Loading questionnaires of plan %s failed", plan_id)
        st.error(f"Could not load the plan questionnaires: {exc}")
        return

    current = ordered_questionnaire_ids(links)
    available = [form_id for form_id, document in forms.items() if document.is_active]
    options = current + [form_id for form_id in available if form_id not in current]

    with section_card("Questionnaires", "Selection order is the order respondents see."):
        selected = st.multiselect(
            "Questionnaires in this plan",
            options=options,
            default=current,
            format_func=lambda key: forms[key].title if key in forms else f"Unknown ({key})",
            key=f"plan_questionnaires_{plan_id}",
        )
        if st.button("Save questionnaires", type="primary", disabled=selected == current):
            try:
                plans.update_plan_questionnaires(backend, plan_id, selected)
            except requests.RequestException as exc:
                logger.exception("Updating questionnaires of plan %s failed", plan_id)
                st.error(f"Could not update the plan questionnaires: {exc}")
                return
            st.success("Plan questionnaires updated.")


def main() -> None:
    """Render the plans page."""

    apply_app_theme(page_title="Plans", page_icon="🗂️")
    page_header("Plans", "Choose what each subscription plan offers.", icon="🗂️")
    require_authentication()

    backend = get_backend()
    if backend is None:
        st.info("Plans are stored in the backend. Configure [backend] in the app secrets to manage them.")
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

    plan_ids = [str(row["id"]) for row in plan_rows]
    names = {str(row["id"]): row.get("name") or str(row["id"]) for row in plan_rows}
    requested = st.session_state.get(SELECTED_PLAN_STATE_KEY)
    plan_id = st.selectbox(
        "Plan",
        options=plan_ids,
        index=plan_ids.index(requested) if requested in plan_ids else 0,
        format_func=names.get,
    )
    st.session_state[SELECTED_PLAN_STATE_KEY] = plan_id

    try:
        details = plans.fetch_plan(backend, plan_id)
    except requests.RequestException as exc:
        logger.exception("Loading plan %s failed", plan_id)
        st.error(f"Could not load the plan: {exc}")
        return
    if details is None:
        st.warning("The selected plan no longer exists.")
        return

    render_settings(backend, plan_id, details["settings"])
    render_questionnaires(backend, plan_id)


if __name__ == "__main__":
    main()
