"""Streamlit home screen listing the configured forms."""

from __future__ import annotations

import html
import logging
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd
import requests
import streamlit as st

from form_builder import catalog, form_store
from form_builder.app_config import get_backend
from form_builder.document import FormDocument
from form_builder.form_utils import EDITOR_SELECTED_STATE_KEY, PREVIEW_SELECTED_STATE_KEY
from form_builder.shortcodes import form_shortcode, page_shortcode
from form_builder.ui_theme import apply_app_theme, page_header, shortcode_markup

logger = logging.getLogger(__name__)

HOME_SELECTED_FORM_KEY = "home_selected_form_id"
TABLE_COLUMNS = ("ID", "Title", "Status", "Pages", "Fields", "Updated", "Shortcode")


@st.cache_data(show_spinner=False, ttl=60)
def load_forms() -> Dict[str, FormDocument]:
    """Load every form from the configured backend or the local form files."""

    return catalog.load_forms(get_backend())


def load_forms_or_local() -> Dict[str, FormDocument]:
    """Return ``load_forms()``, falling back to local files when the backend fails."""

    try:
        return load_forms()
    except requests.RequestException:
        logger.exception("Unable to load forms from the backend")
        st.error("Unable to load forms from the backend right now. Showing local forms instead.")
        return form_store.load_local_forms()


def form_table_rows(forms: Mapping[str, FormDocument]) -> List[Dict[str, Any]]:
    """Return one summary row per form for the home table."""

    rows: List[Dict[str, Any]] = []
    for form_id, document in forms.items():
        rows.append(
            {
                "ID": form_id,
                "Title": document.title,
                "Status": "Active" if document.is_active else "Draft",
                "Pages": len(document.pages),
                "Fields": document.field_count(),
                "Updated": document.updated_at,
                "Shortcode": form_shortcode(form_id),
            }
        )
    return rows


def _switch_to(page_path: str, state_key: str, form_id: str) -> None:
    st.session_state[state_key] = form_id
    try:
        st.switch_page(page_path)
    except Exception:  # pragma: no cover - streamlit navigation fallback
        st.info("Use the navigation menu to open the page.")


def _render_page_shortcodes(document: FormDocument) -> None:
    with st.expander("Page shortcodes", expanded=False):
        for index, page in enumerate(document.pages):
            st.markdown(
                f"**{index + 1}. {html.escape(page.title)}** {shortcode_markup(page_shortcode(page.id))}",
                unsafe_allow_html=True,
            )


def main() -> None:
    """Render the home screen."""

    apply_app_theme(page_title="Forms", page_icon="📋")
    page_header(
        "Forms",
        "Build questionnaires, preview them and attach them to plans.",
        icon="📋",
    )

    if get_backend() is None:
        st.caption(f"No backend configured. Forms are stored in {form_store.SCHEMAS_ROOT}/<form id>/.")

    forms = load_forms_or_local()
    total_fields = sum(document.field_count() for document in forms.values())
    active = sum(1 for document in forms.values() if document.is_active)

    metric_col1, metric_col2, metric_col3 = st.columns(3)
    metric_col1.metric("Forms", len(forms) or "0")
    metric_col2.metric("Active", active or "0")
    metric_col3.metric("Questions", total_fields or "0")

    st.markdown("---")
    if st.button("Create a form", type="primary"):
        _switch_to("pages/01_Form_Builder.py", EDITOR_SELECTED_STATE_KEY, "")

    if not forms:
        st.info("No forms yet. Open the form builder to create one.")
        st.page_link("pages/01_Form_Builder.py", label="Open form builder", icon="🛠️")
        return

    table_df = pd.DataFrame(form_table_rows(forms), columns=list(TABLE_COLUMNS))
    table_df.insert(0, "Select", False)
    selected_id: Optional[str] = st.session_state.get(HOME_SELECTED_FORM_KEY)
    if selected_id:
        table_df.loc[table_df["ID"] == selected_id, "Select"] = True

    edited_df = st.data_editor(
        table_df,
        hide_index=True,
        num_rows="fixed",
        key="home_forms_table",
        disabled=list(TABLE_COLUMNS),
        column_config={
            "Select": st.column_config.CheckboxColumn("Select", help="Choose a form to open."),
            "Shortcode": st.column_config.TextColumn("Shortcode", width="medium"),
        },
    )

    selected_rows = edited_df.loc[edited_df["Select"].astype(bool)]
    candidate: Optional[FormDocument] = None
    if len(selected_rows) > 1:
        st.warning("Select only one form at a time.")
    elif len(selected_rows) == 1:
        selected_id = str(selected_rows.iloc[0]["ID"])
        st.session_state[HOME_SELECTED_FORM_KEY] = selected_id
        candidate = forms.get(selected_id)

    edit_col, preview_col = st.columns(2)
    with edit_col:
        if st.button("Edit form", disabled=candidate is None, use_container_width=True):
            _switch_to("pages/01_Form_Builder.py", EDITOR_SELECTED_STATE_KEY, candidate.id)
    with preview_col:
        if st.button("Preview form", disabled=candidate is None, use_container_width=True):
            _switch_to("pages/02_Form_Preview.py", PREVIEW_SELECTED_STATE_KEY, candidate.id)

    if candidate is not None:
        _render_page_shortcodes(candidate)


if __name__ == "__main__":
    main()
