"""Preview a form the way respondents see it, with live conditional logic."""

from __future__ import annotations

import datetime as dt
import html
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd
import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from Home import load_forms_or_local
from form_builder.conditions import prune_hidden_answers, visible_fields, visible_pages
from form_builder.document import Field, FormDocument, ImagePosition, Page
from form_builder.field_types import FieldKind
from form_builder.form_utils import PREVIEW_SELECTED_STATE_KEY
from form_builder.schema_defaults import DEFAULT_SUBMIT_LABEL, preview_intro_list
from form_builder.scoring import score_answers
from form_builder.ui_theme import apply_app_theme, page_header

ANSWERS_STATE_KEY = "preview_answers"
PAGE_STATE_KEY = "preview_page"
SUBMITTED_STATE_KEY = "preview_submitted"

TEXT_KINDS = {
    FieldKind.TEXT,
    FieldKind.EMAIL,
    FieldKind.TEL,
    FieldKind.URL,
    FieldKind.NAME,
    FieldKind.ADDRESS,
    FieldKind.SIGNATURE,
}
LONG_TEXT_KINDS = {FieldKind.TEXTAREA, FieldKind.RICHTEXT}
SINGLE_CHOICE_KINDS = {FieldKind.RADIO, FieldKind.SELECT, FieldKind.MATRIX}
MULTI_CHOICE_KINDS = {FieldKind.CHECKBOX, FieldKind.MULTI_SELECT, FieldKind.IMAGE_PICKER}


def is_answered(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set)):
        return bool(value)
    return True


def missing_required(
    document: FormDocument,
    answers: Mapping[str, Any],
    page_indexes: Optional[List[int]] = None,
) -> List[Field]:
    """Return visible required fields without an answer on the given pages."""

    indexes = page_indexes if page_indexes is not None else list(range(len(document.pages)))
    missing: List[Field] = []
    for index in indexes:
        for item in visible_fields(document.pages[index], answers, document):
            if item.required and not is_answered(answers.get(item.id)):
                missing.append(item)
    return missing


def guide_markup(guide: str) -> str:
    return f"<p class='fb-field-guide'>{html.escape(guide)}</p>"


def page_position(pages: List[int], requested: int) -> Optional[int]:
    """Clamp the stored page position to the visible pages.

    Returns ``None`` when conditions hide every page of the form.
    """

    if not pages:
        return None
    return max(0, min(requested, len(pages) - 1))


def _choice_widget(item: Field, answers: Dict[str, Any], key: str) -> None:
    values = [option.value for option in item.options]
    labels = {option.value: option.label for option in item.options}
    if item.kind in MULTI_CHOICE_KINDS:
        current = [value for value in answers.get(item.id) or [] if value in values]
        selection = st.multiselect(
            item.label,
            options=values,
            default=current,
            format_func=labels.get,
            key=key,
        )
        answers[item.id] = selection
        return

    current = answers.get(item.id)
    index = values.index(current) if current in values else None
    if item.kind is FieldKind.RADIO:
        selection = st.radio(item.label, options=values, index=index, format_func=labels.get, key=key)
    else:
        selection = st.selectbox(item.label, options=values, index=index, format_func=labels.get, key=key)
    if selection is None:
        answers.pop(item.id, None)
    else:
        answers[item.id] = selection


def render_field(item: Field, answers: Dict[str, Any], form_id: str) -> None:
    """Render the input widget for ``item`` and record the answer."""

    key = f"preview_{form_id}_{item.id}"
    label = f"{item.label} *" if item.required else item.label
    current = answers.get(item.id)
    kind = item.kind

    if item.is_choice:
        _choice_widget(item, answers, key)
    elif kind in TEXT_KINDS or kind is FieldKind.PASSWORD:
        answers[item.id] = st.text_input(
            label,
            value=current or "",
            placeholder=item.placeholder or "",
            type="password" if kind is FieldKind.PASSWORD else "default",
            key=key,
        )
    elif kind in LONG_TEXT_KINDS:
        answers[item.id] = st.text_area(label, value=current or "", placeholder=item.placeholder or "", key=key)
    elif kind in (FieldKind.NUMBER, FieldKind.CURRENCY):
        answers[item.id] = st.number_input(label, value=current, placeholder=item.placeholder or "", key=key)
    elif kind is FieldKind.BOOLEAN:
        answers[item.id] = st.toggle(label, value=bool(current), key=key)
    elif kind is FieldKind.RATING:
        answers[item.id] = st.select_slider(label, options=[1, 2, 3, 4, 5], value=current or 3, key=key)
    elif kind is FieldKind.RANGE:
        answers[item.id] = st.slider(label, 0, 100, value=current if current is not None else 50, key=key)
    elif kind is FieldKind.COLOR:
        answers[item.id] = st.color_picker(label, value=current or "#000000", key=key)
    elif kind is FieldKind.DATE:
        picked = st.date_input(label, value=None, key=key)
        answers[item.id] = picked.isoformat() if picked else None
    elif kind is FieldKind.TIME:
        picked = st.time_input(label, value=None, key=key)
        answers[item.id] = picked.isoformat(timespec="minutes") if picked else None
    elif kind is FieldKind.DATETIME:
        date_col, time_col = st.columns(2)
        day = date_col.date_input(label, value=None, key=f"{key}_date")
        moment = time_col.time_input("Time", value=None, key=f"{key}_time")
        answers[item.id] = dt.datetime.combine(day, moment).isoformat() if day and moment else None
    elif kind is FieldKind.FILE_UPLOAD:
        uploaded = st.file_uploader(label, key=key)
        answers[item.id] = uploaded.name if uploaded is not None else None
    else:
        st.warning(f"Unsupported field type: {kind.value}")

    if item.guide:
        st.markdown(guide_markup(item.guide), unsafe_allow_html=True)


def render_page(page: Page, document: FormDocument, answers: Dict[str, Any]) -> None:
    if page.image_url and page.image_position is ImagePosition.TOP:
        st.image(page.image_url)
    st.subheader(page.title)
    if page.description:
        st.caption(page.description)

    body = st.container()
    if page.image_url and page.image_position in (ImagePosition.LEFT, ImagePosition.RIGHT):
        if page.image_position is ImagePosition.RIGHT:
            fields_col, image_col = st.columns([2, 1])
        else:
            image_col, fields_col = st.columns([1, 2])
        image_col.image(page.image_url)
        body = fields_col

    with body:
        shown = visible_fields(page, answers, document)
        if not shown:
            st.info("No questions to show on this page.")
        for item in shown:
            render_field(item, answers, document.id)

    if page.image_url and page.image_position is ImagePosition.BOTTOM:
        st.image(page.image_url)


def render_results(document: FormDocument, answers: Mapping[str, Any]) -> None:
    summary = score_answers(document, answers)
    st.success("Form submitted.")
    if summary.fields:
        st.metric("Score", f"{summary.total:g} / {summary.max_total:g}")
        st.dataframe(
            pd.DataFrame(
                [
                    {"Question": entry.label, "Score": entry.score, "Max": entry.max_score}
                    for entry in summary.fields
                ]
            ),
            hide_index=True,
        )
    with st.expander("Answers", expanded=False):
        st.json(dict(answers))


def main() -> None:
    """Render the form preview page."""

    apply_app_theme(page_title="Form preview", page_icon="👁️")
    header = st.empty()
    page_header("Form preview", "Answer a form to check its conditions and scoring.", icon="👁️", container=header)

    forms = load_forms_or_local()
    if not forms:
        st.info("No forms available. Create one in the form builder first.")
        return

    form_ids = list(forms.keys())
    requested = st.session_state.get(PREVIEW_SELECTED_STATE_KEY)
    selected = st.selectbox(
        "Form",
        options=form_ids,
        index=form_ids.index(requested) if requested in form_ids else 0,
        format_func=lambda key: forms[key].title,
    )
    st.session_state[PREVIEW_SELECTED_STATE_KEY] = selected
    document = forms[selected]
    page_header(document.title, document.description, icon="👁️", container=header)

    all_answers: Dict[str, Dict[str, Any]] = st.session_state.setdefault(ANSWERS_STATE_KEY, {})
    answers = all_answers.setdefault(selected, {})

    with st.sidebar:
        for paragraph in preview_intro_list():
            st.caption(paragraph)
        if st.button("Reset answers"):
            all_answers[selected] = {}
            st.session_state[PAGE_STATE_KEY] = 0
            st.session_state[SUBMITTED_STATE_KEY] = False
            st.rerun()

    pages = visible_pages(document, answers)
    position = page_position(pages, st.session_state.get(PAGE_STATE_KEY, 0))
    if position is None:
        st.info("Every page of this form is hidden by its conditions. Check the form in the builder.")
        return
    st.progress((position + 1) / len(pages), text=f"Page {position + 1} of {len(pages)}")

    render_page(document.pages[pages[position]], document, answers)
    prune_hidden_answers(document, answers)

    back_col, next_col = st.columns(2)
    if back_col.button("Back", disabled=position == 0, use_container_width=True):
        st.session_state[PAGE_STATE_KEY] = position - 1
        st.rerun()

    last_page = position == len(pages) - 1
    label = DEFAULT_SUBMIT_LABEL if last_page else "Next"
    if next_col.button(label, type="primary", use_container_width=True):
        missing = missing_required(document, answers, [pages[position]])
        if missing:
            for item in missing:
                st.error(f"Please answer: {item.label}")
        elif last_page:
            st.session_state[SUBMITTED_STATE_KEY] = True
        else:
            st.session_state[PAGE_STATE_KEY] = position + 1
            st.rerun()

    if st.session_state.get(SUBMITTED_STATE_KEY):
        render_results(document, answers)


if __name__ == "__main__":
    main()
