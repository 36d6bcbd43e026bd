"""Authenticated form builder page: pages, fields, options and conditions."""

from __future__ import annotations

import copy
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import pandas as pd
import requests
import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from Home import load_forms, load_forms_or_local
from form_builder import catalog
from form_builder.app_config import get_backend, require_authentication
from form_builder.conditions import available_source_fields
from form_builder.document import Combinator, Field, FormDocument, ImagePosition, RuleOperator
from form_builder.field_types import PLACEHOLDER_KINDS, FieldKind, field_kind_label
from form_builder.form_utils import EDITOR_SELECTED_STATE_KEY, coerce_number
from form_builder.importer import ImportParseError
from form_builder.session import FormEditSession, FormValidationError
from form_builder.shortcodes import form_shortcode, page_shortcode
from form_builder.ui_theme import apply_app_theme, page_header, section_card, shortcode_markup

logger = logging.getLogger(__name__)

SESSION_STATE_KEY = "builder_session"
ACTIVE_PAGE_STATE_KEY = "builder_active_page"
NEW_FORM_CHOICE = ""
OPERATOR_LABELS = {
    RuleOperator.EQUALS: "equals",
    RuleOperator.NOT_EQUALS: "does not equal",
    RuleOperator.CONTAINS: "contains",
    RuleOperator.NOT_CONTAINS: "does not contain",
    RuleOperator.GREATER: "is greater than",
    RuleOperator.LESS: "is less than",
}
IMPORT_HELP = (
    "One record per question, records separated by `---`:\n\n"
    "`Q1|type=radio|question=How do you rate us?|options=[Good:5|Bad:1]|condition=null|score=null`"
)


def option_changes(
    current: Sequence[Mapping[str, Any]],
    edited: Sequence[Mapping[str, Any]],
) -> List[tuple[int, str, Any]]:
    """Return ``(index, column, value)`` edits between two option tables.

    Rows are matched by position; rows only present on one side are ignored.
    """

    changes: List[tuple[int, str, Any]] = []
    for index, (before, after) in enumerate(zip(current, edited)):
        for column in ("Label", "Value", "Score"):
            old = before.get(column)
            new = after.get(column)
            if column == "Score":
                new_number = coerce_number(new)
                if new_number != new_number or new_number == coerce_number(old):
                    continue
                changes.append((index, column, int(new_number) if new_number.is_integer() else new_number))
            elif isinstance(new, str) and new != old:
                changes.append((index, column, new))
    return changes


def apply_option_changes(session: FormEditSession, field_id: str, changes: Sequence[tuple[int, str, Any]]) -> None:
    """Route option table edits through the edit session."""

    for index, column, value in changes:
        if column == "Label":
            session.set_option_label(field_id, index, value)
        elif column == "Value":
            session.set_option_value(field_id, index, value)
        else:
            session.set_option_score(field_id, index, value)


def _apply(action: Callable[[], Any], *, rerun: bool = False) -> bool:
    """Run a session mutation and report a refusal with ``st.error``."""

    try:
        action()
    except FormValidationError as exc:
        st.error(str(exc))
        return False
    if rerun:
        st.rerun()
    return True


def _get_session(forms: Mapping[str, FormDocument]) -> FormEditSession:
    """Return the edit session for the form chosen in the sidebar."""

    form_ids = [NEW_FORM_CHOICE, *forms.keys()]
    requested = st.session_state.get(EDITOR_SELECTED_STATE_KEY, NEW_FORM_CHOICE)
    if requested not in form_ids:
        requested = NEW_FORM_CHOICE
    selected = st.sidebar.selectbox(
        "Form",
        options=form_ids,
        index=form_ids.index(requested),
        format_func=lambda key: forms[key].title if key else "➕ New form",
    )

    session: Optional[FormEditSession] = st.session_state.get(SESSION_STATE_KEY)
    current_id = session.document.id if session is not None else None
    stale = current_id != selected if selected else current_id in forms
    if session is None or stale:
        document = copy.deepcopy(forms[selected]) if selected else FormDocument.new()
        session = FormEditSession(document)
        st.session_state[SESSION_STATE_KEY] = session
        st.session_state[ACTIVE_PAGE_STATE_KEY] = 0
    st.session_state[EDITOR_SELECTED_STATE_KEY] = selected
    return session


def render_form_settings(session: FormEditSession) -> None:
    document = session.document
    with section_card("Form settings"):
        title = st.text_input("Title", value=document.title, key=f"{document.id}_title")
        description = st.text_area(
            "Description",
            value=document.description or "",
            key=f"{document.id}_description",
        )
        is_active = st.toggle("Active", value=document.is_active, key=f"{document.id}_active")
        if title != document.title:
            _apply(lambda: session.update_form(title=title))
        if (description.strip() or None) != document.description:
            session.update_form(description=description)
        if is_active != document.is_active:
            session.update_form(is_active=is_active)
        st.markdown(
            f"Embed this form with {shortcode_markup(form_shortcode(document.id))}",
            unsafe_allow_html=True,
        )


def render_page_selector(session: FormEditSession) -> int:
    """Render page navigation and structural page buttons, returning the active page."""

    pages = session.document.pages
    active = min(st.session_state.get(ACTIVE_PAGE_STATE_KEY, 0), len(pages) - 1)
    active = st.radio(
        "Page",
        options=list(range(len(pages))),
        index=active,
        horizontal=True,
        format_func=lambda index: f"{index + 1}. {pages[index].title}",
    )
    st.session_state[ACTIVE_PAGE_STATE_KEY] = active

    add_col, up_col, down_col, delete_col = st.columns(4)
    if add_col.button("Add page", use_container_width=True):
        session.add_page()
        st.session_state[ACTIVE_PAGE_STATE_KEY] = len(pages) - 1
        st.rerun()
    if up_col.button("Move page left", use_container_width=True, disabled=active == 0):
        if session.move_page(active, -1):
            st.session_state[ACTIVE_PAGE_STATE_KEY] = active - 1
            st.rerun()
    if down_col.button("Move page right", use_container_width=True, disabled=active == len(pages) - 1):
        if session.move_page(active, 1):
            st.session_state[ACTIVE_PAGE_STATE_KEY] = active + 1
            st.rerun()
    if delete_col.button("Delete page", use_container_width=True, disabled=len(pages) <= 1):
        if _apply(lambda: session.delete_page(active)):
            st.session_state[ACTIVE_PAGE_STATE_KEY] = max(active - 1, 0)
            st.rerun()
    return active


def render_page_settings(session: FormEditSession, page_index: int) -> None:
    page = session.document.pages[page_index]
    with st.expander("Page settings", expanded=False):
        title = st.text_input("Page title", value=page.title, key=f"{page.id}_title")
        description = st.text_area(
            "Page description", value=page.description or "", key=f"{page.id}_description"
        )
        image_url = st.text_input("Header image URL", value=page.image_url or "", key=f"{page.id}_image")
        positions = [position.value for position in ImagePosition]
        image_position = st.selectbox(
            "Image position",
            options=positions,
            index=positions.index(page.image_position.value),
            key=f"{page.id}_image_position",
        )
        changes: Dict[str, Any] = {}
        if title.strip() and title.strip() != page.title:
            changes["title"] = title
        if (description.strip() or None) != page.description:
            changes["description"] = description
        if (image_url.strip() or None) != page.image_url:
            changes["image_url"] = image_url
        if image_position != page.image_position.value:
            changes["image_position"] = image_position
        if changes:
            _apply(lambda: session.update_page(page_index, **changes))
        st.markdown(
            f"Page shortcode {shortcode_markup(page_shortcode(page.id))}",
            unsafe_allow_html=True,
        )


def render_add_field(session: FormEditSession, page_index: int) -> None:
    kind_col, button_col = st.columns([3, 1])
    kind = kind_col.selectbox(
        "Field type",
        options=list(FieldKind),
        format_func=field_kind_label,
        key="builder_new_field_kind",
    )
    button_col.markdown("&nbsp;")
    if button_col.button("Add field", type="primary", use_container_width=True):
        _apply(lambda: session.add_field(kind, page_index), rerun=True)


def render_options_editor(session: FormEditSession, item: Field) -> None:
    """Edit labels, values and scores of a choice field's options."""

    st.caption("Values follow the label until you edit them yourself.")
    rows = [
        {"Label": option.label, "Value": option.value, "Score": option.score}
        for option in item.options
    ]
    edited = st.data_editor(
        pd.DataFrame(rows, columns=["Label", "Value", "Score"]),
        num_rows="fixed",
        hide_index=True,
        use_container_width=True,
        key=f"{item.id}_options_{len(rows)}",
        column_config={"Score": st.column_config.NumberColumn("Score", step=1)},
    )
    records = edited.to_dict(orient="records")
    changes = option_changes(rows, records)
    if changes:
        _apply(lambda: apply_option_changes(session, item.id, changes))

    add_col, remove_col, button_col = st.columns([1, 2, 1])
    if add_col.button("Add option", key=f"{item.id}_add_option"):
        _apply(lambda: session.add_option(item.id), rerun=True)
    remove_index = remove_col.selectbox(
        "Option to remove",
        options=list(range(len(item.options))),
        format_func=lambda index: item.options[index].label,
        key=f"{item.id}_remove_option_index",
        label_visibility="collapsed",
    )
    if button_col.button("Remove", key=f"{item.id}_remove_option") and remove_index is not None:
        _apply(lambda: session.remove_option(item.id, remove_index), rerun=True)


def render_conditional_logic(session: FormEditSession, item: Field) -> None:
    logic = item.conditional_logic
    enabled = st.checkbox("Show this field only when…", value=logic.enabled, key=f"{item.id}_logic_on")
    if enabled != logic.enabled:
        session.set_logic_enabled(item.id, enabled)
    if not enabled:
        return

    combinators = [combinator.value for combinator in Combinator]
    combinator = st.radio(
        "Match",
        options=combinators,
        index=combinators.index(logic.combinator.value),
        horizontal=True,
        format_func=lambda value: "all conditions" if value == Combinator.AND.value else "any condition",
        key=f"{item.id}_logic_combinator",
    )
    if combinator != logic.combinator.value:
        _apply(lambda: session.set_logic_combinator(item.id, combinator))

    sources = available_source_fields(session.document, item.id)
    source_ids = [source.id for source in sources]
    labels = {source.id: source.label for source in sources}
    for index, rule in enumerate(list(logic.rules)):
        source_col, operator_col, value_col, remove_col = st.columns([3, 2, 3, 1])
        options = source_ids if rule.source_field_id in source_ids else [rule.source_field_id, *source_ids]
        source_id = source_col.selectbox(
            "Field",
            options=options,
            index=options.index(rule.source_field_id),
            format_func=lambda key: labels.get(key, f"Missing field ({key})"),
            key=f"{item.id}_rule_{index}_source",
        )
        operators = list(RuleOperator)
        operator = operator_col.selectbox(
            "Condition",
            options=operators,
            index=operators.index(rule.operator),
            format_func=OPERATOR_LABELS.get,
            key=f"{item.id}_rule_{index}_operator",
        )
        source = session.document.field_by_id(source_id)
        if source is not None and source.is_choice and source.options:
            values = [option.value for option in source.options]
            current = rule.value if rule.value in values else values[0]
            value = value_col.selectbox(
                "Value",
                options=values,
                index=values.index(current),
                format_func=lambda key, source=source: source.option_by_value(key).label,
                key=f"{item.id}_rule_{index}_value_{source_id}",
            )
        else:
            value = value_col.text_input("Value", value=str(rule.value or ""), key=f"{item.id}_rule_{index}_text")

        updates: Dict[str, Any] = {}
        if source_id != rule.source_field_id:
            updates["source_field_id"] = source_id
        if operator is not rule.operator:
            updates["operator"] = operator
        if value != rule.value:
            updates["value"] = value
        if updates:
            _apply(lambda: session.update_rule(item.id, index, **updates))

        remove_col.markdown("&nbsp;")
        if remove_col.button("✕", key=f"{item.id}_rule_{index}_remove"):
            _apply(lambda: session.remove_rule(item.id, index), rerun=True)

    if st.button("Add condition", key=f"{item.id}_add_rule", disabled=not sources):
        _apply(lambda: session.add_rule(item.id), rerun=True)
    if not sources:
        st.caption("Conditions can only depend on fields that come before this one.")


def render_field(session: FormEditSession, item: Field, position: int, total: int) -> None:
    header = f"{position + 1}. {item.label or 'Untitled'} · {field_kind_label(item.kind)}"
    with st.expander(header, expanded=False):
        up_col, down_col, delete_col = st.columns(3)
        if up_col.button("Move up", key=f"{item.id}_up", disabled=position == 0):
            session.move_field(item.id, -1)
            st.rerun()
        if down_col.button("Move down", key=f"{item.id}_down", disabled=position == total - 1):
            session.move_field(item.id, 1)
            st.rerun()
        if delete_col.button("Delete field", key=f"{item.id}_delete"):
            _apply(lambda: session.delete_field(item.id), rerun=True)

        kinds = list(FieldKind)
        kind = st.selectbox(
            "Type",
            options=kinds,
            index=kinds.index(item.kind),
            format_func=field_kind_label,
            key=f"{item.id}_kind",
        )
        if kind is not item.kind:
            _apply(lambda: session.change_field_kind(item.id, kind), rerun=True)

        updates: Dict[str, Any] = {}
        label = st.text_input("Question", value=item.label, key=f"{item.id}_label")
        if label != item.label:
            updates["label"] = label
        required = st.checkbox("Required", value=item.required, key=f"{item.id}_required")
        if required != item.required:
            updates["required"] = required
        if item.kind in PLACEHOLDER_KINDS:
            placeholder = st.text_input("Placeholder", value=item.placeholder or "", key=f"{item.id}_placeholder")
            if (placeholder.strip() or None) != item.placeholder:
                updates["placeholder"] = placeholder
        guide = st.text_area("Guide", value=item.guide or "", key=f"{item.id}_guide")
        if (guide.strip() or None) != item.guide:
            updates["guide"] = guide
        if updates:
            session.update_field(item.id, **updates)

        if item.is_choice:
            render_options_editor(session, item)
        render_conditional_logic(session, item)


def render_import(session: FormEditSession) -> None:
    with st.expander("Import questions", expanded=False):
        st.markdown(IMPORT_HELP)
        text = st.text_area("Questions to import", key="builder_import_text", height=200)
        if st.button("Import", key="builder_import_button"):
            try:
                page = session.import_text(text)
            except ImportParseError as exc:
                st.error(str(exc))
                return
            st.session_state[ACTIVE_PAGE_STATE_KEY] = len(session.document.pages) - 1
            st.success(f"Imported {len(page.fields)} question(s) into a new page.")


def handle_save(session: FormEditSession) -> None:
    """Validate the document and persist it to the backend or local files."""

    errors, warnings = session.validate()
    for warning in warnings:
        st.warning(warning)
    if errors:
        for error in errors:
            st.error(error)
        return

    try:
        destination = catalog.save_form(get_backend(), session.document)
    except (requests.RequestException, OSError) as exc:
        logger.exception("Saving form %s failed", session.document.id)
        st.error(f"Could not save the form: {exc}")
        return
    session.mark_saved()
    st.session_state[EDITOR_SELECTED_STATE_KEY] = session.document.id
    load_forms.clear()
    st.success(f"Form saved ({destination}).")


def handle_delete(session: FormEditSession) -> None:
    form_id = session.document.id
    try:
        catalog.delete_form(get_backend(), form_id)
    except (requests.RequestException, OSError, ValueError) as exc:
        logger.exception("Deleting form %s failed", form_id)
        st.error(f"Could not delete the form: {exc}")
        return
    load_forms.clear()
    st.session_state.pop(SESSION_STATE_KEY, None)
    st.session_state[EDITOR_SELECTED_STATE_KEY] = NEW_FORM_CHOICE
    st.rerun()


def main() -> None:
    """Render the form builder."""

    apply_app_theme(page_title="Form builder", page_icon="🛠️")
    page_header("Form builder", "Design pages, questions and display conditions.", icon="🛠️")
    require_authentication()

    forms = load_forms_or_local()
    session = _get_session(forms)

    render_form_settings(session)
    page_index = render_page_selector(session)
    render_page_settings(session, page_index)

    page = session.document.pages[page_index]
    with section_card(page.title, page.description):
        if not page.fields:
            st.info("This page has no fields yet.")
        for position, item in enumerate(list(page.fields)):
            render_field(session, item, position, len(page.fields))
        render_add_field(session, page_index)

    render_import(session)

    _, warnings = session.validate()
    for warning in warnings:
        st.warning(warning)

    save_col, delete_col = st.columns([3, 1])
    if session.dirty:
        save_col.caption("You have unsaved changes.")
    if save_col.button("Save form", type="primary"):
        handle_save(session)
    confirm = delete_col.checkbox("Confirm delete", key="builder_confirm_delete")
    if delete_col.button("Delete form", disabled=not confirm or session.document.id not in forms):
        handle_delete(session)


if __name__ == "__main__":
    main()
