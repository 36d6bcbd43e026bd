"""Tests for the helpers defined alongside the Streamlit pages."""

from __future__ import annotations

import importlib
import importlib.util
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

document = importlib.import_module("form_builder.document")
FieldKind = importlib.import_module("form_builder.field_types").FieldKind
FormEditSession = importlib.import_module("form_builder.session").FormEditSession
conditions = importlib.import_module("form_builder.conditions")


def _load_page(filename: str, module_name: str):
    spec = importlib.util.spec_from_file_location(module_name, REPO_ROOT / "pages" / filename)
    if spec is None or spec.loader is None:  # pragma: no cover
        raise RuntimeError(f"Could not load {filename} for testing.")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


BUILDER = _load_page("01_Form_Builder.py", "form_builder_page")
PREVIEW = _load_page("02_Form_Preview.py", "form_preview_page")
PLANS = _load_page("03_Plans.py", "plans_page")
PROMPTS = _load_page("04_Prompt_Templates.py", "prompt_templates_page")
HOME = importlib.import_module("Home")


def test_option_changes_detects_edits_per_column():
    """Option table edits are reported per cell."""

    current = [
        {"Label": "Option 1", "Value": "option1", "Score": 0},
        {"Label": "Option 2", "Value": "option2", "Score": 1},
    ]
    edited = [
        {"Label": "Yes", "Value": "option1", "Score": "3"},
        {"Label": "Option 2", "Value": "no", "Score": float("nan")},
    ]

    assert BUILDER.option_changes(current, edited) == [(0, "Label", "Yes"), (0, "Score", 3), (1, "Value", "no")]


def test_apply_option_changes_goes_through_the_session():
    """Option table edits are applied by the session."""

    session = FormEditSession()
    field = session.add_field(FieldKind.RADIO)

    BUILDER.apply_option_changes(session, field.id, [(0, "Label", "Often"), (1, "Score", 2.5)])

    assert field.options[0].label == "Often"
    assert field.options[0].value == "often"
    assert field.options[1].score == 2.5
    assert session.dirty is True


def test_is_answered():
    """Blank strings and empty lists count as unanswered."""

    assert PREVIEW.is_answered("x") is True
    assert PREVIEW.is_answered(0) is True
    assert PREVIEW.is_answered(False) is True
    assert PREVIEW.is_answered("  ") is False
    assert PREVIEW.is_answered([]) is False
    assert PREVIEW.is_answered(None) is False


def test_missing_required_ignores_hidden_fields():
    """Hidden required fields are not reported."""

    session = FormEditSession()
    trigger = session.add_field(FieldKind.RADIO)
    follow_up = session.add_field(FieldKind.TEXT)
    session.add_field(FieldKind.TEXT)
    session.update_field(trigger.id, required=True)
    session.update_field(follow_up.id, required=True)
    session.add_rule(follow_up.id)
    session.update_rule(follow_up.id, 0, value="option2")
    session.set_logic_enabled(follow_up.id, True)
    doc = session.document

    assert [item.id for item in PREVIEW.missing_required(doc, {})] == [trigger.id]
    assert [item.id for item in PREVIEW.missing_required(doc, {trigger.id: "option2"})] == [follow_up.id]
    assert PREVIEW.missing_required(doc, {trigger.id: "option1"}) == []


def test_page_position_is_clamped_to_visible_pages():
    """The stored page position stays inside the visible pages."""

    assert PREVIEW.page_position([0, 2, 3], 5) == 2
    assert PREVIEW.page_position([0, 2], -1) == 0
    assert PREVIEW.page_position([1], 0) == 0


def test_mutually_dependent_fields_hide_every_page():
    """Fields conditioned on each other leave no page to show."""

    session = FormEditSession()
    session.add_page()
    second = session.add_field(FieldKind.TEXT, 0)
    first = session.add_field(FieldKind.TEXT, 1)
    session.add_rule(first.id)
    session.update_rule(first.id, 0, value="x")
    session.set_logic_enabled(first.id, True)
    session.move_page(1, -1)
    session.add_rule(second.id)
    session.update_rule(second.id, 0, value="y")
    session.set_logic_enabled(second.id, True)

    errors, warnings = session.validate()
    pages = conditions.visible_pages(session.document, {})

    assert errors == []
    assert len(warnings) == 1
    assert pages == []
    assert PREVIEW.page_position(pages, 0) is None


def test_guide_markup_escapes_html():
    """Guide text is escaped before it is rendered as HTML."""

    markup = PREVIEW.guide_markup("<b>Bold</b> & more")

    assert markup == "<p class='fb-field-guide'>&lt;b&gt;Bold&lt;/b&gt; &amp; more</p>"


def test_settings_defaults_fill_missing_values():
    """Missing plan settings get defaults."""

    defaults = PLANS.settings_defaults(None)

    assert defaults["is_free"] is False
    assert defaults["retake_limit"] == 0
    assert PLANS.settings_defaults({"retake_limit": "3", "is_periodic": 1})["retake_limit"] == 3


def test_ordered_questionnaire_ids():
    """Plan links are ordered by sequence."""

    links = [
        {"questionnaire_id": "b", "sequence_order": 2},
        {"questionnaire_id": "a", "sequence_order": 1},
        {"questionnaire_id": None, "sequence_order": 0},
    ]

    assert PLANS.ordered_questionnaire_ids(links) == ["a", "b"]


def test_blank_prompt_targets_plan_and_questionnaire():
    """A new prompt belongs to its plan and questionnaire."""

    prompt = PROMPTS.blank_prompt("p1", "q1", 2)

    assert prompt["id"] is None
    assert (prompt["plan_id"], prompt["questionnaire_id"], prompt["sequence_index"]) == ("p1", "q1", 2)


def test_form_table_rows():
    """The home table summarises each form."""

    form = document.FormDocument.new("Survey", form_id="survey")
    form.is_active = False

    (row,) = HOME.form_table_rows({"survey": form})

    assert row["Title"] == "Survey"
    assert row["Status"] == "Draft"
    assert row["Pages"] == 1
    assert row["Fields"] == 0
    assert row["Shortcode"] == '[simoly_form id="survey"]'
    assert tuple(row) == HOME.TABLE_COLUMNS
