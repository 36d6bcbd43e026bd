"""Tests for answer scoring and shortcode helpers."""

from __future__ import annotations

import importlib

scoring = importlib.import_module("form_builder.scoring")
shortcodes = importlib.import_module("form_builder.shortcodes")
document = importlib.import_module("form_builder.document")
FieldKind = importlib.import_module("form_builder.field_types").FieldKind


def _options(*pairs):
    return [document.Option(label=label, value=label.lower(), score=score) for label, score in pairs]


def _document():
    mood = document.Field(
        id="mood",
        kind=FieldKind.RADIO,
        label="Mood",
        options=_options(("Good", 5), ("Bad", 1)),
    )
    habits = document.Field(
        id="habits",
        kind=FieldKind.CHECKBOX,
        label="Habits",
        order=1,
        options=_options(("Sport", 3), ("Reading", 2), ("Smoking", -4)),
    )
    follow_up = document.Field(
        id="follow_up",
        kind=FieldKind.SELECT,
        label="Why bad?",
        order=2,
        options=_options(("Work", 2)),
        conditional_logic=document.ConditionalLogic(
            enabled=True,
            rules=[document.ConditionalRule("mood", document.RuleOperator.EQUALS, "bad")],
        ),
    )
    notes = document.Field(id="notes", kind=FieldKind.TEXT, label="Notes", order=3)
    page = document.Page(id="p", title="Page", fields=[mood, habits, follow_up, notes])
    return document.FormDocument(id="f", title="Scored", pages=[page])


def test_score_answers_sums_selected_options():
    """Selected option scores are summed."""

    summary = scoring.score_answers(_document(), {"mood": "good", "habits": ["sport", "smoking"], "notes": "x"})

    assert summary.total == 4
    assert summary.max_total == 10
    assert summary.by_field() == {"mood": 5, "habits": -1}


def test_hidden_fields_do_not_score():
    """Hidden fields add nothing to the score."""

    doc = _document()

    hidden = scoring.score_answers(doc, {"mood": "good", "follow_up": "work"})
    shown = scoring.score_answers(doc, {"mood": "bad", "follow_up": "work"})

    assert "follow_up" not in hidden.by_field()
    assert shown.by_field()["follow_up"] == 2
    assert shown.total == 3


def test_unknown_answers_score_zero():
    """Answers without a matching option score zero."""

    summary = scoring.score_answers(_document(), {"mood": "excellent"})

    assert summary.total == 0
    assert summary.by_field()["mood"] == 0


def test_form_and_page_shortcodes():
    """Form and page shortcodes embed the id."""

    assert shortcodes.form_shortcode("abc") == '[simoly_form id="abc"]'
    assert shortcodes.page_shortcode('p"1') == '[simoly_page id="p1"]'


def test_ai_report_shortcode_with_optional_provider():
    """The provider attribute is optional."""

    assert (
        shortcodes.ai_report_shortcode("q1", "p1")
        == '[simoly_ai_report questionnaire_id="q1" prompt_id="p1"]'
    )
    assert (
        shortcodes.ai_report_shortcode("q1", "p1", "openai")
        == '[simoly_ai_report questionnaire_id="q1" prompt_id="p1" provider="openai"]'
    )
