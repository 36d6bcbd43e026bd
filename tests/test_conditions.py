"""Tests for conditional visibility evaluation."""

from __future__ import annotations

import importlib

import pytest

conditions = importlib.import_module("form_builder.conditions")
document = importlib.import_module("form_builder.document")
FieldKind = importlib.import_module("form_builder.field_types").FieldKind

Rule = document.ConditionalRule
Operator = document.RuleOperator


def _field(field_id, kind=FieldKind.TEXT, order=0, logic=None, options=None):
    return document.Field(
        id=field_id,
        kind=kind,
        label=field_id.upper(),
        order=order,
        options=options or [],
        conditional_logic=logic or document.ConditionalLogic(),
    )


def _logic(*rules, combinator=document.Combinator.AND, enabled=True):
    return document.ConditionalLogic(enabled=enabled, combinator=combinator, rules=list(rules))


def _document():
    page_one = document.Page(
        id="p1",
        title="One",
        order=0,
        fields=[
            _field("colour", FieldKind.RADIO, 0),
            _field("age", FieldKind.NUMBER, 1),
            _field(
                "why_red",
                order=2,
                logic=_logic(Rule("colour", Operator.EQUALS, "red")),
            ),
        ],
    )
    page_two = document.Page(
        id="p2",
        title="Two",
        order=1,
        fields=[
            _field("adult_only", order=0, logic=_logic(Rule("age", Operator.GREATER, 17))),
        ],
    )
    return document.FormDocument(id="f", title="Form", pages=[page_one, page_two])


@pytest.mark.parametrize(
    "combinator,expected",
    [(document.Combinator.AND, False), (document.Combinator.OR, True)],
)
def test_combinators(combinator, expected):
    """Rules combine with ``and`` and ``or`` as expected."""

    field = _field(
        "target",
        logic=_logic(
            Rule("a", Operator.EQUALS, "yes"),
            Rule("b", Operator.EQUALS, "yes"),
            combinator=combinator,
        ),
    )

    assert conditions.should_show_field(field, {"a": "yes", "b": "no"}) is expected


def test_disabled_logic_is_always_visible():
    """Disabled logic never hides a field."""

    field = _field("target", logic=_logic(Rule("a", Operator.EQUALS, "yes"), enabled=False))

    assert conditions.should_show_field(field, {"a": "no"})


def test_enabled_logic_without_rules_is_visible():
    """Enabled logic with no rules keeps the field visible."""

    assert conditions.should_show_field(_field("target", logic=_logic()), {})


@pytest.mark.parametrize(
    "operator,answer,value,expected",
    [
        (Operator.EQUALS, "red", "red", True),
        (Operator.EQUALS, True, "true", True),
        (Operator.EQUALS, 3.0, "3", True),
        (Operator.EQUALS, None, "", True),
        (Operator.EQUALS, ["red"], "red", True),
        (Operator.EQUALS, ["red", "blue"], "red", False),
        (Operator.NOT_EQUALS, "blue", "red", True),
        (Operator.CONTAINS, "dark red", "red", True),
        (Operator.CONTAINS, ["red", "blue"], "blue", True),
        (Operator.CONTAINS, None, "red", False),
        (Operator.NOT_CONTAINS, ["red"], "blue", True),
        (Operator.GREATER, "18", 17, True),
        (Operator.GREATER, 10, "17", False),
        (Operator.LESS, 3, "4.5", True),
        (Operator.GREATER, "many", 1, False),
        (Operator.LESS, None, 1, False),
    ],
)
def test_operator_semantics(operator, answer, value, expected):
    """Each operator compares answers the documented way."""

    rule = Rule("source", operator, value)

    assert conditions.evaluate_rule(rule, {"source": answer}) is expected


def test_rule_on_unknown_field_is_false_even_when_negated():
    """Rules on missing fields are false for every operator."""

    doc = _document()
    rule = Rule("ghost", Operator.NOT_EQUALS, "x")

    assert conditions.evaluate_rule(rule, {}, doc) is False


def test_visible_pages_and_fields():
    """Only pages with a visible field are shown."""

    doc = _document()

    assert [item.id for item in conditions.visible_fields(doc.pages[0], {}, doc)] == ["colour", "age"]
    assert conditions.visible_pages(doc, {"age": 12}) == [0]
    assert conditions.visible_pages(doc, {"age": 40}) == [0, 1]


def test_empty_pages_count_as_visible():
    """Pages without fields stay visible."""

    doc = _document()
    doc.pages.append(document.Page(id="p3", title="Thanks", order=2))

    assert conditions.visible_pages(doc, {"age": 12}) == [0, 2]


def test_prune_hidden_answers_drops_hidden_and_unknown_keys():
    """Answers for hidden or unknown fields are removed."""

    doc = _document()
    answers = {"colour": "blue", "why_red": "because", "age": 12, "adult_only": "x", "stale": 1}

    removed = conditions.prune_hidden_answers(doc, answers)

    assert answers == {"colour": "blue", "age": 12}
    assert sorted(removed) == ["adult_only", "stale", "why_red"]


def test_available_source_fields_are_strictly_earlier():
    """Conditions may only depend on earlier fields."""

    doc = _document()

    assert [item.id for item in conditions.available_source_fields(doc, "why_red")] == ["colour", "age"]
    assert [item.id for item in conditions.available_source_fields(doc, "colour")] == []
    assert len(conditions.available_source_fields(doc, "adult_only")) == 3
    assert conditions.available_source_fields(doc, "missing") == []


def test_find_rule_issues_reports_forward_and_unknown_references():
    """Forward and unknown references are both reported."""

    doc = _document()
    doc.pages[0].fields[0].conditional_logic = _logic(
        Rule("age", Operator.EQUALS, "1"),
        Rule("ghost", Operator.EQUALS, "1"),
    )

    issues = conditions.find_rule_issues(doc)

    assert {(issue.field_id, issue.source_field_id, issue.kind) for issue in issues} == {
        ("colour", "age", "forward"),
        ("colour", "ghost", "unknown"),
    }
    assert all(issue.message for issue in issues)
