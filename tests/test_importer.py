"""Tests for the pipe-delimited question import format."""

from __future__ import annotations

import importlib

import pytest

importer = importlib.import_module("form_builder.importer")
FieldKind = importlib.import_module("form_builder.field_types").FieldKind


def test_single_text_record():
    """A plain text record becomes one required field."""

    fields = importer.parse_import_text(
        "Q1|type=text|question=Name|options=[]|condition=null|score=null"
    )

    assert len(fields) == 1
    field = fields[0]
    assert field.kind is FieldKind.TEXT
    assert field.label == "Name"
    assert field.required is True
    assert field.order == 0
    assert field.options == []
    assert field.conditional_logic.enabled is False
    assert field.score is None
    assert field.id.startswith("imported-Q1-")


def test_bracketed_options_keep_their_pipes():
    """Pipes inside the options bracket separate options."""

    (field,) = importer.parse_import_text("Q2|type=radio|question=Pick|options=[A:5|B:3]")

    assert [option.to_dict() for option in field.options] == [
        {"label": "A", "value": "a", "score": 5},
        {"label": "B", "value": "b", "score": 3},
    ]


def test_records_missing_question_take_no_order_slot():
    """Skipped records do not consume an order slot."""

    text = "\n---\n".join(
        [
            "Q1|type=text|question=First",
            "Q2|type=text",
            "Q3|question=No type",
            "Q4|type=slider|question=Unknown kind",
            "Q5|type=number|question=Second",
        ]
    )

    fields = importer.parse_import_text(text)

    assert [field.label for field in fields] == ["First", "Second"]
    assert [field.order for field in fields] == [0, 1]


def test_option_parsing_details():
    """Option labels, values and scores are parsed."""

    options = importer.parse_options("[Very Often:4|Time: evening:2|Never:x|Sometimes]")

    assert [(option.label, option.value, option.score) for option in options] == [
        ("Very Often", "very_often", 4),
        ("Time: evening", "time:_evening", 2),
        ("Never", "never", 0),
        ("Sometimes", "sometimes", 0),
    ]


def test_options_are_dropped_for_non_choice_kinds():
    """Non-choice kinds ignore imported options."""

    (field,) = importer.parse_import_text("Q|type=textarea|question=Tell us|options=[A:1]")

    assert field.options == []


def test_values_keep_text_after_the_first_equals_sign():
    """Only the first ``=`` splits key and value."""

    (field,) = importer.parse_import_text("Q|type=text|question=Is 1+1=2?")

    assert field.label == "Is 1+1=2?"


def test_condition_enables_logic_without_rules():
    """A condition enables logic but adds no rules."""

    records = importer.parse_import_records("Q|type=text|question=Why?|condition=Q1=yes|score=3")

    (record,) = records
    assert record.question_id == "Q"
    assert record.condition == "Q1=yes"
    assert record.field.conditional_logic.enabled is True
    assert record.field.conditional_logic.rules == []
    assert record.field.score == 3


def test_empty_import_raises():
    """An import without usable records raises."""

    with pytest.raises(importer.ImportParseError):
        importer.parse_import_text("---\nQ1|type=text\n---")


def test_matrix_ignores_imported_options():
    """Matrix fields keep the default options instead of the imported ones."""

    (field,) = importer.parse_import_text("Q|type=matrix|question=Rate|options=[Low:1|High:5]")

    assert field.kind is FieldKind.MATRIX
    assert [option.value for option in field.options] == ["option1", "option2"]


def test_choice_record_without_options_gets_defaults():
    """A choice record with an empty options list stays saveable."""

    (field,) = importer.parse_import_text("Q|type=radio|question=Pick|options=[]")

    assert [(option.label, option.value) for option in field.options] == [
        ("Option 1", "option1"),
        ("Option 2", "option2"),
    ]
