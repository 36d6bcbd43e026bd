"""Tests for the form document model and its JSON representation."""

from __future__ import annotations

import importlib

document = importlib.import_module("form_builder.document")
field_types = importlib.import_module("form_builder.field_types")

FieldKind = field_types.FieldKind


def _payload():
    return {
        "id": "survey",
        "title": "  Customer survey ",
        "isActive": False,
        "createdAt": "2024-01-01T00:00:00+00:00",
        "pages": [
            {
                "id": "second",
                "title": "Second",
                "order": 1,
                "fields": [{"id": "q3", "type": "text", "label": "Anything else?"}],
            },
            {
                "id": "first",
                "title": "First",
                "order": 0,
                "imageUrl": "https://example.com/header.png",
                "imagePosition": "LEFT",
                "fields": [
                    {
                        "id": "q2",
                        "type": "radio",
                        "label": "Recommend us?",
                        "order": 1,
                        "options": [
                            {"label": "Yes", "value": "yes", "score": "5"},
                            {"label": "No", "score": None},
                        ],
                        "conditionalLogic": {
                            "enabled": True,
                            "operator": "or",
                            "rules": [
                                {"sourceFieldId": "q1", "condition": "equals", "value": "a"},
                                {"condition": "equals"},
                            ],
                        },
                    },
                    {"id": "q1", "type": "text", "label": "Name", "order": 0, "description": "Full name"},
                    {"id": "legacy", "type": "slider", "label": "Dropped"},
                ],
            },
        ],
    }


def test_from_dict_sorts_pages_and_fields_and_repairs_data():
    """Stored payloads are sorted and repaired on load."""

    doc = document.FormDocument.from_dict(_payload())

    assert doc.title == "Customer survey"
    assert doc.is_active is False
    assert [page.id for page in doc.pages] == ["first", "second"]
    assert [page.order for page in doc.pages] == [0, 1]

    first = doc.pages[0]
    assert [item.id for item in first.fields] == ["q1", "q2"]
    assert [item.order for item in first.fields] == [0, 1]
    assert first.image_position is document.ImagePosition.LEFT
    assert first.fields[0].guide == "Full name"

    radio = first.fields[1]
    assert radio.kind is FieldKind.RADIO
    assert [option.to_dict() for option in radio.options] == [
        {"label": "Yes", "value": "yes", "score": 5},
        {"label": "No", "value": "no", "score": 0},
    ]
    assert radio.conditional_logic.combinator is document.Combinator.OR
    assert len(radio.conditional_logic.rules) == 1


def test_unknown_field_kinds_are_dropped():
    """Fields with an unknown kind are skipped."""

    doc = document.FormDocument.from_dict(_payload())

    assert doc.field_by_id("legacy") is None
    assert doc.field_count() == 3


def test_empty_payload_gets_a_default_page():
    """An empty payload still yields one page."""

    doc = document.FormDocument.from_dict({}, form_id="fallback")

    assert doc.id == "fallback"
    assert doc.title == "New form"
    assert len(doc.pages) == 1
    assert doc.pages[0].title == "Page 1"


def test_to_dict_writes_structural_page_index():
    """``pageIndex`` is written from the field's page."""

    doc = document.FormDocument.from_dict(_payload())
    payload = doc.to_dict()

    assert payload["isActive"] is False
    assert payload["pages"][0]["imageUrl"] == "https://example.com/header.png"
    assert payload["pages"][0]["imagePosition"] == "left"
    assert {item["pageIndex"] for item in payload["pages"][0]["fields"]} == {0}
    assert payload["pages"][1]["fields"][0]["pageIndex"] == 1
    rule = payload["pages"][0]["fields"][1]["conditionalLogic"]["rules"][0]
    assert rule == {"sourceFieldId": "q1", "condition": "equals", "value": "a"}


def test_options_are_only_serialised_for_choice_fields():
    """Non-choice fields serialise without options."""

    field = document.Field(
        id="q",
        kind=FieldKind.TEXT,
        label="Text",
        options=[document.Option(label="Stale", value="stale")],
    )

    assert "options" not in field.to_dict(0)


def test_round_trip_preserves_document():
    """Serialising and loading again gives the same document."""

    doc = document.FormDocument.from_dict(_payload())

    assert document.FormDocument.from_dict(doc.to_dict()) == doc


def test_locate_helpers():
    """Fields and pages can be found by id."""

    doc = document.FormDocument.from_dict(_payload())

    assert doc.locate_field("q2") == (0, 1)
    assert doc.page_index_of("q3") == 1
    assert doc.page_index_of("missing") is None
    assert doc.page_index_by_id("second") == 1
    assert [page_index for page_index, _ in doc.iter_fields()] == [0, 0, 1]


def test_non_numeric_field_score_is_ignored():
    """A non-numeric field score is dropped."""

    field = document.Field.from_dict(
        {"id": "q", "type": "radio", "label": "Pick", "score": "Selected score"}
    )

    assert field is not None
    assert field.score is None


def test_parse_field_kind_accepts_known_values_only():
    """Only known kind strings parse."""

    assert field_types.parse_field_kind("multi-select") is FieldKind.MULTI_SELECT
    assert field_types.parse_field_kind(" Radio ") is FieldKind.RADIO
    assert field_types.parse_field_kind("slider") is None
    assert field_types.is_choice_kind(FieldKind.MATRIX)
    assert not field_types.is_choice_kind(FieldKind.BOOLEAN)
