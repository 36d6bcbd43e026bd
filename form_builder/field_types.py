"""Closed set of field kinds supported by the form builder."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class FieldKind(str, Enum):
    """Every input control a questionnaire field can render as."""

    TEXT = "text"
    TEXTAREA = "textarea"
    RICHTEXT = "richtext"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    SELECT = "select"
    MULTI_SELECT = "multi-select"
    BOOLEAN = "boolean"
    RATING = "rating"
    RANGE = "range"
    IMAGE_PICKER = "image-picker"
    COLOR = "color"
    NUMBER = "number"
    CURRENCY = "currency"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    FILE_UPLOAD = "file-upload"
    SIGNATURE = "signature"
    MATRIX = "matrix"
    ADDRESS = "address"
    EMAIL = "email"
    TEL = "tel"
    URL = "url"
    PASSWORD = "password"
    NAME = "name"


CHOICE_KINDS: FrozenSet[FieldKind] = frozenset(
    {
        FieldKind.RADIO,
        FieldKind.CHECKBOX,
        FieldKind.SELECT,
        FieldKind.MULTI_SELECT,
        FieldKind.IMAGE_PICKER,
        FieldKind.MATRIX,
    }
)

# Choice kinds whose answer is a list of option values.
MULTI_VALUE_KINDS: FrozenSet[FieldKind] = frozenset(
    {FieldKind.CHECKBOX, FieldKind.MULTI_SELECT, FieldKind.IMAGE_PICKER}
)

# Kinds that get an input placeholder when created from the toolbar.
PLACEHOLDER_KINDS: FrozenSet[FieldKind] = frozenset(
    {FieldKind.TEXT, FieldKind.TEXTAREA, FieldKind.NUMBER}
)

FIELD_KIND_LABELS: Dict[FieldKind, str] = {
    FieldKind.TEXT: "Short text",
    FieldKind.TEXTAREA: "Long text",
    FieldKind.RICHTEXT: "Rich text",
    FieldKind.RADIO: "Single choice",
    FieldKind.CHECKBOX: "Checkboxes",
    FieldKind.SELECT: "Dropdown",
    FieldKind.MULTI_SELECT: "Multi select",
    FieldKind.BOOLEAN: "Yes/No",
    FieldKind.RATING: "Rating",
    FieldKind.RANGE: "Range slider",
    FieldKind.IMAGE_PICKER: "Image picker",
    FieldKind.COLOR: "Colour",
    FieldKind.NUMBER: "Number",
    FieldKind.CURRENCY: "Currency",
    FieldKind.DATE: "Date",
    FieldKind.TIME: "Time",
    FieldKind.DATETIME: "Date and time",
    FieldKind.FILE_UPLOAD: "File upload",
    FieldKind.SIGNATURE: "Signature",
    FieldKind.MATRIX: "Matrix",
    FieldKind.ADDRESS: "Address",
    FieldKind.EMAIL: "Email",
    FieldKind.TEL: "Phone number",
    FieldKind.URL: "Website",
    FieldKind.PASSWORD: "Password",
    FieldKind.NAME: "Full name",
}


def parse_field_kind(value: Any) -> Optional[FieldKind]:
    """Return the :class:`FieldKind` matching ``value`` or ``None``."""

    if isinstance(value, FieldKind):
        return value
    if not isinstance(value, str):
        return None
    try:
        return FieldKind(value.strip().lower())
    except ValueError:
        return None


def is_choice_kind(kind: FieldKind) -> bool:
    """Return ``True`` when fields of ``kind`` carry options."""

    return kind in CHOICE_KINDS


def field_kind_label(kind: FieldKind) -> str:
    return FIELD_KIND_LABELS[kind]


__all__ = [
    "CHOICE_KINDS",
    "FIELD_KIND_LABELS",
    "FieldKind",
    "MULTI_VALUE_KINDS",
    "PLACEHOLDER_KINDS",
    "field_kind_label",
    "is_choice_kind",
    "parse_field_kind",
]
