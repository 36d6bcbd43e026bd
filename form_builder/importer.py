"""Parse the pipe-delimited bulk import format into form fields.

Records are separated by ``---`` and look like::

    Q1|type=text|question=Describe yourself|options=[]|condition=null|score=null
    ---
    Q2|type=radio|question=How confident are you?|options=[Very:5|Somewhat:3]|condition=null

The first token is a free-form question id. The remaining tokens are
``key=value`` pairs; a ``|`` inside the ``[...]`` options bracket belongs to
the options list and does not start a new token. There is no escaping, so a
label cannot contain ``|``, ``]`` or ``---``.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from form_builder.document import ConditionalLogic, Field, Option, default_options
from form_builder.field_types import FieldKind, is_choice_kind, parse_field_kind
from form_builder.form_utils import coerce_number, slugify_option_label

logger = logging.getLogger(__name__)

RECORD_SEPARATOR = "---"
TOKEN_SEPARATOR = "|"
KNOWN_KEYS = ("type", "question", "options", "condition", "score")
EMPTY_OPTIONS = "[]"
NULL_TOKEN = "null"

# Matrix fields are choice fields but take no options from the import text.
IMPORT_OPTION_KINDS = frozenset(
    {
        FieldKind.RADIO,
        FieldKind.CHECKBOX,
        FieldKind.SELECT,
        FieldKind.MULTI_SELECT,
        FieldKind.IMAGE_PICKER,
    }
)

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


class ImportParseError(Exception):
    """Raised when an import block yields no usable records."""


@dataclass
class ParsedRecord:
    """A parsed record together with its untranslated condition text."""

    question_id: str
    field: Field
    condition: Optional[str] = None


def _split_tokens(record: str) -> List[str]:
    """Split ``record`` on ``|`` while keeping bracketed option lists intact."""

    tokens: List[str] = []
    current: List[str] = []
    depth = 0
    for char in record:
        if char == "[":
            depth += 1
        elif char == "]" and depth:
            depth -= 1
        if char == TOKEN_SEPARATOR and depth == 0:
            tokens.append("".join(current))
            current = []
            continue
        current.append(char)
    tokens.append("".join(current))
    return [token.strip() for token in tokens]


def _token_values(tokens: List[str]) -> Dict[str, str]:
    """Return the first value seen for each known key."""

    values: Dict[str, str] = {}
    for token in tokens:
        key, separator, value = token.partition("=")
        key = key.strip()
        if not separator or key not in KNOWN_KEYS or key in values:
            continue
        values[key] = value.strip()
    return values


def _leading_int(text: str) -> int:
    match = _LEADING_INT_RE.match(text or "")
    return int(match.group(1)) if match else 0


def parse_options(raw: str) -> List[Option]:
    """Parse ``[Label:score|Label:score]`` into options."""

    text = (raw or "").strip()
    if not text or text == EMPTY_OPTIONS:
        return []
    if text.startswith("["):
        text = text[1:]
    if text.endswith("]"):
        text = text[:-1]

    options: List[Option] = []
    for chunk in text.split(TOKEN_SEPARATOR):
        label, separator, score_text = chunk.rpartition(":")
        if not separator:
            label, score_text = chunk, ""
        label = label.strip()
        if not label:
            continue
        options.append(
            Option(label=label, value=slugify_option_label(label), score=_leading_int(score_text))
        )
    return options


def _parse_field_score(raw: Optional[str]) -> Optional[float | int]:
    if raw is None or raw == NULL_TOKEN:
        return None
    number = coerce_number(raw)
    if number != number:
        return None
    return int(number) if number.is_integer() else number


def parse_record(record: str, order: int) -> Optional[ParsedRecord]:
    """Parse one record, returning ``None`` when it should be skipped."""

    tokens = _split_tokens(record)
    question_id = tokens[0] if tokens else ""
    values = _token_values(tokens[1:])

    raw_type = values.get("type")
    label = values.get("question")
    if not raw_type or not label:
        return None

    kind = parse_field_kind(raw_type)
    if kind is None:
        logger.warning("Skipping import record %s with unknown type %r", question_id, raw_type)
        return None

    options = parse_options(values.get("options", "")) if kind in IMPORT_OPTION_KINDS else []
    if is_choice_kind(kind) and not options:
        options = default_options()

    condition = values.get("condition")
    # TODO: translate the textual condition into ConditionalRule objects once
    # the import format defines how it names source fields and operators.
    logic = ConditionalLogic(enabled=bool(condition) and condition != NULL_TOKEN)

    parsed_field = Field(
        id=f"imported-{question_id or 'field'}-{uuid.uuid4().hex[:8]}",
        kind=kind,
        label=label,
        required=True,
        options=options,
        order=order,
        conditional_logic=logic,
        score=_parse_field_score(values.get("score")),
    )
    return ParsedRecord(
        question_id=question_id,
        field=parsed_field,
        condition=condition if logic.enabled else None,
    )


def parse_import_records(text: str) -> List[ParsedRecord]:
    """Parse every record in ``text``; skipped records take no order slot."""

    records: List[ParsedRecord] = []
    for chunk in (text or "").strip().split(RECORD_SEPARATOR):
        chunk = chunk.strip()
        if not chunk:
            continue
        parsed = parse_record(chunk, len(records))
        if parsed is None:
            logger.debug("Skipping import record: %.40s", chunk)
            continue
        records.append(parsed)
    return records


def parse_import_text(text: str) -> List[Field]:
    """Return the fields described by ``text``.

    Raises :class:`ImportParseError` when no record could be parsed.
    """

    fields = [record.field for record in parse_import_records(text)]
    if not fields:
        raise ImportParseError("No questions imported. Check the import format.")
    return fields


__all__ = [
    "ImportParseError",
    "ParsedRecord",
    "parse_import_records",
    "parse_import_text",
    "parse_options",
    "parse_record",
]
