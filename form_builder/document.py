"""In-memory form document model and its JSON representation.

A :class:`FormDocument` owns an ordered list of :class:`Page` objects and each
page owns its :class:`Field` objects directly. The page a field lives on is
derived from that structure; ``pageIndex`` only appears in the serialised
payload, where it is always rewritten from the field's current position.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from form_builder.field_types import FieldKind, is_choice_kind, parse_field_kind
from form_builder.form_utils import (
    clean_text,
    coerce_number,
    default_option_label,
    default_option_value,
    ensure_list,
    ensure_mapping,
    new_identifier,
    optional_text,
    slugify_option_label,
    utc_now_iso,
)
from form_builder.schema_defaults import DEFAULT_CHOICE_OPTION_COUNT, DEFAULT_FORM_TITLE, default_page_title

logger = logging.getLogger(__name__)


class ImagePosition(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


class Combinator(str, Enum):
    AND = "and"
    OR = "or"


class RuleOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER = "greater"
    LESS = "less"


def _parse_enum(enum_cls: Any, value: Any, default: Any) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(clean_text(value).lower())
    except ValueError:
        return default


def _parse_score(value: Any) -> float | int:
    score = _optional_score(value)
    return 0 if score is None else score


def _optional_score(value: Any) -> Optional[float | int]:
    if value is None:
        return None
    number = coerce_number(value)
    if number != number:
        return None
    return int(number) if number.is_integer() else number


def _parse_order(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return 0


@dataclass
class Option:
    """A selectable answer for a choice field."""

    label: str
    value: str
    score: float | int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "value": self.value, "score": self.score}

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["Option"]:
        data = ensure_mapping(payload)
        if not data:
            return None
        label = clean_text(data.get("label"))
        value = clean_text(data.get("value")) or slugify_option_label(label)
        if not label and not value:
            return None
        return cls(label=label, value=value, score=_parse_score(data.get("score")))


@dataclass
class ConditionalRule:
    """Compare the answer of an earlier field against ``value``."""

    source_field_id: str
    operator: RuleOperator = RuleOperator.EQUALS
    value: Any = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceFieldId": self.source_field_id,
            "condition": self.operator.value,
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["ConditionalRule"]:
        data = ensure_mapping(payload)
        source = clean_text(data.get("sourceFieldId"))
        if not source:
            return None
        value = data.get("value", "")
        return cls(
            source_field_id=source,
            operator=_parse_enum(RuleOperator, data.get("condition"), RuleOperator.EQUALS),
            value="" if value is None else value,
        )


@dataclass
class ConditionalLogic:
    """Visibility predicate attached to a field."""

    enabled: bool = False
    combinator: Combinator = Combinator.AND
    rules: List[ConditionalRule] = dataclass_field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "operator": self.combinator.value,
            "rules": [rule.to_dict() for rule in self.rules],
        }

    @classmethod
    def from_dict(cls, payload: Any) -> "ConditionalLogic":
        data = ensure_mapping(payload)
        rules = [ConditionalRule.from_dict(item) for item in ensure_list(data.get("rules"))]
        return cls(
            enabled=bool(data.get("enabled")),
            combinator=_parse_enum(Combinator, data.get("operator"), Combinator.AND),
            rules=[rule for rule in rules if rule is not None],
        )


@dataclass
class Field:
    """A single question on a page."""

    id: str
    kind: FieldKind
    label: str
    required: bool = False
    placeholder: Optional[str] = None
    guide: Optional[str] = None
    options: List[Option] = dataclass_field(default_factory=list)
    order: int = 0
    conditional_logic: ConditionalLogic = dataclass_field(default_factory=ConditionalLogic)
    score: Optional[float | int] = None

    @property
    def is_choice(self) -> bool:
        return is_choice_kind(self.kind)

    def option_by_value(self, value: Any) -> Optional[Option]:
        text = clean_text(value)
        return next((option for option in self.options if option.value == text), None)

    def to_dict(self, page_index: int) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "label": self.label,
            "required": self.required,
            "pageIndex": page_index,
            "order": self.order,
            "conditionalLogic": self.conditional_logic.to_dict(),
        }
        if self.placeholder:
            payload["placeholder"] = self.placeholder
        if self.guide:
            payload["guide"] = self.guide
        if self.is_choice:
            payload["options"] = [option.to_dict() for option in self.options]
        if self.score is not None:
            payload["score"] = self.score
        return payload

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["Field"]:
        data = ensure_mapping(payload)
        field_id = clean_text(data.get("id"))
        if not field_id:
            return None
        kind = parse_field_kind(data.get("type"))
        if kind is None:
            logger.warning("Dropping field %s with unsupported type %r", field_id, data.get("type"))
            return None

        options: List[Option] = []
        if is_choice_kind(kind):
            parsed = [Option.from_dict(item) for item in ensure_list(data.get("options"))]
            options = [option for option in parsed if option is not None]

        return cls(
            id=field_id,
            kind=kind,
            label=clean_text(data.get("label")),
            required=bool(data.get("required")),
            placeholder=optional_text(data.get("placeholder")),
            guide=optional_text(data.get("guide") or data.get("description")),
            options=options,
            order=_parse_order(data.get("order")),
            conditional_logic=ConditionalLogic.from_dict(data.get("conditionalLogic")),
            score=_optional_score(data.get("score")),
        )


@dataclass
class Page:
    """An ordered subdivision of a form."""

    id: str
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    image_position: ImagePosition = ImagePosition.TOP
    fields: List[Field] = dataclass_field(default_factory=list)
    order: int = 0

    def field_by_id(self, field_id: str) -> Optional[Field]:
        return next((item for item in self.fields if item.id == field_id), None)

    def to_dict(self, page_index: int) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "order": self.order,
            "fields": [item.to_dict(page_index) for item in self.fields],
        }
        if self.description:
            payload["description"] = self.description
        if self.image_url:
            payload["imageUrl"] = self.image_url
            payload["imagePosition"] = self.image_position.value
        return payload

    @classmethod
    def from_dict(cls, payload: Any, position: int) -> Optional["Page"]:
        data = ensure_mapping(payload)
        if not data:
            return None
        fields = [Field.from_dict(item) for item in ensure_list(data.get("fields"))]
        kept = sorted((item for item in fields if item is not None), key=lambda item: item.order)
        for index, item in enumerate(kept):
            item.order = index
        return cls(
            id=clean_text(data.get("id")) or new_identifier("page"),
            title=clean_text(data.get("title")) or default_page_title(position),
            description=optional_text(data.get("description")),
            image_url=optional_text(data.get("imageUrl")),
            image_position=_parse_enum(ImagePosition, data.get("imagePosition"), ImagePosition.TOP),
            fields=kept,
            order=position,
        )


def new_page(position: int, title: Optional[str] = None) -> Page:
    """Return an empty page for ``position`` (0-based)."""

    return Page(id=new_identifier("page"), title=title or default_page_title(position), order=position)


def default_options() -> List[Option]:
    return [
        Option(label=default_option_label(position), value=default_option_value(position))
        for position in range(1, DEFAULT_CHOICE_OPTION_COUNT + 1)
    ]


@dataclass
class FormDocument:
    """Top-level questionnaire containing pages of fields."""

    id: str
    title: str
    description: Optional[str] = None
    pages: List[Page] = dataclass_field(default_factory=list)
    is_active: bool = True
    created_at: str = dataclass_field(default_factory=utc_now_iso)
    updated_at: str = dataclass_field(default_factory=utc_now_iso)

    @classmethod
    def new(cls, title: str = DEFAULT_FORM_TITLE, form_id: Optional[str] = None) -> "FormDocument":
        """Return a fresh document holding a single empty page."""

        return cls(id=form_id or new_identifier("form"), title=title, pages=[new_page(0)])

    def iter_fields(self) -> Iterator[Tuple[int, Field]]:
        """Yield ``(page_index, field)`` pairs in document order."""

        for page_index, page in enumerate(self.pages):
            for item in page.fields:
                yield page_index, item

    def locate_field(self, field_id: str) -> Optional[Tuple[int, int]]:
        """Return ``(page_index, position)`` for ``field_id`` if present."""

        for page_index, page in enumerate(self.pages):
            for position, item in enumerate(page.fields):
                if item.id == field_id:
                    return page_index, position
        return None

    def field_by_id(self, field_id: str) -> Optional[Field]:
        location = self.locate_field(field_id)
        if location is None:
            return None
        page_index, position = location
        return self.pages[page_index].fields[position]

    def page_index_of(self, field_id: str) -> Optional[int]:
        location = self.locate_field(field_id)
        return location[0] if location else None

    def page_index_by_id(self, page_id: str) -> Optional[int]:
        return next((index for index, page in enumerate(self.pages) if page.id == page_id), None)

    def field_count(self) -> int:
        return sum(len(page.fields) for page in self.pages)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "pages": [page.to_dict(index) for index, page in enumerate(self.pages)],
            "isActive": self.is_active,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.description:
            payload["description"] = self.description
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], form_id: Optional[str] = None) -> "FormDocument":
        """Build a document from a stored payload, repairing what it can."""

        data = ensure_mapping(payload)
        pages: List[Page] = []
        for raw_page in sorted(
            (item for item in ensure_list(data.get("pages")) if isinstance(item, Mapping)),
            key=lambda item: item.get("order") if isinstance(item.get("order"), int) else 0,
        ):
            page = Page.from_dict(raw_page, len(pages))
            if page is not None:
                pages.append(page)
        if not pages:
            pages.append(new_page(0))

        now = utc_now_iso()
        return cls(
            id=clean_text(data.get("id")) or form_id or new_identifier("form"),
            title=clean_text(data.get("title")) or DEFAULT_FORM_TITLE,
            description=optional_text(data.get("description")),
            pages=pages,
            is_active=bool(data.get("isActive", True)),
            created_at=clean_text(data.get("createdAt")) or now,
            updated_at=clean_text(data.get("updatedAt")) or now,
        )


__all__ = [
    "Combinator",
    "ConditionalLogic",
    "ConditionalRule",
    "Field",
    "FormDocument",
    "ImagePosition",
    "Option",
    "Page",
    "RuleOperator",
    "default_options",
    "new_page",
]
