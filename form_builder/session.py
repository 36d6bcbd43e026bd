"""Edit session owning a form document while it is being changed.

Every structural change goes through :class:`FormEditSession`. Each method
validates its input first and raises :class:`FormValidationError` without
touching the document when the change is refused, then applies the change and
renumbers page and field ``order`` values before returning.
"""

from __future__ import annotations

from typing import Any, List, Optional, Tuple

from form_builder.conditions import available_source_fields, find_rule_issues
from form_builder.document import (
    Combinator,
    ConditionalRule,
    Field,
    FormDocument,
    ImagePosition,
    Option,
    Page,
    RuleOperator,
    default_options,
    new_page,
)
from form_builder.field_types import PLACEHOLDER_KINDS, FieldKind, is_choice_kind
from form_builder.form_utils import (
    default_option_label,
    default_option_value,
    new_identifier,
    slugify_option_label,
    utc_now_iso,
)
from form_builder.importer import parse_import_text
from form_builder.schema_defaults import (
    DEFAULT_FIELD_LABEL,
    DEFAULT_PLACEHOLDER,
    IMPORTED_PAGE_TITLE,
    MIN_CHOICE_OPTIONS,
)

_UNSET: Any = object()


class FormValidationError(ValueError):
    """Raised when an edit is refused; the document is left unchanged."""


class FormEditSession:
    """Single entry point for mutating a :class:`FormDocument`."""

    def __init__(self, document: Optional[FormDocument] = None) -> None:
        self.document = document or FormDocument.new()
        self.dirty = False
        if not self.document.pages:
            self.document.pages.append(new_page(0))
        self._renumber_pages()
        for page in self.document.pages:
            self._renumber_fields(page)

    # -- internal helpers -------------------------------------------------

    def _touch(self) -> None:
        self.document.updated_at = utc_now_iso()
        self.dirty = True

    def mark_saved(self) -> None:
        self.dirty = False

    def _renumber_pages(self) -> None:
        for index, page in enumerate(self.document.pages):
            page.order = index

    @staticmethod
    def _renumber_fields(page: Page) -> None:
        for index, item in enumerate(page.fields):
            item.order = index

    def _page(self, page_index: int) -> Page:
        if not 0 <= page_index < len(self.document.pages):
            raise FormValidationError(f"Page {page_index + 1} does not exist.")
        return self.document.pages[page_index]

    def _locate(self, field_id: str) -> Tuple[Page, int, Field]:
        location = self.document.locate_field(field_id)
        if location is None:
            raise FormValidationError(f"Field '{field_id}' does not exist.")
        page_index, position = location
        page = self.document.pages[page_index]
        return page, position, page.fields[position]

    def _option(self, field_id: str, index: int) -> Tuple[Field, Option]:
        _, _, target = self._locate(field_id)
        if not target.is_choice:
            raise FormValidationError("Options are not used for this field type.")
        if not 0 <= index < len(target.options):
            raise FormValidationError(f"Option {index + 1} does not exist.")
        return target, target.options[index]

    def _rule(self, field_id: str, index: int) -> Tuple[Field, ConditionalRule]:
        _, _, target = self._locate(field_id)
        rules = target.conditional_logic.rules
        if not 0 <= index < len(rules):
            raise FormValidationError(f"Condition {index + 1} does not exist.")
        return target, rules[index]

    # -- form -------------------------------------------------------------

    def update_form(
        self,
        *,
        title: Any = _UNSET,
        description: Any = _UNSET,
        is_active: Any = _UNSET,
    ) -> FormDocument:
        if title is not _UNSET:
            text = str(title or "").strip()
            if not text:
                raise FormValidationError("The form needs a title.")
            self.document.title = text
        if description is not _UNSET:
            self.document.description = str(description or "").strip() or None
        if is_active is not _UNSET:
            self.document.is_active = bool(is_active)
        self._touch()
        return self.document

    # -- pages ------------------------------------------------------------

    def add_page(self, title: Optional[str] = None) -> Page:
        page = new_page(len(self.document.pages), title)
        self.document.pages.append(page)
        self._touch()
        return page

    def delete_page(self, page_index: int) -> None:
        """Delete a page; the last remaining page can never be deleted."""

        self._page(page_index)
        if len(self.document.pages) <= 1:
            raise FormValidationError("A form must keep at least one page.")
        del self.document.pages[page_index]
        self._renumber_pages()
        self._touch()

    def move_page(self, page_index: int, offset: int) -> bool:
        """Move a page by ``offset`` places, returning ``False`` at the edges."""

        self._page(page_index)
        target_index = page_index + offset
        pages = self.document.pages
        if not 0 <= target_index < len(pages):
            return False
        pages[page_index], pages[target_index] = pages[target_index], pages[page_index]
        self._renumber_pages()
        self._touch()
        return True

    def update_page(
        self,
        page_index: int,
        *,
        title: Any = _UNSET,
        description: Any = _UNSET,
        image_url: Any = _UNSET,
        image_position: Any = _UNSET,
    ) -> Page:
        page = self._page(page_index)
        position = page.image_position
        if image_position is not _UNSET:
            try:
                position = ImagePosition(image_position)
            except ValueError as exc:
                raise FormValidationError(f"Unknown image position: {image_position}") from exc

        if title is not _UNSET:
            page.title = str(title or "").strip() or page.title
        if description is not _UNSET:
            page.description = str(description or "").strip() or None
        if image_url is not _UNSET:
            page.image_url = str(image_url or "").strip() or None
        page.image_position = position
        self._touch()
        return page

    # -- fields -----------------------------------------------------------

    def add_field(
        self,
        kind: FieldKind,
        page_index: int = 0,
        label: Optional[str] = None,
    ) -> Field:
        page = self._page(page_index)
        new_field = Field(
            id=new_identifier("field"),
            kind=kind,
            label=label or DEFAULT_FIELD_LABEL,
            placeholder=DEFAULT_PLACEHOLDER if kind in PLACEHOLDER_KINDS else None,
            options=default_options() if is_choice_kind(kind) else [],
            order=len(page.fields),
        )
        page.fields.append(new_field)
        self._touch()
        return new_field

    def update_field(
        self,
        field_id: str,
        *,
        label: Any = _UNSET,
        required: Any = _UNSET,
        placeholder: Any = _UNSET,
        guide: Any = _UNSET,
        score: Any = _UNSET,
    ) -> Field:
        _, _, target = self._locate(field_id)
        if label is not _UNSET:
            target.label = str(label or "")
        if required is not _UNSET:
            target.required = bool(required)
        if placeholder is not _UNSET:
            target.placeholder = str(placeholder or "").strip() or None
        if guide is not _UNSET:
            target.guide = str(guide or "").strip() or None
        if score is not _UNSET:
            target.score = score
        self._touch()
        return target

    def change_field_kind(self, field_id: str, kind: FieldKind) -> Field:
        """Switch a field's kind, adding or dropping options as needed."""

        _, _, target = self._locate(field_id)
        if target.kind is kind:
            return target
        was_choice = target.is_choice
        target.kind = kind
        if not target.is_choice:
            target.options = []
        elif not was_choice:
            target.options = default_options()
        self._touch()
        return target

    def delete_field(self, field_id: str) -> Field:
        page, position, target = self._locate(field_id)
        del page.fields[position]
        self._renumber_fields(page)
        self._touch()
        return target

    def move_field(self, field_id: str, offset: int) -> bool:
        """Move a field within its page, returning ``False`` at the edges."""

        page, position, _ = self._locate(field_id)
        target_index = position + offset
        if not 0 <= target_index < len(page.fields):
            return False
        page.fields[position], page.fields[target_index] = (
            page.fields[target_index],
            page.fields[position],
        )
        self._renumber_fields(page)
        self._touch()
        return True

    def reorder_fields(self, page_index: int, source_index: int, destination_index: int) -> None:
        """Move the field at ``source_index`` to ``destination_index``."""

        page = self._page(page_index)
        count = len(page.fields)
        if not (0 <= source_index < count and 0 <= destination_index < count):
            raise FormValidationError("Field position is out of range.")
        moved = page.fields.pop(source_index)
        page.fields.insert(destination_index, moved)
        self._renumber_fields(page)
        self._touch()

    # -- options ----------------------------------------------------------

    def add_option(self, field_id: str) -> Option:
        _, _, target = self._locate(field_id)
        if not target.is_choice:
            raise FormValidationError("Options are not used for this field type.")
        used = {option.value for option in target.options}
        position = len(target.options) + 1
        while default_option_value(position) in used:
            position += 1
        option = Option(label=default_option_label(position), value=default_option_value(position))
        target.options.append(option)
        self._touch()
        return option

    def remove_option(self, field_id: str, index: int) -> Option:
        target, option = self._option(field_id, index)
        if len(target.options) <= MIN_CHOICE_OPTIONS:
            raise FormValidationError(
                f"Choice fields need at least {MIN_CHOICE_OPTIONS} option(s)."
            )
        del target.options[index]
        self._touch()
        return option

    def set_option_label(self, field_id: str, index: int, label: str) -> Option:
        """Set an option label, deriving its value while it is untouched."""

        _, option = self._option(field_id, index)
        option.label = label
        if option.value == default_option_value(index + 1) or not option.value:
            option.value = slugify_option_label(label)
        self._touch()
        return option

    def set_option_value(self, field_id: str, index: int, value: str) -> Option:
        _, option = self._option(field_id, index)
        option.value = value
        self._touch()
        return option

    def set_option_score(self, field_id: str, index: int, score: float | int) -> Option:
        _, option = self._option(field_id, index)
        option.score = score
        self._touch()
        return option

    # -- conditional logic --------------------------------------------------

    def set_logic_enabled(self, field_id: str, enabled: bool) -> None:
        _, _, target = self._locate(field_id)
        target.conditional_logic.enabled = bool(enabled)
        self._touch()

    def set_logic_combinator(self, field_id: str, combinator: Combinator) -> None:
        _, _, target = self._locate(field_id)
        try:
            target.conditional_logic.combinator = Combinator(combinator)
        except ValueError as exc:
            raise FormValidationError(f"Unknown combinator: {combinator}") from exc
        self._touch()

    def add_rule(self, field_id: str) -> ConditionalRule:
        """Append a rule pointing at the first earlier field."""

        self._locate(field_id)
        candidates = available_source_fields(self.document, field_id)
        if not candidates:
            raise FormValidationError("There are no earlier fields to build a condition on.")
        target = self.document.field_by_id(field_id)
        rule = ConditionalRule(source_field_id=candidates[0].id)
        target.conditional_logic.rules.append(rule)
        self._touch()
        return rule

    def update_rule(
        self,
        field_id: str,
        index: int,
        *,
        source_field_id: Any = _UNSET,
        operator: Any = _UNSET,
        value: Any = _UNSET,
    ) -> ConditionalRule:
        _, rule = self._rule(field_id, index)
        if source_field_id is not _UNSET:
            allowed = {item.id for item in available_source_fields(self.document, field_id)}
            if source_field_id not in allowed:
                raise FormValidationError("Conditions can only depend on earlier fields.")
        new_operator = rule.operator
        if operator is not _UNSET:
            try:
                new_operator = RuleOperator(operator)
            except ValueError as exc:
                raise FormValidationError(f"Unknown condition: {operator}") from exc

        if source_field_id is not _UNSET:
            rule.source_field_id = source_field_id
        rule.operator = new_operator
        if value is not _UNSET:
            rule.value = value
        self._touch()
        return rule

    def remove_rule(self, field_id: str, index: int) -> ConditionalRule:
        target, rule = self._rule(field_id, index)
        del target.conditional_logic.rules[index]
        self._touch()
        return rule

    # -- import and validation --------------------------------------------

    def import_text(self, text: str) -> Page:
        """Append a page holding the fields parsed from ``text``.

        :class:`~form_builder.importer.ImportParseError` propagates when the
        text contains no usable record.
        """

        fields = parse_import_text(text)
        page = new_page(len(self.document.pages), IMPORTED_PAGE_TITLE)
        page.fields = fields
        self._renumber_fields(page)
        self.document.pages.append(page)
        self._touch()
        return page

    def validate(self) -> Tuple[List[str], List[str]]:
        """Return ``(errors, warnings)`` for the current document.

        Errors block saving. Rule issues (a condition pointing at a later or a
        missing field) are only reported as warnings.
        """

        errors: List[str] = []
        warnings: List[str] = []
        if not self.document.title.strip():
            errors.append("The form needs a title.")

        seen: set[str] = set()
        for page_index, item in self.document.iter_fields():
            if item.id in seen:
                errors.append(f"Duplicate field id detected: {item.id}")
            seen.add(item.id)
            if not item.label.strip():
                errors.append(f"Field {item.order + 1} on page {page_index + 1} has no label.")
            if item.is_choice and len(item.options) < MIN_CHOICE_OPTIONS:
                errors.append(f"Field '{item.label or item.id}' needs at least one option.")
            values = [option.value for option in item.options]
            if len(set(values)) != len(values):
                errors.append(f"Field '{item.label or item.id}' has options sharing the same value.")

        warnings.extend(issue.message for issue in find_rule_issues(self.document))
        return errors, warnings


__all__ = ["FormEditSession", "FormValidationError"]
