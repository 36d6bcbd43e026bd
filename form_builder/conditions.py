"""Conditional visibility evaluation for form fields and pages."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from form_builder.document import (
    Combinator,
    ConditionalRule,
    Field,
    FormDocument,
    Page,
    RuleOperator,
)
from form_builder.form_utils import coerce_number

logger = logging.getLogger(__name__)

_MISSING = object()


def _as_text(value: Any) -> str:
    """Return the text form used for equality and substring checks."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _is_list_answer(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _equals(answer: Any, expected: Any) -> bool:
    if _is_list_answer(answer):
        return [_as_text(item) for item in answer] == [_as_text(expected)]
    return _as_text(answer) == _as_text(expected)


def _contains(answer: Any, expected: Any) -> bool:
    if answer is None:
        return False
    if _is_list_answer(answer):
        return _as_text(expected) in {_as_text(item) for item in answer}
    return _as_text(expected) in _as_text(answer)


def _compare_numbers(answer: Any, expected: Any, operator: RuleOperator) -> bool:
    left = coerce_number(answer)
    right = coerce_number(expected)
    if left != left or right != right:
        logger.debug("Non-numeric comparison %r %s %r evaluates to False", answer, operator.value, expected)
        return False
    if operator is RuleOperator.GREATER:
        return left > right
    return left < right


def evaluate_rule(
    rule: ConditionalRule,
    answers: Mapping[str, Any],
    document: Optional[FormDocument] = None,
) -> bool:
    """Evaluate a single rule against ``answers``.

    When ``document`` is given, a rule that references a field missing from it
    is false regardless of its operator.
    """

    if document is not None and document.field_by_id(rule.source_field_id) is None:
        logger.warning("Rule references unknown field %s", rule.source_field_id)
        return False

    answer = answers.get(rule.source_field_id)
    operator = rule.operator

    if operator is RuleOperator.EQUALS:
        return _equals(answer, rule.value)
    if operator is RuleOperator.NOT_EQUALS:
        return not _equals(answer, rule.value)
    if operator is RuleOperator.CONTAINS:
        return _contains(answer, rule.value)
    if operator is RuleOperator.NOT_CONTAINS:
        return not _contains(answer, rule.value)
    if operator in (RuleOperator.GREATER, RuleOperator.LESS):
        return _compare_numbers(answer, rule.value, operator)

    logger.warning("Unsupported rule operator: %s", operator)
    return False


def should_show_field(
    field: Field,
    answers: Mapping[str, Any],
    document: Optional[FormDocument] = None,
) -> bool:
    """Determine whether ``field`` should be displayed."""

    logic = field.conditional_logic
    if not logic.enabled or not logic.rules:
        return True

    results = (evaluate_rule(rule, answers, document) for rule in logic.rules)
    if logic.combinator is Combinator.OR:
        return any(results)
    return all(results)


def visible_fields(
    page: Page,
    answers: Mapping[str, Any],
    document: Optional[FormDocument] = None,
) -> List[Field]:
    return [item for item in page.fields if should_show_field(item, answers, document)]


def visible_pages(document: FormDocument, answers: Mapping[str, Any]) -> List[int]:
    """Return indexes of pages that have no fields or at least one visible field."""

    return [
        index
        for index, page in enumerate(document.pages)
        if not page.fields or visible_fields(page, answers, document)
    ]


def prune_hidden_answers(document: FormDocument, answers: Dict[str, Any]) -> List[str]:
    """Remove answers belonging to hidden or deleted fields.

    Returns the identifiers that were dropped. Hidden fields are resolved in
    document order so a chain of dependent fields collapses in a single pass.
    """

    removed: List[str] = []
    known = set()
    for _, item in document.iter_fields():
        known.add(item.id)
        if not should_show_field(item, answers, document) and answers.pop(item.id, _MISSING) is not _MISSING:
            removed.append(item.id)
    for key in list(answers.keys()):
        if key not in known:
            answers.pop(key)
            removed.append(key)
    return removed


def available_source_fields(document: FormDocument, field_id: str) -> List[Field]:
    """Return fields that a rule on ``field_id`` may reference.

    Only fields strictly earlier in document order qualify: fields on an
    earlier page, or on the same page with a smaller order.
    """

    location = document.locate_field(field_id)
    if location is None:
        return []
    target_page, _ = location
    target = document.pages[target_page].fields[location[1]]

    available: List[Field] = []
    for page_index, item in document.iter_fields():
        if item.id == field_id:
            continue
        if page_index < target_page or (page_index == target_page and item.order < target.order):
            available.append(item)
    return available


@dataclass(frozen=True)
class RuleIssue:
    """A rule that points at a missing field or at a later field."""

    field_id: str
    source_field_id: str
    kind: str

    @property
    def message(self) -> str:
        if self.kind == "unknown":
            return f"Field '{self.field_id}' references unknown field '{self.source_field_id}'."
        return (
            f"Field '{self.field_id}' depends on '{self.source_field_id}', "
            "which now appears after it."
        )


def find_rule_issues(document: FormDocument) -> List[RuleIssue]:
    """Report unknown and forward references in every field's rules."""

    positions: Dict[str, tuple[int, int]] = {
        item.id: (page_index, item.order) for page_index, item in document.iter_fields()
    }
    issues: List[RuleIssue] = []
    for page_index, item in document.iter_fields():
        for rule in item.conditional_logic.rules:
            source = positions.get(rule.source_field_id)
            if source is None:
                issues.append(RuleIssue(item.id, rule.source_field_id, "unknown"))
            elif source >= (page_index, item.order):
                issues.append(RuleIssue(item.id, rule.source_field_id, "forward"))
    return issues


__all__ = [
    "RuleIssue",
    "available_source_fields",
    "evaluate_rule",
    "find_rule_issues",
    "prune_hidden_answers",
    "should_show_field",
    "visible_fields",
    "visible_pages",
]
