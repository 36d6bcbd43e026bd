"""Helpers for scoring answers to scoring-style questionnaires."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Dict, List

from form_builder.conditions import should_show_field
from form_builder.document import Field, FormDocument
from form_builder.field_types import MULTI_VALUE_KINDS


@dataclass
class FieldScore:
    field_id: str
    label: str
    score: float
    max_score: float


@dataclass
class ScoreSummary:
    """Total and per-field scores for one set of answers."""

    total: float = 0
    max_total: float = 0
    fields: List[FieldScore] = dataclass_field(default_factory=list)

    def by_field(self) -> Dict[str, float]:
        return {entry.field_id: entry.score for entry in self.fields}


def _selected_values(answer: Any) -> List[Any]:
    if answer is None:
        return []
    if isinstance(answer, Sequence) and not isinstance(answer, (str, bytes)):
        return list(answer)
    return [answer]


def _field_max(item: Field, multi: bool) -> float:
    scores = [float(option.score) for option in item.options]
    if not scores:
        return 0.0
    if multi:
        return sum(score for score in scores if score > 0)
    return max(scores)


def score_answers(document: FormDocument, answers: Mapping[str, Any]) -> ScoreSummary:
    """Sum option scores for the selected options of visible choice fields."""

    summary = ScoreSummary()
    for _, item in document.iter_fields():
        if not item.is_choice or not should_show_field(item, answers, document):
            continue
        selected = _selected_values(answers.get(item.id))
        score = 0.0
        for value in selected:
            option = item.option_by_value(value)
            if option is not None:
                score += float(option.score)
        max_score = _field_max(item, item.kind in MULTI_VALUE_KINDS)
        summary.fields.append(FieldScore(item.id, item.label, score, max_score))
        summary.total += score
        summary.max_total += max_score
    return summary


__all__ = ["FieldScore", "ScoreSummary", "score_answers"]
