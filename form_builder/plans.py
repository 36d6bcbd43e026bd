"""Subscription plans and the questionnaires attached to them."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Optional

from form_builder.form_utils import utc_now_iso
from form_builder.rest_backend import RestBackend

logger = logging.getLogger(__name__)

PLANS_TABLE = "subscription_plans"
PLAN_SETTINGS_TABLE = "plan_settings"
PLAN_QUESTIONNAIRES_TABLE = "plan_questionnaires"

PLAN_SETTING_KEYS = (
    "is_free",
    "can_retake",
    "retake_period_days",
    "retake_limit",
    "is_sequential",
    "is_progress_tracking",
    "is_periodic",
)


def fetch_plans(backend: RestBackend) -> List[Dict[str, Any]]:
    return backend.select(PLANS_TABLE, order="sort_order.asc")


def fetch_plan(backend: RestBackend, plan_id: str) -> Optional[Dict[str, Any]]:
    """Return ``{"plan": ..., "settings": ...}`` or ``None`` for unknown plans.

    ``settings`` is ``None`` when the plan has no settings row yet.
    """

    plan = backend.select_one(PLANS_TABLE, {"id": plan_id})
    if plan is None:
        return None
    settings = backend.select_one(PLAN_SETTINGS_TABLE, {"plan_id": plan_id})
    return {"plan": plan, "settings": settings}


def fetch_plan_questionnaires(backend: RestBackend, plan_id: str) -> List[Dict[str, Any]]:
    return backend.select(
        PLAN_QUESTIONNAIRES_TABLE,
        {"plan_id": plan_id},
        order="sequence_order.asc",
    )


def add_questionnaire_to_plan(
    backend: RestBackend,
    plan_id: str,
    questionnaire_id: str,
    sequence_order: int = 0,
) -> bool:
    """Attach a questionnaire to a plan.

    Returns ``False`` when the pair already existed, ``True`` when it was added.
    """

    existing = backend.select_one(
        PLAN_QUESTIONNAIRES_TABLE,
        {"plan_id": plan_id, "questionnaire_id": questionnaire_id},
        columns="id",
    )
    if existing is not None:
        return False

    now = utc_now_iso()
    backend.insert(
        PLAN_QUESTIONNAIRES_TABLE,
        {
            "plan_id": plan_id,
            "questionnaire_id": questionnaire_id,
            "sequence_order": sequence_order,
            "created_at": now,
            "updated_at": now,
        },
    )
    return True


def remove_questionnaire_from_plan(backend: RestBackend, plan_id: str, questionnaire_id: str) -> None:
    backend.delete(
        PLAN_QUESTIONNAIRES_TABLE,
        {"plan_id": plan_id, "questionnaire_id": questionnaire_id},
    )


def update_plan_questionnaires(
    backend: RestBackend,
    plan_id: str,
    questionnaire_ids: Sequence[str],
) -> None:
    """Replace the questionnaires of a plan, keeping the given sequence.

    The existing links are deleted before the new ones are inserted in a
    separate request, so a failed insert leaves the plan with none.
    """

    backend.delete(PLAN_QUESTIONNAIRES_TABLE, {"plan_id": plan_id})
    if not questionnaire_ids:
        return

    now = utc_now_iso()
    rows = [
        {
            "plan_id": plan_id,
            "questionnaire_id": questionnaire_id,
            "sequence_order": index,
            "created_at": now,
            "updated_at": now,
        }
        for index, questionnaire_id in enumerate(questionnaire_ids)
    ]
    try:
        backend.insert(PLAN_QUESTIONNAIRES_TABLE, rows)
    except Exception:
        logger.error("Plan %s lost its questionnaires: insert failed after delete", plan_id)
        raise


def save_plan_settings(backend: RestBackend, plan_id: str, settings: Mapping[str, Any]) -> None:
    """Update the settings row of ``plan_id`` or create it when missing."""

    values = {key: settings[key] for key in PLAN_SETTING_KEYS if key in settings}
    now = utc_now_iso()
    existing = backend.select_one(PLAN_SETTINGS_TABLE, {"plan_id": plan_id}, columns="id")
    if existing is not None:
        backend.update(PLAN_SETTINGS_TABLE, {**values, "updated_at": now}, {"plan_id": plan_id})
    else:
        backend.insert(
            PLAN_SETTINGS_TABLE,
            {"plan_id": plan_id, **values, "created_at": now, "updated_at": now},
        )


__all__ = [
    "PLAN_SETTING_KEYS",
    "add_questionnaire_to_plan",
    "fetch_plan",
    "fetch_plan_questionnaires",
    "fetch_plans",
    "remove_questionnaire_from_plan",
    "save_plan_settings",
    "update_plan_questionnaires",
]
