# taxdesk_core/services/personnel.py
"""
Personnel registry.

Every staff record keeps the history of its postings. Changing the
division or affectation closes the open history entry and opens a new
one dated today.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from django.db import transaction
from django.utils import timezone

from taxdesk_core.exceptions import NotFound, ValidationError, translate_storage_errors
from taxdesk_core.models import Personnel
from taxdesk_core.workflows import rules
from taxdesk_core.workflows.engine import Actor, ensure_role

from . import audit
from .common import log_refusals

logger = logging.getLogger(__name__)


def _today() -> str:
    return timezone.localdate().isoformat()


def _division(value) -> str:
    division = rules.normalize_role(value)
    if division not in rules.ROLES:
        raise ValidationError({"division": "Unknown division."})
    return division


def _text(value, name: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValidationError({name: "This field is required."})
    return text


def reassign(history: List[Dict[str, Any]], *, division: str, affectation: str, on: str) -> List[Dict[str, Any]]:
    """
    Return a new history list with the last open entry closed on `on`
    and a new open entry appended.
    """
    entries = [dict(entry) for entry in (history or [])]
    if entries and not entries[-1].get("endDate"):
        entries[-1]["endDate"] = on

    entries.append(
        {
            "division": division,
            "affectation": affectation,
            "startDate": on,
            "endDate": None,
        }
    )
    return entries


def _load_for_update(personnel_id) -> Personnel:
    try:
        return Personnel.objects.select_for_update().get(pk=personnel_id)
    except (Personnel.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Personnel {personnel_id} not found.")


@log_refusals
def personnel_queryset(*, actor: Actor):
    ensure_role(actor, rules.PERSONNEL_ROLES, "manage personnel")
    return Personnel.objects.all()


@log_refusals
@translate_storage_errors
def create_personnel(*, actor: Actor, name, division, affectation) -> Personnel:
    ensure_role(actor, rules.PERSONNEL_ROLES, "manage personnel")

    name = _text(name, "name")
    division = _division(division)
    affectation = _text(affectation, "affectation")

    with transaction.atomic():
        person = Personnel.objects.create(
            name=name,
            division=division,
            affectation=affectation,
            history=reassign([], division=division, affectation=affectation, on=_today()),
        )
        audit.record(actor, "Ajout du personnel", kind="personnel", object_id=person.pk, division=division)

    logger.info("personnel %s created by user=%s", person.pk, actor.user_id)
    return person


@log_refusals
@translate_storage_errors
def update_personnel(
    *,
    actor: Actor,
    personnel_id,
    name: Optional[str] = None,
    division: Optional[str] = None,
    affectation: Optional[str] = None,
) -> Personnel:
    ensure_role(actor, rules.PERSONNEL_ROLES, "manage personnel")

    with transaction.atomic():
        person = _load_for_update(personnel_id)

        new_name = _text(name, "name") if name is not None else person.name
        new_division = _division(division) if division is not None else person.division
        new_affectation = _text(affectation, "affectation") if affectation is not None else person.affectation

        moved = (new_division, new_affectation) != (person.division, person.affectation)
        if moved:
            person.history = reassign(
                person.history,
                division=new_division,
                affectation=new_affectation,
                on=_today(),
            )

        person.name = new_name
        person.division = new_division
        person.affectation = new_affectation
        person.save()

        audit.record(
            actor,
            "Mutation du personnel" if moved else "Modification du personnel",
            kind="personnel",
            object_id=person.pk,
            division=new_division,
        )

    logger.info("personnel %s updated by user=%s (moved=%s)", person.pk, actor.user_id, moved)
    return person


@log_refusals
@translate_storage_errors
def delete_personnel(*, actor: Actor, personnel_id) -> None:
    ensure_role(actor, rules.PERSONNEL_ROLES, "manage personnel")

    with transaction.atomic():
        person = _load_for_update(personnel_id)
        pk = person.pk
        person.delete()
        audit.record(actor, "Suppression du personnel", kind="personnel", object_id=pk)

    logger.info("personnel %s deleted by user=%s", pk, actor.user_id)
