# taxdesk_core/services/dossiers.py
"""
Dossier store.

All status changes MUST go through this module.
Never update a dossier's status directly in views or serializers.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from taxdesk_core.exceptions import InvalidTransition, NotFound, translate_storage_errors
from taxdesk_core.models import Dossier, DossierSequence
from taxdesk_core.workflows import rules
from taxdesk_core.workflows import engine
from taxdesk_core.workflows.engine import Actor, TransitionPlan

from . import audit
from .common import log_refusals

logger = logging.getLogger(__name__)


# ===============================================================
# Helpers
# ===============================================================
def next_reference(now=None) -> str:
    """
    Allocate the next display reference for the current year. Must run
    inside the caller's transaction so the counter row stays locked
    until the dossier is written.
    """
    year = timezone.localdate(now or timezone.now()).year
    prefix = settings.TAXDESK["DOSSIER_REFERENCE_PREFIX"]

    seq, _created = DossierSequence.objects.select_for_update().get_or_create(year=year)
    DossierSequence.objects.filter(pk=seq.pk).update(last_value=F("last_value") + 1)
    seq.refresh_from_db(fields=["last_value"])

    return f"{prefix}-{year}-{seq.last_value:05d}"


def _snapshot(dossier: Dossier) -> Dict[str, Any]:
    return {
        "id": dossier.pk,
        "reference": dossier.reference,
        "status": dossier.status,
        "managed_by_id": dossier.managed_by_id,
    }


def _load_for_update(dossier_id) -> Dossier:
    try:
        return Dossier.objects.select_for_update().get(pk=dossier_id)
    except (Dossier.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Dossier {dossier_id} not found.")


def _apply(dossier: Dossier, plan: TransitionPlan, actor: Actor) -> Dossier:
    """
    Compare-and-set on the expected status, then audit. A concurrent
    writer that moved the dossier first leaves zero matching rows.
    """
    updated = (
        Dossier.objects
        .filter(pk=dossier.pk, status=plan.from_status)
        .update(status=plan.to_status, updated_at=timezone.now(), **plan.changes)
    )
    if updated != 1:
        raise InvalidTransition(
            f"Dossier {dossier.reference} changed state concurrently; reload and retry."
        )

    audit.record(
        actor,
        plan.action,
        kind="dossier",
        object_id=dossier.pk,
        reference=dossier.reference,
        from_status=plan.from_status,
        to_status=plan.to_status,
    )

    dossier.refresh_from_db()
    logger.info(
        "dossier %s %s -> %s by user=%s role=%s",
        dossier.pk,
        plan.from_status,
        plan.to_status,
        actor.user_id,
        actor.role,
    )
    return dossier


def _transition(*, actor: Actor, dossier_id, operation: str, planner, **inputs) -> Dossier:
    engine.ensure_role(actor, rules.operation_roles(operation), f"{operation} dossiers")

    with transaction.atomic():
        dossier = _load_for_update(dossier_id)
        plan = planner(_snapshot(dossier), actor, **inputs)
        return _apply(dossier, plan, actor)


# ===============================================================
# Queries
# ===============================================================
@log_refusals
def dossier_queryset(*, actor: Actor):
    engine.ensure_role(actor, rules.ROLES, "view dossiers")
    return Dossier.objects.select_related("created_by", "managed_by", "cancelled_by")


@log_refusals
def get_dossier(*, actor: Actor, dossier_id) -> Dossier:
    qs = dossier_queryset(actor=actor)
    try:
        return qs.get(pk=dossier_id)
    except (Dossier.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Dossier {dossier_id} not found.")


def allowed_operations(*, actor: Actor, dossier_id) -> Dict[str, Any]:
    dossier = get_dossier(actor=actor, dossier_id=dossier_id)
    return {
        "id": dossier.pk,
        "reference": dossier.reference,
        "status": dossier.status,
        "role": actor.role,
        "operations": rules.allowed_dossier_operations(dossier.status, actor.role),
        "allowed_next_states": rules.allowed_transitions("dossier", dossier.status, actor.role),
    }


# ===============================================================
# Mutations
# ===============================================================
@log_refusals
@translate_storage_errors
def create_dossier(*, actor: Actor, taxpayer_name, tax_period, tax_details) -> Dossier:
    fields = engine.plan_dossier_creation(
        actor,
        taxpayer_name=taxpayer_name,
        tax_period=tax_period,
        tax_details=tax_details,
    )

    with transaction.atomic():
        dossier = Dossier.objects.create(reference=next_reference(), **fields)
        audit.record(
            actor,
            "Création du dossier",
            kind="dossier",
            object_id=dossier.pk,
            reference=dossier.reference,
            to_status=dossier.status,
        )

    logger.info("dossier %s created as %s by user=%s", dossier.pk, dossier.reference, actor.user_id)
    return dossier


@log_refusals
@translate_storage_errors
def set_calculated_amounts(*, actor: Actor, dossier_id, tax_details) -> Dossier:
    return _transition(
        actor=actor,
        dossier_id=dossier_id,
        operation="calculate",
        planner=engine.plan_calculation,
        tax_details=tax_details,
    )


@log_refusals
@translate_storage_errors
def amend_calculated_amounts(*, actor: Actor, dossier_id, tax_details) -> Dossier:
    return _transition(
        actor=actor,
        dossier_id=dossier_id,
        operation="amend",
        planner=engine.plan_amendment,
        tax_details=tax_details,
    )


@log_refusals
@translate_storage_errors
def confirm_payment(
    *,
    actor: Actor,
    dossier_id,
    payment_method,
    bank_name=None,
    cheque_number=None,
    bank_transfer_ref=None,
) -> Dossier:
    return _transition(
        actor=actor,
        dossier_id=dossier_id,
        operation="pay",
        planner=engine.plan_payment,
        payment_method=payment_method,
        bank_name=bank_name,
        cheque_number=cheque_number,
        bank_transfer_ref=bank_transfer_ref,
        now=timezone.now(),
    )


@log_refusals
@translate_storage_errors
def cancel_dossier(*, actor: Actor, dossier_id, reason) -> Dossier:
    return _transition(
        actor=actor,
        dossier_id=dossier_id,
        operation="cancel",
        planner=engine.plan_cancellation,
        reason=reason,
        now=timezone.now(),
    )


@log_refusals
@translate_storage_errors
def delete_dossier(*, actor: Actor, dossier_id) -> None:
    engine.check_dossier_deletion(actor)

    with transaction.atomic():
        dossier = _load_for_update(dossier_id)
        pk, reference, status = dossier.pk, dossier.reference, dossier.status

        dossier.delete()
        audit.record(
            actor,
            "Suppression du dossier",
            kind="dossier",
            object_id=pk,
            reference=reference,
            from_status=status,
        )

    logger.info("dossier %s (%s) deleted by user=%s", pk, reference, actor.user_id)
