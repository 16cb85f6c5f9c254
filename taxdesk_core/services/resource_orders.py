# taxdesk_core/services/resource_orders.py
"""
Resource-order store.

Orders are gated by the actor's relationship to the order: the front
desk works on the orders it requested, every other division on the
orders addressed to it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from django.db import transaction
from django.utils import timezone

from taxdesk_core.exceptions import InvalidTransition, NotFound, PermissionDenied, translate_storage_errors
from taxdesk_core.models import ResourceOrder
from taxdesk_core.workflows import rules
from taxdesk_core.workflows import engine
from taxdesk_core.workflows.engine import Actor

from . import audit
from .common import log_refusals

logger = logging.getLogger(__name__)


def _snapshot(order: ResourceOrder) -> Dict[str, Any]:
    return {
        "id": order.pk,
        "status": order.status,
        "requested_by_id": order.requested_by_id,
        "requested_by_role": order.requested_by_role,
        "target_division": order.target_division,
    }


def _load_for_update(order_id) -> ResourceOrder:
    try:
        return ResourceOrder.objects.select_for_update().get(pk=order_id)
    except (ResourceOrder.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Resource order {order_id} not found.")


@log_refusals
def order_queryset(*, actor: Actor):
    role = rules.normalize_role(actor.role)
    qs = ResourceOrder.objects.select_related("requested_by", "delivered_by", "received_by")

    if role == rules.INTAKE:
        return qs.filter(requested_by_id=actor.user_id)
    if role in rules.ORDER_TARGET_DIVISIONS:
        return qs.filter(target_division=role)
    raise PermissionDenied("A workflow role is required to view resource orders.")


@log_refusals
@translate_storage_errors
def create_resource_order(
    *,
    actor: Actor,
    resource_type,
    quantity,
    unit,
    target_division,
    description="",
    notes="",
) -> ResourceOrder:
    fields = engine.plan_order_creation(
        actor,
        resource_type=resource_type,
        quantity=quantity,
        unit=unit,
        target_division=target_division,
        description=description,
        notes=notes,
    )

    with transaction.atomic():
        order = ResourceOrder.objects.create(**fields)
        audit.record(
            actor,
            f"Demande de ressources ({order.resource_type})",
            kind="resource_order",
            object_id=order.pk,
            target_division=order.target_division,
            quantity=order.quantity,
            unit=order.unit,
        )

    logger.info("resource order %s created by user=%s for %s", order.pk, actor.user_id, order.target_division)
    return order


def _transition(*, actor: Actor, order_id, operation: str) -> ResourceOrder:
    with transaction.atomic():
        order = _load_for_update(order_id)
        plan = engine.plan_order_transition(_snapshot(order), actor, operation=operation, now=timezone.now())

        updated = (
            ResourceOrder.objects
            .filter(pk=order.pk, status=plan.from_status)
            .update(status=plan.to_status, updated_at=timezone.now(), **plan.changes)
        )
        if updated != 1:
            raise InvalidTransition(f"Resource order {order.pk} changed state concurrently; reload and retry.")

        audit.record(
            actor,
            plan.action,
            kind="resource_order",
            object_id=order.pk,
            from_status=plan.from_status,
            to_status=plan.to_status,
        )
        order.refresh_from_db()

    logger.info(
        "resource order %s %s -> %s by user=%s role=%s",
        order.pk,
        plan.from_status,
        plan.to_status,
        actor.user_id,
        actor.role,
    )
    return order


@log_refusals
@translate_storage_errors
def deliver_resource_order(*, actor: Actor, order_id) -> ResourceOrder:
    return _transition(actor=actor, order_id=order_id, operation="deliver")


@log_refusals
@translate_storage_errors
def confirm_resource_order_receipt(*, actor: Actor, order_id) -> ResourceOrder:
    return _transition(actor=actor, order_id=order_id, operation="receive")
