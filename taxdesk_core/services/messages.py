# taxdesk_core/services/messages.py

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from django.db import transaction
from django.utils import timezone

from taxdesk_core.exceptions import NotFound, ValidationError, translate_storage_errors
from taxdesk_core.models import Message
from taxdesk_core.workflows import rules
from taxdesk_core.workflows import engine
from taxdesk_core.workflows.engine import Actor

from . import audit
from .common import log_refusals

logger = logging.getLogger(__name__)

INBOX = "inbox"
SENT = "sent"
BOXES = (INBOX, SENT)


def default_box(role: str) -> str:
    return INBOX if rules.normalize_role(role) in rules.MESSAGE_RECIPIENT_ROLES else SENT


@log_refusals
def message_queryset(*, actor: Actor, box: Optional[str] = None):
    """
    `inbox`: copies addressed to the actor's role.
    `sent`: copies the actor sent, one per recipient division.
    """
    engine.ensure_role(actor, rules.ROLES, "read messages")

    box = (box or default_box(actor.role)).strip().lower()
    if box not in BOXES:
        raise ValidationError({"box": f"box must be one of: {', '.join(BOXES)}."})

    qs = Message.objects.select_related("from_user", "confirmed_by")
    if box == INBOX:
        return qs.filter(to_role=rules.normalize_role(actor.role))
    return qs.filter(from_user_id=actor.user_id)


def list_messages(*, actor: Actor, box: Optional[str] = None) -> List[Message]:
    return list(message_queryset(actor=actor, box=box).order_by("-created_at", "id"))


@log_refusals
@translate_storage_errors
def send_message(*, actor: Actor, content) -> List[Message]:
    plan = engine.plan_broadcast(actor, content=content)
    broadcast_id = uuid.uuid4()
    now = timezone.now()

    with transaction.atomic():
        sent = [
            Message.objects.create(
                broadcast_id=broadcast_id,
                from_user_id=actor.user_id,
                from_role=plan["from_role"],
                to_role=to_role,
                content=plan["content"],
                created_at=now,
            )
            for to_role in plan["to_roles"]
        ]
        audit.record(
            actor,
            "Message envoyé",
            kind="message",
            object_id=str(broadcast_id),
            recipients=plan["to_roles"],
        )

    logger.info(
        "message broadcast %s from user=%s to %s",
        broadcast_id,
        actor.user_id,
        ",".join(plan["to_roles"]),
    )
    return sent


@log_refusals
@translate_storage_errors
def confirm_message(*, actor: Actor, message_id) -> Message:
    """
    Mark a received message as read. Confirming an already confirmed
    message returns it unchanged and writes no audit entry.
    """
    with transaction.atomic():
        try:
            message = Message.objects.select_for_update().get(pk=message_id)
        except (Message.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Message {message_id} not found.")

        snapshot = {"to_role": message.to_role, "confirmed": message.confirmed}
        if not engine.needs_confirmation(snapshot, actor):
            return message

        updated = (
            Message.objects
            .filter(pk=message.pk, confirmed=False)
            .update(confirmed=True, confirmed_by_id=actor.user_id, confirmed_at=timezone.now())
        )
        if updated:
            audit.record(
                actor,
                "Message confirmé",
                kind="message",
                object_id=message.pk,
                broadcast_id=str(message.broadcast_id),
            )
        message.refresh_from_db()

    logger.info("message %s confirmed by user=%s role=%s", message.pk, actor.user_id, actor.role)
    return message
