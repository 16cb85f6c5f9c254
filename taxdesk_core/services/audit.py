# taxdesk_core/services/audit.py
"""
Audit trail.

`record` never opens its own transaction: it is always called inside
the caller's atomic block so that the business write and its audit row
commit or roll back together.
"""

from __future__ import annotations

from typing import Any, Dict

from taxdesk_core.models import AuditLog
from taxdesk_core.workflows import rules
from taxdesk_core.workflows.engine import Actor, ensure_role

from .common import log_refusals


def record(actor: Actor, action: str, *, kind: str, object_id=None, **extra) -> AuditLog:
    details: Dict[str, Any] = {"kind": kind, "object_id": object_id}
    details.update(extra)

    return AuditLog.objects.create(
        actor_id=actor.user_id,
        actor_role=actor.role,
        action=action,
        details=details,
    )


@log_refusals
def audit_queryset(*, actor: Actor):
    ensure_role(actor, rules.AUDIT_READ_ROLES, "read the audit trail")
    return AuditLog.objects.select_related("actor").order_by("-created_at", "-id")

