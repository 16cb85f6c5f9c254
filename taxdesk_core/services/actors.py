# taxdesk_core/services/actors.py

from __future__ import annotations

from rest_framework.exceptions import NotAuthenticated

from taxdesk_core.exceptions import PermissionDenied
from taxdesk_core.models import UserRole
from taxdesk_core.workflows import normalize_role
from taxdesk_core.workflows.engine import Actor


def role_for_user(user) -> str:
    if not user or not user.is_authenticated:
        return ""
    raw = UserRole.objects.filter(user=user).values_list("role", flat=True).first()
    return normalize_role(raw) if raw else ""


def actor_for_user(user) -> Actor:
    """
    Build the acting identity for an authenticated user. Users without
    a workflow role cannot act on anything.
    """
    if not user or not user.is_authenticated:
        raise NotAuthenticated()

    role = role_for_user(user)
    if not role:
        raise PermissionDenied("No workflow role is assigned to this user.")

    return Actor(user_id=user.pk, role=role, username=user.get_username())
