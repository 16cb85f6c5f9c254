# taxdesk_core/permissions.py
from __future__ import annotations

from rest_framework.permissions import BasePermission

from .services.actors import actor_for_user, role_for_user
from .workflows.engine import Actor


def resolve_actor(request) -> Actor:
    """
    Canonical actor resolver used by every view. Cached on the request
    so a view and its permission check agree on one role lookup.
    """
    actor = getattr(request, "_taxdesk_actor", None)
    if actor is None:
        actor = actor_for_user(getattr(request, "user", None))
        request._taxdesk_actor = actor
    return actor


class HasWorkflowRole(BasePermission):
    """
    Any authenticated user holding a workflow role. Which role may do
    what is decided by the stores, not here.
    """

    message = "No workflow role is assigned to this user."

    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return bool(role_for_user(user))
