# taxdesk_core/workflows/__init__.py
"""
Public workflow API.

Everything that decides whether a record may move between states is
importable from here; the tables themselves live in `rules`.
"""

from .rules import (  # noqa: F401
    AWAITING_CALCULATION,
    AWAITING_PAYMENT,
    CANCELLED,
    CASHIER,
    DELIVERED,
    DIVISION_HEAD,
    DOSSIER_STATUSES,
    DOSSIER_TRANSITION_ROLES,
    DOSSIER_TRANSITIONS,
    INTAKE,
    MANAGEMENT,
    ORDER_STATUSES,
    ORDER_TRANSITIONS,
    PAID,
    PENDING,
    RECEIVED,
    ROLES,
    allowed_dossier_operations,
    allowed_next_states,
    allowed_transitions,
    is_terminal,
    normalize_payment_method,
    normalize_role,
    operation_party,
    operation_roles,
    required_party,
    required_roles,
    role_label,
    validate_transition,
    validate_transition_with_role,
    workflow_definition,
)
