"""
Authoritative workflow rules for taxdesk entities.

Defines:
- Role universe and role normalization
- Status universes
- Allowed transitions
- Role (or party) requirements per transition
- Introspection helpers used by UI and API
"""

from __future__ import annotations

import re
import unicodedata
from typing import Dict, List, Optional, Set, Tuple


# ===============================================================
# ROLES
# ===============================================================
INTAKE = "INTAKE"
MANAGEMENT = "MANAGEMENT"
CASHIER = "CASHIER"
DIVISION_HEAD = "DIVISION_HEAD"

ROLES: Tuple[str, ...] = (INTAKE, MANAGEMENT, CASHIER, DIVISION_HEAD)

ROLE_LABELS: Dict[str, str] = {
    INTAKE: "Accueil",
    MANAGEMENT: "Gestion",
    CASHIER: "Caisse",
    DIVISION_HEAD: "Chef de Division",
}

# Normalize user-provided / DB roles into canonical workflow roles.
#
# Examples handled:
# - "Accueil" -> INTAKE
# - "Chef de Division" -> DIVISION_HEAD
# - "chef-division" -> DIVISION_HEAD
# - "front desk" -> INTAKE
ROLE_ALIASES: Dict[str, str] = {
    "INTAKE": INTAKE,
    "ACCUEIL": INTAKE,
    "FRONT_DESK": INTAKE,
    "MANAGEMENT": MANAGEMENT,
    "GESTION": MANAGEMENT,
    "MANAGER": MANAGEMENT,
    "CASHIER": CASHIER,
    "CAISSE": CASHIER,
    "CASH_DESK": CASHIER,
    "DIVISION_HEAD": DIVISION_HEAD,
    "CHEF_DE_DIVISION": DIVISION_HEAD,
    "CHEF_DIVISION": DIVISION_HEAD,
    "HEAD": DIVISION_HEAD,
}


def _canonical_token(value: str) -> str:
    """
    Uppercase, drop accents, turn whitespace and hyphens into single
    underscores.
    """
    raw = unicodedata.normalize("NFKD", str(value or ""))
    raw = "".join(ch for ch in raw if not unicodedata.combining(ch))
    raw = raw.strip().upper()
    raw = re.sub(r"[\s\-]+", "_", raw)
    return re.sub(r"_+", "_", raw)


def normalize_role(role: Optional[str]) -> str:
    """
    Canonicalize role strings so that display labels and small
    formatting differences do not break permission logic.

    Unknown values are returned in canonical form and will simply not
    match any rule.
    """
    r = _canonical_token(role or "")
    if not r:
        return r
    return ROLE_ALIASES.get(r, r)


def role_label(role: str) -> str:
    return ROLE_LABELS.get(normalize_role(role), role)


# ===============================================================
# DOSSIER WORKFLOW (canonical lifecycle)
# ===============================================================
AWAITING_CALCULATION = "AWAITING_CALCULATION"
AWAITING_PAYMENT = "AWAITING_PAYMENT"
PAID = "PAID"
CANCELLED = "CANCELLED"

DOSSIER_STATUS_LABELS: Dict[str, str] = {
    AWAITING_CALCULATION: "En attente de calcul",
    AWAITING_PAYMENT: "En attente de paiement",
    PAID: "Payé",
    CANCELLED: "Annulé",
}

DOSSIER_STATUSES: Set[str] = set(DOSSIER_STATUS_LABELS)

DOSSIER_TRANSITIONS: Dict[str, Set[str]] = {
    AWAITING_CALCULATION: {AWAITING_PAYMENT, CANCELLED},
    AWAITING_PAYMENT: {PAID, CANCELLED},
    PAID: set(),  # terminal
    CANCELLED: set(),  # terminal
}

DOSSIER_TRANSITION_ROLES: Dict[str, Dict[str, Set[str]]] = {
    AWAITING_CALCULATION: {
        AWAITING_PAYMENT: {MANAGEMENT},
        CANCELLED: {DIVISION_HEAD},
    },
    AWAITING_PAYMENT: {
        PAID: {CASHIER},
        CANCELLED: {DIVISION_HEAD},
    },
}

# Named operations exposed by the dossier store, keyed to the status
# they lead to.
DOSSIER_OPERATIONS: Dict[str, str] = {
    "calculate": AWAITING_PAYMENT,
    "pay": PAID,
    "cancel": CANCELLED,
}

# Operations that do not move the status.
DOSSIER_CREATE_ROLES: Set[str] = {INTAKE}
DOSSIER_DELETE_ROLES: Set[str] = {DIVISION_HEAD}
DOSSIER_AMEND_ROLES: Set[str] = {MANAGEMENT}
DOSSIER_AMENDABLE_STATES: Set[str] = {AWAITING_PAYMENT}


# ===============================================================
# PAYMENT METHODS
# ===============================================================
PAYMENT_CASH = "Espèce"
PAYMENT_CHEQUE = "Chèque"
PAYMENT_TRANSFER = "Virement bancaire"

PAYMENT_METHODS: Tuple[str, ...] = (PAYMENT_CASH, PAYMENT_CHEQUE, PAYMENT_TRANSFER)

PAYMENT_METHOD_ALIASES: Dict[str, str] = {
    "ESPECE": PAYMENT_CASH,
    "ESPECES": PAYMENT_CASH,
    "CASH": PAYMENT_CASH,
    "CHEQUE": PAYMENT_CHEQUE,
    "CHECK": PAYMENT_CHEQUE,
    "VIREMENT": PAYMENT_TRANSFER,
    "VIREMENT_BANCAIRE": PAYMENT_TRANSFER,
    "BANK_TRANSFER": PAYMENT_TRANSFER,
    "TRANSFER": PAYMENT_TRANSFER,
}

PAYMENT_METHODS_REQUIRING_BANK_REFERENCE: Set[str] = {PAYMENT_TRANSFER}

# Amounts are stored with two decimal places in a 16-digit column.
AMOUNT_DECIMAL_PLACES = 2
AMOUNT_MAX_DIGITS = 16


def normalize_payment_method(value: Optional[str]) -> Optional[str]:
    """
    Map any accepted spelling to the stored method label, or None.
    """
    token = _canonical_token(value or "")
    if not token:
        return None
    return PAYMENT_METHOD_ALIASES.get(token)


# ===============================================================
# RESOURCE ORDER WORKFLOW
# ===============================================================
PENDING = "PENDING"
DELIVERED = "DELIVERED"
RECEIVED = "RECEIVED"

ORDER_STATUS_LABELS: Dict[str, str] = {
    PENDING: "En attente",
    DELIVERED: "Livré",
    RECEIVED: "Reçu",
}

ORDER_STATUSES: Set[str] = set(ORDER_STATUS_LABELS)

ORDER_TRANSITIONS: Dict[str, Set[str]] = {
    PENDING: {DELIVERED},
    DELIVERED: {RECEIVED},
    RECEIVED: set(),  # terminal
}

# Orders are gated by the actor's relationship to the order rather
# than by a fixed role.
REQUESTER = "REQUESTER"
TARGET_DIVISION = "TARGET_DIVISION"

ORDER_TRANSITION_PARTIES: Dict[str, Dict[str, str]] = {
    PENDING: {DELIVERED: REQUESTER},
    DELIVERED: {RECEIVED: TARGET_DIVISION},
}

ORDER_OPERATIONS: Dict[str, str] = {
    "deliver": DELIVERED,
    "receive": RECEIVED,
}

ORDER_CREATE_ROLES: Set[str] = {INTAKE}
ORDER_TARGET_DIVISIONS: Set[str] = {MANAGEMENT, CASHIER, DIVISION_HEAD}

RESOURCE_TYPES: Tuple[str, ...] = (
    "Papier",
    "Encre noir",
    "Encre couleur",
    "Toner",
    "Cartouche",
    "Stylos",
    "Agrafeuses",
    "Classeurs",
    "Autres",
)


# ===============================================================
# MESSAGES / AUDIT / PERSONNEL
# ===============================================================
# Fan-out order is stable so that message copies are created in a
# predictable sequence. The front desk is a sender only: it never
# receives broadcasts, whichever division sends them.
MESSAGE_RECIPIENT_ROLES: Tuple[str, ...] = (MANAGEMENT, CASHIER, DIVISION_HEAD)

AUDIT_READ_ROLES: Set[str] = {DIVISION_HEAD}
PERSONNEL_ROLES: Set[str] = {DIVISION_HEAD}


# ===============================================================
# VALIDATION
# ===============================================================
def _universe_and_transitions(kind: str):
    kind = (kind or "").strip().lower()
    if kind == "dossier":
        return DOSSIER_STATUSES, DOSSIER_TRANSITIONS
    if kind == "resource_order":
        return ORDER_STATUSES, ORDER_TRANSITIONS
    raise ValueError("Unknown workflow kind")


def validate_transition(kind: str, old: str, new: str) -> None:
    kind = (kind or "").strip().lower()
    old = (old or "").strip().upper()
    new = (new or "").strip().upper()

    universe, transitions = _universe_and_transitions(kind)

    if old not in universe:
        raise ValueError(f"Unknown {kind} status: {old}")

    if new not in universe:
        raise ValueError(f"Unknown {kind} status: {new}")

    if new not in transitions.get(old, set()):
        raise ValueError(f"Invalid {kind} status transition: {old} -> {new}")


def validate_transition_with_role(kind: str, old: str, new: str, role: str) -> None:
    """
    Canonical enforcement for role-gated workflows:
    - Transition must be valid
    - Role must be permitted for (old -> new)
    """
    validate_transition(kind, old, new)

    role_norm = normalize_role(role)
    required = required_roles(kind, old, new)
    if role_norm not in required:
        req = ", ".join(sorted(required)) or "none"
        raise ValueError(
            f"Role not permitted for {kind} transition: {old} -> {new}. Required: {req}"
        )


# ===============================================================
# INTROSPECTION HELPERS
# ===============================================================
def allowed_next_states(kind: str, current: str) -> List[str]:
    current = (current or "").strip().upper()
    _universe, transitions = _universe_and_transitions(kind)
    return sorted(transitions.get(current, set()))


def is_terminal(kind: str, state: str) -> bool:
    return not allowed_next_states(kind, state)


def required_roles(kind: str, current: str, target: str) -> Set[str]:
    """
    Roles allowed to move a dossier from current to target. Resource
    orders are party-gated and always return an empty set here.
    """
    kind = (kind or "").strip().lower()
    current = (current or "").strip().upper()
    target = (target or "").strip().upper()

    if kind == "dossier":
        return set(DOSSIER_TRANSITION_ROLES.get(current, {}).get(target, set()))
    if kind == "resource_order":
        return set()
    raise ValueError("Unknown workflow kind")


def required_party(current: str, target: str) -> Optional[str]:
    current = (current or "").strip().upper()
    target = (target or "").strip().upper()
    return ORDER_TRANSITION_PARTIES.get(current, {}).get(target)


def operation_roles(operation: str) -> Set[str]:
    """
    Union of the roles allowed on any edge leading to the status the
    dossier operation targets. Used to reject callers before the record
    is even loaded.
    """
    op = (operation or "").strip().lower()
    if op == "create":
        return set(DOSSIER_CREATE_ROLES)
    if op == "delete":
        return set(DOSSIER_DELETE_ROLES)
    if op == "amend":
        return set(DOSSIER_AMEND_ROLES)
    if op not in DOSSIER_OPERATIONS:
        raise ValueError(f"Unknown dossier operation: {operation}")

    target = DOSSIER_OPERATIONS[op]
    roles: Set[str] = set()
    for edges in DOSSIER_TRANSITION_ROLES.values():
        roles |= edges.get(target, set())
    return roles


def operation_party(operation: str) -> str:
    op = (operation or "").strip().lower()
    if op not in ORDER_OPERATIONS:
        raise ValueError(f"Unknown resource order operation: {operation}")

    target = ORDER_OPERATIONS[op]
    for edges in ORDER_TRANSITION_PARTIES.values():
        if target in edges:
            return edges[target]
    raise ValueError(f"No party rule for resource order operation: {operation}")


def allowed_transitions(kind: str, current: str, role: str) -> List[str]:
    role = normalize_role(role)
    allowed: List[str] = []

    for target in allowed_next_states(kind, current):
        if role in required_roles(kind, current, target):
            allowed.append(target)

    return sorted(allowed)


def allowed_dossier_operations(current: str, role: str) -> List[str]:
    """
    Operations the role may invoke on a dossier in the given state,
    including the in-state amendment and deletion.
    """
    current = (current or "").strip().upper()
    role = normalize_role(role)
    targets = set(allowed_transitions("dossier", current, role))

    ops = [op for op, target in DOSSIER_OPERATIONS.items() if target in targets]
    if current in DOSSIER_AMENDABLE_STATES and role in DOSSIER_AMEND_ROLES:
        ops.append("amend")
    if role in DOSSIER_DELETE_ROLES:
        ops.append("delete")
    return sorted(ops)


def workflow_definition(kind: str) -> Dict:
    kind = (kind or "").strip().lower()

    if kind == "dossier":
        return {
            "kind": "dossier",
            "statuses": sorted(DOSSIER_STATUSES),
            "initial_state": AWAITING_CALCULATION,
            "transitions": {k: sorted(v) for k, v in DOSSIER_TRANSITIONS.items()},
            "transition_roles": {
                cur: {tgt: sorted(roles) for tgt, roles in edges.items()}
                for cur, edges in DOSSIER_TRANSITION_ROLES.items()
            },
            "terminal_states": sorted(
                state for state, nexts in DOSSIER_TRANSITIONS.items() if not nexts
            ),
        }

    if kind == "resource_order":
        return {
            "kind": "resource_order",
            "statuses": sorted(ORDER_STATUSES),
            "initial_state": PENDING,
            "transitions": {k: sorted(v) for k, v in ORDER_TRANSITIONS.items()},
            "transition_parties": {
                cur: dict(edges) for cur, edges in ORDER_TRANSITION_PARTIES.items()
            },
            "terminal_states": sorted(
                state for state, nexts in ORDER_TRANSITIONS.items() if not nexts
            ),
        }

    raise ValueError("Unknown workflow kind")


__all__ = [
    "ROLES",
    "normalize_role",
    "role_label",
    "normalize_payment_method",
    "validate_transition",
    "validate_transition_with_role",
    "allowed_next_states",
    "is_terminal",
    "required_roles",
    "required_party",
    "operation_roles",
    "operation_party",
    "allowed_transitions",
    "allowed_dossier_operations",
    "workflow_definition",
]
