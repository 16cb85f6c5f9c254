# taxdesk_core/workflows/engine.py
"""
Pure transition planning.

Every function here takes a snapshot of the current record (a mapping
of field values), the acting user and the caller's input, and either
returns the field changes to apply or raises one of the errors from
`taxdesk_core.exceptions`. Nothing here touches the database; the
stores in `taxdesk_core.services` lock, apply and audit.

Checks always run in the same order: role, current state, input.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional

from taxdesk_core.exceptions import InvalidTransition, PermissionDenied, ValidationError
from taxdesk_core.workflows import rules


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str
    username: str = ""


@dataclass(frozen=True)
class TransitionPlan:
    from_status: str
    to_status: str
    changes: Dict[str, Any] = field(default_factory=dict)
    action: str = ""


# ===============================================================
# Amounts
# ===============================================================
AMOUNT_LIMIT = Decimal(10) ** (rules.AMOUNT_MAX_DIGITS - rules.AMOUNT_DECIMAL_PLACES)


def to_amount(value) -> Optional[Decimal]:
    """
    Return the value as a Decimal when it is a finite number or a string
    holding one, otherwise None. Booleans are not amounts.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None
    return None


def decimal_places(value: Decimal) -> int:
    if not value:
        return 0
    _sign, digits, exponent = value.as_tuple()
    places = -exponent
    for digit in reversed(digits):
        if places <= 0 or digit:
            break
        places -= 1
    return max(0, places)


def compute_total(tax_details: Iterable) -> Decimal:
    total = Decimal("0")
    for line in tax_details or []:
        if not isinstance(line, Mapping):
            continue
        amount = to_amount(line.get("amount"))
        if amount is not None:
            total += amount
    return total


def _json_number(value: Decimal):
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def normalize_tax_details(lines, *, require_amounts: bool) -> List[Dict[str, Any]]:
    """
    Validate detail lines and return clean `{name, amount}` dicts.

    With require_amounts every line must carry a numeric amount >= 0.
    Without it, a missing or non-numeric amount is stored as 0.
    Amounts and their total must fit the stored precision: at most two
    decimal places and below AMOUNT_LIMIT.
    """
    if not isinstance(lines, (list, tuple)) or not lines:
        raise ValidationError({"tax_details": "At least one tax detail line is required."})

    cleaned: List[Dict[str, Any]] = []
    errors: Dict[int, str] = {}
    total = Decimal("0")

    for idx, line in enumerate(lines):
        if not isinstance(line, Mapping):
            errors[idx] = "Each tax detail must be an object with a name."
            continue

        name = str(line.get("name") or "").strip()
        if not name:
            errors[idx] = "Tax detail name is required."
            continue

        amount = to_amount(line.get("amount"))
        if amount is None:
            if require_amounts:
                errors[idx] = f"Amount for '{name}' must be a number."
                continue
            amount = Decimal("0")

        if amount < 0:
            errors[idx] = f"Amount for '{name}' cannot be negative."
            continue
        if amount >= AMOUNT_LIMIT:
            errors[idx] = f"Amount for '{name}' is too large."
            continue
        if decimal_places(amount) > rules.AMOUNT_DECIMAL_PLACES:
            errors[idx] = f"Amount for '{name}' has more than {rules.AMOUNT_DECIMAL_PLACES} decimal places."
            continue

        total += amount
        cleaned.append({"name": name, "amount": _json_number(amount)})

    if errors:
        raise ValidationError(
            {"tax_details": [f"line {idx}: {msg}" for idx, msg in sorted(errors.items())]}
        )
    if total >= AMOUNT_LIMIT:
        raise ValidationError({"tax_details": "The total amount is too large."})

    return cleaned


# ===============================================================
# Shared checks
# ===============================================================
def ensure_role(actor: Actor, allowed: Iterable[str], what: str) -> None:
    role = rules.normalize_role(actor.role) if actor else ""
    allowed = set(allowed)
    if not role or role not in allowed:
        req = ", ".join(sorted(allowed)) or "none"
        raise PermissionDenied(f"Role '{role or 'none'}' may not {what}. Required: {req}.")


def _require_text(value, field_name: str, message: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValidationError({field_name: message})
    return text


def _check_dossier_edge(snapshot: Mapping, actor: Actor, operation: str) -> tuple:
    target = rules.DOSSIER_OPERATIONS[operation]
    ensure_role(actor, rules.operation_roles(operation), f"{operation} a dossier")

    current = str(snapshot.get("status") or "").upper()
    if target not in rules.DOSSIER_TRANSITIONS.get(current, set()):
        raise InvalidTransition(
            f"Cannot {operation} a dossier in state {current or 'UNKNOWN'}."
        )

    # The edge exists but this role may only take it from other states.
    if rules.normalize_role(actor.role) not in rules.required_roles("dossier", current, target):
        raise PermissionDenied(
            f"Role '{actor.role}' may not {operation} a dossier in state {current}."
        )

    return current, target


# ===============================================================
# Dossiers
# ===============================================================
def plan_dossier_creation(actor: Actor, *, taxpayer_name, tax_period, tax_details) -> Dict[str, Any]:
    ensure_role(actor, rules.DOSSIER_CREATE_ROLES, "create dossiers")

    name = _require_text(taxpayer_name, "taxpayer_name", "Taxpayer name is required.")
    period = _require_text(tax_period, "tax_period", "Tax period is required.")
    details = normalize_tax_details(tax_details, require_amounts=False)

    return {
        "taxpayer_name": name,
        "tax_period": period,
        "tax_details": details,
        "total_amount": compute_total(details),
        "status": rules.AWAITING_CALCULATION,
        "created_by_id": actor.user_id,
    }


def _planned_amounts(tax_details) -> Dict[str, Any]:
    details = normalize_tax_details(tax_details, require_amounts=True)
    total = compute_total(details)
    if total <= 0:
        raise ValidationError({"tax_details": "The total amount must be greater than zero."})
    return {"tax_details": details, "total_amount": total}


def plan_calculation(snapshot: Mapping, actor: Actor, *, tax_details) -> TransitionPlan:
    current, target = _check_dossier_edge(snapshot, actor, "calculate")
    changes = _planned_amounts(tax_details)

    if snapshot.get("managed_by_id") is None:
        changes["managed_by_id"] = actor.user_id

    return TransitionPlan(
        from_status=current,
        to_status=target,
        changes=changes,
        action="Calcul des montants",
    )


def plan_amendment(snapshot: Mapping, actor: Actor, *, tax_details) -> TransitionPlan:
    ensure_role(actor, rules.DOSSIER_AMEND_ROLES, "amend dossier amounts")

    current = str(snapshot.get("status") or "").upper()
    if current not in rules.DOSSIER_AMENDABLE_STATES:
        raise InvalidTransition(f"Cannot amend amounts of a dossier in state {current or 'UNKNOWN'}.")

    return TransitionPlan(
        from_status=current,
        to_status=current,
        changes=_planned_amounts(tax_details),
        action="Modification des montants",
    )


def plan_payment(
    snapshot: Mapping,
    actor: Actor,
    *,
    payment_method,
    bank_name=None,
    cheque_number=None,
    bank_transfer_ref=None,
    now,
) -> TransitionPlan:
    current, target = _check_dossier_edge(snapshot, actor, "pay")

    method = rules.normalize_payment_method(payment_method)
    if method is None:
        raise ValidationError(
            {"payment_method": f"Payment method must be one of: {', '.join(rules.PAYMENT_METHODS)}."}
        )

    bank_name = str(bank_name or "").strip()
    cheque_number = str(cheque_number or "").strip()
    bank_transfer_ref = str(bank_transfer_ref or "").strip()

    if method in rules.PAYMENT_METHODS_REQUIRING_BANK_REFERENCE and not (bank_name or bank_transfer_ref):
        raise ValidationError(
            {"bank_transfer_ref": "A bank transfer requires a bank name or transfer reference."}
        )

    details: Dict[str, Any] = {
        "processedBy": actor.user_id,
        "processedAt": now.isoformat(),
    }
    if bank_name:
        details["bankName"] = bank_name
    if cheque_number:
        details["chequeNumber"] = cheque_number
    if bank_transfer_ref:
        details["bankTransferRef"] = bank_transfer_ref

    return TransitionPlan(
        from_status=current,
        to_status=target,
        changes={"payment_method": method, "payment_details": details},
        action=f"Paiement confirmé ({method})",
    )


def plan_cancellation(snapshot: Mapping, actor: Actor, *, reason, now) -> TransitionPlan:
    current, target = _check_dossier_edge(snapshot, actor, "cancel")
    text = _require_text(reason, "reason", "A cancellation reason is required.")

    return TransitionPlan(
        from_status=current,
        to_status=target,
        changes={
            "cancelled_by_id": actor.user_id,
            "cancelled_at": now,
            "reason": text,
        },
        action="Annulation du dossier",
    )


def check_dossier_deletion(actor: Actor) -> None:
    ensure_role(actor, rules.DOSSIER_DELETE_ROLES, "delete dossiers")


# ===============================================================
# Resource orders
# ===============================================================
def _positive_quantity(value) -> int:
    if isinstance(value, bool):
        raise ValidationError({"quantity": "Quantity must be a whole number."})
    try:
        quantity = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError({"quantity": "Quantity must be a whole number."})
    if quantity <= 0:
        raise ValidationError({"quantity": "Quantity must be greater than zero."})
    return quantity


def plan_order_creation(
    actor: Actor,
    *,
    resource_type,
    quantity,
    unit,
    target_division,
    description="",
    notes="",
) -> Dict[str, Any]:
    ensure_role(actor, rules.ORDER_CREATE_ROLES, "request resources")

    rtype = str(resource_type or "").strip()
    if rtype not in rules.RESOURCE_TYPES:
        raise ValidationError(
            {"resource_type": f"Resource type must be one of: {', '.join(rules.RESOURCE_TYPES)}."}
        )

    qty = _positive_quantity(quantity)
    unit_text = _require_text(unit, "unit", "Unit is required.")

    target = rules.normalize_role(target_division)
    if not target:
        raise ValidationError({"target_division": "Target division is required."})
    if target not in rules.ORDER_TARGET_DIVISIONS:
        raise ValidationError(
            {"target_division": "Target division must be Gestion, Caisse or Chef de Division."}
        )

    return {
        "resource_type": rtype,
        "quantity": qty,
        "unit": unit_text,
        "description": str(description or "").strip(),
        "notes": str(notes or "").strip(),
        "target_division": target,
        "requested_by_id": actor.user_id,
        "requested_by_role": rules.normalize_role(actor.role),
        "status": rules.PENDING,
    }


def can_access_order(snapshot: Mapping, actor: Actor) -> bool:
    role = rules.normalize_role(actor.role)
    if role == rules.INTAKE:
        return snapshot.get("requested_by_id") == actor.user_id
    return bool(role) and snapshot.get("target_division") == role


def _is_party(snapshot: Mapping, actor: Actor, party: str) -> bool:
    if party == rules.REQUESTER:
        return snapshot.get("requested_by_id") == actor.user_id
    if party == rules.TARGET_DIVISION:
        return rules.normalize_role(actor.role) == snapshot.get("target_division")
    return False


def plan_order_transition(snapshot: Mapping, actor: Actor, *, operation: str, now) -> TransitionPlan:
    target = rules.ORDER_OPERATIONS[operation]

    if not can_access_order(snapshot, actor):
        raise PermissionDenied("You do not have access to this resource order.")

    party = rules.operation_party(operation)
    if not _is_party(snapshot, actor, party):
        who = "requester" if party == rules.REQUESTER else "target division"
        raise PermissionDenied(f"Only the {who} may {operation} this resource order.")

    current = str(snapshot.get("status") or "").upper()
    if target not in rules.ORDER_TRANSITIONS.get(current, set()):
        raise InvalidTransition(f"Cannot {operation} a resource order in state {current or 'UNKNOWN'}.")

    if target == rules.DELIVERED:
        changes = {"delivered_by_id": actor.user_id, "delivered_at": now}
        action = "Commande livrée"
    else:
        changes = {"received_by_id": actor.user_id, "received_at": now}
        action = "Réception confirmée"

    return TransitionPlan(from_status=current, to_status=target, changes=changes, action=action)


# ===============================================================
# Messages
# ===============================================================
def plan_broadcast(actor: Actor, *, content) -> Dict[str, Any]:
    role = rules.normalize_role(actor.role)
    if role not in rules.ROLES:
        raise PermissionDenied("A role is required to send messages.")

    text = _require_text(content, "content", "Message content cannot be empty.")
    recipients = [r for r in rules.MESSAGE_RECIPIENT_ROLES if r != role]

    return {"content": text, "from_role": role, "to_roles": recipients}


def needs_confirmation(snapshot: Mapping, actor: Actor) -> bool:
    """
    True when the message must be marked confirmed, False when it
    already is. Raises PermissionDenied for anyone but the recipient role.
    """
    if rules.normalize_role(actor.role) != snapshot.get("to_role"):
        raise PermissionDenied("Only the recipient division can confirm this message.")
    return not snapshot.get("confirmed")
