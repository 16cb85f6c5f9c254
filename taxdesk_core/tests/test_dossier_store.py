# taxdesk_core/tests/test_dossier_store.py

from __future__ import annotations

import re
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from taxdesk_core.exceptions import InvalidTransition, NotFound, PermissionDenied, ValidationError
from taxdesk_core.models import AuditLog, Dossier, UserRole
from taxdesk_core.services import dossiers
from taxdesk_core.workflows import rules
from taxdesk_core.workflows.engine import Actor


def _audit_for(dossier_id):
    return [
        entry
        for entry in AuditLog.objects.order_by("created_at", "id")
        if entry.details.get("kind") == "dossier" and entry.details.get("object_id") == dossier_id
    ]


@pytest.mark.django_db
def test_full_lifecycle_acme_corp(intake, management, cashier):
    dossier = dossiers.create_dossier(
        actor=intake,
        taxpayer_name="ACME Corp",
        tax_period="Janvier 2024",
        tax_details=[{"name": "TVA", "amount": 0}],
    )
    assert dossier.status == rules.AWAITING_CALCULATION
    assert dossier.total_amount == Decimal("0")
    assert dossier.created_by_id == intake.user_id
    assert re.fullmatch(r"DOS-\d{4}-\d{5}", dossier.reference)

    dossier = dossiers.set_calculated_amounts(
        actor=management,
        dossier_id=dossier.pk,
        tax_details=[{"name": "TVA", "amount": 15000}],
    )
    assert dossier.status == rules.AWAITING_PAYMENT
    assert dossier.total_amount == Decimal("15000")
    assert dossier.managed_by_id == management.user_id

    dossier = dossiers.confirm_payment(actor=cashier, dossier_id=dossier.pk, payment_method="Espèce")
    assert dossier.status == rules.PAID
    assert dossier.payment_method == rules.PAYMENT_CASH
    assert dossier.payment_details["processedBy"] == cashier.user_id
    assert "processedAt" in dossier.payment_details
    assert dossier.cancelled_at is None

    entries = _audit_for(dossier.pk)
    assert [e.actor_role for e in entries] == [rules.INTAKE, rules.MANAGEMENT, rules.CASHIER]
    assert [e.actor_id for e in entries] == [intake.user_id, management.user_id, cashier.user_id]


@pytest.mark.django_db
def test_references_are_sequential_within_a_year(intake):
    first = dossiers.create_dossier(actor=intake, taxpayer_name="A", tax_period="T1", tax_details=[{"name": "TVA"}])
    second = dossiers.create_dossier(actor=intake, taxpayer_name="B", tax_period="T1", tax_details=[{"name": "TVA"}])

    assert first.reference.endswith("-00001")
    assert second.reference.endswith("-00002")
    assert second.pk > first.pk


@pytest.mark.django_db
def test_cashier_cannot_calculate(dossier_factory, cashier, fields_of):
    dossier = dossier_factory()
    before = fields_of(dossier)

    with pytest.raises(PermissionDenied):
        dossiers.set_calculated_amounts(
            actor=cashier,
            dossier_id=dossier.pk,
            tax_details=[{"name": "TVA", "amount": 15000}],
        )

    assert fields_of(dossier) == before


@pytest.mark.django_db
def test_role_is_checked_before_existence(cashier):
    with pytest.raises(PermissionDenied):
        dossiers.set_calculated_amounts(actor=cashier, dossier_id=999999, tax_details=[])


@pytest.mark.django_db
def test_missing_dossier_is_not_found(management, head):
    with pytest.raises(NotFound):
        dossiers.set_calculated_amounts(
            actor=management,
            dossier_id=999999,
            tax_details=[{"name": "TVA", "amount": 1}],
        )
    with pytest.raises(NotFound):
        dossiers.delete_dossier(actor=head, dossier_id=999999)


@pytest.mark.django_db
def test_paid_dossier_cannot_be_cancelled(dossier_factory, head, fields_of):
    dossier = dossier_factory(status=rules.PAID)
    before = fields_of(dossier)

    with pytest.raises(InvalidTransition):
        dossiers.cancel_dossier(actor=head, dossier_id=dossier.pk, reason="Erreur de saisie")

    assert fields_of(dossier) == before


@pytest.mark.django_db
@pytest.mark.parametrize("status", [rules.AWAITING_CALCULATION, rules.AWAITING_PAYMENT])
def test_cancel_from_open_states(dossier_factory, head, status):
    dossier = dossier_factory(status=status)
    dossier = dossiers.cancel_dossier(actor=head, dossier_id=dossier.pk, reason="Contribuable radié")

    assert dossier.status == rules.CANCELLED
    assert dossier.cancelled_by_id == head.user_id
    assert dossier.cancelled_at is not None
    assert dossier.reason == "Contribuable radié"
    assert dossier.payment_method == ""


@pytest.mark.django_db
@pytest.mark.parametrize("reason", ["", "   "])
def test_empty_cancellation_reason_leaves_dossier_untouched(dossier_factory, head, fields_of, reason):
    dossier = dossier_factory(status=rules.AWAITING_PAYMENT)
    before = fields_of(dossier)
    audit_before = AuditLog.objects.count()

    with pytest.raises(ValidationError):
        dossiers.cancel_dossier(actor=head, dossier_id=dossier.pk, reason=reason)

    assert fields_of(dossier) == before
    assert AuditLog.objects.count() == audit_before


@pytest.mark.django_db
@pytest.mark.parametrize(
    "status",
    [rules.AWAITING_PAYMENT, rules.PAID, rules.CANCELLED],
)
def test_calculate_outside_awaiting_calculation_is_invalid(dossier_factory, management, fields_of, status):
    dossier = dossier_factory(status=status)
    before = fields_of(dossier)

    with pytest.raises(InvalidTransition):
        dossiers.set_calculated_amounts(
            actor=management,
            dossier_id=dossier.pk,
            tax_details=[{"name": "TVA", "amount": 1}],
        )

    assert fields_of(dossier) == before


@pytest.mark.django_db
def test_pay_before_calculation_is_invalid(dossier_factory, cashier, fields_of):
    dossier = dossier_factory()
    before = fields_of(dossier)

    with pytest.raises(InvalidTransition):
        dossiers.confirm_payment(actor=cashier, dossier_id=dossier.pk, payment_method="Espèce")

    assert fields_of(dossier) == before


@pytest.mark.django_db
def test_bank_transfer_payment(dossier_factory, cashier, fields_of):
    dossier = dossier_factory(status=rules.AWAITING_PAYMENT)
    before = fields_of(dossier)

    with pytest.raises(ValidationError):
        dossiers.confirm_payment(actor=cashier, dossier_id=dossier.pk, payment_method="Virement bancaire")
    assert fields_of(dossier) == before

    dossier = dossiers.confirm_payment(
        actor=cashier,
        dossier_id=dossier.pk,
        payment_method="Virement bancaire",
        bank_name="BOA",
        bank_transfer_ref="VIR-2024-001",
    )
    assert dossier.status == rules.PAID
    assert dossier.payment_details["bankName"] == "BOA"
    assert dossier.payment_details["bankTransferRef"] == "VIR-2024-001"


@pytest.mark.django_db
def test_total_always_matches_detail_lines(dossier_factory, management):
    dossier = dossier_factory()
    lines = [{"name": "TVA", "amount": 12000}, {"name": "IR", "amount": 3000.75}, {"name": "Timbre", "amount": 0}]

    dossier = dossiers.set_calculated_amounts(actor=management, dossier_id=dossier.pk, tax_details=lines)
    assert dossier.total_amount == Decimal("15000.75")
    assert dossier.tax_details == lines

    dossier = dossiers.amend_calculated_amounts(
        actor=management,
        dossier_id=dossier.pk,
        tax_details=[{"name": "TVA", "amount": 14000}],
    )
    assert dossier.status == rules.AWAITING_PAYMENT
    assert dossier.total_amount == Decimal("14000")


@pytest.mark.django_db
@pytest.mark.parametrize("amount", [0.004, 10**17])
def test_amounts_the_column_cannot_hold_are_rejected(dossier_factory, management, fields_of, amount):
    dossier = dossier_factory()
    before = fields_of(dossier)

    with pytest.raises(ValidationError):
        dossiers.set_calculated_amounts(
            actor=management,
            dossier_id=dossier.pk,
            tax_details=[{"name": "TVA", "amount": amount}],
        )
    assert fields_of(dossier) == before


@pytest.mark.django_db
def test_amendment_cannot_overflow_the_total(dossier_factory, management, fields_of):
    dossier = dossier_factory(status=rules.AWAITING_PAYMENT)
    before = fields_of(dossier)

    with pytest.raises(ValidationError):
        dossiers.amend_calculated_amounts(
            actor=management,
            dossier_id=dossier.pk,
            tax_details=[{"name": "TVA", "amount": 90_000_000_000_000}, {"name": "IR", "amount": 90_000_000_000_000}],
        )
    assert fields_of(dossier) == before


@pytest.mark.django_db
def test_numeric_string_amounts_are_stored_as_numbers(dossier_factory, management):
    dossier = dossier_factory()

    dossier = dossiers.set_calculated_amounts(
        actor=management,
        dossier_id=dossier.pk,
        tax_details=[{"name": "TVA", "amount": "15000"}, {"name": "Timbre", "amount": "0.50"}],
    )
    assert dossier.status == rules.AWAITING_PAYMENT
    assert dossier.total_amount == Decimal("15000.50")
    assert dossier.tax_details == [{"name": "TVA", "amount": 15000}, {"name": "Timbre", "amount": 0.5}]


@pytest.mark.django_db
def test_manager_is_never_overwritten(dossier_factory, management):
    dossier = dossier_factory(status=rules.AWAITING_PAYMENT)
    assert dossier.managed_by_id == management.user_id

    other = get_user_model().objects.create_user(username="gestion2", password="pass123")
    UserRole.objects.create(user=other, role=rules.MANAGEMENT)
    second_manager = Actor(user_id=other.pk, role=rules.MANAGEMENT)

    dossier = dossiers.amend_calculated_amounts(
        actor=second_manager,
        dossier_id=dossier.pk,
        tax_details=[{"name": "TVA", "amount": 20000}],
    )
    assert dossier.managed_by_id == management.user_id


@pytest.mark.django_db
def test_manager_only_set_after_calculation(dossier_factory):
    assert dossier_factory().managed_by_id is None
    assert dossier_factory(status=rules.CANCELLED).managed_by_id is None
    assert dossier_factory(status=rules.PAID).managed_by_id is not None


@pytest.mark.django_db
def test_amend_only_while_awaiting_payment(dossier_factory, management):
    for status in (rules.AWAITING_CALCULATION, rules.PAID, rules.CANCELLED):
        dossier = dossier_factory(status=status)
        with pytest.raises(InvalidTransition):
            dossiers.amend_calculated_amounts(
                actor=management,
                dossier_id=dossier.pk,
                tax_details=[{"name": "TVA", "amount": 1}],
            )


@pytest.mark.django_db
@pytest.mark.parametrize("status", [rules.AWAITING_CALCULATION, rules.PAID, rules.CANCELLED])
def test_division_head_deletes_in_any_state(dossier_factory, head, status):
    dossier = dossier_factory(status=status)
    pk, reference = dossier.pk, dossier.reference

    dossiers.delete_dossier(actor=head, dossier_id=pk)

    assert not Dossier.objects.filter(pk=pk).exists()
    last = AuditLog.objects.order_by("-created_at", "-id").first()
    assert last.details["object_id"] == pk
    assert last.details["reference"] == reference


@pytest.mark.django_db
@pytest.mark.parametrize("role", [rules.INTAKE, rules.MANAGEMENT, rules.CASHIER])
def test_only_division_head_deletes(dossier_factory, actors, role):
    dossier = dossier_factory()
    with pytest.raises(PermissionDenied):
        dossiers.delete_dossier(actor=actors[role], dossier_id=dossier.pk)
    assert Dossier.objects.filter(pk=dossier.pk).exists()


@pytest.mark.django_db
@pytest.mark.parametrize("role", [rules.MANAGEMENT, rules.CASHIER, rules.DIVISION_HEAD])
def test_only_intake_creates(actors, role):
    with pytest.raises(PermissionDenied):
        dossiers.create_dossier(
            actor=actors[role],
            taxpayer_name="ACME Corp",
            tax_period="Janvier 2024",
            tax_details=[{"name": "TVA"}],
        )
    assert Dossier.objects.count() == 0


@pytest.mark.django_db
def test_creation_validation(intake):
    with pytest.raises(ValidationError):
        dossiers.create_dossier(actor=intake, taxpayer_name=" ", tax_period="T1", tax_details=[{"name": "TVA"}])
    with pytest.raises(ValidationError):
        dossiers.create_dossier(actor=intake, taxpayer_name="ACME", tax_period="", tax_details=[{"name": "TVA"}])
    with pytest.raises(ValidationError):
        dossiers.create_dossier(actor=intake, taxpayer_name="ACME", tax_period="T1", tax_details=[])
    assert Dossier.objects.count() == 0


@pytest.mark.django_db
def test_allowed_operations(dossier_factory, management, cashier):
    dossier = dossier_factory(status=rules.AWAITING_PAYMENT)

    assert dossiers.allowed_operations(actor=cashier, dossier_id=dossier.pk)["operations"] == ["pay"]
    info = dossiers.allowed_operations(actor=management, dossier_id=dossier.pk)
    assert info["operations"] == ["amend"]
    assert info["allowed_next_states"] == []
