# taxdesk_core/tests/test_write_guard.py

from __future__ import annotations

import pytest
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.db import IntegrityError, transaction
from django.utils import timezone

from taxdesk_core.models import Dossier, ResourceOrder
from taxdesk_core.workflows import rules


@pytest.mark.django_db
def test_direct_status_save_is_refused(dossier_factory):
    dossier = dossier_factory()
    dossier.status = rules.PAID

    with pytest.raises(DjangoPermissionDenied):
        dossier.save()

    dossier.refresh_from_db()
    assert dossier.status == rules.AWAITING_CALCULATION


@pytest.mark.django_db
@pytest.mark.parametrize(
    "field, value",
    [("taxpayer_name", "Someone Else"), ("tax_period", "Février 2024"), ("reference", "DOS-1999-00001")],
)
def test_creation_fields_are_locked(dossier_factory, field, value):
    dossier = dossier_factory()
    setattr(dossier, field, value)

    with pytest.raises(DjangoPermissionDenied):
        dossier.save()


@pytest.mark.django_db
def test_unguarded_fields_still_save(dossier_factory):
    dossier = dossier_factory()
    dossier.reason = "note interne"
    dossier.save()

    dossier.refresh_from_db()
    assert dossier.reason == "note interne"


@pytest.mark.django_db
def test_bypass_for_data_fixes(dossier_factory):
    dossier = dossier_factory()
    dossier.status = rules.AWAITING_PAYMENT
    dossier.save(_workflow_bypass=True)

    dossier.refresh_from_db()
    assert dossier.status == rules.AWAITING_PAYMENT


@pytest.mark.django_db
def test_order_target_cannot_be_redirected(intake_user):
    order = ResourceOrder.objects.create(
        resource_type="Papier",
        quantity=5,
        unit="rames",
        requested_by=intake_user,
        requested_by_role=rules.INTAKE,
        target_division=rules.MANAGEMENT,
    )
    order.target_division = rules.CASHIER

    with pytest.raises(DjangoPermissionDenied):
        order.save()


@pytest.mark.django_db
def test_paid_and_cancelled_is_rejected_by_the_database(dossier_factory):
    dossier = dossier_factory(status=rules.PAID)

    with pytest.raises(IntegrityError):
        with transaction.atomic():
            Dossier.objects.filter(pk=dossier.pk).update(cancelled_at=timezone.now())
