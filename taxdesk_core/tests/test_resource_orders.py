from __future__ import annotations

import pytest

from taxdesk_core.exceptions import InvalidTransition, NotFound, PermissionDenied, ValidationError
from taxdesk_core.models import AuditLog, ResourceOrder
from taxdesk_core.services import resource_orders
from taxdesk_core.workflows import rules


@pytest.fixture
def paper_order(intake):
    return resource_orders.create_resource_order(
        actor=intake,
        resource_type="Papier",
        quantity=5,
        unit="rames",
        target_division="Gestion",
        description="Papier A4",
    )


@pytest.mark.django_db
def test_paper_order_scenario(paper_order, intake, management, cashier):
    assert paper_order.status == rules.PENDING
    assert paper_order.target_division == rules.MANAGEMENT
    assert paper_order.requested_by_id == intake.user_id
    assert paper_order.requested_by_role == rules.INTAKE

    with pytest.raises(PermissionDenied):
        resource_orders.deliver_resource_order(actor=management, order_id=paper_order.pk)

    order = resource_orders.deliver_resource_order(actor=intake, order_id=paper_order.pk)
    assert order.status == rules.DELIVERED
    assert order.delivered_by_id == intake.user_id
    assert order.delivered_at is not None

    with pytest.raises(PermissionDenied):
        resource_orders.confirm_resource_order_receipt(actor=cashier, order_id=paper_order.pk)

    order = resource_orders.confirm_resource_order_receipt(actor=management, order_id=paper_order.pk)
    assert order.status == rules.RECEIVED
    assert order.received_by_id == management.user_id

    with pytest.raises(InvalidTransition):
        resource_orders.confirm_resource_order_receipt(actor=management, order_id=paper_order.pk)


@pytest.mark.django_db
def test_receive_before_delivery_is_invalid(paper_order, management):
    with pytest.raises(InvalidTransition):
        resource_orders.confirm_resource_order_receipt(actor=management, order_id=paper_order.pk)
    paper_order.refresh_from_db()
    assert paper_order.status == rules.PENDING


@pytest.mark.django_db
def test_only_the_requester_can_deliver(paper_order, other_intake):
    with pytest.raises(PermissionDenied):
        resource_orders.deliver_resource_order(actor=other_intake, order_id=paper_order.pk)


@pytest.mark.django_db
def test_requester_cannot_confirm_receipt(paper_order, intake):
    resource_orders.deliver_resource_order(actor=intake, order_id=paper_order.pk)
    with pytest.raises(PermissionDenied):
        resource_orders.confirm_resource_order_receipt(actor=intake, order_id=paper_order.pk)


@pytest.mark.django_db
def test_deliver_twice_is_invalid(paper_order, intake):
    resource_orders.deliver_resource_order(actor=intake, order_id=paper_order.pk)
    with pytest.raises(InvalidTransition):
        resource_orders.deliver_resource_order(actor=intake, order_id=paper_order.pk)


@pytest.mark.django_db
def test_missing_order_is_not_found(intake):
    with pytest.raises(NotFound):
        resource_orders.deliver_resource_order(actor=intake, order_id=424242)


@pytest.mark.django_db
@pytest.mark.parametrize("role", [rules.MANAGEMENT, rules.CASHIER, rules.DIVISION_HEAD])
def test_only_intake_creates_orders(actors, role):
    with pytest.raises(PermissionDenied):
        resource_orders.create_resource_order(
            actor=actors[role],
            resource_type="Toner",
            quantity=1,
            unit="pièce",
            target_division=rules.CASHIER,
        )


@pytest.mark.django_db
@pytest.mark.parametrize(
    "overrides",
    [
        {"target_division": rules.INTAKE},
        {"target_division": "Accueil"},
        {"quantity": 0},
        {"unit": ""},
    ],
)
def test_order_validation(intake, overrides):
    kwargs = {
        "resource_type": "Papier",
        "quantity": 5,
        "unit": "rames",
        "target_division": rules.MANAGEMENT,
    }
    kwargs.update(overrides)
    with pytest.raises(ValidationError):
        resource_orders.create_resource_order(actor=intake, **kwargs)
    assert ResourceOrder.objects.count() == 0


@pytest.mark.django_db
def test_listing_is_scoped_by_relationship(intake, other_intake, management, cashier):
    mine = resource_orders.create_resource_order(
        actor=intake, resource_type="Papier", quantity=5, unit="rames", target_division=rules.MANAGEMENT
    )
    theirs = resource_orders.create_resource_order(
        actor=other_intake, resource_type="Toner", quantity=2, unit="pièces", target_division=rules.CASHIER
    )

    assert list(resource_orders.order_queryset(actor=intake).values_list("pk", flat=True)) == [mine.pk]
    assert list(resource_orders.order_queryset(actor=management).values_list("pk", flat=True)) == [mine.pk]
    assert list(resource_orders.order_queryset(actor=cashier).values_list("pk", flat=True)) == [theirs.pk]


@pytest.mark.django_db
def test_each_order_step_is_audited(paper_order, intake, management):
    resource_orders.deliver_resource_order(actor=intake, order_id=paper_order.pk)
    resource_orders.confirm_resource_order_receipt(actor=management, order_id=paper_order.pk)

    entries = [
        e for e in AuditLog.objects.order_by("created_at", "id")
        if e.details.get("kind") == "resource_order" and e.details.get("object_id") == paper_order.pk
    ]
    assert [e.actor_role for e in entries] == [rules.INTAKE, rules.INTAKE, rules.MANAGEMENT]
