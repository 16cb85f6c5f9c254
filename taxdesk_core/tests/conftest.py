# taxdesk_core/tests/conftest.py

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import pytest
from django.contrib.auth import authenticate, get_user_model
from rest_framework.test import APIClient

from taxdesk_core.models import Dossier, UserRole
from taxdesk_core.services import dossiers
from taxdesk_core.workflows import rules
from taxdesk_core.workflows.engine import Actor


PASSWORD = "pass123"


@pytest.fixture(autouse=True)
def _fast_tests(settings):
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
    settings.SECURE_SSL_REDIRECT = False
    settings.SESSION_COOKIE_SECURE = False
    settings.CSRF_COOKIE_SECURE = False


class AuthAPIClient(APIClient):
    """
    Test client that uses force_authenticate for predictable DRF auth.
    """

    _user = None

    def login(self, username: str, password: str, **kwargs) -> bool:  # type: ignore[override]
        user = authenticate(username=username, password=password)
        if not user:
            return False
        self.force_authenticate(user=user)
        self._user = user
        return True

    def as_user(self, user) -> "AuthAPIClient":
        self.force_authenticate(user=user)
        self._user = user
        return self

    def logout(self) -> None:  # type: ignore[override]
        # DRF's force_authenticate(user=None) calls self.logout() internally.
        super().logout()
        self.handler._force_user = None
        self.handler._force_token = None
        self._user = None


@pytest.fixture
def api_client() -> AuthAPIClient:
    return AuthAPIClient()


def _make_user(username: str, role: Optional[str]):
    User = get_user_model()
    user, _created = User.objects.get_or_create(username=username)
    user.set_password(PASSWORD)
    user.save(update_fields=["password"])
    if role:
        UserRole.objects.update_or_create(user=user, defaults={"role": role})
    return user


@pytest.fixture
def intake_user(db):
    return _make_user("accueil", rules.INTAKE)


@pytest.fixture
def other_intake_user(db):
    return _make_user("accueil2", rules.INTAKE)


@pytest.fixture
def management_user(db):
    return _make_user("gestion", rules.MANAGEMENT)


@pytest.fixture
def cashier_user(db):
    return _make_user("caisse", rules.CASHIER)


@pytest.fixture
def head_user(db):
    return _make_user("chef", rules.DIVISION_HEAD)


@pytest.fixture
def roleless_user(db):
    return _make_user("visitor", None)


def actor_of(user) -> Actor:
    role = UserRole.objects.get(user=user).role
    return Actor(user_id=user.pk, role=role, username=user.username)


@pytest.fixture
def intake(intake_user) -> Actor:
    return actor_of(intake_user)


@pytest.fixture
def other_intake(other_intake_user) -> Actor:
    return actor_of(other_intake_user)


@pytest.fixture
def management(management_user) -> Actor:
    return actor_of(management_user)


@pytest.fixture
def cashier(cashier_user) -> Actor:
    return actor_of(cashier_user)


@pytest.fixture
def head(head_user) -> Actor:
    return actor_of(head_user)


@pytest.fixture
def actors(intake, management, cashier, head) -> Dict[str, Actor]:
    return {
        rules.INTAKE: intake,
        rules.MANAGEMENT: management,
        rules.CASHIER: cashier,
        rules.DIVISION_HEAD: head,
    }


@pytest.fixture
def dossier_factory(intake, management, cashier, head) -> Callable[..., Dossier]:
    """
    Build a dossier and drive it through the real stores to the
    requested status.
    """

    def _factory(
        *,
        status: str = rules.AWAITING_CALCULATION,
        taxpayer_name: str = "ACME Corp",
        tax_period: str = "Janvier 2024",
        amount: int = 15000,
    ) -> Dossier:
        dossier = dossiers.create_dossier(
            actor=intake,
            taxpayer_name=taxpayer_name,
            tax_period=tax_period,
            tax_details=[{"name": "TVA", "amount": 0}],
        )
        if status == rules.AWAITING_CALCULATION:
            return dossier

        if status == rules.CANCELLED:
            return dossiers.cancel_dossier(actor=head, dossier_id=dossier.pk, reason="Doublon")

        dossier = dossiers.set_calculated_amounts(
            actor=management,
            dossier_id=dossier.pk,
            tax_details=[{"name": "TVA", "amount": amount}],
        )
        if status == rules.AWAITING_PAYMENT:
            return dossier

        if status == rules.PAID:
            return dossiers.confirm_payment(actor=cashier, dossier_id=dossier.pk, payment_method="Espèce")

        raise ValueError(f"Unsupported status for factory: {status}")

    return _factory


def dossier_fields(dossier: Dossier) -> Dict[str, Any]:
    """
    Every persisted field of a dossier, for unchanged-after-failure checks.
    """
    dossier.refresh_from_db()
    return {f.attname: getattr(dossier, f.attname) for f in Dossier._meta.concrete_fields}


@pytest.fixture
def fields_of() -> Callable[[Dossier], Dict[str, Any]]:
    return dossier_fields
