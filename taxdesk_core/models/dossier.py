# taxdesk_core/models/dossier.py

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

from taxdesk_core.workflows import rules
from taxdesk_core.workflows.guards import WorkflowWriteGuardMixin

from .core import TimeStampedModel


class Dossier(WorkflowWriteGuardMixin, TimeStampedModel):
    class Status(models.TextChoices):
        AWAITING_CALCULATION = rules.AWAITING_CALCULATION, rules.DOSSIER_STATUS_LABELS[rules.AWAITING_CALCULATION]
        AWAITING_PAYMENT = rules.AWAITING_PAYMENT, rules.DOSSIER_STATUS_LABELS[rules.AWAITING_PAYMENT]
        PAID = rules.PAID, rules.DOSSIER_STATUS_LABELS[rules.PAID]
        CANCELLED = rules.CANCELLED, rules.DOSSIER_STATUS_LABELS[rules.CANCELLED]

    class PaymentMethod(models.TextChoices):
        CASH = rules.PAYMENT_CASH, rules.PAYMENT_CASH
        CHEQUE = rules.PAYMENT_CHEQUE, rules.PAYMENT_CHEQUE
        TRANSFER = rules.PAYMENT_TRANSFER, rules.PAYMENT_TRANSFER

    WORKFLOW_FIELD = "status"
    LOCKED_FIELDS = ("reference", "taxpayer_name", "tax_period", "created_by")

    reference = models.CharField(max_length=32, unique=True, editable=False)
    taxpayer_name = models.CharField(max_length=255)
    tax_period = models.CharField(max_length=100)

    tax_details = models.JSONField(default=list, blank=True)
    total_amount = models.DecimalField(
        max_digits=rules.AMOUNT_MAX_DIGITS,
        decimal_places=rules.AMOUNT_DECIMAL_PLACES,
        default=Decimal("0"),
    )

    status = models.CharField(
        max_length=32,
        choices=Status.choices,
        default=Status.AWAITING_CALCULATION,
        editable=False,
        db_index=True,
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="dossiers_created",
    )
    managed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="dossiers_managed",
    )

    payment_method = models.CharField(
        max_length=32,
        choices=PaymentMethod.choices,
        blank=True,
        default="",
    )
    payment_details = models.JSONField(null=True, blank=True)

    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="dossiers_cancelled",
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)
    reason = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(payment_method="") | Q(cancelled_at__isnull=True),
                name="dossier_paid_xor_cancelled",
            ),
            models.CheckConstraint(
                condition=Q(total_amount__gte=0),
                name="dossier_total_not_negative",
            ),
        ]

    def __str__(self):
        return f"{self.reference} - {self.taxpayer_name}"


class DossierSequence(models.Model):
    """
    Per-year counter behind dossier references. Rows are only read
    under SELECT ... FOR UPDATE by `services.dossiers.next_reference`.
    """

    year = models.PositiveIntegerField(unique=True)
    last_value = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"{self.year}: {self.last_value}"
