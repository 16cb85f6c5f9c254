# taxdesk_core/models/resource_order.py

from django.conf import settings
from django.db import models
from django.db.models import Q

from taxdesk_core.workflows import rules
from taxdesk_core.workflows.guards import WorkflowWriteGuardMixin

from .core import ROLE_CHOICES, TimeStampedModel


class ResourceOrder(WorkflowWriteGuardMixin, TimeStampedModel):
    """
    A supply request from the front desk to another division.
    """

    STATUS_CHOICES = [(code, rules.ORDER_STATUS_LABELS[code]) for code in (rules.PENDING, rules.DELIVERED, rules.RECEIVED)]
    RESOURCE_TYPE_CHOICES = [(t, t) for t in rules.RESOURCE_TYPES]

    WORKFLOW_FIELD = "status"
    LOCKED_FIELDS = ("requested_by", "requested_by_role", "target_division")

    resource_type = models.CharField(max_length=50, choices=RESOURCE_TYPE_CHOICES)
    quantity = models.PositiveIntegerField()
    unit = models.CharField(max_length=50)
    description = models.TextField(blank=True, default="")
    notes = models.TextField(blank=True, default="")

    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="resource_orders_requested",
    )
    requested_by_role = models.CharField(max_length=32, choices=ROLE_CHOICES)
    target_division = models.CharField(max_length=32, choices=ROLE_CHOICES, db_index=True)

    status = models.CharField(
        max_length=32,
        choices=STATUS_CHOICES,
        default=rules.PENDING,
        editable=False,
        db_index=True,
    )

    delivered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="resource_orders_delivered",
    )
    delivered_at = models.DateTimeField(null=True, blank=True)
    received_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="resource_orders_received",
    )
    received_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="resource_order_quantity_positive",
            ),
        ]

    def __str__(self):
        return f"{self.resource_type} x{self.quantity} {self.unit} -> {self.target_division}"
