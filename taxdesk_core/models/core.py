# taxdesk_core/models/core.py

from django.conf import settings
from django.db import models
from django.utils import timezone

from taxdesk_core.workflows import rules


ROLE_CHOICES = [(code, rules.ROLE_LABELS[code]) for code in rules.ROLES]


# ============================================================
# Base
# ============================================================
class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# ============================================================
# User role
# ============================================================
class UserRole(TimeStampedModel):
    """
    The single workflow role a user acts under. A user with no row here
    cannot perform any workflow operation.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="taxdesk_role",
    )
    role = models.CharField(max_length=32, choices=ROLE_CHOICES)

    def __str__(self):
        return f"{self.user} ({self.get_role_display()})"


# ============================================================
# Audit log
# ============================================================
class AuditLog(models.Model):
    """
    Append-only record of every business mutation. Rows are written by
    `taxdesk_core.services.audit.record` inside the mutation's
    transaction and never updated afterwards.
    """

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="taxdesk_audit_logs",
    )
    actor_role = models.CharField(max_length=32, blank=True)
    action = models.CharField(max_length=255)
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True, editable=False)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.created_at:%Y-%m-%d %H:%M} {self.actor_role} {self.action}"
