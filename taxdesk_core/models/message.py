# taxdesk_core/models/message.py

from django.conf import settings
from django.db import models
from django.utils import timezone

from .core import ROLE_CHOICES


class Message(models.Model):
    """
    One recipient copy of a broadcast. All copies of a single send share
    `broadcast_id` and `created_at`.
    """

    broadcast_id = models.UUIDField(db_index=True, editable=False)
    from_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="taxdesk_messages_sent",
    )
    from_role = models.CharField(max_length=32, choices=ROLE_CHOICES)
    to_role = models.CharField(max_length=32, choices=ROLE_CHOICES, db_index=True)
    content = models.TextField()
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    confirmed = models.BooleanField(default=False)
    confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="taxdesk_messages_confirmed",
    )
    confirmed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "id"]

    def __str__(self):
        return f"{self.from_role} -> {self.to_role}: {self.content[:40]}"
