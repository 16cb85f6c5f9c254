# taxdesk_core/models/personnel.py

from django.db import models

from .core import ROLE_CHOICES, TimeStampedModel


class Personnel(TimeStampedModel):
    name = models.CharField(max_length=255)
    division = models.CharField(max_length=32, choices=ROLE_CHOICES)
    affectation = models.CharField(max_length=255)

    # [{division, affectation, startDate, endDate|null}, ...], oldest first
    history = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ["name", "id"]
        verbose_name_plural = "personnel"

    def __str__(self):
        return f"{self.name} ({self.division})"
