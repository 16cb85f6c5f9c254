# taxdesk_core/workflows/guards.py

from django.core.exceptions import PermissionDenied
from django.db import models


class WorkflowWriteGuardMixin(models.Model):
    """
    Prevent direct modification of workflow-controlled fields outside the
    stores in `taxdesk_core.services`.

    WORKFLOW_FIELD is only ever written by a store through a filtered
    `.update()`. LOCKED_FIELDS are fixed at creation and may not change
    through `.save()` either.

    Escape hatch:
      - pass _workflow_bypass=True to save(), OR
      - set instance._workflow_bypass = True
    Use sparingly (tests, data fixes).
    """

    WORKFLOW_FIELD = "status"
    LOCKED_FIELDS: tuple = ()
    WORKFLOW_BYPASS_KWARG = "_workflow_bypass"

    class Meta:
        abstract = True

    def _guarded_attnames(self):
        names = []
        for name in (self.WORKFLOW_FIELD, *self.LOCKED_FIELDS):
            if name:
                names.append(self._meta.get_field(name).attname)
        return names

    def save(self, *args, **kwargs):
        bypass = bool(
            kwargs.pop(self.WORKFLOW_BYPASS_KWARG, False)
            or getattr(self, "_workflow_bypass", False)
        )

        if not bypass and self.pk is not None:
            attnames = self._guarded_attnames()
            stored = (
                self.__class__.objects.filter(pk=self.pk)
                .values(*attnames)
                .first()
            )

            if stored is not None:
                changed = [
                    name for name in attnames
                    if stored[name] != getattr(self, name, None)
                ]
                if changed:
                    raise PermissionDenied(
                        f"Direct modification of {', '.join(repr(c) for c in changed)} "
                        f"on {self.__class__.__name__} is forbidden. "
                        "Use the workflow operations."
                    )

        return super().save(*args, **kwargs)
