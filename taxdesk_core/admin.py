# taxdesk_core/admin.py

from django.contrib import admin

from .models import (
    AuditLog,
    Dossier,
    DossierSequence,
    Message,
    Personnel,
    ResourceOrder,
    UserRole,
)


class ReadOnlyAdmin(admin.ModelAdmin):
    """
    Workflow records only change through the stores, so the admin is a
    viewer for them.
    """

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =============================================================
# Audit trail (READ-ONLY)
# =============================================================

@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdmin):
    list_display = ("created_at", "actor", "actor_role", "action")
    search_fields = ("action", "actor__username")
    list_filter = ("actor_role",)
    ordering = ("-created_at",)


# =============================================================
# Workflow records (READ-ONLY)
# =============================================================

@admin.register(Dossier)
class DossierAdmin(ReadOnlyAdmin):
    list_display = ("reference", "taxpayer_name", "tax_period", "status", "total_amount", "created_at")
    list_filter = ("status", "payment_method")
    search_fields = ("reference", "taxpayer_name")
    ordering = ("-created_at",)


@admin.register(ResourceOrder)
class ResourceOrderAdmin(ReadOnlyAdmin):
    list_display = ("id", "resource_type", "quantity", "unit", "target_division", "status", "created_at")
    list_filter = ("status", "target_division", "resource_type")
    ordering = ("-created_at",)


@admin.register(Message)
class MessageAdmin(ReadOnlyAdmin):
    list_display = ("created_at", "from_role", "to_role", "confirmed")
    list_filter = ("to_role", "confirmed")
    ordering = ("-created_at",)


@admin.register(DossierSequence)
class DossierSequenceAdmin(ReadOnlyAdmin):
    list_display = ("year", "last_value")


# =============================================================
# Editable reference data
# =============================================================

@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "created_at")
    list_filter = ("role",)
    search_fields = ("user__username",)


@admin.register(Personnel)
class PersonnelAdmin(admin.ModelAdmin):
    list_display = ("name", "division", "affectation", "updated_at")
    list_filter = ("division",)
    search_fields = ("name", "affectation")
    readonly_fields = ("history",)
