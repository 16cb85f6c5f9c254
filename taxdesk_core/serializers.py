from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import AuditLog, Dossier, Message, Personnel, ResourceOrder
from .services.actors import role_for_user
from .workflows import allowed_dossier_operations, rules

User = get_user_model()


# ===============================================================
# Users / tokens
# ===============================================================

class UserDirectorySerializer(serializers.ModelSerializer):
    role = serializers.SerializerMethodField()
    role_label = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ("id", "username", "role", "role_label")
        read_only_fields = fields

    def get_role(self, obj) -> str:
        return role_for_user(obj)

    def get_role_label(self, obj) -> str:
        role = role_for_user(obj)
        return rules.role_label(role) if role else ""


class RoleTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Access tokens carry the username and workflow role so that clients
    can pick the right dashboard without a second request.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token["username"] = user.get_username()
        token["role"] = role_for_user(user)
        return token


# ===============================================================
# Dossiers
# ===============================================================

class DossierSerializer(serializers.ModelSerializer):
    status_label = serializers.CharField(source="get_status_display", read_only=True)
    created_by_username = serializers.CharField(source="created_by.username", read_only=True)
    managed_by_username = serializers.CharField(source="managed_by.username", read_only=True, default=None)
    allowed_operations = serializers.SerializerMethodField()

    class Meta:
        model = Dossier
        fields = (
            "id",
            "reference",
            "taxpayer_name",
            "tax_period",
            "tax_details",
            "total_amount",
            "status",
            "status_label",
            "created_by",
            "created_by_username",
            "managed_by",
            "managed_by_username",
            "payment_method",
            "payment_details",
            "cancelled_by",
            "cancelled_at",
            "reason",
            "allowed_operations",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_allowed_operations(self, obj) -> list[str]:
        role = self.context.get("role")
        if not role:
            return []
        return allowed_dossier_operations(obj.status, role)


class TaxDetailLineSerializer(serializers.Serializer):
    name = serializers.CharField()
    amount = serializers.DecimalField(max_digits=16, decimal_places=2, required=False)


class DossierCreateSerializer(serializers.Serializer):
    taxpayer_name = serializers.CharField()
    tax_period = serializers.CharField()
    tax_details = TaxDetailLineSerializer(many=True)


class TaxDetailsSerializer(serializers.Serializer):
    tax_details = TaxDetailLineSerializer(many=True)


class PaymentSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=Dossier.PaymentMethod.choices)
    bank_name = serializers.CharField(required=False, allow_blank=True)
    cheque_number = serializers.CharField(required=False, allow_blank=True)
    bank_transfer_ref = serializers.CharField(required=False, allow_blank=True)


class CancellationSerializer(serializers.Serializer):
    reason = serializers.CharField()


class AllowedOperationsSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    reference = serializers.CharField()
    status = serializers.CharField()
    role = serializers.CharField()
    operations = serializers.ListField(child=serializers.CharField())
    allowed_next_states = serializers.ListField(child=serializers.CharField())


# ===============================================================
# Resource orders
# ===============================================================

class ResourceOrderSerializer(serializers.ModelSerializer):
    status_label = serializers.CharField(source="get_status_display", read_only=True)
    requested_by_username = serializers.CharField(source="requested_by.username", read_only=True)

    class Meta:
        model = ResourceOrder
        fields = (
            "id",
            "resource_type",
            "quantity",
            "unit",
            "description",
            "notes",
            "requested_by",
            "requested_by_username",
            "requested_by_role",
            "target_division",
            "status",
            "status_label",
            "delivered_by",
            "delivered_at",
            "received_by",
            "received_at",
            "created_at",
        )
        read_only_fields = fields


class ResourceOrderCreateSerializer(serializers.Serializer):
    resource_type = serializers.ChoiceField(choices=ResourceOrder.RESOURCE_TYPE_CHOICES)
    quantity = serializers.IntegerField(min_value=1)
    unit = serializers.CharField()
    target_division = serializers.ChoiceField(choices=sorted(rules.ORDER_TARGET_DIVISIONS))
    description = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


# ===============================================================
# Messages
# ===============================================================

class MessageSerializer(serializers.ModelSerializer):
    from_username = serializers.CharField(source="from_user.username", read_only=True, default=None)

    class Meta:
        model = Message
        fields = (
            "id",
            "broadcast_id",
            "from_user",
            "from_username",
            "from_role",
            "to_role",
            "content",
            "created_at",
            "confirmed",
            "confirmed_by",
            "confirmed_at",
        )
        read_only_fields = fields


class MessageCreateSerializer(serializers.Serializer):
    content = serializers.CharField()


# ===============================================================
# Audit / personnel
# ===============================================================

class AuditLogSerializer(serializers.ModelSerializer):
    actor_username = serializers.CharField(source="actor.username", read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = (
            "id",
            "actor",
            "actor_username",
            "actor_role",
            "action",
            "details",
            "created_at",
        )
        read_only_fields = fields


class PersonnelSerializer(serializers.ModelSerializer):
    class Meta:
        model = Personnel
        fields = (
            "id",
            "name",
            "division",
            "affectation",
            "history",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class PersonnelWriteSerializer(serializers.Serializer):
    name = serializers.CharField()
    division = serializers.ChoiceField(choices=list(rules.ROLES))
    affectation = serializers.CharField()
