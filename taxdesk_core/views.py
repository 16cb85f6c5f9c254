from __future__ import annotations

from django.contrib.auth import get_user_model
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .filters import AuditLogFilter, DossierFilter, PersonnelFilter, ResourceOrderFilter
from .models import AuditLog, Dossier, Message, Personnel, ResourceOrder
from .permissions import HasWorkflowRole, resolve_actor
from .serializers import (
    AllowedOperationsSerializer,
    AuditLogSerializer,
    CancellationSerializer,
    DossierCreateSerializer,
    DossierSerializer,
    MessageCreateSerializer,
    MessageSerializer,
    PaymentSerializer,
    PersonnelSerializer,
    PersonnelWriteSerializer,
    ResourceOrderCreateSerializer,
    ResourceOrderSerializer,
    TaxDetailsSerializer,
    UserDirectorySerializer,
)
from .services import audit, dossiers, messages, personnel, resource_orders
from .services.actors import role_for_user
from .workflows import rules, workflow_definition

User = get_user_model()


# ===============================================================
# System
# ===============================================================
class HealthCheckView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(tags=["System"])
    def get(self, request):
        return Response({"status": "ok", "service": "taxdesk"})


# ===============================================================
# Dossiers
# ===============================================================
@extend_schema(tags=["Dossiers"])
class DossierViewSet(viewsets.GenericViewSet):
    """
    Read endpoints use the filtered, paginated queryset. Every write
    delegates to `services.dossiers`, which checks the role before it
    looks at the record or the payload.
    """

    queryset = Dossier.objects.none()
    serializer_class = DossierSerializer
    permission_classes = [IsAuthenticated, HasWorkflowRole]
    filterset_class = DossierFilter

    def get_queryset(self):
        actor = resolve_actor(self.request)
        return dossiers.dossier_queryset(actor=actor).order_by("-created_at", "-id")

    def get_serializer_context(self):
        context = super().get_serializer_context()
        user = getattr(self.request, "user", None)
        context["role"] = role_for_user(user) if user else ""
        return context

    def _respond(self, dossier, code=status.HTTP_200_OK):
        return Response(self.get_serializer(dossier).data, status=code)

    def list(self, request):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(self.get_serializer(page, many=True).data)

    def retrieve(self, request, pk=None):
        dossier = dossiers.get_dossier(actor=resolve_actor(request), dossier_id=pk)
        return self._respond(dossier)

    @extend_schema(request=DossierCreateSerializer, responses={201: DossierSerializer})
    def create(self, request):
        data = request.data
        dossier = dossiers.create_dossier(
            actor=resolve_actor(request),
            taxpayer_name=data.get("taxpayer_name"),
            tax_period=data.get("tax_period"),
            tax_details=data.get("tax_details"),
        )
        return self._respond(dossier, status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        dossiers.delete_dossier(actor=resolve_actor(request), dossier_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=TaxDetailsSerializer, responses=DossierSerializer)
    @action(detail=True, methods=["post"])
    def calculate(self, request, pk=None):
        dossier = dossiers.set_calculated_amounts(
            actor=resolve_actor(request),
            dossier_id=pk,
            tax_details=request.data.get("tax_details"),
        )
        return self._respond(dossier)

    @extend_schema(request=TaxDetailsSerializer, responses=DossierSerializer)
    @action(detail=True, methods=["post"])
    def amend(self, request, pk=None):
        dossier = dossiers.amend_calculated_amounts(
            actor=resolve_actor(request),
            dossier_id=pk,
            tax_details=request.data.get("tax_details"),
        )
        return self._respond(dossier)

    @extend_schema(request=PaymentSerializer, responses=DossierSerializer)
    @action(detail=True, methods=["post"])
    def pay(self, request, pk=None):
        data = request.data
        dossier = dossiers.confirm_payment(
            actor=resolve_actor(request),
            dossier_id=pk,
            payment_method=data.get("payment_method"),
            bank_name=data.get("bank_name"),
            cheque_number=data.get("cheque_number"),
            bank_transfer_ref=data.get("bank_transfer_ref"),
        )
        return self._respond(dossier)

    @extend_schema(request=CancellationSerializer, responses=DossierSerializer)
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        dossier = dossiers.cancel_dossier(
            actor=resolve_actor(request),
            dossier_id=pk,
            reason=request.data.get("reason"),
        )
        return self._respond(dossier)

    @extend_schema(responses=AllowedOperationsSerializer)
    @action(detail=True, methods=["get"])
    def allowed(self, request, pk=None):
        return Response(dossiers.allowed_operations(actor=resolve_actor(request), dossier_id=pk))


# ===============================================================
# Resource orders
# ===============================================================
@extend_schema(tags=["Resource orders"])
class ResourceOrderViewSet(viewsets.GenericViewSet):
    queryset = ResourceOrder.objects.none()
    serializer_class = ResourceOrderSerializer
    permission_classes = [IsAuthenticated, HasWorkflowRole]
    filterset_class = ResourceOrderFilter

    def get_queryset(self):
        actor = resolve_actor(self.request)
        return resource_orders.order_queryset(actor=actor).order_by("-created_at", "-id")

    def list(self, request):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(self.get_serializer(page, many=True).data)

    def retrieve(self, request, pk=None):
        order = self.get_queryset().filter(pk=pk).first() if str(pk).isdigit() else None
        if order is None:
            raise NotFound(f"Resource order {pk} not found.")
        return Response(self.get_serializer(order).data)

    @extend_schema(request=ResourceOrderCreateSerializer, responses={201: ResourceOrderSerializer})
    def create(self, request):
        data = request.data
        order = resource_orders.create_resource_order(
            actor=resolve_actor(request),
            resource_type=data.get("resource_type"),
            quantity=data.get("quantity"),
            unit=data.get("unit"),
            target_division=data.get("target_division"),
            description=data.get("description", ""),
            notes=data.get("notes", ""),
        )
        return Response(self.get_serializer(order).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses=ResourceOrderSerializer)
    @action(detail=True, methods=["post"])
    def deliver(self, request, pk=None):
        order = resource_orders.deliver_resource_order(actor=resolve_actor(request), order_id=pk)
        return Response(self.get_serializer(order).data)

    @extend_schema(request=None, responses=ResourceOrderSerializer)
    @action(detail=True, methods=["post"])
    def receive(self, request, pk=None):
        order = resource_orders.confirm_resource_order_receipt(actor=resolve_actor(request), order_id=pk)
        return Response(self.get_serializer(order).data)


# ===============================================================
# Messages
# ===============================================================
@extend_schema(tags=["Messages"])
class MessageViewSet(viewsets.GenericViewSet):
    queryset = Message.objects.none()
    serializer_class = MessageSerializer
    permission_classes = [IsAuthenticated, HasWorkflowRole]
    pagination_class = None

    def get_queryset(self):
        box = self.request.query_params.get("box")
        return messages.message_queryset(actor=resolve_actor(self.request), box=box)

    @extend_schema(
        parameters=[OpenApiParameter("box", str, enum=list(messages.BOXES), required=False)],
    )
    def list(self, request):
        items = messages.list_messages(actor=resolve_actor(request), box=request.query_params.get("box"))
        return Response(self.get_serializer(items, many=True).data)

    @extend_schema(request=MessageCreateSerializer, responses={201: MessageSerializer(many=True)})
    def create(self, request):
        sent = messages.send_message(actor=resolve_actor(request), content=request.data.get("content"))
        return Response(self.get_serializer(sent, many=True).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses=MessageSerializer)
    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):
        message = messages.confirm_message(actor=resolve_actor(request), message_id=pk)
        return Response(self.get_serializer(message).data)


# ===============================================================
# Audit trail
# ===============================================================
@extend_schema(tags=["Audit"])
class AuditLogViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    queryset = AuditLog.objects.none()
    serializer_class = AuditLogSerializer
    permission_classes = [IsAuthenticated, HasWorkflowRole]
    filterset_class = AuditLogFilter

    def get_queryset(self):
        return audit.audit_queryset(actor=resolve_actor(self.request))


# ===============================================================
# Personnel
# ===============================================================
@extend_schema(tags=["Personnel"])
class PersonnelViewSet(viewsets.GenericViewSet):
    queryset = Personnel.objects.none()
    serializer_class = PersonnelSerializer
    permission_classes = [IsAuthenticated, HasWorkflowRole]
    filterset_class = PersonnelFilter

    def get_queryset(self):
        return personnel.personnel_queryset(actor=resolve_actor(self.request))

    def list(self, request):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(self.get_serializer(page, many=True).data)

    def retrieve(self, request, pk=None):
        person = self.get_queryset().filter(pk=pk).first() if str(pk).isdigit() else None
        if person is None:
            raise NotFound(f"Personnel {pk} not found.")
        return Response(self.get_serializer(person).data)

    @extend_schema(request=PersonnelWriteSerializer, responses={201: PersonnelSerializer})
    def create(self, request):
        data = request.data
        person = personnel.create_personnel(
            actor=resolve_actor(request),
            name=data.get("name"),
            division=data.get("division"),
            affectation=data.get("affectation"),
        )
        return Response(self.get_serializer(person).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=PersonnelWriteSerializer, responses=PersonnelSerializer)
    def update(self, request, pk=None):
        data = request.data
        person = personnel.update_personnel(
            actor=resolve_actor(request),
            personnel_id=pk,
            name=data.get("name"),
            division=data.get("division"),
            affectation=data.get("affectation"),
        )
        return Response(self.get_serializer(person).data)

    @extend_schema(request=PersonnelWriteSerializer(partial=True), responses=PersonnelSerializer)
    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk)

    def destroy(self, request, pk=None):
        personnel.delete_personnel(actor=resolve_actor(request), personnel_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ===============================================================
# Workflow introspection
# ===============================================================
class WorkflowDefinitionView(APIView):
    """
    Returns the full workflow definition for `dossier` or `resource_order`.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Workflows"])
    def get(self, request, kind: str):
        try:
            data = workflow_definition(kind)
        except ValueError as e:
            raise NotFound(str(e))
        return Response(data)


# ===============================================================
# Users
# ===============================================================
@extend_schema(tags=["Users"])
class UserDirectoryView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses=UserDirectorySerializer(many=True))
    def get(self, request):
        users = User.objects.filter(is_active=True).order_by("username")
        return Response(UserDirectorySerializer(users, many=True).data)


class WhoAmIView(APIView):
    """
    Returns the authenticated user and the workflow role they act under.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Users"])
    def get(self, request):
        user = request.user
        role = role_for_user(user)
        return Response(
            {
                "id": user.id,
                "username": user.get_username(),
                "role": role or None,
                "role_label": rules.role_label(role) if role else None,
                "is_superuser": bool(getattr(user, "is_superuser", False)),
            }
        )
