# taxdesk_core/urls.py

from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import (
    AuditLogViewSet,
    DossierViewSet,
    HealthCheckView,
    MessageViewSet,
    PersonnelViewSet,
    ResourceOrderViewSet,
    UserDirectoryView,
    WhoAmIView,
    WorkflowDefinitionView,
)

router = SimpleRouter()
router.register(r"dossiers", DossierViewSet, basename="dossier")
router.register(r"resource-orders", ResourceOrderViewSet, basename="resource-order")
router.register(r"messages", MessageViewSet, basename="message")
router.register(r"audit-logs", AuditLogViewSet, basename="audit-log")
router.register(r"personnel", PersonnelViewSet, basename="personnel")

urlpatterns = [
    path("health/", HealthCheckView.as_view(), name="health"),
    path("workflows/<str:kind>/", WorkflowDefinitionView.as_view(), name="workflow-definition"),
    path("users/", UserDirectoryView.as_view(), name="user-directory"),
    path("whoami/", WhoAmIView.as_view(), name="whoami"),
    path("", include(router.urls)),
]
