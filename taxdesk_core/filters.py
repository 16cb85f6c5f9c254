# taxdesk_core/filters.py
import django_filters as df

from .models import AuditLog, Dossier, Personnel, ResourceOrder


class UpperCaseCharFilter(df.CharFilter):
    def filter(self, qs, value):
        if value:
            value = value.strip().upper()
        return super().filter(qs, value)


class DossierFilter(df.FilterSet):
    status = UpperCaseCharFilter(field_name="status")
    taxpayer_name = df.CharFilter(field_name="taxpayer_name", lookup_expr="icontains")
    reference = df.CharFilter(field_name="reference", lookup_expr="iexact")
    tax_period = df.CharFilter(field_name="tax_period", lookup_expr="icontains")
    created_at = df.DateFromToRangeFilter()

    class Meta:
        model = Dossier
        fields = ["status", "taxpayer_name", "reference", "tax_period", "created_at"]


class ResourceOrderFilter(df.FilterSet):
    status = UpperCaseCharFilter(field_name="status")
    resource_type = df.CharFilter(field_name="resource_type", lookup_expr="iexact")

    class Meta:
        model = ResourceOrder
        fields = ["status", "resource_type"]


class AuditLogFilter(df.FilterSet):
    actor_role = UpperCaseCharFilter(field_name="actor_role")
    action = df.CharFilter(field_name="action", lookup_expr="icontains")
    kind = df.CharFilter(field_name="details__kind")
    created_at = df.DateFromToRangeFilter()

    class Meta:
        model = AuditLog
        fields = ["actor_role", "action", "kind", "created_at"]


class PersonnelFilter(df.FilterSet):
    name = df.CharFilter(field_name="name", lookup_expr="icontains")
    division = UpperCaseCharFilter(field_name="division")

    class Meta:
        model = Personnel
        fields = ["name", "division"]
