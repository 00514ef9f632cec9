"""Read-only audit trail endpoint for admins and owners."""

from django_filters import rest_framework as filters
from drf_spectacular.utils import extend_schema
from rest_framework import generics
from rest_framework.filters import SearchFilter
from rest_framework.permissions import IsAuthenticated
from users.permissions import HasPermission, Permission

from . import selectors
from .models import AuditEvent
from .serializers import AuditEventSerializer


class AuditEventFilterSet(filters.FilterSet):
    created_after = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_before = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = AuditEvent
        fields = ["action", "target_type", "target_id", "actor", "role", "created_after", "created_before"]


class AuditEventListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated, HasPermission.for_(Permission.VIEW_DETAILED_ANALYTICS)]
    serializer_class = AuditEventSerializer
    filterset_class = AuditEventFilterSet
    filter_backends = [filters.DjangoFilterBackend, SearchFilter]
    search_fields = ["target_name", "actor_name", "action"]
    throttle_scope = "audit"

    def get_queryset(self):
        return selectors.list_events()

    @extend_schema(
        tags=["Admin Endpoints"],
        summary="List audit events",
        description=(
            "Newest first. Filters: action, target_type, target_id, actor, role, created_after, "
            "created_before (ISO); ?search= matches target name, actor name and action."
        ),
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)
