from django.db.models import QuerySet

from .models import AuditEvent


def list_events() -> QuerySet[AuditEvent]:
    return AuditEvent.objects.select_related("actor").all()


def events_for(*, target_type: str, target_id) -> QuerySet[AuditEvent]:
    return list_events().filter(target_type=target_type, target_id=str(target_id))
