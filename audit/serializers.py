from rest_framework import serializers

from .models import AuditEvent


class AuditEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditEvent
        fields = [
            "id",
            "action",
            "target_type",
            "target_id",
            "target_name",
            "actor",
            "actor_name",
            "role",
            "changes",
            "metadata",
            "created_at",
        ]
        read_only_fields = fields
