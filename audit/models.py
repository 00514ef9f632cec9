"""Audit trail models.

Order mutations keep their own ``OrderEvent`` log and stock adjustments their
``InventoryBatch`` log; this table covers the remaining administrative writes.
Rows are written once by ``audit.services.record`` and never edited.
"""

from common.choices import AuditAction, AuditTarget
from django.conf import settings
from django.db import models


class AuditEvent(models.Model):
    action = models.CharField(max_length=32, choices=AuditAction.choices, db_index=True)
    target_type = models.CharField(max_length=16, choices=AuditTarget.choices)
    target_id = models.CharField(max_length=64)
    target_name = models.CharField(max_length=255, blank=True)
    actor = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, related_name="+", on_delete=models.SET_NULL)
    # Copied so the trail stays readable after the account changes
    actor_name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=32, blank=True)
    changes = models.JSONField(default=list, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["target_type", "target_id"], name="audit_target_idx")]

    def __str__(self) -> str:
        return f"{self.action} {self.target_type}:{self.target_id}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Audit events are append-only.")
        super().save(*args, **kwargs)
