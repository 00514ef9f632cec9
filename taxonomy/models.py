"""Taxonomy models: controlled vocabularies referenced by products.

Entries are never hard-deleted; ``is_active`` hides an entry from future
selection while products and orders that already reference it stay valid.
"""

from django.db import models
from django.db.models.functions import Lower


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class TaxonomyEntry(TimeStampedModel):
    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    # Extra lookup fields that scope name uniqueness (e.g. parent category)
    scope_fields: tuple = ()

    class Meta:
        abstract = True
        ordering = ["name"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class MainCategory(TaxonomyEntry):
    display_name = models.CharField(max_length=120, blank=True)

    class Meta(TaxonomyEntry.Meta):
        verbose_name_plural = "main categories"
        constraints = [
            models.UniqueConstraint(
                Lower("name"),
                condition=models.Q(is_active=True),
                name="unique_active_main_category_name",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.display_name or self.name


class SubCategory(TaxonomyEntry):
    main_category = models.ForeignKey(MainCategory, related_name="sub_categories", on_delete=models.PROTECT)

    scope_fields = ("main_category",)

    class Meta(TaxonomyEntry.Meta):
        verbose_name_plural = "sub categories"
        constraints = [
            models.UniqueConstraint(
                Lower("name"),
                "main_category",
                condition=models.Q(is_active=True),
                name="unique_active_sub_category_name",
            ),
        ]


class Material(TaxonomyEntry):
    class Meta(TaxonomyEntry.Meta):
        constraints = [
            models.UniqueConstraint(
                Lower("name"),
                condition=models.Q(is_active=True),
                name="unique_active_material_name",
            ),
        ]


class Color(TaxonomyEntry):
    hex_code = models.CharField(max_length=7, blank=True)

    class Meta(TaxonomyEntry.Meta):
        constraints = [
            models.UniqueConstraint(
                Lower("name"),
                condition=models.Q(is_active=True),
                name="unique_active_color_name",
            ),
        ]
