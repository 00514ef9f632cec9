"""Selectors for taxonomy entries."""

from typing import Optional

from django.db.models import QuerySet

from .models import Color, MainCategory, Material, SubCategory


def _listing(qs: QuerySet, include_inactive: bool) -> QuerySet:
    if not include_inactive:
        qs = qs.filter(is_active=True)
    return qs.order_by("name")


def list_main_categories(*, include_inactive: bool = False) -> QuerySet[MainCategory]:
    return _listing(MainCategory.objects.all(), include_inactive)


def list_sub_categories(
    *, main_category_id: Optional[int] = None, include_inactive: bool = False
) -> QuerySet[SubCategory]:
    qs = SubCategory.objects.select_related("main_category")
    if main_category_id:
        qs = qs.filter(main_category_id=main_category_id)
    return _listing(qs, include_inactive)


def list_materials(*, include_inactive: bool = False) -> QuerySet[Material]:
    return _listing(Material.objects.all(), include_inactive)


def list_colors(*, include_inactive: bool = False) -> QuerySet[Color]:
    return _listing(Color.objects.all(), include_inactive)


def get_active(model, value):
    """Resolve an active entry by primary key or case-insensitive name, else None."""

    if value in (None, ""):
        return None
    qs = model.objects.filter(is_active=True)
    if isinstance(value, model):
        return qs.filter(pk=value.pk).first()
    if isinstance(value, int) or str(value).isdigit():
        return qs.filter(id=int(value)).first()
    return qs.filter(name__iexact=" ".join(str(value).split())).first()
