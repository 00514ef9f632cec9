import pytest
from catalog.tests.factories import ProductFactory
from common.choices import Role
from common.errors import DuplicateName, InvalidInput, NotFound, PermissionDenied
from django.db import IntegrityError
from taxonomy.models import Color, Material, SubCategory
from taxonomy.services import add_entry, deactivate_entry, reactivate_entry, update_entry
from taxonomy.tests.factories import ColorFactory, MainCategoryFactory, MaterialFactory, SubCategoryFactory

ADMIN = Role.ADMIN


@pytest.mark.django_db
def test_add_trims_whitespace_and_rejects_case_insensitive_duplicate():
    entry = add_entry(kind="materials", role=ADMIN, name="  Solid   Narra ")

    with pytest.raises(DuplicateName) as exc:
        add_entry(kind="materials", role=ADMIN, name="solid narra")

    assert entry.name == "Solid Narra"
    assert exc.value.payload() == {"name": "solid narra"}
    assert Material.objects.count() == 1


@pytest.mark.django_db
def test_add_matching_inactive_entry_reactivates_it():
    color = ColorFactory(name="Walnut", is_active=False)

    again = add_entry(kind="colors", role=ADMIN, name="WALNUT", hex_code="#000000")

    assert again.id == color.id
    assert again.is_active is True
    assert Color.objects.count() == 1


@pytest.mark.django_db
def test_add_prefers_active_match_over_older_inactive_one():
    retired = MaterialFactory(name="Oak", is_active=False)
    other = MaterialFactory(name="Teak")
    update_entry(kind="materials", role=ADMIN, entry_id=other.id, name="oak")

    with pytest.raises(DuplicateName):
        add_entry(kind="materials", role=ADMIN, name="OAK")

    retired.refresh_from_db()
    assert retired.is_active is False
    assert Material.objects.filter(is_active=True).count() == 1


@pytest.mark.django_db
def test_sub_category_names_are_scoped_to_main_category():
    chairs = MainCategoryFactory(name="chairs")
    tables = MainCategoryFactory(name="tables")

    add_entry(kind="sub-categories", role=ADMIN, name="Dining", main_category=chairs)
    add_entry(kind="sub-categories", role=ADMIN, name="Dining", main_category=tables)

    with pytest.raises(DuplicateName):
        add_entry(kind="sub-categories", role=ADMIN, name="dining", main_category=chairs)
    assert SubCategory.objects.filter(name="Dining").count() == 2


@pytest.mark.django_db
def test_update_rename_onto_active_name_is_rejected():
    MaterialFactory(name="Rattan")
    other = MaterialFactory(name="Acacia")

    with pytest.raises(DuplicateName):
        update_entry(kind="materials", role=ADMIN, entry_id=other.id, name=" rattan ")

    renamed = update_entry(kind="materials", role=ADMIN, entry_id=other.id, description="Light hardwood")
    assert renamed.name == "Acacia"
    assert renamed.description == "Light hardwood"


@pytest.mark.django_db
def test_deactivate_keeps_existing_product_references():
    material = MaterialFactory(name="Mahogany")
    product = ProductFactory(material=material)

    first = deactivate_entry(kind="materials", role=ADMIN, entry_id=material.id)
    second = deactivate_entry(kind="materials", role=ADMIN, entry_id=material.id)

    product.refresh_from_db()
    assert first.is_active is False and second.is_active is False
    assert product.material_id == material.id


@pytest.mark.django_db
def test_reactivate_fails_when_an_active_entry_took_the_name():
    old = MaterialFactory(name="Bamboo", is_active=False)
    MaterialFactory(name="bamboo")

    with pytest.raises(DuplicateName):
        reactivate_entry(kind="materials", role=ADMIN, entry_id=old.id)

    old.refresh_from_db()
    assert old.is_active is False


@pytest.mark.django_db
def test_reactivate_is_noop_for_active_entry():
    color = ColorFactory()

    assert reactivate_entry(kind="colors", role=ADMIN, entry_id=color.id).is_active is True


@pytest.mark.parametrize("role", [Role.CUSTOMER, Role.STAFF, Role.INVENTORY_CLERK])
@pytest.mark.django_db
def test_taxonomy_writes_require_create_products(role):
    color = ColorFactory()

    with pytest.raises(PermissionDenied):
        add_entry(kind="colors", role=role, name="Ivory")
    with pytest.raises(PermissionDenied):
        deactivate_entry(kind="colors", role=role, entry_id=color.id)


@pytest.mark.django_db
def test_unknown_kind_missing_entry_and_blank_name():
    with pytest.raises(NotFound):
        add_entry(kind="finishes", role=ADMIN, name="Matte")
    with pytest.raises(NotFound):
        deactivate_entry(kind="colors", role=ADMIN, entry_id=424242)
    with pytest.raises(InvalidInput):
        add_entry(kind="colors", role=ADMIN, name="   ")


@pytest.mark.django_db
def test_database_rejects_two_active_rows_with_same_name():
    SubCategoryFactory(name="Lounge", main_category=MainCategoryFactory(name="chairs"))

    with pytest.raises(IntegrityError):
        SubCategoryFactory(name="LOUNGE", main_category=MainCategoryFactory(name="chairs"))
