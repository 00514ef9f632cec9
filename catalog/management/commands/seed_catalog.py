"""Seed a small furniture catalog for local development.

Creates the main categories (chairs, tables), a few sub-categories,
materials and colors, products with variants, and opening stock in both
warehouses. Re-running is idempotent; existing items are reused by name/slug.
"""

from catalog.models import Product
from catalog.services import create_product
from common.choices import Role, Warehouse
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils.text import slugify
from inventory.services import adjust_stock
from taxonomy.models import Color, MainCategory, Material, SubCategory

MAIN_CATEGORIES = [("chairs", "Chairs"), ("tables", "Tables")]
SUB_CATEGORIES = {"chairs": ["Dining Chairs", "Accent Chairs"], "tables": ["Dining Tables", "Coffee Tables"]}
MATERIALS = ["Solid Narra", "Mahogany", "Rattan"]
COLORS = [("Walnut", "#5C4033"), ("Natural Oak", "#C8A165"), ("Ebony", "#3B3131")]

PRODUCTS = [
    {
        "name": "Narra Dining Chair",
        "category": "chairs",
        "sub_category": "Dining Chairs",
        "material": "Solid Narra",
        "base_price": "4500.00",
        "variants": [
            {"size": None, "color": "Walnut", "price": "4500.00"},
            {"size": None, "color": "Natural Oak", "price": "4800.00"},
        ],
        "media": [{"url": "https://images.example.com/narra-dining-chair.jpg", "alt_text": "Narra dining chair"}],
    },
    {
        "name": "Rattan Accent Chair",
        "category": "chairs",
        "sub_category": "Accent Chairs",
        "material": "Rattan",
        "base_price": "3200.00",
        "variants": [{"size": None, "color": "Natural Oak", "price": "3200.00"}],
    },
    {
        "name": "Mahogany Dining Table",
        "category": "tables",
        "sub_category": "Dining Tables",
        "material": "Mahogany",
        "base_price": "18500.00",
        "dimensions": {"width": 180, "depth": 90, "height": 76, "unit": "cm"},
        "variants": [
            {"size": "6 Seater", "color": "Ebony", "price": "18500.00"},
            {"size": "8 Seater", "color": "Ebony", "price": "24500.00"},
        ],
    },
]

# Opening stock per variant: (lorenzo, oroquieta)
OPENING_STOCK = (5, 3)


class Command(BaseCommand):
    help = "Seed taxonomy, products with variants, and opening stock"

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding catalog data...")

        mains = {}
        for name, display in MAIN_CATEGORIES:
            mains[name], _ = MainCategory.objects.get_or_create(
                name=name, is_active=True, defaults={"display_name": display}
            )
        for main, names in SUB_CATEGORIES.items():
            for name in names:
                SubCategory.objects.get_or_create(name=name, main_category=mains[main], is_active=True)
        for name in MATERIALS:
            Material.objects.get_or_create(name=name, is_active=True)
        for name, hex_code in COLORS:
            Color.objects.get_or_create(name=name, is_active=True, defaults={"hex_code": hex_code})

        created = 0
        for data in PRODUCTS:
            if Product.objects.filter(slug=slugify(data["name"])).exists():
                continue
            product = create_product(role=Role.OWNER, **data)
            created += 1
            for variant in product.variants.all():
                for warehouse, qty in zip((Warehouse.LORENZO, Warehouse.OROQUIETA), OPENING_STOCK):
                    adjust_stock(
                        variant_id=variant.id,
                        warehouse=warehouse,
                        new_quantity=qty,
                        role=Role.OWNER,
                        notes="Opening stock",
                    )

        self.stdout.write(self.style.SUCCESS(f"Catalog seeded ({created} new products)."))
