from datetime import timedelta

from cart.models import Cart
from cart.services import abandon_cart
from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone


class Command(BaseCommand):
    help = "Mark active carts untouched for longer than CART_ABANDON_TTL_MINUTES as abandoned"

    def add_arguments(self, parser):
        parser.add_argument("--ttl", type=int, default=None, help="Override the TTL in minutes")

    def handle(self, *args, **options):
        ttl_minutes = options.get("ttl") or getattr(settings, "CART_ABANDON_TTL_MINUTES", 120)
        cutoff = timezone.now() - timedelta(minutes=int(ttl_minutes))
        qs = Cart.objects.filter(status=Cart.STATUS_ACTIVE, updated_at__lt=cutoff)
        count = 0
        for cart in qs.iterator():
            if cart.user_id:
                abandon_cart(user=cart.user)
            else:
                abandon_cart(session_id=cart.session_id)
            count += 1
        self.stdout.write(self.style.SUCCESS(f"Abandoned {count} stale carts."))
