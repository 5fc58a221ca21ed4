import pytest
from django.core.management import call_command

from modules.accounts.models import Participant
from modules.inventory.models import Product
from modules.orders.models import Order, OrderStatusHistory

pytestmark = pytest.mark.integration


class TestSeedData:
    def test_seeds_participants_products_and_orders(self):
        call_command("seed_data")

        assert Participant.objects.count() == 5
        assert Product.objects.count() == 6
        assert Order.objects.count() == 20

    def test_seeded_histories_match_versions(self):
        call_command("seed_data")

        for order in Order.objects.all():
            history = OrderStatusHistory.objects.filter(order=order)
            assert history.count() == order.version + 1
            assert history.last().to_status == order.status

    def test_is_rerunnable(self):
        call_command("seed_data")
        call_command("seed_data")

        assert Order.objects.count() == 20
        assert Participant.objects.count() == 5
