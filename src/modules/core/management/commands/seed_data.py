from __future__ import annotations

import random
from decimal import Decimal
from typing import Dict, List

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.accounts.constants import ActorRole
from modules.accounts.models import Participant
from modules.accounts.repositories import ParticipantDjangoRepository
from modules.accounts.services import IdentityService
from modules.inventory.models import Product, ProductStatus
from modules.inventory.repositories import InventoryDjangoRepository
from modules.inventory.services import InventoryService
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, TransitionPayload, TransitionRequestDTO
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.services import OrderEngine

# Status path walked by seeded orders, with the role that takes each step.
_HAPPY_PATH = [
    (ActorRole.WHOLESALER, OrderStatus.ACCEPTED),
    (ActorRole.WHOLESALER, OrderStatus.PROCESSING),
    (ActorRole.WHOLESALER, OrderStatus.ASSIGNED_TO_TRANSPORTER),
    (ActorRole.TRANSPORTER, OrderStatus.IN_TRANSIT),
    (ActorRole.TRANSPORTER, OrderStatus.DELIVERED),
    (ActorRole.RETAILER, OrderStatus.CERTIFIED),
]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        participants = self._seed_participants()
        products = self._seed_products(participants[ActorRole.WHOLESALER])
        orders_created = self._seed_orders(participants, products)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"participants={sum(len(p) for p in participants.values())}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_participants(self) -> Dict[str, List[Participant]]:
        self.stdout.write("Creating participants...")
        User = get_user_model()
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")

        seed = [
            ("retailer1", ActorRole.RETAILER, "Corner Market"),
            ("retailer2", ActorRole.RETAILER, "Village Grocer"),
            ("wholesaler1", ActorRole.WHOLESALER, "Central Wholesale"),
            ("transporter1", ActorRole.TRANSPORTER, "Fast Freight"),
            ("supplier1", ActorRole.SUPPLIER, "Green Farms"),
        ]
        participants: Dict[str, List[Participant]] = {role: [] for role in ActorRole}
        for username, role, business_name in seed:
            user, created = User.objects.get_or_create(username=username)
            if created:
                user.set_password(f"{username}123")
                user.save(update_fields=["password"])
            participant, _ = Participant.objects.get_or_create(
                email=f"{username}@example.com",
                defaults={"user": user, "role": role, "business_name": business_name},
            )
            participants[role].append(participant)
        self.stdout.write(self.style.SUCCESS("Creating participants... Done!"))
        return participants

    def _seed_products(self, wholesalers: List[Participant]) -> List[Product]:
        self.stdout.write("Creating products...")
        catalog = [
            ("RICE-5KG", "Rice 5kg", "bag", Decimal("24.90")),
            ("BEAN-1KG", "Black beans 1kg", "bag", Decimal("8.90")),
            ("OIL-900ML", "Soybean oil 900ml", "bottle", Decimal("7.49")),
            ("SUGAR-1KG", "Sugar 1kg", "bag", Decimal("4.99")),
            ("COFFEE-500G", "Ground coffee 500g", "pack", Decimal("17.90")),
            ("FLOUR-1KG", "Wheat flour 1kg", "bag", Decimal("5.49")),
        ]
        products: List[Product] = []
        for sku, name, unit, price in catalog:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "wholesaler": random.choice(wholesalers),
                    "name": name,
                    "price": price,
                    "measurement_unit": unit,
                    "stock_quantity": random.randint(200, 1000),
                    "status": ProductStatus.ACTIVE,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(
        self, participants: Dict[str, List[Participant]], products: List[Product]
    ) -> int:
        self.stdout.write("Creating orders...")
        engine = OrderEngine(
            order_repository=OrderDjangoRepository(),
            product_repository=InventoryDjangoRepository(),
            identity_service=IdentityService(ParticipantDjangoRepository()),
            inventory_service=InventoryService(InventoryDjangoRepository()),
        )
        transporter = participants[ActorRole.TRANSPORTER][0]

        for i in range(20):
            retailer = random.choice(participants[ActorRole.RETAILER])
            order = engine.create_order(
                CreateOrderDTO(
                    retailer_id=retailer.id,
                    product_id=random.choice(products).id,
                    quantity=random.randint(1, 10),
                    delivery_place=f"Dock {i % 4 + 1}",
                    order_notes=f"Seed order {i + 1}",
                    idempotency_key=f"seed-{i + 1}",
                )
            )
            steps = random.randint(0, len(_HAPPY_PATH))
            if order.version:
                # Already seeded on a previous run.
                continue
            for role, target in _HAPPY_PATH[:steps]:
                holder = {
                    ActorRole.RETAILER: order.retailer_id,
                    ActorRole.WHOLESALER: order.wholesaler_id,
                    ActorRole.TRANSPORTER: transporter.id,
                }[role]
                order = engine.request_transition(
                    TransitionRequestDTO(
                        order_id=order.id,
                        actor_role=role,
                        actor_id=holder,
                        expected_version=order.version,
                        target_status=target,
                        payload=TransitionPayload(transporter_id=transporter.id),
                    )
                )

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return 20
