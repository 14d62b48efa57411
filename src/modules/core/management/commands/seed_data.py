from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.accounts.dtos import ActorDTO
from modules.accounts.models import UserRole
from modules.orders.dtos import CreateOrderDTO
from modules.orders.views import build_order_service
from modules.products.models import Product, ProductStatus

SEED_PASSWORD = "marketplace123"


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument(
            "--orders",
            type=int,
            default=20,
            help="Number of orders to place (default: 20).",
        )

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users = self._seed_users()
        products = self._seed_products(users[UserRole.SELLER])
        orders_created = self._seed_orders(users, products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={sum(len(group) for group in users.values())}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> dict:
        self.stdout.write("Creating users...")
        User = get_user_model()
        if not User.objects.filter(email="admin@example.com").exists():
            User.objects.create_superuser(
                email="admin@example.com", password=SEED_PASSWORD, name="Admin"
            )

        people = {
            UserRole.BUYER: ["Ada Buyer", "Ben Buyer", "Cleo Buyer"],
            UserRole.SELLER: ["Dara Seller", "Eli Seller"],
            UserRole.RIDER: ["Finn Rider", "Gia Rider"],
        }
        users: dict = {role: [] for role in people}
        for role, names in people.items():
            for name in names:
                email = f"{name.split()[0].lower()}@example.com"
                user = User.objects.filter(email=email).first()
                if user is None:
                    user = User.objects.create_user(
                        email=email,
                        password=SEED_PASSWORD,
                        name=name,
                        role=role,
                        is_verified=True,
                    )
                users[role].append(user)
        self.stdout.write(self.style.SUCCESS("Creating users... Done!"))
        return users

    def _seed_products(self, sellers: list) -> list[Product]:
        self.stdout.write("Creating products...")
        catalog = [
            ("Jollof rice tray", Decimal("4500.00")),
            ("Suya platter", Decimal("3000.00")),
            ("Fresh tomatoes (basket)", Decimal("12000.00")),
            ("Phone charger", Decimal("2500.00")),
            ("Bluetooth speaker", Decimal("18000.00")),
            ("Ankara fabric (6 yards)", Decimal("9500.00")),
            ("Bag of garri", Decimal("7000.00")),
            ("Office chair", Decimal("65000.00")),
        ]
        products: list[Product] = []
        for index, (name, price) in enumerate(catalog):
            seller = sellers[index % len(sellers)]
            product, _ = Product.objects.get_or_create(
                seller=seller,
                name=name,
                defaults={
                    "description": f"Sold by {seller.display_name}",
                    "price": price,
                    "stock_quantity": random.randint(20, 100),
                    "status": ProductStatus.ACTIVE,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(self, users: dict, products: list[Product], count: int) -> int:
        """Place orders through the service so every amount is real.

        Roughly: a third stays pending, a third is in transit, the rest
        is split between delivered and cancelled.
        """
        self.stdout.write("Creating orders...")
        service = build_order_service()
        riders = [ActorDTO.from_user(rider) for rider in users[UserRole.RIDER]]
        created = 0

        for i in range(count):
            buyer = ActorDTO.from_user(random.choice(users[UserRole.BUYER]))
            product = random.choice(products)
            receipt = service.create_order(
                buyer,
                CreateOrderDTO(
                    product_id=product.id,
                    quantity=random.randint(1, 3),
                    delivery_address=f"{random.randint(1, 99)} Allen Avenue, Ikeja",
                    idempotency_key=f"seed-order-{i + 1}",
                ),
            )
            if not receipt.created:
                continue
            created += 1

            order_id = str(receipt.order.id)
            outcome = random.choices(
                ["pending", "in_transit", "delivered", "cancelled"],
                weights=[0.35, 0.30, 0.20, 0.15],
                k=1,
            )[0]
            if outcome == "cancelled":
                service.cancel_order(buyer, order_id, notes="Changed my mind")
            elif outcome in ("in_transit", "delivered"):
                rider = random.choice(riders)
                service.claim_job(rider, order_id)
                if outcome == "delivered":
                    service.confirm_delivery(rider, order_id)

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created
