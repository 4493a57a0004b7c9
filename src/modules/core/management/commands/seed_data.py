from __future__ import annotations

import random

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand

from modules.core.roles import UserRole
from modules.orders.constants import TaskPhase
from modules.orders.dtos import ImportOrderDTO, ImportOrderItemDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.views import build_fulfillment_service

CATALOG = [
    ("7891000100103", "Monitor 27\""),
    ("7891000100110", "Mechanical Keyboard"),
    ("7891000100127", "Gaming Mouse"),
    ("7891000100134", "Notebook 14\""),
    ("7891000100141", "Headset"),
    ("7891000200100", "Office Chair"),
    ("7891000300107", "A4 Paper"),
    ("7891000300114", "Blue Pen"),
    ("7891000300121", "Notebook Stand"),
    ("7891000300138", "LED Lamp"),
]


class Command(BaseCommand):
    help = "Seed database with operators and orders in every fulfillment stage."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=30)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users = self._seed_users()
        orders_created = self._seed_orders(users, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                f"Seed completed: users={len(users)}, orders={orders_created}"
            )
        )

    def _seed_users(self) -> dict:
        User = get_user_model()
        users = {}
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
        users[UserRole.ADMIN] = User.objects.get(username="admin")

        for role in (UserRole.PICKER, UserRole.PACKER):
            group, _ = Group.objects.get_or_create(name=role.value)
            user, created = User.objects.get_or_create(username=role.value)
            if created:
                user.set_password(f"{role.value}123")
                user.save()
            user.groups.add(group)
            users[role] = user
        Group.objects.get_or_create(name=UserRole.ADMIN.value)
        return users

    def _seed_orders(self, users: dict, count: int) -> int:
        self.stdout.write("Creating orders...")
        service = build_fulfillment_service()
        repository = OrderDjangoRepository()
        admin = users[UserRole.ADMIN]
        picker = users[UserRole.PICKER]
        packer = users[UserRole.PACKER]
        created = 0

        for i in range(count):
            voucher = f"SEED-{i + 1:05d}"
            if repository.get_by_voucher_number(voucher):
                continue
            lines = random.sample(CATALOG, k=random.randint(1, 4))
            order = service.import_order(
                ImportOrderDTO(
                    voucher_number=voucher,
                    customer_name=f"Customer {i + 1}",
                    items=[
                        ImportOrderItemDTO(
                            product_code=code,
                            product_name=name,
                            quantity=random.randint(1, 3),
                        )
                        for code, name in lines
                    ],
                    is_urgent=random.random() < 0.2,
                ),
                actor=admin,
            )
            created += 1

            # stage: 0 pending, 1 picking, 2 picked, 3 packing, 4 completed, 5 voided
            stage = i % 6
            if stage == 5:
                service.void_order(order.id, admin, UserRole.ADMIN, "Seed void")
                continue
            if stage >= 1:
                service.claim_order(order.id, picker, UserRole.PICKER, TaskPhase.PICK)
            if stage >= 2:
                self._work_all(service, order, TaskPhase.PICK, picker, UserRole.PICKER)
            if stage >= 3:
                service.claim_order(order.id, packer, UserRole.PACKER, TaskPhase.PACK)
            if stage >= 4:
                self._work_all(service, order, TaskPhase.PACK, packer, UserRole.PACKER)

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created

    @staticmethod
    def _work_all(service, order, phase, actor, role) -> None:
        for item in order.items.all():
            for _ in range(item.quantity):
                service.adjust_item_quantity(
                    order.id, item.product_code, phase, 1, actor, role
                )
