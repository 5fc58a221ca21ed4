from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import shared.domain.events
import uuid6
from django.db import migrations, models

STATUS_CHOICES = [
    ("pending", "Pending"),
    ("accepted", "Accepted"),
    ("rejected", "Rejected"),
    ("processing", "Processing"),
    ("assigned_to_transporter", "Assigned to transporter"),
    ("accepted_by_transporter", "Accepted by transporter"),
    ("in_transit", "In transit"),
    ("delivered", "Delivered"),
    ("certified", "Certified"),
    ("disputed", "Disputed"),
    ("return_to_wholesaler", "Return to wholesaler"),
    ("return_accepted", "Return accepted"),
    ("return_rejected", "Return rejected"),
    ("cancelled_by_retailer", "Cancelled by retailer"),
    ("cancelled_by_wholesaler", "Cancelled by wholesaler"),
    ("cancelled_by_transporter", "Cancelled by transporter"),
    ("deleted", "Deleted"),
]

ROLE_CHOICES = [
    ("retailer", "Retailer"),
    ("wholesaler", "Wholesaler"),
    ("transporter", "Transporter"),
    ("supplier", "Supplier"),
]


def _base_fields():
    return [
        (
            "id",
            models.UUIDField(
                default=uuid6.uuid7,
                editable=False,
                primary_key=True,
                serialize=False,
            ),
        ),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("inventory", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                *_base_fields(),
                (
                    "order_number",
                    models.CharField(editable=False, max_length=20, unique=True),
                ),
                (
                    "status",
                    models.CharField(
                        choices=STATUS_CHOICES, default="pending", max_length=32
                    ),
                ),
                ("version", models.PositiveIntegerField(default=0)),
                (
                    "quantity",
                    models.PositiveIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "total_price",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=14
                    ),
                ),
                ("measurement_unit", models.CharField(max_length=32)),
                ("delivery_place", models.CharField(max_length=255)),
                ("order_notes", models.TextField(blank=True, default="")),
                (
                    "idempotency_key",
                    models.CharField(blank=True, max_length=255, null=True, unique=True),
                ),
                ("cancellation_reason", models.TextField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, null=True)),
                ("dispute_reason", models.TextField(blank=True, null=True)),
                ("disputed_at", models.DateTimeField(blank=True, null=True)),
                ("dispute_resolution_notes", models.TextField(blank=True, null=True)),
                ("dispute_resolved_at", models.DateTimeField(blank=True, null=True)),
                ("dispute_reassigned", models.BooleanField(default=False)),
                ("return_reason", models.TextField(blank=True, null=True)),
                ("return_requested_at", models.DateTimeField(blank=True, null=True)),
                ("return_rejection_reason", models.TextField(blank=True, null=True)),
                ("return_decision_at", models.DateTimeField(blank=True, null=True)),
                (
                    "transporter_confirmed_at",
                    models.DateTimeField(blank=True, null=True),
                ),
                ("actual_delivery_date", models.DateTimeField(blank=True, null=True)),
                (
                    "delivery_certification_date",
                    models.DateTimeField(blank=True, null=True),
                ),
                (
                    "retailer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="retailer_orders",
                        to="accounts.participant",
                    ),
                ),
                (
                    "wholesaler",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="wholesaler_orders",
                        to="accounts.participant",
                    ),
                ),
                (
                    "transporter",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transporter_orders",
                        to="accounts.participant",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="inventory.product",
                    ),
                ),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="orders_status_idx"),
                    models.Index(fields=["-created_at"], name="orders_created_idx"),
                    models.Index(
                        fields=["retailer", "-created_at"], name="orders_retailer_idx"
                    ),
                    models.Index(
                        fields=["wholesaler", "status"], name="orders_wholesaler_idx"
                    ),
                    models.Index(
                        fields=["transporter", "status"],
                        name="orders_transporter_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gte=1),
                        name="orders_quantity_positive",
                    ),
                ],
            },
            bases=(shared.domain.events.DomainEventMixin, models.Model),
        ),
        migrations.CreateModel(
            name="OrderStatusHistory",
            fields=[
                *_base_fields(),
                ("sequence", models.PositiveIntegerField()),
                (
                    "from_status",
                    models.CharField(
                        blank=True, choices=STATUS_CHOICES, max_length=32, null=True
                    ),
                ),
                (
                    "to_status",
                    models.CharField(choices=STATUS_CHOICES, max_length=32),
                ),
                (
                    "actor_role",
                    models.CharField(choices=ROLE_CHOICES, max_length=20),
                ),
                ("actor_id", models.UUIDField()),
                ("reason", models.TextField(blank=True, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_history",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "order_status_history",
                "ordering": ["sequence"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["order", "sequence"],
                        name="osh_order_sequence_unique",
                    ),
                ],
            },
        ),
    ]
