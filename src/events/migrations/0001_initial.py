import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models

import events.models.ticket

HISTORY_TYPES = [("+", "Created"), ("~", "Changed"), ("-", "Deleted")]
ORDER_STATUSES = [
    ("pending", "Pending"),
    ("completed", "Completed"),
    ("partially_refunded", "Partially refunded"),
    ("refunded", "Refunded"),
]
ORDER_SOURCES = [("checkout", "Checkout"), ("organizer", "Organizer")]
TICKET_STATUSES = [("valid", "Valid"), ("used", "Used"), ("cancelled", "Cancelled"), ("refunded", "Refunded")]


def history_fields() -> list[tuple[str, models.Field]]:  # type: ignore[type-arg]
    return [
        ("history_id", models.AutoField(primary_key=True, serialize=False)),
        ("history_date", models.DateTimeField(db_index=True)),
        ("history_change_reason", models.CharField(max_length=100, null=True)),
        ("history_type", models.CharField(choices=HISTORY_TYPES, max_length=1)),
        (
            "history_user",
            models.ForeignKey(
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
    ]


def history_fk(to: str) -> models.ForeignKey:  # type: ignore[type-arg]
    return models.ForeignKey(
        blank=True,
        db_constraint=False,
        null=True,
        on_delete=django.db.models.deletion.DO_NOTHING,
        related_name="+",
        to=to,
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("published", "Published"),
                            ("cancelled", "Cancelled"),
                            ("completed", "Completed"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("title", models.CharField(blank=True, db_index=True, max_length=255)),
                ("slug", models.SlugField(blank=True, max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "location_type",
                    models.CharField(
                        choices=[("physical", "Physical"), ("online", "Online"), ("hybrid", "Hybrid")],
                        default="physical",
                        max_length=20,
                    ),
                ),
                ("venue_name", models.CharField(blank=True, default="", max_length=255)),
                ("address_text", models.CharField(blank=True, default="", max_length=500)),
                ("city", models.CharField(blank=True, default="", max_length=255)),
                ("currency", models.CharField(default=settings.DEFAULT_CURRENCY, max_length=3)),
                ("sales_start_at", models.DateTimeField(blank=True, null=True)),
                ("sales_end_at", models.DateTimeField(blank=True, null=True)),
                ("total_capacity", models.PositiveIntegerField(default=0, editable=False)),
                ("total_tickets_sold", models.PositiveIntegerField(default=0, editable=False)),
                (
                    "organizer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="EventOccurrence",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("starts_at", models.DateTimeField(db_index=True)),
                ("ends_at", models.DateTimeField(blank=True, null=True)),
                ("label", models.CharField(blank=True, default="", max_length=255)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="occurrences", to="events.event"
                    ),
                ),
            ],
            options={
                "ordering": ["starts_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("ends_at__isnull", True), ("ends_at__gte", models.F("starts_at")), _connector="OR"),
                        name="occurrence_ends_after_start",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="TicketTier",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                ("currency", models.CharField(blank=True, default="", max_length=3)),
                ("initial_quantity", models.PositiveIntegerField(default=0)),
                ("remaining_quantity", models.PositiveIntegerField(default=0)),
                (
                    "max_per_order",
                    models.PositiveIntegerField(default=10, validators=[django.core.validators.MinValueValidator(1)]),
                ),
                ("sales_start_at", models.DateTimeField(blank=True, null=True)),
                ("sales_end_at", models.DateTimeField(blank=True, null=True)),
                ("is_hidden", models.BooleanField(default=False)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="ticket_tiers", to="events.event"
                    ),
                ),
            ],
            options={
                "ordering": ["price", "name"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("remaining_quantity__gte", 0)), name="tier_remaining_non_negative"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("remaining_quantity__lte", models.F("initial_quantity"))),
                        name="tier_remaining_within_initial",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("stripe_payment_intent_id", models.CharField(blank=True, db_index=True, max_length=255, null=True)),
                ("stripe_checkout_session_id", models.CharField(blank=True, max_length=255, null=True)),
                ("buyer_name", models.CharField(blank=True, default="", max_length=255)),
                ("buyer_email", models.EmailField(blank=True, default="", max_length=254)),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("platform_fee_amount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                (
                    "organizer_payout_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10),
                ),
                ("currency", models.CharField(blank=True, default="", max_length=3)),
                ("status", models.CharField(choices=ORDER_STATUSES, db_index=True, default="pending", max_length=20)),
                ("source", models.CharField(choices=ORDER_SOURCES, default="checkout", max_length=20)),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="orders", to="events.event"
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Ticket",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("attendee_name", models.CharField(blank=True, default="", max_length=255)),
                ("attendee_email", models.EmailField(db_index=True, max_length=254)),
                ("status", models.CharField(choices=TICKET_STATUSES, db_index=True, default="valid", max_length=20)),
                ("issue_reason", models.TextField(blank=True, default="")),
                (
                    "qr_code_secret",
                    models.CharField(
                        default=events.models.ticket.generate_qr_code_secret, editable=False, max_length=64, unique=True
                    ),
                ),
                ("checked_in_at", models.DateTimeField(blank=True, editable=False, null=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="tickets", to="events.event"
                    ),
                ),
                (
                    "issued_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="issued_tickets",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="tickets", to="events.order"
                    ),
                ),
                (
                    "original_ticket",
                    models.ForeignKey(
                        blank=True,
                        help_text="The ticket this one replaced.",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reissues",
                        to="events.ticket",
                    ),
                ),
                (
                    "tier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="tickets", to="events.tickettier"
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="HistoricalOrder",
            fields=[
                ("id", models.UUIDField(db_index=True, default=uuid.uuid4, editable=False)),
                ("created_at", models.DateTimeField(blank=True, db_index=True, editable=False)),
                ("updated_at", models.DateTimeField(blank=True, db_index=True, editable=False)),
                ("stripe_payment_intent_id", models.CharField(blank=True, db_index=True, max_length=255, null=True)),
                ("stripe_checkout_session_id", models.CharField(blank=True, max_length=255, null=True)),
                ("buyer_name", models.CharField(blank=True, default="", max_length=255)),
                ("buyer_email", models.EmailField(blank=True, default="", max_length=254)),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("platform_fee_amount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                (
                    "organizer_payout_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10),
                ),
                ("currency", models.CharField(blank=True, default="", max_length=3)),
                ("status", models.CharField(choices=ORDER_STATUSES, db_index=True, default="pending", max_length=20)),
                ("source", models.CharField(choices=ORDER_SOURCES, default="checkout", max_length=20)),
                ("notes", models.TextField(blank=True, default="")),
                *history_fields(),
                ("event", history_fk("events.event")),
            ],
            options={
                "verbose_name": "historical order",
                "verbose_name_plural": "historical orders",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="HistoricalTicket",
            fields=[
                ("id", models.UUIDField(db_index=True, default=uuid.uuid4, editable=False)),
                ("created_at", models.DateTimeField(blank=True, db_index=True, editable=False)),
                ("updated_at", models.DateTimeField(blank=True, db_index=True, editable=False)),
                ("attendee_name", models.CharField(blank=True, default="", max_length=255)),
                ("attendee_email", models.EmailField(db_index=True, max_length=254)),
                ("status", models.CharField(choices=TICKET_STATUSES, db_index=True, default="valid", max_length=20)),
                ("issue_reason", models.TextField(blank=True, default="")),
                (
                    "qr_code_secret",
                    models.CharField(
                        db_index=True,
                        default=events.models.ticket.generate_qr_code_secret,
                        editable=False,
                        max_length=64,
                    ),
                ),
                ("checked_in_at", models.DateTimeField(blank=True, editable=False, null=True)),
                *history_fields(),
                ("event", history_fk("events.event")),
                ("issued_by", history_fk(settings.AUTH_USER_MODEL)),
                ("order", history_fk("events.order")),
                ("original_ticket", history_fk("events.ticket")),
                ("tier", history_fk("events.tickettier")),
            ],
            options={
                "verbose_name": "historical ticket",
                "verbose_name_plural": "historical tickets",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
