from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Room",
            fields=[
                ("room_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("hotel_id", models.CharField(db_index=True, max_length=64)),
                ("name", models.CharField(max_length=255)),
                ("base_price", models.BigIntegerField()),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("max_adults", models.PositiveIntegerField(default=2)),
                ("max_children", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "stay_rooms",
                "ordering": ["room_id"],
            },
        ),
        migrations.CreateModel(
            name="Service",
            fields=[
                ("service_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("price", models.BigIntegerField()),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "db_table": "stay_services",
                "ordering": ["service_id"],
            },
        ),
        migrations.CreateModel(
            name="SpecialPriceRule",
            fields=[
                ("rule_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("rule_type", models.CharField(max_length=20)),
                ("start_date", models.DateField(blank=True, null=True)),
                ("end_date", models.DateField(blank=True, null=True)),
                ("modifier_kind", models.CharField(max_length=20)),
                ("modifier_value", models.DecimalField(decimal_places=4, max_digits=20)),
                ("room_ids", models.JSONField(default=list)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField()),
            ],
            options={
                "db_table": "stay_special_price_rules",
                "ordering": ["created_at", "rule_id"],
            },
        ),
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("booking_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("guest_id", models.CharField(db_index=True, max_length=64)),
                ("hotel_id", models.CharField(max_length=64)),
                ("check_in", models.DateField()),
                ("check_out", models.DateField()),
                ("actual_check_in", models.DateTimeField(blank=True, null=True)),
                ("actual_check_out", models.DateTimeField(blank=True, null=True)),
                ("adults", models.PositiveIntegerField(default=1)),
                ("children", models.PositiveIntegerField(default=0)),
                ("room_price", models.BigIntegerField()),
                ("service_price", models.BigIntegerField(default=0)),
                ("total_price", models.BigIntegerField()),
                ("estimated_price", models.BigIntegerField()),
                ("final_price", models.BigIntegerField(blank=True, null=True)),
                ("paid_from_wallet", models.BigIntegerField(default=0)),
                ("paid_from_bonus", models.BigIntegerField(default=0)),
                ("paid_externally", models.BigIntegerField(default=0)),
                ("services", models.JSONField(default=list)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("pending_deposit", "Pending deposit"),
                            ("awaiting_approval", "Awaiting approval"),
                            ("confirmed", "Confirmed"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        max_length=32,
                    ),
                ),
                ("payment_status", models.CharField(default="pending", max_length=16)),
                ("payment_method", models.CharField(blank=True, default="", max_length=16)),
                ("payment_option", models.CharField(blank=True, default="", max_length=16)),
                ("proof_image", models.CharField(blank=True, default="", max_length=512)),
                ("contact", models.JSONField(default=dict)),
                ("special_requests", models.TextField(blank=True, default="")),
                ("invoice_number", models.CharField(blank=True, default="", max_length=64)),
                ("checkout_note", models.TextField(blank=True, default="")),
                ("cancel_reason", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField()),
                (
                    "room",
                    models.ForeignKey(
                        db_column="room_id",
                        on_delete=models.deletion.PROTECT,
                        related_name="bookings",
                        to="core_hotel_store.room",
                    ),
                ),
            ],
            options={
                "db_table": "stay_bookings",
                "ordering": ["created_at", "booking_id"],
                "indexes": [
                    models.Index(
                        fields=["room", "status", "check_in", "check_out"],
                        name="idx_booking_room_stay",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WalletAccount",
            fields=[
                ("user_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("cash_balance", models.BigIntegerField(default=0)),
                ("bonus_balance", models.BigIntegerField(default=0)),
                ("held_balance", models.BigIntegerField(default=0)),
                ("version", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "stay_wallet_accounts",
                "ordering": ["user_id"],
            },
        ),
        migrations.CreateModel(
            name="WalletTransaction",
            fields=[
                ("transaction_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("user_id", models.CharField(max_length=64)),
                ("sequence", models.PositiveIntegerField()),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("deposit", "Deposit"),
                            ("withdrawal", "Withdrawal"),
                            ("payment", "Payment"),
                            ("refund", "Refund"),
                            ("bonus", "Bonus"),
                        ],
                        max_length=16,
                    ),
                ),
                ("amount", models.BigIntegerField()),
                ("bonus_amount", models.BigIntegerField(default=0)),
                ("balance_before", models.BigIntegerField()),
                ("balance_after", models.BigIntegerField()),
                ("bonus_balance_before", models.BigIntegerField()),
                ("bonus_balance_after", models.BigIntegerField()),
                ("description", models.CharField(blank=True, default="", max_length=512)),
                ("reference_kind", models.CharField(blank=True, default="", max_length=32)),
                ("reference_id", models.CharField(blank=True, default="", max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                            ("completed", "Completed"),
                        ],
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField()),
            ],
            options={
                "db_table": "stay_wallet_transactions",
                "ordering": ["user_id", "sequence"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user_id", "sequence"),
                        name="uniq_wallet_tx_user_sequence",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WithdrawalRequest",
            fields=[
                ("withdrawal_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                ("amount", models.BigIntegerField()),
                ("bank_info", models.JSONField(default=dict)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("pending_confirmation", "Pending confirmation"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                            ("completed", "Completed"),
                        ],
                        max_length=32,
                    ),
                ),
                ("is_admin_created", models.BooleanField(default=False)),
                ("admin_note", models.TextField(blank=True, default="")),
                ("processed_by", models.CharField(blank=True, max_length=64, null=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("admin_signature", models.TextField(blank=True, default="")),
                ("confirmation_token", models.CharField(blank=True, max_length=128, null=True, unique=True)),
                ("token_expires_at", models.DateTimeField(blank=True, null=True)),
                ("user_signature", models.TextField(blank=True, default="")),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField()),
            ],
            options={
                "db_table": "stay_withdrawal_requests",
                "ordering": ["created_at", "withdrawal_id"],
            },
        ),
        migrations.CreateModel(
            name="DepositRequest",
            fields=[
                ("deposit_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                ("amount", models.BigIntegerField()),
                ("bonus_amount", models.BigIntegerField(default=0)),
                ("proof_image", models.CharField(max_length=512)),
                ("bank_info", models.JSONField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                        ],
                        max_length=16,
                    ),
                ),
                ("is_admin_created", models.BooleanField(default=False)),
                ("admin_note", models.TextField(blank=True, default="")),
                ("approved_by", models.CharField(blank=True, max_length=64, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("admin_signature", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField()),
            ],
            options={
                "db_table": "stay_deposit_requests",
                "ordering": ["created_at", "deposit_id"],
            },
        ),
        migrations.CreateModel(
            name="Promotion",
            fields=[
                ("promotion_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("deposit_threshold", models.BigIntegerField()),
                ("bonus_amount", models.BigIntegerField(default=0)),
                ("bonus_percent", models.PositiveIntegerField(blank=True, null=True)),
                ("max_bonus", models.BigIntegerField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("starts_at", models.DateTimeField(blank=True, null=True)),
                ("ends_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "db_table": "stay_promotions",
                "ordering": ["promotion_id"],
            },
        ),
    ]
