"""
StayLedger Hotel Store - Relational State
=========================================
Django models backing DbHotelRepository. Engines never import these;
they receive frozen primitives converted in db_provider.

Amounts are BigIntegerField minor units. Modifier values are Decimal.
"""

from __future__ import annotations

from django.db import models


class BookingStatusChoice(models.TextChoices):
    PENDING = "pending", "Pending"
    PENDING_DEPOSIT = "pending_deposit", "Pending deposit"
    AWAITING_APPROVAL = "awaiting_approval", "Awaiting approval"
    CONFIRMED = "confirmed", "Confirmed"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class TransactionTypeChoice(models.TextChoices):
    DEPOSIT = "deposit", "Deposit"
    WITHDRAWAL = "withdrawal", "Withdrawal"
    PAYMENT = "payment", "Payment"
    REFUND = "refund", "Refund"
    BONUS = "bonus", "Bonus"


class TransactionStatusChoice(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    COMPLETED = "completed", "Completed"


class WithdrawalStatusChoice(models.TextChoices):
    PENDING = "pending", "Pending"
    PENDING_CONFIRMATION = "pending_confirmation", "Pending confirmation"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    COMPLETED = "completed", "Completed"


class DepositStatusChoice(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


# ══════════════════════════════════════════════════════════════
# INVENTORY / PRICING
# ══════════════════════════════════════════════════════════════

class Room(models.Model):
    room_id = models.CharField(primary_key=True, max_length=64)
    hotel_id = models.CharField(max_length=64, db_index=True)
    name = models.CharField(max_length=255)
    base_price = models.BigIntegerField()
    quantity = models.PositiveIntegerField(default=1)
    max_adults = models.PositiveIntegerField(default=2)
    max_children = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "stay_rooms"
        ordering = ["room_id"]

    def __str__(self) -> str:
        return f"{self.room_id} ({self.name})"


class Service(models.Model):
    service_id = models.CharField(primary_key=True, max_length=64)
    name = models.CharField(max_length=255)
    price = models.BigIntegerField()
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "stay_services"
        ordering = ["service_id"]


class SpecialPriceRule(models.Model):
    rule_id = models.CharField(primary_key=True, max_length=64)
    name = models.CharField(max_length=255)
    rule_type = models.CharField(max_length=20)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    modifier_kind = models.CharField(max_length=20)
    modifier_value = models.DecimalField(max_digits=20, decimal_places=4)
    room_ids = models.JSONField(default=list)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField()

    class Meta:
        db_table = "stay_special_price_rules"
        ordering = ["created_at", "rule_id"]


# ══════════════════════════════════════════════════════════════
# BOOKINGS
# ══════════════════════════════════════════════════════════════

class Booking(models.Model):
    booking_id = models.CharField(primary_key=True, max_length=64)
    guest_id = models.CharField(max_length=64, db_index=True)
    hotel_id = models.CharField(max_length=64)
    room = models.ForeignKey(
        Room,
        on_delete=models.PROTECT,
        related_name="bookings",
        db_column="room_id",
    )
    check_in = models.DateField()
    check_out = models.DateField()
    actual_check_in = models.DateTimeField(null=True, blank=True)
    actual_check_out = models.DateTimeField(null=True, blank=True)
    adults = models.PositiveIntegerField(default=1)
    children = models.PositiveIntegerField(default=0)
    room_price = models.BigIntegerField()
    service_price = models.BigIntegerField(default=0)
    total_price = models.BigIntegerField()
    estimated_price = models.BigIntegerField()
    final_price = models.BigIntegerField(null=True, blank=True)
    paid_from_wallet = models.BigIntegerField(default=0)
    paid_from_bonus = models.BigIntegerField(default=0)
    paid_externally = models.BigIntegerField(default=0)
    services = models.JSONField(default=list)
    status = models.CharField(max_length=32, choices=BookingStatusChoice.choices)
    payment_status = models.CharField(max_length=16, default="pending")
    payment_method = models.CharField(max_length=16, blank=True, default="")
    payment_option = models.CharField(max_length=16, blank=True, default="")
    proof_image = models.CharField(max_length=512, blank=True, default="")
    contact = models.JSONField(default=dict)
    special_requests = models.TextField(blank=True, default="")
    invoice_number = models.CharField(max_length=64, blank=True, default="")
    checkout_note = models.TextField(blank=True, default="")
    cancel_reason = models.TextField(blank=True, default="")
    created_at = models.DateTimeField()

    class Meta:
        db_table = "stay_bookings"
        ordering = ["created_at", "booking_id"]
        indexes = [
            models.Index(fields=["room", "status", "check_in", "check_out"], name="idx_booking_room_stay"),
        ]


# ══════════════════════════════════════════════════════════════
# WALLET
# ══════════════════════════════════════════════════════════════

class WalletAccount(models.Model):
    user_id = models.CharField(primary_key=True, max_length=64)
    cash_balance = models.BigIntegerField(default=0)
    bonus_balance = models.BigIntegerField(default=0)
    held_balance = models.BigIntegerField(default=0)
    version = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "stay_wallet_accounts"
        ordering = ["user_id"]


class WalletTransaction(models.Model):
    transaction_id = models.CharField(primary_key=True, max_length=64)
    user_id = models.CharField(max_length=64)
    sequence = models.PositiveIntegerField()
    type = models.CharField(max_length=16, choices=TransactionTypeChoice.choices)
    amount = models.BigIntegerField()
    bonus_amount = models.BigIntegerField(default=0)
    balance_before = models.BigIntegerField()
    balance_after = models.BigIntegerField()
    bonus_balance_before = models.BigIntegerField()
    bonus_balance_after = models.BigIntegerField()
    description = models.CharField(max_length=512, blank=True, default="")
    reference_kind = models.CharField(max_length=32, blank=True, default="")
    reference_id = models.CharField(max_length=64, blank=True, default="")
    status = models.CharField(max_length=16, choices=TransactionStatusChoice.choices)
    created_at = models.DateTimeField()

    class Meta:
        db_table = "stay_wallet_transactions"
        ordering = ["user_id", "sequence"]
        constraints = [
            models.UniqueConstraint(fields=["user_id", "sequence"], name="uniq_wallet_tx_user_sequence"),
        ]


# ══════════════════════════════════════════════════════════════
# WITHDRAWALS / DEPOSITS
# ══════════════════════════════════════════════════════════════

class WithdrawalRequest(models.Model):
    withdrawal_id = models.CharField(primary_key=True, max_length=64)
    user_id = models.CharField(max_length=64, db_index=True)
    amount = models.BigIntegerField()
    bank_info = models.JSONField(default=dict)
    status = models.CharField(max_length=32, choices=WithdrawalStatusChoice.choices)
    is_admin_created = models.BooleanField(default=False)
    admin_note = models.TextField(blank=True, default="")
    processed_by = models.CharField(max_length=64, null=True, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    admin_signature = models.TextField(blank=True, default="")
    confirmation_token = models.CharField(max_length=128, null=True, blank=True, unique=True)
    token_expires_at = models.DateTimeField(null=True, blank=True)
    user_signature = models.TextField(blank=True, default="")
    confirmed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField()

    class Meta:
        db_table = "stay_withdrawal_requests"
        ordering = ["created_at", "withdrawal_id"]


class DepositRequest(models.Model):
    deposit_id = models.CharField(primary_key=True, max_length=64)
    user_id = models.CharField(max_length=64, db_index=True)
    amount = models.BigIntegerField()
    bonus_amount = models.BigIntegerField(default=0)
    proof_image = models.CharField(max_length=512)
    bank_info = models.JSONField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=DepositStatusChoice.choices)
    is_admin_created = models.BooleanField(default=False)
    admin_note = models.TextField(blank=True, default="")
    approved_by = models.CharField(max_length=64, null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    admin_signature = models.TextField(blank=True, default="")
    created_at = models.DateTimeField()

    class Meta:
        db_table = "stay_deposit_requests"
        ordering = ["created_at", "deposit_id"]


class Promotion(models.Model):
    promotion_id = models.CharField(primary_key=True, max_length=64)
    name = models.CharField(max_length=255)
    deposit_threshold = models.BigIntegerField()
    bonus_amount = models.BigIntegerField(default=0)
    bonus_percent = models.PositiveIntegerField(null=True, blank=True)
    max_bonus = models.BigIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    starts_at = models.DateTimeField(null=True, blank=True)
    ends_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "stay_promotions"
        ordering = ["promotion_id"]
