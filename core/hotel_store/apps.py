"""
StayLedger Hotel Store - App Configuration
==========================================
Persistent rooms, pricing rules, bookings, wallet ledger and
withdrawal/deposit requests.
"""

from django.apps import AppConfig


class CoreHotelStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.hotel_store"
    label = "core_hotel_store"
    verbose_name = "StayLedger Hotel Store"
