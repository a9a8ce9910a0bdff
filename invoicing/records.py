# records.py
"""
Read-only booking records as delivered by the upstream booking API.

The upstream service owns these; we only read them. Instances are frozen so a
render can never mutate the booking it was handed.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Tuple


BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "completed")


@dataclass(frozen=True)
class Traveler:
    name: str = ""
    email: str = ""
    phone: str = ""
    country: str = ""


@dataclass(frozen=True)
class ScheduleWindow:
    """One fixed departure of a package (upstream `fixedDate`)."""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    unit_price: Decimal = Decimal("0")
    number_of_person: int = 0
    seats_available: int = 0
    status: str = ""


@dataclass(frozen=True)
class PackageDescriptor:
    name: str = ""
    duration: str = ""


@dataclass(frozen=True)
class DiscountTier:
    """Inclusive traveler range -> percent. List order decides overlaps."""
    min_travelers: int
    max_travelers: int
    discount_percent: Decimal


@dataclass(frozen=True)
class Booking:
    id: str
    reference: str = ""
    status: str = "pending"
    payment_status: str = ""
    authoritative_total: Optional[Decimal] = None
    currency: str = ""
    travelers: Tuple[Traveler, ...] = ()
    schedule: Optional[ScheduleWindow] = None
    package: Optional[PackageDescriptor] = None
    discount_tiers: Tuple[DiscountTier, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    arrival_date: Optional[date] = None
    departure_date: Optional[date] = None
    message: str = field(default="", repr=False)

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"
