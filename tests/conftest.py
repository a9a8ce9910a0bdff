from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

import pytest

from invoicing.content import InvoiceConfig
from invoicing.records import (
    Booking, DiscountTier, PackageDescriptor, ScheduleWindow, Traveler,
)

TIERS = (
    DiscountTier(min_travelers=4, max_travelers=6, discount_percent=Decimal("10")),
    DiscountTier(min_travelers=7, max_travelers=10, discount_percent=Decimal("15")),
)

GENERATED_AT = datetime(2025, 3, 5, 12, 0, tzinfo=dt_timezone.utc)


@pytest.fixture(autouse=True)
def invoice_test_settings(settings):
    settings.TIME_ZONE = "Asia/Kathmandu"
    settings.BOOKING_API = {"BASE_URL": "http://upstream.test/api/v1", "TOKEN": "svc-token", "TIMEOUT": 3}
    settings.REPLY_COMPOSER_URL = "/dashboard/bookings/reply/{booking_id}?status={status}"
    settings.INVOICE = {
        "ISSUER_NAME": "Real Himalaya Pvt. Ltd",
        "ISSUER_ADDRESS": "Pulchowk, Lalitpur, Nepal",
        "ISSUER_EMAIL": "info@realhimalaya.com",
        "LOGO_URL": "",
        "FILE_PREFIX": "Real-Himalaya_Invoice",
        "PDF_COMPRESS": False,
    }


@pytest.fixture
def config():
    return InvoiceConfig(pdf_compress=False)


@pytest.fixture
def make_booking():
    def _make(travelers=6, price="500", total=None, tiers=TIERS, status="confirmed",
              currency="USD", package_name="Everest Base Camp Trek", **kw):
        people = tuple(
            Traveler(
                name=f"Traveler {i}",
                email=f"traveler{i}@example.com",
                phone=f"+977-98000000{i:02d}",
                country="Nepal",
            )
            for i in range(1, travelers + 1)
        )
        fields = dict(
            id="bk_1",
            reference="RH-1001",
            status=status,
            payment_status="paid",
            authoritative_total=Decimal(total) if total is not None else None,
            currency=currency,
            travelers=people,
            schedule=ScheduleWindow(
                start_date=date(2025, 4, 1),
                end_date=date(2025, 4, 14),
                unit_price=Decimal(price),
                number_of_person=travelers,
                seats_available=12,
                status="upcoming",
            ),
            package=PackageDescriptor(name=package_name, duration="14"),
            discount_tiers=tuple(tiers),
            updated_at=datetime(2025, 3, 1, 10, 0, tzinfo=dt_timezone.utc),
        )
        fields.update(kw)
        return Booking(**fields)

    return _make


@pytest.fixture
def booking(make_booking):
    return make_booking()


@pytest.fixture
def booking_payload():
    """Upstream booking document the way the booking API returns it."""
    return {
        "_id": "bk_1",
        "bookingReference": "RH-1001",
        "status": "Confirmed",
        "paymentStatus": "paid",
        "totalAmount": 0,
        "currency": "usd",
        "package": {"_id": "pkg_9", "name": "Everest Base Camp Trek", "duration": 14},
        "fixedDate": {
            "startDate": "2025-04-01T00:00:00.000Z",
            "endDate": "2025-04-14T00:00:00.000Z",
            "pricePerPerson": 500,
            "numberOfPerson": 6,
            "availableSeats": 12,
            "status": "upcoming",
        },
        "personalInfo": [
            {"fullName": f"Traveler {i}", "email": f"traveler{i}@example.com",
             "phoneNumber": f"+977-98000000{i:02d}", "country": "Nepal"}
            for i in range(1, 7)
        ],
        "pax": [
            {"min": 4, "max": 6, "discount": 10},
            {"min": 7, "max": 10, "discount": 15},
        ],
        "createdAt": "2025-02-20T08:30:00.000Z",
        "updatedAt": "2025-03-01T10:00:00.000Z",
        "message": "Vegetarian meals please",
    }
