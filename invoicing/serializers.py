from datetime import datetime, date, timezone as dt_timezone
from decimal import Decimal, InvalidOperation

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import serializers

from .records import (
    Booking, DiscountTier, PackageDescriptor, ScheduleWindow, Traveler,
)


# --- Lenient fields (upstream data is often partial) ---

class LenientDateTimeField(serializers.Field):
    """ISO string -> aware datetime. Anything unparseable becomes None."""

    def to_internal_value(self, data):
        if isinstance(data, datetime):
            dt = data
        else:
            try:
                dt = parse_datetime(str(data or "").strip())
            except ValueError:
                dt = None
            if dt is None:
                d = _parse_day(data)
                dt = datetime(d.year, d.month, d.day) if d else None
        if dt is not None and timezone.is_naive(dt):
            dt = timezone.make_aware(dt, dt_timezone.utc)
        return dt

    def to_representation(self, value):
        return value.isoformat() if value else None


class LenientDateField(serializers.Field):
    """Takes the calendar day as written ('2025-04-01' or '2025-04-01T00:00:00Z')."""

    def to_internal_value(self, data):
        if isinstance(data, datetime):
            return data.date()
        if isinstance(data, date):
            return data
        return _parse_day(data)

    def to_representation(self, value):
        return value.isoformat() if value else None


class LenientDecimalField(serializers.Field):
    """Numbers or numeric strings -> Decimal (via str, so 0.1 stays 0.1). Junk -> None."""

    def to_internal_value(self, data):
        if data is None or data == "" or isinstance(data, bool):
            return None
        try:
            value = Decimal(str(data).strip())
        except (InvalidOperation, ValueError):
            return None
        return value if value.is_finite() else None

    def to_representation(self, value):
        return str(value) if value is not None else None


def _parse_day(data):
    raw = str(data or "").strip()[:10]
    try:
        return parse_date(raw) if raw else None
    except ValueError:
        return None


def _text(**kw):
    return serializers.CharField(required=False, allow_blank=True, allow_null=True, default="", **kw)


# --- Upstream booking shape ---

class TravelerSerializer(serializers.Serializer):
    fullName = _text()
    email = _text()
    phoneNumber = _text()
    country = _text()


class PackageSerializer(serializers.Serializer):
    name = _text()
    duration = _text()


class FixedDateSerializer(serializers.Serializer):
    startDate = LenientDateField(required=False, allow_null=True)
    endDate = LenientDateField(required=False, allow_null=True)
    pricePerPerson = LenientDecimalField(required=False, allow_null=True)
    numberOfPerson = serializers.IntegerField(required=False, allow_null=True)
    availableSeats = serializers.IntegerField(required=False, allow_null=True)
    seatsAvailable = serializers.IntegerField(required=False, allow_null=True)
    status = _text()


class PaxSerializer(serializers.Serializer):
    min = serializers.IntegerField()
    max = serializers.IntegerField()
    discount = LenientDecimalField()

    def validate_discount(self, value):
        if value is None:
            raise serializers.ValidationError("discount must be numeric")
        return value


def _nested(serializer_cls, raw):
    """Validated dict for a nested object, or None when it's absent/unusable."""
    if not isinstance(raw, dict):
        return None
    ser = serializer_cls(data=raw)
    return ser.validated_data if ser.is_valid() else None


class BookingPayloadSerializer(serializers.Serializer):
    """
    Validates the upstream booking document and turns it into a frozen
    `records.Booking` via `.save()`. Everything except the id is optional;
    nested pieces that don't parse are dropped and degrade to placeholders
    downstream instead of failing the whole booking.
    """
    _id = serializers.CharField(required=False, allow_blank=True)
    id = serializers.CharField(required=False, allow_blank=True)
    bookingReference = _text()
    status = serializers.CharField(required=False, allow_blank=True, allow_null=True, default="pending")
    paymentStatus = _text()
    totalAmount = LenientDecimalField(required=False, allow_null=True)
    currency = _text()
    package = serializers.JSONField(required=False, allow_null=True)
    fixedDate = serializers.JSONField(required=False, allow_null=True)
    fixedDateId = serializers.JSONField(required=False, allow_null=True)
    personalInfo = serializers.ListField(child=serializers.JSONField(), required=False, allow_null=True, default=list)
    pax = serializers.ListField(child=serializers.JSONField(), required=False, allow_null=True, default=list)
    createdAt = LenientDateTimeField(required=False, allow_null=True)
    updatedAt = LenientDateTimeField(required=False, allow_null=True)
    arrivalDate = LenientDateField(required=False, allow_null=True)
    departureDate = LenientDateField(required=False, allow_null=True)
    message = _text()

    def validate(self, attrs):
        if not (attrs.get("_id") or attrs.get("id")):
            raise serializers.ValidationError({"_id": "booking id missing"})
        return attrs

    @staticmethod
    def _schedule(attrs):
        # Older payloads only populate the referenced `fixedDateId` document.
        fd = _nested(FixedDateSerializer, attrs.get("fixedDate")) or \
            _nested(FixedDateSerializer, attrs.get("fixedDateId"))
        if not fd:
            return None
        seats = fd.get("availableSeats")
        if seats is None:
            seats = fd.get("seatsAvailable")
        return ScheduleWindow(
            start_date=fd.get("startDate"),
            end_date=fd.get("endDate"),
            unit_price=fd.get("pricePerPerson") or Decimal("0"),
            number_of_person=int(fd.get("numberOfPerson") or 0),
            seats_available=int(seats or 0),
            status=fd.get("status") or "",
        )

    @staticmethod
    def _package(raw):
        # Upstream sends either the populated package or just its id.
        pkg = _nested(PackageSerializer, raw)
        if pkg is None:
            return None
        return PackageDescriptor(name=pkg.get("name") or "", duration=str(pkg.get("duration") or ""))

    @staticmethod
    def _travelers(raw_list):
        out = []
        for raw in raw_list or []:
            t = _nested(TravelerSerializer, raw)
            if t is None:
                continue
            out.append(Traveler(
                name=t.get("fullName") or "",
                email=t.get("email") or "",
                phone=t.get("phoneNumber") or "",
                country=t.get("country") or "",
            ))
        return tuple(out)

    @staticmethod
    def _tiers(raw_list):
        # Order is preserved: the first matching tier wins at pricing time.
        out = []
        for raw in raw_list or []:
            p = _nested(PaxSerializer, raw)
            if p is None:
                continue
            out.append(DiscountTier(
                min_travelers=p["min"],
                max_travelers=p["max"],
                discount_percent=p["discount"],
            ))
        return tuple(out)

    def create(self, validated_data):
        d = validated_data
        return Booking(
            id=d.get("_id") or d.get("id"),
            reference=d.get("bookingReference") or "",
            status=(d.get("status") or "pending").strip().lower(),
            payment_status=d.get("paymentStatus") or "",
            authoritative_total=d.get("totalAmount"),
            currency=(d.get("currency") or "").strip().upper(),
            travelers=self._travelers(d.get("personalInfo")),
            schedule=self._schedule(d),
            package=self._package(d.get("package")),
            discount_tiers=self._tiers(d.get("pax")),
            created_at=d.get("createdAt"),
            updated_at=d.get("updatedAt"),
            arrival_date=d.get("arrivalDate"),
            departure_date=d.get("departureDate"),
            message=d.get("message") or "",
        )


def booking_from_payload(payload: dict) -> Booking:
    """Parse an upstream booking dict; raises serializers.ValidationError if unusable."""
    ser = BookingPayloadSerializer(data=payload)
    ser.is_valid(raise_exception=True)
    return ser.save()


class CancelRequestSerializer(serializers.Serializer):
    reason = _text(max_length=1000)
