# content.py
"""
Format-neutral invoice content.

Everything a renderer prints is decided here, once, as display strings. The
print and PDF renderers only place these strings; neither of them touches
prices, so both documents always show the same figures.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional, Tuple

from django.conf import settings
from django.utils import timezone

from .pricing import PricingSnapshot
from .records import Booking, Traveler


NA = "N/A"
DEFAULT_DESCRIPTION = "Adventure Package"
CENTS = Decimal("0.01")

DEFAULT_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


@dataclass(frozen=True)
class InvoiceConfig:
    issuer_name: str = "Real Himalaya Pvt. Ltd"
    issuer_address: str = "Pulchowk, Lalitpur, Nepal"
    issuer_email: str = "info@realhimalaya.com"
    logo_url: str = ""
    tagline: str = "Your Gateway to Extraordinary Adventures"
    file_prefix: str = "Real-Himalaya_Invoice"
    currency_symbols: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_CURRENCY_SYMBOLS))
    default_currency: str = "USD"
    fallback_symbol: str = "$"
    logo_timeout: float = 5.0
    pdf_compress: bool = True

    @classmethod
    def from_settings(cls) -> "InvoiceConfig":
        """Lazy-read settings.INVOICE so missing keys fall back to defaults."""
        cfg = getattr(settings, "INVOICE", {}) or {}
        base = cls()
        return cls(
            issuer_name=cfg.get("ISSUER_NAME") or base.issuer_name,
            issuer_address=cfg.get("ISSUER_ADDRESS") or base.issuer_address,
            issuer_email=cfg.get("ISSUER_EMAIL") or base.issuer_email,
            logo_url=(cfg.get("LOGO_URL") or "").strip(),
            tagline=cfg.get("TAGLINE") or base.tagline,
            file_prefix=cfg.get("FILE_PREFIX") or base.file_prefix,
            currency_symbols=dict(cfg.get("CURRENCY_SYMBOLS") or DEFAULT_CURRENCY_SYMBOLS),
            default_currency=cfg.get("DEFAULT_CURRENCY") or base.default_currency,
            logo_timeout=float(cfg.get("LOGO_TIMEOUT") or base.logo_timeout),
            pdf_compress=bool(cfg.get("PDF_COMPRESS", base.pdf_compress)),
        )

    def symbol_for(self, currency: Optional[str]) -> str:
        code = (currency or self.default_currency or "").strip().upper()
        return self.currency_symbols.get(code, self.fallback_symbol)


# =====================================================================
# DISPLAY FORMATTING
# =====================================================================

def format_amount(value: Decimal) -> str:
    """2 decimals, half-up, no grouping. The only place money gets rounded."""
    return str(Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP))


def format_money(symbol: str, value: Decimal) -> str:
    return f"{symbol}{format_amount(value)}"


def format_percent(value: Decimal) -> str:
    """10 -> '10', 12.50 -> '12.5'."""
    d = Decimal(value)
    if d == d.to_integral_value():
        return str(d.quantize(Decimal(1)))
    return format(d.normalize(), "f")


def format_date(value) -> str:
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.strftime("%d %b %Y")
    if isinstance(value, date):
        return value.strftime("%d %b %Y")
    return NA


def format_duration(duration: Optional[str]) -> str:
    txt = str(duration or "").strip()
    return f"{txt} Days" if txt else NA


# =====================================================================
# CONTENT MODEL
# =====================================================================

@dataclass(frozen=True)
class PartyBlock:
    name: str
    email: str = ""
    phone: str = ""
    country: str = ""


@dataclass(frozen=True)
class HeaderBlock:
    title: str
    issuer_name: str
    issuer_address: str
    issuer_email: str
    logo_url: str
    invoice_number: str
    issue_date: str
    due_date: str
    status: str


@dataclass(frozen=True)
class LineItem:
    index: str
    description: str
    period: str
    travelers: str
    duration: str
    unit_price: str
    amount: str


@dataclass(frozen=True)
class TotalsBlock:
    currency_symbol: str
    subtotal: str
    discount_label: str
    discount_amount: str
    total: str


@dataclass(frozen=True)
class ContentModel:
    document_title: str
    header: HeaderBlock
    bill_to: PartyBlock
    travelers: Tuple[PartyBlock, ...]
    items: Tuple[LineItem, ...]
    totals: TotalsBlock
    footer_lines: Tuple[str, ...]
    booking_reference: str

    def to_dict(self) -> dict:
        return asdict(self)


def _party(t: Optional[Traveler]) -> PartyBlock:
    if t is None:
        return PartyBlock(name=NA)
    return PartyBlock(
        name=(t.name or "").strip() or NA,
        email=(t.email or "").strip(),
        phone=(t.phone or "").strip(),
        country=(t.country or "").strip(),
    )


def build_content_model(
    booking: Booking,
    snapshot: PricingSnapshot,
    config: Optional[InvoiceConfig] = None,
    *,
    generated_at: Optional[datetime] = None,
) -> ContentModel:
    config = config or InvoiceConfig.from_settings()
    generated_at = generated_at or timezone.now()
    sym = config.symbol_for(booking.currency)
    schedule = booking.schedule
    package = booking.package

    reference = (booking.reference or "").strip() or NA
    header = HeaderBlock(
        title="INVOICE",
        issuer_name=config.issuer_name,
        issuer_address=config.issuer_address,
        issuer_email=config.issuer_email,
        logo_url=config.logo_url,
        invoice_number=reference,
        issue_date=format_date(booking.updated_at),
        due_date=format_date(schedule.end_date) if schedule and schedule.end_date else NA,
        status=(booking.status or "").strip() or NA,
    )

    travelers = tuple(_party(t) for t in booking.travelers)
    bill_to = travelers[0] if travelers else _party(None)

    period = ""
    if schedule and (schedule.start_date or schedule.end_date):
        period = f"{format_date(schedule.start_date)} - {format_date(schedule.end_date)}"

    item = LineItem(
        index="1",
        description=(getattr(package, "name", "") or "").strip() or DEFAULT_DESCRIPTION,
        period=period,
        travelers=str(snapshot.traveler_count),
        duration=format_duration(getattr(package, "duration", None)),
        unit_price=format_money(sym, snapshot.unit_price),
        amount=format_money(sym, snapshot.subtotal),
    )

    totals = TotalsBlock(
        currency_symbol=sym,
        subtotal=format_money(sym, snapshot.subtotal),
        discount_label=f"PAX Discount ({format_percent(snapshot.discount_percent)}%)",
        discount_amount=f"-{format_money(sym, snapshot.discount_amount)}",
        total=format_money(sym, snapshot.total),
    )

    local_now = timezone.localtime(generated_at) if timezone.is_aware(generated_at) else generated_at
    footer = (
        f"{config.issuer_name}. - {config.tagline}",
        f"© {local_now.year} All rights reserved | Generated on {format_date(local_now)}",
    )

    return ContentModel(
        document_title=f"{config.file_prefix}_{reference}",
        header=header,
        bill_to=bill_to,
        travelers=travelers,
        items=(item,),
        totals=totals,
        footer_lines=footer,
        booking_reference=reference,
    )
