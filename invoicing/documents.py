# documents.py
"""
Host-facing entry points. Each call prices the booking and builds the content
model from scratch; nothing is cached between renders.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from .content import ContentModel, InvoiceConfig, build_content_model
from .pdf import RenderedPdf, render_invoice_pdf
from .print_html import render_print_html
from .pricing import build_snapshot
from .records import Booking, DiscountTier


def build_document(
    booking: Booking,
    *,
    config: Optional[InvoiceConfig] = None,
    tiers: Optional[Iterable[DiscountTier]] = None,
    generated_at: Optional[datetime] = None,
) -> ContentModel:
    snapshot = build_snapshot(booking, tiers=tiers)
    return build_content_model(booking, snapshot, config, generated_at=generated_at)


def render_print_document(booking: Booking, **kwargs) -> str:
    return render_print_html(build_document(booking, **kwargs))


def render_vector_document(
    booking: Booking,
    *,
    config: Optional[InvoiceConfig] = None,
    tiers: Optional[Iterable[DiscountTier]] = None,
    generated_at: Optional[datetime] = None,
    logo: Optional[bytes] = None,
) -> RenderedPdf:
    config = config or InvoiceConfig.from_settings()
    doc = build_document(booking, config=config, tiers=tiers, generated_at=generated_at)
    return render_invoice_pdf(
        doc,
        logo=logo,
        logo_timeout=config.logo_timeout,
        compress=config.pdf_compress,
    )
