import re

from invoicing.content import InvoiceConfig
from invoicing.documents import build_document, render_print_document
from invoicing.print_html import render_print_html

from .conftest import GENERATED_AT


def _field(html, name):
    m = re.search(rf'data-field="{name}">([^<]*)<', html)
    return m.group(1) if m else None


def test_print_document_declares_page_directives(booking, config):
    html = render_print_document(booking, config=config, generated_at=GENERATED_AT)

    assert "@page { size: A4; margin: 0.5in; }" in html
    assert "page-break-inside: avoid" in html
    assert "print-color-adjust: exact" in html
    assert "<title>Real-Himalaya_Invoice_RH-1001</title>" in html


def test_print_document_shows_the_content_model_figures(booking, config):
    doc = build_document(booking, config=config, generated_at=GENERATED_AT)
    html = render_print_html(doc)

    assert _field(html, "subtotal") == "$3000.00"
    assert _field(html, "discount") == "-$300.00"
    assert _field(html, "total") == "$2700.00"
    assert "PAX Discount (10%)" in html
    assert "01 Apr 2025 - 14 Apr 2025" in html
    assert "INVOICE NO" in html and "RH-1001" in html


def test_long_descriptions_are_not_truncated(make_booking, config):
    name = "Annapurna Circuit with Tilicho Lake and Poon Hill Extension"
    html = render_print_document(make_booking(package_name=name), config=config)

    assert name in html


def test_roster_lists_every_traveler_when_more_than_one(make_booking, config):
    many = render_print_document(make_booking(travelers=3), config=config)
    single = render_print_document(make_booking(travelers=1), config=config)

    assert ">Travelers</h3>" in many
    assert "Traveler 2" in many and "traveler3@example.com" in many
    assert ">Travelers</h3>" not in single
    assert "Traveler 1" in single


def test_logo_image_or_issuer_name(booking):
    with_logo = render_print_document(booking, config=InvoiceConfig(logo_url="https://cdn.test/logo.png"))
    without = render_print_document(booking, config=InvoiceConfig())

    assert '<img src="https://cdn.test/logo.png"' in with_logo
    assert "<img" not in without
    assert "Real Himalaya Pvt. Ltd" in without


def test_markup_in_booking_data_is_escaped(make_booking, config):
    html = render_print_document(make_booking(package_name="<b>Trek</b>"), config=config)

    assert "<b>Trek</b>" not in html
    assert "&lt;b&gt;Trek&lt;/b&gt;" in html
