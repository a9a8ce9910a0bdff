import argparse
import json
import os
import sys
from pathlib import Path

import django

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')
django.setup()

from invoicing.client import BookingApiClient, BookingApiError
from invoicing.documents import render_print_document, render_vector_document
from invoicing.pricing import build_snapshot
from invoicing.serializers import booking_from_payload


def load_booking(args):
    if args.from_file:
        payload = json.loads(Path(args.from_file).read_text(encoding="utf-8"))
        return booking_from_payload(payload.get("data", payload) if isinstance(payload, dict) else payload)
    return BookingApiClient().fetch_booking(args.booking_id)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Render a booking invoice as HTML and PDF.")
    parser.add_argument("booking_id", nargs="?", help="upstream booking id")
    parser.add_argument("--from-file", help="read the booking JSON from a file instead of the API")
    parser.add_argument("--out", default=".", help="output directory")
    parser.add_argument("--no-logo", action="store_true", help="skip the remote logo fetch")
    args = parser.parse_args(argv)

    if not (args.booking_id or args.from_file):
        parser.error("booking_id or --from-file is required")

    print("--- RENDERING INVOICE ---")
    try:
        booking = load_booking(args)
    except BookingApiError as e:
        print(f"Could not load booking: {e.message} (status={e.status_code})")
        return 1

    snap = build_snapshot(booking)
    print(f"Booking {booking.id} | Ref: {booking.reference or 'N/A'} | Status: {booking.status}")
    print(f"  Travelers: {snap.traveler_count} x {snap.unit_price} = {snap.subtotal}")
    print(f"  Discount: {snap.discount_percent}% (-{snap.discount_amount})")
    print(f"  Total: {snap.total} (authoritative={snap.total_is_authoritative})")

    out = Path(args.out)
    out.mkdir(parents=True, exist_ok=True)

    html_path = out / f"invoice_{booking.id}.html"
    html_path.write_text(render_print_document(booking), encoding="utf-8")
    print(f"  HTML -> {html_path}")

    # empty bytes: no fetch, issuer name printed in the logo box
    pdf = render_vector_document(booking, logo=b"" if args.no_logo else None)
    pdf_path = out / pdf.filename
    pdf_path.write_bytes(pdf.content)
    print(f"  PDF  -> {pdf_path} ({pdf.page_count} page(s))")
    return 0


if __name__ == "__main__":
    sys.exit(main())
