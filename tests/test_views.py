from unittest import mock

import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from invoicing import views, workflow
from invoicing.client import BookingApiError


@pytest.fixture
def api():
    return APIClient()


@pytest.fixture
def upstream(monkeypatch, booking):
    """Stands in for the booking API; `upstream.booking` is what fetch returns."""
    fake = mock.Mock()
    fake.booking = booking
    fake.fetch_booking.side_effect = lambda booking_id: fake.booking
    fake.cancel_booking.return_value = {"success": True}
    monkeypatch.setattr(views, "BookingApiClient", lambda: fake)
    return fake


def test_health(api):
    r = api.get(reverse("health"))
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_invoice_json(api, upstream):
    r = api.get(reverse("invoice", args=["bk_1"]))

    assert r.status_code == 200, r.content
    body = r.json()
    assert body["totals"]["total"] == "$2700.00"
    assert body["totals"]["discount_amount"] == "-$300.00"
    assert body["status"] == "confirmed"
    upstream.fetch_booking.assert_called_once_with("bk_1")


def test_invoice_html(api, upstream):
    r = api.get(reverse("invoice_html", args=["bk_1"]))

    assert r.status_code == 200
    assert r["Content-Type"].startswith("text/html")
    assert b'data-field="total">$2700.00<' in r.content


def test_invoice_pdf_download(api, upstream):
    r = api.get(reverse("invoice_pdf", args=["bk_1"]))

    assert r.status_code == 200
    assert r["Content-Type"] == "application/pdf"
    assert r["Content-Disposition"].startswith('attachment; filename="Real-Himalaya_Invoice_RH-1001_')
    assert r.content.startswith(b"%PDF")


def test_invoice_pdf_failure_suggests_print(monkeypatch, api, upstream):
    monkeypatch.setattr(workflow, "render_vector_document", mock.Mock(side_effect=RuntimeError("boom")))

    r = api.get(reverse("invoice_pdf", args=["bk_1"]))

    assert r.status_code == 500
    body = r.json()
    assert body["error"] == "pdf_render_failed"
    assert body["print_url"] == "/api/bookings/bk_1/invoice.html"
    assert "Print PDF" in body["hint"]


def test_invoice_pdf_while_generating(api, upstream):
    assert workflow.export_guard.acquire("bk_1")
    try:
        r = api.get(reverse("invoice_pdf", args=["bk_1"]))
    finally:
        workflow.export_guard.release("bk_1")

    assert r.status_code == 409
    assert r.json()["error"] == "pdf_in_progress"


@pytest.mark.parametrize("upstream_status, expected", [(404, 404), (500, 502), (None, 502)])
def test_upstream_fetch_errors(api, upstream, upstream_status, expected):
    upstream.fetch_booking.side_effect = BookingApiError("upstream says no", status_code=upstream_status)

    r = api.get(reverse("invoice", args=["bk_1"]))

    assert r.status_code == expected
    assert r.json()["detail"] == "upstream says no"


def test_actions_for_open_and_cancelled_bookings(api, upstream, make_booking):
    r = api.get(reverse("booking_actions", args=["bk_1"]))
    body = r.json()
    assert body["can_cancel"] is True
    assert "cancel" in body["actions"]
    assert [s["value"] for s in body["reply_statuses"]] == ["approved", "declined", "rescheduled", "pending"]

    upstream.booking = make_booking(status="cancelled")
    body = api.get(reverse("booking_actions", args=["bk_1"])).json()
    assert body["can_cancel"] is False
    assert "cancel" not in body["actions"]


@pytest.mark.parametrize("method", ["post", "patch"])
def test_cancel_proxies_to_upstream(api, upstream, method):
    r = getattr(api, method)(reverse("booking_cancel", args=["bk_1"]), {"reason": "Weather"}, format="json")

    assert r.status_code == 200, r.content
    assert r.json() == {"ok": True, "message": "Booking cancelled successfully", "close": True}
    upstream.cancel_booking.assert_called_once_with("bk_1", "Weather")


def test_cancel_without_reason(api, upstream):
    r = api.post(reverse("booking_cancel", args=["bk_1"]), {}, format="json")

    assert r.status_code == 200
    upstream.cancel_booking.assert_called_once_with("bk_1", "")


def test_cancel_already_cancelled_booking(api, upstream, make_booking):
    upstream.booking = make_booking(status="cancelled")

    r = api.post(reverse("booking_cancel", args=["bk_1"]), {}, format="json")

    assert r.status_code == status.HTTP_409_CONFLICT
    upstream.cancel_booking.assert_not_called()


def test_cancel_upstream_failure(api, upstream):
    upstream.cancel_booking.side_effect = BookingApiError("Failed to cancel booking (HTTP 500)", status_code=500)

    r = api.post(reverse("booking_cancel", args=["bk_1"]), {"reason": "x"}, format="json")

    assert r.status_code == status.HTTP_502_BAD_GATEWAY
    assert r.json() == {"error": "cancel_failed", "detail": "Failed to cancel booking (HTTP 500)"}


def test_reply_redirects_to_composer(api, upstream):
    r = api.get(reverse("booking_reply", args=["bk_1"]), {"status": "rescheduled"})

    assert r.status_code == 302
    assert r["Location"] == "/dashboard/bookings/reply/bk_1?status=rescheduled"


def test_reply_with_unknown_status(api, upstream):
    r = api.get(reverse("booking_reply", args=["bk_1"]), {"status": "maybe"})

    assert r.status_code == 400
    assert r.json()["error"] == "invalid_status"
