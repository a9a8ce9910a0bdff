# client.py
"""Thin client for the upstream booking API (fetch + cancel)."""
import logging
from typing import Optional

import requests
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from rest_framework.exceptions import ValidationError

from .records import Booking
from .serializers import booking_from_payload

log = logging.getLogger("invoicing.client")

CANCEL_FAILED = "Failed to cancel booking"
NETWORK_ERROR = "Network error while contacting the booking service. Please check your connection and try again."


class BookingApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


# ----------------------------
# Config helpers
# ----------------------------
def _cfg() -> dict:
    """
    Lazy-read BOOKING_API so Django can start even if env vars
    aren't set yet. We validate only when a request is made.
    """
    cfg = getattr(settings, "BOOKING_API", {}) or {}
    return {
        "BASE_URL": (cfg.get("BASE_URL") or "").strip().rstrip("/"),
        "TOKEN": cfg.get("TOKEN"),
        "TIMEOUT": float(cfg.get("TIMEOUT") or 15),
    }


def _payload(resp: requests.Response):
    try:
        return resp.json()
    except ValueError:
        return None


def _error_message(payload, default: str, status_code: int) -> str:
    msg = None
    if isinstance(payload, dict):
        msg = payload.get("message") or payload.get("error") or payload.get("detail")
    return str(msg) if msg else f"{default} (HTTP {status_code})"


def _unwrap_booking(payload) -> dict:
    """Accept `{...}`, `{"data": {...}}` or `{"data": {"booking": {...}}}`."""
    body = payload
    if isinstance(body, dict) and isinstance(body.get("data"), dict):
        body = body["data"]
    if isinstance(body, dict) and isinstance(body.get("booking"), dict):
        body = body["booking"]
    if not isinstance(body, dict):
        raise BookingApiError("Booking service returned an unexpected payload", status_code=502)
    return body


class BookingApiClient:
    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        cfg = _cfg()
        self.base_url = (base_url or cfg["BASE_URL"]).rstrip("/")
        self.token = token if token is not None else cfg["TOKEN"]
        self.timeout = timeout or cfg["TIMEOUT"]
        self.session = session or requests.Session()
        if not self.base_url:
            raise ImproperlyConfigured("Missing BOOKING_API['BASE_URL']. Set BOOKING_API_BASE_URL in the environment.")

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, **kw) -> requests.Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            return self.session.request(method, url, headers=self._headers(), timeout=self.timeout, **kw)
        except requests.RequestException as e:
            log.warning("booking api %s %s failed: %s", method, url, e)
            raise BookingApiError(NETWORK_ERROR) from e

    def fetch_booking(self, booking_id: str) -> Booking:
        resp = self._request("GET", f"booking/{booking_id}")
        payload = _payload(resp)
        if not resp.ok:
            raise BookingApiError(_error_message(payload, "Failed to load booking", resp.status_code),
                                  status_code=resp.status_code)
        try:
            return booking_from_payload(_unwrap_booking(payload))
        except ValidationError as e:
            log.warning("booking %s: unusable payload %s", booking_id, e.detail)
            raise BookingApiError("Booking service returned an unusable booking", status_code=502) from e

    def cancel_booking(self, booking_id: str, reason: str = "") -> dict:
        """
        PATCH booking/<id>/cancel. `reason` is only sent when non-blank.
        Any non-2xx response raises BookingApiError with a readable message.
        """
        body = {}
        if (reason or "").strip():
            body["reason"] = reason
        resp = self._request("PATCH", f"booking/{booking_id}/cancel", json=body)
        payload = _payload(resp)
        if not 200 <= resp.status_code < 300:
            raise BookingApiError(_error_message(payload, CANCEL_FAILED, resp.status_code),
                                  status_code=resp.status_code)
        log.info("booking %s cancelled upstream", booking_id)
        return payload if isinstance(payload, dict) else {}
