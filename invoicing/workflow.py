# workflow.py
"""
Booking detail actions: cancel, reply hand-off and invoice export.

Booking status only ever changes upstream. Picking a reply status is pure
navigation to the reply composer; it never touches `booking.status` here.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
from urllib.parse import quote

from django.conf import settings

from .client import BookingApiClient, BookingApiError
from .content import InvoiceConfig
from .documents import render_print_document, render_vector_document
from .pdf import RenderedPdf
from .records import Booking

log = logging.getLogger("invoicing")


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ReplyStatus(str, Enum):
    APPROVED = "approved"
    DECLINED = "declined"
    RESCHEDULED = "rescheduled"
    PENDING = "pending"


REPLY_STATUS_OPTIONS = (
    (ReplyStatus.APPROVED, "Approved", "Accept the booking request"),
    (ReplyStatus.DECLINED, "Declined", "Reject the booking request"),
    (ReplyStatus.RESCHEDULED, "Rescheduled", "Request to reschedule the booking"),
    (ReplyStatus.PENDING, "Pending", "Keep the booking under review"),
)

TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED, BookingStatus.COMPLETED},
    BookingStatus.CANCELLED: set(),
    BookingStatus.COMPLETED: set(),
}

PRINT_HINT = "You can use the 'Print PDF' option as an alternative to save the invoice."


def can_transition(current: str, target: str) -> bool:
    try:
        return BookingStatus(target) in TRANSITIONS[BookingStatus(current)]
    except ValueError:
        return False


def can_cancel(status: str) -> bool:
    """The cancel action is offered for anything not already cancelled."""
    return status != BookingStatus.CANCELLED.value


def available_actions(booking: Booking) -> list:
    actions = ["download", "print"]
    if can_cancel(booking.status):
        actions.append("cancel")
    actions += ["reply", "close"]
    return actions


def reply_composer_url(booking_id: str, status: str) -> str:
    template = getattr(settings, "REPLY_COMPOSER_URL", "/dashboard/bookings/reply/{booking_id}?status={status}")
    return template.format(booking_id=quote(str(booking_id), safe=""), status=quote(status, safe=""))


# =====================================================================
# EXPORT GUARD
# =====================================================================

class ExportGuard:
    """Process-wide 'busy' flags so one booking is never exported twice at once."""

    def __init__(self):
        self._lock = threading.Lock()
        self._busy = set()

    def acquire(self, key: str) -> bool:
        with self._lock:
            if key in self._busy:
                return False
            self._busy.add(key)
            return True

    def release(self, key: str):
        with self._lock:
            self._busy.discard(key)

    def is_busy(self, key: str) -> bool:
        with self._lock:
            return key in self._busy


export_guard = ExportGuard()


# =====================================================================
# RESULTS
# =====================================================================

@dataclass(frozen=True)
class ActionResult:
    ok: bool
    message: str
    status_code: Optional[int] = None


@dataclass(frozen=True)
class ExportResult:
    ok: bool
    message: str
    document: Optional[RenderedPdf] = None
    hint: str = ""
    busy: bool = False


class BookingWorkflow:
    """
    One booking detail view. `on_close` collapses the view after a successful
    cancel; `navigate` receives the reply composer URL.
    """

    def __init__(
        self,
        booking: Booking,
        *,
        client: Optional[BookingApiClient] = None,
        config: Optional[InvoiceConfig] = None,
        on_close: Optional[Callable[[], None]] = None,
        navigate: Optional[Callable[[str], None]] = None,
        guard: Optional[ExportGuard] = None,
    ):
        self.booking = booking
        self.client = client
        self.config = config
        self.on_close = on_close
        self.navigate = navigate
        self.guard = guard or export_guard
        self.is_cancelling = False

    @property
    def can_cancel(self) -> bool:
        return can_cancel(self.booking.status)

    @property
    def is_generating(self) -> bool:
        return self.guard.is_busy(self.booking.id)

    def actions(self) -> list:
        return available_actions(self.booking)

    # ---- cancel ----
    def cancel(self, reason: str = "") -> ActionResult:
        if not self.can_cancel:
            return ActionResult(False, "Booking is already cancelled", status_code=409)
        if self.is_cancelling:
            return ActionResult(False, "Cancellation already in progress", status_code=409)

        self.is_cancelling = True
        try:
            client = self.client or BookingApiClient()
            client.cancel_booking(self.booking.id, reason)
        except BookingApiError as e:
            log.warning("cancel booking %s failed: %s", self.booking.id, e.message)
            return ActionResult(False, e.message or "Failed to cancel booking", status_code=e.status_code)
        finally:
            self.is_cancelling = False

        if self.on_close:
            self.on_close()
        return ActionResult(True, "Booking cancelled successfully")

    # ---- reply ----
    def select_reply_status(self, status: str) -> str:
        """Hand the chosen reply status to the composer. No local state changes."""
        try:
            chosen = ReplyStatus(str(status).strip().lower())
        except ValueError:
            raise ValueError(f"unknown reply status: {status!r}")
        url = reply_composer_url(self.booking.id, chosen.value)
        if self.navigate:
            self.navigate(url)
        return url

    # ---- documents ----
    def print_document(self) -> str:
        return render_print_document(self.booking, config=self.config)

    def export_pdf(self) -> ExportResult:
        key = self.booking.id
        if not self.guard.acquire(key):
            return ExportResult(False, "Invoice is already being generated", busy=True)
        try:
            doc = render_vector_document(self.booking, config=self.config)
        except Exception:
            log.exception("invoice pdf generation failed for booking %s", key)
            return ExportResult(
                False,
                "Failed to download invoice. Please try again.",
                hint=PRINT_HINT,
            )
        finally:
            self.guard.release(key)
        return ExportResult(True, "Invoice downloaded successfully!", document=doc)
