import json
import logging

from django.http import HttpResponse
from django.shortcuts import redirect
from django.urls import reverse
from rest_framework import renderers
from rest_framework.decorators import api_view, permission_classes, renderer_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .client import BookingApiClient, BookingApiError
from .documents import build_document, render_print_document
from .serializers import CancelRequestSerializer
from .workflow import REPLY_STATUS_OPTIONS, BookingWorkflow, available_actions, can_cancel

log = logging.getLogger("invoicing")


def _dbg(*args, **kwargs):
    """
    Compact JSON debug line:
      - _dbg("TAG", key=val, ...)
      - _dbg(key=val, ...)
    Never raises.
    """
    tag = args[0] if args else kwargs.pop("tag", None)
    payload = {"tag": tag} if tag is not None else {}
    payload.update(kwargs)
    try:
        log.debug(json.dumps(payload, default=str))
    except (TypeError, ValueError):
        log.debug("[DBG] %s %r", tag, kwargs)


class PassthroughPDFRenderer(renderers.BaseRenderer):
    """
    Accepts Accept: application/pdf so DRF doesn't 406 before our view runs.
    We still return HttpResponse(pdf_bytes), so this is a no-op renderer.
    """
    media_type = "application/pdf"
    format = "pdf"
    charset = None
    render_style = "binary"

    def render(self, data, accepted_media_type=None, renderer_context=None):
        return data


class HTMLPassthroughRenderer(renderers.BaseRenderer):
    media_type = "text/html"
    format = "html"
    charset = "utf-8"

    def render(self, data, accepted_media_type=None, renderer_context=None):
        return data


def _load_booking(client, booking_id):
    """
    Returns (booking, None) or (None, error Response).
    404 when upstream says not found, 502 for everything else.
    """
    try:
        return client.fetch_booking(booking_id), None
    except BookingApiError as e:
        _dbg("BOOKING:FETCH_FAILED", booking_id=booking_id, status=e.status_code, err=e.message)
        if e.not_found:
            return None, Response({"error": "not found", "detail": e.message}, status=404)
        return None, Response({"error": "booking_fetch_failed", "detail": e.message}, status=502)


@api_view(["GET"])
@permission_classes([AllowAny])
def health(request):
    return Response({"ok": True})


@api_view(["GET"])
@permission_classes([AllowAny])
def booking_invoice(request, booking_id: str):
    """Invoice content model as JSON (the exact strings both documents print)."""
    client = BookingApiClient()
    booking, err = _load_booking(client, booking_id)
    if err is not None:
        return err
    doc = build_document(booking)
    data = doc.to_dict()
    data["booking_id"] = booking.id
    data["status"] = booking.status
    return Response(data)


@api_view(["GET"])
@permission_classes([AllowAny])
@renderer_classes([renderers.JSONRenderer, HTMLPassthroughRenderer])
def booking_invoice_html(request, booking_id: str):
    client = BookingApiClient()
    booking, err = _load_booking(client, booking_id)
    if err is not None:
        return err
    html = render_print_document(booking)
    _dbg("INVOICE:HTML", booking_id=booking.id, size=len(html))
    return HttpResponse(html, content_type="text/html; charset=utf-8")


@api_view(["GET"])
@permission_classes([AllowAny])
@renderer_classes([renderers.JSONRenderer, PassthroughPDFRenderer, renderers.BrowsableAPIRenderer])
def booking_invoice_pdf(request, booking_id: str):
    _dbg("INVOICE:PDF_ENTRY", path=request.get_full_path(), booking_id=booking_id)

    client = BookingApiClient()
    booking, err = _load_booking(client, booking_id)
    if err is not None:
        return err

    result = BookingWorkflow(booking, client=client).export_pdf()
    if result.busy:
        _dbg("INVOICE:PDF_BUSY", booking_id=booking.id)
        return Response({"error": "pdf_in_progress", "detail": result.message}, status=409)
    if not result.ok:
        _dbg("INVOICE:PDF_RENDER_FAILED", booking_id=booking.id)
        return Response({
            "error": "pdf_render_failed",
            "detail": result.message,
            "hint": result.hint,
            "print_url": reverse("invoice_html", args=[booking.id]),
        }, status=500)

    pdf = result.document
    resp = HttpResponse(pdf.content, content_type=pdf.content_type)
    resp["Content-Disposition"] = f'attachment; filename="{pdf.filename}"'
    _dbg("INVOICE:PDF_SUCCESS", booking_id=booking.id, filename=pdf.filename, pages=pdf.page_count)
    return resp


@api_view(["GET"])
@permission_classes([AllowAny])
def booking_actions(request, booking_id: str):
    client = BookingApiClient()
    booking, err = _load_booking(client, booking_id)
    if err is not None:
        return err
    return Response({
        "booking_id": booking.id,
        "status": booking.status,
        "can_cancel": can_cancel(booking.status),
        "actions": available_actions(booking),
        "reply_statuses": [
            {"value": value.value, "label": label, "description": desc}
            for value, label, desc in REPLY_STATUS_OPTIONS
        ],
    })


@api_view(["POST", "PATCH"])
@permission_classes([AllowAny])
def booking_cancel(request, booking_id: str):
    ser = CancelRequestSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    reason = ser.validated_data.get("reason") or ""

    client = BookingApiClient()
    booking, err = _load_booking(client, booking_id)
    if err is not None:
        return err

    closed = []
    result = BookingWorkflow(booking, client=client, on_close=lambda: closed.append(True)).cancel(reason)
    if not result.ok:
        status = 409 if result.status_code == 409 else 502
        _dbg("CANCEL:FAILED", booking_id=booking.id, upstream_status=result.status_code, err=result.message)
        return Response({"error": "cancel_failed", "detail": result.message}, status=status)

    _dbg("CANCEL:SUCCESS", booking_id=booking.id, with_reason=bool(reason.strip()))
    return Response({"ok": True, "message": result.message, "close": bool(closed)})


@api_view(["GET"])
@permission_classes([AllowAny])
def booking_reply(request, booking_id: str):
    client = BookingApiClient()
    booking, err = _load_booking(client, booking_id)
    if err is not None:
        return err
    try:
        url = BookingWorkflow(booking, client=client).select_reply_status(request.query_params.get("status", ""))
    except ValueError as e:
        return Response({"error": "invalid_status", "detail": str(e)}, status=400)
    _dbg("REPLY:REDIRECT", booking_id=booking.id, url=url)
    return redirect(url)
