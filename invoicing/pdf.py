# pdf.py
from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass
from io import BytesIO
from typing import List, Optional, Sequence, Tuple

from django.conf import settings
from django.contrib.staticfiles import finders

from reportlab.pdfgen import canvas
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from .assets import fetch_logo, LOGO_TIMEOUT_SECONDS
from .content import ContentModel, PartyBlock

log = logging.getLogger("invoicing")


# =====================================================================
# DESIGN TOKENS & LAYOUT SYSTEM
# =====================================================================

# Page (all layout below is in mm measured from the TOP-left corner)
PAGE_W, PAGE_H = A4
PAGE_W_MM = PAGE_W / mm
PAGE_H_MM = PAGE_H / mm

LEFT = 15
RIGHT = PAGE_W_MM - 15
FOOTER_TOP = PAGE_H_MM - 26       # nothing but the footer below this line
FOOTER_Y = PAGE_H_MM - 20

# Item table: positions are derived from the widths, never hard-coded
TABLE_X = LEFT
COL_WIDTHS = (10, 62, 22, 26, 30, 30)
COL_HEADERS = ("#", "Description", "Travelers", "Duration", "Unit Price", "Total")
COL_ALIGN = ("L", "L", "L", "L", "R", "R")
ROW_H = 8
ROW_H_WITH_PERIOD = 11
CELL_PAD = 2

# Payment summary panel
SUMMARY_LABEL_X = 125
SUMMARY_RIGHT = RIGHT

# Traveler roster
ROSTER_WIDTHS = (10, 55, 60, 30, 25)
ROSTER_HEADERS = ("#", "Name", "Email", "Phone", "Country")
ROSTER_ROW_H = 6

DESCRIPTION_MAX_CHARS = 25
ELLIPSIS = "..."


def _hex(rgb: str) -> colors.Color:
    rgb = rgb.lstrip("#")
    r, g, b = tuple(int(rgb[i:i+2], 16) / 255 for i in (0, 2, 4))
    return colors.Color(r, g, b)

BG_HEADER     = _hex("#F8FAFC")
PANEL_BORDER  = _hex("#E5E7EB")
TABLE_HEAD    = _hex("#F3F4F6")
TEXT          = _hex("#111827")
MUTE          = _hex("#6B7280")
ACCENT        = _hex("#E83759")
TOTAL_GREEN   = _hex("#059669")

# Fonts (registered in ensure_unicode_font)
_FONT_READY = False
_FONT_BODY = "Helvetica"
_FONT_BOLD = "Helvetica-Bold"


def col_positions(x0: float, widths: Sequence[float]) -> List[float]:
    """Left edge of every column: x0, x0+w0, x0+w0+w1, ..."""
    out, x = [], x0
    for w in widths:
        out.append(x)
        x += w
    return out


def truncate_text(text: str, max_chars: int = DESCRIPTION_MAX_CHARS) -> str:
    """Hard character budget with '...' suffix. Truncating twice is a no-op."""
    txt = text or ""
    if len(txt) <= max_chars:
        return txt
    return txt[: max(0, max_chars - len(ELLIPSIS))] + ELLIPSIS


# =====================================================================
# FONT UTILITIES
# =====================================================================

def _find_static(*filenames: str) -> Optional[str]:
    """Try multiple filenames via Django finders and common static dirs."""
    for name in filenames:
        if not name:
            continue
        if os.path.isabs(name) and os.path.exists(name):
            return name

        p = finders.find(name)
        if p:
            return p

        sroot = getattr(settings, "STATIC_ROOT", None)
        if sroot:
            cand = os.path.join(sroot, name)
            if os.path.exists(cand):
                return cand

        here = os.path.dirname(__file__)
        cand = os.path.join(here, name)
        if os.path.exists(cand):
            return cand
    return None


def ensure_unicode_font() -> bool:
    """
    Register DejaVu Sans Regular/Bold if shipped in static files (covers names
    outside Latin-1). Falls back to Helvetica, which already has € and £.
    """
    global _FONT_READY, _FONT_BODY, _FONT_BOLD
    if _FONT_READY:
        return _FONT_BODY.startswith("DejaVu")

    reg = _find_static("DejaVuSans.ttf", "fonts/DejaVuSans.ttf")
    bold = _find_static("DejaVuSans-Bold.ttf", "fonts/DejaVuSans-Bold.ttf")

    ok = False
    try:
        if reg:
            pdfmetrics.registerFont(TTFont("DejaVuSans", reg))
            _FONT_BODY = "DejaVuSans"
            ok = True
        if bold:
            pdfmetrics.registerFont(TTFont("DejaVuSans-Bold", bold))
            _FONT_BOLD = "DejaVuSans-Bold"
        elif ok:
            _FONT_BOLD = "DejaVuSans"
    except Exception:
        log.warning("pdf: DejaVu registration failed, using Helvetica", exc_info=True)
        _FONT_BODY, _FONT_BOLD = "Helvetica", "Helvetica-Bold"
        ok = False

    _FONT_READY = True
    return ok


# =====================================================================
# ASSET HELPERS
# =====================================================================

def _ellipsis(c: canvas.Canvas, text: str, max_w: float, font: str, size: float) -> str:
    """Width-based truncation for free text (emails, names) in fixed cells."""
    txt = (text or "").strip()
    if c.stringWidth(txt, font, size) <= max_w:
        return txt
    dots = "…" if _FONT_BODY.startswith("DejaVu") else ELLIPSIS
    while txt and c.stringWidth(txt + dots, font, size) > max_w:
        txt = txt[:-1]
    return (txt.rstrip() or (text or "")[:1]) + dots


def _safe_img(c: canvas.Canvas, data: Optional[bytes], x: float, y: float,
              w: float, h: float, keep_aspect: bool = True) -> bool:
    """Draw image bytes into the box (reportlab units). False if unreadable."""
    if not data:
        return False
    try:
        img = ImageReader(BytesIO(data))
        if keep_aspect:
            iw, ih = img.getSize()
            r = min(w / iw, h / ih)
            rw, rh = iw * r, ih * r
            c.drawImage(img, x + (w - rw) / 2.0, y + (h - rh) / 2.0, rw, rh, mask='auto')
        else:
            c.drawImage(img, x, y, w, h, mask='auto')
        return True
    except Exception as e:
        log.warning("pdf: logo could not be decoded (%s), using text fallback", e)
        return False


# =====================================================================
# PRIMITIVES (top-based mm coordinates)
# =====================================================================

def _y(top_mm: float) -> float:
    return PAGE_H - top_mm * mm


def _text(c, x_mm, top_mm, txt, *, font=None, size=9, color=TEXT, align="L"):
    c.setFont(font or _FONT_BODY, size)
    c.setFillColor(color)
    if align == "R":
        c.drawRightString(x_mm * mm, _y(top_mm), txt)
    elif align == "C":
        c.drawCentredString(x_mm * mm, _y(top_mm), txt)
    else:
        c.drawString(x_mm * mm, _y(top_mm), txt)


def draw_h_rule(c: canvas.Canvas, x1_mm: float, top_mm: float, x2_mm: float, width: float = 0.5):
    c.saveState()
    c.setStrokeColor(PANEL_BORDER)
    c.setLineWidth(width)
    c.line(x1_mm * mm, _y(top_mm), x2_mm * mm, _y(top_mm))
    c.restoreState()


def draw_grid(c: canvas.Canvas, x_mm: float, top_mm: float, widths: Sequence[float],
              row_heights: Sequence[float], head_fill: Optional[colors.Color] = TABLE_HEAD):
    """Outer border, column separators and row separators from explicit cells."""
    total_w = sum(widths)
    total_h = sum(row_heights)
    c.saveState()
    if head_fill is not None and row_heights:
        c.setFillColor(head_fill)
        c.rect(x_mm * mm, _y(top_mm + row_heights[0]), total_w * mm, row_heights[0] * mm, stroke=0, fill=1)
    c.setStrokeColor(PANEL_BORDER)
    c.setLineWidth(0.5)
    c.rect(x_mm * mm, _y(top_mm + total_h), total_w * mm, total_h * mm, stroke=1, fill=0)
    for cx in col_positions(x_mm, widths)[1:]:
        c.line(cx * mm, _y(top_mm), cx * mm, _y(top_mm + total_h))
    ry = top_mm
    for rh in row_heights[:-1]:
        ry += rh
        c.line(x_mm * mm, _y(ry), (x_mm + total_w) * mm, _y(ry))
    c.restoreState()


# =====================================================================
# PAGE COMPOSERS
# =====================================================================

def _header(c: canvas.Canvas, doc: ContentModel, logo: Optional[bytes]) -> float:
    """Header band, issuer block and invoice meta. Returns top (mm) below it."""
    c.setFillColor(BG_HEADER)
    c.rect(0, _y(30), PAGE_W, 30 * mm, stroke=0, fill=1)

    # Logo box top-right; issuer name as text when no usable image
    box_x, box_top, box_w, box_h = PAGE_W_MM - 70, 8, 50, 15
    if not _safe_img(c, logo, box_x * mm, _y(box_top + box_h), box_w * mm, box_h * mm):
        _text(c, box_x, 18, doc.header.issuer_name, font=_FONT_BOLD, size=12)

    _text(c, PAGE_W_MM / 2, 20, doc.header.title, font=_FONT_BOLD, size=18, align="C")

    y = 38
    _text(c, LEFT, y, doc.header.issuer_name, font=_FONT_BOLD, size=12)
    _text(c, LEFT, y + 6, doc.header.issuer_address, size=9, color=MUTE)
    _text(c, LEFT, y + 12, doc.header.issuer_email, size=9, color=MUTE)

    meta_x = PAGE_W_MM - 90
    _text(c, meta_x, y, f"INVOICE NO: {doc.header.invoice_number}", font=_FONT_BOLD, size=11)
    _text(c, meta_x, y + 6, f"Invoice Date: {doc.header.issue_date}", size=9)
    _text(c, meta_x, y + 12, f"Due Date: {doc.header.due_date}", size=9)
    _text(c, meta_x, y + 18, f"Status: {doc.header.status.upper()}", size=9)
    return y + 30


def _continuation_header(c: canvas.Canvas, doc: ContentModel) -> float:
    c.setFillColor(BG_HEADER)
    c.rect(0, _y(18), PAGE_W, 18 * mm, stroke=0, fill=1)
    _text(c, LEFT, 11, doc.header.issuer_name, font=_FONT_BOLD, size=11)
    _text(c, RIGHT, 11, f"INVOICE NO: {doc.header.invoice_number} (continued)", size=9, align="R")
    return 28


def _footer(c: canvas.Canvas, doc: ContentModel, page_no: int):
    draw_h_rule(c, LEFT, FOOTER_TOP + 2, RIGHT)
    for i, line in enumerate(doc.footer_lines):
        _text(c, PAGE_W_MM / 2, FOOTER_Y + i * 6, line, size=8, color=MUTE, align="C")
    _text(c, RIGHT, FOOTER_Y + 12, f"Page {page_no}", size=7, color=MUTE, align="R")


def _bill_to(c: canvas.Canvas, party: PartyBlock, top: float) -> float:
    _text(c, LEFT, top, "Bill To", font=_FONT_BOLD, size=12)
    y = top + 6
    max_w = (PAGE_W_MM / 2 - LEFT) * mm
    _text(c, LEFT, y, _ellipsis(c, party.name, max_w, _FONT_BODY, 10), size=10)
    for extra in (party.email, party.phone, party.country):
        if extra:
            y += 5
            _text(c, LEFT, y, _ellipsis(c, extra, max_w, _FONT_BODY, 10), size=10)
    return y + 12


def _items_table(c: canvas.Canvas, doc: ContentModel, top: float) -> float:
    _text(c, LEFT, top, "Invoice Items", font=_FONT_BOLD, size=11)
    y = top + 4
    xs = col_positions(TABLE_X, COL_WIDTHS)
    rows = [ROW_H] + [ROW_H_WITH_PERIOD if it.period else ROW_H for it in doc.items]
    draw_grid(c, TABLE_X, y, COL_WIDTHS, rows)

    def cell(i, row_top, txt, *, font=None, size=9, color=TEXT, dy=5):
        if COL_ALIGN[i] == "R":
            _text(c, xs[i] + COL_WIDTHS[i] - CELL_PAD, row_top + dy, txt, font=font, size=size, color=color, align="R")
        else:
            _text(c, xs[i] + CELL_PAD, row_top + dy, txt, font=font, size=size, color=color)

    for i, h in enumerate(COL_HEADERS):
        cell(i, y, h, font=_FONT_BOLD)
    y += ROW_H

    for it, rh in zip(doc.items, rows[1:]):
        cell(0, y, it.index)
        cell(1, y, truncate_text(it.description))
        if it.period:
            cell(1, y, it.period, size=7, color=MUTE, dy=9)
        cell(2, y, it.travelers)
        cell(3, y, it.duration)
        cell(4, y, it.unit_price)
        cell(5, y, it.amount, font=_FONT_BOLD)
        y += rh
    return y + 12


def _summary(c: canvas.Canvas, doc: ContentModel, top: float) -> float:
    t = doc.totals
    _text(c, LEFT, top, "Payment Summary", font=_FONT_BOLD, size=12)
    y = top + 8
    _text(c, SUMMARY_LABEL_X, y, "Subtotal:", size=10)
    _text(c, SUMMARY_RIGHT, y, t.subtotal, size=10, align="R")
    y += 6
    _text(c, SUMMARY_LABEL_X, y, f"{t.discount_label}:", size=10)
    _text(c, SUMMARY_RIGHT, y, t.discount_amount, size=10, align="R")
    y += 4
    draw_h_rule(c, SUMMARY_LABEL_X, y, SUMMARY_RIGHT, width=0.8)
    y += 7
    _text(c, SUMMARY_LABEL_X, y, "Total Amount:", font=_FONT_BOLD, size=11)
    _text(c, SUMMARY_RIGHT, y, t.total, font=_FONT_BOLD, size=11, color=TOTAL_GREEN, align="R")
    return y + 12


def _roster_header(c: canvas.Canvas, top: float) -> float:
    xs = col_positions(LEFT, ROSTER_WIDTHS)
    draw_grid(c, LEFT, top, ROSTER_WIDTHS, [ROSTER_ROW_H])
    for x, h in zip(xs, ROSTER_HEADERS):
        _text(c, x + CELL_PAD, top + 4.2, h, font=_FONT_BOLD, size=8)
    return top + ROSTER_ROW_H


# =====================================================================
# PUBLIC API
# =====================================================================

@dataclass(frozen=True)
class RenderedPdf:
    filename: str
    content: bytes
    page_count: int
    content_type: str = "application/pdf"


def _safe_filename(name: str) -> str:
    return re.sub(r'[\\/*?:"<>|\s]+', "-", (name or "")).strip("-") or "Invoice"


def export_filename(doc: ContentModel, token: Optional[int] = None) -> str:
    """<prefix>_<reference>_<epoch-ms>.pdf so repeat exports never collide."""
    token = token if token is not None else int(time.time() * 1000)
    return f"{_safe_filename(doc.document_title)}_{token}.pdf"


def render_invoice_pdf(
    doc: ContentModel,
    *,
    logo: Optional[bytes] = None,
    fetch_remote_logo: bool = True,
    logo_timeout: float = LOGO_TIMEOUT_SECONDS,
    compress: Optional[bool] = None,
) -> RenderedPdf:
    """
    Fixed-layout A4 invoice. Every string comes from `doc` as-is except the
    line-item description, which is cut to DESCRIPTION_MAX_CHARS.
    """
    ensure_unicode_font()
    if logo is None and fetch_remote_logo and doc.header.logo_url:
        logo = fetch_logo(doc.header.logo_url, timeout=logo_timeout)

    if compress is None:
        compress = bool((getattr(settings, "INVOICE", {}) or {}).get("PDF_COMPRESS", True))

    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4, pageCompression=1 if compress else 0)
    c.setTitle(doc.document_title)
    c.setAuthor(doc.header.issuer_name)

    page_no = 1
    y = _header(c, doc, logo)
    y = _bill_to(c, doc.bill_to, y)
    y = _items_table(c, doc, y)
    y = _summary(c, doc, y)

    if len(doc.travelers) > 1:
        if y + 8 + 2 * ROSTER_ROW_H > FOOTER_TOP:
            _footer(c, doc, page_no)
            c.showPage()
            page_no += 1
            y = _continuation_header(c, doc)
        _text(c, LEFT, y, "Travelers", font=_FONT_BOLD, size=11)
        y = _roster_header(c, y + 3)
        xs = col_positions(LEFT, ROSTER_WIDTHS)
        for n, t in enumerate(doc.travelers, start=1):
            if y + ROSTER_ROW_H > FOOTER_TOP:
                _footer(c, doc, page_no)
                c.showPage()
                page_no += 1
                y = _roster_header(c, _continuation_header(c, doc))
            draw_grid(c, LEFT, y, ROSTER_WIDTHS, [ROSTER_ROW_H], head_fill=None)
            cells: Tuple[str, ...] = (str(n), t.name, t.email, t.phone, t.country)
            for x, w, txt in zip(xs, ROSTER_WIDTHS, cells):
                _text(c, x + CELL_PAD, y + 4.2,
                      _ellipsis(c, txt, (w - 2 * CELL_PAD) * mm, _FONT_BODY, 8), size=8)
            y += ROSTER_ROW_H

    _footer(c, doc, page_no)
    c.showPage()
    c.save()

    return RenderedPdf(
        filename=export_filename(doc),
        content=buf.getvalue(),
        page_count=page_no,
    )
