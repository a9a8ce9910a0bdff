# print_html.py
from django.template.loader import render_to_string

from .content import ContentModel

PRINT_TEMPLATE = "invoicing/invoice_print.html"


def render_print_html(doc: ContentModel) -> str:
    """
    Self-contained, inline-styled HTML for the browser print dialog.
    No truncation: long text wraps naturally.
    """
    return render_to_string(PRINT_TEMPLATE, {"doc": doc})
