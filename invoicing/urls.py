from django.urls import path
from . import views

urlpatterns = [
    path("health/", views.health, name="health"),
    path("bookings/<str:booking_id>/invoice", views.booking_invoice, name="invoice"),
    path("bookings/<str:booking_id>/invoice.html", views.booking_invoice_html, name="invoice_html"),
    path("bookings/<str:booking_id>/invoice.pdf", views.booking_invoice_pdf, name="invoice_pdf"),
    path("bookings/<str:booking_id>/actions", views.booking_actions, name="booking_actions"),
    path("bookings/<str:booking_id>/cancel", views.booking_cancel, name="booking_cancel"),
    path("bookings/<str:booking_id>/reply", views.booking_reply, name="booking_reply"),
]
