from django.urls import path

from . import views

app_name = "payments"

urlpatterns = [
    path("cancel-booking/", views.cancel_booking, name="cancel_booking"),
    path("webhook/", views.stripe_webhook, name="stripe_webhook"),
]
