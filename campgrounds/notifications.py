"""Send booking confirmation emails to guests and campground owners."""

import logging

from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

from .pricing import compute_bill

logger = logging.getLogger(__name__)


def send_confirmation_email(recipient, trip, owner=None, is_owner=False):
    """Render and send one confirmation email. Raises on transport failure."""
    logger.info("Attempting to send email to: %s", recipient)
    campground = trip.campground
    user = trip.user
    if is_owner:
        subject = f"New Booking Confirmation for {campground.name}"
    else:
        subject = f"Your Booking Confirmation for {campground.name}"
    context = {
        "campground": campground,
        "trip": trip,
        "bill": compute_bill(campground, trip, premium=user.premium_subscribed),
        "premium": user.premium_subscribed,
        "is_owner": is_owner,
        "greeting_name": (
            owner.get_display_name("Campground Owner")
            if is_owner and owner is not None
            else user.get_display_name("Customer")
        ),
    }
    send_mail(
        subject,
        render_to_string("campgrounds/emails/booking_confirmation.txt", context),
        settings.DEFAULT_FROM_EMAIL,
        [recipient],
        html_message=render_to_string("campgrounds/emails/booking_confirmation.html", context),
    )
    logger.info("Email sent successfully to: %s", recipient)


def send_booking_confirmations(trip, owner=None):
    """Email the guest, then the owner. Send failures are logged and never raised."""
    try:
        send_confirmation_email(trip.user.email, trip)
    except Exception:
        logger.exception("Failed to send confirmation email to user: %s", trip.user.email)

    if owner is None or not owner.email:
        logger.error("Owner email not found for campground: %s", trip.campground_id)
        return
    try:
        send_confirmation_email(owner.email, trip, owner=owner, is_owner=True)
    except Exception:
        logger.exception("Failed to send confirmation email to owner: %s", owner.email)
