"""
Apply Stripe webhook events to the trip and earnings ledger.

Each event is recorded in ProcessedWebhookEvent inside the same transaction as
its ledger writes, so a redelivered event is skipped and a rejected one is not
recorded.
"""

import logging
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils.dateparse import parse_date

from campgrounds.notifications import send_booking_confirmations
from campgrounds.services import (
    credit_earnings,
    get_campground,
    get_or_none,
    notify_owner,
    record_trip,
    to_money,
)

from .models import ProcessedWebhookEvent

logger = logging.getLogger(__name__)
User = get_user_model()


class WebhookRejected(Exception):
    """Event is authentic but refers to records that cannot be resolved."""


def _int(value, default=0):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _date(value):
    """Stripe metadata dates are strings: 2025-06-01 or a full ISO timestamp."""
    if not value:
        return None
    try:
        parsed = parse_date(str(value)[:10])
    except ValueError:
        parsed = None
    if parsed is None:
        logger.warning("Unparseable date in metadata: %s", value)
    return parsed


def _set_premium(subscription, subscribed):
    email = (subscription.get("metadata") or {}).get("email")
    if not email:
        logger.warning("Subscription %s carries no email in metadata", subscription.get("id"))
        return
    updated = User.objects.filter(email=email).update(premium_subscribed=subscribed)
    if not updated:
        logger.warning("No user found with email: %s", email)
    elif subscribed:
        logger.info("Premium subscription activated for: %s", email)
    else:
        logger.info("Premium subscription ended for: %s", email)


def handle_subscription_created(subscription):
    _set_premium(subscription, True)


def handle_subscription_deleted(subscription):
    _set_premium(subscription, False)


def handle_checkout_completed(session):
    """Record the trip, credit the owner and notify them; emails go out after commit."""
    metadata = session.get("metadata") or {}
    user_id = metadata.get("user")
    camp_id = metadata.get("camp")
    owner_id = metadata.get("owner")
    logger.info("Processing checkout.session.completed for user: %s camp: %s", user_id, camp_id)

    campground = get_campground(camp_id)
    user = get_or_none(User.objects.all(), user_id)
    if user is None or not user.email:
        logger.error("User not found or missing email for ID: %s", user_id)
        raise WebhookRejected("User not found")
    if campground is None:
        logger.error("Campground not found for ID: %s", camp_id)
        raise WebhookRejected("Campground not found")

    trip = record_trip(
        user,
        campground,
        check_in=_date(metadata.get("checkIn")),
        check_out=_date(metadata.get("checkOut")),
        payment_intent=session.get("payment_intent") or "",
        charge=to_money(Decimal(session.get("amount_total") or 0) / 100),
        days=_int(metadata.get("days"), default=1),
        adults=_int(metadata.get("adults")),
        children=_int(metadata.get("children")),
        infants=_int(metadata.get("infants")),
    )
    credit_earnings(campground, trip.charge)

    owner = get_or_none(User.objects.all(), owner_id)
    if owner is None:
        logger.error("No user found with ID: %s", owner_id)
    else:
        notify_owner(owner, trip)

    transaction.on_commit(lambda: send_booking_confirmations(trip, owner))
    return trip


EVENT_HANDLERS = {
    "customer.subscription.created": handle_subscription_created,
    "customer.subscription.deleted": handle_subscription_deleted,
    "checkout.session.completed": handle_checkout_completed,
}


def process_event(event):
    """
    Dispatch a verified event. Returns False when the event id was already processed.
    Raises WebhookRejected, rolling back every write for this event.
    """
    event_id = event.get("id")
    event_type = event["type"]
    with transaction.atomic():
        if event_id:
            _, created = ProcessedWebhookEvent.objects.get_or_create(
                event_id=event_id, defaults={"event_type": event_type}
            )
            if not created:
                logger.info("Skipping already processed event: %s", event_id)
                return False
        handler = EVENT_HANDLERS.get(event_type)
        if handler is None:
            logger.debug("Ignoring event type: %s", event_type)
        else:
            handler(event["data"]["object"])
    return True
