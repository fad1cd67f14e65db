"""
Trip and earnings ledger: record paid bookings, reverse cancelled ones.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import F

from .models import Campground, Notification, Trip

logger = logging.getLogger(__name__)

# Owners keep 65% of every booking; the rest is the platform fee.
OWNER_SHARE = Decimal("0.65")
NON_PREMIUM_REFUND_RATE = Decimal("0.85")
CENT = Decimal("0.01")


def to_money(value):
    """Decimal rounded to cents. Accepts Decimal, int, str or float."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def owner_share(amount):
    return to_money(to_money(amount) * OWNER_SHARE)


def refund_amount_for(user, charge):
    """
    Amount to refund for a trip charge. Premium subscribers get the full charge back;
    everyone else gets 85% of it.
    """
    charge = to_money(charge)
    if user.premium_subscribed:
        return charge
    return to_money(charge * NON_PREMIUM_REFUND_RATE)


def get_or_none(queryset, pk):
    """queryset.get(pk=pk), or None when pk is missing, malformed or unknown."""
    if pk in (None, ""):
        return None
    try:
        return queryset.get(pk=pk)
    except (queryset.model.DoesNotExist, ValueError, TypeError):
        return None


def get_campground(pk):
    return get_or_none(Campground.objects.select_related("owner"), pk)


def record_trip(user, campground, **details):
    """Create the Trip for a completed checkout. details are Trip field values."""
    trip = Trip.objects.create(user=user, campground=campground, **details)
    logger.info("Trip %s added for user: %s", trip.pk, user.pk)
    return trip


def remove_trip(trip):
    pk = trip.pk
    trip.delete()
    logger.info("Trip %s removed for user: %s", pk, trip.user_id)


def credit_earnings(campground, amount):
    """Add the owner's share of amount to the campground's earnings. Returns the share."""
    share = owner_share(amount)
    Campground.objects.filter(pk=campground.pk).update(earnings=F("earnings") + share)
    logger.info("Earnings updated for campground: %s (+%s)", campground.pk, share)
    return share


def debit_earnings(campground, amount):
    """Take the owner's share of amount back out of the campground's earnings."""
    share = owner_share(amount)
    Campground.objects.filter(pk=campground.pk).update(earnings=F("earnings") - share)
    logger.info("Earnings updated for campground: %s (-%s)", campground.pk, share)
    return share


def notify_owner(owner, trip):
    """Record a new-booking notification for the campground owner."""
    notification = Notification.objects.create(
        recipient=owner,
        campground=trip.campground,
        user=trip.user,
        check_in=trip.check_in,
        check_out=trip.check_out,
        adults=trip.adults,
        children=trip.children,
        infants=trip.infants,
    )
    logger.info("Notification added for owner: %s", owner.pk)
    return notification
