"""Booking cancellation and Stripe webhook endpoints."""

import json
import logging

import stripe
from django.contrib.auth import get_user_model
from django.db import transaction
from django.http import Http404, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from campgrounds.models import Trip
from campgrounds.services import debit_earnings, get_or_none, refund_amount_for, remove_trip

from .conf import StripeConfig
from .gateway import REFUND_SUCCEEDED, construct_event, create_refund
from .webhooks import WebhookRejected, process_event

logger = logging.getLogger(__name__)
User = get_user_model()


def _reference(value):
    """Campground references arrive as an id or as a serialized object."""
    if isinstance(value, dict):
        return value.get("_id") or value.get("id")
    return value


def _find_trip(user, trip_details):
    """The user's trip by id, else by its payment intent at the given campground."""
    trips = Trip.objects.filter(user=user).select_related("campground")
    trip_id = trip_details.get("id") or trip_details.get("_id")
    if trip_id:
        return get_or_none(trips, trip_id)
    payment_intent = trip_details.get("payment_intent")
    campground_id = _reference(trip_details.get("campground"))
    if not payment_intent or campground_id in (None, ""):
        return None
    try:
        return trips.filter(payment_intent=payment_intent, campground_id=campground_id).first()
    except (TypeError, ValueError):
        return None


@require_POST
@csrf_exempt
def cancel_booking(request):
    """Refund a trip, then remove it and take the owner's share back out of earnings."""
    try:
        data = json.loads(request.body)
        trip_details = data["tripDetails"]
        user_id = data["user"]
    except (ValueError, KeyError, TypeError):
        return HttpResponse("Expected JSON with tripDetails and user", status=400)
    if not isinstance(trip_details, dict):
        return HttpResponse("tripDetails must be an object", status=400)

    user = get_or_none(User.objects.all(), user_id)
    if user is None:
        raise Http404("User not found")
    trip = _find_trip(user, trip_details)
    if trip is None:
        raise Http404("Trip not found")

    amount = refund_amount_for(user, trip.charge)
    try:
        refund = create_refund(trip.payment_intent, amount, StripeConfig.from_settings())
    except stripe.StripeError as e:
        logger.exception("Stripe refund failed for trip %s: %s", trip.pk, e)
        return JsonResponse({"error": str(e)}, status=502)

    if refund.get("status") != REFUND_SUCCEEDED:
        logger.error("Refund for trip %s not successful: %s", trip.pk, refund.get("status"))
        return JsonResponse(refund, status=500)

    with transaction.atomic():
        remove_trip(trip)
        debit_earnings(trip.campground, amount)
    return JsonResponse(refund, status=200)


@require_POST
@csrf_exempt
def stripe_webhook(request):
    """Handle Stripe webhooks. Verify signature, then apply the event to the ledger."""
    payload = request.body
    sig_header = request.META.get("HTTP_STRIPE_SIGNATURE", "")
    config = StripeConfig.from_settings()
    if not sig_header or not config.webhook_secret:
        logger.error("Missing signature or webhook secret")
        return HttpResponse("Missing signature or webhook secret", status=400)
    try:
        event = construct_event(payload, sig_header, config)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.error("Webhook error: %s", e)
        return HttpResponse(f"Webhook error: {e}", status=400)
    logger.info("Received event: %s", event["type"])

    try:
        process_event(event)
    except WebhookRejected as e:
        return HttpResponse(str(e), status=400)
    return HttpResponse(status=200)
