"""Stripe calls for refunds and webhook verification."""

import stripe

from campgrounds.services import to_money

from .conf import StripeConfig

REFUND_SUCCEEDED = "succeeded"


def to_cents(amount):
    return int(to_money(amount) * 100)


def create_refund(payment_intent, amount, config=None):
    """
    Refund amount (in dollars) of a PaymentIntent. Returns the Refund as a plain dict;
    callers must check its status. The API key is passed per call, never set globally.
    """
    config = config or StripeConfig.from_settings()
    refund = stripe.Refund.create(
        payment_intent=payment_intent,
        amount=to_cents(amount),
        api_key=config.secret_key,
    )
    return refund.to_dict()


def construct_event(payload, sig_header, config=None):
    """Verify the Stripe-Signature header and parse the event into a plain dict. Raises on mismatch."""
    config = config or StripeConfig.from_settings()
    event = stripe.Webhook.construct_event(payload, sig_header, config.webhook_secret)
    return event.to_dict()
