"""Stripe credentials, read once from Django settings and passed to the gateway."""

from dataclasses import dataclass

from django.conf import settings


@dataclass(frozen=True)
class StripeConfig:
    secret_key: str = ""
    webhook_secret: str = ""

    @classmethod
    def from_settings(cls):
        return cls(
            secret_key=(getattr(settings, "STRIPE_SECRET_KEY", None) or "").strip(),
            webhook_secret=(getattr(settings, "STRIPE_WEBHOOK_SECRET", None) or "").strip(),
        )
