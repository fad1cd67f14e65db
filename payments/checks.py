from django.core.checks import Error, Warning, register

from .conf import StripeConfig

SECRET_KEY_PREFIXES = ("sk_", "rk_")


@register()
def stripe_settings_check(app_configs, **kwargs):
    """Validate Stripe credentials at startup."""
    config = StripeConfig.from_settings()
    errors = []
    if not config.secret_key:
        errors.append(
            Warning(
                "STRIPE_SECRET_KEY is not set; booking cancellations cannot issue refunds.",
                id="payments.W001",
            )
        )
    elif not config.secret_key.startswith(SECRET_KEY_PREFIXES):
        errors.append(
            Error(
                "STRIPE_SECRET_KEY does not look like a Stripe secret key.",
                hint="Use a key starting with sk_ or rk_, not the publishable key.",
                id="payments.E001",
            )
        )
    if not config.webhook_secret:
        errors.append(
            Warning(
                "STRIPE_WEBHOOK_SECRET is not set; the Stripe webhook will reject every event.",
                id="payments.W002",
            )
        )
    return errors
