from django.db import models


class ProcessedWebhookEvent(models.Model):
    """Stripe event ids already applied; a redelivered event is acknowledged and skipped."""

    event_id = models.CharField(max_length=255, unique=True)  # e.g. evt_1Abc...
    event_type = models.CharField(max_length=255)
    processed_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.event_id} ({self.event_type})"
