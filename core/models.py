from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Site account: campers book trips, owners list campgrounds and collect earnings."""

    name = models.CharField(max_length=255, blank=True)
    premium_subscribed = models.BooleanField(
        default=False, help_text="YelpCamp Plus subscriber (discounted bookings)"
    )

    def __str__(self):
        return self.name or self.username

    def get_display_name(self, fallback="Customer"):
        return self.name or self.get_full_name() or fallback
