from decimal import Decimal

from django.conf import settings
from django.db import models


class Campground(models.Model):
    """A bookable campground listed by an owner."""

    name = models.CharField(max_length=255)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    country = models.CharField(max_length=100, blank=True)
    price_adults = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0"),
        help_text="Price per adult per night",
    )
    price_children = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0"),
        help_text="Price per child per night",
    )
    discount = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("0"), help_text="Discount in percent"
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="campgrounds",
        null=True,
        blank=True,
    )
    # Owner's share of bookings, net of the platform fee
    earnings = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def get_location(self):
        """Comma-joined city, state and country."""
        return ", ".join(p for p in [self.city, self.state, self.country] if p)

    get_location.short_description = "Location"


class Trip(models.Model):
    """A paid stay booked by a user."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="trips")
    campground = models.ForeignKey(Campground, on_delete=models.CASCADE, related_name="trips")
    check_in = models.DateField(null=True, blank=True)
    check_out = models.DateField(null=True, blank=True)
    payment_intent = models.CharField(max_length=255, blank=True)
    charge = models.DecimalField(max_digits=10, decimal_places=2)
    days = models.PositiveIntegerField(default=1)
    adults = models.PositiveIntegerField(default=0)
    children = models.PositiveIntegerField(default=0)
    infants = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.user} - {self.campground} ({self.check_in} to {self.check_out})"


class Notification(models.Model):
    """New-booking notice shown to a campground owner."""

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications"
    )
    campground = models.ForeignKey(
        Campground, on_delete=models.CASCADE, related_name="notifications"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
        help_text="Guest who made the booking",
    )
    check_in = models.DateField(null=True, blank=True)
    check_out = models.DateField(null=True, blank=True)
    adults = models.PositiveIntegerField(default=0)
    children = models.PositiveIntegerField(default=0)
    infants = models.PositiveIntegerField(default=0)
    read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.campground} booking for {self.recipient} @ {self.created_at}"
