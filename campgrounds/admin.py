from django.contrib import admin

from .models import Campground, Notification, Trip


@admin.register(Campground)
class CampgroundAdmin(admin.ModelAdmin):
    list_display = ["name", "get_location", "owner", "earnings"]
    readonly_fields = ["earnings"]
    fieldsets = (
        (None, {"fields": ("name", "owner", "earnings")}),
        ("Location", {"fields": ("city", "state", "country")}),
        ("Pricing", {"fields": ("price_adults", "price_children", "discount")}),
    )


@admin.register(Trip)
class TripAdmin(admin.ModelAdmin):
    list_display = ["user", "campground", "check_in", "check_out", "charge", "payment_intent"]
    list_filter = ["campground"]
    search_fields = ["payment_intent", "user__email"]


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ["recipient", "campground", "user", "check_in", "read", "created_at"]
    list_filter = ["read"]
