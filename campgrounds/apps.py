from django.apps import AppConfig


class CampgroundsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "campgrounds"
