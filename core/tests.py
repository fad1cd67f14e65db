from django.contrib.auth import get_user_model
from django.test import TestCase

User = get_user_model()


class UserTests(TestCase):
    def test_new_users_are_not_premium(self):
        user = User.objects.create_user(username="testuser", password="testpass123")
        self.assertFalse(user.premium_subscribed)

    def test_display_name_fallbacks(self):
        user = User.objects.create_user(username="jdoe", password="pass")
        self.assertEqual(user.get_display_name(), "Customer")
        self.assertEqual(user.get_display_name("Campground Owner"), "Campground Owner")
        user.first_name, user.last_name = "Jane", "Doe"
        self.assertEqual(user.get_display_name(), "Jane Doe")
        user.name = "JD"
        self.assertEqual(user.get_display_name(), "JD")
        self.assertEqual(str(user), "JD")
