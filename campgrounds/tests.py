from datetime import date
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase

from campgrounds.models import Campground, Notification, Trip
from campgrounds.notifications import send_booking_confirmations
from campgrounds.pricing import compute_bill
from campgrounds.services import (
    credit_earnings,
    debit_earnings,
    get_campground,
    notify_owner,
    owner_share,
    record_trip,
    refund_amount_for,
    remove_trip,
)

User = get_user_model()


class LedgerServiceTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="u", password="p", email="u@example.com")
        self.owner = User.objects.create_user(username="o", password="p", email="o@example.com")
        self.campground = Campground.objects.create(name="Lakeside", owner=self.owner)

    def test_refund_amount_for_non_premium_is_85_percent(self):
        self.assertEqual(refund_amount_for(self.user, Decimal("100")), Decimal("85.00"))

    def test_refund_amount_for_premium_is_full_charge(self):
        self.user.premium_subscribed = True
        self.assertEqual(refund_amount_for(self.user, Decimal("100")), Decimal("100.00"))

    def test_owner_share_rounds_to_cents(self):
        self.assertEqual(owner_share(Decimal("85")), Decimal("55.25"))
        self.assertEqual(owner_share(Decimal("33.33")), Decimal("21.66"))

    def test_credit_then_debit_earnings(self):
        self.assertEqual(credit_earnings(self.campground, Decimal("100")), Decimal("65.00"))
        self.assertEqual(debit_earnings(self.campground, Decimal("85")), Decimal("55.25"))
        self.campground.refresh_from_db()
        self.assertEqual(self.campground.earnings, Decimal("9.75"))

    def test_record_and_remove_trip(self):
        trip = record_trip(
            self.user, self.campground, payment_intent="pi_1", charge=Decimal("50.00"), adults=1
        )
        self.assertEqual(list(self.user.trips.all()), [trip])
        remove_trip(trip)
        self.assertFalse(Trip.objects.exists())

    def test_notify_owner_copies_stay_details(self):
        trip = Trip.objects.create(
            user=self.user,
            campground=self.campground,
            charge=Decimal("50.00"),
            check_in=date(2025, 7, 1),
            check_out=date(2025, 7, 3),
            adults=2,
            infants=1,
        )
        notification = notify_owner(self.owner, trip)
        self.assertEqual(list(self.owner.notifications.all()), [notification])
        self.assertEqual(notification.check_in, date(2025, 7, 1))
        self.assertEqual((notification.adults, notification.infants), (2, 1))
        self.assertFalse(Notification.objects.filter(recipient=self.user).exists())

    def test_trip_str(self):
        trip = Trip(user=self.user, campground=self.campground, check_in=date(2025, 7, 1))
        self.assertEqual(str(trip), "u - Lakeside (2025-07-01 to None)")

    def test_get_campground_tolerates_bad_ids(self):
        self.assertEqual(get_campground(self.campground.pk), self.campground)
        self.assertEqual(get_campground(str(self.campground.pk)), self.campground)
        self.assertIsNone(get_campground("not-an-id"))
        self.assertIsNone(get_campground(None))
        self.assertIsNone(get_campground(999999))


class PricingTests(TestCase):
    def setUp(self):
        self.campground = Campground(
            name="Lakeside",
            price_adults=Decimal("30.00"),
            price_children=Decimal("15.00"),
            discount=Decimal("10"),
        )

    def test_bill_prefers_charged_total(self):
        trip = Trip(campground=self.campground, adults=2, children=1, days=2, charge=Decimal("99.00"))
        bill = compute_bill(self.campground, trip, premium=True)
        self.assertEqual(bill.base_price, Decimal("150.00"))
        self.assertEqual(bill.discount_amount, Decimal("15.00"))
        self.assertEqual(bill.premium_discount, Decimal("27.00"))
        self.assertEqual(bill.total, Decimal("99.00"))
        self.assertEqual(bill.owner_earnings, Decimal("64.35"))

    def test_bill_without_charge_recomputes_total(self):
        trip = Trip(campground=self.campground, adults=2, children=1, days=2, charge=None)
        self.assertEqual(compute_bill(self.campground, trip).total, Decimal("135.00"))
        self.assertEqual(compute_bill(self.campground, trip, premium=True).total, Decimal("108.00"))

    def test_no_discount_row_when_campground_has_none(self):
        self.campground.discount = Decimal("0")
        trip = Trip(campground=self.campground, adults=1, days=3, charge=None)
        bill = compute_bill(self.campground, trip)
        self.assertEqual(bill.discount_amount, Decimal("0.00"))
        self.assertEqual(bill.total, Decimal("90.00"))


class ConfirmationEmailTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="camper", password="p", email="camper@example.com", name="Casey"
        )
        self.owner = User.objects.create_user(
            username="owner", password="p", email="owner@example.com", name="Olive"
        )
        self.campground = Campground.objects.create(
            name="Lakeside",
            city="Tahoe",
            state="CA",
            country="USA",
            price_adults=Decimal("30.00"),
            owner=self.owner,
        )
        self.trip = Trip.objects.create(
            user=self.user,
            campground=self.campground,
            charge=Decimal("100.00"),
            adults=2,
            days=2,
            check_in=date(2025, 7, 1),
        )

    def test_guest_and_owner_emails(self):
        send_booking_confirmations(self.trip, self.owner)
        self.assertEqual(len(mail.outbox), 2)
        guest, owner = mail.outbox
        self.assertIn("Dear Casey", guest.body)
        self.assertIn("We look forward to your stay!", guest.body)
        self.assertIn("Tahoe, CA, USA", guest.body)
        html, mimetype = guest.alternatives[0]
        self.assertEqual(mimetype, "text/html")
        self.assertIn("View Your Booking", html)
        self.assertIn("Dear Olive", owner.body)
        self.assertIn("Earnings credited: ₹65.00", owner.body)

    def test_owner_without_email_gets_nothing(self):
        self.owner.email = ""
        send_booking_confirmations(self.trip, self.owner)
        self.assertEqual(len(mail.outbox), 1)

    def test_send_failures_are_logged_not_raised(self):
        with patch("campgrounds.notifications.send_mail", side_effect=OSError("smtp down")):
            with self.assertLogs("campgrounds.notifications", level="ERROR") as logs:
                send_booking_confirmations(self.trip, self.owner)
        self.assertEqual(len(logs.records), 2)
