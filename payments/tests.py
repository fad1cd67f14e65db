import hashlib
import hmac
import json
import time
from decimal import Decimal
from unittest.mock import patch

import stripe
from django.contrib.auth import get_user_model
from django.core import mail
from django.test import Client, TestCase, override_settings
from django.urls import reverse

from campgrounds.models import Campground, Notification, Trip
from payments.checks import stripe_settings_check
from payments.conf import StripeConfig
from payments.gateway import construct_event, create_refund
from payments.models import ProcessedWebhookEvent
from payments.webhooks import _date

User = get_user_model()

WEBHOOK_SECRET = "whsec_test_secret"


def refund_object(refund_id, status):
    return stripe.Refund.construct_from(
        {"id": refund_id, "object": "refund", "status": status, "amount": 8500},
        "sk_test_123",
    )


@override_settings(STRIPE_SECRET_KEY="sk_test_123", STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET)
class CancelBookingTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(
            username="camper", password="pass", email="camper@example.com"
        )
        self.owner = User.objects.create_user(
            username="owner", password="pass", email="owner@example.com"
        )
        self.campground = Campground.objects.create(
            name="Pine Hollow", owner=self.owner, earnings=Decimal("200.00")
        )
        self.trip = Trip.objects.create(
            user=self.user,
            campground=self.campground,
            payment_intent="pi_123",
            charge=Decimal("100.00"),
            days=2,
            adults=2,
        )
        self.url = reverse("payments:cancel_booking")

    def _cancel(self, trip_details=None, user=None):
        body = {
            "tripDetails": trip_details
            or {
                "id": self.trip.pk,
                "charge": 100,
                "payment_intent": "pi_123",
                "campground": {"_id": self.campground.pk},
            },
            "user": (user or self.user).pk,
        }
        return self.client.post(self.url, json.dumps(body), content_type="application/json")

    @patch("payments.gateway.stripe.Refund.create")
    def test_non_premium_refund_is_85_percent(self, refund_create):
        refund_create.return_value = refund_object("re_1", "succeeded")
        response = self._cancel()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["id"], "re_1")
        refund_create.assert_called_once_with(
            payment_intent="pi_123", amount=8500, api_key="sk_test_123"
        )
        self.assertFalse(Trip.objects.filter(pk=self.trip.pk).exists())
        self.campground.refresh_from_db()
        # 200 - 85 * 0.65
        self.assertEqual(self.campground.earnings, Decimal("144.75"))

    @patch("payments.gateway.stripe.Refund.create")
    def test_premium_refund_is_full_charge(self, refund_create):
        self.user.premium_subscribed = True
        self.user.save(update_fields=["premium_subscribed"])
        refund_create.return_value = refund_object("re_2", "succeeded")
        response = self._cancel()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(refund_create.call_args.kwargs["amount"], 10000)
        self.campground.refresh_from_db()
        self.assertEqual(self.campground.earnings, Decimal("135.00"))

    @patch("payments.gateway.stripe.Refund.create")
    def test_failed_refund_leaves_ledger_untouched(self, refund_create):
        refund_create.return_value = refund_object("re_3", "failed")
        response = self._cancel()
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["status"], "failed")
        self.assertTrue(Trip.objects.filter(pk=self.trip.pk).exists())
        self.campground.refresh_from_db()
        self.assertEqual(self.campground.earnings, Decimal("200.00"))

    @patch("payments.gateway.stripe.Refund.create")
    def test_stripe_error_returns_502(self, refund_create):
        refund_create.side_effect = stripe.InvalidRequestError(
            "No such payment_intent: 'pi_123'", "payment_intent"
        )
        response = self._cancel()
        self.assertEqual(response.status_code, 502)
        self.assertIn("No such payment_intent", response.json()["error"])
        self.assertTrue(Trip.objects.filter(pk=self.trip.pk).exists())

    @patch("payments.gateway.stripe.Refund.create")
    def test_only_the_identified_trip_is_removed(self, refund_create):
        """Two trips at the same campground: cancelling one keeps the other."""
        other = Trip.objects.create(
            user=self.user,
            campground=self.campground,
            payment_intent="pi_456",
            charge=Decimal("40.00"),
        )
        refund_create.return_value = refund_object("re_4", "succeeded")
        response = self._cancel(
            {"id": other.pk, "payment_intent": "pi_456", "campground": self.campground.pk}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(refund_create.call_args.kwargs["payment_intent"], "pi_456")
        self.assertEqual(refund_create.call_args.kwargs["amount"], 3400)
        self.assertTrue(Trip.objects.filter(pk=self.trip.pk).exists())
        self.assertFalse(Trip.objects.filter(pk=other.pk).exists())

    @patch("payments.gateway.stripe.Refund.create")
    def test_trip_matched_by_payment_intent_and_campground(self, refund_create):
        refund_create.return_value = refund_object("re_5", "succeeded")
        response = self._cancel(
            {"charge": 100, "payment_intent": "pi_123", "campground": {"_id": self.campground.pk}}
        )
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Trip.objects.filter(pk=self.trip.pk).exists())

    @patch("payments.gateway.stripe.Refund.create")
    def test_unknown_user_returns_404(self, refund_create):
        body = {"tripDetails": {"id": self.trip.pk}, "user": 999999}
        response = self.client.post(self.url, json.dumps(body), content_type="application/json")
        self.assertEqual(response.status_code, 404)
        refund_create.assert_not_called()

    @patch("payments.gateway.stripe.Refund.create")
    def test_someone_elses_trip_returns_404(self, refund_create):
        response = self._cancel(user=self.owner)
        self.assertEqual(response.status_code, 404)
        refund_create.assert_not_called()

    def test_malformed_body_returns_400(self):
        response = self.client.post(self.url, "not json", content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_get_not_allowed(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 405)


def checkout_event(event_id="evt_checkout_1", **metadata):
    meta = {
        "user": "",
        "camp": "",
        "owner": "",
        "checkIn": "2025-07-01",
        "checkOut": "2025-07-03",
        "days": "2",
        "adults": "2",
        "children": "1",
        "infants": "0",
    }
    meta.update({k: str(v) for k, v in metadata.items()})
    return {
        "id": event_id,
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_test_1",
                "amount_total": 10000,
                "payment_intent": "pi_checkout",
                "metadata": meta,
            }
        },
    }


def subscription_event(event_type, email, event_id="evt_sub_1"):
    return {
        "id": event_id,
        "type": event_type,
        "data": {"object": {"id": "sub_1", "metadata": {"email": email}}},
    }


def sign_payload(payload, secret=WEBHOOK_SECRET):
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload}".encode()
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@override_settings(STRIPE_SECRET_KEY="sk_test_123", STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET)
class StripeWebhookTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.url = reverse("payments:stripe_webhook")
        self.user = User.objects.create_user(
            username="camper", password="pass", email="camper@example.com", name="Casey"
        )
        self.owner = User.objects.create_user(
            username="owner", password="pass", email="owner@example.com", name="Olive"
        )
        self.campground = Campground.objects.create(
            name="Pine Hollow",
            city="Bend",
            state="OR",
            country="USA",
            price_adults=Decimal("30.00"),
            price_children=Decimal("15.00"),
            owner=self.owner,
        )

    def _booking_event(self, **overrides):
        metadata = {"user": self.user.pk, "camp": self.campground.pk, "owner": self.owner.pk}
        metadata.update(overrides)
        return checkout_event(**metadata)

    def _post(self, event, signature="t=1,v1=fake"):
        extra = {"HTTP_STRIPE_SIGNATURE": signature} if signature else {}
        with patch(
            "payments.gateway.stripe.Webhook.construct_event",
            return_value=stripe.Event.construct_from(event, "sk_test_123"),
        ):
            with self.captureOnCommitCallbacks(execute=True):
                return self.client.post(
                    self.url, json.dumps(event), content_type="application/json", **extra
                )

    def test_checkout_records_trip_and_earnings(self):
        response = self._post(self._booking_event())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"")
        trip = Trip.objects.get(user=self.user)
        self.assertEqual(trip.charge, Decimal("100.00"))
        self.assertEqual(trip.payment_intent, "pi_checkout")
        self.assertEqual((trip.adults, trip.children, trip.infants, trip.days), (2, 1, 0, 2))
        self.assertEqual(str(trip.check_in), "2025-07-01")
        self.campground.refresh_from_db()
        self.assertEqual(self.campground.earnings, Decimal("65.00"))

    def test_checkout_notifies_owner_and_emails_both(self):
        self._post(self._booking_event())
        notification = Notification.objects.get(recipient=self.owner)
        self.assertEqual(notification.user, self.user)
        self.assertEqual(notification.campground, self.campground)
        self.assertFalse(notification.read)
        self.assertEqual(len(mail.outbox), 2)
        self.assertEqual(mail.outbox[0].to, ["camper@example.com"])
        self.assertEqual(mail.outbox[0].subject, "Your Booking Confirmation for Pine Hollow")
        self.assertEqual(mail.outbox[1].to, ["owner@example.com"])
        self.assertEqual(mail.outbox[1].subject, "New Booking Confirmation for Pine Hollow")
        self.assertIn("Earnings credited", mail.outbox[1].body)

    def test_email_failure_does_not_fail_request(self):
        with patch("campgrounds.notifications.send_mail", side_effect=OSError("smtp down")):
            response = self._post(self._booking_event())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Trip.objects.filter(user=self.user).count(), 1)
        self.campground.refresh_from_db()
        self.assertEqual(self.campground.earnings, Decimal("65.00"))

    def test_unknown_owner_skips_notification_and_owner_email(self):
        response = self._post(self._booking_event(owner=999999))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Notification.objects.exists())
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["camper@example.com"])

    def test_unknown_user_returns_400(self):
        response = self._post(self._booking_event(user=999999))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b"User not found")
        self.assertFalse(Trip.objects.exists())
        self.assertFalse(ProcessedWebhookEvent.objects.exists())

    def test_user_without_email_returns_400(self):
        self.user.email = ""
        self.user.save(update_fields=["email"])
        response = self._post(self._booking_event())
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Trip.objects.exists())

    def test_unknown_campground_returns_400(self):
        response = self._post(self._booking_event(camp=999999))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b"Campground not found")
        self.campground.refresh_from_db()
        self.assertEqual(self.campground.earnings, Decimal("0.00"))

    def test_redelivered_event_is_applied_once(self):
        event = self._booking_event()
        self.assertEqual(self._post(event).status_code, 200)
        self.assertEqual(self._post(event).status_code, 200)
        self.assertEqual(Trip.objects.filter(user=self.user).count(), 1)
        self.campground.refresh_from_db()
        self.assertEqual(self.campground.earnings, Decimal("65.00"))
        self.assertEqual(len(mail.outbox), 2)

    def test_subscription_created_sets_premium(self):
        response = self._post(
            subscription_event("customer.subscription.created", "camper@example.com")
        )
        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertTrue(self.user.premium_subscribed)

    def test_subscription_deleted_clears_premium(self):
        self.user.premium_subscribed = True
        self.user.save(update_fields=["premium_subscribed"])
        self._post(subscription_event("customer.subscription.deleted", "camper@example.com"))
        self.user.refresh_from_db()
        self.assertFalse(self.user.premium_subscribed)

    def test_subscription_for_unknown_email_still_returns_200(self):
        response = self._post(
            subscription_event("customer.subscription.created", "nobody@example.com")
        )
        self.assertEqual(response.status_code, 200)

    def test_unhandled_event_type_returns_200(self):
        event = {"id": "evt_other", "type": "invoice.paid", "data": {"object": {}}}
        self.assertEqual(self._post(event).status_code, 200)

    def test_missing_signature_returns_400(self):
        response = self._post(self._booking_event(), signature=None)
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Trip.objects.exists())

    @override_settings(STRIPE_WEBHOOK_SECRET="")
    def test_missing_secret_returns_400(self):
        response = self._post(self._booking_event())
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b"Missing signature or webhook secret")
        self.assertFalse(Trip.objects.exists())

    def test_invalid_signature_returns_400(self):
        payload = json.dumps(self._booking_event())
        response = self.client.post(
            self.url,
            payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=sign_payload(payload, secret="whsec_wrong"),
        )
        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.content.startswith(b"Webhook error:"))
        self.assertFalse(Trip.objects.exists())

    def test_signed_payload_is_verified_and_processed(self):
        payload = json.dumps(self._booking_event())
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                self.url,
                payload,
                content_type="application/json",
                HTTP_STRIPE_SIGNATURE=sign_payload(payload),
            )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Trip.objects.filter(user=self.user).count(), 1)
        self.assertTrue(ProcessedWebhookEvent.objects.filter(event_id="evt_checkout_1").exists())

    def test_get_not_allowed(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 405)


class StripeSettingsCheckTests(TestCase):
    @override_settings(STRIPE_SECRET_KEY="sk_test_123", STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET)
    def test_configured_keys_pass(self):
        self.assertEqual(stripe_settings_check(None), [])

    @override_settings(STRIPE_SECRET_KEY="", STRIPE_WEBHOOK_SECRET="")
    def test_missing_keys_warn(self):
        ids = [message.id for message in stripe_settings_check(None)]
        self.assertEqual(ids, ["payments.W001", "payments.W002"])

    @override_settings(STRIPE_SECRET_KEY="pk_test_123", STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET)
    def test_publishable_key_is_an_error(self):
        ids = [message.id for message in stripe_settings_check(None)]
        self.assertEqual(ids, ["payments.E001"])


class GatewayTests(TestCase):
    @patch("payments.gateway.stripe.Refund.create")
    def test_create_refund_returns_plain_dict(self, refund_create):
        refund_create.return_value = refund_object("re_9", "succeeded")
        refund = create_refund("pi_9", Decimal("12.34"), StripeConfig(secret_key="sk_test_9"))
        refund_create.assert_called_once_with(
            payment_intent="pi_9", amount=1234, api_key="sk_test_9"
        )
        self.assertIsInstance(refund, dict)
        self.assertEqual(refund.get("status"), "succeeded")

    def test_construct_event_returns_nested_dicts(self):
        payload = json.dumps(subscription_event("customer.subscription.created", "a@example.com"))
        event = construct_event(
            payload, sign_payload(payload), StripeConfig(webhook_secret=WEBHOOK_SECRET)
        )
        self.assertIsInstance(event, dict)
        self.assertEqual(event.get("id"), "evt_sub_1")
        self.assertEqual(event["data"]["object"].get("metadata"), {"email": "a@example.com"})


class MetadataDateTests(TestCase):
    def test_iso_dates_parse(self):
        self.assertEqual(str(_date("2025-07-01")), "2025-07-01")
        self.assertEqual(str(_date("2025-07-01T10:00:00.000Z")), "2025-07-01")
        self.assertIsNone(_date(""))

    def test_non_iso_date_is_logged(self):
        with self.assertLogs("payments.webhooks", level="WARNING") as logs:
            self.assertIsNone(_date("Tue Jul 01 2025 00:00:00 GMT+0000"))
        self.assertIn("Unparseable date", logs.output[0])
