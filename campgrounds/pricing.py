"""
Bill breakdown shown in confirmation emails.

Display only: the amount actually charged comes from Stripe and is what the
ledger records. Nothing here may be used to credit or debit earnings.
"""

from dataclasses import dataclass
from decimal import Decimal

from .services import OWNER_SHARE, to_money

PREMIUM_DISCOUNT = Decimal("0.20")


@dataclass(frozen=True)
class Bill:
    adults: int
    children: int
    infants: int
    days: int
    adult_price: Decimal
    child_price: Decimal
    discount_percent: Decimal
    base_price: Decimal
    discount_amount: Decimal
    premium_discount: Decimal
    total: Decimal

    @property
    def owner_earnings(self):
        return to_money(self.total * OWNER_SHARE)


def compute_bill(campground, trip, premium=False):
    """Recompute the price of trip at campground for display."""
    adults = trip.adults or 0
    children = trip.children or 0
    days = trip.days or 1
    adult_price = to_money(campground.price_adults or 0)
    child_price = to_money(campground.price_children or 0)
    discount_percent = Decimal(campground.discount or 0)

    base_price = (adults * adult_price + children * child_price) * days
    discount_amount = base_price * discount_percent / 100 if discount_percent > 0 else Decimal("0")
    after_discount = base_price - discount_amount
    premium_discount = after_discount * PREMIUM_DISCOUNT if premium else Decimal("0")
    if trip.charge:
        total = trip.charge
    else:
        total = after_discount - premium_discount

    return Bill(
        adults=adults,
        children=children,
        infants=trip.infants or 0,
        days=days,
        adult_price=adult_price,
        child_price=child_price,
        discount_percent=discount_percent,
        base_price=to_money(base_price),
        discount_amount=to_money(discount_amount),
        premium_discount=to_money(premium_discount),
        total=to_money(total),
    )
