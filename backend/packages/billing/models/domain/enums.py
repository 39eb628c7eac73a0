"""
Billing enums - strongly typed enumerations for subscription and billing states.
"""

from enum import Enum


class SubscriptionStatus(str, Enum):
    """
    Local subscription status.

    Flow: trial -> active -> grace -> (active | cancelled) ; expired ends a trial
    """

    TRIAL = "trial"  # Free trial, countdown on subscription_end
    ACTIVE = "active"  # Paid and current
    GRACE = "grace"  # Payment failed, provider is retrying; access kept
    CANCELLED = "cancelled"  # Cancelled locally or by the provider
    EXPIRED = "expired"  # Trial ran out without a subscription

    def has_access(self) -> bool:
        """Check if this status allows product access on its own."""
        return self in (
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.TRIAL,
            SubscriptionStatus.GRACE,
        )


class SubscriptionPlan(str, Enum):
    """
    Subscription plans (seat-based tiers).

    Paid plans map to provider price IDs per billing period.
    """

    TRIAL = "trial"  # $0 - 30 day trial
    STARTER = "starter"  # $90/mo - 3 seats
    TEAM = "team"  # $140/mo - 5 seats
    BUSINESS = "business"  # $190/mo - 10 seats

    @property
    def display_name(self) -> str:
        names = {
            SubscriptionPlan.TRIAL: "Free Trial",
            SubscriptionPlan.STARTER: "Starter",
            SubscriptionPlan.TEAM: "Team",
            SubscriptionPlan.BUSINESS: "Business",
        }
        return names[self]

    @property
    def max_seats(self) -> int:
        """Seat ceiling granted by this plan."""
        seats = {
            SubscriptionPlan.TRIAL: 10,
            SubscriptionPlan.STARTER: 3,
            SubscriptionPlan.TEAM: 5,
            SubscriptionPlan.BUSINESS: 10,
        }
        return seats[self]

    def get_price_cents(self) -> int:
        """Get monthly price in cents."""
        prices = {
            SubscriptionPlan.TRIAL: 0,
            SubscriptionPlan.STARTER: 9000,  # $90
            SubscriptionPlan.TEAM: 14000,  # $140
            SubscriptionPlan.BUSINESS: 19000,  # $190
        }
        return prices[self]


class BillingPeriod(str, Enum):
    """Payment schedule of a paid plan."""

    MONTHLY = "monthly"
    ANNUAL = "annual"


class SubscriptionAction(str, Enum):
    """Commands accepted by the subscription endpoint."""

    SETUP_INTENT = "setup-intent"
    COMPLETE = "complete"
    CANCEL = "cancel"
