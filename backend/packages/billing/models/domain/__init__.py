"""Domain models for billing."""

from packages.billing.models.domain.enums import (
    BillingPeriod,
    SubscriptionAction,
    SubscriptionPlan,
    SubscriptionStatus,
)
from packages.billing.models.domain.payment import Payment, PaymentCreateModel
from packages.billing.models.domain.subscription import (
    SetupIntentResult,
    SubscriptionInfo,
    SubscriptionSnapshot,
)

__all__ = [
    # Enums
    "BillingPeriod",
    "SubscriptionAction",
    "SubscriptionPlan",
    "SubscriptionStatus",
    # Payments
    "Payment",
    "PaymentCreateModel",
    # Subscriptions
    "SetupIntentResult",
    "SubscriptionInfo",
    "SubscriptionSnapshot",
]
