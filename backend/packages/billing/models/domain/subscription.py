"""
Domain models for subscriptions and entitlements.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from packages.billing.models.domain.enums import (
    BillingPeriod,
    SubscriptionPlan,
    SubscriptionStatus,
)


class SubscriptionInfo(BaseModel):
    """
    What a company is entitled to right now.

    Derived from the company record on every read and never stored, so it
    cannot drift from the record it came from.
    """

    tier: SubscriptionPlan
    status: SubscriptionStatus
    max_seats: int
    current_seats: int
    trial_ends_at: Optional[datetime] = None
    # Only set for trials with a known end date
    days_remaining: Optional[int] = None
    is_active: bool


class SubscriptionSnapshot(BaseModel):
    """
    Full state of a provider subscription at one point in time.

    Built the same way from a command response and from a webhook body, so
    applying either one leaves the company record in the same state.
    """

    subscription_id: str
    customer_id: str
    # Raw provider status (active, trialing, past_due, canceled, ...)
    status: str
    cancel_at_period_end: bool = False
    plan: Optional[SubscriptionPlan] = None
    period: Optional[BillingPeriod] = None
    current_period_end: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SetupIntentResult(BaseModel):
    """Client-side material for collecting a payment method."""

    customer_id: str
    client_secret: str
    ephemeral_key: Optional[str] = None
