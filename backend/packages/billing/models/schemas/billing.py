"""
API schemas for billing operations.

Request and response models for billing endpoints. Field names are camelCase
on the wire.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from packages.billing.enforcement import EntitlementFlags
from packages.billing.models.domain.enums import (
    SubscriptionAction,
    SubscriptionPlan,
    SubscriptionStatus,
)


# ============================================================================
# Subscription Commands
# ============================================================================


class SubscriptionCommandRequest(BaseModel):
    """A subscription command. plan and period are required for 'complete'."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    action: str = Field(
        ...,
        description="One of: " + ", ".join(a.value for a in SubscriptionAction),
    )
    plan: Optional[str] = Field(default=None, description="starter, team or business")
    period: Optional[str] = Field(default=None, description="monthly or annual")
    payment_method_id: Optional[str] = Field(
        default=None, description="Stripe payment method to bill by default"
    )


class SubscriptionCommandResponse(BaseModel):
    """Result of a subscription command. Unused fields are omitted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    client_secret: Optional[str] = None
    ephemeral_key: Optional[str] = None
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None


# ============================================================================
# Subscription Status
# ============================================================================


class SubscriptionInfoResponse(BaseModel):
    """Current entitlement of a company plus the UI enforcement flags."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    company_id: int
    tier: SubscriptionPlan
    tier_name: str
    monthly_price_cents: int
    status: SubscriptionStatus
    max_seats: int
    current_seats: int
    trial_ends_at: Optional[datetime] = None
    days_remaining: Optional[int] = None
    is_active: bool
    flags: EntitlementFlags


# ============================================================================
# Seats
# ============================================================================


class SeatRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    member_id: str = Field(..., description="User to give a seat to")


class SeatsResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    company_id: int
    max_seats: int
    seated_member_ids: list[str]
