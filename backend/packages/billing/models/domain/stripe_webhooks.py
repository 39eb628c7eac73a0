"""
Domain models for Stripe webhook payloads.

Strongly-typed Pydantic models for the Stripe objects the reconciliation
handlers read. Unknown fields are ignored so new Stripe API versions do not
break parsing.
"""

from datetime import datetime, timezone
from typing import Optional, Any, List
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

from packages.billing.models.domain.enums import BillingPeriod, SubscriptionPlan
from packages.billing.models.domain.subscription import SubscriptionSnapshot
from packages.billing.pricing import plan_for_price_id


class StripeWebhookType(str, Enum):
    """Stripe webhook event types we act on."""

    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"

    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"

    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"


class StripeSubscriptionStatus(str, Enum):
    """Stripe subscription status values."""

    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    PAUSED = "paused"


class StripeMetadata(BaseModel):
    """Metadata we attach to Stripe objects (camelCase keys, string values)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    company_id: Optional[str] = Field(default=None, alias="companyId")
    invoice_id: Optional[str] = Field(default=None, alias="invoiceId")
    client_id: Optional[str] = Field(default=None, alias="clientId")
    user_id: Optional[str] = Field(default=None, alias="userId")
    plan: Optional[str] = None
    payment_schedule: Optional[str] = Field(default=None, alias="paymentSchedule")


class StripePaymentIntentData(BaseModel):
    """Stripe payment intent object."""

    id: str
    amount: int
    amount_received: Optional[int] = None
    currency: Optional[str] = None
    customer: Optional[str] = None
    status: Optional[str] = None
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)


class StripePrice(BaseModel):
    id: str


class StripeSubscriptionItem(BaseModel):
    price: Optional[StripePrice] = None
    # Newer API versions moved the billing period onto the item
    current_period_end: Optional[int] = None


class StripeSubscriptionItems(BaseModel):
    data: List[StripeSubscriptionItem] = Field(default_factory=list)


class StripeSubscriptionData(BaseModel):
    """Stripe subscription object."""

    id: str
    customer: str
    status: str
    cancel_at_period_end: bool = False
    current_period_end: Optional[int] = None
    items: StripeSubscriptionItems = Field(default_factory=StripeSubscriptionItems)
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)

    def period_end_timestamp(self) -> Optional[int]:
        if self.current_period_end:
            return self.current_period_end
        for item in self.items.data:
            if item.current_period_end:
                return item.current_period_end
        return None

    def price_id(self) -> Optional[str]:
        for item in self.items.data:
            if item.price:
                return item.price.id
        return None

    def to_snapshot(self) -> SubscriptionSnapshot:
        """
        Build the snapshot applied to the company record.

        The plan comes from the price when it is one we sell, otherwise from
        the metadata written when the subscription was created. It stays None
        when neither resolves.
        """
        plan: Optional[SubscriptionPlan] = None
        period: Optional[BillingPeriod] = None

        resolved = plan_for_price_id(self.price_id())
        if resolved:
            plan, period = resolved
        else:
            if self.metadata.plan in SubscriptionPlan._value2member_map_:
                plan = SubscriptionPlan(self.metadata.plan)
            schedule = (self.metadata.payment_schedule or "").lower()
            if schedule in BillingPeriod._value2member_map_:
                period = BillingPeriod(schedule)

        period_end = self.period_end_timestamp()
        return SubscriptionSnapshot(
            subscription_id=self.id,
            customer_id=self.customer,
            status=self.status,
            cancel_at_period_end=self.cancel_at_period_end,
            plan=plan,
            period=period,
            current_period_end=(
                datetime.fromtimestamp(period_end, tz=timezone.utc)
                if period_end
                else None
            ),
            metadata=self.metadata.model_dump(exclude_none=True),
        )


class StripeInvoiceData(BaseModel):
    """Stripe invoice object."""

    id: str
    customer: str
    subscription: Optional[str] = None
    status: Optional[str] = None
    amount_due: Optional[int] = None
    currency: Optional[str] = None


class StripeEventData(BaseModel):
    """Stripe event data wrapper."""

    object: dict[str, Any]


class StripeWebhookPayload(BaseModel):
    """
    Complete Stripe webhook payload.

    ``type`` is kept as a plain string so event types we do not handle still
    parse and can be acknowledged.
    """

    id: str
    type: str
    data: StripeEventData
    created: Optional[int] = None
    livemode: bool = False
