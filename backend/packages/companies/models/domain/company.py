from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from packages.billing.models.domain.enums import (
    BillingPeriod,
    SubscriptionPlan,
    SubscriptionStatus,
)


class Company(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    subscription_ids: List[str] = Field(default_factory=list)
    ended_subscription_ids: List[str] = Field(default_factory=list)
    subscription_status: Optional[SubscriptionStatus] = None
    subscription_plan: Optional[SubscriptionPlan] = None
    subscription_period: Optional[BillingPeriod] = None
    subscription_end: Optional[datetime] = None
    trial_start_date: Optional[datetime] = None
    max_seats: int = 10
    seated_member_ids: List[str] = Field(default_factory=list)
    deleted: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CompanyCreateModel(BaseModel):
    """Model for creating a new company."""

    name: str
    email: Optional[str] = None
    subscription_status: Optional[SubscriptionStatus] = None
    subscription_plan: Optional[SubscriptionPlan] = None
    subscription_end: Optional[datetime] = None
    trial_start_date: Optional[datetime] = None
    max_seats: Optional[int] = None


class CompanyUpdateModel(BaseModel):
    """Model for updating a company. Only explicitly set fields are written."""

    name: Optional[str] = None
    email: Optional[str] = None
    subscription_ids: Optional[List[str]] = None
    ended_subscription_ids: Optional[List[str]] = None
    subscription_status: Optional[SubscriptionStatus] = None
    subscription_plan: Optional[SubscriptionPlan] = None
    subscription_period: Optional[BillingPeriod] = None
    subscription_end: Optional[datetime] = None
    max_seats: Optional[int] = None
    seated_member_ids: Optional[List[str]] = None
