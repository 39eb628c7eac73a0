"""
Entitlement calculation.

Turns a company record into the SubscriptionInfo every access decision is
made from. Pure and total: no I/O, no exceptions, and the same record and
clock always give the same answer.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from common.core.config import settings
from packages.billing.models.domain.enums import SubscriptionPlan, SubscriptionStatus
from packages.billing.models.domain.subscription import SubscriptionInfo
from packages.companies.models.domain.company import Company

_ONE_DAY = timedelta(days=1)


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps (e.g. from SQLite) are stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def default_subscription_info() -> SubscriptionInfo:
    """Permissive trial state used before a company record is available."""
    return SubscriptionInfo(
        tier=SubscriptionPlan.TRIAL,
        status=SubscriptionStatus.TRIAL,
        max_seats=settings.trial_max_seats,
        current_seats=0,
        days_remaining=settings.trial_period_days,
        is_active=True,
    )


def days_until(end: datetime, now: datetime) -> int:
    """Whole days left until ``end``, rounded up and never negative."""
    remaining = (_as_utc(end) - _as_utc(now)) / _ONE_DAY
    return max(0, math.ceil(remaining))


def get_subscription_info(
    company: Optional[Company], now: Optional[datetime] = None
) -> SubscriptionInfo:
    """
    Derive the current entitlement of a company.

    Args:
        company: The company record, or None when it has not been loaded
        now: Clock override for callers that need a fixed instant

    Returns:
        SubscriptionInfo for the company at ``now``
    """
    if company is None:
        return default_subscription_info()

    now = now or datetime.now(timezone.utc)
    tier = company.subscription_plan or SubscriptionPlan.TRIAL
    status = company.subscription_status or SubscriptionStatus.TRIAL
    max_seats = company.max_seats or tier.max_seats

    days_remaining = None
    trial_ends_at = None
    if tier == SubscriptionPlan.TRIAL and company.subscription_end:
        trial_ends_at = _as_utc(company.subscription_end)
        days_remaining = days_until(trial_ends_at, now)

    # A running trial countdown keeps access even if the stored status is stale
    is_active = status.has_access() or (
        tier == SubscriptionPlan.TRIAL
        and days_remaining is not None
        and days_remaining > 0
    )

    return SubscriptionInfo(
        tier=tier,
        status=status,
        max_seats=max_seats,
        current_seats=len(company.seated_member_ids),
        trial_ends_at=trial_ends_at,
        days_remaining=days_remaining,
        is_active=is_active,
    )
