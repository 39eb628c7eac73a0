"""Seat and trial enforcement predicates over SubscriptionInfo."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from common.core.config import settings
from packages.billing.models.domain.enums import SubscriptionPlan, SubscriptionStatus
from packages.billing.models.domain.subscription import SubscriptionInfo


class EntitlementFlags(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    can_add_seat: bool
    show_upgrade_nudge: bool
    show_banner: bool
    lock_out: bool


def _renewal_due(info: SubscriptionInfo) -> bool:
    return (
        info.days_remaining is not None
        and info.days_remaining <= settings.renewal_warning_days
    )


def _seats_nearly_full(info: SubscriptionInfo) -> bool:
    return info.current_seats >= info.max_seats - 1


def can_add_seat(info: SubscriptionInfo) -> bool:
    return info.current_seats < info.max_seats


def should_show_upgrade_nudge(info: SubscriptionInfo) -> bool:
    return (
        info.tier == SubscriptionPlan.TRIAL
        or _renewal_due(info)
        or _seats_nearly_full(info)
    )


def should_lock_out(info: SubscriptionInfo) -> bool:
    return not info.is_active


def should_show_banner(info: SubscriptionInfo) -> bool:
    return (
        info.status == SubscriptionStatus.GRACE
        or _renewal_due(info)
        or _seats_nearly_full(info)
    )


def evaluate(info: SubscriptionInfo) -> EntitlementFlags:
    """Evaluate every predicate at once for API responses."""
    return EntitlementFlags(
        can_add_seat=can_add_seat(info),
        show_upgrade_nudge=should_show_upgrade_nudge(info),
        show_banner=should_show_banner(info),
        lock_out=should_lock_out(info),
    )
