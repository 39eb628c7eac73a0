"""
Price lookup between local plans and provider price IDs.

Price IDs come from settings so each environment can point at its own
Stripe products without a code change. Provider amounts arrive in the
currency's minor unit and are converted here as well.
"""

from decimal import Decimal
from typing import Dict, Optional, Tuple

from common.core.config import settings
from packages.billing.exceptions import UnknownPlanError
from packages.billing.models.domain.enums import BillingPeriod, SubscriptionPlan

# Stripe currencies whose minor unit is not a hundredth
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
        "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
    }
)
THREE_DECIMAL_CURRENCIES = frozenset({"bhd", "jod", "kwd", "omr", "tnd"})


def get_price_table() -> Dict[Tuple[SubscriptionPlan, BillingPeriod], str]:
    """Configured price IDs keyed by (plan, period). Unconfigured entries are omitted."""
    table = {
        (SubscriptionPlan.STARTER, BillingPeriod.MONTHLY): settings.stripe_price_starter_monthly,
        (SubscriptionPlan.STARTER, BillingPeriod.ANNUAL): settings.stripe_price_starter_annual,
        (SubscriptionPlan.TEAM, BillingPeriod.MONTHLY): settings.stripe_price_team_monthly,
        (SubscriptionPlan.TEAM, BillingPeriod.ANNUAL): settings.stripe_price_team_annual,
        (SubscriptionPlan.BUSINESS, BillingPeriod.MONTHLY): settings.stripe_price_business_monthly,
        (SubscriptionPlan.BUSINESS, BillingPeriod.ANNUAL): settings.stripe_price_business_annual,
    }
    return {key: price_id for key, price_id in table.items() if price_id}


def resolve_price_id(plan: SubscriptionPlan, period: BillingPeriod) -> str:
    """
    Look up the provider price for a plan and billing period.

    Raises:
        UnknownPlanError: If no price is configured for the pair
    """
    price_id = get_price_table().get((plan, period))
    if not price_id:
        raise UnknownPlanError(
            f"No price configured for plan '{plan.value}' billed {period.value}",
            {"plan": plan.value, "period": period.value},
        )
    return price_id


def plan_for_price_id(
    price_id: Optional[str],
) -> Optional[Tuple[SubscriptionPlan, BillingPeriod]]:
    """Reverse lookup used when a provider subscription only tells us its price."""
    if not price_id:
        return None
    for key, configured in get_price_table().items():
        if configured == price_id:
            return key
    return None


def currency_exponent(currency: Optional[str]) -> int:
    """Number of minor-unit digits Stripe uses for a currency."""
    code = (currency or "").lower()
    if code in ZERO_DECIMAL_CURRENCIES:
        return 0
    if code in THREE_DECIMAL_CURRENCIES:
        return 3
    return 2


def to_major_units(amount: int, currency: Optional[str]) -> Decimal:
    """Convert a provider amount in minor units, e.g. 14000 usd -> 140.00."""
    return Decimal(amount).scaleb(-currency_exponent(currency))
