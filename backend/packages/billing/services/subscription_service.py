"""
Service for user-initiated subscription commands.
"""

from typing import Any, Dict, Optional

from common.core.telemetry import trace_span, get_logger
from common.db.context import readonly
from packages.billing.entitlements import get_subscription_info
from packages.billing.exceptions import (
    SubscriptionNotFoundError,
    UnknownActionError,
    UnknownPlanError,
)
from packages.billing.models.domain.enums import (
    BillingPeriod,
    SubscriptionAction,
    SubscriptionPlan,
    SubscriptionStatus,
)
from packages.billing.models.domain.subscription import (
    SetupIntentResult,
    SubscriptionInfo,
)
from packages.billing.pricing import resolve_price_id
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.services.reconciliation_service import ReconciliationService
from packages.companies.models.domain.company import Company, CompanyUpdateModel
from packages.companies.services.company_service import CompanyService

logger = get_logger(__name__)


class SubscriptionService:
    """
    Subscription commands: billing customer, setup intent, subscribe, cancel.

    Provider calls are made outside any database transaction. Results are
    written back through the same reconciliation path webhooks use.
    """

    def __init__(self):
        self.company_service = CompanyService()
        self.company_repo = self.company_service.company_repo
        self.reconciliation = ReconciliationService()
        self.payment = get_payment_provider()

    @trace_span
    async def ensure_billing_customer(self, company_id: int) -> str:
        """
        Return the company's billing customer, creating it on first use.

        Two concurrent first calls may both create a provider customer; the
        conditional write keeps the first one stored and the other is left
        orphaned in the provider.

        Raises:
            CompanyNotFoundError: If the company doesn't exist
        """
        company = await self.company_service.require_company(company_id)
        if company.stripe_customer_id:
            return company.stripe_customer_id

        customer_id = await self.payment.create_customer(
            company_id=company.id,
            company_name=company.name,
            email=company.email,
        )
        stored = await self.company_repo.set_stripe_customer_id_if_absent(
            company_id, customer_id
        )
        if stored != customer_id:
            logger.warning(
                "Billing customer created concurrently, keeping stored customer",
                extra={
                    "company_id": company_id,
                    "customer_id": stored,
                    "orphaned_customer_id": customer_id,
                },
            )
        else:
            logger.info(
                "Created billing customer",
                extra={"company_id": company_id, "customer_id": customer_id},
            )
        return stored

    @trace_span
    async def create_setup_intent(
        self, company_id: int, user_id: Optional[str] = None
    ) -> SetupIntentResult:
        """Prepare client-side payment method collection."""
        customer_id = await self.ensure_billing_customer(company_id)
        return await self.payment.create_setup_intent(
            customer_id=customer_id, company_id=company_id, user_id=user_id
        )

    @trace_span
    async def complete_subscription(
        self,
        company_id: int,
        plan: SubscriptionPlan,
        period: BillingPeriod,
        payment_method_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Company:
        """
        Subscribe the company to a paid plan and apply the result.

        Raises:
            UnknownPlanError: If the plan/period has no configured price
            CompanyNotFoundError: If the company doesn't exist
        """
        # Validate before touching the provider
        price_id = resolve_price_id(plan, period)

        customer_id = await self.ensure_billing_customer(company_id)
        snapshot = await self.payment.create_subscription(
            customer_id=customer_id,
            price_id=price_id,
            company_id=company_id,
            plan=plan,
            period=period,
            user_id=user_id,
            payment_method_id=payment_method_id,
        )
        # The provider may not echo our price back in a form we can map
        if snapshot.plan is None:
            snapshot = snapshot.model_copy(update={"plan": plan, "period": period})

        company = await self.reconciliation.apply_subscription_snapshot(
            snapshot, is_new_subscription=True
        )
        logger.info(
            "Subscription completed",
            extra={
                "company_id": company_id,
                "subscription_id": snapshot.subscription_id,
                "plan": plan.value,
                "period": period.value,
            },
        )
        return company or await self.company_service.require_company(company_id)

    @trace_span
    async def cancel_subscription(self, company_id: int) -> Company:
        """
        Cancel the company's subscription at the end of the billing period.

        Every subscription the company holds is cancelled: the stored ones and
        any other active subscription the provider lists for the customer,
        so a duplicate left behind by provider-side churn stops billing too.
        The local status flips to cancelled right away and later webhooks
        overwrite it as usual.

        Raises:
            CompanyNotFoundError: If the company doesn't exist
            SubscriptionNotFoundError: If there is nothing to cancel
        """
        company = await self.company_service.require_company(company_id)
        if not company.stripe_customer_id:
            raise SubscriptionNotFoundError(
                "Company has no billing customer", {"company_id": company_id}
            )

        cancelled_ids = []
        for stored_id in company.subscription_ids:
            if await self.payment.cancel_subscription(stored_id):
                cancelled_ids.append(stored_id)
            else:
                logger.warning(
                    "Stored subscription unknown to provider",
                    extra={"company_id": company_id, "subscription_id": stored_id},
                )

        active_ids = await self.payment.list_active_subscription_ids(
            company.stripe_customer_id
        )
        for active_id in active_ids:
            if active_id in company.subscription_ids:
                continue
            if await self.payment.cancel_subscription(active_id):
                cancelled_ids.append(active_id)

        if not cancelled_ids:
            raise SubscriptionNotFoundError(
                "No active subscription to cancel", {"company_id": company_id}
            )

        updated = await self.company_repo.update(
            company_id,
            CompanyUpdateModel(
                subscription_status=SubscriptionStatus.CANCELLED,
                subscription_ids=cancelled_ids,
            ),
        )
        logger.info(
            "Subscription cancelled at period end",
            extra={"company_id": company_id, "subscription_ids": cancelled_ids},
        )
        return updated

    @readonly
    @trace_span
    async def get_subscription_info(self, company_id: int) -> SubscriptionInfo:
        company = await self.company_service.require_company(company_id)
        return get_subscription_info(company)

    @trace_span
    async def dispatch(
        self,
        action: str,
        company_id: int,
        plan: Optional[str] = None,
        period: Optional[str] = None,
        payment_method_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Run a subscription command by name.

        Raises:
            UnknownActionError: If the action isn't one of SubscriptionAction
            UnknownPlanError: If plan/period are missing or not sold
        """
        try:
            command = SubscriptionAction(action)
        except ValueError:
            raise UnknownActionError(
                f"Unknown action '{action}'", {"action": action}
            ) from None

        if command == SubscriptionAction.SETUP_INTENT:
            result = await self.create_setup_intent(company_id, user_id=user_id)
            return {
                "client_secret": result.client_secret,
                "ephemeral_key": result.ephemeral_key,
                "customer_id": result.customer_id,
            }

        if command == SubscriptionAction.COMPLETE:
            try:
                plan_value = SubscriptionPlan(plan)
                period_value = BillingPeriod((period or "").lower())
            except ValueError:
                raise UnknownPlanError(
                    f"Unknown plan '{plan}' or period '{period}'",
                    {"plan": plan, "period": period},
                ) from None
            company = await self.complete_subscription(
                company_id,
                plan_value,
                period_value,
                payment_method_id=payment_method_id,
                user_id=user_id,
            )
            return {
                "success": True,
                "subscription_id": (
                    company.subscription_ids[0] if company.subscription_ids else None
                ),
            }

        await self.cancel_subscription(company_id)
        return {"success": True}
