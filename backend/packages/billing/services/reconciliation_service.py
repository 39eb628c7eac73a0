"""
Service for reconciling provider state into company records.

Every handler here is safe to run more than once for the same event and in
any order relative to other events: payments are deduplicated on the
provider's payment reference, and subscription snapshots overwrite the
company's subscription fields wholesale instead of applying deltas.
Events that cannot be tied to a company are logged and acknowledged.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError

from common.core.telemetry import trace_span, get_logger
from common.db.scoped import transaction
from packages.billing.models.domain.enums import SubscriptionStatus
from packages.billing.models.domain.payment import Payment, PaymentCreateModel
from packages.billing.models.domain.stripe_webhooks import (
    StripeInvoiceData,
    StripePaymentIntentData,
    StripeSubscriptionStatus,
)
from packages.billing.models.domain.subscription import SubscriptionSnapshot
from packages.billing.pricing import to_major_units
from packages.billing.repositories.payment_repository import PaymentRepository
from packages.companies.models.domain.company import Company, CompanyUpdateModel
from packages.companies.repositories.company_repository import CompanyRepository

logger = get_logger(__name__)


def map_stripe_status(snapshot: SubscriptionSnapshot) -> SubscriptionStatus:
    """Map a provider subscription state onto the local status."""
    if snapshot.cancel_at_period_end:
        return SubscriptionStatus.CANCELLED
    if snapshot.status == StripeSubscriptionStatus.ACTIVE.value:
        return SubscriptionStatus.ACTIVE
    if snapshot.status == StripeSubscriptionStatus.TRIALING.value:
        return SubscriptionStatus.TRIAL
    if snapshot.status == StripeSubscriptionStatus.PAST_DUE.value:
        return SubscriptionStatus.GRACE
    return SubscriptionStatus.CANCELLED


def _is_stale(company: Company, subscription_id: Optional[str]) -> bool:
    # Events for a subscription other than the stored one belong to a
    # replaced subscription
    return bool(
        subscription_id
        and company.subscription_ids
        and subscription_id not in company.subscription_ids
    )


class ReconciliationService:
    """Applies provider events to company and payment records."""

    def __init__(self):
        self.company_repo = CompanyRepository()
        self.payment_repo = PaymentRepository()

    @trace_span
    async def record_payment_captured(
        self, intent: StripePaymentIntentData
    ) -> Optional[Payment]:
        """
        Record a captured payment exactly once.

        Returns:
            The payment row (new or previously recorded), or None when the
            event carries no usable company/invoice reference
        """
        metadata = intent.metadata
        if not metadata.company_id or not metadata.invoice_id:
            logger.info(
                "Payment without invoice metadata, ignoring",
                extra={"payment_intent_id": intent.id},
            )
            return None

        try:
            company_id = int(metadata.company_id)
        except ValueError:
            logger.warning(
                "Payment metadata has a malformed company id",
                extra={"payment_intent_id": intent.id, "company_ref": metadata.company_id},
            )
            return None

        company = await self.company_repo.get(company_id)
        if not company:
            logger.warning(
                "Payment for unknown company, ignoring",
                extra={"payment_intent_id": intent.id, "company_id": company_id},
            )
            return None

        existing = await self.payment_repo.get_by_external_ref(intent.id)
        if existing:
            logger.info(
                "Payment already recorded",
                extra={"payment_intent_id": intent.id, "payment_id": existing.id},
            )
            return existing

        create_model = PaymentCreateModel(
            company_id=company_id,
            invoice_ref=metadata.invoice_id,
            client_ref=metadata.client_id,
            external_payment_ref=intent.id,
            amount=to_major_units(intent.amount, intent.currency),
            currency=intent.currency,
        )
        try:
            payment = await self.payment_repo.create(create_model)
        except IntegrityError:
            # A concurrent delivery of the same event won the insert
            logger.info(
                "Payment recorded concurrently",
                extra={"payment_intent_id": intent.id},
            )
            return await self.payment_repo.get_by_external_ref(intent.id)

        logger.info(
            "Recorded payment",
            extra={
                "payment_intent_id": intent.id,
                "company_id": company_id,
                "invoice_ref": metadata.invoice_id,
                "amount": str(payment.amount),
            },
        )
        return payment

    @trace_span
    async def apply_subscription_snapshot(
        self, snapshot: SubscriptionSnapshot, is_new_subscription: bool = False
    ) -> Optional[Company]:
        """
        Overwrite the company's subscription fields from a provider snapshot.

        Used both by webhooks and by the complete-subscription command, so a
        webhook that corroborates a command re-applies the same state.

        Args:
            snapshot: Subscription state reported by the provider
            is_new_subscription: True for freshly created subscriptions. Only
                these may replace a subscription the company no longer holds.

        Returns:
            The updated company, or None if the event was not applied
        """
        async with transaction():
            company = await self.company_repo.get_by_stripe_customer_id(
                snapshot.customer_id, for_update=True
            )
            if not company:
                logger.warning(
                    "Subscription event for unknown customer, ignoring",
                    extra={
                        "customer_id": snapshot.customer_id,
                        "subscription_id": snapshot.subscription_id,
                    },
                )
                return None

            if snapshot.subscription_id in company.ended_subscription_ids:
                logger.info(
                    "Ignoring event for a subscription that has ended",
                    extra={
                        "company_id": company.id,
                        "subscription_id": snapshot.subscription_id,
                    },
                )
                return None

            if not is_new_subscription and snapshot.subscription_id not in (
                company.subscription_ids
            ):
                if (
                    company.subscription_ids
                    or company.subscription_status == SubscriptionStatus.CANCELLED
                ):
                    logger.info(
                        "Ignoring update for a subscription the company no longer holds",
                        extra={
                            "company_id": company.id,
                            "subscription_id": snapshot.subscription_id,
                        },
                    )
                    return None

            status = map_stripe_status(snapshot)
            update = CompanyUpdateModel(
                subscription_status=status,
                subscription_ids=[snapshot.subscription_id],
            )
            if snapshot.plan:
                update.subscription_plan = snapshot.plan
                update.max_seats = snapshot.plan.max_seats
            else:
                logger.warning(
                    "Could not resolve plan for subscription, keeping stored plan",
                    extra={
                        "company_id": company.id,
                        "subscription_id": snapshot.subscription_id,
                    },
                )
            if snapshot.period:
                update.subscription_period = snapshot.period
            if snapshot.current_period_end:
                update.subscription_end = snapshot.current_period_end

            updated = await self.company_repo.update(company.id, update)

        logger.info(
            "Applied subscription snapshot",
            extra={
                "company_id": company.id,
                "subscription_id": snapshot.subscription_id,
                "status": status.value,
                "plan": snapshot.plan.value if snapshot.plan else None,
            },
        )
        return updated

    @trace_span
    async def apply_subscription_deleted(
        self, snapshot: SubscriptionSnapshot
    ) -> Optional[Company]:
        """
        Mark the company cancelled and forget the deleted subscription.

        The subscription id is remembered as ended, so a redelivered created
        or updated event for it can never reactivate the company.
        """
        async with transaction():
            company = await self.company_repo.get_by_stripe_customer_id(
                snapshot.customer_id, for_update=True
            )
            if not company:
                logger.warning(
                    "Subscription deletion for unknown customer, ignoring",
                    extra={"customer_id": snapshot.customer_id},
                )
                return None

            ended = company.ended_subscription_ids
            if snapshot.subscription_id not in ended:
                ended = [*ended, snapshot.subscription_id]

            if _is_stale(company, snapshot.subscription_id):
                logger.info(
                    "Ignoring deletion of a replaced subscription",
                    extra={
                        "company_id": company.id,
                        "subscription_id": snapshot.subscription_id,
                    },
                )
                await self.company_repo.update(
                    company.id, CompanyUpdateModel(ended_subscription_ids=ended)
                )
                return None

            updated = await self.company_repo.update(
                company.id,
                CompanyUpdateModel(
                    subscription_status=SubscriptionStatus.CANCELLED,
                    subscription_ids=[],
                    ended_subscription_ids=ended,
                ),
            )

        logger.info(
            "Subscription deleted",
            extra={"company_id": company.id, "subscription_id": snapshot.subscription_id},
        )
        return updated

    @trace_span
    async def apply_payment_failed(
        self, invoice: StripeInvoiceData
    ) -> Optional[Company]:
        """Move the company into grace. Plan and period end are left alone."""
        async with transaction():
            company = await self.company_repo.get_by_stripe_customer_id(
                invoice.customer, for_update=True
            )
            if not company:
                logger.warning(
                    "Payment failure for unknown customer, ignoring",
                    extra={"customer_id": invoice.customer, "invoice_id": invoice.id},
                )
                return None
            if _is_stale(company, invoice.subscription):
                logger.info(
                    "Ignoring payment failure of a replaced subscription",
                    extra={"company_id": company.id, "invoice_id": invoice.id},
                )
                return None

            updated = await self.company_repo.update(
                company.id,
                CompanyUpdateModel(subscription_status=SubscriptionStatus.GRACE),
            )

        logger.info(
            "Payment failed, company in grace",
            extra={"company_id": company.id, "invoice_id": invoice.id},
        )
        return updated
