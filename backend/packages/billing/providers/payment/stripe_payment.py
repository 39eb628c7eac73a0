"""
Stripe implementation of payment provider.
"""

import json
from typing import Any, Dict, List, Optional
import stripe

from common.core.config import settings
from common.core.telemetry import trace_span, get_logger
from packages.billing.exceptions import (
    BillingError,
    PaymentMethodDeclinedError,
    ProviderRequestError,
    ProviderUnavailableError,
    SignatureInvalidError,
    WebhookNotConfiguredError,
    WebhookPayloadInvalidError,
)
from packages.billing.models.domain.enums import BillingPeriod, SubscriptionPlan
from packages.billing.models.domain.stripe_webhooks import StripeSubscriptionData
from packages.billing.models.domain.subscription import (
    SetupIntentResult,
    SubscriptionSnapshot,
)
from packages.billing.providers.payment.interface import PaymentProviderInterface

logger = get_logger(__name__)

_UNAVAILABLE_ERRORS = (
    stripe.APIConnectionError,
    stripe.RateLimitError,
    stripe.APIError,
    stripe.AuthenticationError,
)


def _as_dict(obj: Any) -> Dict[str, Any]:
    """Plain-dict copy of a StripeObject (a dict subclass with nested StripeObjects)."""
    return json.loads(json.dumps(obj))


def _translate_error(e: stripe.StripeError) -> BillingError:
    details = {"stripe_code": getattr(e, "code", None)}
    if isinstance(e, _UNAVAILABLE_ERRORS):
        return ProviderUnavailableError(f"Stripe unavailable: {e}", details)
    if isinstance(e, stripe.CardError):
        return PaymentMethodDeclinedError(str(e.user_message or e), details)
    return ProviderRequestError(f"Stripe rejected request: {e}", details)


class StripePaymentProvider(PaymentProviderInterface):
    """Stripe-based payment implementation."""

    def __init__(self):
        """Initialize Stripe with API credentials."""
        stripe.api_key = settings.stripe_secret_key
        self.webhook_secret = settings.stripe_webhook_secret

    @trace_span
    async def create_customer(
        self,
        company_id: int,
        company_name: str,
        email: Optional[str] = None,
    ) -> str:
        """Create a Stripe customer."""
        try:
            customer = stripe.Customer.create(
                email=email,
                name=company_name,
                metadata={"companyId": str(company_id)},
            )

            logger.info(
                "Created Stripe customer",
                extra={"company_id": company_id, "customer_id": customer["id"]},
            )

            return customer["id"]

        except stripe.StripeError as e:
            logger.error(
                f"Failed to create Stripe customer: {str(e)}",
                extra={"company_id": company_id, "error": str(e)},
            )
            raise _translate_error(e) from e

    @trace_span
    async def create_setup_intent(
        self,
        customer_id: str,
        company_id: int,
        user_id: Optional[str] = None,
    ) -> SetupIntentResult:
        """Create a SetupIntent plus an ephemeral key for mobile SDKs."""
        metadata = {"companyId": str(company_id)}
        if user_id:
            metadata["userId"] = str(user_id)

        try:
            setup_intent = stripe.SetupIntent.create(
                customer=customer_id,
                automatic_payment_methods={"enabled": True},
                metadata=metadata,
            )
            ephemeral_key = stripe.EphemeralKey.create(
                customer=customer_id,
                stripe_version=settings.stripe_ephemeral_key_api_version,
            )

            logger.info(
                "Created Stripe setup intent",
                extra={"company_id": company_id, "customer_id": customer_id},
            )

            return SetupIntentResult(
                customer_id=customer_id,
                client_secret=setup_intent["client_secret"],
                ephemeral_key=ephemeral_key["secret"],
            )

        except stripe.StripeError as e:
            logger.error(
                f"Failed to create setup intent: {str(e)}",
                extra={"customer_id": customer_id, "error": str(e)},
            )
            raise _translate_error(e) from e

    @trace_span
    async def create_subscription(
        self,
        customer_id: str,
        price_id: str,
        company_id: int,
        plan: SubscriptionPlan,
        period: BillingPeriod,
        user_id: Optional[str] = None,
        payment_method_id: Optional[str] = None,
    ) -> SubscriptionSnapshot:
        """
        Create a Stripe subscription.

        error_if_incomplete makes Stripe fail the call when the first payment
        cannot be taken, so a created subscription is always a paid one.
        """
        params: Dict[str, Any] = {
            "customer": customer_id,
            "items": [{"price": price_id}],
            "payment_behavior": "error_if_incomplete",
            "metadata": {
                "companyId": str(company_id),
                "plan": plan.value,
                "paymentSchedule": period.value,
            },
        }
        if user_id:
            params["metadata"]["userId"] = str(user_id)
        if payment_method_id:
            params["default_payment_method"] = payment_method_id

        try:
            subscription = stripe.Subscription.create(**params)
        except stripe.StripeError as e:
            logger.error(
                f"Failed to create subscription: {str(e)}",
                extra={
                    "company_id": company_id,
                    "customer_id": customer_id,
                    "error": str(e),
                },
            )
            raise _translate_error(e) from e

        snapshot = StripeSubscriptionData.model_validate(
            _as_dict(subscription)
        ).to_snapshot()

        logger.info(
            "Created Stripe subscription",
            extra={
                "company_id": company_id,
                "subscription_id": snapshot.subscription_id,
                "stripe_status": snapshot.status,
            },
        )
        return snapshot

    @trace_span
    async def cancel_subscription(self, subscription_id: str) -> bool:
        """Cancel a Stripe subscription at the end of the current period."""
        try:
            stripe.Subscription.modify(subscription_id, cancel_at_period_end=True)

            logger.info(
                "Cancelled Stripe subscription at period end",
                extra={"subscription_id": subscription_id},
            )
            return True

        except stripe.InvalidRequestError as e:
            if getattr(e, "code", None) == "resource_missing":
                logger.warning(
                    "Stripe subscription not found",
                    extra={"subscription_id": subscription_id},
                )
                return False
            raise _translate_error(e) from e
        except stripe.StripeError as e:
            logger.error(
                f"Failed to cancel subscription: {str(e)}",
                extra={"subscription_id": subscription_id, "error": str(e)},
            )
            raise _translate_error(e) from e

    @trace_span
    async def list_active_subscription_ids(self, customer_id: str) -> List[str]:
        """List the customer's active Stripe subscriptions."""
        try:
            result = stripe.Subscription.list(
                customer=customer_id, status="active", limit=10
            )
        except stripe.StripeError as e:
            logger.error(
                f"Failed to list subscriptions: {str(e)}",
                extra={"customer_id": customer_id, "error": str(e)},
            )
            raise _translate_error(e) from e

        return [sub["id"] for sub in result["data"]]

    def verify_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """Verify the Stripe-Signature header over the raw body, then parse it."""
        if not self.webhook_secret:
            logger.error("Stripe webhook secret is not configured")
            raise WebhookNotConfiguredError("Webhook secret not configured")
        if not signature:
            raise SignatureInvalidError("Missing signature header")

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SignatureInvalidError("Payload is not valid UTF-8") from e

        try:
            stripe.WebhookSignature.verify_header(
                body,
                signature,
                self.webhook_secret,
                tolerance=settings.stripe_webhook_tolerance_seconds,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Invalid Stripe webhook signature: {e}")
            raise SignatureInvalidError("Invalid signature") from e

        try:
            event = json.loads(body)
        except ValueError as e:
            raise WebhookPayloadInvalidError("Payload is not valid JSON") from e
        if not isinstance(event, dict):
            raise WebhookPayloadInvalidError("Payload is not a JSON object")
        return event

    @trace_span
    async def health_check(self) -> bool:
        """Check Stripe health."""
        try:
            # Try to retrieve account to verify API key works
            stripe.Account.retrieve()
            return True
        except stripe.StripeError as e:
            logger.error(f"Payment health check failed: {e}")
            return False
