"""
Stripe webhook handling.

Authenticates the raw request body, parses it into a typed event and routes
it to the reconciliation handler for its type:
- payment_intent.succeeded -> record payment
- customer.subscription.created/updated -> apply subscription snapshot
- customer.subscription.deleted -> cancel
- invoice.payment_failed -> grace

Event types without a handler, and verified events whose body cannot be
parsed, are acknowledged so Stripe stops redelivering them.
"""

from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import Request, HTTPException, status
from pydantic import ValidationError

from common.core.telemetry import get_logger, log_span_event, trace_span
from packages.billing.exceptions import (
    ProviderUnavailableError,
    SignatureInvalidError,
    WebhookNotConfiguredError,
    WebhookPayloadInvalidError,
)
from packages.billing.models.domain.stripe_webhooks import (
    StripeInvoiceData,
    StripePaymentIntentData,
    StripeSubscriptionData,
    StripeWebhookPayload,
    StripeWebhookType,
)
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.services.reconciliation_service import ReconciliationService

logger = get_logger(__name__)

EventHandler = Callable[[Dict[str, Any]], Awaitable[None]]


class StripeWebhookProcessor:
    """Verifies, parses and dispatches Stripe webhook events."""

    def __init__(
        self,
        provider: Optional[PaymentProviderInterface] = None,
        reconciliation: Optional[ReconciliationService] = None,
    ):
        self.provider = provider or get_payment_provider()
        self.reconciliation = reconciliation or ReconciliationService()
        self.handlers: Dict[str, EventHandler] = {
            StripeWebhookType.PAYMENT_INTENT_SUCCEEDED.value: self._handle_payment_succeeded,
            StripeWebhookType.SUBSCRIPTION_CREATED.value: self._handle_subscription_created,
            StripeWebhookType.SUBSCRIPTION_UPDATED.value: self._handle_subscription_updated,
            StripeWebhookType.SUBSCRIPTION_DELETED.value: self._handle_subscription_deleted,
            StripeWebhookType.INVOICE_PAYMENT_FAILED.value: self._handle_payment_failed,
        }

    @trace_span
    async def process_event(
        self, payload: bytes, signature: Optional[str]
    ) -> Dict[str, str]:
        """
        Process one webhook delivery.

        Returns:
            {"status": "success"} when handled, {"status": "ignored"} for
            event types without a handler and for verified bodies that do
            not parse

        Raises:
            SignatureInvalidError: If the signature is missing or wrong
            WebhookNotConfiguredError: If no webhook secret is configured
        """
        if not signature:
            raise SignatureInvalidError("Missing stripe-signature header")

        try:
            event = self.provider.verify_event(payload, signature)
        except WebhookPayloadInvalidError as e:
            logger.error(f"Verified Stripe webhook is not an event: {e.message}")
            return {"status": "ignored"}

        try:
            parsed = StripeWebhookPayload.model_validate(event)
        except ValidationError as e:
            logger.error(
                "Invalid Stripe webhook payload",
                extra={"validation_errors": e.errors()},
            )
            return {"status": "ignored"}

        logger.info(
            f"Received Stripe webhook: {parsed.type}",
            extra={
                "event_id": parsed.id,
                "event_type": parsed.type,
                "livemode": parsed.livemode,
            },
        )

        handler = self.handlers.get(parsed.type)
        if handler is None:
            log_span_event(
                "Unhandled Stripe webhook type",
                {"event_id": parsed.id, "event_type": parsed.type},
            )
            return {"status": "ignored"}

        try:
            await handler(parsed.data.object)
        except ValidationError as e:
            logger.error(
                f"Invalid {parsed.type} object",
                extra={"event_id": parsed.id, "validation_errors": e.errors()},
            )
            return {"status": "ignored"}

        return {"status": "success"}

    async def _handle_payment_succeeded(self, data: Dict[str, Any]) -> None:
        intent = StripePaymentIntentData.model_validate(data)
        await self.reconciliation.record_payment_captured(intent)

    async def _handle_subscription_created(self, data: Dict[str, Any]) -> None:
        snapshot = StripeSubscriptionData.model_validate(data).to_snapshot()
        await self.reconciliation.apply_subscription_snapshot(
            snapshot, is_new_subscription=True
        )

    async def _handle_subscription_updated(self, data: Dict[str, Any]) -> None:
        snapshot = StripeSubscriptionData.model_validate(data).to_snapshot()
        await self.reconciliation.apply_subscription_snapshot(
            snapshot, is_new_subscription=False
        )

    async def _handle_subscription_deleted(self, data: Dict[str, Any]) -> None:
        snapshot = StripeSubscriptionData.model_validate(data).to_snapshot()
        await self.reconciliation.apply_subscription_deleted(snapshot)

    async def _handle_payment_failed(self, data: Dict[str, Any]) -> None:
        invoice = StripeInvoiceData.model_validate(data)
        await self.reconciliation.apply_payment_failed(invoice)


def get_webhook_processor() -> StripeWebhookProcessor:
    return StripeWebhookProcessor()


async def handle_stripe_webhook(
    request: Request, processor: StripeWebhookProcessor
) -> Dict[str, str]:
    """
    Handle incoming webhook from Stripe.

    400 only for deliveries that fail signature verification, 503/500 for
    failures Stripe should retry, 200 otherwise.
    """
    payload_bytes = await request.body()
    sig_header = request.headers.get("stripe-signature")

    try:
        return await processor.process_event(payload_bytes, sig_header)
    except SignatureInvalidError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except WebhookNotConfiguredError as e:
        logger.error(f"Cannot verify Stripe webhook: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
        )
    except ProviderUnavailableError as e:
        logger.error(f"Billing provider unavailable during webhook: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message
        )
    except Exception as e:
        logger.error(
            f"Failed to process Stripe webhook: {str(e)}", extra={"error": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed",
        )
