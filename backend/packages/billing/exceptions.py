"""Billing errors raised by the entitlement engine and its adapters."""

from common.core.exceptions import AppException, NotFoundError, ValidationError


class BillingError(AppException):
    """Base class for billing failures."""

    code = "billing_error"
    # Whether the caller (or the provider's webhook redelivery) may retry
    retryable = False


class SignatureInvalidError(BillingError):
    """Webhook signature missing, malformed or not matching the payload."""

    code = "signature_invalid"


class WebhookPayloadInvalidError(BillingError):
    """Verified webhook body could not be parsed into an event."""

    code = "webhook_payload_invalid"


class WebhookNotConfiguredError(BillingError):
    """No webhook secret is configured, so no delivery can be verified."""

    code = "webhook_not_configured"


class UnknownPlanError(BillingError, ValidationError):
    """No price is configured for the requested plan and billing period."""

    code = "unknown_plan"


class UnknownActionError(BillingError, ValidationError):
    code = "unknown_action"


class CompanyNotFoundError(BillingError, NotFoundError):
    code = "company_not_found"


class SubscriptionNotFoundError(BillingError, NotFoundError):
    """No billing customer or no active subscription to act on."""

    code = "subscription_not_found"


class SeatLimitReachedError(BillingError):
    code = "seat_limit_reached"


class PaymentMethodDeclinedError(BillingError):
    """The provider declined the payment method for a new subscription."""

    code = "payment_method_declined"


class ProviderRequestError(BillingError):
    """The provider rejected a request as invalid."""

    code = "provider_request_rejected"


class ProviderUnavailableError(BillingError):
    """The billing provider could not be reached or returned a server error."""

    code = "provider_unavailable"
    retryable = True
