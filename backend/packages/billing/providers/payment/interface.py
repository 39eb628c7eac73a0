"""
Interface for payment providers.

Abstracts the billing provider (customers, subscriptions, webhook
authentication) away from the entitlement engine.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from packages.billing.models.domain.enums import BillingPeriod, SubscriptionPlan
from packages.billing.models.domain.subscription import (
    SetupIntentResult,
    SubscriptionSnapshot,
)


class PaymentProviderInterface(ABC):
    """Abstract interface for payment providers."""

    @abstractmethod
    async def create_customer(
        self,
        company_id: int,
        company_name: str,
        email: Optional[str] = None,
    ) -> str:
        """
        Create a customer in the payment provider.

        Args:
            company_id: Internal company ID
            company_name: Company name
            email: Billing email

        Returns:
            customer_id: Payment provider customer ID
        """
        pass

    @abstractmethod
    async def create_setup_intent(
        self,
        customer_id: str,
        company_id: int,
        user_id: Optional[str] = None,
    ) -> SetupIntentResult:
        """
        Start collecting a payment method for a customer.

        Returns:
            Client secret for the setup intent plus an ephemeral key for
            mobile SDKs
        """
        pass

    @abstractmethod
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
        Subscribe a customer to a price.

        Returns:
            Snapshot of the subscription as the provider created it
        """
        pass

    @abstractmethod
    async def cancel_subscription(self, subscription_id: str) -> bool:
        """
        Cancel a subscription at the end of its current period.

        Returns:
            True if cancelled, False if the provider has no such subscription
        """
        pass

    @abstractmethod
    async def list_active_subscription_ids(self, customer_id: str) -> List[str]:
        """Active subscription IDs of a customer, newest first."""
        pass

    @abstractmethod
    def verify_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Authenticate a webhook body and parse it.

        The signature is checked over the raw bytes before any parsing.

        Raises:
            WebhookNotConfiguredError: If no webhook secret is configured
            SignatureInvalidError: If the signature does not match
            WebhookPayloadInvalidError: If the verified body is not JSON
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the payment backend is available and healthy.

        Returns:
            True if healthy, False otherwise
        """
        pass
