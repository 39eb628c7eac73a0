"""Billing services."""

from packages.billing.services.reconciliation_service import ReconciliationService
from packages.billing.services.subscription_service import SubscriptionService

__all__ = [
    "ReconciliationService",
    "SubscriptionService",
]
