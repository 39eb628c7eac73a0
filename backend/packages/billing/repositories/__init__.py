"""Billing repositories."""

from packages.billing.repositories.payment_repository import PaymentRepository

__all__ = [
    "PaymentRepository",
]
