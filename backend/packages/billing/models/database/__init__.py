"""Database models for billing."""

from packages.billing.models.database.payment import PaymentEntity

__all__ = [
    "PaymentEntity",
]
