"""
Database entity for captured payments.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType


class PaymentEntity(Base):
    """
    One row per captured external payment.

    external_payment_ref is the dedup key: the unique constraint is what makes
    replayed payment webhooks a no-op.
    """

    __tablename__ = "payments"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    company_id = Column(
        BigIntegerType,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    invoice_ref = Column(String(255), nullable=False, index=True)
    client_ref = Column(String(255), nullable=True)
    external_payment_ref = Column(String(255), nullable=False, unique=True, index=True)

    # Major currency units (provider minor units / 100)
    amount = Column(Numeric(12, 3), nullable=False)
    currency = Column(String(8), nullable=True)

    recorded_at = Column(DateTime(timezone=True), server_default=func.now())
