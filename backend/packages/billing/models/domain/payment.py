"""
Domain models for recorded payments.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel


class Payment(BaseModel):
    """A captured external payment. Written once, never mutated."""

    id: int
    company_id: int
    invoice_ref: str
    client_ref: Optional[str] = None
    external_payment_ref: str
    amount: Decimal
    currency: Optional[str] = None
    recorded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentCreateModel(BaseModel):
    """Model for recording a payment."""

    company_id: int
    invoice_ref: str
    client_ref: Optional[str] = None
    external_payment_ref: str
    amount: Decimal
    currency: Optional[str] = None
