"""
Repository for captured payments.
"""

from typing import Optional
from sqlalchemy import select

from common.repositories.base import BaseRepository
from packages.billing.models.database.payment import PaymentEntity
from packages.billing.models.domain.payment import Payment
from common.core.telemetry import trace_span


class PaymentRepository(BaseRepository[PaymentEntity, Payment]):
    """Repository for payment records. Rows are only ever inserted."""

    def __init__(self):
        super().__init__(PaymentEntity, Payment)

    @trace_span
    async def get_by_external_ref(self, external_payment_ref: str) -> Optional[Payment]:
        """Get the payment recorded for a provider payment reference."""
        async with self._get_session() as session:
            result = await session.execute(
                select(PaymentEntity).where(
                    PaymentEntity.external_payment_ref == external_payment_ref
                )
            )
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None
