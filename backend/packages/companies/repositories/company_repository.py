from typing import Optional
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from common.repositories.base import BaseRepository
from packages.companies.models.database.company import CompanyEntity
from packages.companies.models.domain.company import Company
from common.core.telemetry import trace_span


class CompanyRepository(BaseRepository[CompanyEntity, Company]):
    def __init__(self, db_session: Optional[AsyncSession] = None):
        super().__init__(CompanyEntity, Company, db_session)

    @trace_span
    async def get_by_stripe_customer_id(
        self, customer_id: str, for_update: bool = False
    ) -> Optional[Company]:
        """
        Resolve the company that owns a billing customer.

        With for_update the row stays locked until the enclosing transaction
        ends, so concurrent webhook deliveries for one customer apply in turn.
        """
        query = select(CompanyEntity).where(
            CompanyEntity.stripe_customer_id == customer_id,
            CompanyEntity.deleted == False,  # noqa
        )
        if for_update:
            query = query.with_for_update()
        async with self._get_session() as session:
            result = await session.execute(query)
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def set_stripe_customer_id_if_absent(
        self, company_id: int, customer_id: str
    ) -> Optional[str]:
        """
        Write the billing customer id only if none is stored yet.

        Returns the id stored after the write, which is the caller's id when
        it won and the previously stored id when another request got there
        first. None means the company does not exist.
        """
        async with self._get_session() as session:
            await session.execute(
                update(CompanyEntity)
                .where(
                    CompanyEntity.id == company_id,
                    CompanyEntity.stripe_customer_id.is_(None),
                )
                .values(stripe_customer_id=customer_id)
            )
            await session.flush()
            result = await session.execute(
                select(CompanyEntity.stripe_customer_id).where(
                    CompanyEntity.id == company_id
                )
            )
            return result.scalar_one_or_none()

    @trace_span
    async def get_for_update(self, company_id: int) -> Optional[Company]:
        """
        Get a company and lock its row until the enclosing transaction ends.

        Must be called inside transaction() so the lock covers the write that
        follows the read.
        """
        query = (
            select(CompanyEntity)
            .where(
                CompanyEntity.id == company_id,
                CompanyEntity.deleted == False,  # noqa
            )
            .with_for_update()
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None
