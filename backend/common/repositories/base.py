from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, Dict, Generic, TypeVar, Optional, List, Type, AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import update, delete
from pydantic import BaseModel

from common.core.telemetry import trace_span
from common.db.scoped import get_session

EntityType = TypeVar("EntityType")
DomainModelType = TypeVar("DomainModelType")
CreateModelType = TypeVar("CreateModelType", bound=BaseModel)
UpdateModelType = TypeVar("UpdateModelType", bound=BaseModel)


class BaseRepository(Generic[EntityType, DomainModelType]):
    """
    Base repository with operation-scoped sessions.

    Each call acquires a session through get_session() and releases it when
    the operation finishes, so no connection is held while a service talks to
    the billing provider. Calls made inside a transaction() block share that
    transaction's session instead.

    An explicit session can still be passed for scripts and tests that manage
    the session lifecycle themselves:

        repo = CompanyRepository(db_session=session)
        company = await repo.get(123)  # Uses passed session
    """

    def __init__(
        self,
        entity_class: Type[EntityType],
        domain_class: Type[DomainModelType],
        db_session: Optional[AsyncSession] = None,
    ):
        self.entity_class = entity_class
        self.domain_class = domain_class
        self._explicit_session = db_session

    @asynccontextmanager
    async def _get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a session for an operation.

        Uses the explicit session when one was given to __init__, otherwise a
        lazy get_session() that respects the current transaction/readonly
        context.
        """
        if self._explicit_session is not None:
            yield self._explicit_session
        else:
            async with get_session() as session:
                yield session

    def _add_company_filter(self, query, company_id: int):
        """Add company filtering to any query."""
        return query.where(self.entity_class.company_id == company_id)

    @staticmethod
    def _column_values(data: Dict[str, Any]) -> Dict[str, Any]:
        """Unwrap enum members so every driver binds plain column values."""
        return {k: v.value if isinstance(v, Enum) else v for k, v in data.items()}

    def _entity_to_domain(self, entity: EntityType) -> DomainModelType:
        """Convert database entity to domain model."""
        return self.domain_class.model_validate(entity)

    def _entities_to_domain(self, entities: List[EntityType]) -> List[DomainModelType]:
        """Convert list of database entities to domain models."""
        return [self._entity_to_domain(entity) for entity in entities]

    @trace_span
    async def get(
        self, id: int, company_id: Optional[int] = None
    ) -> Optional[DomainModelType]:
        query = select(self.entity_class).where(self.entity_class.id == id)

        # Add deleted filter if the entity has a deleted column
        if hasattr(self.entity_class, "deleted"):
            query = query.where(self.entity_class.deleted == False)  # noqa

        if company_id is not None:
            query = self._add_company_filter(query, company_id)

        async with self._get_session() as session:
            result = await session.execute(query)
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def get_multi(
        self, skip: int = 0, limit: int = 100, company_id: Optional[int] = None
    ) -> List[DomainModelType]:
        query = (
            select(self.entity_class)
            .order_by(self.entity_class.id)
            .offset(skip)
            .limit(limit)
        )

        if hasattr(self.entity_class, "deleted"):
            query = query.where(self.entity_class.deleted == False)  # noqa

        if company_id is not None:
            query = self._add_company_filter(query, company_id)

        async with self._get_session() as session:
            result = await session.execute(query)
            entities = result.scalars().all()
            return self._entities_to_domain(entities)

    @trace_span
    async def create(self, create_model: CreateModelType) -> DomainModelType:
        """Create a new entity from a typed create model."""
        data = self._column_values(create_model.model_dump(exclude_none=True))
        db_obj = self.entity_class(**data)
        async with self._get_session() as session:
            session.add(db_obj)
            await session.flush()
            await session.refresh(db_obj)
            return self._entity_to_domain(db_obj)

    @trace_span
    async def update(
        self, id: int, update_model: UpdateModelType
    ) -> Optional[DomainModelType]:
        """Update an entity with a typed update model.

        Only fields explicitly set on the model are written, so passing
        ``None`` for a field clears it while omitting it leaves it untouched.
        """
        data = self._column_values(update_model.model_dump(exclude_unset=True))
        if not data:
            return await self.get(id)

        async with self._get_session() as session:
            await session.execute(
                update(self.entity_class).where(self.entity_class.id == id).values(data)
            )
            await session.flush()
        return await self.get(id)

    @trace_span
    async def delete(self, id: int) -> bool:
        async with self._get_session() as session:
            result = await session.execute(
                delete(self.entity_class).where(self.entity_class.id == id)
            )
            await session.flush()
            return result.rowcount > 0
