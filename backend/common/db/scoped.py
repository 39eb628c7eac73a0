"""
Operation-scoped database sessions.

Sessions are acquired per operation and released as soon as it finishes, so
a handler never holds a connection while it waits on the billing provider.

Usage:
    # Single operation - acquires and releases immediately
    async with get_session() as session:
        company = await session.get(CompanyEntity, company_id)

    # Several writes that must land together
    async with transaction():
        await company_repo.update(company_id, changes)
        await payment_repo.create(payment)
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from common.core.telemetry import get_logger
from common.db.session import AsyncSessionLocal, AsyncSessionLocalReadonly
from common.db.context import (
    get_current_session,
    set_current_session,
    reset_current_session,
    is_readonly_forced,
)

logger = get_logger(__name__)


@asynccontextmanager
async def transaction(readonly: bool = False) -> AsyncGenerator[AsyncSession, None]:
    """
    Explicit transaction boundary.

    All repository calls inside share one session. Commits on success
    (unless readonly) and rolls back on exception. A nested block joins the
    enclosing one and leaves the commit to it.

    Raises:
        Exception: Re-raises any exception after rollback
    """
    effective_readonly = readonly or is_readonly_forced()
    existing = get_current_session(readonly=effective_readonly)
    if existing:
        yield existing
        return

    session_factory = (
        AsyncSessionLocalReadonly if effective_readonly else AsyncSessionLocal
    )

    start = time.perf_counter()
    async with session_factory() as session:
        logger.debug(
            f"Transaction session acquire: {(time.perf_counter() - start) * 1000:.2f}ms, readonly={effective_readonly}"
        )

        token = set_current_session(session, readonly=effective_readonly)
        try:
            yield session
            if not effective_readonly:
                await session.commit()
        except Exception as e:
            logger.error(f"Transaction rollback due to: {e}")
            await session.rollback()
            raise
        finally:
            reset_current_session(token, readonly=effective_readonly)


@asynccontextmanager
async def get_session(readonly: bool = False) -> AsyncGenerator[AsyncSession, None]:
    """
    Get a session for a single DB operation.

    Reuses the session of an enclosing transaction() block. Otherwise a new
    session is acquired, committed (unless readonly) and released on exit.
    """
    effective_readonly = readonly or is_readonly_forced()
    existing = get_current_session(readonly=effective_readonly)

    if existing:
        yield existing
    else:
        session_factory = (
            AsyncSessionLocalReadonly if effective_readonly else AsyncSessionLocal
        )

        async with session_factory() as session:
            try:
                yield session
                if not effective_readonly:
                    await session.commit()
            except Exception as e:
                logger.error(f"Operation rollback due to: {e}")
                await session.rollback()
                raise
