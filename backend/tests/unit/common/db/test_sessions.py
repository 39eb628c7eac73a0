import asyncio

import pytest
from sqlalchemy import select

from common.db.context import (
    get_current_session,
    in_transaction,
    is_readonly_forced,
    readonly,
    reset_current_session,
    set_current_session,
)
from common.db.scoped import get_session, transaction
from packages.companies.models.database.company import CompanyEntity
from packages.companies.models.domain.company import CompanyUpdateModel
from packages.companies.repositories.company_repository import CompanyRepository


async def _company_names():
    async with get_session() as session:
        result = await session.execute(select(CompanyEntity.name))
        return set(result.scalars().all())


class TestSessionContext:
    def test_nothing_bound_by_default(self):
        assert get_current_session() is None
        assert get_current_session(readonly=True) is None
        assert in_transaction() is False
        assert is_readonly_forced() is False

    async def test_concurrent_tasks_see_their_own_session(self, test_db):
        seen = {}

        async def bind_and_wait(name: str, delay: float):
            token = set_current_session(test_db)
            await asyncio.sleep(delay)
            seen[name] = get_current_session() is test_db
            reset_current_session(token)

        async def never_binds():
            await asyncio.sleep(0.01)
            seen["unbound"] = get_current_session()

        await asyncio.gather(bind_and_wait("bound", 0.02), never_binds())

        assert seen == {"bound": True, "unbound": None}

    async def test_readonly_decorator_scopes_the_flag(self):
        @readonly
        async def read_path():
            return is_readonly_forced()

        @readonly
        async def failing_read_path():
            raise ValueError("boom")

        assert await read_path() is True
        assert is_readonly_forced() is False
        with pytest.raises(ValueError):
            await failing_read_path()
        assert is_readonly_forced() is False


class TestTransaction:
    async def test_commits_on_success(self):
        async with transaction() as session:
            session.add(CompanyEntity(name="Committed Co"))

        assert "Committed Co" in await _company_names()

    async def test_rolls_back_on_error(self):
        with pytest.raises(RuntimeError):
            async with transaction() as session:
                session.add(CompanyEntity(name="Rolled Back Co"))
                await session.flush()
                raise RuntimeError("provider call failed")

        assert "Rolled Back Co" not in await _company_names()

    async def test_binds_session_for_its_duration(self):
        async with transaction() as session:
            assert get_current_session() is session
            assert in_transaction() is True

        assert in_transaction() is False

    async def test_nested_block_joins_outer_session(self):
        async with transaction() as outer:
            async with transaction() as inner:
                assert inner is outer

    async def test_repository_calls_share_the_transaction(self, sample_company):
        repo = CompanyRepository()

        with pytest.raises(RuntimeError):
            async with transaction():
                await repo.update(sample_company.id, CompanyUpdateModel(name="Changed"))
                changed = await repo.get(sample_company.id)
                assert changed.name == "Changed"
                raise RuntimeError("abort")

        assert (await repo.get(sample_company.id)).name == "test company"


class TestGetSession:
    async def test_standalone_session_commits(self):
        async with get_session() as session:
            session.add(CompanyEntity(name="Standalone Co"))

        assert "Standalone Co" in await _company_names()

    async def test_reuses_enclosing_transaction(self):
        async with transaction() as outer:
            async with get_session() as session:
                assert session is outer

    async def test_readonly_path_does_not_reuse_write_session(self):
        async with transaction():
            async with get_session(readonly=True) as session:
                assert session is not get_current_session()
