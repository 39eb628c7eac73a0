from datetime import timedelta
from unittest.mock import patch

import pytest

from common.db.context import in_transaction
from packages.billing.exceptions import CompanyNotFoundError, SeatLimitReachedError
from packages.billing.models.domain.enums import SubscriptionPlan, SubscriptionStatus
from packages.companies.models.domain.company import (
    CompanyCreateModel,
    CompanyUpdateModel,
)
from packages.companies.repositories.company_repository import CompanyRepository
from packages.companies.services.company_service import CompanyService


@pytest.fixture
def company_service():
    return CompanyService()


class TestCreateCompany:
    async def test_new_company_starts_trial(self, company_service):
        company = await company_service.create_company(
            CompanyCreateModel(name="Fresh Co", email="hi@fresh.example")
        )

        assert company.id is not None
        assert company.subscription_status == SubscriptionStatus.TRIAL
        assert company.subscription_plan == SubscriptionPlan.TRIAL
        assert company.max_seats == 10
        assert company.subscription_end - company.trial_start_date == timedelta(
            days=30
        )
        assert company.seated_member_ids == []
        assert company.subscription_ids == []
        assert company.stripe_customer_id is None

    async def test_explicit_status_is_kept(self, company_service):
        company = await company_service.create_company(
            CompanyCreateModel(
                name="Imported Co",
                subscription_status=SubscriptionStatus.ACTIVE,
                subscription_plan=SubscriptionPlan.BUSINESS,
                max_seats=10,
            )
        )

        assert company.subscription_status == SubscriptionStatus.ACTIVE
        assert company.trial_start_date is None


class TestGetAndUpdate:
    async def test_get_company(self, company_service, sample_company):
        company = await company_service.get_company(sample_company.id)

        assert company.name == "test company"
        assert company.stripe_customer_id == "cus_test123"

    async def test_missing_company(self, company_service):
        assert await company_service.get_company(999999) is None
        with pytest.raises(CompanyNotFoundError):
            await company_service.require_company(999999)


class TestSeats:
    async def test_add_and_remove_member(self, company_service, sample_company):
        company = await company_service.add_seated_member(sample_company.id, "user-2")
        assert company.seated_member_ids == ["user-1", "user-2"]

        company = await company_service.remove_seated_member(sample_company.id, "user-1")
        assert company.seated_member_ids == ["user-2"]

    async def test_adding_seated_member_is_noop(self, company_service, sample_company):
        company = await company_service.add_seated_member(sample_company.id, "user-1")

        assert company.seated_member_ids == ["user-1"]

    async def test_removing_unseated_member_is_noop(
        self, company_service, sample_company
    ):
        company = await company_service.remove_seated_member(
            sample_company.id, "nobody"
        )

        assert company.seated_member_ids == ["user-1"]

    async def test_full_company_rejects_new_member(
        self, company_service, subscribed_company
    ):
        await company_service.add_seated_member(subscribed_company.id, "user-5")

        with pytest.raises(SeatLimitReachedError) as exc_info:
            await company_service.add_seated_member(subscribed_company.id, "user-6")

        assert exc_info.value.details["max_seats"] == 5
        assert exc_info.value.details["current_seats"] == 5

    async def test_downgraded_company_keeps_existing_seats(
        self, company_service, subscribed_company
    ):
        await CompanyRepository().update(
            subscribed_company.id, CompanyUpdateModel(max_seats=3)
        )

        company = await company_service.get_company(subscribed_company.id)
        assert len(company.seated_member_ids) == 4
        with pytest.raises(SeatLimitReachedError):
            await company_service.add_seated_member(subscribed_company.id, "user-5")

    async def test_seat_changes_read_under_row_lock(
        self, company_service, sample_company
    ):
        repo = company_service.company_repo
        locked_reads = []
        original = repo.get_for_update

        async def recording_get_for_update(company_id):
            locked_reads.append(in_transaction())
            return await original(company_id)

        with patch.object(repo, "get_for_update", side_effect=recording_get_for_update):
            await company_service.add_seated_member(sample_company.id, "user-2")
            await company_service.remove_seated_member(sample_company.id, "user-1")

        assert locked_reads == [True, True]
