from datetime import datetime, timedelta, timezone
from typing import Optional

from common.core.config import settings
from common.core.telemetry import trace_span, get_logger
from common.db.scoped import transaction
from packages.billing.entitlements import get_subscription_info
from packages.billing.enforcement import can_add_seat
from packages.billing.exceptions import CompanyNotFoundError, SeatLimitReachedError
from packages.billing.models.domain.enums import SubscriptionPlan, SubscriptionStatus
from packages.companies.repositories.company_repository import CompanyRepository
from packages.companies.models.domain.company import (
    Company,
    CompanyCreateModel,
    CompanyUpdateModel,
)

logger = get_logger(__name__)


class CompanyService:
    """Service for company records and their seats."""

    def __init__(self):
        self.company_repo = CompanyRepository()

    @trace_span
    async def create_company(self, company_data: CompanyCreateModel) -> Company:
        """Create a company, starting a trial unless a status is given."""
        if company_data.subscription_status is None:
            now = datetime.now(timezone.utc)
            company_data = company_data.model_copy(
                update={
                    "subscription_status": SubscriptionStatus.TRIAL,
                    "subscription_plan": SubscriptionPlan.TRIAL,
                    "trial_start_date": now,
                    "subscription_end": now
                    + timedelta(days=settings.trial_period_days),
                    "max_seats": settings.trial_max_seats,
                }
            )

        company = await self.company_repo.create(company_data)
        logger.info(
            "Created company",
            extra={"company_id": company.id, "status": company.subscription_status},
        )
        return company

    @trace_span
    async def get_company(self, company_id: int) -> Optional[Company]:
        """Get a company by ID."""
        return await self.company_repo.get(company_id)

    @trace_span
    async def require_company(
        self, company_id: int, for_update: bool = False
    ) -> Company:
        if for_update:
            company = await self.company_repo.get_for_update(company_id)
        else:
            company = await self.company_repo.get(company_id)
        if not company:
            raise CompanyNotFoundError(
                f"Company {company_id} not found", {"company_id": company_id}
            )
        return company

    @trace_span
    async def add_seated_member(self, company_id: int, member_id: str) -> Company:
        """
        Give a member a seat.

        Idempotent for members who already hold one. The seat ceiling is only
        checked here, so a company that downgraded keeps its existing seats.

        Raises:
            CompanyNotFoundError: If the company doesn't exist
            SeatLimitReachedError: If every seat is taken
        """
        # The row lock makes the ceiling check and the write one step
        async with transaction():
            company = await self.require_company(company_id, for_update=True)
            if member_id in company.seated_member_ids:
                return company

            info = get_subscription_info(company)
            if not can_add_seat(info):
                raise SeatLimitReachedError(
                    f"All {info.max_seats} seats are in use",
                    {
                        "company_id": company_id,
                        "max_seats": info.max_seats,
                        "current_seats": info.current_seats,
                    },
                )

            updated = await self.company_repo.update(
                company_id,
                CompanyUpdateModel(
                    seated_member_ids=[*company.seated_member_ids, member_id]
                ),
            )
        logger.info(
            "Seat assigned",
            extra={"company_id": company_id, "member_id": member_id},
        )
        return updated

    @trace_span
    async def remove_seated_member(self, company_id: int, member_id: str) -> Company:
        """Release a member's seat. Releasing a seat nobody holds is a no-op."""
        async with transaction():
            company = await self.require_company(company_id, for_update=True)
            if member_id not in company.seated_member_ids:
                return company

            updated = await self.company_repo.update(
                company_id,
                CompanyUpdateModel(
                    seated_member_ids=[
                        m for m in company.seated_member_ids if m != member_id
                    ]
                ),
            )
        logger.info(
            "Seat released",
            extra={"company_id": company_id, "member_id": member_id},
        )
        return updated
