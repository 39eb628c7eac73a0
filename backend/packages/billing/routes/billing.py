"""
Billing API routes.

Company-scoped endpoints for subscription commands, entitlement status and
seats. Callers must belong to the company in the path.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from packages.auth.dependencies import require_company_member
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.billing.enforcement import evaluate
from packages.billing.exceptions import (
    BillingError,
    PaymentMethodDeclinedError,
    ProviderRequestError,
    ProviderUnavailableError,
    SeatLimitReachedError,
)
from packages.billing.models.schemas.billing import (
    SeatRequest,
    SeatsResponse,
    SubscriptionCommandRequest,
    SubscriptionCommandResponse,
    SubscriptionInfoResponse,
)
from packages.billing.services.subscription_service import SubscriptionService
from packages.companies.models.domain.company import Company
from packages.companies.services.company_service import CompanyService
from common.core.exceptions import NotFoundError, ValidationError

router = APIRouter()


def get_subscription_service() -> SubscriptionService:
    return SubscriptionService()


def get_company_service() -> CompanyService:
    return CompanyService()


def to_http_exception(error: BillingError) -> HTTPException:
    """Translate a billing error into the matching HTTP response."""
    if isinstance(error, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, SeatLimitReachedError):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(error, PaymentMethodDeclinedError):
        status_code = status.HTTP_402_PAYMENT_REQUIRED
    elif isinstance(error, ProviderUnavailableError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(error, ProviderRequestError):
        status_code = status.HTTP_502_BAD_GATEWAY
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=status_code, detail=error.to_dict())


def _seats_response(company: Company) -> SeatsResponse:
    return SeatsResponse(
        company_id=company.id,
        max_seats=company.max_seats,
        seated_member_ids=company.seated_member_ids,
    )


# ============================================================================
# Subscription
# ============================================================================


@router.get(
    "/companies/{company_id}/subscription",
    response_model=SubscriptionInfoResponse,
)
async def get_subscription(
    company_id: int,
    current_user: AuthenticatedUser = Depends(require_company_member),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Get the company's current entitlement.

    Recomputed from the company record on every call.
    """
    try:
        info = await subscription_service.get_subscription_info(company_id)
    except BillingError as e:
        raise to_http_exception(e)

    return SubscriptionInfoResponse(
        company_id=company_id,
        tier_name=info.tier.display_name,
        monthly_price_cents=info.tier.get_price_cents(),
        flags=evaluate(info),
        **info.model_dump(),
    )


@router.post(
    "/companies/{company_id}/subscription",
    response_model=SubscriptionCommandResponse,
    response_model_exclude_none=True,
)
async def run_subscription_command(
    company_id: int,
    request: SubscriptionCommandRequest,
    current_user: AuthenticatedUser = Depends(require_company_member),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Run a subscription command.

    - setup-intent: client secret and ephemeral key for collecting a card
    - complete: subscribe to plan/period, optionally with payment_method_id
    - cancel: cancel at the end of the current billing period
    """
    try:
        result = await subscription_service.dispatch(
            request.action,
            company_id,
            plan=request.plan,
            period=request.period,
            payment_method_id=request.payment_method_id,
            user_id=current_user.user_id,
        )
    except BillingError as e:
        raise to_http_exception(e)

    return SubscriptionCommandResponse(**result)


# ============================================================================
# Seats
# ============================================================================


@router.post("/companies/{company_id}/seats", response_model=SeatsResponse)
async def add_seat(
    company_id: int,
    request: SeatRequest,
    current_user: AuthenticatedUser = Depends(require_company_member),
    company_service: CompanyService = Depends(get_company_service),
):
    """Give a member a seat. 409 when every seat is taken."""
    try:
        company = await company_service.add_seated_member(company_id, request.member_id)
    except BillingError as e:
        raise to_http_exception(e)
    return _seats_response(company)


@router.delete(
    "/companies/{company_id}/seats/{member_id}", response_model=SeatsResponse
)
async def remove_seat(
    company_id: int,
    member_id: str,
    current_user: AuthenticatedUser = Depends(require_company_member),
    company_service: CompanyService = Depends(get_company_service),
):
    """Release a member's seat."""
    try:
        company = await company_service.remove_seated_member(company_id, member_id)
    except BillingError as e:
        raise to_http_exception(e)
    return _seats_response(company)
