from typing import Annotated, Optional
from fastapi import Depends, HTTPException, status, Header

from common.core.telemetry import trace_span, get_logger
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.auth.providers.factory import get_sso_provider
from packages.auth.providers.interface import SSOProviderInterface
from packages.auth.providers.models import SSOProvider

logger = get_logger(__name__)


def get_sso_auth_provider() -> SSOProviderInterface:
    """Get the configured SSO provider."""
    return get_sso_provider(SSOProvider.FIREBASE)


@trace_span
async def get_current_user(
    authorization: Annotated[Optional[str], Header()] = None,
    sso_provider: SSOProviderInterface = Depends(get_sso_auth_provider),
) -> AuthenticatedUser:
    """Get current authenticated user from an SSO bearer token."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing or invalid",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization.split(" ")[1]
    claims = await sso_provider.verify_token(token)
    if claims.company_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is not a member of any company",
        )

    return AuthenticatedUser(
        user_id=claims.provider_user_id, company_id=claims.company_id
    )


@trace_span
async def get_current_active_user(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    """Get current active user."""
    logger.info(
        f"Authenticated user_id={current_user.user_id} company_id={current_user.company_id}"
    )
    return current_user


async def require_company_member(
    company_id: int,
    current_user: AuthenticatedUser = Depends(get_current_active_user),
) -> AuthenticatedUser:
    """Ensure the caller belongs to the company named in the path."""
    if current_user.company_id != company_id:
        logger.warning(
            "Cross-company access denied",
            extra={"user_id": current_user.user_id, "company_id": company_id},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a member of this company",
        )
    return current_user
