"""Firebase Auth provider implementation."""

from typing import Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from fastapi import HTTPException, status

from common.core.telemetry import trace_span, get_logger
from common.core.config import settings
from packages.auth.providers.interface import SSOProviderInterface
from packages.auth.providers.models import SSOUserClaims, SSOProvider

logger = get_logger(__name__)

# Firebase Admin SDK initialization (uses Workload Identity automatically on GKE)
_firebase_app: Optional[firebase_admin.App] = None


def _get_firebase_app() -> firebase_admin.App:
    """Get or initialize Firebase Admin app."""
    global _firebase_app
    if _firebase_app is None:
        project_id = settings.firebase_project_id
        if not project_id:
            raise ValueError("Firebase configuration missing: firebase_project_id")

        # Explicit credentials for local dev; ADC everywhere else
        cred = None
        if settings.google_application_credentials:
            cred = credentials.Certificate(settings.google_application_credentials)

        _firebase_app = firebase_admin.initialize_app(
            credential=cred, options={"projectId": project_id}
        )
        logger.info(f"Firebase Admin SDK initialized for project: {project_id}")
    return _firebase_app


class FirebaseAuthProvider(SSOProviderInterface):
    """Firebase Auth provider implementation."""

    def __init__(self):
        self.app = _get_firebase_app()

    @trace_span
    async def verify_token(self, token: str) -> SSOUserClaims:
        """Verify a Firebase ID token and read the company claim."""
        try:
            decoded_token = firebase_auth.verify_id_token(token, app=self.app)
        except firebase_auth.ExpiredIdTokenError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Firebase token has expired",
            )
        except firebase_auth.InvalidIdTokenError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid Firebase token: {str(e)}",
            )
        except ValueError as e:
            logger.warning(f"Firebase token validation failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid Firebase token",
            )

        company_id = decoded_token.get("company_id")
        return SSOUserClaims(
            provider_user_id=decoded_token["uid"],
            email=decoded_token.get("email"),
            company_id=int(company_id) if company_id is not None else None,
        )

    def get_provider_name(self) -> SSOProvider:
        """Return provider identifier."""
        return SSOProvider.FIREBASE
