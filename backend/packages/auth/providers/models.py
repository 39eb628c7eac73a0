from typing import Optional
from enum import Enum
from pydantic import BaseModel


class SSOProvider(str, Enum):
    """Supported SSO providers"""

    FIREBASE = "firebase"


class SSOUserClaims(BaseModel):
    """Verified identity claims extracted from an ID token"""

    provider_user_id: str
    email: Optional[str] = None
    # Custom claim set when the user joins a company
    company_id: Optional[int] = None
