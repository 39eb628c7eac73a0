from abc import ABC, abstractmethod

from packages.auth.providers.models import SSOUserClaims, SSOProvider


class SSOProviderInterface(ABC):
    """Interface for SSO providers"""

    @abstractmethod
    async def verify_token(self, token: str) -> SSOUserClaims:
        """Verify the token and return its identity claims"""
        pass

    @abstractmethod
    def get_provider_name(self) -> SSOProvider:
        """Get the provider name"""
        pass
