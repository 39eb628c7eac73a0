"""Factory for creating singleton SSO provider instances."""

from typing import Dict
from packages.auth.providers.interface import SSOProviderInterface
from packages.auth.providers.models import SSOProvider
from packages.auth.providers.firebase_provider import FirebaseAuthProvider


class SSOProviderFactory:
    """Factory for creating and managing SSO provider singletons."""

    _instances: Dict[SSOProvider, SSOProviderInterface] = {}

    @classmethod
    def get_provider(cls, provider: SSOProvider) -> SSOProviderInterface:
        """Get or create a singleton instance of the specified SSO provider.

        Raises:
            ValueError: If the provider is not supported
        """
        if provider not in cls._instances:
            if provider != SSOProvider.FIREBASE:
                raise ValueError(f"Unsupported SSO provider: {provider}")
            cls._instances[provider] = FirebaseAuthProvider()

        return cls._instances[provider]


def get_sso_provider(provider: SSOProvider) -> SSOProviderInterface:
    return SSOProviderFactory.get_provider(provider)
