"""
Factory for getting the billing provider instance.
"""

from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.providers.payment.stripe_payment import StripePaymentProvider


def get_payment_provider() -> PaymentProviderInterface:
    """
    Get the configured billing provider.

    Stripe is the only provider; services depend on the interface so tests
    can substitute a fake.
    """
    return StripePaymentProvider()
