from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from packages.billing.exceptions import (
    CompanyNotFoundError,
    PaymentMethodDeclinedError,
    SubscriptionNotFoundError,
    UnknownActionError,
    UnknownPlanError,
)
from packages.billing.models.domain.enums import (
    BillingPeriod,
    SubscriptionPlan,
    SubscriptionStatus,
)
from packages.billing.models.domain.stripe_webhooks import StripeSubscriptionData
from packages.billing.models.domain.subscription import SetupIntentResult
from packages.billing.services.reconciliation_service import ReconciliationService
from packages.billing.services.subscription_service import SubscriptionService
from packages.companies.repositories.company_repository import CompanyRepository
from tests.factories.stripe_events import subscription_object

PERIOD_END = int(datetime(2026, 11, 15, tzinfo=timezone.utc).timestamp())


def created_subscription(customer: str = "cus_test123", **kwargs):
    return StripeSubscriptionData.model_validate(
        subscription_object(
            subscription_id="sub_created",
            customer=customer,
            current_period_end=PERIOD_END,
            **kwargs,
        )
    ).to_snapshot()


@pytest.fixture
def mock_payment_provider():
    """Create a mock payment provider."""
    provider = AsyncMock()
    provider.create_customer = AsyncMock(return_value="cus_created")
    provider.create_setup_intent = AsyncMock(
        return_value=SetupIntentResult(
            customer_id="cus_test123",
            client_secret="seti_secret",
            ephemeral_key="ek_secret",
        )
    )
    provider.create_subscription = AsyncMock(return_value=created_subscription())
    provider.cancel_subscription = AsyncMock(return_value=True)
    provider.list_active_subscription_ids = AsyncMock(return_value=[])
    return provider


@pytest.fixture
def subscription_service(mock_payment_provider):
    with patch(
        "packages.billing.services.subscription_service.get_payment_provider",
        return_value=mock_payment_provider,
    ):
        yield SubscriptionService()


@pytest.fixture
def company_repo():
    return CompanyRepository()


class TestEnsureBillingCustomer:
    async def test_existing_customer_is_reused(
        self, subscription_service, mock_payment_provider, sample_company
    ):
        customer_id = await subscription_service.ensure_billing_customer(
            sample_company.id
        )

        assert customer_id == "cus_test123"
        mock_payment_provider.create_customer.assert_not_called()

    async def test_customer_created_on_first_use(
        self,
        subscription_service,
        mock_payment_provider,
        company_repo,
        company_without_customer,
    ):
        customer_id = await subscription_service.ensure_billing_customer(
            company_without_customer.id
        )

        assert customer_id == "cus_created"
        mock_payment_provider.create_customer.assert_called_once_with(
            company_id=company_without_customer.id,
            company_name="new company",
            email="owner@new.example",
        )
        stored = await company_repo.get(company_without_customer.id)
        assert stored.stripe_customer_id == "cus_created"

    async def test_first_stored_customer_wins(
        self, subscription_service, company_repo, company_without_customer
    ):
        """A customer stored by a concurrent request is kept."""
        await company_repo.set_stripe_customer_id_if_absent(
            company_without_customer.id, "cus_first"
        )
        stored = await company_repo.set_stripe_customer_id_if_absent(
            company_without_customer.id, "cus_second"
        )

        assert stored == "cus_first"
        assert (
            await subscription_service.ensure_billing_customer(
                company_without_customer.id
            )
            == "cus_first"
        )

    async def test_unknown_company(self, subscription_service):
        with pytest.raises(CompanyNotFoundError):
            await subscription_service.ensure_billing_customer(999999)


class TestCreateSetupIntent:
    async def test_returns_client_material(
        self, subscription_service, mock_payment_provider, sample_company
    ):
        result = await subscription_service.create_setup_intent(
            sample_company.id, user_id="user-1"
        )

        assert result.client_secret == "seti_secret"
        mock_payment_provider.create_setup_intent.assert_called_once_with(
            customer_id="cus_test123", company_id=sample_company.id, user_id="user-1"
        )


class TestCompleteSubscription:
    async def test_subscribes_and_applies_result(
        self, subscription_service, mock_payment_provider, sample_company
    ):
        company = await subscription_service.complete_subscription(
            sample_company.id,
            SubscriptionPlan.TEAM,
            BillingPeriod.MONTHLY,
            payment_method_id="pm_1",
            user_id="user-1",
        )

        kwargs = mock_payment_provider.create_subscription.call_args.kwargs
        assert kwargs["price_id"] == "price_team_monthly"
        assert kwargs["customer_id"] == "cus_test123"
        assert kwargs["payment_method_id"] == "pm_1"
        assert company.subscription_status == SubscriptionStatus.ACTIVE
        assert company.subscription_plan == SubscriptionPlan.TEAM
        assert company.subscription_period == BillingPeriod.MONTHLY
        assert company.subscription_ids == ["sub_created"]
        assert company.max_seats == 5

    async def test_command_then_webhook_matches_webhook_alone(
        self, subscription_service, company_repo, sample_company, subscribed_company
    ):
        """Applying the corroborating webhook after the command changes nothing."""
        await subscription_service.complete_subscription(
            sample_company.id, SubscriptionPlan.TEAM, BillingPeriod.MONTHLY
        )
        after_command = await company_repo.get(sample_company.id)

        reconciliation = ReconciliationService()
        await reconciliation.apply_subscription_snapshot(
            created_subscription(), is_new_subscription=True
        )
        after_webhook = await company_repo.get(sample_company.id)

        # Same event applied to a company that never ran the command
        await reconciliation.apply_subscription_snapshot(
            created_subscription(customer="cus_subscribed"),
            is_new_subscription=True,
        )
        webhook_only = await company_repo.get(subscribed_company.id)

        fields = {
            "subscription_status",
            "subscription_plan",
            "subscription_period",
            "subscription_ids",
            "subscription_end",
            "max_seats",
        }
        assert after_command.model_dump(include=fields) == after_webhook.model_dump(
            include=fields
        )
        assert after_webhook.model_dump(include=fields) == webhook_only.model_dump(
            include=fields
        )

    async def test_unknown_plan_fails_before_provider_call(
        self, subscription_service, mock_payment_provider, sample_company
    ):
        with pytest.raises(UnknownPlanError):
            await subscription_service.complete_subscription(
                sample_company.id, SubscriptionPlan.TRIAL, BillingPeriod.MONTHLY
            )

        mock_payment_provider.create_customer.assert_not_called()
        mock_payment_provider.create_subscription.assert_not_called()

    async def test_declined_card_leaves_company_untouched(
        self,
        subscription_service,
        mock_payment_provider,
        company_repo,
        sample_company,
    ):
        mock_payment_provider.create_subscription.side_effect = (
            PaymentMethodDeclinedError("Your card was declined.")
        )

        with pytest.raises(PaymentMethodDeclinedError):
            await subscription_service.complete_subscription(
                sample_company.id, SubscriptionPlan.STARTER, BillingPeriod.ANNUAL
            )

        stored = await company_repo.get(sample_company.id)
        assert stored.subscription_status == SubscriptionStatus.TRIAL
        assert stored.subscription_ids == []


class TestCancelSubscription:
    async def test_cancels_stored_subscription(
        self,
        subscription_service,
        mock_payment_provider,
        subscribed_company,
    ):
        company = await subscription_service.cancel_subscription(subscribed_company.id)

        mock_payment_provider.cancel_subscription.assert_called_once_with(
            "sub_existing"
        )
        mock_payment_provider.list_active_subscription_ids.assert_called_once_with(
            "cus_subscribed"
        )
        assert company.subscription_status == SubscriptionStatus.CANCELLED
        assert company.subscription_ids == ["sub_existing"]
        # Access runs until the end of the paid period
        assert company.subscription_plan == SubscriptionPlan.TEAM

    async def test_falls_back_to_active_subscription(
        self,
        subscription_service,
        mock_payment_provider,
        subscribed_company,
    ):
        # Stored subscription is gone at the provider
        mock_payment_provider.cancel_subscription.side_effect = [False, True]
        mock_payment_provider.list_active_subscription_ids.return_value = ["sub_live"]

        company = await subscription_service.cancel_subscription(subscribed_company.id)

        mock_payment_provider.list_active_subscription_ids.assert_called_once_with(
            "cus_subscribed"
        )
        assert company.subscription_ids == ["sub_live"]
        assert company.subscription_status == SubscriptionStatus.CANCELLED

    async def test_cancels_every_active_subscription(
        self,
        subscription_service,
        mock_payment_provider,
        subscribed_company,
    ):
        mock_payment_provider.list_active_subscription_ids.return_value = [
            "sub_existing",
            "sub_duplicate",
        ]

        company = await subscription_service.cancel_subscription(subscribed_company.id)

        cancelled = [
            call.args[0]
            for call in mock_payment_provider.cancel_subscription.call_args_list
        ]
        assert cancelled == ["sub_existing", "sub_duplicate"]
        assert company.subscription_ids == ["sub_existing", "sub_duplicate"]
        assert company.subscription_status == SubscriptionStatus.CANCELLED

    async def test_nothing_to_cancel(
        self, subscription_service, company_repo, sample_company
    ):
        with pytest.raises(SubscriptionNotFoundError):
            await subscription_service.cancel_subscription(sample_company.id)

        stored = await company_repo.get(sample_company.id)
        assert stored.subscription_status == SubscriptionStatus.TRIAL

    async def test_no_billing_customer(
        self, subscription_service, mock_payment_provider, company_without_customer
    ):
        with pytest.raises(SubscriptionNotFoundError):
            await subscription_service.cancel_subscription(company_without_customer.id)

        mock_payment_provider.cancel_subscription.assert_not_called()


class TestGetSubscriptionInfo:
    async def test_info_for_trial_company(self, subscription_service, sample_company):
        info = await subscription_service.get_subscription_info(sample_company.id)

        assert info.tier == SubscriptionPlan.TRIAL
        assert info.current_seats == 1
        assert info.days_remaining in (19, 20)
        assert info.is_active is True

    async def test_unknown_company(self, subscription_service):
        with pytest.raises(CompanyNotFoundError):
            await subscription_service.get_subscription_info(999999)


class TestDispatch:
    async def test_setup_intent(self, subscription_service, sample_company):
        result = await subscription_service.dispatch("setup-intent", sample_company.id)

        assert result == {
            "client_secret": "seti_secret",
            "ephemeral_key": "ek_secret",
            "customer_id": "cus_test123",
        }

    async def test_complete(self, subscription_service, sample_company):
        result = await subscription_service.dispatch(
            "complete", sample_company.id, plan="team", period="Monthly"
        )

        assert result == {"success": True, "subscription_id": "sub_created"}

    async def test_cancel(self, subscription_service, subscribed_company):
        result = await subscription_service.dispatch("cancel", subscribed_company.id)

        assert result == {"success": True}

    async def test_unknown_action(self, subscription_service, mock_payment_provider):
        with pytest.raises(UnknownActionError):
            await subscription_service.dispatch("refund", 1)

        mock_payment_provider.assert_not_called()

    @pytest.mark.parametrize(
        "plan,period", [(None, "monthly"), ("team", None), ("gold", "monthly")]
    )
    async def test_complete_requires_known_plan_and_period(
        self, subscription_service, mock_payment_provider, plan, period
    ):
        with pytest.raises(UnknownPlanError):
            await subscription_service.dispatch("complete", 1, plan=plan, period=period)

        mock_payment_provider.create_subscription.assert_not_called()
