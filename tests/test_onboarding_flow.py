"""
Tests for onboarding/flow.py - step transitions, local validation, collaborators.
"""
from unittest.mock import AsyncMock

import httpx
import pytest

from app.client.registry_client import FallbackRegistryApi, HttpRegistryApi, LocalRegistryApi
from app.core.storage import AGENTS, USERS, LocalStorageStore
from app.onboarding.flow import OnboardingFlow, Step, split_services, validate_email


@pytest.fixture
def local_store() -> LocalStorageStore:
    return LocalStorageStore()


@pytest.fixture
def flow(local_store) -> OnboardingFlow:
    api = LocalRegistryApi(local_store, simulate_latency=False, demo_otp="123456")
    return OnboardingFlow(api, autofill=AsyncMock(), goal_writer=AsyncMock())


async def signed_up(flow: OnboardingFlow) -> OnboardingFlow:
    flow.update_user(first_name="Ada", last_name="Lovelace", email="ada@acme.com")
    assert await flow.next() == Step.VERIFY_OTP
    return flow


class TestValidation:

    @pytest.mark.parametrize("email,expected", [
        ("ada@acme.com", None),
        ("ada@sub.acme.co.uk", None),
        ("ada@acme", "Invalid email format"),
        ("ada acme.com", "Invalid email format"),
        ("", "Invalid email format"),
        ("ada@gmail.com", "Please use a business email"),
        ("ada@ProtonMail.com", "Please use a business email"),
    ])
    def test_validate_email(self, email, expected):
        assert validate_email(email) == expected

    def test_split_services(self):
        assert split_services("Support. Sales.  . Onboarding") == ["Support", "Sales", "Onboarding"]

    async def test_bad_email_blocks_signup(self, flow, local_store):
        flow.update_user(first_name="Ada", last_name="Lovelace", email="ada@gmail.com")

        assert await flow.next() == Step.SIGN_UP
        assert flow.field_errors == {"email": "Please use a business email"}
        assert await local_store.read(USERS) == {}

    async def test_missing_names_block_signup(self, flow, local_store):
        flow.update_user(first_name="Ada", email="ada@acme.com")

        assert await flow.next() == Step.SIGN_UP
        assert flow.field_errors == {"first_name": "", "last_name": "Required"}
        assert await local_store.read(USERS) == {}


class TestTransitions:

    async def test_full_onboarding(self, flow, local_store):
        await signed_up(flow)
        assert flow.user["user_id"].startswith("u_")
        assert flow.user["company_domain"] == "acme.com"
        assert flow.user["verified"] is False

        flow.otp = "123456"
        assert await flow.next() == Step.COMPANY_INFO
        assert flow.user["verified"] is True

        flow.update_company(company_name="Acme", website="https://acme.com", services="Support. Sales.")
        assert await flow.next() == Step.GOALS
        flow.update_goals(short_term="grow")
        assert await flow.next() == Step.REVIEW

        assert await flow.next() == Step.SUCCESS
        assert flow.agent_id.startswith("agt_")

        agent = (await local_store.read(AGENTS))[flow.agent_id]
        assert agent["owner_user_id"] == flow.user["user_id"]
        assert agent["company_context"]["company_name"] == "Acme"
        assert agent["company_context"]["services"] == ["Support", "Sales"]
        assert agent["goals"] == {"short_term": "grow", "long_term": ""}
        # Registry inspector refreshed after creation
        assert flow.agent_id in flow.registry.agents
        assert flow.user["user_id"] in flow.registry.users

    async def test_wrong_otp_keeps_step_and_reports(self, flow, local_store):
        await signed_up(flow)
        flow.otp = "000000"

        assert await flow.next() == Step.VERIFY_OTP
        assert flow.error == "Invalid OTP"
        assert flow.loading is False
        users = await local_store.read(USERS)
        assert users[flow.user["user_id"]]["verified"] is False

        # Manual retry with the right code
        flow.otp = "123456"
        assert await flow.next() == Step.COMPANY_INFO
        assert flow.error is None

    async def test_short_otp_does_not_call_registry(self, flow):
        await signed_up(flow)
        flow.api.verify_otp = AsyncMock()
        flow.otp = "123"

        assert await flow.next() == Step.VERIFY_OTP
        flow.api.verify_otp.assert_not_called()

    async def test_company_info_requires_name_and_website(self, flow):
        flow.step = Step.COMPANY_INFO
        flow.update_company(company_name="Acme")

        assert await flow.next() == Step.COMPANY_INFO
        flow.update_company(website="https://acme.com")
        assert await flow.next() == Step.GOALS

    async def test_unusable_review_payload_is_reported(self, flow, local_store):
        flow.step = Step.REVIEW
        flow.update_user(user_id=["not", "an", "id"])

        assert await flow.next() == Step.REVIEW
        assert "user_id" in flow.error
        assert flow.loading is False
        assert await local_store.read(AGENTS) == {}

    async def test_signup_falls_back_when_registry_unreachable(self, local_store):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        remote = HttpRegistryApi(
            base_url="http://registry/api",
            client=httpx.AsyncClient(transport=httpx.MockTransport(unreachable)),
        )
        local = LocalRegistryApi(local_store, simulate_latency=False, demo_otp="123456")
        flow = OnboardingFlow(FallbackRegistryApi(remote, local))

        await signed_up(flow)

        assert flow.error is None
        assert flow.user["user_id"] in await local_store.read(USERS)


class TestCollaborators:

    async def test_autofill_merges_and_splits_services(self, flow):
        flow.update_user(email="ada@acme.com")
        flow.update_company(ein="12-3456789")
        flow._autofill.return_value = {
            "company_name": "Acme Corp",
            "website": "https://acme.com",
            "services": "Anvils. Rockets.",
            "pricing_model": "usage",
        }

        await flow.autofill()

        flow._autofill.assert_awaited_once_with("acme.com")
        assert flow.company["company_name"] == "Acme Corp"
        assert flow.company["services"] == ["Anvils", "Rockets"]
        assert flow.company["pricing_model"] == "usage"
        assert flow.company["ein"] == ""
        assert flow.loading is False

    async def test_autofilled_domain_string_reaches_success(self, flow, local_store):
        await signed_up(flow)
        flow.otp = "123456"
        await flow.next()
        flow._autofill.return_value = {
            "company_name": "Acme Corp",
            "website": "https://acme.com",
            "domains": "acme.com, acme.io",
        }

        await flow.autofill()
        assert flow.company["domains"] == ["acme.com", "acme.io"]

        assert await flow.next() == Step.GOALS
        assert await flow.next() == Step.REVIEW
        assert await flow.next() == Step.SUCCESS
        agent = (await local_store.read(AGENTS))[flow.agent_id]
        assert agent["company_context"]["domains"] == ["acme.com", "acme.io"]

    async def test_autofill_failure_leaves_form(self, flow):
        flow.update_user(email="ada@acme.com")
        flow.update_company(company_name="Typed by hand")
        flow._autofill.side_effect = RuntimeError("LLM down")

        await flow.autofill()

        assert flow.company["company_name"] == "Typed by hand"
        assert flow.loading is False

    async def test_generate_goals(self, flow):
        flow.update_company(company_name="Acme")
        flow._goal_writer.return_value = {"short_term": "Launch", "long_term": "Lead"}

        await flow.generate_goals()

        flow._goal_writer.assert_awaited_once_with(flow.company)
        assert flow.goals == {"short_term": "Launch", "long_term": "Lead"}

    async def test_generate_goals_failure_keeps_goals(self, flow):
        flow.update_goals(short_term="mine")
        flow._goal_writer.side_effect = ValueError("bad json")

        await flow.generate_goals()

        assert flow.goals["short_term"] == "mine"
