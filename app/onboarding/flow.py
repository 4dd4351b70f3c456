"""
Onboarding flow: headless controller for the bot registration wizard.

Steps: sign_up → verify_otp → company_info → goals → review → success

Holds the form state in memory and calls the registry client when a step
completes. Field validation happens here and never reaches the registry.
"""

import logging
import re
from enum import IntEnum
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from ..client.registry_client import RegistryApi
from ..core.errors import RegistryError
from ..models.registry import CreateAgentRequest, PricingModel, RegistrySnapshot
from ..services.autofill import autofill_company_details, generate_business_goals

logger = logging.getLogger(__name__)


class Step(IntEnum):
    SIGN_UP = 0
    VERIFY_OTP = 1
    COMPANY_INFO = 2
    GOALS = 3
    REVIEW = 4
    SUCCESS = 5


FREE_DOMAINS = [
    "gmail.com",
    "yahoo.com",
    "hotmail.com",
    "outlook.com",
    "aol.com",
    "icloud.com",
    "proton.me",
    "protonmail.com",
]

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

OTP_LENGTH = 6

# Errors a step can recover from by retrying or editing the form
STEP_ERRORS = (RegistryError, httpx.HTTPError, ValidationError)


def validate_email(email: str) -> Optional[str]:
    """Returns an error message, or None if the email is a usable business address."""
    if not EMAIL_RE.match(email or ""):
        return "Invalid email format"
    domain = email.split("@")[1].lower()
    if domain in FREE_DOMAINS:
        return "Please use a business email"
    return None


def email_domain(email: str) -> str:
    return email.split("@")[1] if "@" in email else ""


def split_services(text: str) -> list[str]:
    """'Support. Sales.' → ['Support', 'Sales']"""
    return [s.strip() for s in text.split(".") if s.strip()]


class OnboardingFlow:
    def __init__(
        self,
        api: RegistryApi,
        autofill: Callable[[str], Awaitable[dict]] = autofill_company_details,
        goal_writer: Callable[[dict], Awaitable[dict]] = generate_business_goals,
    ):
        self.api = api
        self._autofill = autofill
        self._goal_writer = goal_writer

        self.step = Step.SIGN_UP
        self.loading = False
        self.error: Optional[str] = None
        self.field_errors: dict[str, str] = {}
        self.agent_id: Optional[str] = None
        self.registry = RegistrySnapshot()

        self.user: dict = {
            "first_name": "",
            "last_name": "",
            "email": "",
            "company_domain": "",
            "verified": False,
            "verification_method": "otp",
            "role_title": "",
        }
        self.otp = ""
        self.company: dict = {
            "company_name": "",
            "ein": "",
            "website": "",
            "domains": [],
            "policies": "",
            "pricing_model": PricingModel.SUBSCRIPTION.value,
            "services": [],
        }
        self.goals: dict = {"short_term": "", "long_term": ""}

    # ── Form updates ─────────────────────────────────────────────────

    def update_user(self, **fields) -> None:
        self.user.update(fields)

    def update_company(self, **fields) -> None:
        if isinstance(fields.get("services"), str):
            fields["services"] = split_services(fields["services"])
        self.company.update(fields)

    def update_goals(self, **fields) -> None:
        self.goals.update(fields)

    # ── Transitions ──────────────────────────────────────────────────

    async def next(self) -> Step:
        """Complete the current step. Returns the step the flow is on afterwards."""
        self.error = None
        if self.step == Step.SIGN_UP:
            await self._submit_signup()
        elif self.step == Step.VERIFY_OTP:
            await self._submit_otp()
        elif self.step == Step.COMPANY_INFO:
            if self.company.get("company_name") and self.company.get("website"):
                self.step = Step.GOALS
        elif self.step == Step.GOALS:
            self.step = Step.REVIEW
        elif self.step == Step.REVIEW:
            await self.create_agent()
        return self.step

    async def _submit_signup(self) -> None:
        email_err = validate_email(self.user.get("email", ""))
        if email_err:
            self.field_errors = {"email": email_err}
            return
        if not self.user.get("first_name") or not self.user.get("last_name"):
            self.field_errors = {
                "first_name": "" if self.user.get("first_name") else "Required",
                "last_name": "" if self.user.get("last_name") else "Required",
            }
            return

        self.field_errors = {}
        self.loading = True
        try:
            domain = email_domain(self.user["email"])
            new_user = await self.api.signup({**self.user, "company_domain": domain})
            self.user = new_user.model_dump(exclude_none=True)
            self.step = Step.VERIFY_OTP
        except STEP_ERRORS as e:
            self.error = getattr(e, "message", None) or str(e)
            logger.warning("Signup failed: %s", self.error)
        finally:
            self.loading = False

    async def _submit_otp(self) -> None:
        if len(self.otp) < OTP_LENGTH:
            return
        self.loading = True
        try:
            await self.api.verify_otp(self.user["email"], self.otp)
            self.user["verified"] = True
            self.step = Step.COMPANY_INFO
        except STEP_ERRORS as e:
            self.error = getattr(e, "message", None) or str(e)
            logger.warning("OTP verification failed: %s", self.error)
        finally:
            self.loading = False

    async def create_agent(self) -> Optional[str]:
        """Submit the reviewed onboarding. On success moves to SUCCESS and refreshes the registry."""
        self.loading = True
        try:
            payload = CreateAgentRequest.model_validate({
                "user": self.user,
                "agent": {"company_context": self.company, "goals": self.goals},
            })
            result = await self.api.create_agent(payload)
            self.agent_id = result.agent_id
            self.step = Step.SUCCESS
            logger.info("Onboarding complete: agent %s", self.agent_id)
            await self.load_registry()
        except STEP_ERRORS as e:
            self.error = getattr(e, "message", None) or str(e)
            logger.warning("Agent creation failed: %s", self.error)
        finally:
            self.loading = False
        return self.agent_id

    async def load_registry(self) -> RegistrySnapshot:
        """Refresh the registry inspector snapshot."""
        self.registry = await self.api.get_registry()
        return self.registry

    # ── LLM helpers ──────────────────────────────────────────────────

    async def autofill(self) -> None:
        """Fill company context from the email domain. Failures leave the form as is."""
        domain = email_domain(self.user.get("email", ""))
        self.loading = True
        try:
            data = await self._autofill(domain)
            services = data.get("services", self.company.get("services", []))
            if isinstance(services, str):
                services = split_services(services)
            domains = data.get("domains", self.company.get("domains", []))
            if isinstance(domains, str):
                domains = [d.strip() for d in domains.split(",") if d.strip()]
            self.company = {**self.company, **data, "services": services, "domains": domains, "ein": ""}
        except Exception as e:
            logger.error("Company autofill failed for %s: %s", domain, e)
        finally:
            self.loading = False

    async def generate_goals(self) -> None:
        """Draft goals from the company context. Failures leave the goals as is."""
        self.loading = True
        try:
            generated = await self._goal_writer(self.company)
            self.goals = {
                "short_term": generated.get("short_term", ""),
                "long_term": generated.get("long_term", ""),
            }
        except Exception as e:
            logger.error("Goal generation failed: %s", e)
        finally:
            self.loading = False
