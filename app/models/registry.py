"""
Registry records and the request/response schemas of the four operations.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PricingModel(str, Enum):
    SUBSCRIPTION = "subscription"
    USAGE = "usage"
    FLAT = "flat"
    HYBRID = "hybrid"


# ── Records ──────────────────────────────────────────────────────────

class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    user_id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    company_domain: str = ""
    role_title: Optional[str] = None
    verified: bool = False
    verification_method: str = "otp"
    created_at: str = Field(default_factory=utcnow_iso)


class Agent(BaseModel):
    agent_id: str
    owner_user_id: str = "unknown"
    status: str = "active"
    created_at: str = Field(default_factory=utcnow_iso)
    company_context: dict = {}
    goals: dict = {}


class RegistrySnapshot(BaseModel):
    users: dict[str, dict] = {}
    agents: dict[str, dict] = {}


# ── Requests / responses ─────────────────────────────────────────────

class SignupRequest(BaseModel):
    """Partial user fields. Server-owned fields sent by the client are ignored."""

    model_config = ConfigDict(extra="ignore")

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    company_domain: Optional[str] = None
    role_title: Optional[str] = None


class VerifyOtpRequest(BaseModel):
    email: str = ""
    otp: str = ""


class VerifyOtpResponse(BaseModel):
    status: str = "success"


class AgentDraft(BaseModel):
    """
    company_context and goals are kept exactly as sent, nulls included.
    The wizard fills company_name, ein, website, domains, policies,
    pricing_model and services, and short_term / long_term for goals.
    """

    company_context: Optional[dict[str, Any]] = None
    goals: Optional[dict[str, Any]] = None


class OwnerRef(BaseModel):
    """The `user` half of a create-agent payload. Only user_id is read."""

    model_config = ConfigDict(extra="allow")

    user_id: Optional[str] = None


class CreateAgentRequest(BaseModel):
    user: OwnerRef = Field(default_factory=OwnerRef)
    agent: AgentDraft = Field(default_factory=AgentDraft)


class CreateAgentResponse(BaseModel):
    agent_id: str
