"""
Registry service: users and agents over a CollectionStore.

Usage:
    service = get_registry_service()
    user = await service.signup(SignupRequest(first_name="Ada", email="ada@acme.com"))
    await service.verify_otp("ada@acme.com", "123456")
    created = await service.create_agent(CreateAgentRequest(user={"user_id": user.user_id}))

The same class backs the HTTP routes and the client-side fallback, so the
business rules live in one place. Only the id generator differs.
"""

import asyncio
import logging
import secrets
import string
import uuid
from typing import Callable, Optional

from ..core.config import get_settings
from ..core.errors import InvalidOtpError
from ..core.storage import AGENTS, USERS, CollectionStore, get_store
from ..models.registry import (
    Agent,
    CreateAgentRequest,
    CreateAgentResponse,
    RegistrySnapshot,
    SignupRequest,
    User,
    VerifyOtpResponse,
    utcnow_iso,
)

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


# ── Identifiers ──────────────────────────────────────────────────────

def uuid_id(prefix: str) -> str:
    """Server ids: u_3f2a9c1e7b04, agt_0d9e4c..."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def base36_id(prefix: str) -> str:
    """Client ids: 9 random base-36 characters."""
    return f"{prefix}_{''.join(secrets.choice(_BASE36) for _ in range(9))}"


class RegistryService:
    def __init__(
        self,
        store: CollectionStore,
        new_id: Callable[[str], str] = uuid_id,
        demo_otp: Optional[str] = None,
        clock: Callable[[], str] = utcnow_iso,
    ):
        self.store = store
        self.new_id = new_id
        self.demo_otp = demo_otp if demo_otp is not None else get_settings().demo_otp
        self.clock = clock
        # One lock per collection file; each operation is a full read-modify-write
        self._locks = {USERS: asyncio.Lock(), AGENTS: asyncio.Lock()}

    def _unique_id(self, prefix: str, existing: dict) -> str:
        new_id = self.new_id(prefix)
        while new_id in existing:
            logger.warning("Id collision on %s, regenerating", new_id)
            new_id = self.new_id(prefix)
        return new_id

    async def get_registry(self) -> RegistrySnapshot:
        users = await self.store.read(USERS)
        agents = await self.store.read(AGENTS)
        return RegistrySnapshot(users=users, agents=agents)

    async def signup(self, data: SignupRequest) -> User:
        async with self._locks[USERS]:
            users = await self.store.read(USERS)
            user = User(
                **data.model_dump(exclude_none=True),
                user_id=self._unique_id("u", users),
                created_at=self.clock(),
                verified=False,
                verification_method="otp",
            )
            users[user.user_id] = user.model_dump(exclude_none=True)
            await self.store.write(USERS, users)

        logger.info("User signed up: %s (%s)", user.user_id, user.email)
        return user

    async def verify_otp(self, email: str, otp: str) -> VerifyOtpResponse:
        if otp != self.demo_otp:
            logger.info("OTP rejected for %s", email)
            raise InvalidOtpError()

        async with self._locks[USERS]:
            users = await self.store.read(USERS)
            # First match in insertion order wins; emails are not unique
            user_key = next(
                (k for k, u in users.items() if isinstance(u, dict) and u.get("email") == email),
                None,
            )
            if user_key is None:
                # Kept leniency: unknown email still reports success, nothing is written
                logger.warning("OTP accepted but no user registered for %s", email)
                return VerifyOtpResponse(status="success")

            users[user_key]["verified"] = True
            await self.store.write(USERS, users)

        logger.info("User verified: %s", user_key)
        return VerifyOtpResponse(status="success")

    async def create_agent(self, payload: CreateAgentRequest) -> CreateAgentResponse:
        draft = payload.agent
        company_context = draft.company_context or {}
        goals = draft.goals or {}

        async with self._locks[AGENTS]:
            agents = await self.store.read(AGENTS)
            agent = Agent(
                agent_id=self._unique_id("agt", agents),
                owner_user_id=payload.user.user_id or "unknown",
                status="active",
                created_at=self.clock(),
                company_context=company_context,
                goals=goals,
            )
            agents[agent.agent_id] = agent.model_dump()
            await self.store.write(AGENTS, agents)

        logger.info("Agent created: %s (owner=%s)", agent.agent_id, agent.owner_user_id)
        return CreateAgentResponse(agent_id=agent.agent_id)


# ── Global service ───────────────────────────────────────────────────

_service: Optional[RegistryService] = None


def get_registry_service() -> RegistryService:
    """Get or create the server-side registry service."""
    global _service
    if _service is None:
        _service = RegistryService(get_store())
    return _service
