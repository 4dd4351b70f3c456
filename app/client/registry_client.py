"""
Registry API client. Remote registry first, local store on failure.
Controlled by FF_USE_REMOTE_REGISTRY flag.

    api = build_registry_client()
    user = await api.signup({"first_name": "Ada", "email": "ada@acme.com"})

Three implementations of one interface:
  - HttpRegistryApi     → talks to the registry service over HTTP
  - LocalRegistryApi    → same rules, run in-process over a LocalStorageStore
  - FallbackRegistryApi → tries the first, re-runs on the second if the
                          network call fails for any transport reason
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError

from ..core.config import get_settings
from ..core.errors import RegistryRequestError
from ..core.flags import get_flags
from ..core.storage import CollectionStore, LocalStorageStore
from ..models.registry import (
    CreateAgentRequest,
    CreateAgentResponse,
    RegistrySnapshot,
    SignupRequest,
    User,
    VerifyOtpRequest,
    VerifyOtpResponse,
)
from ..services.registry import RegistryService, base36_id

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

SignupInput = Union[SignupRequest, dict]
AgentInput = Union[CreateAgentRequest, dict]


class RegistryApi(ABC):
    @abstractmethod
    async def get_registry(self) -> RegistrySnapshot:
        ...

    @abstractmethod
    async def signup(self, user_data: SignupInput) -> User:
        ...

    @abstractmethod
    async def verify_otp(self, email: str, otp: str) -> VerifyOtpResponse:
        ...

    @abstractmethod
    async def create_agent(self, payload: AgentInput) -> CreateAgentResponse:
        ...


def _as_signup(user_data: SignupInput) -> SignupRequest:
    if isinstance(user_data, SignupRequest):
        return user_data
    return SignupRequest.model_validate(user_data)


def _as_agent_request(payload: AgentInput) -> CreateAgentRequest:
    if isinstance(payload, CreateAgentRequest):
        return payload
    return CreateAgentRequest.model_validate(payload)


# ── Network ──────────────────────────────────────────────────────────

class HttpRegistryApi(RegistryApi):
    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.registry_api_base).rstrip("/")
        self.timeout = timeout or settings.registry_api_timeout
        self._client = client

    async def _send(self, client: httpx.AsyncClient, method: str, path: str, body: Any) -> httpx.Response:
        return await client.request(
            method,
            f"{self.base_url}{path}",
            json=body,
            headers={"Content-Type": "application/json"},
        )

    async def _request_json(self, method: str, path: str, body: Any = None) -> Any:
        if self._client is not None:
            resp = await self._send(self._client, method, path, body)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await self._send(client, method, path, body)

        if not resp.is_success:
            message = f"Request failed ({resp.status_code})"
            try:
                data = resp.json()
                if isinstance(data, dict) and data.get("message"):
                    message = str(data["message"])
            except ValueError:
                pass  # non-JSON error page, keep the generic message
            raise RegistryRequestError(message, resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise RegistryRequestError(f"Malformed response from {path}", resp.status_code) from e

    @staticmethod
    def _parse(model: Type[M], data: Any, path: str) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise RegistryRequestError(f"Unexpected response shape from {path}: {e.error_count()} errors") from e

    async def get_registry(self) -> RegistrySnapshot:
        data = await self._request_json("GET", "/registry")
        return self._parse(RegistrySnapshot, data, "/registry")

    async def signup(self, user_data: SignupInput) -> User:
        body = _as_signup(user_data).model_dump(exclude_none=True)
        logger.info("POST /signup %s", body.get("email", ""))
        data = await self._request_json("POST", "/signup", body)
        return self._parse(User, data, "/signup")

    async def verify_otp(self, email: str, otp: str) -> VerifyOtpResponse:
        logger.info("POST /verify-otp %s", email)
        body = VerifyOtpRequest(email=email, otp=otp).model_dump()
        data = await self._request_json("POST", "/verify-otp", body)
        return self._parse(VerifyOtpResponse, data, "/verify-otp")

    async def create_agent(self, payload: AgentInput) -> CreateAgentResponse:
        body = _as_agent_request(payload).model_dump(mode="json")
        logger.info("POST /agents owner=%s", body.get("user", {}).get("user_id"))
        data = await self._request_json("POST", "/agents", body)
        return self._parse(CreateAgentResponse, data, "/agents")


# ── Local ────────────────────────────────────────────────────────────

# Seconds of fake network time per call. Cosmetic only.
SIMULATED_LATENCY = {
    "get_registry": 0.0,
    "signup": 0.8,
    "verify_otp": 0.8,
    "create_agent": 1.5,
}


class LocalRegistryApi(RegistryApi):
    """Registry rules executed client-side against a LocalStorageStore."""

    def __init__(
        self,
        store: Optional[CollectionStore] = None,
        simulate_latency: Optional[bool] = None,
        demo_otp: Optional[str] = None,
    ):
        self.store = store if store is not None else LocalStorageStore()
        self.service = RegistryService(self.store, new_id=base36_id, demo_otp=demo_otp)
        if simulate_latency is None:
            simulate_latency = get_flags().simulate_latency
        self.simulate_latency = simulate_latency

    async def _pause(self, operation: str) -> None:
        delay = SIMULATED_LATENCY.get(operation, 0.0)
        if self.simulate_latency and delay:
            await asyncio.sleep(delay)

    async def get_registry(self) -> RegistrySnapshot:
        await self._pause("get_registry")
        return await self.service.get_registry()

    async def signup(self, user_data: SignupInput) -> User:
        await self._pause("signup")
        return await self.service.signup(_as_signup(user_data))

    async def verify_otp(self, email: str, otp: str) -> VerifyOtpResponse:
        await self._pause("verify_otp")
        return await self.service.verify_otp(email, otp)

    async def create_agent(self, payload: AgentInput) -> CreateAgentResponse:
        await self._pause("create_agent")
        return await self.service.create_agent(_as_agent_request(payload))


# ── Try-then-fallback ────────────────────────────────────────────────

TRANSPORT_ERRORS = (httpx.HTTPError, RegistryRequestError)


class FallbackRegistryApi(RegistryApi):
    """
    Runs each call on `primary`; on a transport failure runs it once on
    `fallback`. Errors raised by the fallback reach the caller unchanged.
    """

    def __init__(self, primary: RegistryApi, fallback: RegistryApi):
        self.primary = primary
        self.fallback = fallback

    async def _dispatch(self, operation: str, *args: Any) -> Any:
        try:
            return await getattr(self.primary, operation)(*args)
        except TRANSPORT_ERRORS as e:
            logger.warning("Registry %s failed remotely (%s), using local store", operation, e)
        return await getattr(self.fallback, operation)(*args)

    async def get_registry(self) -> RegistrySnapshot:
        return await self._dispatch("get_registry")

    async def signup(self, user_data: SignupInput) -> User:
        return await self._dispatch("signup", user_data)

    async def verify_otp(self, email: str, otp: str) -> VerifyOtpResponse:
        return await self._dispatch("verify_otp", email, otp)

    async def create_agent(self, payload: AgentInput) -> CreateAgentResponse:
        return await self._dispatch("create_agent", payload)


def build_registry_client(local_store: Optional[CollectionStore] = None) -> RegistryApi:
    """Return the client selected by feature flags."""
    local = LocalRegistryApi(local_store)
    if not get_flags().use_remote_registry:
        return local
    return FallbackRegistryApi(HttpRegistryApi(), local)
