"""
Registry API.

GET  /api/registry    Users and agents snapshot
POST /api/signup      Register a user (unverified)
POST /api/verify-otp  Verify a user with the one-time code
POST /api/agents      Create an agent for a user
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..core.dependencies import get_registry_service_dep
from ..models.registry import (
    CreateAgentRequest,
    CreateAgentResponse,
    RegistrySnapshot,
    SignupRequest,
    User,
    VerifyOtpRequest,
    VerifyOtpResponse,
)
from ..services.registry import RegistryService

logger = logging.getLogger(__name__)

registry_router = APIRouter(tags=["registry"])


@registry_router.get("/registry", response_model=RegistrySnapshot)
async def get_registry(service: RegistryService = Depends(get_registry_service_dep)):
    """Full registry dump. Backs the registry inspector."""
    return await service.get_registry()


@registry_router.post("/signup", response_model=User, response_model_exclude_none=True)
async def signup(
    request: SignupRequest,
    service: RegistryService = Depends(get_registry_service_dep),
):
    return await service.signup(request)


@registry_router.post("/verify-otp", response_model=VerifyOtpResponse)
async def verify_otp(
    request: VerifyOtpRequest,
    service: RegistryService = Depends(get_registry_service_dep),
):
    return await service.verify_otp(request.email, request.otp)


@registry_router.post("/agents", response_model=CreateAgentResponse)
async def create_agent(
    request: CreateAgentRequest,
    service: RegistryService = Depends(get_registry_service_dep),
):
    return await service.create_agent(request)


# Must stay last: anything else under /api is a 404 with a message body
@registry_router.api_route("/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def not_found(path: str):
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
