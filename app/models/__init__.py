"""
Registry records and API schemas.
"""

from .registry import (
    User,
    Agent,
    PricingModel,
    RegistrySnapshot,
    SignupRequest,
    VerifyOtpRequest,
    VerifyOtpResponse,
    CreateAgentRequest,
    CreateAgentResponse,
)

__all__ = [
    "User",
    "Agent",
    "PricingModel",
    "RegistrySnapshot",
    "SignupRequest",
    "VerifyOtpRequest", "VerifyOtpResponse",
    "CreateAgentRequest", "CreateAgentResponse",
]
