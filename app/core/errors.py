"""
Error types shared by the registry service, the HTTP layer and the client.
"""

from typing import Optional


class RegistryError(Exception):
    """Base class. `message` is what ends up in the `{message}` response body."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidOtpError(RegistryError):
    status_code = 400

    def __init__(self, message: str = "Invalid OTP"):
        super().__init__(message)


class StorageError(RegistryError):
    """Persisted document could not be read or written."""

    status_code = 500


class RegistryRequestError(RegistryError):
    """Remote registry answered with a non-2xx status or an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code or 502


class LLMUnavailableError(RuntimeError):
    """LLM helpers are disabled or unconfigured."""
