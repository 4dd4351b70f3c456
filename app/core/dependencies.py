"""
FastAPI dependencies. Injected into route handlers.
"""

from ..services.registry import RegistryService, get_registry_service


def get_registry_service_dep() -> RegistryService:
    """Returns the server-side registry service (file or memory backed)."""
    return get_registry_service()
