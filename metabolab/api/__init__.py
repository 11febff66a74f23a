"""API package exposing FastAPI routers and schemas."""

from .routes import ServiceRegistry, api_router, configure_services, get_services

__all__ = ["ServiceRegistry", "api_router", "configure_services", "get_services"]
