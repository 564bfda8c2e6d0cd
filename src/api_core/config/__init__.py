"""Typed configuration for the shared API core."""

from api_core.config.env_vars import RouterEnvVars, get_router_env_vars

__all__ = [
    "RouterEnvVars",
    "get_router_env_vars",
]
