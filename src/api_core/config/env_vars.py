"""
Environment variable models for type-safe configuration.

This module defines the Pydantic model for environment variables read by the
router, middleware and AWS collaborators. Every value here is only a default:
components accept explicit constructor arguments that take precedence.
"""

from typing import Annotated, Optional

from aws_lambda_env_modeler import BaseModel, get_environment_variables
from pydantic import Field


class RouterEnvVars(BaseModel):
    """Environment variables for routed Lambda handlers."""

    # Environment name (development, staging, production)
    ENVIRONMENT: Annotated[str, Field(
        default='development',
        description='Deployment environment name',
        pattern=r'^(development|dev|test|staging|production|prod)$'
    )] = 'development'

    AWS_REGION: Annotated[str, Field(
        default='us-east-1',
        description='AWS region for service clients'
    )] = 'us-east-1'

    LOG_LEVEL: Annotated[str, Field(
        default='INFO',
        description='Log level for application logging',
        pattern=r'^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$'
    )] = 'INFO'

    # Request/response logging in the router and logging middleware
    ENABLE_REQUEST_LOGGING: Annotated[str, Field(
        default='true',
        description='Enable request logging (true/false)',
        pattern=r'^(true|false)$'
    )] = 'true'

    # Expose raw messages of unclassified errors; non-production only
    DEBUG_ERRORS: Annotated[str, Field(
        default='false',
        description='Expose unexpected error details in responses (true/false)',
        pattern=r'^(true|false)$'
    )] = 'false'

    CORS_ORIGIN: Annotated[str, Field(
        default='*',
        description='Comma separated list of allowed CORS origins'
    )] = '*'

    # Admin endpoints allow no cross-origin callers unless set
    ADMIN_CORS_ORIGIN: Annotated[Optional[str], Field(
        default=None,
        description='Comma separated list of origins allowed to call admin endpoints'
    )] = None

    JWT_SECRET: Annotated[Optional[str], Field(
        default=None,
        description='Shared secret for bearer token verification'
    )] = None

    JWT_ISSUER: Annotated[Optional[str], Field(
        default=None,
        description='Expected token issuer'
    )] = None

    JWT_AUDIENCE: Annotated[Optional[str], Field(
        default=None,
        description='Expected token audience'
    )] = None

    EVENT_BUS_NAME: Annotated[str, Field(
        default='default',
        description='EventBridge bus for domain events'
    )] = 'default'

    TABLE_NAME: Annotated[str, Field(
        default='main-table',
        description='DynamoDB table name',
        min_length=1
    )] = 'main-table'

    HANDLER_TIMEOUT_SECONDS: Annotated[Optional[float], Field(
        default=None,
        description='Optional timeout applied to route handlers',
        gt=0,
        le=900
    )] = None

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT in ('production', 'prod')

    @property
    def request_logging_enabled(self) -> bool:
        """Check if request logging is enabled."""
        return self.ENABLE_REQUEST_LOGGING.lower() == 'true'

    @property
    def debug_errors(self) -> bool:
        """Check if unexpected error details may be exposed."""
        return self.DEBUG_ERRORS.lower() == 'true' and not self.is_production

    @property
    def cors_origins(self) -> list:
        """Allowed CORS origins as a list."""
        return [origin.strip() for origin in self.CORS_ORIGIN.split(',') if origin.strip()]

    @property
    def admin_cors_origins(self) -> list:
        """Allowed admin CORS origins; empty when ADMIN_CORS_ORIGIN is unset."""
        return [origin.strip() for origin in (self.ADMIN_CORS_ORIGIN or '').split(',') if origin.strip()]


def get_router_env_vars() -> RouterEnvVars:
    """
    Get typed environment variables for routed handlers.

    Returns:
        Validated environment variables model instance
    """
    return get_environment_variables(model=RouterEnvVars)
