"""
Users microservice.

Routes:
    GET    /health
    GET    /users/me
    GET    /users/{userId}
    PUT    /users/{userId}
    DELETE /users/{userId}

Profiles live in the shared single table under ``PK=USER#<id>, SK=PROFILE``;
updates publish a ``user.updated`` event.
"""

from functools import lru_cache
from typing import Any, Dict, Optional

from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.metrics import MetricUnit
from pydantic import BaseModel, ConfigDict, Field

from api_core.claims import require_user_id
from api_core.clients import AwsClients
from api_core.dal import DynamoDBHandler
from api_core.errors import ForbiddenError, NotFoundError
from api_core.events import EventPublisher, create_event
from api_core.middleware import create_public_api_handler
from api_core.observability import logger, metrics, tracer
from api_core.responses import no_content
from api_core.routing import HandlerContext, Router

SERVICE_SOURCE = 'service.users'
USER_UPDATED = 'user.updated'
PROFILE_SORT_KEY = 'PROFILE'
USER_INDEX = 'GSI1'
KEY_ATTRIBUTES = ('PK', 'SK', 'GSI1PK', 'GSI1SK')


class UserIdPath(BaseModel):
    userId: str = Field(..., min_length=1, max_length=128)


class UpdateUserRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, pattern=r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
    phone: Optional[str] = Field(default=None, pattern=r'^\+?[0-9\- ]{7,20}$')


class UserService:
    """User profile persistence and change events."""

    def __init__(self, store: DynamoDBHandler, publisher: EventPublisher):
        self.store = store
        self.publisher = publisher

    @staticmethod
    def _to_profile(item: Dict[str, Any]) -> Dict[str, Any]:
        return {name: value for name, value in item.items() if name not in KEY_ATTRIBUTES}

    def _key(self, user_id: str) -> Dict[str, str]:
        return self.store.key(f'USER#{user_id}', PROFILE_SORT_KEY)

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        item = self.store.get_item(self._key(user_id))
        if item is None:
            raise NotFoundError('User', user_id)
        return self._to_profile(item)

    def update_profile(self, user_id: str, changes: UpdateUserRequest, correlation_id: Optional[str] = None) -> Dict[str, Any]:
        updates = changes.model_dump(exclude_none=True)
        current = self.get_profile(user_id)
        if not updates:
            return current

        item = self.store.update_item(self._key(user_id), updates)
        profile = self._to_profile(item)

        result = self.publisher.publish(create_event(
            USER_UPDATED,
            SERVICE_SOURCE,
            {'userId': user_id, 'changes': updates},
            correlation_id=correlation_id,
        ))
        if not result.success:
            # the profile is already stored; a lost event must not fail the request
            logger.warning('user.updated event not published', extra={'user_id': user_id})

        metrics.add_metric(name='UserProfileUpdated', unit=MetricUnit.Count, value=1)
        return profile

    def delete_profile(self, user_id: str) -> None:
        if not self.store.delete_item(self._key(user_id)):
            raise NotFoundError('User', user_id)
        metrics.add_metric(name='UserDeleted', unit=MetricUnit.Count, value=1)


@lru_cache(maxsize=1)
def get_user_service() -> UserService:
    clients = AwsClients()
    return UserService(DynamoDBHandler(clients), EventPublisher(clients))


def _require_owner(ctx: HandlerContext, user_id: str) -> None:
    if require_user_id(ctx.event) != user_id:
        raise ForbiddenError('You can only modify your own profile')


router = Router()


@router.get('/health')
def health(ctx: HandlerContext) -> Dict[str, str]:
    return {'status': 'healthy', 'service': 'users'}


@router.get('/users/me')
def get_current_user(ctx: HandlerContext) -> Dict[str, Any]:
    return get_user_service().get_profile(require_user_id(ctx.event))


@router.get('/users/{userId}', path_params=UserIdPath)
def get_user(ctx: HandlerContext) -> Dict[str, Any]:
    return get_user_service().get_profile(ctx.event.path_parameters.userId)


@router.put('/users/{userId}', body=UpdateUserRequest, path_params=UserIdPath)
def update_user(ctx: HandlerContext) -> Dict[str, Any]:
    user_id = ctx.event.path_parameters.userId
    _require_owner(ctx, user_id)
    correlation_id = ctx.event.headers.get('x-correlation-id')
    return get_user_service().update_profile(user_id, ctx.event.body, correlation_id=correlation_id)


@router.delete('/users/{userId}', path_params=UserIdPath)
def delete_user(ctx: HandlerContext) -> Dict[str, Any]:
    user_id = ctx.event.path_parameters.userId
    _require_owner(ctx, user_id)
    get_user_service().delete_profile(user_id)
    return no_content()


api = create_public_api_handler(router)


@metrics.log_metrics(capture_cold_start_metric=True)
@tracer.capture_lambda_handler(capture_response=False)
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_HTTP)
def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    return api(event, context)
