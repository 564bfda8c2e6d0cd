"""
AWS client handle.

Create one ``AwsClients`` per process, at module level in the Lambda entry
point, and pass it to the services that need AWS access. Clients are
created on first use and reused across warm invocations.
"""

from typing import Any, Dict, Optional

import boto3

from api_core.config.env_vars import get_router_env_vars


class AwsClients:
    def __init__(self, region_name: Optional[str] = None, endpoint_url: Optional[str] = None):
        self.region_name = region_name or get_router_env_vars().AWS_REGION
        self.endpoint_url = endpoint_url
        self._clients: Dict[str, Any] = {}
        self._resources: Dict[str, Any] = {}

    def _kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {'region_name': self.region_name}
        if self.endpoint_url:
            kwargs['endpoint_url'] = self.endpoint_url
        return kwargs

    def client(self, service_name: str) -> Any:
        if service_name not in self._clients:
            self._clients[service_name] = boto3.client(service_name, **self._kwargs())
        return self._clients[service_name]

    def resource(self, service_name: str) -> Any:
        if service_name not in self._resources:
            self._resources[service_name] = boto3.resource(service_name, **self._kwargs())
        return self._resources[service_name]

    @property
    def events(self) -> Any:
        """EventBridge client."""
        return self.client('events')

    @property
    def dynamodb(self) -> Any:
        """DynamoDB service resource."""
        return self.resource('dynamodb')
