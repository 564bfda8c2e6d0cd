"""
DynamoDB data access layer.

A thin key-value facade over one table (single-table layout with ``PK``/``SK``
keys by default). DynamoDB client errors are translated into the error
taxonomy: failed conditions become ``ConflictError`` (409), everything else
``ExternalServiceError`` (502).
"""

import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from aws_lambda_powertools.metrics import MetricUnit
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from api_core.clients import AwsClients
from api_core.config.env_vars import get_router_env_vars
from api_core.errors import ConflictError, ExternalServiceError
from api_core.observability import logger, metrics, tracer

DYNAMODB_SERVICE = 'DynamoDB'


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DynamoDBHandler:
    """
    Args:
        clients: Caller-owned AWS client handle
        table_name: Table name; defaults to TABLE_NAME
        partition_key: Partition key attribute name
        sort_key: Sort key attribute name, or None for hash-only tables
    """

    def __init__(
        self,
        clients: AwsClients,
        table_name: Optional[str] = None,
        partition_key: str = 'PK',
        sort_key: Optional[str] = 'SK',
    ):
        self.table_name = table_name or get_router_env_vars().TABLE_NAME
        self.partition_key = partition_key
        self.sort_key = sort_key
        self.table = clients.dynamodb.Table(self.table_name)

    @contextmanager
    def _operation(self, operation: str) -> Iterator[None]:
        start_time = time.perf_counter()
        try:
            yield
        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error'].get('Message', '')
            metrics.add_metric(name=f'DynamoDB{operation}Error', unit=MetricUnit.Count, value=1)

            if error_code == 'ConditionalCheckFailedException':
                logger.info('DynamoDB condition check failed', extra={
                    'table_name': self.table_name,
                    'operation': operation,
                })
                raise ConflictError('Item condition check failed', context={'operation': operation})

            logger.error(f'DynamoDB {operation} error', extra={
                'error_code': error_code,
                'error_message': error_message,
                'table_name': self.table_name,
                'operation': operation,
            })
            raise ExternalServiceError(DYNAMODB_SERVICE, f'{operation} failed: {error_code}')
        except BotoCoreError as e:
            metrics.add_metric(name=f'DynamoDB{operation}Error', unit=MetricUnit.Count, value=1)
            logger.error(f'DynamoDB connection error during {operation}', extra={
                'error': str(e),
                'table_name': self.table_name,
            })
            raise ExternalServiceError(DYNAMODB_SERVICE, f'{operation} failed: connection error')
        else:
            duration_ms = (time.perf_counter() - start_time) * 1000
            metrics.add_metric(name=f'DynamoDB{operation}Duration', unit=MetricUnit.Milliseconds, value=duration_ms)

    def key(self, partition_value: str, sort_value: Optional[str] = None) -> Dict[str, str]:
        key = {self.partition_key: partition_value}
        if self.sort_key is not None:
            key[self.sort_key] = sort_value
        return key

    @tracer.capture_method(capture_response=False)
    def get_item(self, key: Dict[str, Any], consistent_read: bool = False) -> Optional[Dict[str, Any]]:
        with self._operation('GetItem'):
            response = self.table.get_item(Key=key, ConsistentRead=consistent_read)
        return response.get('Item')

    @tracer.capture_method(capture_response=False)
    def put_item(self, item: Dict[str, Any], only_if_new: bool = False) -> Dict[str, Any]:
        """
        Store an item, stamping ``created_at`` (when missing) and ``updated_at``.

        Raises:
            ConflictError: When ``only_if_new`` is set and the key already exists
        """
        now = _now()
        item = {**item, 'updated_at': now}
        item.setdefault('created_at', now)

        put_kwargs: Dict[str, Any] = {'Item': item}
        if only_if_new:
            put_kwargs['ConditionExpression'] = Attr(self.partition_key).not_exists()

        with self._operation('PutItem'):
            self.table.put_item(**put_kwargs)

        logger.debug('Item stored', extra={'table_name': self.table_name})
        return item

    @tracer.capture_method(capture_response=False)
    def update_item(
        self,
        key: Dict[str, Any],
        updates: Dict[str, Any],
        must_exist: bool = True,
    ) -> Dict[str, Any]:
        """
        Set the given attributes and return the updated item.

        Raises:
            ConflictError: When ``must_exist`` is set and the item does not exist
        """
        updates = {**updates, 'updated_at': _now()}
        names = {f'#f{index}': name for index, name in enumerate(updates)}
        values = {f':v{index}': value for index, value in enumerate(updates.values())}
        assignments = ', '.join(f'#f{index} = :v{index}' for index in range(len(updates)))

        update_kwargs: Dict[str, Any] = {
            'Key': key,
            'UpdateExpression': f'SET {assignments}',
            'ExpressionAttributeNames': names,
            'ExpressionAttributeValues': values,
            'ReturnValues': 'ALL_NEW',
        }
        if must_exist:
            update_kwargs['ConditionExpression'] = Attr(self.partition_key).exists()

        with self._operation('UpdateItem'):
            response = self.table.update_item(**update_kwargs)
        return response.get('Attributes', {})

    @tracer.capture_method(capture_response=False)
    def delete_item(self, key: Dict[str, Any]) -> bool:
        """Delete an item; returns False when there was nothing to delete."""
        with self._operation('DeleteItem'):
            response = self.table.delete_item(Key=key, ReturnValues='ALL_OLD')
        return bool(response.get('Attributes'))

    def _query(self, query_kwargs: Dict[str, Any], limit: Optional[int]) -> List[Dict[str, Any]]:
        if limit:
            query_kwargs['Limit'] = limit

        with self._operation('Query'):
            response = self.table.query(**query_kwargs)

        items = response.get('Items', [])
        logger.debug('Query completed', extra={
            'table_name': self.table_name,
            'items_count': len(items),
            'has_more_results': 'LastEvaluatedKey' in response,
        })
        return items

    @tracer.capture_method(capture_response=False)
    def query(
        self,
        partition_value: str,
        sort_key_prefix: Optional[str] = None,
        limit: Optional[int] = None,
        scan_forward: bool = True,
    ) -> List[Dict[str, Any]]:
        """Items sharing a partition key, optionally narrowed by sort key prefix."""
        condition = Key(self.partition_key).eq(partition_value)
        if sort_key_prefix is not None and self.sort_key is not None:
            condition = condition & Key(self.sort_key).begins_with(sort_key_prefix)

        return self._query({'KeyConditionExpression': condition, 'ScanIndexForward': scan_forward}, limit)

    @tracer.capture_method(capture_response=False)
    def query_index(
        self,
        index_name: str,
        key_name: str,
        key_value: Any,
        limit: Optional[int] = None,
        scan_forward: bool = True,
    ) -> List[Dict[str, Any]]:
        """Items from a secondary index by its partition key."""
        return self._query({
            'IndexName': index_name,
            'KeyConditionExpression': Key(key_name).eq(key_value),
            'ScanIndexForward': scan_forward,
        }, limit)
