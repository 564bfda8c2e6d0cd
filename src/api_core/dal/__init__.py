from api_core.dal.dynamodb_handler import DynamoDBHandler

__all__ = ['DynamoDBHandler']
