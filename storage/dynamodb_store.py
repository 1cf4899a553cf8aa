"""DynamoDB key/value store for the shared survey data."""
import logging
import time
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from storage.keys import storage_key

logger = logging.getLogger(__name__)


class DynamoDBKeyValueStore:
    """Key/value store backed by a DynamoDB table with a 'key' hash key."""

    KEY_ATTRIBUTE = 'key'
    VALUE_ATTRIBUTE = 'value'

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBKeyValueStore for table: {table_name}")

    def get(self, key: str, shared: bool = True) -> Optional[str]:
        """
        Read the text stored under a key.

        Args:
            key: Logical key
            shared: Visibility scope of the key

        Returns:
            Stored text, or None if the key has never been written

        Raises:
            ClientError: If the table cannot be read
        """
        item_key = storage_key(key, shared)
        try:
            response = self.table.get_item(
                Key={self.KEY_ATTRIBUTE: item_key},
                ConsistentRead=True
            )
        except ClientError as e:
            logger.error(f"Error reading '{item_key}' from DynamoDB: {e}")
            raise

        item = response.get('Item')
        if item is None:
            return None
        return item.get(self.VALUE_ATTRIBUTE)

    def set(self, key: str, value: str, shared: bool = True) -> None:
        """
        Overwrite the text stored under a key with a single PutItem.

        Args:
            key: Logical key
            value: Serialized text
            shared: Visibility scope of the key

        Raises:
            ClientError: If the write is rejected
        """
        item_key = storage_key(key, shared)
        try:
            self.table.put_item(Item={
                self.KEY_ATTRIBUTE: item_key,
                self.VALUE_ATTRIBUTE: value,
                'last_updated': int(time.time())
            })
        except ClientError as e:
            logger.error(f"Error writing '{item_key}' to DynamoDB: {e}")
            raise

        logger.info(f"Wrote {len(value)} characters to '{item_key}'")
