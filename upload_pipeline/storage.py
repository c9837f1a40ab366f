"""
Module for committing files to S3-compatible object storage.
"""
import logging
from typing import Optional, Protocol
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import NameCollisionError, StorageError

logger = logging.getLogger(__name__)

COLLISION_ERROR_CODES = {
    'PreconditionFailed',
    'ConditionalRequestConflict',
}


def is_collision_error(exception: Exception) -> bool:
    """Check if a store error means the object name is already taken.

    Args:
        exception: The exception to check

    Returns:
        True if the write was refused because the key exists
    """
    if isinstance(exception, ClientError):
        error = exception.response.get('Error', {})
        if error.get('Code') in COLLISION_ERROR_CODES:
            return True
        status = exception.response.get('ResponseMetadata', {}).get('HTTPStatusCode')
        return status in (409, 412)
    return False


def _error_message(exception: Exception) -> str:
    if isinstance(exception, ClientError):
        error = exception.response.get('Error', {})
        return error.get('Message') or error.get('Code') or str(exception)
    return str(exception)


class ObjectStore(Protocol):
    """Opaque write-and-address capability the ingestion handler relies on."""

    def put(self, name: str, content: bytes, content_type: str,
            overwrite: bool = False) -> str:
        ...

    def public_url(self, name: str) -> str:
        ...


class S3ObjectStore:
    """Stores objects in an S3 bucket and resolves their public addresses."""

    def __init__(self, bucket: str, region: Optional[str] = None,
                 endpoint_url: Optional[str] = None,
                 public_base_url: Optional[str] = None,
                 client=None):
        """Initialize the S3 object store.

        Args:
            bucket: Destination bucket name
            region: AWS region, defaults to the boto3 session region
            endpoint_url: Custom endpoint for S3-compatible services
            public_base_url: Base URL objects are publicly served from
            client: Pre-built boto3 S3 client
        """
        if not bucket:
            raise ValueError("bucket cannot be empty")
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip('/') if public_base_url else None
        self.s3_client = client or boto3.client(
            's3', region_name=region, endpoint_url=endpoint_url
        )

    def put(self, name: str, content: bytes, content_type: str,
            overwrite: bool = False) -> str:
        """Write an object to the bucket.

        Args:
            name: Object key
            content: Object bytes
            content_type: MIME type stored with the object
            overwrite: Replace an existing object with the same key

        Returns:
            The stored object's path inside the bucket

        Raises:
            NameCollisionError: The key exists and overwrite is False
            StorageError: Any other store failure
        """
        extra_args = {} if overwrite else {'IfNoneMatch': '*'}
        if content_type:
            extra_args['ContentType'] = content_type

        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=name,
                Body=content,
                **extra_args
            )
        except ClientError as e:
            if is_collision_error(e):
                logger.warning(f"Object {name} already exists in {self.bucket}")
                raise NameCollisionError(f"Object {name} already exists") from e
            logger.error(f"Error writing {name} to {self.bucket}: {e}")
            raise StorageError(_error_message(e)) from e
        except BotoCoreError as e:
            logger.error(f"Error writing {name} to {self.bucket}: {e}")
            raise StorageError(_error_message(e)) from e

        logger.debug(f"Stored {name} ({len(content)} bytes) in {self.bucket}")
        return name

    def public_url(self, name: str) -> str:
        key = quote(name)
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        region = self.s3_client.meta.region_name or 'us-east-1'
        return f"https://{self.bucket}.s3.{region}.amazonaws.com/{key}"
