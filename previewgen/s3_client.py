"""
S3Client - S3/MinIO operations for storing originals and previews.
"""

import logging
import os
from typing import Iterator, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from .config import S3Config


class S3Client:
    """
    Wrapper for S3/MinIO operations.

    Keys passed to the methods are relative to the configured prefix.
    """

    IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.webp', '.tif', '.tiff', '.bmp'}

    # S3 DeleteObjects accepts at most this many keys per request
    DELETE_BATCH_SIZE = 1000

    def __init__(self, config: S3Config, logger: Optional[logging.Logger] = None):
        """
        Initialize S3 client.

        Args:
            config: S3 configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        self._client = boto3.client(
            's3',
            endpoint_url=config.endpoint,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
            config=Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'}
            ),
            verify=config.verify_ssl
        )

    @property
    def client(self):
        """Return the underlying boto3 client."""
        return self._client

    def full_key(self, key: str) -> str:
        """Prepend the configured prefix to a key."""
        if not self.config.prefix:
            return key
        return f"{self.config.prefix.strip('/')}/{key.lstrip('/')}"

    def relative_key(self, full_key: str) -> str:
        """Strip the configured prefix from a key."""
        prefix = self.config.prefix.strip('/')
        if prefix and full_key.startswith(prefix + '/'):
            return full_key[len(prefix) + 1:]
        return full_key

    def list_images(self, folder: str = '') -> Iterator[dict]:
        """
        List image objects under a folder.

        Args:
            folder: Folder relative to the prefix

        Yields:
            Dict with 'key' (relative to the prefix), 'size', 'last_modified'
        """
        paginator = self._client.get_paginator('list_objects_v2')
        page_iterator = paginator.paginate(
            Bucket=self.config.bucket,
            Prefix=self.full_key(folder.rstrip('/') + '/' if folder else ''),
        )

        for page in page_iterator:
            for obj in page.get('Contents', []):
                key = obj['Key']
                ext = os.path.splitext(key)[1].lower()
                if ext in self.IMAGE_EXTENSIONS:
                    yield {
                        'key': self.relative_key(key),
                        'size': obj['Size'],
                        'last_modified': obj['LastModified'].isoformat(),
                    }

    def object_exists(self, key: str) -> bool:
        """Check if an object exists in S3."""
        try:
            self._client.head_object(Bucket=self.config.bucket, Key=self.full_key(key))
            return True
        except ClientError as e:
            if e.response['Error']['Code'] == '404':
                return False
            raise

    def download_object(self, key: str) -> bytes:
        """Download an object from S3."""
        response = self._client.get_object(Bucket=self.config.bucket, Key=self.full_key(key))
        return response['Body'].read()

    def upload_object(
        self,
        key: str,
        data: bytes,
        content_type: str = 'application/octet-stream'
    ) -> str:
        """
        Upload an object to S3.

        Returns:
            The key, for chaining into records
        """
        self._client.put_object(
            Bucket=self.config.bucket,
            Key=self.full_key(key),
            Body=data,
            ContentType=content_type
        )
        return key

    def delete_object(self, key: str) -> bool:
        """
        Delete an object from S3.

        Failures are logged rather than raised so that callers cleaning up
        records are not blocked by storage errors.

        Returns:
            True if the delete succeeded
        """
        try:
            self._client.delete_object(Bucket=self.config.bucket, Key=self.full_key(key))
            self.logger.info(f"Deleted {key}")
            return True
        except ClientError as e:
            self.logger.error(f"Error deleting {key}: {e}")
            return False

    def delete_objects(self, keys: List[str]) -> int:
        """
        Delete many objects, batching requests.

        Returns:
            Number of objects deleted
        """
        deleted = 0
        for start in range(0, len(keys), self.DELETE_BATCH_SIZE):
            batch = keys[start:start + self.DELETE_BATCH_SIZE]
            try:
                response = self._client.delete_objects(
                    Bucket=self.config.bucket,
                    Delete={
                        'Objects': [{'Key': self.full_key(key)} for key in batch],
                        'Quiet': False,
                    }
                )
            except ClientError as e:
                self.logger.error(f"Bulk delete of {len(batch)} objects failed: {e}")
                continue

            deleted += len(response.get('Deleted', []))
            for error in response.get('Errors', []):
                self.logger.error(
                    f"Error deleting {error.get('Key')}: {error.get('Code')} {error.get('Message')}"
                )

        if keys:
            self.logger.info(f"Deleted {deleted} of {len(keys)} objects")
        return deleted

    def get_presigned_url(self, key: str, expires_in: Optional[int] = None) -> str:
        """Presigned GET URL for an object."""
        return self._client.generate_presigned_url(
            'get_object',
            Params={'Bucket': self.config.bucket, 'Key': self.full_key(key)},
            ExpiresIn=expires_in or self.config.url_expiry,
        )
