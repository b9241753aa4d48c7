"""AWS S3 resource."""

from collections.abc import Iterator
import logging
from typing import Any

from typing_extensions import override

from xlsx_tables.exceptions import ContainerError
from xlsx_tables.resources.base import XLSX_MIME_TYPE, Resource

logger = logging.getLogger(__name__)


class S3Resource(Resource):
    """
    Read an XLSX object from AWS S3.

    Each read issues a new ``get_object`` call and pulls the body in chunks.
    """

    def __init__(
        self,
        bucket: str,
        key: str,
        client: Any = None,
        chunk_size: int = 16777216,
    ) -> None:
        """
        Initialize S3Resource.

        Args:
            bucket: S3 bucket name.
            key: S3 object key.
            client: Boto3 S3 client instance. If None, a default client is created.
            chunk_size: Size of chunks to read from S3 (default: 16MB).

        Raises:
            ImportError: If boto3 is not installed.
            ValueError: If bucket or key is empty.
        """
        try:
            import boto3
        except ImportError as e:
            raise ImportError(
                "boto3 is required for S3Resource. Install with: pip install xlsx-tables[s3]"
            ) from e

        if not bucket or not key:
            raise ValueError("bucket and key must be non-empty")

        self.bucket = bucket
        self.key = key
        self.chunk_size = chunk_size
        self.client = client or boto3.client("s3")

        logger.info("S3Resource initialized for s3://%s/%s", bucket, key)

    @property
    @override
    def name(self) -> str:
        return self.key.rsplit("/", 1)[-1]

    @override
    def read_chunks(self) -> Iterator[bytes]:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self.key)
            body = response["Body"]
            try:
                while True:
                    chunk = body.read(self.chunk_size)
                    if not chunk:
                        break
                    yield chunk
            finally:
                body.close()
        except (BotoCoreError, ClientError) as e:
            logger.exception("Error reading S3 object s3://%s/%s: %s", self.bucket, self.key, e)
            raise ContainerError(
                f"Failed to read S3 object s3://{self.bucket}/{self.key}: {e}"
            ) from e

    def _head(self) -> dict[str, Any] | None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            response: dict[str, Any] = self.client.head_object(Bucket=self.bucket, Key=self.key)
        except (BotoCoreError, ClientError) as e:
            logger.warning(
                "Could not retrieve metadata for s3://%s/%s: %s", self.bucket, self.key, e
            )
            return None
        return response

    @override
    def exists(self) -> bool:
        return self._head() is not None

    @override
    def get_metadata(self) -> dict[str, Any]:
        response = self._head() or {}
        return {
            "size": response.get("ContentLength", 0),
            "type": response.get("ContentType", XLSX_MIME_TYPE),
            "source_type": "s3",
            "bucket": self.bucket,
            "key": self.key,
            "last_modified": response.get("LastModified"),
        }
