"""Byte sources an XLSX container can be read from."""

import logging
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from xlsx_tables.resources.base import Resource
from xlsx_tables.resources.http import HTTPResource
from xlsx_tables.resources.local import LocalFileResource
from xlsx_tables.resources.memory import InMemoryResource
from xlsx_tables.resources.s3 import S3Resource

logger = logging.getLogger(__name__)

__all__ = [
    "HTTPResource",
    "InMemoryResource",
    "LocalFileResource",
    "Resource",
    "S3Resource",
    "resolve_resource",
]


def resolve_resource(
    source: str | Path | Resource,
    chunk_size: int = 16777216,
    **options: Any,
) -> Resource:
    """
    Turn a URI, path or ready-made resource into a Resource.

    Args:
        source: One of
            - Resource instance (returned as is)
            - S3 URI: 's3://bucket/key'
            - HTTP URL: 'https://example.com/file.xlsx'
            - Local path: '/path/to/file.xlsx'
        chunk_size: Default chunk size for streaming.
        **options: Resource-specific options:
            - For S3: client
            - For HTTP: headers, auth, timeout

    Raises:
        ValueError: If an S3 URI lacks a bucket or key.
    """
    if isinstance(source, Resource):
        return source
    if isinstance(source, Path):
        return LocalFileResource(source, chunk_size=chunk_size)

    parsed = urlparse(source)

    if parsed.scheme == "s3":
        bucket = parsed.netloc
        key = parsed.path.lstrip("/")

        if not bucket or not key:
            raise ValueError(f"Invalid S3 URI: {source}. Expected: s3://bucket/key")

        logger.info("Creating S3Resource for s3://%s/%s", bucket, key)
        return S3Resource(
            bucket=bucket,
            key=key,
            chunk_size=chunk_size,
            **{k: v for k, v in options.items() if k == "client"},
        )

    if parsed.scheme in ("http", "https"):
        logger.info("Creating HTTPResource for %s", source)
        return HTTPResource(
            url=source,
            chunk_size=chunk_size,
            **{k: v for k, v in options.items() if k in ("headers", "auth", "timeout")},
        )

    logger.info("Creating LocalFileResource for %s", source)
    return LocalFileResource(file_path=source, chunk_size=chunk_size)
