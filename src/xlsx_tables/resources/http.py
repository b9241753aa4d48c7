"""HTTP/HTTPS resource."""

from collections.abc import Iterator
import logging
from typing import Any
from urllib.parse import urlparse

from typing_extensions import override

from xlsx_tables.exceptions import ContainerError
from xlsx_tables.resources.base import XLSX_MIME_TYPE, Resource

logger = logging.getLogger(__name__)


class HTTPResource(Resource):
    """
    An XLSX file served over HTTP/HTTPS.

    Every ``read_chunks`` call issues its own streaming GET, so the body is
    never buffered and the resource can be read any number of times.
    Metadata and existence checks use HEAD requests.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
        timeout: int = 30,
        chunk_size: int = 16777216,
    ) -> None:
        """
        Args:
            url: HTTP/HTTPS URL of the workbook.
            headers: Extra request headers.
            auth: (username, password) for basic auth.
            timeout: Request timeout in seconds.
            chunk_size: Size of chunks to read (default: 16MB).

        Raises:
            ImportError: If httpx is not installed.
            ValueError: If the URL is not an HTTP/HTTPS URL.
        """
        try:
            import httpx  # noqa: F401
        except ImportError as e:
            raise ImportError(
                "httpx is required for HTTPResource. Install with: pip install xlsx-tables[http]"
            ) from e

        if not url or not url.startswith(("http://", "https://")):
            raise ValueError("url must be a valid HTTP/HTTPS URL")

        self.url = url
        self.headers = headers or {}
        self.auth = auth
        self.timeout = timeout
        self.chunk_size = chunk_size

        logger.info("HTTPResource initialized for %s", url)

    @property
    @override
    def name(self) -> str:
        path = urlparse(self.url).path.rstrip("/")
        return path.rsplit("/", 1)[-1] or self.url

    def _request_options(self) -> dict[str, Any]:
        return {
            "headers": self.headers,
            "auth": self.auth,
            "timeout": self.timeout,
            "follow_redirects": True,
        }

    @override
    def read_chunks(self) -> Iterator[bytes]:
        import httpx

        try:
            with httpx.stream("GET", self.url, **self._request_options()) as response:
                response.raise_for_status()
                for chunk in response.iter_bytes(chunk_size=self.chunk_size):
                    if chunk:
                        yield chunk
        except httpx.HTTPError as e:
            logger.exception("Error reading from %s: %s", self.url, e)
            raise ContainerError(f"Failed to read from {self.url}: {e}") from e

    def _head(self) -> Any:
        import httpx

        try:
            return httpx.head(self.url, **self._request_options())
        except httpx.HTTPError as e:
            logger.warning("HEAD request to %s failed: %s", self.url, e)
            return None

    @override
    def exists(self) -> bool:
        response = self._head()
        return response is not None and response.is_success

    @override
    def get_metadata(self) -> dict[str, Any]:
        response = self._head()
        headers: Any = response.headers if response is not None and response.is_success else {}
        length = headers.get("content-length")

        return {
            "size": int(length) if length else 0,
            "type": headers.get("content-type", XLSX_MIME_TYPE),
            "source_type": "http",
            "url": self.url,
            "last_modified": headers.get("last-modified"),
        }
