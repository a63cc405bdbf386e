"""
HTTP client for the Sleeper API.

Performs a single GET per call and converts every failure (non-2xx status,
timeout, transport error, undecodable body) into an ``UpstreamError``.
No retries happen here.
"""

import json
import logging
from typing import Any, Mapping, Optional

import httpx

from .config import get_http_headers, create_http_client, LONG_TIMEOUT
from .errors import UpstreamError, ErrorType

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.sleeper.app/v1"


class UpstreamClient:
    """Read-only access to the Sleeper API."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, service_name: str = "sleeper_api"):
        self.base_url = base_url.rstrip("/")
        self.service_name = service_name

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get(
        self,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[httpx.Timeout] = None
    ) -> Any:
        """
        GET ``path`` and return the decoded JSON body.

        Args:
            path: API path such as ``/league/123/rosters``
            params: Query parameters; ``None`` values are omitted
            timeout: Override for the default client timeout

        Raises:
            UpstreamError: On any failure
        """
        url = self.url_for(path)
        query = {k: v for k, v in (params or {}).items() if v is not None}
        headers = get_http_headers(self.service_name)

        try:
            async with create_http_client(timeout) as client:
                response = await client.get(url, params=query or None, headers=headers)
                response.raise_for_status()
                return response.json()

        except httpx.TimeoutException:
            raise UpstreamError(
                f"Request timed out while fetching {path}",
                ErrorType.TIMEOUT,
                path=path
            )
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                message = f"Sleeper API resource not found: {path}"
            elif status == 429:
                message = "Rate limit exceeded for Sleeper API - please try again in a few minutes"
            else:
                message = f"HTTP {status}: {e.response.reason_phrase}"
            raise UpstreamError(message, ErrorType.HTTP, status_code=status, path=path)
        except httpx.HTTPError as e:
            raise UpstreamError(
                f"Network error while fetching {path}: {str(e)}",
                ErrorType.NETWORK,
                path=path
            )
        except (json.JSONDecodeError, ValueError) as e:
            raise UpstreamError(
                f"Malformed JSON from Sleeper API for {path}: {str(e)}",
                ErrorType.UPSTREAM_PAYLOAD,
                path=path
            )

    async def get_directory(self, domain: str) -> Any:
        """Fetch the full player directory for a sport (several megabytes)."""
        path = f"/players/{domain}"
        logger.info(f"Fetching full player directory from Sleeper API ({domain})")
        data = await self.get(path, timeout=LONG_TIMEOUT)
        if not isinstance(data, dict):
            raise UpstreamError(
                f"Unexpected player directory shape for {domain}: {type(data).__name__}",
                ErrorType.UPSTREAM_PAYLOAD,
                path=path
            )
        return data
