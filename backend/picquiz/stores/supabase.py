"""
Thin Supabase REST client shared by the remote stores.

Wraps one ``httpx.Client`` with the project's API key headers and a fixed
timeout. Transport errors, timeouts and unexpected status codes are turned
into StoreUnavailableError; callers decide which status codes are expected.
"""
import logging
from typing import Any, Iterable, Optional

import httpx

from picquiz.stores.base import StoreUnavailableError

logger = logging.getLogger(__name__)


class SupabaseClient:
    """
    Attributes:
        base_url: Supabase project URL (e.g., "https://xyz.supabase.co")
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )
        logger.debug(f"SupabaseClient initialized with base_url: {self.base_url}")

    def request(
        self,
        store: str,
        operation: str,
        method: str,
        path: str,
        *,
        expected: Iterable[int] = (200, 201, 204),
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Send one request and return the response if its status is expected.

        Raises:
            StoreUnavailableError: on connection errors, timeouts or any
                status code not listed in ``expected``
        """
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout after {self.timeout}s during {store}.{operation}: {e}")
            raise StoreUnavailableError(store, operation, e) from e
        except httpx.HTTPError as e:
            logger.error(f"Connection error during {store}.{operation}: {e}")
            raise StoreUnavailableError(store, operation, e) from e

        if response.status_code not in tuple(expected):
            logger.error(
                f"HTTP {response.status_code} during {store}.{operation}: "
                f"{response.text[:200]}"
            )
            raise StoreUnavailableError(
                store, operation, RuntimeError(f"HTTP {response.status_code}")
            )
        return response

    def json(self, store: str, operation: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Malformed JSON during {store}.{operation}: {e}")
            raise StoreUnavailableError(store, operation, e) from e

    def close(self) -> None:
        self._client.close()
