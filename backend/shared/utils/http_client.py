"""
Async HTTP client wrapper for data source requests.
Includes timeout management and metrics collection. Requests are never retried.
"""
from __future__ import annotations

import time
from typing import Any, Optional

import httpx

from shared.utils.logging import get_logger
from shared.utils.metrics import SOURCE_LATENCY, SOURCE_REQUESTS

logger = get_logger(__name__)


class SourceHTTPClient:
    """
    Async HTTP client tailored for third-party football data sources.
    Handles timeouts and records metrics per request. A failed request is
    raised to the adapter, which degrades it to an absent result.
    """

    def __init__(
        self,
        source_name: str,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout_s: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._source = source_name
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_s
        self._default_headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def started(self) -> bool:
        return self._client is not None

    async def start(self) -> None:
        """Initialize the underlying httpx client."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._default_headers,
            timeout=httpx.Timeout(self._timeout, connect=min(self._timeout, 5.0)),
            follow_redirects=True,
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Perform a GET request.

        Raises:
            httpx.HTTPStatusError: On non-2xx responses.
            httpx.TimeoutException: If the request timed out.
        """
        return await self._request("GET", path, params=params, extra_headers=extra_headers)

    async def post_json(
        self,
        path: str,
        payload: dict[str, Any],
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Perform a POST with a JSON body. Same error contract as get()."""
        return await self._request("POST", path, json=payload, extra_headers=extra_headers)

    async def post_form(
        self,
        path: str,
        data: dict[str, str],
        params: dict[str, Any] | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """POST form-encoded data (SPARQL endpoints)."""
        return await self._request(
            "POST", path, params=params, data=data, extra_headers=extra_headers
        )

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        data: dict[str, str] | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        if not self._client:
            raise RuntimeError("SourceHTTPClient not started. Call start() first.")

        merged_headers = {**self._default_headers}
        if extra_headers:
            merged_headers.update(extra_headers)

        start_time = time.perf_counter()
        status = "unknown"
        try:
            resp = await self._client.request(
                method, path, params=params, json=json, data=data, headers=merged_headers
            )
            status = str(resp.status_code)
            resp.raise_for_status()
            logger.debug(
                "source_request_success",
                source=self._source,
                path=path,
                status=resp.status_code,
                latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            return resp

        except httpx.TimeoutException:
            status = "timeout"
            logger.warning("source_timeout", source=self._source, path=path)
            raise

        except httpx.HTTPStatusError as exc:
            logger.info(
                "source_http_error",
                source=self._source,
                path=path,
                status=exc.response.status_code,
            )
            raise

        finally:
            SOURCE_REQUESTS.labels(source=self._source, status=status).inc()
            SOURCE_LATENCY.labels(source=self._source).observe(time.perf_counter() - start_time)
