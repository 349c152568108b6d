"""HTTP utilities for fetching chapter pages."""

from __future__ import annotations

import logging

import httpx

from .config import ExtractionConfig

LOGGER = logging.getLogger(__name__)


class HttpFetchError(RuntimeError):
    """Raised when a page cannot be fetched. Never retried."""

    reason = "fetch_error"


class FetchTimeoutError(HttpFetchError):
    reason = "timeout"


class FetchConnectionError(HttpFetchError):
    reason = "connection"


class HttpStatusError(HttpFetchError):
    reason = "http_status"

    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(f"Unexpected status {status_code} for {url}")
        self.status_code = status_code
        self.url = url


class HttpFetcher:
    """Thread-safe page fetcher sharing one connection pool across tasks."""

    def __init__(
        self,
        config: ExtractionConfig,
        *,
        client: httpx.Client | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client = client or self._build_client()
        self._owns_client = client is None

    def _build_client(self) -> httpx.Client:
        kwargs: dict[str, object] = {
            "timeout": self._config.timeout,
            "headers": {"User-Agent": self._config.user_agent},
            "follow_redirects": True,
        }
        if self._transport:
            kwargs["transport"] = self._transport
        return httpx.Client(**kwargs)

    def fetch_html(self, url: str) -> str:
        try:
            response = self._client.get(url)
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(f"Timed out after {self._config.timeout:g}s fetching {url}") from exc
        except httpx.TransportError as exc:
            raise FetchConnectionError(f"Connection failed for {url}: {exc}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise HttpFetchError(f"Request failed for {url}: {exc}") from exc

        if not response.is_success:
            raise HttpStatusError(response.status_code, url)

        LOGGER.debug("Fetched %s (%d bytes)", url, len(response.content))
        return response.text

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpFetcher":
        return self

    def __exit__(self, *_exc_info) -> None:
        self.close()
