import asyncio
import logging
import time
from typing import Optional
from urllib.parse import urlparse

import httpx

from scorehub.config import settings

logger = logging.getLogger("scorehub.http_client")

# Retryable HTTP status codes
_RETRYABLE_STATUSES = {429, 500, 502, 503, 504}
_MAX_DELAY_SECONDS = 30.0


class CircuitOpenError(httpx.HTTPError):
    """Raised instead of calling a provider whose circuit is open."""


class CircuitBreaker:
    """Opens after consecutive failures, half-opens after ``recovery_timeout``."""

    def __init__(self, failure_threshold: int = 3, recovery_timeout: int = 300):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self.is_open = False

    def record_success(self) -> None:
        self.failure_count = 0
        self.is_open = False

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.monotonic()
        if self.failure_count >= self.failure_threshold and not self.is_open:
            self.is_open = True
            logger.warning("Circuit breaker OPEN after %d failures", self.failure_count)

    def can_attempt(self) -> bool:
        if not self.is_open:
            return True
        return bool(
            self.last_failure_time
            and time.monotonic() - self.last_failure_time > self.recovery_timeout
        )


def _safe_url(url: str) -> str:
    """Strip query params (may contain API keys) for safe logging."""
    parsed = urlparse(str(url))
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


class ResilientClient:
    """httpx.AsyncClient wrapper: explicit timeout, bounded retries, circuit breaker.

    Non-retryable responses (including 4xx) are returned as-is; callers decide
    whether to ``raise_for_status()``.
    """

    def __init__(
        self,
        name: str,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None,
        headers: Optional[dict] = None,
    ):
        self._client = httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS,
            headers=headers,
            follow_redirects=True,
        )
        self._name = name
        self._max_retries = max_retries if max_retries is not None else settings.HTTP_MAX_RETRIES
        self._base_delay = base_delay if base_delay is not None else settings.HTTP_RETRY_BASE_DELAY
        self.circuit = CircuitBreaker()

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if not self.circuit.can_attempt():
            raise CircuitOpenError(f"[{self._name}] circuit open, skipping {_safe_url(url)}")

        attempts = self._max_retries + 1
        last_exc: Optional[Exception] = None
        resp: Optional[httpx.Response] = None

        for attempt in range(attempts):
            try:
                resp = await self._client.request(method, url, **kwargs)
            except (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError) as exc:
                last_exc = exc
                resp = None
                logger.warning(
                    "[%s] Network error on %s %s (attempt %d/%d): %s",
                    self._name, method, _safe_url(url), attempt + 1, attempts, exc,
                )
            else:
                if resp.status_code not in _RETRYABLE_STATUSES:
                    self.circuit.record_success()
                    return resp
                logger.warning(
                    "[%s] HTTP %d on %s %s (attempt %d/%d)",
                    self._name, resp.status_code, method, _safe_url(url), attempt + 1, attempts,
                )

            if attempt < attempts - 1:
                await asyncio.sleep(min(self._base_delay * (2 ** attempt), _MAX_DELAY_SECONDS))

        self.circuit.record_failure()
        if resp is not None:
            logger.error(
                "[%s] Giving up on %s %s (last status: %d)",
                self._name, method, _safe_url(url), resp.status_code,
            )
            return resp

        logger.error(
            "[%s] Giving up on %s %s: %s", self._name, method, _safe_url(url), last_exc,
        )
        raise last_exc  # type: ignore[misc]

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
