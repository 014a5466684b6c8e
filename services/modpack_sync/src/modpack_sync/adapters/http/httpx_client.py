from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
import logging
from pathlib import Path
import random
from types import TracebackType
from typing import Any

import httpx

from modpack_sync.domain.errors import DownloadFailure, WorkspaceError
from modpack_sync.domain.json_types import JsonValue, coerce_json_value

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "modpack-sync (+https://github.com/modpack-sync/modpack-sync)"
RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


class _RetryableStatus(Exception):
    def __init__(self, status: int, retry_after: float | None):
        super().__init__(f"HTTP {status}")
        self.status = status
        self.retry_after = retry_after


def parse_retry_after(value: str | None) -> float | None:
    """Return seconds suggested by a Retry-After header, if parsable."""
    if not value:
        return None
    try:
        seconds = float(value)
        if seconds >= 0:
            return seconds
        return None
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, when.timestamp() - datetime.now(timezone.utc).timestamp())


class HttpxClient:
    """Async HTTP collaborator with timeout and retries on 408/429/5xx and transport errors."""

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_s: float = 30.0,
        retries: int = 3,
        backoff_base_ms: int = 250,
        backoff_max_ms: int = 5_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.retries = max(0, retries)
        self.backoff_base_ms = backoff_base_ms
        self.backoff_max_ms = backoff_max_ms
        self._client = httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            timeout=httpx.Timeout(timeout_s),
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> HttpxClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _backoff_delay(self, attempt: int, retry_after: float | None) -> float:
        if retry_after is not None:
            return retry_after
        base = min(self.backoff_max_ms, self.backoff_base_ms * (2 ** (attempt - 1)))
        jitter = base * 0.25
        return max(0.0, base + random.uniform(-jitter, jitter)) / 1000.0

    def _check_status(self, url: str, response: httpx.Response) -> None:
        status = response.status_code
        if status in RETRYABLE_STATUSES:
            raise _RetryableStatus(status, parse_retry_after(response.headers.get("Retry-After")))
        if not response.is_success:
            raise DownloadFailure(
                f"GET {url} failed with HTTP {status}",
                details={"url": url, "status": status},
            )

    async def _with_retries(self, url: str, operation: Any) -> Any:
        attempt = 0
        while True:
            try:
                return await operation()
            except _RetryableStatus as err:
                attempt += 1
                if attempt > self.retries:
                    raise DownloadFailure(
                        f"GET {url} failed with HTTP {err.status} after {attempt} attempts",
                        details={"url": url, "status": err.status},
                    ) from err
                delay = self._backoff_delay(attempt, err.retry_after)
                logger.debug("Retrying %s after HTTP %s in %.2fs", url, err.status, delay)
                await asyncio.sleep(delay)
            except httpx.HTTPError as err:
                attempt += 1
                if attempt > self.retries:
                    raise DownloadFailure(
                        f"GET {url} failed: {err}",
                        details={"url": url},
                        cause=err,
                    ) from err
                delay = self._backoff_delay(attempt, None)
                logger.debug("Retrying %s after transport error %s in %.2fs", url, err, delay)
                await asyncio.sleep(delay)

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> JsonValue:
        async def _get() -> JsonValue:
            response = await self._client.get(url, params=params)
            self._check_status(url, response)
            try:
                return coerce_json_value(response.json())
            except ValueError as e:
                raise DownloadFailure(
                    f"GET {url} returned invalid JSON", details={"url": url}, cause=e
                ) from e

        return await self._with_retries(url, _get)

    async def download(self, url: str, dest: Path) -> Path:
        async def _stream() -> Path:
            async with self._client.stream("GET", url) as response:
                self._check_status(url, response)
                try:
                    dest.parent.mkdir(parents=True, exist_ok=True)
                    with dest.open("wb") as handle:
                        async for chunk in response.aiter_bytes():
                            handle.write(chunk)
                except OSError as e:
                    raise WorkspaceError(
                        message=f"Cannot write download of {url} to {dest}: {e}",
                        details={"path": str(dest), "url": url},
                        cause=e,
                    ) from e
            return dest

        try:
            return await self._with_retries(url, _stream)
        except (DownloadFailure, WorkspaceError):
            if dest.is_file():
                dest.unlink()
            raise
