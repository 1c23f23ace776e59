import asyncio
from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

import httpx
import structlog

log = structlog.get_logger()

T = TypeVar("T")

OutcomeStatus = Literal[
    "ok",
    "not_found",
    "api_error",
    "timeout",
    "http_4xx",
    "http_5xx",
    "transport",
    "malformed",
]


@dataclass
class FetchOutcome(Generic[T]):
    """Tagged result of a single upstream call.

    Only ``value`` (present or ``None``) leaves the client modules; the status
    and detail exist for logging.
    """

    status: OutcomeStatus
    value: T | None = None
    detail: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok" and self.value is not None


def classify_status_code(status_code: int) -> OutcomeStatus:
    """Map a non-2xx HTTP status to an outcome status."""
    if status_code >= 500:
        return "http_5xx"
    if status_code == 404:
        return "not_found"
    return "http_4xx"


def classify_error(exception: BaseException) -> OutcomeStatus:
    """Determine the outcome status for an exception raised by httpx or JSON decoding."""
    if isinstance(exception, httpx.TimeoutException):
        return "timeout"
    if isinstance(exception, httpx.HTTPStatusError):
        return classify_status_code(exception.response.status_code)
    if isinstance(exception, httpx.HTTPError):
        return "transport"
    if isinstance(exception, ValueError):
        # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
        return "malformed"
    return "transport"


def response_excerpt(resp: httpx.Response, limit: int = 500) -> str | None:
    """Return the first ``limit`` characters of a response body, if any."""
    try:
        text = resp.text
    except (httpx.ResponseNotRead, UnicodeDecodeError):
        return None
    return text[:limit] if text else None


def get_client(user_agent: str = "Mozilla/5.0", timeout: float = 30.0) -> httpx.AsyncClient:
    """
    Create an httpx AsyncClient with sensible defaults.

    Args:
        user_agent: User-Agent header sent with every request
        timeout: Request timeout in seconds (default: 30)

    Returns:
        Configured httpx.AsyncClient
    """
    headers = {
        "User-Agent": user_agent,
        "Accept": "application/json",
    }

    # The pipeline is sequential; a small pool is plenty
    limits = httpx.Limits(
        max_keepalive_connections=4,
        max_connections=4,
        keepalive_expiry=30.0,
    )

    return httpx.AsyncClient(
        http2=True,
        headers=headers,
        timeout=timeout,
        limits=limits,
        follow_redirects=True,
    )


class RateLimiter:
    """Minimum-interval rate limiter for a single upstream API."""

    def __init__(self, calls_per_second: float = 1.0) -> None:
        """
        Initialize rate limiter.

        Args:
            calls_per_second: Maximum number of calls allowed per second; 0 disables pacing
        """
        self.min_interval = 1.0 / calls_per_second if calls_per_second > 0 else 0.0
        self.last_call = 0.0
        self._lock: asyncio.Lock | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def _ensure_lock(self) -> asyncio.Lock:
        """
        Lazily create lock in the current event loop.

        Each CLI invocation runs its own asyncio.run(), so a lock created for a
        previous loop is replaced.
        """
        current_loop = asyncio.get_running_loop()
        if self._lock is None or self._loop is not current_loop:
            self._lock = asyncio.Lock()
            self._loop = current_loop
        return self._lock

    async def acquire(self) -> None:
        """Wait until rate limit allows next call."""
        if not self.min_interval:
            return
        lock = self._ensure_lock()
        async with lock:
            loop = asyncio.get_running_loop()
            time_since_last = loop.time() - self.last_call

            if time_since_last < self.min_interval:
                wait_time = self.min_interval - time_since_last
                log.debug("rate_limit_wait", wait_time=wait_time)
                await asyncio.sleep(wait_time)

            self.last_call = loop.time()
