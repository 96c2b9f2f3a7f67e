"""
HTTP fetcher with retries, backoff and user-agent rotation.

One fetch() call is one logical request: up to `retries` attempts, a linear
backoff between them, an extra pause after rate-limit responses, and every
timeout and sleep clamped to the run deadline.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
)

from jobhunter.config import Settings, settings as default_settings
from jobhunter.discovery.deadline import Deadline
from jobhunter.discovery.errors import FetchError, FetchErrorKind

logger = logging.getLogger(__name__)

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, FetchError) and error.retryable


class Fetcher:
    """Async page/feed/API fetcher shared by every tier."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        self.settings = settings or default_settings
        self._client = client
        self._sleep = sleep
        self._rng = rng or random.Random()

    def pick_user_agent(self) -> str:
        return self._rng.choice(self.settings.user_agents)

    async def fetch(
        self,
        url: str,
        *,
        timeout: float | None = None,
        retries: int | None = None,
        base_delay: float | None = None,
        user_agent: str | None = None,
        accept: str | None = None,
        deadline: Deadline | None = None,
    ) -> str:
        """
        GET a URL and return the response body.

        Raises:
            FetchError: NOT_FOUND on 404, EXHAUSTED once retries run out.
            RunTimeoutError: the deadline passed before an attempt could start.
        """
        timeout = self.settings.slow_tier_timeout if timeout is None else timeout
        retries = self.settings.slow_tier_retries if retries is None else retries
        base_delay = self.settings.delay_for("niche") if base_delay is None else base_delay

        if self._client is not None:
            return await self._fetch_with(
                self._client, url, timeout, retries, base_delay, user_agent, accept, deadline
            )
        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await self._fetch_with(
                client, url, timeout, retries, base_delay, user_agent, accept, deadline
            )

    async def _fetch_with(
        self,
        client: httpx.AsyncClient,
        url: str,
        timeout: float,
        retries: int,
        base_delay: float,
        user_agent: str | None,
        accept: str | None,
        deadline: Deadline | None,
    ) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, retries)),
            wait=self._backoff(base_delay, deadline),
            retry=retry_if_exception(_is_retryable),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.DEBUG),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    headers = {
                        "User-Agent": user_agent or self.pick_user_agent(),
                        "Accept": accept or DEFAULT_ACCEPT,
                        "Accept-Language": "en-US,en;q=0.9",
                    }
                    text = await self._attempt(client, url, timeout, headers, deadline)
        except RetryError as e:
            last = e.last_attempt.exception()
            message = last.message if isinstance(last, FetchError) else str(last)
            raise FetchError(FetchErrorKind.EXHAUSTED, url, message) from last
        return text

    def _backoff(self, base_delay: float, deadline: Deadline | None) -> Callable[[RetryCallState], float]:
        aggressive = self.settings.aggressive_delay

        def wait(retry_state: RetryCallState) -> float:
            # attempt_number is the attempt that just failed
            delay = base_delay * (retry_state.attempt_number + 1)
            error = retry_state.outcome.exception() if retry_state.outcome else None
            if isinstance(error, FetchError) and error.kind == FetchErrorKind.RATE_LIMITED:
                delay += aggressive
            return deadline.clamp(delay) if deadline else delay

        return wait

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        url: str,
        timeout: float,
        headers: dict[str, str],
        deadline: Deadline | None,
    ) -> str:
        if deadline is not None:
            deadline.check()
            timeout = deadline.clamp(timeout)

        try:
            response = await client.get(url, headers=headers, timeout=timeout)
        except httpx.TimeoutException as e:
            raise FetchError(FetchErrorKind.NETWORK, url, f"timed out after {timeout:.1f}s") from e
        except httpx.HTTPError as e:
            raise FetchError(FetchErrorKind.NETWORK, url, str(e) or type(e).__name__) from e

        status = response.status_code
        if status < 400:
            return response.text
        if status == 404:
            raise FetchError(FetchErrorKind.NOT_FOUND, url, "HTTP 404")
        if status in (403, 429):
            logger.debug(f"Rate limited by {url} (HTTP {status})")
            raise FetchError(FetchErrorKind.RATE_LIMITED, url, f"HTTP {status}")
        raise FetchError(FetchErrorKind.NETWORK, url, f"HTTP {status}")
