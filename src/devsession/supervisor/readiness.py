"""HTTP readiness polling for the asset server."""

from __future__ import annotations

import asyncio
import logging

import httpx

from devsession.shared.exceptions import ReadinessTimeout
from devsession.shared.models import ReadinessTarget

logger = logging.getLogger(__name__)


class HttpReadinessWaiter:
    """Implementation of the ``ReadinessWaiter`` protocol on top of httpx.

    Any HTTP response counts as ready; only transport failures (refused,
    reset, timed out) keep the poll going. Polling starts immediately.

    Only the connect phase is bounded by the poll interval. Once a connection
    is accepted the request may run until the deadline, so a dev server busy
    with its first compile is not mistaken for a dead one. The owned client
    ignores proxy environment variables since the target is always local.
    """

    def __init__(self, *, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    async def wait_until_ready(self, target: ReadinessTarget) -> None:
        """Poll ``target.url`` until it answers or the deadline elapses.

        The coroutine may be cancelled at any await point; the caller does so
        when the process being awaited exits first.

        Args:
            target: Endpoint, deadline and polling interval.

        Raises:
            ReadinessTimeout: If no response arrives before the deadline.
        """
        if self._client is not None:
            await self._poll(self._client, target)
            return
        async with httpx.AsyncClient(follow_redirects=False, trust_env=False) as client:
            await self._poll(client, target)

    async def _poll(self, client: httpx.AsyncClient, target: ReadinessTarget) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + target.timeout_seconds
        interval = target.poll_interval_seconds
        attempts = 0

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break

            attempts += 1
            attempt_started = loop.time()
            timeout = httpx.Timeout(remaining, connect=min(interval, remaining))
            try:
                resp = await client.get(target.url, timeout=timeout)
            except httpx.TransportError as exc:
                logger.debug("readiness attempt %d on %s failed: %s", attempts, target.url, exc)
            else:
                logger.info(
                    "%s ready after %d attempt(s) (%.2fs, HTTP %d)",
                    target.url,
                    attempts,
                    loop.time() - started,
                    resp.status_code,
                )
                return

            # Sleep out the rest of this interval, never past the deadline.
            pause = min(interval - (loop.time() - attempt_started), deadline - loop.time())
            if pause > 0:
                await asyncio.sleep(pause)

        elapsed = loop.time() - started
        logger.warning("%s not ready after %.1fs (%d attempts)", target.url, elapsed, attempts)
        raise ReadinessTimeout(target.url, elapsed=elapsed, attempts=attempts)
