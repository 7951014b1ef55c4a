"""Ephemeral local port allocation."""

from __future__ import annotations

import asyncio
import logging
import socket

from devsession.shared.exceptions import AllocationError

logger = logging.getLogger(__name__)


def _probe_free_port(host: str) -> int:
    """Bind to port 0 and return what the OS handed out."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return int(sock.getsockname()[1])


class SocketPortAllocator:
    """Best-effort allocator: the port is free when returned, not reserved.

    Implements the ``PortAllocator`` protocol.
    """

    def __init__(self, *, host: str = "127.0.0.1", timeout: float = 2.0) -> None:
        self._host = host
        self._timeout = timeout

    async def allocate(self) -> int:
        """Return an unused TCP port on the configured host.

        Raises:
            AllocationError: If the OS refuses the bind or the probe times out.
        """
        loop = asyncio.get_running_loop()
        try:
            port = await asyncio.wait_for(
                loop.run_in_executor(None, _probe_free_port, self._host),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise AllocationError(f"port probe on {self._host} timed out after {self._timeout}s") from exc
        except OSError as exc:
            raise AllocationError(f"cannot bind probe socket on {self._host}: {exc}") from exc

        logger.debug("allocated port %d on %s", port, self._host)
        return port
