"""Tests for SocketPortAllocator."""

from __future__ import annotations

import socket
import time
from unittest.mock import patch

import pytest

from devsession.shared.exceptions import AllocationError
from devsession.supervisor.interfaces import PortAllocator
from devsession.supervisor.ports import SocketPortAllocator


class TestSocketPortAllocator:
    def test_implements_protocol(self) -> None:
        assert isinstance(SocketPortAllocator(), PortAllocator)

    async def test_allocate_returns_bindable_port(self) -> None:
        port = await SocketPortAllocator().allocate()

        assert 1 <= port <= 65535
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", port))

    async def test_bind_refused(self) -> None:
        with patch("devsession.supervisor.ports._probe_free_port", side_effect=OSError("no descriptors")):
            with pytest.raises(AllocationError, match="cannot bind"):
                await SocketPortAllocator().allocate()

    async def test_probe_timeout(self) -> None:
        def slow_probe(host: str) -> int:
            time.sleep(0.5)
            return 5173

        with patch("devsession.supervisor.ports._probe_free_port", side_effect=slow_probe):
            with pytest.raises(AllocationError, match="timed out"):
                await SocketPortAllocator(timeout=0.05).allocate()
