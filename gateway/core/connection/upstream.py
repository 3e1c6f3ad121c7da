# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.

    .. spelling::

       upstream
"""
import socket
import logging
import selectors

from typing import Callable, Optional

from .server import TcpServerConnection
from ...common.constants import DEFAULT_PROBE_TIMEOUT, DEFAULT_BUFFER_SIZE

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class ProxyConnection(TcpServerConnection):
    """Connection to the upstream proxy, owned by exactly one flow.

    ``last_used`` is refreshed on every successful send and recv,
    so a busy relay is never considered idle by the pool."""

    def __init__(
            self,
            host: str,
            port: int,
            clock: Clock,
            original_dest: str = '',
    ) -> None:
        super().__init__(host, port)
        self.clock = clock
        self.original_dest = original_dest
        self.created_at: float = clock()
        self.last_used: float = self.created_at

    def touch(self, now: Optional[float] = None) -> None:
        self.last_used = max(self.created_at, self.clock() if now is None else now)

    def idle_for(self, now: float) -> float:
        return now - self.last_used

    def send(self, data: bytes) -> int:
        sent = super().send(data)
        self.touch()
        return sent

    def recv(
            self, buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> Optional[memoryview]:
        data = super().recv(buffer_size)
        if data is not None:
            self.touch()
        return data

    def is_alive(self, timeout: float = DEFAULT_PROBE_TIMEOUT) -> bool:
        """Readiness probe.

        Not readable within timeout means alive.  Readable with pending
        bytes means alive, readable with EOF or an error means dead."""
        if self.closed:
            return False
        try:
            with selectors.DefaultSelector() as selector:
                selector.register(self.connection, selectors.EVENT_READ)
                if not selector.select(timeout=timeout):
                    return True
            return self.connection.recv(1, socket.MSG_PEEK) != b''
        except (OSError, ValueError) as e:
            logger.debug('Liveness probe for %s:%d failed with %r', *self.addr, e)
            return False
