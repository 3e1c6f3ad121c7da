# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import socket
from typing import Optional

from .types import tcpConnectionTypes
from .connection import TcpConnection, TcpConnectionUninitializedException
from ...common.types import HostPort
from ...common.utils import new_socket_connection
from ...common.constants import DEFAULT_TIMEOUT


class TcpServerConnection(TcpConnection):
    """A server connection object."""

    def __init__(self, host: str, port: int) -> None:
        super().__init__(tcpConnectionTypes.SERVER)
        self._conn: Optional[socket.socket] = None
        self.addr: HostPort = (host, port)
        self.closed = True

    @property
    def connection(self) -> socket.socket:
        if self._conn is None:
            raise TcpConnectionUninitializedException()
        return self._conn

    def connect(
            self,
            addr: Optional[HostPort] = None,
            timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        assert self._conn is None
        self._conn = new_socket_connection(addr or self.addr, timeout=timeout)
        self.closed = False

    def close(self) -> bool:
        if self._conn is None:
            return True
        return super().close()
