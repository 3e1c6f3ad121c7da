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

from .types import FlowKey, tcpConnectionTypes
from .connection import TcpConnection, TcpConnectionUninitializedException
from ...common.types import HostPort


class TcpClientConnection(TcpConnection):
    """A client connection accepted by the gateway."""

    def __init__(
        self,
        conn: socket.socket,
        addr: Optional[HostPort] = None,
    ) -> None:
        super().__init__(tcpConnectionTypes.CLIENT)
        self._conn: Optional[socket.socket] = conn
        self.addr: Optional[HostPort] = addr

    @property
    def address(self) -> str:
        return 'unknown' if not self.addr else '{0}:{1}'.format(*self.addr)

    @property
    def connection(self) -> socket.socket:
        if self._conn is None:
            raise TcpConnectionUninitializedException()
        return self._conn

    def flow_key(self) -> FlowKey:
        return FlowKey.from_socket(self.connection)
