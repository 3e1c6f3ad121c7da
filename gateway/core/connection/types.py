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
from typing import NamedTuple, Tuple


TcpConnectionTypes = NamedTuple(
    'TcpConnectionTypes', [
        ('SERVER', int),
        ('CLIENT', int),
    ],
)
tcpConnectionTypes = TcpConnectionTypes(1, 2)


class FlowKey(NamedTuple):
    """Identity of a traffic flow.

    For intercepted frames ``local`` is the originating host and
    ``remote`` the original destination.  For accepted connections
    ``local`` is the client peer and ``remote`` the listening address.
    """
    local_addr: str
    local_port: int
    remote_addr: str
    remote_port: int

    def __str__(self) -> str:
        return '{0}:{1}-{2}:{3}'.format(*self)

    @classmethod
    def from_socket(cls, conn: socket.socket) -> 'FlowKey':
        peer: Tuple[str, int] = conn.getpeername()[:2]
        local: Tuple[str, int] = conn.getsockname()[:2]
        return cls(peer[0], peer[1], local[0], local[1])
