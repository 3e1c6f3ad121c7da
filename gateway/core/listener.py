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
import logging
import argparse

from typing import Any, Optional

from ..common.flag import flags
from ..common.constants import DEFAULT_BACKLOG, DEFAULT_LISTEN_PORT, DEFAULT_IPV4_HOSTNAME

logger = logging.getLogger(__name__)


flags.add_argument(
    '--hostname',
    type=str,
    default=str(DEFAULT_IPV4_HOSTNAME),
    help='Default: 127.0.0.1.  Gateway IP address to listen on.',
)

flags.add_argument(
    '--listen-port',
    type=int,
    default=DEFAULT_LISTEN_PORT,
    help='Default: ' + str(DEFAULT_LISTEN_PORT) + '.  ' +
    'Gateway port, use 0 for an ephemeral port.',
)

flags.add_argument(
    '--backlog',
    type=int,
    default=DEFAULT_BACKLOG,
    help='Default: 100. Maximum number of pending connections to gateway.',
)


class TcpSocketListener:
    """Binds the listening socket of the socket variant."""

    def __init__(self, flags: argparse.Namespace, port: Optional[int] = None) -> None:
        self.flags = flags
        # Port if passed will be used, otherwise
        # flag value will be used.
        self.port = port
        # Set after binding, for ephemeral port discovery.
        self._port: Optional[int] = None
        self._socket: Optional[socket.socket] = None

    def __enter__(self) -> 'TcpSocketListener':
        self.setup()
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()

    @property
    def sock(self) -> socket.socket:
        assert self._socket is not None
        return self._socket

    @property
    def bound_port(self) -> Optional[int]:
        return self._port

    def fileno(self) -> Optional[int]:
        if not self._socket:
            return None
        return self._socket.fileno()

    def setup(self) -> None:
        self._socket = self.listen()

    def shutdown(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    def listen(self) -> socket.socket:
        sock = socket.socket(
            socket.AF_INET6 if self.flags.hostname.version == 6 else socket.AF_INET,
            socket.SOCK_STREAM,
        )
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        port = self.port if self.port is not None else self.flags.listen_port
        sock.bind((str(self.flags.hostname), port))
        sock.listen(self.flags.backlog)
        sock.setblocking(False)
        self._port = sock.getsockname()[1]
        logger.info(
            'Listening on %s:%s' %
            (self.flags.hostname, self._port),
        )
        return sock
