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

from abc import ABC, abstractmethod
from typing import Optional

from ...common.constants import DEFAULT_BUFFER_SIZE

from .types import tcpConnectionTypes

logger = logging.getLogger(__name__)


class TcpConnectionUninitializedException(Exception):
    pass


class TcpConnection(ABC):
    """TCP server/client connection abstraction.

    Implement the connection property abstract method to return
    a socket connection object.

    Sends are blocking, a connection is used by exactly one flow
    thread at a time.  ``close()`` may be called from any thread,
    it shuts the socket down first so that peers blocked in
    select/recv observe an EOF.
    """

    def __init__(self, tag: int) -> None:
        self.tag: str = 'server' if tag == tcpConnectionTypes.SERVER else 'client'
        self.closed: bool = False

    @property
    @abstractmethod
    def connection(self) -> socket.socket:
        """Must return the socket connection to use in this class."""
        raise TcpConnectionUninitializedException()     # pragma: no cover

    def fileno(self) -> int:
        return self.connection.fileno()

    def send(self, data: bytes) -> int:
        """Users must handle socket.error exceptions"""
        self.connection.sendall(data)
        logger.debug('sent %d bytes to %s' % (len(data), self.tag))
        return len(data)

    def recv(
            self, buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> Optional[memoryview]:
        """Users must handle socket.error exceptions"""
        data: bytes = self.connection.recv(buffer_size)
        if len(data) == 0:
            return None
        logger.debug(
            'received %d bytes from %s' %
            (len(data), self.tag),
        )
        return memoryview(data)

    def close(self) -> bool:
        if not self.closed:
            self.closed = True
            try:
                self.connection.shutdown(socket.SHUT_RDWR)
            except OSError:
                logger.debug('%s connection already disconnected', self.tag)
            self.connection.close()
        return self.closed
