# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.

    .. spelling::

       reusability
       upstream
"""
from .types import FlowKey, tcpConnectionTypes
from .connection import TcpConnection, TcpConnectionUninitializedException
from .client import TcpClientConnection
from .server import TcpServerConnection
from .upstream import ProxyConnection
from .pool import ConnectionPool

__all__ = [
    'FlowKey',
    'tcpConnectionTypes',
    'TcpConnection',
    'TcpConnectionUninitializedException',
    'TcpClientConnection',
    'TcpServerConnection',
    'ProxyConnection',
    'ConnectionPool',
]
