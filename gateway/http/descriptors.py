# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.

    .. spelling::

       http
"""
from typing import NamedTuple, Union


def format_destination(host: str, port: int) -> str:
    if ':' in host:
        return '[{0}]:{1}'.format(host, port)
    return '{0}:{1}'.format(host, port)


class PlainRequest(NamedTuple):
    """A plain HTTP request, e.g. ``GET /path HTTP/1.1``."""
    method: bytes
    target: str
    host: str
    port: int
    path: bytes

    @property
    def destination(self) -> str:
        return format_destination(self.host, self.port)


class ConnectRequest(NamedTuple):
    """A CONNECT tunnel request, e.g. ``CONNECT example.com:443 HTTP/1.1``."""
    host: str
    port: int

    @property
    def destination(self) -> str:
        return format_destination(self.host, self.port)


RequestDescriptor = Union[PlainRequest, ConnectRequest]
