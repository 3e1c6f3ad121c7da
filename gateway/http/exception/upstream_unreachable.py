# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.

    .. spelling::

       conn
"""
from typing import Any

from .base import GatewayException
from ..responses import BAD_GATEWAY_RESPONSE_PKT


class UpstreamUnreachable(GatewayException):
    """Exception raised when gateway is unable to establish
    connection with the upstream proxy, or the upstream proxy
    refused to open the requested tunnel."""

    def __init__(self, host: str, port: int, reason: str, **kwargs: Any):
        self.host: str = host
        self.port: int = port
        self.reason: str = reason
        super().__init__(
            '%s %s:%d %s' % (self.__class__.__name__, host, port, reason),
            **kwargs,
        )

    def response(self) -> memoryview:
        return BAD_GATEWAY_RESPONSE_PKT
