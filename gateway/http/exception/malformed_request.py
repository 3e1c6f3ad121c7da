# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from typing import Any, Optional

from .base import GatewayException
from ..responses import BAD_REQUEST_RESPONSE_PKT


class MalformedRequest(GatewayException):
    """Raised when the first message of a flow cannot be classified."""

    def __init__(self, reason: str, raw: Optional[bytes] = None, **kwargs: Any) -> None:
        self.reason: str = reason
        self.raw: Optional[bytes] = raw
        super().__init__('%s %s' % (self.__class__.__name__, reason), **kwargs)

    def response(self) -> memoryview:
        return BAD_REQUEST_RESPONSE_PKT
