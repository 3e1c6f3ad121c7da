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


class GatewayException(Exception):
    """Top level :exc:`GatewayException` exception class.

    All exceptions raised while redirecting a flow inherit
    :exc:`GatewayException`.  Implement ``response()`` method to
    optionally return a response packet for the client.
    """

    def __init__(self, message: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message or 'Reason unknown')

    def response(self) -> Optional[memoryview]:
        return None  # pragma: no cover
