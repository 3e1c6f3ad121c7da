# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from .base import GatewayException
from .malformed_request import MalformedRequest
from .upstream_unreachable import UpstreamUnreachable


__all__ = [
    'GatewayException',
    'MalformedRequest',
    'UpstreamUnreachable',
]
