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
from typing import NamedTuple, Tuple


HttpHeaders = NamedTuple(
    'HttpHeaders', [
        ('HOST', bytes),
        ('CONNECTION', bytes),
        ('KEEP_ALIVE', bytes),
        ('PROXY_AUTHENTICATE', bytes),
        ('PROXY_AUTHORIZATION', bytes),
        ('TE', bytes),
        ('TRAILERS', bytes),
        ('TRANSFER_ENCODING', bytes),
        ('UPGRADE', bytes),
        ('PROXY_CONNECTION', bytes),
    ],
)

httpHeaders = HttpHeaders(
    b'host',
    b'connection',
    b'keep-alive',
    b'proxy-authenticate',
    b'proxy-authorization',
    b'te',
    b'trailers',
    b'transfer-encoding',
    b'upgrade',
    b'proxy-connection',
)

# Headers meaningful for a single transport hop only.
# Always compared in lowercase.
HOP_BY_HOP_HEADERS: Tuple[bytes, ...] = (
    httpHeaders.CONNECTION,
    httpHeaders.KEEP_ALIVE,
    httpHeaders.PROXY_AUTHENTICATE,
    httpHeaders.PROXY_AUTHORIZATION,
    httpHeaders.TE,
    httpHeaders.TRAILERS,
    httpHeaders.TRANSFER_ENCODING,
    httpHeaders.UPGRADE,
    httpHeaders.PROXY_CONNECTION,
)
