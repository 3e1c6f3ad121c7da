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
from typing import NamedTuple


# Only CONNECT is told apart, any other method
# token is treated as a plain request.
HttpMethods = NamedTuple(
    'HttpMethods', [
        ('CONNECT', bytes),
    ],
)

httpMethods = HttpMethods(
    b'CONNECT',
)
