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


HttpStatusCodes = NamedTuple(
    'HttpStatusCodes', [
        # 2xx
        ('OK', int),
        # 4xx
        ('BAD_REQUEST', int),
        # 5xx
        ('BAD_GATEWAY', int),
    ],
)

httpStatusCodes = HttpStatusCodes(
    200,
    400,
    502,
)
