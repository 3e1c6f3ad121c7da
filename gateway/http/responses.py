# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from .codes import httpStatusCodes
from ..common.utils import build_http_response
from ..common.constants import GATEWAY_AGENT_HEADER_KEY, GATEWAY_AGENT_HEADER_VALUE


PROXY_TUNNEL_ESTABLISHED_RESPONSE_PKT = memoryview(
    build_http_response(
        httpStatusCodes.OK,
        reason=b'Connection Established',
    ),
)

BAD_REQUEST_RESPONSE_PKT = memoryview(
    build_http_response(
        httpStatusCodes.BAD_REQUEST,
        reason=b'Bad Request',
        headers={
            GATEWAY_AGENT_HEADER_KEY: GATEWAY_AGENT_HEADER_VALUE,
            b'Content-Length': b'0',
        },
        conn_close=True,
    ),
)

BAD_GATEWAY_RESPONSE_PKT = memoryview(
    build_http_response(
        httpStatusCodes.BAD_GATEWAY,
        reason=b'Bad Gateway',
        headers={
            GATEWAY_AGENT_HEADER_KEY: GATEWAY_AGENT_HEADER_VALUE,
        },
        body=b'Bad Gateway',
        conn_close=True,
    ),
)
