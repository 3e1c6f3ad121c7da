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
from typing import Optional

from .headers import httpHeaders
from .methods import httpMethods
from .exception import MalformedRequest
from .descriptors import PlainRequest, ConnectRequest, RequestDescriptor

from ..common.types import HostPort
from ..common.utils import text_, find_http_line, split_host_port
from ..common.constants import (
    LF, COLON, SLASH, HTTP_URL_PREFIX, DEFAULT_HTTP_PORT, DEFAULT_HTTPS_PORT,
)


def classify(raw: bytes) -> RequestDescriptor:
    """Classifies the first chunk of bytes read from a flow.

    Only the request line is tokenized.  For CONNECT requests the
    second token must be ``host[:port]``, port defaults to 443.  For
    every other method the second token must either be an absolute
    ``http://`` URL or a path, in which case a ``Host`` header must be
    present among the following header lines.

    Raises :exc:`~gateway.http.exception.MalformedRequest`.
    """
    line, rest = find_http_line(raw)
    if line is None:
        line, rest = raw, b''
    parts = line.split()
    if len(parts) < 3:
        raise MalformedRequest('Invalid request line %r' % line, raw=raw)
    method, url = parts[0].upper(), parts[1]
    if method == httpMethods.CONNECT:
        host, port = _split_authority(url, DEFAULT_HTTPS_PORT, raw)
        return ConnectRequest(host=host, port=port)
    if url[:len(HTTP_URL_PREFIX)].lower() == HTTP_URL_PREFIX:
        authority, slash, remainder = url[len(HTTP_URL_PREFIX):].partition(SLASH)
        host, port = _split_authority(authority, DEFAULT_HTTP_PORT, raw)
        return PlainRequest(
            method=method,
            target=_decode(url, raw),
            host=host,
            port=port,
            path=SLASH + remainder if slash else SLASH,
        )
    if url.startswith(SLASH):
        host_header = find_header(rest, httpHeaders.HOST)
        if not host_header:
            raise MalformedRequest(
                'Host header missing for relative path %r' % url, raw=raw,
            )
        host, port = _split_authority(host_header, DEFAULT_HTTP_PORT, raw)
        return PlainRequest(
            method=method,
            target=_decode(HTTP_URL_PREFIX + host_header + url, raw),
            host=host,
            port=port,
            path=url,
        )
    raise MalformedRequest('Unsupported request target %r' % url, raw=raw)


def find_header(raw: bytes, name: bytes) -> Optional[bytes]:
    """Returns stripped value of first header matching name (lowercase).

    Lines may end in CRLF or a bare LF, scanning stops at the
    end of headers marker."""
    for line in raw.split(LF):
        if line.strip() == b'':
            break
        key, colon, value = line.partition(COLON)
        if colon and key.strip().lower() == name:
            return value.strip()
    return None


def _split_authority(authority: bytes, default_port: int, raw: bytes) -> HostPort:
    try:
        return split_host_port(text_(authority), default_port)
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedRequest(str(e), raw=raw) from e


def _decode(url: bytes, raw: bytes) -> str:
    try:
        return text_(url)
    except UnicodeDecodeError as e:
        raise MalformedRequest('Undecodable request target', raw=raw) from e
