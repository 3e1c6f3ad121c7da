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
from typing import List, Optional, Tuple

from .headers import HOP_BY_HOP_HEADERS
from .descriptors import PlainRequest, RequestDescriptor

from ..common.utils import bytes_, line_ending
from ..common.constants import COLON, SLASH, WHITESPACE


def is_hop_by_hop(line: bytes) -> bool:
    key, colon, _ = line.partition(COLON)
    return bool(colon) and key.strip().lower() in HOP_BY_HOP_HEADERS


def strip_hop_by_hop(raw: bytes) -> bytes:
    """Removes hop-by-hop header lines, everything else is byte-identical.

    When ``raw`` ends before the end of headers marker, the trailing
    incomplete line is left untouched."""
    line, headers, tail, eol = _split_head(raw)
    if line is None:
        return raw
    return _join_head(line, [h for h in headers if not is_hop_by_hop(h)], tail, eol)


def rewrite(raw: bytes, descriptor: RequestDescriptor) -> bytes:
    """Prepares initial request bytes of a flow for the upstream proxy.

    For CONNECT requests the request line is kept as is.  For plain
    requests an origin-form request target is replaced with the absolute
    URL so that the upstream proxy can route it.  Body bytes are never
    touched."""
    line, headers, tail, eol = _split_head(raw)
    if line is None:
        return raw
    if isinstance(descriptor, PlainRequest):
        line = to_absolute_form(line, descriptor)
    return _join_head(line, [h for h in headers if not is_hop_by_hop(h)], tail, eol)


def to_absolute_form(line: bytes, descriptor: PlainRequest) -> bytes:
    parts = line.split(WHITESPACE, 2)
    if len(parts) != 3 or not parts[1].startswith(SLASH):
        return line
    parts[1] = bytes_(descriptor.target)
    return WHITESPACE.join(parts)


def _split_head(raw: bytes) -> Tuple[Optional[bytes], List[bytes], bytes, bytes]:
    """Returns request line, header lines, the remaining tail and the
    line ending used by the request.

    Tail includes the end of headers marker and body, or the incomplete
    trailing line when the marker was not received yet.  Request line is
    None when not even the request line is complete."""
    eol = line_ending(raw)
    head, marker, body = raw.partition(eol + eol)
    lines = head.split(eol)
    if marker:
        return lines[0], lines[1:], marker + body, eol
    if len(lines) == 1:
        return None, [], raw, eol
    return lines[0], lines[1:-1], eol + lines[-1], eol


def _join_head(line: bytes, headers: List[bytes], tail: bytes, eol: bytes) -> bytes:
    return eol.join([line] + headers) + tail
