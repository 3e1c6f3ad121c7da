# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import socket
import logging
import importlib
import ipaddress
import contextlib

from typing import Optional, Dict, Any, List, Tuple

from .types import HostPort
from .constants import HTTP_1_1, COLON, WHITESPACE, CR, LF, CRLF, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


def text_(s: Any, encoding: str = 'utf-8', errors: str = 'strict') -> Any:
    """Utility to ensure text-like usability.

    If s is of type bytes or int, return s.decode(encoding, errors),
    otherwise return s as it is."""
    if isinstance(s, int):
        return str(s)
    if isinstance(s, bytes):
        return s.decode(encoding, errors)
    return s


def bytes_(s: Any, encoding: str = 'utf-8', errors: str = 'strict') -> Any:
    """Utility to ensure binary-like usability.

    If s is type str or int, return s.encode(encoding, errors),
    otherwise return s as it is."""
    if isinstance(s, int):
        s = str(s)
    if isinstance(s, str):
        return s.encode(encoding, errors)
    return s


def build_http_response(
    status_code: int,
    protocol_version: bytes = HTTP_1_1,
    reason: Optional[bytes] = None,
    headers: Optional[Dict[bytes, bytes]] = None,
    body: Optional[bytes] = None,
    conn_close: bool = False,
) -> bytes:
    """Build and returns a HTTP response packet."""
    line = [protocol_version, bytes_(status_code)]
    if reason:
        line.append(reason)
    if headers is None:
        headers = {}
    if body is not None and \
            not any(k.lower() == b'content-length' for k in headers):
        headers[b'Content-Length'] = bytes_(len(body))
    if conn_close:
        headers[b'Connection'] = b'close'
    return build_http_pkt(line, headers, body)


def build_http_header(k: bytes, v: bytes) -> bytes:
    """Build and return a HTTP header line for use in raw packet."""
    return k + COLON + WHITESPACE + v


def build_http_pkt(
    line: List[bytes],
    headers: Optional[Dict[bytes, bytes]] = None,
    body: Optional[bytes] = None,
) -> bytes:
    """Build and returns a HTTP request or response packet."""
    pkt = WHITESPACE.join(line) + CRLF
    if headers is not None:
        for k in headers:
            pkt += build_http_header(k, headers[k]) + CRLF
    pkt += CRLF
    if body:
        pkt += body
    return pkt


def find_http_line(raw: bytes) -> Tuple[Optional[bytes], bytes]:
    """Find and returns first line ending in CRLF or a bare LF along with
    following buffer.

    If no line ending is found, line is None."""
    pos = raw.find(LF)
    if pos == -1:
        return None, raw
    line = raw[:pos]
    if line.endswith(CR):
        line = line[:-1]
    return line, raw[pos + 1:]


def line_ending(raw: bytes) -> bytes:
    """Returns LF when the first line of raw ends in a bare LF, CRLF otherwise."""
    pos = raw.find(LF)
    if pos != -1 and raw[pos - 1:pos] != CR:
        return LF
    return CRLF


def end_of_headers(raw: bytes) -> bytes:
    """Returns the blank line marker terminating headers in raw."""
    eol = line_ending(raw)
    return eol + eol


def split_host_port(raw: str, default_port: Optional[int] = None) -> HostPort:
    """Splits ``host:port``, ``[v6]:port``, ``host`` or ``[v6]`` strings.

    Raises ``ValueError`` when host is empty, port is not a valid
    TCP port number or port is missing without a ``default_port``."""
    host, port = raw, None
    if raw.startswith('['):
        end = raw.find(']')
        if end == -1:
            raise ValueError('Unterminated IPv6 literal in %r' % raw)
        host, rest = raw[1:end], raw[end + 1:]
        if rest:
            if not rest.startswith(':'):
                raise ValueError('Invalid address %r' % raw)
            port = rest[1:]
    elif raw.count(':') == 1:
        host, port = raw.split(':')
    if host == '':
        raise ValueError('Missing host in %r' % raw)
    if port is None:
        if default_port is None:
            raise ValueError('Missing port in %r' % raw)
        return host, default_port
    if not port.isdigit() or not 0 < int(port) < 65536:
        raise ValueError('Invalid port in %r' % raw)
    return host, int(port)


def new_socket_connection(
        addr: HostPort,
        timeout: float = DEFAULT_TIMEOUT,
        source_address: Optional[HostPort] = None,
) -> socket.socket:
    conn = None
    try:
        ip = ipaddress.ip_address(addr[0])
        if ip.version == 4:
            conn = socket.socket(
                socket.AF_INET, socket.SOCK_STREAM, 0,
            )
            conn.settimeout(timeout)
            conn.connect(addr)
        else:
            conn = socket.socket(
                socket.AF_INET6, socket.SOCK_STREAM, 0,
            )
            conn.settimeout(timeout)
            conn.connect((addr[0], addr[1], 0, 0))
    except ValueError:
        pass    # does not appear to be an IPv4 or IPv6 address
    except OSError:
        if conn is not None:
            conn.close()
        raise

    if conn is not None:
        return conn

    # try to establish dual stack IPv4/IPv6 connection.
    return socket.create_connection(addr, timeout=timeout, source_address=source_address)


def get_available_port() -> int:
    """Finds and returns an available port on the system."""
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as sock:
        sock.bind(('', 0))
        _, port = sock.getsockname()
    return int(port)


def import_klass(dotted_path: str) -> Any:
    """Imports ``package.module.Klass`` and returns ``Klass``."""
    module_name, _, klass_name = dotted_path.rpartition('.')
    if not module_name:
        raise ValueError('Expected a dotted path, got %r' % dotted_path)
    module = importlib.import_module(module_name)
    klass = getattr(module, klass_name)
    logger.debug('Imported %s from %s', klass_name, module_name)
    return klass
