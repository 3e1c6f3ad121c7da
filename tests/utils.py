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
import struct
import selectors
import threading
import contextlib

from typing import List, Tuple

from gateway.common.utils import end_of_headers, get_available_port


def tcp_pair() -> Tuple[socket.socket, socket.socket]:
    """Returns a connected loopback (client, accepted) socket pair."""
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as server:
        server.bind(('127.0.0.1', 0))
        server.listen(1)
        client = socket.create_connection(server.getsockname())
        accepted, _ = server.accept()
    client.settimeout(5)
    accepted.settimeout(5)
    return client, accepted


def read_head(conn: socket.socket) -> bytes:
    raw = b''
    while end_of_headers(raw) not in raw:
        data = conn.recv(1024)
        if not data:
            break
        raw += data
    return raw


def read_until_eof(conn: socket.socket) -> bytes:
    raw = b''
    while True:
        data = conn.recv(1024)
        if not data:
            return raw
        raw += data


class FakeUpstreamProxy(threading.Thread):
    """Loopback stand-in for the upstream proxy.

    Records every request head.  CONNECT requests are answered with
    ``connect_status`` and, when accepted, echo tunnel bytes back.
    Plain requests receive a fixed response, then the connection is
    closed."""

    PLAIN_RESPONSE = b'HTTP/1.1 200 OK\r\nContent-Length: 2\r\nConnection: close\r\n\r\nok'

    def __init__(self, connect_status: int = 200) -> None:
        super().__init__(daemon=True)
        self.connect_status = connect_status
        self.requests: List[bytes] = []
        self.accepted = 0
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(('127.0.0.1', 0))
        self.sock.listen(16)
        self.port: int = self.sock.getsockname()[1]
        self.stop = threading.Event()
        self._lock = threading.Lock()

    def __enter__(self) -> 'FakeUpstreamProxy':
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @property
    def addr(self) -> str:
        return '127.0.0.1:%d' % self.port

    def run(self) -> None:
        with selectors.DefaultSelector() as selector:
            selector.register(self.sock, selectors.EVENT_READ)
            while not self.stop.is_set():
                if selector.select(timeout=0.05):
                    conn, _ = self.sock.accept()
                    with self._lock:
                        self.accepted += 1
                    threading.Thread(target=self._serve, args=(conn,), daemon=True).start()

    def close(self) -> None:
        self.stop.set()
        self.join()
        self.sock.close()

    def _serve(self, conn: socket.socket) -> None:
        conn.settimeout(5)
        with contextlib.closing(conn):
            try:
                head = read_head(conn)
                if not head:
                    return
                with self._lock:
                    self.requests.append(head)
                if not head.startswith(b'CONNECT'):
                    conn.sendall(self.PLAIN_RESPONSE)
                    return
                conn.sendall(b'HTTP/1.1 %d Tunnel\r\n\r\n' % self.connect_status)
                if self.connect_status != 200:
                    return
                while True:
                    data = conn.recv(1024)
                    if not data:
                        return
                    conn.sendall(data)
            except OSError:
                return


def closed_port() -> int:
    """Returns a port nothing listens on."""
    return get_available_port()


def recv_exact(conn: socket.socket, size: int) -> bytes:
    raw = b''
    while len(raw) < size:
        data = conn.recv(size - len(raw))
        if not data:
            break
        raw += data
    return raw


def build_frame(
        payload: bytes = b'',
        src: str = '10.0.0.2',
        dst: str = '93.184.216.34',
        src_port: int = 50001,
        dst_port: int = 80,
        protocol: int = socket.IPPROTO_TCP,
        ip_options: bytes = b'',
) -> bytes:
    """Builds an IPv4 frame carrying a TCP segment, checksums left zero."""
    ihl = 20 + len(ip_options)
    tcp = struct.pack(
        '!HHLLBBHHH', src_port, dst_port, 1, 0, 5 << 4, 0x18, 65535, 0, 0,
    )
    total = ihl + len(tcp) + len(payload)
    ip = struct.pack(
        '!BBHHHBBH4s4s', 0x40 | (ihl // 4), 0, total, 1, 0, 64, protocol, 0,
        socket.inet_aton(src), socket.inet_aton(dst),
    ) + ip_options
    return ip + tcp + payload
