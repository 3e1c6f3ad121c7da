# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.

    .. spelling::

       upstream
"""
import time
import socket
import logging
import argparse
import threading

from typing import Any, Dict, NamedTuple, Optional, Tuple

from .classifier import classify
from .rewriter import rewrite
from .methods import httpMethods
from .responses import PROXY_TUNNEL_ESTABLISHED_RESPONSE_PKT
from .descriptors import ConnectRequest, RequestDescriptor
from .exception import GatewayException, UpstreamUnreachable

from ..common.flag import flags
from ..common.utils import text_, find_http_line, end_of_headers
from ..common.constants import DEFAULT_BUFFER_SIZE, DEFAULT_ACCESS_LOG_FORMAT

from ..core.relay import relay
from ..core.metrics import FLOWS_TOTAL, FLOW_FAILURES_TOTAL, RELAYED_BYTES_TOTAL
from ..core.connection import ConnectionPool, FlowKey, ProxyConnection, TcpClientConnection

logger = logging.getLogger(__name__)


flags.add_argument(
    '--buffer-size',
    type=int,
    default=DEFAULT_BUFFER_SIZE,
    help='Default: ' + str(DEFAULT_BUFFER_SIZE) + ' bytes.  ' +
    'Maximum number of bytes read from a socket at once.',
)

# Upper bound on a request or CONNECT reply head
MAX_HEAD_SIZE = 64 * 1024

FlowStates = NamedTuple(
    'FlowStates', [
        ('RECEIVED', int),
        ('CLASSIFIED', int),
        ('CONNECTED', int),
        ('RELAYING', int),
        ('CLOSED', int),
        ('ERROR', int),
    ],
)
flowStates = FlowStates(1, 2, 3, 4, 5, 6)


class Flow:
    """Per flow state, owned by the thread handling the flow."""

    def __init__(self, client: TcpClientConnection, key: FlowKey) -> None:
        self.client = client
        self.key = key
        self.state: int = flowStates.RECEIVED
        self.descriptor: Optional[RequestDescriptor] = None
        self.upstream: Optional[ProxyConnection] = None
        self.start_time = time.time()
        self.request_bytes = 0
        self.response_bytes = 0


class Redirector:
    """Redirects an accepted client connection through the upstream proxy.

    Flows move through RECEIVED, CLASSIFIED, CONNECTED, RELAYING and
    CLOSED states.  Any :exc:`~gateway.http.exception.GatewayException`
    moves the flow into ERROR, after writing the exception's response
    packet to the client.  Nothing is retried.
    """

    def __init__(
            self,
            flags: argparse.Namespace,
            pool: ConnectionPool,
            stop: Optional[threading.Event] = None,
    ) -> None:
        self.flags = flags
        self.pool = pool
        self.stop = stop
        self.buffer_size: int = getattr(flags, 'buffer_size', DEFAULT_BUFFER_SIZE)

    def __call__(self, client: TcpClientConnection) -> None:
        self.handle(client)

    def handle(self, client: TcpClientConnection) -> int:
        """Handles the flow to completion, returns the final state."""
        try:
            flow = Flow(client, client.flow_key())
        except OSError as e:
            logger.debug('Client %s went away before flow started: %r', client.address, e)
            client.close()
            return flowStates.ERROR
        try:
            self.redirect(flow)
            flow.state = flowStates.CLOSED
        except GatewayException as e:
            flow.state = flowStates.ERROR
            FLOW_FAILURES_TOTAL.labels(reason=e.__class__.__name__).inc()
            logger.info('Flow %s failed: %s', flow.key, e)
            self.respond(client, e)
        except OSError as e:
            flow.state = flowStates.ERROR
            FLOW_FAILURES_TOTAL.labels(reason='ConnectionError').inc()
            logger.info('Flow %s failed: %r', flow.key, e)
        finally:
            self.pool.remove(flow.key)
            client.close()
            if flow.descriptor is not None:
                self.access_log(self.access_log_context(flow))
        return flow.state

    def redirect(self, flow: Flow) -> None:
        raw = self.read_head(flow.client)
        if not raw:
            logger.debug('Client %s closed before sending a request', flow.client.address)
            return
        flow.request_bytes += len(raw)

        flow.descriptor = classify(raw)
        flow.state = flowStates.CLASSIFIED

        flow.upstream = self.pool.get_or_create(flow.key, flow.descriptor)
        flow.state = flowStates.CONNECTED

        if isinstance(flow.descriptor, ConnectRequest):
            FLOWS_TOTAL.labels(kind='connect').inc()
            self.establish_tunnel(flow, raw)
        else:
            FLOWS_TOTAL.labels(kind='plain').inc()
            flow.upstream.send(rewrite(raw, flow.descriptor))

        flow.state = flowStates.RELAYING
        to_upstream, to_client = relay(
            flow.client, flow.upstream,
            buffer_size=self.buffer_size,
            stop=self.stop,
        )
        flow.request_bytes += to_upstream
        flow.response_bytes += to_client
        RELAYED_BYTES_TOTAL.labels(direction='upstream').inc(flow.request_bytes)
        RELAYED_BYTES_TOTAL.labels(direction='downstream').inc(flow.response_bytes)

    def establish_tunnel(self, flow: Flow, raw: bytes) -> None:
        """Opens the tunnel on upstream proxy before acknowledging the client.

        Upstream proxy's reply head is consumed, a non 2xx reply fails
        the flow with a 502 for the client."""
        assert flow.upstream is not None and flow.descriptor is not None
        flow.upstream.send(rewrite(raw, flow.descriptor))
        head, extra = self.read_reply_head(flow.upstream)
        line, _ = find_http_line(head)
        parts = (line or b'').split()
        if len(parts) < 2 or not parts[1].isdigit() or not 200 <= int(parts[1]) < 300:
            raise UpstreamUnreachable(
                *flow.upstream.addr,
                reason='refused tunnel to %s with %r' % (flow.descriptor.destination, line),
            )
        flow.client.send(PROXY_TUNNEL_ESTABLISHED_RESPONSE_PKT)
        if extra:
            flow.client.send(extra)
            flow.response_bytes += len(extra)

    def read_head(self, client: TcpClientConnection) -> bytes:
        """Reads until end of headers, EOF or a full buffer.

        Stops early once the request line cannot be HTTP, so that
        such clients get their 400 without waiting for a timeout.  A
        client going quiet mid head gets its partial head classified."""
        raw = b''
        while _head_incomplete(raw, self.buffer_size):
            try:
                data = client.recv(self.buffer_size)
            except socket.timeout:
                if not raw:
                    raise
                logger.debug('Client %s went quiet before end of headers', client.address)
                break
            if data is None:
                break
            raw += data.tobytes()
        return raw

    def read_reply_head(self, upstream: ProxyConnection) -> Tuple[bytes, bytes]:
        raw = b''
        while end_of_headers(raw) not in raw:
            if len(raw) > MAX_HEAD_SIZE:
                raise UpstreamUnreachable(*upstream.addr, reason='oversized CONNECT reply')
            data = upstream.recv(self.buffer_size)
            if data is None:
                raise UpstreamUnreachable(*upstream.addr, reason='closed connection during CONNECT')
            raw += data.tobytes()
        head, marker, extra = raw.partition(end_of_headers(raw))
        return head + marker, extra

    @staticmethod
    def respond(client: TcpClientConnection, e: GatewayException) -> None:
        response = e.response()
        if response is None or client.closed:
            return
        try:
            client.send(response)
        except OSError as err:
            logger.debug('Unable to send error response to %s: %r', client.address, err)

    def access_log_context(self, flow: Flow) -> Dict[str, Any]:
        descriptor = flow.descriptor
        assert descriptor is not None
        method = httpMethods.CONNECT if isinstance(descriptor, ConnectRequest) \
            else descriptor.method
        return {
            'client_ip': None if not flow.client.addr else flow.client.addr[0],
            'client_port': None if not flow.client.addr else flow.client.addr[1],
            'request_method': text_(method),
            'server_host': descriptor.host,
            'server_port': descriptor.port,
            'upstream_proxy_host': self.pool.upstream[0],
            'upstream_proxy_port': self.pool.upstream[1],
            'request_bytes': flow.request_bytes,
            'response_bytes': flow.response_bytes,
            'connection_time_ms': '%.2f' % ((time.time() - flow.start_time) * 1000),
        }

    @staticmethod
    def access_log(log_attrs: Dict[str, Any]) -> None:
        logger.info(DEFAULT_ACCESS_LOG_FORMAT.format_map(log_attrs))


def _head_incomplete(raw: bytes, limit: int) -> bool:
    if not raw:
        return True
    if end_of_headers(raw) in raw or len(raw) >= limit:
        return False
    line, _ = find_http_line(raw)
    if line is None:
        return raw[:1].isalpha()
    return len(line.split()) >= 3
