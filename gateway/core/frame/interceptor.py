# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.

    .. spelling::

       reinjected
       upstream
"""
import queue
import logging
import threading

from typing import Any, Dict, Iterable, Optional, Tuple

from ...common.flag import flags
from ...common.types import HostPort
from ...common.constants import (
    DEFAULT_FLOW_IDLE_TIMEOUT, DEFAULT_REDIRECT_PORTS, DEFAULT_SUBSTRATE_KLASS,
)
from ...http.classifier import classify
from ...http.rewriter import rewrite
from ...http.descriptors import ConnectRequest
from ...http.exception import GatewayException, MalformedRequest

from ..metrics import FRAMES_TOTAL, FLOWS_TOTAL, FLOW_FAILURES_TOTAL
from ..connection import ConnectionPool, FlowKey, ProxyConnection

from .packet import Frame, FrameMalformed, parse_frame, redirect_frame
from .substrate import Substrate

logger = logging.getLogger(__name__)


flags.add_argument(
    '--substrate-klass',
    type=str,
    default=DEFAULT_SUBSTRATE_KLASS,
    help='Default: None.  Dotted path of the frame substrate class, '
    'required with --mode frame.',
)

flags.add_argument(
    '--redirect-ports',
    type=int,
    nargs='+',
    default=DEFAULT_REDIRECT_PORTS,
    help='Default: 80 443.  Destination ports routed through '
    'the upstream proxy in frame mode.',
)


class FlowWorker(threading.Thread):
    """Processes frames of one flow in arrival order.

    Exits after ``idle_timeout`` seconds without frames, or on the
    ``None`` sentinel queued at shutdown."""

    def __init__(self, interceptor: 'FrameInterceptor', flow_key: FlowKey) -> None:
        super().__init__(name='gateway-flow-%s' % flow_key, daemon=True)
        self.interceptor = interceptor
        self.flow_key = flow_key
        self.frames: 'queue.Queue[Optional[Tuple[Frame, bytes, Any]]]' = queue.Queue()

    def run(self) -> None:
        while True:
            try:
                item = self.frames.get(timeout=self.interceptor.idle_timeout)
            except queue.Empty:
                if self.interceptor.retire(self):
                    return
                continue
            if item is None:
                return
            frame, raw, addr = item
            if self.interceptor.stop.is_set():
                FRAMES_TOTAL.labels(action='passthrough').inc()
                out = raw
            else:
                try:
                    out = self.interceptor.redirect(frame, raw, self.flow_key)
                except Exception as e:  # pragma: no cover
                    logger.exception('Error processing frame', exc_info=e)
                    FRAMES_TOTAL.labels(action='passthrough').inc()
                    out = raw
            self.interceptor.reinject(out, addr)


class FrameInterceptor(threading.Thread):
    """Reads frames from a substrate and routes matching ones through the proxy.

    Payload of frames destined to one of the redirect ports is written
    to the flow's pooled upstream connection, the frame itself is
    reinjected with its destination rewritten to the proxy.  First
    payload of a flow must be an HTTP request, later payloads are
    forwarded on the connection already pooled for the flow.

    Frames which are not routed are reinjected right away by the reading
    thread.  Routed frames are handed to a :class:`FlowWorker` per flow,
    so that dialing the proxy for one flow never delays another.

    Any failure reinjects the original frame unchanged.
    """

    def __init__(
            self,
            substrate: Substrate,
            pool: ConnectionPool,
            proxy: HostPort,
            redirect_ports: Iterable[int] = DEFAULT_REDIRECT_PORTS,
            stop: Optional[threading.Event] = None,
            idle_timeout: float = DEFAULT_FLOW_IDLE_TIMEOUT,
    ) -> None:
        super().__init__(name='gateway-interceptor', daemon=True)
        self.substrate = substrate
        self.pool = pool
        self.proxy = proxy
        self.redirect_ports = frozenset(redirect_ports)
        self.stop = stop or threading.Event()
        self.idle_timeout = idle_timeout
        self.workers: Dict[FlowKey, FlowWorker] = {}
        self._lock = threading.Lock()

    @property
    def inflight(self) -> int:
        with self._lock:
            return len(self.workers)

    def run(self) -> None:
        try:
            while not self.stop.is_set():
                try:
                    received = self.substrate.receive()
                except OSError as e:
                    if self.stop.is_set():
                        break
                    logger.warning('Error reading frame: %r', e)
                    continue
                if received is not None:
                    self.dispatch(*received)
        finally:
            self.shutdown_workers()
        logger.debug('Frame interceptor stopped')

    def dispatch(self, raw: bytes, addr: Any) -> None:
        """Reinjects frames which are not routed, queues the rest on their flow's worker."""
        frame = self.routable(raw)
        if frame is None:
            self.reinject(raw, addr)
            return
        flow_key = self.substrate.flow_key(frame, addr)
        with self._lock:
            worker = self.workers.get(flow_key)
            if worker is None:
                worker = FlowWorker(self, flow_key)
                self.workers[flow_key] = worker
                worker.start()
            worker.frames.put((frame, raw, addr))

    def retire(self, worker: FlowWorker) -> bool:
        """Unregisters an idle worker, False if frames arrived meanwhile."""
        with self._lock:
            if not worker.frames.empty():
                return False
            if self.workers.get(worker.flow_key) is worker:
                del self.workers[worker.flow_key]
            return True

    def shutdown_workers(self) -> None:
        with self._lock:
            workers = list(self.workers.values())
            for worker in workers:
                worker.frames.put(None)
            self.workers.clear()
        for worker in workers:
            worker.join()

    def handle(self, raw: bytes, addr: Any) -> None:
        """Processes a frame on the calling thread and reinjects the result."""
        try:
            out = self.process(raw, addr)
        except Exception as e:  # pragma: no cover
            logger.exception('Error processing frame', exc_info=e)
            FRAMES_TOTAL.labels(action='passthrough').inc()
            out = raw
        self.reinject(out, addr)

    def reinject(self, raw: bytes, addr: Any) -> None:
        try:
            self.substrate.send(raw, addr)
        except OSError as e:
            logger.warning('Error reinjecting frame: %r', e)

    def process(self, raw: bytes, addr: Any) -> bytes:
        """Returns the frame to reinject for a captured frame."""
        frame = self.routable(raw)
        if frame is None:
            return raw
        return self.redirect(frame, raw, self.substrate.flow_key(frame, addr))

    def routable(self, raw: bytes) -> Optional[Frame]:
        """Parses the frame, None when it must pass through untouched."""
        try:
            frame = parse_frame(raw)
        except FrameMalformed as e:
            logger.debug('Passing through frame: %s', e)
            FRAMES_TOTAL.labels(action='passthrough').inc()
            return None
        if frame.dst_port not in self.redirect_ports or not frame.payload:
            FRAMES_TOTAL.labels(action='passthrough').inc()
            return None
        return frame

    def redirect(self, frame: Frame, raw: bytes, flow_key: FlowKey) -> bytes:
        try:
            conn = self.forward(flow_key, frame.payload)
        except GatewayException as e:
            logger.warning('Passing through frame of flow %s: %s', flow_key, e)
            FLOW_FAILURES_TOTAL.labels(reason=e.__class__.__name__).inc()
            FRAMES_TOTAL.labels(action='passthrough').inc()
            return raw
        except OSError as e:
            logger.warning('Upstream write failed for flow %s: %r', flow_key, e)
            FLOW_FAILURES_TOTAL.labels(reason='UpstreamWriteFailed').inc()
            FRAMES_TOTAL.labels(action='passthrough').inc()
            self.pool.remove(flow_key)
            return raw
        if conn is None:
            FRAMES_TOTAL.labels(action='passthrough').inc()
            return raw
        try:
            redirected = redirect_frame(frame, self.proxy)
        except ValueError as e:
            logger.warning('Unable to redirect frame of flow %s: %s', flow_key, e)
            FRAMES_TOTAL.labels(action='passthrough').inc()
            return raw
        FRAMES_TOTAL.labels(action='redirected').inc()
        return redirected

    def forward(self, flow_key: FlowKey, payload: bytes) -> Optional[ProxyConnection]:
        """Writes payload to the flow's upstream connection.

        Returns None when payload belongs to no known flow."""
        try:
            descriptor = classify(payload)
        except MalformedRequest:
            conn = self.pool.get(flow_key)
            if conn is None:
                logger.debug('No pooled connection for mid-stream payload of flow %s', flow_key)
                return None
            conn.send(payload)
            return conn
        conn = self.pool.get_or_create(flow_key, descriptor)
        conn.original_dest = descriptor.destination
        conn.send(rewrite(payload, descriptor))
        kind = 'connect' if isinstance(descriptor, ConnectRequest) else 'plain'
        FLOWS_TOTAL.labels(kind=kind).inc()
        logger.info(
            '%s packet -> proxy: %s:%d, flow: %s, destination: %s',
            kind.upper(), self.proxy[0], self.proxy[1], flow_key, descriptor.destination,
        )
        return conn
