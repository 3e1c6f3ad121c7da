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
import logging
import threading

from typing import Dict, List, Optional, Tuple

from ...common.flag import flags
from ...common.types import HostPort
from ...common.constants import (
    DEFAULT_POOL_CAPACITY, DEFAULT_POOL_EXPIRY, DEFAULT_PROBE_TIMEOUT, DEFAULT_TIMEOUT,
)
from ...http.descriptors import RequestDescriptor
from ...http.exception import UpstreamUnreachable

from ..metrics import POOL_CONNECTIONS, POOL_EVICTIONS_TOTAL

from .types import FlowKey
from .upstream import ProxyConnection, Clock

logger = logging.getLogger(__name__)


flags.add_argument(
    '--pool-capacity',
    type=int,
    default=DEFAULT_POOL_CAPACITY,
    help='Default: ' + str(DEFAULT_POOL_CAPACITY) + '.  ' +
    'Soft limit of pooled upstream proxy connections.  Reaching it '
    'triggers a cleanup of expired connections, never a rejection.',
)

flags.add_argument(
    '--pool-expiry',
    type=float,
    default=DEFAULT_POOL_EXPIRY,
    help='Default: ' + str(int(DEFAULT_POOL_EXPIRY)) + ' seconds.  ' +
    'Pooled connections idle for longer are closed.',
)

flags.add_argument(
    '--probe-timeout',
    type=float,
    default=DEFAULT_PROBE_TIMEOUT,
    help='Default: ' + str(DEFAULT_PROBE_TIMEOUT) + ' seconds.  ' +
    'Liveness probe timeout before reusing a pooled connection.',
)


class ConnectionPool:
    """Maps flows to their connection with the upstream proxy.

    A single lock guards the mapping and is held for lookups and
    mutations only.  Dialing, liveness probes and closing happen
    outside of it, so a slow upstream never serializes unrelated flows.

    Closed connections are always detached from the mapping first, so
    a connection is closed exactly by the caller which removed it.
    """

    def __init__(
            self,
            upstream: HostPort,
            capacity: int = DEFAULT_POOL_CAPACITY,
            expiry: float = DEFAULT_POOL_EXPIRY,
            probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
            timeout: float = DEFAULT_TIMEOUT,
            clock: Clock = time.monotonic,
    ) -> None:
        self.upstream = upstream
        self.capacity = capacity
        self.expiry = expiry
        self.probe_timeout = probe_timeout
        self.timeout = timeout
        self.clock = clock
        self.connections: Dict[FlowKey, ProxyConnection] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self.connections)

    def get_or_create(
            self,
            flow_key: FlowKey,
            descriptor: RequestDescriptor,
    ) -> ProxyConnection:
        """Returns a live upstream connection for the flow.

        A cached entry is reused when it passes the liveness probe,
        otherwise it is replaced by a freshly dialed connection.

        Raises :exc:`~gateway.http.exception.UpstreamUnreachable`,
        in which case no entry exists for the flow afterwards."""
        with self._lock:
            cached = self.connections.get(flow_key)
        if cached is not None:
            if cached.is_alive(self.probe_timeout):
                cached.touch()
                logger.debug('Reusing upstream connection for flow %s', flow_key)
                return cached
            logger.debug('Pooled connection for flow %s is dead', flow_key)
            self._discard(flow_key, cached)

        new_conn = self._dial(descriptor)

        winner, expired = new_conn, []
        with self._lock:
            if len(self.connections) >= self.capacity:
                expired = self._pop_expired(self.clock())
            existing = self.connections.get(flow_key)
            if existing is None:
                self.connections[flow_key] = new_conn
            else:
                winner = existing
            POOL_CONNECTIONS.set(len(self.connections))
        self._close_expired(expired)
        if winner is not new_conn:
            # Another caller inserted for the same flow meanwhile
            new_conn.close()
            winner.touch()
            return winner
        logger.debug(
            'Created upstream connection for flow %s to reach %s',
            flow_key, new_conn.original_dest,
        )
        return new_conn

    def get(self, flow_key: FlowKey) -> Optional[ProxyConnection]:
        with self._lock:
            return self.connections.get(flow_key)

    def touch(self, flow_key: FlowKey) -> bool:
        conn = self.get(flow_key)
        if conn is None:
            return False
        conn.touch()
        return True

    def remove(self, flow_key: FlowKey) -> None:
        """Closes and evicts the flow's connection, no-op when absent."""
        with self._lock:
            conn = self.connections.pop(flow_key, None)
            POOL_CONNECTIONS.set(len(self.connections))
        if conn is not None:
            conn.close()
            logger.debug('Removed upstream connection for flow %s', flow_key)

    def close_all(self) -> None:
        with self._lock:
            conns = list(self.connections.items())
            self.connections.clear()
            POOL_CONNECTIONS.set(0)
        for flow_key, conn in conns:
            conn.close()
        logger.info('Closed %d pooled connections', len(conns))

    def evict_expired(self, now: Optional[float] = None) -> int:
        """Closes connections idle for longer than expiry.

        Returns number of evicted connections."""
        with self._lock:
            expired = self._pop_expired(self.clock() if now is None else now)
            POOL_CONNECTIONS.set(len(self.connections))
        self._close_expired(expired)
        return len(expired)

    def _dial(self, descriptor: RequestDescriptor) -> ProxyConnection:
        host, port = self.upstream
        conn = ProxyConnection(
            host, port,
            clock=self.clock,
            original_dest=descriptor.destination,
        )
        try:
            conn.connect(timeout=self.timeout)
        except OSError as e:
            logger.warning(
                'Unable to reach upstream proxy %s:%d for %s: %r',
                host, port, descriptor.destination, e,
            )
            raise UpstreamUnreachable(host, port, str(e) or e.__class__.__name__) from e
        return conn

    def _discard(self, flow_key: FlowKey, conn: ProxyConnection) -> None:
        with self._lock:
            owned = self.connections.get(flow_key) is conn
            if owned:
                del self.connections[flow_key]
                POOL_CONNECTIONS.set(len(self.connections))
        if owned:
            conn.close()

    def _pop_expired(self, now: float) -> List[Tuple[FlowKey, ProxyConnection]]:
        """Must be called with lock held."""
        expired = [
            (flow_key, conn)
            for flow_key, conn in self.connections.items()
            if conn.idle_for(now) > self.expiry
        ]
        for flow_key, _ in expired:
            del self.connections[flow_key]
        return expired

    @staticmethod
    def _close_expired(expired: List[Tuple[FlowKey, ProxyConnection]]) -> None:
        for flow_key, conn in expired:
            conn.close()
            POOL_EVICTIONS_TOTAL.inc()
            logger.info('Cleaned up expired connection for flow: %s', flow_key)
