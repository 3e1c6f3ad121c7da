# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import logging
import selectors
import threading

from typing import Callable, Dict, Optional

from ..common.constants import DEFAULT_ACCEPT_TIMEOUT, DEFAULT_TIMEOUT

from .listener import TcpSocketListener
from .connection import TcpClientConnection

logger = logging.getLogger(__name__)

FlowHandler = Callable[[TcpClientConnection], None]


class Acceptor(threading.Thread):
    """Accepts client connections and handles each one in a new thread.

    Flow threads are tracked until they finish.  On shutdown the
    acceptor stops accepting, closes in-flight client connections
    and joins their threads.
    """

    def __init__(
            self,
            listener: TcpSocketListener,
            handler: FlowHandler,
            stop: Optional[threading.Event] = None,
            timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(name='gateway-acceptor', daemon=True)
        self.listener = listener
        self.handler = handler
        self.stop = stop or threading.Event()
        self.timeout = timeout
        self.flows: Dict[threading.Thread, TcpClientConnection] = {}
        self._lock = threading.Lock()

    @property
    def inflight(self) -> int:
        with self._lock:
            return len(self.flows)

    def run(self) -> None:
        with selectors.DefaultSelector() as selector:
            selector.register(self.listener.sock, selectors.EVENT_READ)
            while not self.stop.is_set():
                if selector.select(timeout=DEFAULT_ACCEPT_TIMEOUT):
                    self.accept()
        logger.debug('Acceptor stopped')

    def accept(self) -> None:
        try:
            conn, addr = self.listener.sock.accept()
        except BlockingIOError:
            return
        conn.settimeout(self.timeout)
        self.start_flow(TcpClientConnection(conn, addr[:2]))

    def start_flow(self, client: TcpClientConnection) -> threading.Thread:
        """Utility method to handle a flow in a new thread."""
        thread = threading.Thread(
            target=self._run_flow,
            args=(client,),
            name='flow-%s' % client.address,
            daemon=True,
        )
        with self._lock:
            self.flows[thread] = client
        thread.start()
        return thread

    def shutdown(self) -> None:
        self.stop.set()
        if self.is_alive():
            self.join()
        with self._lock:
            flows = list(self.flows.items())
        for _, client in flows:
            client.close()
        for thread, _ in flows:
            thread.join()
        logger.debug('Joined %d in-flight flows', len(flows))

    def _run_flow(self, client: TcpClientConnection) -> None:
        try:
            self.handler(client)
        except Exception as e:  # pragma: no cover
            logger.exception('Flow %s failed', client.address, exc_info=e)
        finally:
            client.close()
            with self._lock:
                self.flows.pop(threading.current_thread(), None)
