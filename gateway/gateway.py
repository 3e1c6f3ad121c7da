# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.

    .. spelling::

       embeddable
       upstream
"""
import sys
import signal
import logging
import argparse
import threading

from typing import Any, Dict, List, NamedTuple, Optional

from .common.flag import FlagParser, flags
from .common.utils import import_klass
from .common.constants import (
    IS_WINDOWS, DEFAULT_VERSION, DEFAULT_LOG_FILE, DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_FORMAT, DEFAULT_CONFIG_FILE, DEFAULT_PROXY_ADDR, DEFAULT_MODE,
    DEFAULT_TIMEOUT, DEFAULT_STATUS_INTERVAL, DEFAULT_ENABLE_METRICS,
    DEFAULT_METRICS_PORT, MODES, MODE_FRAME,
)
from .core.frame import FrameInterceptor, Substrate
from .core.metrics import start_metrics_server
from .core.sweeper import Sweeper
from .core.acceptor import Acceptor
from .core.listener import TcpSocketListener
from .core.connection import ConnectionPool
from .http.redirector import Redirector


logger = logging.getLogger(__name__)


flags.add_argument(
    '--version',
    '-v',
    action='store_true',
    default=DEFAULT_VERSION,
    help='Prints gateway.py version.',
)

flags.add_argument(
    '--log-level',
    type=str,
    default=DEFAULT_LOG_LEVEL,
    help='Valid options: DEBUG, INFO (default), WARNING, ERROR, CRITICAL. '
    'Both upper and lowercase values are allowed. '
    'You may also simply use the leading character e.g. --log-level d',
)

flags.add_argument(
    '--log-file',
    type=str,
    default=DEFAULT_LOG_FILE,
    help='Default: sys.stdout. Log file destination.',
)

flags.add_argument(
    '--log-format',
    type=str,
    default=DEFAULT_LOG_FORMAT,
    help='Log format for Python logger.',
)

flags.add_argument(
    '--config',
    type=str,
    default=DEFAULT_CONFIG_FILE,
    help='Default: None.  JSON file of flag values, e.g. '
    '{"proxy_addr": "10.0.0.1:3128"}.  Flags passed on command line win.',
)

flags.add_argument(
    '--proxy-addr',
    type=str,
    default=DEFAULT_PROXY_ADDR,
    help='Required.  Upstream proxy host:port all traffic is redirected through.',
)

flags.add_argument(
    '--mode',
    type=str,
    choices=MODES,
    default=DEFAULT_MODE,
    help='Default: ' + DEFAULT_MODE + '.  Use "socket" to accept connections on '
    '--listen-port, or "frame" to intercept frames from --substrate-klass.',
)

flags.add_argument(
    '--timeout',
    type=float,
    default=DEFAULT_TIMEOUT,
    help='Default: ' + str(int(DEFAULT_TIMEOUT)) + ' seconds.  ' +
    'Upstream proxy dial timeout and client socket timeout.',
)

flags.add_argument(
    '--status-interval',
    type=float,
    default=DEFAULT_STATUS_INTERVAL,
    help='Default: ' + str(int(DEFAULT_STATUS_INTERVAL)) + ' seconds.  ' +
    'How often gateway status is logged.',
)

flags.add_argument(
    '--enable-metrics',
    action='store_true',
    default=DEFAULT_ENABLE_METRICS,
    help='Default: False.  Enables Prometheus metrics endpoint.',
)

flags.add_argument(
    '--metrics-port',
    type=int,
    default=DEFAULT_METRICS_PORT,
    help='Default: ' + str(DEFAULT_METRICS_PORT) + '.  Prometheus metrics port.',
)


class GatewayStatus(NamedTuple):
    running: bool
    mode: str
    proxy_addr: str
    listen_port: Optional[int]
    buffer_size: int
    active_conns: int
    pool_capacity: int
    pool_expiry: float
    inflight_flows: int


class Gateway:
    """Redirection gateway engine.

    Owns the connection pool, the traffic boundary (an acceptor
    for the socket mode, a frame interceptor for the frame mode),
    the sweeper and the status reporter.  Multiple instances can
    run within one process, each with its own flags.

    Use as a context manager, or call ``setup()`` and
    ``shutdown()`` explicitly.
    """

    def __init__(self, input_args: Optional[List[str]] = None, **opts: Any) -> None:
        self.opts = opts
        self.flags = FlagParser.initialize(input_args, **opts)
        self.stop = threading.Event()
        self.pool: Optional[ConnectionPool] = None
        self.listener: Optional[TcpSocketListener] = None
        self.acceptor: Optional[Acceptor] = None
        self.substrate: Optional[Substrate] = None
        self.interceptor: Optional[FrameInterceptor] = None
        self.sweeper: Optional[Sweeper] = None
        self.reporter: Optional[threading.Thread] = None
        self.running = False
        self._signal_handlers: Dict[int, Any] = {}

    def __enter__(self) -> 'Gateway':
        self.setup()
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()

    def setup(self) -> None:
        self.pool = ConnectionPool(
            (self.flags.proxy_host, self.flags.proxy_port),
            capacity=self.flags.pool_capacity,
            expiry=self.flags.pool_expiry,
            probe_timeout=self.flags.probe_timeout,
            timeout=self.flags.timeout,
        )
        if self.flags.enable_metrics:
            start_metrics_server(self.flags.metrics_port)
            logger.info('Metrics available on port %d', self.flags.metrics_port)
        if self.flags.mode == MODE_FRAME:
            self.substrate = self._setup_substrate(self.flags)
            self.interceptor = FrameInterceptor(
                self.substrate,
                self.pool,
                (self.flags.proxy_host, self.flags.proxy_port),
                redirect_ports=self.flags.redirect_ports,
                stop=self.stop,
            )
            self.interceptor.start()
        else:
            self.listener = TcpSocketListener(flags=self.flags)
            self.listener.setup()
            # Reflect the actual port when --listen-port=0 is used
            self.flags.listen_port = self.listener.bound_port
            self.acceptor = Acceptor(
                self.listener,
                Redirector(self.flags, self.pool, stop=self.stop),
                stop=self.stop,
                timeout=self.flags.timeout,
            )
            self.acceptor.start()
        self.sweeper = Sweeper(self.pool, self.flags.sweep_interval, stop=self.stop)
        self.sweeper.start()
        self.reporter = threading.Thread(
            target=self._report_status,
            name='gateway-status',
            daemon=True,
        )
        self.reporter.start()
        self.running = True
        logger.info(
            'Gateway started in %s mode, redirecting through %s',
            self.flags.mode, self.flags.proxy_addr,
        )
        if threading.current_thread() == threading.main_thread():
            self._register_signals()

    def shutdown(self) -> None:
        if not self.running:
            return
        logger.info('Shutting down gateway...')
        self.stop.set()
        if self.acceptor is not None:
            self.acceptor.join()
        if self.interceptor is not None:
            self.interceptor.join()
        assert self.pool is not None
        self.pool.close_all()
        if self.acceptor is not None:
            self.acceptor.shutdown()
        if self.listener is not None:
            self.listener.shutdown()
        if self.substrate is not None:
            self.substrate.close()
        for thread in (self.sweeper, self.reporter):
            if thread is not None:
                thread.join()
        self._restore_signals()
        self.running = False
        logger.info('Gateway stopped')

    def status(self) -> GatewayStatus:
        return GatewayStatus(
            running=self.running and not self.stop.is_set(),
            mode=self.flags.mode,
            proxy_addr=self.flags.proxy_addr,
            listen_port=self.flags.listen_port,
            buffer_size=self.flags.buffer_size,
            active_conns=len(self.pool) if self.pool is not None else 0,
            pool_capacity=self.flags.pool_capacity,
            pool_expiry=self.flags.pool_expiry,
            inflight_flows=self._inflight_flows(),
        )

    def _inflight_flows(self) -> int:
        if self.acceptor is not None:
            return self.acceptor.inflight
        if self.interceptor is not None:
            return self.interceptor.inflight
        return 0

    @staticmethod
    def _setup_substrate(flags: argparse.Namespace) -> Substrate:
        substrate: Optional[Substrate] = getattr(flags, 'substrate', None)
        if substrate is None:
            substrate = import_klass(flags.substrate_klass)(flags)
        assert substrate is not None
        substrate.setup()
        return substrate

    def _report_status(self) -> None:
        while not self.stop.wait(self.flags.status_interval):
            logger.info('Gateway status: %s', self.status()._asdict())

    def _register_signals(self) -> None:
        signums = [signal.SIGINT, signal.SIGTERM]
        if not IS_WINDOWS:
            signums.append(signal.SIGHUP)
        for signum in signums:
            self._signal_handlers[signum] = signal.signal(
                signum, self._handle_exit_signal,
            )

    def _restore_signals(self) -> None:
        if threading.current_thread() != threading.main_thread():
            return
        for signum, handler in self._signal_handlers.items():
            signal.signal(signum, handler)
        self._signal_handlers.clear()

    def _handle_exit_signal(self, signum: int, _frame: Any) -> None:
        logger.info('Received signal %d' % signum)
        self.stop.set()


def sleep_loop(g: Optional[Gateway] = None) -> None:
    stop = g.stop if g is not None else threading.Event()
    while True:
        try:
            if stop.wait(1):
                break
        except KeyboardInterrupt:
            break


def main(**opts: Any) -> None:
    with Gateway(sys.argv[1:], **opts) as g:
        sleep_loop(g)


def entry_point() -> None:
    main()
