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
import threading

from typing import Optional

from ..common.flag import flags
from ..common.constants import DEFAULT_SWEEP_INTERVAL

from .connection import ConnectionPool

logger = logging.getLogger(__name__)


flags.add_argument(
    '--sweep-interval',
    type=float,
    default=DEFAULT_SWEEP_INTERVAL,
    help='Default: ' + str(int(DEFAULT_SWEEP_INTERVAL)) + ' seconds.  ' +
    'How often expired pooled connections are cleaned up.',
)


class Sweeper(threading.Thread):
    """Periodically evicts expired pool entries until stopped."""

    def __init__(
            self,
            pool: ConnectionPool,
            interval: float = DEFAULT_SWEEP_INTERVAL,
            stop: Optional[threading.Event] = None,
    ) -> None:
        super().__init__(name='gateway-sweeper', daemon=True)
        self.pool = pool
        self.interval = interval
        self.stop = stop or threading.Event()

    def run(self) -> None:
        while not self.stop.wait(self.interval):
            self.sweep()
        logger.debug('Sweeper stopped')

    def sweep(self) -> int:
        try:
            evicted = self.pool.evict_expired()
        except Exception as e:  # pragma: no cover
            logger.exception('Sweep failed', exc_info=e)
            return 0
        if evicted:
            logger.info('Swept %d expired connections', evicted)
        return evicted
