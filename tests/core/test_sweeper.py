# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import threading

import unittest
from unittest import mock

from gateway.core.sweeper import Sweeper


class TestSweeper(unittest.TestCase):

    def test_sweep_returns_evicted_count(self) -> None:
        pool = mock.Mock()
        pool.evict_expired.return_value = 3
        self.assertEqual(Sweeper(pool).sweep(), 3)
        pool.evict_expired.assert_called_once_with()

    def test_runs_every_interval_until_stopped(self) -> None:
        pool = mock.Mock()
        swept = threading.Event()

        def evict_expired() -> int:
            if pool.evict_expired.call_count >= 3:
                swept.set()
            return 0

        pool.evict_expired.side_effect = evict_expired
        stop = threading.Event()
        sweeper = Sweeper(pool, interval=0.01, stop=stop)
        sweeper.start()
        self.assertTrue(swept.wait(5))
        stop.set()
        sweeper.join(5)
        self.assertFalse(sweeper.is_alive())

    def test_stopped_before_first_interval(self) -> None:
        pool = mock.Mock()
        stop = threading.Event()
        sweeper = Sweeper(pool, interval=60, stop=stop)
        sweeper.start()
        stop.set()
        sweeper.join(5)
        self.assertFalse(sweeper.is_alive())
        pool.evict_expired.assert_not_called()
