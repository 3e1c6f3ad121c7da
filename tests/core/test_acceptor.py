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
import argparse
import ipaddress
import threading

import unittest
from unittest import mock

from gateway.core.acceptor import Acceptor
from gateway.core.listener import TcpSocketListener
from gateway.core.connection import TcpClientConnection

from tests.utils import read_until_eof


class TestAcceptor(unittest.TestCase):

    def setUp(self) -> None:
        flags = argparse.Namespace(
            hostname=ipaddress.ip_address('127.0.0.1'),
            listen_port=0,
            backlog=5,
        )
        self.listener = TcpSocketListener(flags=flags)
        self.listener.setup()
        self.addCleanup(self.listener.shutdown)

    def test_each_flow_is_handled_in_its_own_thread(self) -> None:
        handled = threading.Event()
        release = threading.Event()
        threads = set()

        def handler(client: TcpClientConnection) -> None:
            threads.add(threading.current_thread().name)
            client.send(b'hi')
            if len(threads) == 2:
                handled.set()
            release.wait(5)

        acceptor = Acceptor(self.listener, handler)
        acceptor.start()
        clients = [
            socket.create_connection(('127.0.0.1', self.listener.bound_port))
            for _ in range(2)
        ]
        self.assertTrue(handled.wait(5))
        self.assertEqual(acceptor.inflight, 2)
        self.assertEqual(len(threads), 2)
        release.set()
        for client in clients:
            self.assertEqual(read_until_eof(client), b'hi')
            client.close()
        acceptor.shutdown()
        self.assertEqual(acceptor.inflight, 0)
        self.assertFalse(acceptor.is_alive())

    def test_shutdown_closes_inflight_clients(self) -> None:
        started = threading.Event()

        def handler(client: TcpClientConnection) -> None:
            started.set()
            # Blocks until shutdown closes the client connection
            while client.recv() is not None:
                pass

        acceptor = Acceptor(self.listener, handler)
        acceptor.start()
        client = socket.create_connection(('127.0.0.1', self.listener.bound_port))
        client.settimeout(5)
        self.assertTrue(started.wait(5))
        acceptor.shutdown()
        self.assertEqual(acceptor.inflight, 0)
        self.assertEqual(read_until_eof(client), b'')
        client.close()

    def test_handler_error_is_scoped_to_flow(self) -> None:
        handler = mock.Mock(side_effect=[RuntimeError('boom'), None])
        acceptor = Acceptor(self.listener, handler)
        acceptor.start()
        for _ in range(2):
            client = socket.create_connection(('127.0.0.1', self.listener.bound_port))
            client.settimeout(5)
            self.assertEqual(read_until_eof(client), b'')
            client.close()
        acceptor.shutdown()
        self.assertEqual(handler.call_count, 2)
