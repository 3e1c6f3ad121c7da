# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import time
import socket
import threading
import struct

import pytest
import unittest
from unittest import mock

from gateway.core.metrics import registry
from gateway.core.frame import (
    FrameInterceptor, FrameMalformed, QueueSubstrate, internet_checksum,
    parse_frame, redirect_frame,
)
from gateway.core.connection import ConnectionPool, FlowKey, ProxyConnection
from gateway.http.exception import UpstreamUnreachable

from tests.utils import build_frame


def tcp_checksum_ok(raw: bytes) -> bool:
    ihl = (raw[0] & 0x0F) * 4
    pseudo = raw[12:20] + struct.pack('!BBH', 0, socket.IPPROTO_TCP, len(raw) - ihl)
    return internet_checksum(pseudo + raw[ihl:]) == 0


class TestParseFrame(unittest.TestCase):

    def test_parse(self) -> None:
        frame = parse_frame(build_frame(b'GET / HTTP/1.1\r\n\r\n'))
        self.assertEqual((frame.ihl, frame.tcp_len), (20, 20))
        self.assertEqual((frame.src_addr, frame.src_port), ('10.0.0.2', 50001))
        self.assertEqual((frame.dst_addr, frame.dst_port), ('93.184.216.34', 80))
        self.assertEqual(frame.payload, b'GET / HTTP/1.1\r\n\r\n')

    def test_parse_with_ip_options(self) -> None:
        frame = parse_frame(build_frame(b'abc', ip_options=b'\x01\x01\x01\x00'))
        self.assertEqual(frame.ihl, 24)
        self.assertEqual(frame.payload, b'abc')

    def test_trailing_padding_is_ignored(self) -> None:
        frame = parse_frame(build_frame(b'abc') + b'\x00' * 6)
        self.assertEqual(frame.payload, b'abc')

    def test_no_payload(self) -> None:
        self.assertEqual(parse_frame(build_frame()).payload, b'')


@pytest.mark.parametrize(
    'raw',
    [
        b'',
        b'\x45' * 19,
        b'\x60' + build_frame(b'abc')[1:],
        build_frame(b'abc', protocol=socket.IPPROTO_UDP),
        build_frame(b'abc')[:30],
        b'\x44' + build_frame(b'abc')[1:],
        build_frame(b'abc')[:20 + 12] + b'\xf0' + build_frame(b'abc')[20 + 13:],
    ],
)
def test_malformed_frames(raw: bytes) -> None:
    with pytest.raises(FrameMalformed):
        parse_frame(raw)


class TestRedirectFrame(unittest.TestCase):

    def test_destination_rewritten_with_valid_checksums(self) -> None:
        frame = parse_frame(build_frame(b'GET / HTTP/1.1\r\n\r\n', ip_options=b'\x01' * 4))
        raw = redirect_frame(frame, ('192.168.1.10', 3128))
        redirected = parse_frame(raw)
        self.assertEqual((redirected.dst_addr, redirected.dst_port), ('192.168.1.10', 3128))
        self.assertEqual((redirected.src_addr, redirected.src_port), ('10.0.0.2', 50001))
        self.assertEqual(redirected.payload, frame.payload)
        self.assertEqual(internet_checksum(raw[:redirected.ihl]), 0)
        self.assertTrue(tcp_checksum_ok(raw))

    def test_odd_payload_length(self) -> None:
        raw = redirect_frame(parse_frame(build_frame(b'abc')), ('10.1.1.1', 8080))
        self.assertTrue(tcp_checksum_ok(raw))

    def test_requires_ipv4_proxy(self) -> None:
        with self.assertRaises(ValueError):
            redirect_frame(parse_frame(build_frame(b'abc')), ('proxy.internal', 3128))


class TestQueueSubstrate(unittest.TestCase):

    def test_inject_receive_send(self) -> None:
        substrate = QueueSubstrate()
        self.assertIsNone(substrate.receive())
        substrate.inject(b'frame', 'addr')
        self.assertEqual(substrate.receive(), (b'frame', 'addr'))
        substrate.send(b'out', 'addr')
        self.assertEqual(substrate.outbound.get_nowait(), (b'out', 'addr'))


def frames_total(action: str) -> float:
    return registry.get_sample_value('gateway_frames_total', {'action': action}) or 0.0


class TestFrameInterceptor(unittest.TestCase):

    PROXY = ('192.168.1.10', 3128)

    def setUp(self) -> None:
        self.substrate = QueueSubstrate()
        self.pool = mock.Mock(spec=ConnectionPool)
        self.conn = mock.Mock(spec=ProxyConnection)
        self.pool.get_or_create.return_value = self.conn
        self.interceptor = FrameInterceptor(self.substrate, self.pool, self.PROXY)

    def reinjected(self) -> bytes:
        frame, addr = self.substrate.outbound.get(timeout=5)
        self.assertEqual(addr, 'addr')
        return frame

    def test_non_redirect_port_passes_through(self) -> None:
        raw = build_frame(b'SSH-2.0-OpenSSH\r\n', dst_port=22)
        self.interceptor.handle(raw, 'addr')
        self.assertEqual(self.reinjected(), raw)
        self.pool.get_or_create.assert_not_called()

    def test_malformed_frame_passes_through(self) -> None:
        before = frames_total('passthrough')
        self.interceptor.handle(b'\x60garbage', 'addr')
        self.assertEqual(self.reinjected(), b'\x60garbage')
        self.assertEqual(frames_total('passthrough'), before + 1)

    def test_handshake_frame_passes_through(self) -> None:
        raw = build_frame(b'', dst_port=443)
        self.interceptor.handle(raw, 'addr')
        self.assertEqual(self.reinjected(), raw)

    def test_plain_request_is_forwarded_and_redirected(self) -> None:
        before = frames_total('redirected')
        payload = b'GET /path HTTP/1.1\r\nHost: example.com\r\nConnection: close\r\n\r\n'
        self.interceptor.handle(build_frame(payload), 'addr')
        flow_key = FlowKey('10.0.0.2', 50001, '93.184.216.34', 80)
        descriptor = self.pool.get_or_create.call_args[0][1]
        self.pool.get_or_create.assert_called_once_with(flow_key, descriptor)
        self.assertEqual(descriptor.target, 'http://example.com/path')
        self.conn.send.assert_called_once_with(
            b'GET http://example.com/path HTTP/1.1\r\nHost: example.com\r\n\r\n',
        )
        self.assertEqual(self.conn.original_dest, 'example.com:80')
        redirected = parse_frame(self.reinjected())
        self.assertEqual((redirected.dst_addr, redirected.dst_port), self.PROXY)
        self.assertEqual(frames_total('redirected'), before + 1)

    def test_connect_request(self) -> None:
        payload = b'CONNECT example.com:443 HTTP/1.1\r\n\r\n'
        self.interceptor.handle(build_frame(payload, dst_port=443), 'addr')
        self.conn.send.assert_called_once_with(payload)
        self.assertEqual(self.conn.original_dest, 'example.com:443')
        self.assertEqual(parse_frame(self.reinjected()).dst_port, 3128)

    def test_mid_stream_payload_uses_pooled_connection(self) -> None:
        self.pool.get.return_value = self.conn
        raw = build_frame(b'\x17\x03\x03 application data', dst_port=443)
        self.interceptor.handle(raw, 'addr')
        self.pool.get_or_create.assert_not_called()
        self.conn.send.assert_called_once_with(b'\x17\x03\x03 application data')
        self.assertEqual(parse_frame(self.reinjected()).dst_port, 3128)

    def test_unknown_mid_stream_payload_passes_through(self) -> None:
        self.pool.get.return_value = None
        raw = build_frame(b'\x17\x03\x03 application data', dst_port=443)
        self.interceptor.handle(raw, 'addr')
        self.assertEqual(self.reinjected(), raw)

    def test_unreachable_proxy_fails_open(self) -> None:
        self.pool.get_or_create.side_effect = UpstreamUnreachable('192.168.1.10', 3128, 'refused')
        raw = build_frame(b'GET http://example.com/ HTTP/1.1\r\n\r\n')
        self.interceptor.handle(raw, 'addr')
        self.assertEqual(self.reinjected(), raw)

    def test_upstream_write_failure_fails_open(self) -> None:
        self.conn.send.side_effect = BrokenPipeError()
        raw = build_frame(b'GET http://example.com/ HTTP/1.1\r\n\r\n')
        self.interceptor.handle(raw, 'addr')
        self.assertEqual(self.reinjected(), raw)
        self.pool.remove.assert_called_once_with(FlowKey('10.0.0.2', 50001, '93.184.216.34', 80))

    def test_non_ipv4_proxy_fails_open(self) -> None:
        interceptor = FrameInterceptor(self.substrate, self.pool, ('proxy.internal', 3128))
        raw = build_frame(b'GET http://example.com/ HTTP/1.1\r\n\r\n')
        interceptor.handle(raw, 'addr')
        self.assertEqual(self.reinjected(), raw)

    def test_custom_redirect_ports(self) -> None:
        interceptor = FrameInterceptor(self.substrate, self.pool, self.PROXY, redirect_ports=[8080])
        raw = build_frame(b'GET http://example.com/ HTTP/1.1\r\n\r\n', dst_port=80)
        interceptor.handle(raw, 'addr')
        self.assertEqual(self.reinjected(), raw)
        self.pool.get_or_create.assert_not_called()

    def test_run_until_stopped(self) -> None:
        self.interceptor.start()
        raw = build_frame(b'', dst_port=22)
        self.substrate.inject(raw, 'addr')
        self.assertEqual(self.reinjected(), raw)
        self.interceptor.stop.set()
        self.interceptor.join(5)
        self.assertFalse(self.interceptor.is_alive())

    def test_slow_dial_does_not_delay_other_flows(self) -> None:
        slow_flow = FlowKey('10.0.0.2', 50001, '93.184.216.34', 80)
        release = threading.Event()

        def get_or_create(flow_key: FlowKey, descriptor: object) -> mock.Mock:
            if flow_key == slow_flow:
                release.wait(5)
            return self.conn
        self.pool.get_or_create.side_effect = get_or_create

        self.interceptor.start()
        try:
            slow = build_frame(b'GET http://example.com/ HTTP/1.1\r\n\r\n')
            other = build_frame(b'GET http://example.org/ HTTP/1.1\r\n\r\n', src_port=50002)
            passthrough = build_frame(b'SSH-2.0-OpenSSH\r\n', src_port=50003, dst_port=22)
            self.substrate.inject(slow, 'addr')
            self.substrate.inject(other, 'addr')
            self.substrate.inject(passthrough, 'addr')

            start = time.time()
            first, second = self.reinjected(), self.reinjected()
            self.assertLess(time.time() - start, 2)
            self.assertFalse(release.is_set())
            self.assertIn(passthrough, (first, second))
            redirected = parse_frame(second if first == passthrough else first)
            self.assertEqual(redirected.src_port, 50002)
            self.assertEqual(redirected.dst_port, 3128)

            release.set()
            self.assertEqual(parse_frame(self.reinjected()).src_port, 50001)
        finally:
            release.set()
            self.interceptor.stop.set()
            self.interceptor.join(5)
        self.assertEqual(self.interceptor.inflight, 0)

    def test_frames_of_one_flow_keep_their_order(self) -> None:
        self.pool.get.return_value = self.conn
        self.interceptor.start()
        try:
            first = build_frame(b'GET http://example.com/ HTTP/1.1\r\n\r\n')
            second = build_frame(b'body bytes')
            self.substrate.inject(first, 'addr')
            self.substrate.inject(second, 'addr')
            self.reinjected()
            self.reinjected()
            self.assertEqual(
                self.conn.send.call_args_list,
                [
                    mock.call(b'GET http://example.com/ HTTP/1.1\r\n\r\n'),
                    mock.call(b'body bytes'),
                ],
            )
        finally:
            self.interceptor.stop.set()
            self.interceptor.join(5)

    def test_idle_worker_retires(self) -> None:
        interceptor = FrameInterceptor(self.substrate, self.pool, self.PROXY, idle_timeout=0.05)
        interceptor.start()
        try:
            interceptor.substrate.inject(build_frame(b'GET http://example.com/ HTTP/1.1\r\n\r\n'), 'addr')
            self.reinjected()
            deadline = time.time() + 5
            while interceptor.inflight and time.time() < deadline:
                time.sleep(0.01)
            self.assertEqual(interceptor.inflight, 0)
        finally:
            interceptor.stop.set()
            interceptor.join(5)
