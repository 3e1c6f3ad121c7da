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
import ipaddress

from typing import NamedTuple

from ...common.types import HostPort
from ...http.exception import GatewayException

IPV4_VERSION = 4
IPPROTO_TCP = 6
IPV4_MIN_HEADER_LEN = 20
TCP_MIN_HEADER_LEN = 20


class FrameMalformed(GatewayException):
    """Frame is not a well formed IPv4 TCP segment.

    Such frames are always passed through unchanged."""
    pass


class Frame(NamedTuple):
    """A parsed IPv4 frame carrying a TCP segment."""
    raw: bytes
    ihl: int
    tcp_len: int
    src_addr: str
    src_port: int
    dst_addr: str
    dst_port: int

    @property
    def payload(self) -> bytes:
        return self.raw[self.ihl + self.tcp_len:]


def parse_frame(raw: bytes) -> Frame:
    if len(raw) < IPV4_MIN_HEADER_LEN:
        raise FrameMalformed('Short frame of %d bytes' % len(raw))
    if raw[0] >> 4 != IPV4_VERSION:
        raise FrameMalformed('Not an IPv4 frame')
    ihl = (raw[0] & 0x0F) * 4
    total_len = struct.unpack('!H', raw[2:4])[0]
    if ihl < IPV4_MIN_HEADER_LEN or total_len < ihl or total_len > len(raw):
        raise FrameMalformed('Inconsistent IPv4 header lengths')
    if raw[9] != IPPROTO_TCP:
        raise FrameMalformed('Not a TCP frame')
    if total_len < ihl + TCP_MIN_HEADER_LEN:
        raise FrameMalformed('Short TCP segment')
    tcp_len = (raw[ihl + 12] >> 4) * 4
    if tcp_len < TCP_MIN_HEADER_LEN or ihl + tcp_len > total_len:
        raise FrameMalformed('Inconsistent TCP header length')
    src_port, dst_port = struct.unpack('!HH', raw[ihl:ihl + 4])
    return Frame(
        raw=bytes(raw[:total_len]),
        ihl=ihl,
        tcp_len=tcp_len,
        src_addr=socket.inet_ntoa(raw[12:16]),
        src_port=src_port,
        dst_addr=socket.inet_ntoa(raw[16:20]),
        dst_port=dst_port,
    )


def internet_checksum(data: bytes) -> int:
    """RFC 1071 ones' complement checksum."""
    if len(data) % 2:
        data += b'\x00'
    total = sum(struct.unpack('!%dH' % (len(data) // 2), data))
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return ~total & 0xFFFF


def redirect_frame(frame: Frame, addr: HostPort) -> bytes:
    """Rewrites destination of the frame to addr.

    Both IPv4 header checksum and TCP checksum are recomputed.
    Raises ``ValueError`` when addr host is not an IPv4 address."""
    host, port = addr
    dst = ipaddress.IPv4Address(host).packed
    ihl = frame.ihl
    buf = bytearray(frame.raw)
    buf[16:20] = dst
    buf[ihl + 2:ihl + 4] = struct.pack('!H', port)
    # IPv4 header checksum
    buf[10:12] = b'\x00\x00'
    buf[10:12] = struct.pack('!H', internet_checksum(bytes(buf[:ihl])))
    # TCP checksum over pseudo header and segment
    segment_len = len(buf) - ihl
    buf[ihl + 16:ihl + 18] = b'\x00\x00'
    pseudo = bytes(buf[12:20]) + struct.pack('!BBH', 0, IPPROTO_TCP, segment_len)
    buf[ihl + 16:ihl + 18] = struct.pack(
        '!H', internet_checksum(pseudo + bytes(buf[ihl:])),
    )
    return bytes(buf)
