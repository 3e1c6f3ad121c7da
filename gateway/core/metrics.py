# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from prometheus_client import Counter, Gauge, CollectorRegistry, start_http_server


registry = CollectorRegistry(auto_describe=True)

FLOWS_TOTAL = Counter(
    'gateway_flows_total', 'Flows handled by the gateway',
    ['kind'],
    registry=registry,
)
FLOW_FAILURES_TOTAL = Counter(
    'gateway_flow_failures_total', 'Flows terminated by an error',
    ['reason'],
    registry=registry,
)
POOL_CONNECTIONS = Gauge(
    'gateway_pool_connections', 'Upstream proxy connections currently pooled',
    registry=registry,
)
POOL_EVICTIONS_TOTAL = Counter(
    'gateway_pool_evictions_total', 'Pooled connections evicted after expiry',
    registry=registry,
)
RELAYED_BYTES_TOTAL = Counter(
    'gateway_relayed_bytes_total', 'Bytes relayed between clients and upstream proxy',
    ['direction'],
    registry=registry,
)
FRAMES_TOTAL = Counter(
    'gateway_frames_total', 'Frames seen by the frame interceptor',
    ['action'],
    registry=registry,
)


def start_metrics_server(port: int, addr: str = '') -> None:
    start_http_server(port, addr=addr, registry=registry)
