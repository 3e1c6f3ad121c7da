# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from .gateway import Gateway, GatewayStatus, main, sleep_loop, entry_point
from .common.version import __version__


__all__ = [
    # PyPi package entry_point.
    'entry_point',
    # Embed gateway.py.
    'main',
    'Gateway',
    'GatewayStatus',
    # Utility exposed for demos
    'sleep_loop',
    '__version__',
]
