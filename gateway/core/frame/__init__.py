# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from .packet import Frame, FrameMalformed, parse_frame, redirect_frame, internet_checksum
from .substrate import Substrate, QueueSubstrate
from .interceptor import FrameInterceptor, FlowWorker

__all__ = [
    'Frame',
    'FrameMalformed',
    'parse_frame',
    'redirect_frame',
    'internet_checksum',
    'Substrate',
    'QueueSubstrate',
    'FrameInterceptor',
    'FlowWorker',
]
