# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from .gateway import entry_point


if __name__ == '__main__':
    entry_point()
