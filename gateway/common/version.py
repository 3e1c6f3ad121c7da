# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from typing import Tuple, Union


VERSION: Tuple[Union[int, str], ...] = (0, 3, 0)
__version__ = '.'.join(map(str, VERSION[0:3]))


__all__ = '__version__', 'VERSION'
