# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import ipaddress
from typing import List, Tuple, Union


Selectable = int
Selectables = List[Selectable]
Readables = Selectables
Writables = Selectables
IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
HostPort = Tuple[str, int]
