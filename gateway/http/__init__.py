# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.

    .. spelling::

       http
       Submodules
"""
from .codes import httpStatusCodes
from .headers import httpHeaders, HOP_BY_HOP_HEADERS
from .methods import httpMethods
from .rewriter import rewrite, strip_hop_by_hop
from .classifier import classify
from .descriptors import PlainRequest, ConnectRequest, RequestDescriptor


__all__ = [
    'httpStatusCodes',
    'httpHeaders',
    'httpMethods',
    'HOP_BY_HOP_HEADERS',
    'classify',
    'rewrite',
    'strip_hop_by_hop',
    'PlainRequest',
    'ConnectRequest',
    'RequestDescriptor',
]
