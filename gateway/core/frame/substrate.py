# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import queue
import argparse

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple

from ...common.constants import DEFAULT_ACCEPT_TIMEOUT

from ..connection import FlowKey

from .packet import Frame


class Substrate(ABC):
    """Frame layer a gateway can intercept traffic from.

    Implementations capture outbound frames and reinject frames,
    addresses are opaque to the gateway and returned to ``send``
    as received.  Loaded using ``--substrate-klass``, or passed
    directly as ``substrate`` option when embedding.
    """

    def __init__(self, flags: Optional[argparse.Namespace] = None) -> None:
        self.flags = flags

    @abstractmethod
    def receive(self) -> Optional[Tuple[bytes, Any]]:
        """Returns next captured frame with its address.

        Must return None when nothing arrives within a short period,
        so that callers can observe shutdown."""
        raise NotImplementedError()     # pragma: no cover

    @abstractmethod
    def send(self, frame: bytes, addr: Any) -> None:
        """Reinjects a frame.

        May be called from several threads at once."""
        raise NotImplementedError()     # pragma: no cover

    def flow_key(self, frame: Frame, addr: Any) -> FlowKey:
        return FlowKey(frame.src_addr, frame.src_port, frame.dst_addr, frame.dst_port)

    def setup(self) -> None:
        pass

    def close(self) -> None:
        pass


class QueueSubstrate(Substrate):
    """In-process substrate, frames are exchanged over queues.

    Useful when another component already captures frames."""

    def __init__(self, flags: Optional[argparse.Namespace] = None) -> None:
        super().__init__(flags)
        self.inbound: 'queue.Queue[Tuple[bytes, Any]]' = queue.Queue()
        self.outbound: 'queue.Queue[Tuple[bytes, Any]]' = queue.Queue()

    def inject(self, frame: bytes, addr: Any = None) -> None:
        self.inbound.put((frame, addr))

    def receive(self) -> Optional[Tuple[bytes, Any]]:
        try:
            return self.inbound.get(timeout=DEFAULT_ACCEPT_TIMEOUT)
        except queue.Empty:
            return None

    def send(self, frame: bytes, addr: Any) -> None:
        self.outbound.put((frame, addr))
