# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import logging
import threading
import selectors

from typing import Optional, Tuple

from ..common.constants import DEFAULT_BUFFER_SIZE, DEFAULT_SELECTOR_SELECT_TIMEOUT

from .connection import TcpConnection

logger = logging.getLogger(__name__)


class RelayTerminated(Exception):
    """Normal end of a relay, one side reached EOF or failed."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def relay(
        a: TcpConnection,
        b: TcpConnection,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        stop: Optional[threading.Event] = None,
) -> Tuple[int, int]:
    """Copies bytes between a and b in both directions.

    Returns bytes copied from a to b and from b to a.  Both
    endpoints are closed on return, whichever side ended the relay.
    """
    counts = {id(a): 0, id(b): 0}
    selector = selectors.DefaultSelector()
    try:
        selector.register(a.connection, selectors.EVENT_READ, (a, b))
        selector.register(b.connection, selectors.EVENT_READ, (b, a))
        while True:
            if stop is not None and stop.is_set():
                raise RelayTerminated('stop requested')
            if a.closed or b.closed:
                raise RelayTerminated('endpoint closed')
            for key, _ in selector.select(timeout=DEFAULT_SELECTOR_SELECT_TIMEOUT):
                src, dst = key.data
                data = src.recv(buffer_size)
                if data is None:
                    raise RelayTerminated('%s sent EOF' % src.tag)
                dst.send(data)
                counts[id(src)] += len(data)
    except RelayTerminated as e:
        logger.debug('Relay terminated, %s', e.reason)
    except (OSError, ValueError) as e:
        logger.debug('Relay terminated by %r', e)
    finally:
        selector.close()
        a.close()
        b.close()
    return counts[id(a)], counts[id(b)]
