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
from typing import Any, Dict, Optional

from .constants import DEFAULT_LOG_FILE, DEFAULT_LOG_LEVEL, DEFAULT_LOG_FORMAT


SINGLE_CHAR_TO_LEVEL = {
    'D': 'DEBUG',
    'I': 'INFO',
    'W': 'WARNING',
    'E': 'ERROR',
    'C': 'CRITICAL',
}


def single_char_to_level(char: str) -> int:
    """Resolves ``d``, ``Debug``, ``DEBUG`` etc into a logging level.

    Raises ``ValueError`` for anything else."""
    level = SINGLE_CHAR_TO_LEVEL.get(char.strip().upper()[:1])
    if level is None:
        raise ValueError('Unknown log level %r' % char)
    return int(getattr(logging, level))


class Logger:
    """Gateway logging setup.

    Every module owns a ``logging.getLogger(__name__)`` logger,
    this only configures the root handler once during startup."""

    @staticmethod
    def setup(
            log_file: Optional[str] = DEFAULT_LOG_FILE,
            log_level: str = DEFAULT_LOG_LEVEL,
            log_format: str = DEFAULT_LOG_FORMAT,
    ) -> None:
        options: Dict[str, Any] = {
            'level': single_char_to_level(log_level),
            'format': log_format,
        }
        if log_file:    # pragma: no cover
            options.update(filename=log_file, filemode='a')
        logging.basicConfig(**options)
