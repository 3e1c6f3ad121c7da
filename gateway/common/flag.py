# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import sys
import json
import logging
import argparse
import ipaddress

from typing import Optional, List, Any, Dict

from .utils import split_host_port
from .logger import Logger
from .constants import MODE_FRAME

from .version import __version__

__homepage__ = 'https://github.com/abhinavsingh/gateway.py'

logger = logging.getLogger(__name__)


class FlagParser:
    """Wrapper around argparse module.

    Import `flag.flags` and use `add_argument` API
    to define custom flags within respective Python files.

    Best Practice:
    1. Define flags at the top of your class files.
    2. DO NOT add flags within your class `__init__` method OR
       within class methods.  It MAY result into runtime exception,
       especially if your class is initialized multiple times or if
       class method registering the flag gets invoked multiple times.
    """

    def __init__(self) -> None:
        self.args: Optional[argparse.Namespace] = None
        self.actions: List[str] = []
        self.parser = argparse.ArgumentParser(
            description='gateway.py v%s' % __version__,
            epilog='gateway.py not working? Report at: %s/issues/new' % __homepage__,
        )

    def add_argument(self, *args: Any, **kwargs: Any) -> argparse.Action:
        """Register a flag."""
        action = self.parser.add_argument(*args, **kwargs)
        self.actions.append(action.dest)
        return action

    def parse_args(
            self, input_args: Optional[List[str]],
            namespace: Optional[argparse.Namespace] = None,
    ) -> argparse.Namespace:
        """Parse flags from input arguments.

        Attributes already present on ``namespace`` are retained
        unless the flag was passed explicitly."""
        self.args = self.parser.parse_args(input_args, namespace=namespace)
        return self.args

    @staticmethod
    def load_config(path: str) -> Dict[str, Any]:
        """Reads a JSON object of flag values, e.g.

        ``{"proxy_addr": "10.0.0.1:3128", "pool_capacity": 50}``

        Keys may use either dashes or underscores."""
        with open(path, 'r', encoding='utf-8') as config_file:
            config = json.load(config_file)
        if not isinstance(config, dict):
            raise ValueError('Config file %s must contain a JSON object' % path)
        return {k.replace('-', '_'): v for k, v in config.items()}

    @staticmethod
    def initialize(
        input_args: Optional[List[str]] = None,
        **opts: Any,
    ) -> argparse.Namespace:
        if input_args is None:
            input_args = []

        # Parse flags
        args = flags.parse_args(input_args)

        # Print version and exit
        if args.version:
            print(__version__)
            sys.exit(0)

        # Values from --config act as defaults,
        # flags passed explicitly on the command line still win.
        unknown_keys: List[str] = []
        if args.config:
            config = FlagParser.load_config(args.config)
            unknown_keys = [k for k in config if k not in flags.actions]
            args = flags.parse_args(
                input_args,
                namespace=argparse.Namespace(**{
                    k: v for k, v in config.items() if k in flags.actions
                }),
            )

        # Options passed by embedding code override everything
        for key, value in opts.items():
            setattr(args, key, value)

        # Setup logging module
        Logger.setup(args.log_file, args.log_level, args.log_format)
        for key in unknown_keys:
            logger.warning('Ignoring unknown config key %s', key)

        if not args.proxy_addr:
            print(
                'Upstream proxy address is required, '
                'use --proxy-addr host:port or "proxy_addr" in --config file.',
            )
            sys.exit(1)
        try:
            args.proxy_host, args.proxy_port = split_host_port(args.proxy_addr)
        except ValueError as e:
            print('Invalid --proxy-addr: %s' % e)
            sys.exit(1)

        if args.mode == MODE_FRAME and not opts.get('substrate') and not args.substrate_klass:
            print('--mode frame requires --substrate-klass')
            sys.exit(1)

        args.hostname = ipaddress.ip_address(str(args.hostname))
        args.redirect_ports = [int(p) for p in args.redirect_ports]
        return args


flags = FlagParser()
