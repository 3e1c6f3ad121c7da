# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import platform
import ipaddress
from typing import List

from .version import __version__


IS_WINDOWS = platform.system() == 'Windows'

CR = b'\r'
LF = b'\n'
CRLF = CR + LF
COLON = b':'
WHITESPACE = b' '
SLASH = b'/'
HTTP_1_1 = b'HTTP/1.1'
HTTP_URL_PREFIX = b'http://'

GATEWAY_AGENT_HEADER_KEY = b'Proxy-agent'
GATEWAY_AGENT_HEADER_VALUE = b'gateway.py v' + \
    __version__.encode('utf-8', 'strict')

# Defaults
DEFAULT_PROXY_ADDR = None
DEFAULT_BUFFER_SIZE = 8192
DEFAULT_POOL_CAPACITY = 100
DEFAULT_POOL_EXPIRY = 5 * 60.0          # in seconds
DEFAULT_SWEEP_INTERVAL = 60.0           # in seconds
DEFAULT_PROBE_TIMEOUT = 100 / 1000      # in seconds
DEFAULT_STATUS_INTERVAL = 30.0          # in seconds
DEFAULT_LISTEN_PORT = 8080
DEFAULT_IPV4_HOSTNAME = ipaddress.IPv4Address('127.0.0.1')
DEFAULT_BACKLOG = 100
DEFAULT_TIMEOUT = 10.0
DEFAULT_HTTP_PORT = 80
DEFAULT_HTTPS_PORT = 443
DEFAULT_REDIRECT_PORTS: List[int] = [DEFAULT_HTTP_PORT, DEFAULT_HTTPS_PORT]
DEFAULT_CONFIG_FILE = None
DEFAULT_MODE = 'socket'
DEFAULT_SUBSTRATE_KLASS = None
DEFAULT_ENABLE_METRICS = False
DEFAULT_METRICS_PORT = 9100
DEFAULT_LOG_FILE = None
DEFAULT_LOG_FORMAT = '%(asctime)s - pid:%(process)d [%(levelname)-.1s] %(module)s.%(funcName)s:%(lineno)d - %(message)s'
DEFAULT_LOG_LEVEL = 'INFO'
DEFAULT_VERSION = False
DEFAULT_ACCESS_LOG_FORMAT = '{client_ip}:{client_port} - ' + \
    '{request_method} {server_host}:{server_port} -> ' + \
    '{upstream_proxy_host}:{upstream_proxy_port} - ' + \
    '{request_bytes}/{response_bytes} bytes - ' + \
    '{connection_time_ms} ms'
# 25 milliseconds to keep the relay loops responsive to shutdown
DEFAULT_SELECTOR_SELECT_TIMEOUT = 25 / 1000
# Acceptor wakes up this often to observe the shutdown signal
DEFAULT_ACCEPT_TIMEOUT = 100 / 1000
DEFAULT_FLOW_IDLE_TIMEOUT = 5.0         # in seconds

MODE_SOCKET = 'socket'
MODE_FRAME = 'frame'
MODES = (MODE_SOCKET, MODE_FRAME)
