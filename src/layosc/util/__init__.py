# -*- coding: utf-8 -*-
"""
Utility functions and constants for layosc.

- Logging configuration and management
- Default addresses, queue sizes and backend parameters

Examples
--------
Logging to stderr from a script driving an `OscLayer`:
```python
from layosc.util import start_client_log
start_client_log(log_to_file=False, log_to_stdout=True, log_level="DEBUG")
```

See Also
--------
layosc.util.logging : Logging configuration
layosc.util.defaults : Default constants
"""

from .defaults import (
    DEFAULT_HOST_ADDR,
    DEFAULT_LOGLEVEL,
    DEFAULT_N_QUBITS,
    DEFAULT_RX_PORT,
    DEFAULT_SEED,
    DEFAULT_SEND_BIND_ADDR,
    DEFAULT_TX_PORT,
    DEVICE_QUEUE_LEN,
    OSC_BUF_LEN,
    QUEUE_LEN,
    SINGLE_LINE_ERR_LOG,
    TEST_LOGLEVEL,
)
from .logging import (
    clear_log,
    format_error_response,
    get_log_filename,
    log_default_path_client,
    log_default_path_server,
    shutdown_client_log,
    start_client_log,
    start_server_log,
)

__all__ = [
    "DEFAULT_HOST_ADDR",
    "DEFAULT_LOGLEVEL",
    "DEFAULT_N_QUBITS",
    "DEFAULT_RX_PORT",
    "DEFAULT_SEED",
    "DEFAULT_SEND_BIND_ADDR",
    "DEFAULT_TX_PORT",
    "DEVICE_QUEUE_LEN",
    "OSC_BUF_LEN",
    "QUEUE_LEN",
    "SINGLE_LINE_ERR_LOG",
    "TEST_LOGLEVEL",
    "clear_log",
    "format_error_response",
    "get_log_filename",
    "log_default_path_client",
    "log_default_path_server",
    "shutdown_client_log",
    "start_client_log",
    "start_server_log",
]
