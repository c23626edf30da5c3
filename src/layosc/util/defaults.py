# -*- coding: utf-8 -*-

DEFAULT_HOST_ADDR = "127.0.0.1"
DEFAULT_TX_PORT = 8860  # where responses go
DEFAULT_RX_PORT = 8861  # where requests arrive
DEFAULT_SEND_BIND_ADDR = "0.0.0.0:9999"
DEFAULT_LOGLEVEL = "INFO"
TEST_LOGLEVEL = "TRACE"
SINGLE_LINE_ERR_LOG = False  # reformat tracebacks into a single line for logs

QUEUE_LEN = 100  # server-side channels
DEVICE_QUEUE_LEN = 1000  # layer adapter channels
OSC_BUF_LEN = 1000  # max datagram size read from a socket

DEFAULT_N_QUBITS = 10
DEFAULT_SEED = 123
