# -*- coding: utf-8 -*-
"""
Log sinks for the bridge server and for library (client) use.

Both the standalone server and `OscLayer` users log through loguru's global
`logger`; these helpers only decide where the records go.
"""

import os
import pathlib
import sys
import traceback

from loguru import logger

from .defaults import DEFAULT_LOGLEVEL, SINGLE_LINE_ERR_LOG


def format_error_response():
    err_str = traceback.format_exc()
    if SINGLE_LINE_ERR_LOG:
        return "\t".join(line.strip() for line in err_str.splitlines())
    else:
        return err_str


def _add_sinks(kind, log_path, log_to_file, log_to_stdout, clear_prev, log_level):
    if clear_prev:
        clear_log(log_path)

    # first remove (default) stderr output
    logger.remove()

    if log_to_file:
        logger.add(log_path, level=log_level, enqueue=True, colorize=False)
        logger.our_log_path_attr = log_path
    if log_to_stdout:
        logger.add(sys.stderr, level=log_level, enqueue=True, colorize=True)
    if log_to_file:
        logger.info("{} log started at {}", kind, log_path)
    else:
        logger.info("{} log started.", kind)


def start_client_log(
    log_to_file=True,
    log_to_stdout=False,
    log_path=None,
    clear_prev=True,
    log_level=DEFAULT_LOGLEVEL,
):
    """Route library logging (e.g. from `OscLayer`) to ~/.layosc/client.log."""
    log_path = os.path.abspath(log_path) if log_path else log_default_path_client()
    _add_sinks("Client", log_path, log_to_file, log_to_stdout, clear_prev, log_level)


def start_server_log(
    log_to_file=True,
    log_to_stdout=False,
    log_path=None,
    clear_prev=True,
    log_level=DEFAULT_LOGLEVEL,
):
    log_path = os.path.abspath(log_path) if log_path else log_default_path_server()
    _add_sinks("Server", log_path, log_to_file, log_to_stdout, clear_prev, log_level)


def log_default_path_client() -> str:
    return str(pathlib.Path.home().joinpath(".layosc/client.log"))


def log_default_path_server() -> str:
    return str(pathlib.Path.home().joinpath(".layosc/server.log"))


def clear_log(log_path: str):
    """
    Clear the log file at the given path, if it exists.

    Arguments
    ---------
    log_path : str
        The path to the log file. Can get the default paths with
        log_default_path_client() or log_default_path_server().
    """
    if os.path.exists(log_path):
        try:
            os.remove(log_path)
        except PermissionError:
            logger.error(
                f"Could not clear log file {log_path}. Permission denied. Continuing."
            )


def shutdown_client_log():
    try:
        logger.info("Closing down client log.")
        logger.remove()
    except Exception:
        logger.exception("Error shutting down client log - skipping.")


def get_log_filename() -> str:
    """Finds the log filename."""
    if hasattr(logger, "our_log_path_attr"):
        return logger.our_log_path_attr
    else:
        return ""
