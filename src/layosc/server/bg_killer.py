"""Registry of running bridge servers (PID files) and tools to kill them."""

import json
import os
from datetime import datetime
from pathlib import Path

import psutil
from loguru import logger


def get_servers_dir() -> Path:
    """Get the directory for storing server PID files."""
    base_dir = Path.home() / ".layosc"
    servers_dir = base_dir / "running_servers"
    servers_dir.mkdir(parents=True, exist_ok=True)
    return servers_dir


def register_server(tx: str, rx: str) -> Path:
    """Register a running server in the PID directory."""
    pid = os.getpid()
    timestamp = datetime.now().strftime("%Y-%m-%d_%H:%M:%S")

    server_info = {
        "pid": pid,
        "timestamp": timestamp,
        "tx": tx,
        "rx": rx,
    }

    pid_file = get_servers_dir() / f"server_{pid}.json"
    with pid_file.open("w") as f:
        json.dump(server_info, f, indent=2)

    return pid_file


def _read_pid_file(pid_file: Path) -> dict:
    with pid_file.open() as f:
        return json.load(f)


def list_running_servers() -> list[dict]:
    """Get info about all registered servers, with their running status."""
    servers = []
    for pid_file in get_servers_dir().glob("server_*.json"):
        try:
            server_info = _read_pid_file(pid_file)
        except (OSError, ValueError):
            logger.debug("Skipping unreadable PID file {}", pid_file)
            continue
        server_info["running"] = psutil.pid_exists(server_info.get("pid", -1))
        servers.append(server_info)
    return servers


def kill_layosc_servers() -> int:
    """Find and kill all running bridge server processes."""
    killed = 0
    for pid_file in get_servers_dir().glob("server_*.json"):
        try:
            server_info = _read_pid_file(pid_file)
            pid = server_info["pid"]
            try:
                proc = psutil.Process(pid)
                logger.info(
                    f"Killing server PID {pid} started at {server_info['timestamp']}"
                )
                proc.kill()
                killed += 1
            except psutil.NoSuchProcess:
                logger.debug(f"Server PID {pid} no longer exists")

            # Clean up stale PID file
            pid_file.unlink()

        except (OSError, ValueError, KeyError, psutil.Error) as e:
            logger.error(f"Error processing {pid_file}: {e}")
            continue

    return killed


def cleanup_stale_servers() -> int:
    """Remove PID files for servers that no longer exist."""
    removed = 0
    for pid_file in get_servers_dir().glob("server_*.json"):
        try:
            server_info = _read_pid_file(pid_file)
            if not psutil.pid_exists(server_info["pid"]):
                pid_file.unlink()
                removed += 1
        except (OSError, ValueError, KeyError):
            continue
    return removed
