# -*- coding: utf-8 -*-
"""
Standalone bridge server.

The server receives gate requests as OSC datagrams, applies them to a local
execution backend, and sends measurement results back over UDP. It runs as
three asyncio tasks (receiver, runner, sender) joined by bounded channels.

Examples
--------
Running a bridge from a script:
```python
import asyncio
from layosc.server import start_server
from layosc.system import load_bridge_config

asyncio.run(start_server(load_bridge_config("default"), log_to_stdout=True))
```

Or from the command line:
```bash
$ layosc server 127.0.0.1:8860 127.0.0.1:8861
```

See Also
--------
layosc.server.loops : Receiver and sender loops
layosc.server.runner : Request dispatch onto the backend
layosc.server.server : Pipeline supervision and server entry points
layosc.server.bg_killer : Registry of running servers
"""

from .bg_killer import (
    cleanup_stale_servers,
    get_servers_dir,
    kill_layosc_servers,
    list_running_servers,
    register_server,
)
from .loops import receiver_loop, sender_loop
from .runner import Runner, runner_loop
from .server import exec_server, run_pipeline, start_server
from .transport import bind_udp

__all__ = [
    "Runner",
    "bind_udp",
    "cleanup_stale_servers",
    "exec_server",
    "get_servers_dir",
    "kill_layosc_servers",
    "list_running_servers",
    "receiver_loop",
    "register_server",
    "run_pipeline",
    "runner_loop",
    "sender_loop",
    "start_server",
]
