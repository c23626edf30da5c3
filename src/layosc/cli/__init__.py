"""
Command-line interface for layosc.

This module provides command-line tools for running and managing bridge
servers:

- Starting a standalone bridge server
- Listing and killing running servers
- Listing named bridge configurations

The CLI is built using the Click framework.

Examples
--------
Starting a bridge that receives on port 8861 and answers to port 8860:
```bash
$ layosc server 127.0.0.1:8860 127.0.0.1:8861
```

Starting from a named configuration, overriding the seed:
```bash
$ layosc server 127.0.0.1:8860 127.0.0.1:8861 -n unseeded --seed 7
```

See Also
--------
layosc.server : Bridge server
layosc.system : Bridge configurations


CLI Tree
--------

```
$ layosc --tree
cli
└── configs
└── kill
└── list
└── server
```
"""

from .base import cli, tree_option

__all__ = ["cli", "tree_option"]
