"""
Bridge server configuration.

Examples
--------
```python
from layosc.system import load_bridge_config
config = load_bridge_config("default")
backend = config.make_backend()
```
"""

from .config import (
    PACKAGED_CONFIG,
    BridgeConfig,
    list_bridge_configs,
    load_bridge_config,
    user_config_path,
    validate_bridge_config,
)

__all__ = [
    "PACKAGED_CONFIG",
    "BridgeConfig",
    "list_bridge_configs",
    "load_bridge_config",
    "user_config_path",
    "validate_bridge_config",
]
