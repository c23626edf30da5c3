"""
Library embedding of the bridge.

`OscLayer` is a `layosc.types.Layer` that forwards gate operations to a
remote device over OSC/UDP and collects the measurement results into a
`GridBuffer`.

See Also
--------
layosc.layer.adapter : Implementation and usage example
"""

from .adapter import (
    GridBuffer,
    OscLayer,
    device_comm_loop,
    receive_response,
)

__all__ = [
    "GridBuffer",
    "OscLayer",
    "device_comm_loop",
    "receive_response",
]
