"""
Execution backends for the bridge server.

A backend is any `layosc.types.Layer`. The server buffers gate operations in the
backend's `OpsVec` and, on each measurement request, flushes the batch with
`send_receive` and reads the result from the backend's buffer.

Examples
--------
```python
from layosc.backend import StateVectorLayer
backend = StateVectorLayer(10, seed=123)
ops = backend.opsvec()
ops.initialize()
ops.x(0)
ops.measure(0, 0)
buf = backend.make_buffer()
backend.send_receive(ops, buf)
assert buf.get(0)
```
"""

from .mapping import QUBIT_MAPS, cast_x, cast_y, get_qubit_map, row_major
from .statevector import GATE_MATRICES, MeasuredBuffer, StateVectorLayer

BACKENDS = {
    "statevector": StateVectorLayer,
}

__all__ = [
    "BACKENDS",
    "GATE_MATRICES",
    "MeasuredBuffer",
    "QUBIT_MAPS",
    "StateVectorLayer",
    "cast_x",
    "cast_y",
    "get_qubit_map",
    "row_major",
]
