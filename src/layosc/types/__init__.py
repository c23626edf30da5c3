"""
Message vocabulary, layer contract, channels and errors.

The layosc.types package is the foundation the rest of the bridge is built on:

1. Messages (messages.py)
    - The closed set of `Request` types (one per OSC address) and the
      `MeasureResult` response.
    - The shared address/opcode tables used by the codec, the runner and the
      layer adapter.

2. Layer contract (layer.py)
    - `Layer`, the abstract quantum layer that backends and the adapter
      implement.
    - `Operation`, `OpId`, `OpsVec` and the `Measured` buffer protocol.

3. Channels (channel.py)
    - `Channel`, the bounded closable FIFO between pipeline tasks.

4. Errors (errors.py)
    - Transient decode errors vs. fatal contract, transport and channel errors.

Examples
--------
Building requests and a response:
```python
from layosc.types import PauliX, Measure, MeasureResult
reqs = [PauliX(0, 0), Measure(0, 0)]
res = MeasureResult.from_bit(True)
assert res.value == 1.0
```

See Also
--------
layosc.codec : Encoding and decoding of these types
layosc.server : The standalone bridge server
layosc.layer : The library embedding
"""

from __future__ import annotations

from .channel import Channel
from .errors import (
    ArityError,
    BridgeError,
    ChannelClosed,
    ContractError,
    DecodeError,
    EncodeError,
    EnvelopeError,
    InvalidAddress,
    InvalidArguments,
    MalformedPacket,
    PipelineTerminated,
    TransportError,
    UnsupportedOperation,
)
from .layer import (
    OP_SHAPES,
    SINGLE_QUBIT_OPS,
    Layer,
    Measured,
    OpId,
    OpShape,
    Operation,
    OpsVec,
    QubitMap,
)
from .messages import (
    REQUEST_BY_OPID,
    REQUEST_TYPES,
    RESPONSE_TYPES,
    CXGate,
    Coord,
    Hadamard,
    InitZero,
    Measure,
    MeasureResult,
    Message,
    PauliX,
    PauliY,
    PauliZ,
    Request,
    Response,
    SdgGate,
    SGate,
    TdgGate,
    TGate,
    check_measure_target,
)

__all__ = [
    "Channel",
    "ArityError",
    "BridgeError",
    "ChannelClosed",
    "ContractError",
    "DecodeError",
    "EncodeError",
    "EnvelopeError",
    "InvalidAddress",
    "InvalidArguments",
    "MalformedPacket",
    "PipelineTerminated",
    "TransportError",
    "UnsupportedOperation",
    "OP_SHAPES",
    "SINGLE_QUBIT_OPS",
    "Layer",
    "Measured",
    "OpId",
    "OpShape",
    "Operation",
    "OpsVec",
    "QubitMap",
    "REQUEST_BY_OPID",
    "REQUEST_TYPES",
    "RESPONSE_TYPES",
    "CXGate",
    "Coord",
    "Hadamard",
    "InitZero",
    "Measure",
    "MeasureResult",
    "Message",
    "PauliX",
    "PauliY",
    "PauliZ",
    "Request",
    "Response",
    "SdgGate",
    "SGate",
    "TdgGate",
    "TGate",
    "check_measure_target",
]
