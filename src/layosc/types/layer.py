"""The abstract quantum layer contract.

A `Layer` is anything that accepts a batch of gate operations and hands back
measurement results. Both ends of the bridge speak it:

- the execution backend the server drives (e.g. the state-vector simulator in
  `layosc.backend`) is a `Layer`,
- the library embedding of the bridge (`layosc.layer.OscLayer`) is itself a
  `Layer`, forwarding operations to a remote device.

Operations
----------
An `Operation` is an opcode (`OpId`) together with its arguments. The shape of
the argument list is fixed per opcode:

- `EMPTY`: no arguments (`INIT`, initialise every qubit)
- `Q`: one qubit (`RESET`, `X`, `Y`, `Z`, `H`, `S`, `SDG`, `T`, `TDG`)
- `QS`: a qubit and a measurement slot (`MEAS`)
- `QQ`: control and target qubits (`CX`)

What a "qubit" or a "slot" is depends on the layer: the simulator uses integer
indices, `OscLayer` uses `(x, y)` grid positions.

Example
-------
```python
ops = backend.opsvec()
ops.initialize()
ops.x(0)
ops.measure(0, 0)
buf = backend.make_buffer()
backend.send_receive(ops, buf)
assert buf.get(0)
```
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Callable, ClassVar, Hashable, Protocol, runtime_checkable


class OpId(IntEnum):
    """Operation codes understood by layers."""

    INIT = 1
    RESET = 2
    X = 3
    Y = 4
    Z = 5
    H = 6
    S = 7
    SDG = 8
    T = 9
    TDG = 10
    CX = 11
    MEAS = 12


class OpShape(Enum):
    """Argument shape of an operation."""

    EMPTY = 0
    Q = 1
    QS = 2
    QQ = 3


SINGLE_QUBIT_OPS = frozenset(
    {
        OpId.RESET,
        OpId.X,
        OpId.Y,
        OpId.Z,
        OpId.H,
        OpId.S,
        OpId.SDG,
        OpId.T,
        OpId.TDG,
    }
)

OP_SHAPES: dict[OpId, OpShape] = {
    OpId.INIT: OpShape.EMPTY,
    **{opid: OpShape.Q for opid in SINGLE_QUBIT_OPS},
    OpId.CX: OpShape.QQ,
    OpId.MEAS: OpShape.QS,
}

_N_ARGS = {OpShape.EMPTY: 0, OpShape.Q: 1, OpShape.QS: 2, OpShape.QQ: 2}

# maps an (x, y) grid coordinate onto a layer's qubit or slot identifier
QubitMap = Callable[[int, int], Hashable]


@dataclass(frozen=True)
class Operation:
    """A single operation: opcode, argument shape and arguments."""

    opid: OpId
    shape: OpShape
    args: tuple = ()

    @classmethod
    def empty(cls, opid: OpId) -> Operation:
        return cls(opid, OpShape.EMPTY, ())

    @classmethod
    def q(cls, opid: OpId, qubit: Hashable) -> Operation:
        return cls(opid, OpShape.Q, (qubit,))

    @classmethod
    def qs(cls, opid: OpId, qubit: Hashable, slot: Hashable) -> Operation:
        return cls(opid, OpShape.QS, (qubit, slot))

    @classmethod
    def qq(cls, opid: OpId, control: Hashable, target: Hashable) -> Operation:
        return cls(opid, OpShape.QQ, (control, target))

    @property
    def well_shaped(self) -> bool:
        """True if the shape matches the one defined for the opcode."""
        expected = OP_SHAPES.get(self.opid)
        return expected is self.shape and len(self.args) == _N_ARGS[self.shape]


class OpsVec(list):
    """Buffer of pending operations with gate-building helpers.

    Operations accumulate in call order until the buffer is handed to
    `Layer.send` / `Layer.send_receive`, and are then cleared for the next
    batch.
    """

    def initialize(self) -> None:
        self.append(Operation.empty(OpId.INIT))

    def gate(self, opid: OpId, *qubits: Hashable) -> None:
        """Append a gate given its opcode and qubit argument(s)."""
        shape = OP_SHAPES[opid]
        if shape is OpShape.Q and len(qubits) == 1:
            self.append(Operation.q(opid, qubits[0]))
        elif shape is OpShape.QQ and len(qubits) == 2:
            self.append(Operation.qq(opid, *qubits))
        else:
            raise ValueError(f"{opid.name} takes a {shape.name} argument list")

    def reset(self, q: Hashable) -> None:
        self.gate(OpId.RESET, q)

    def x(self, q: Hashable) -> None:
        self.gate(OpId.X, q)

    def y(self, q: Hashable) -> None:
        self.gate(OpId.Y, q)

    def z(self, q: Hashable) -> None:
        self.gate(OpId.Z, q)

    def h(self, q: Hashable) -> None:
        self.gate(OpId.H, q)

    def s(self, q: Hashable) -> None:
        self.gate(OpId.S, q)

    def sdg(self, q: Hashable) -> None:
        self.gate(OpId.SDG, q)

    def t(self, q: Hashable) -> None:
        self.gate(OpId.T, q)

    def tdg(self, q: Hashable) -> None:
        self.gate(OpId.TDG, q)

    def cx(self, control: Hashable, target: Hashable) -> None:
        self.gate(OpId.CX, control, target)

    def measure(self, q: Hashable, slot: Hashable) -> None:
        self.append(Operation.qs(OpId.MEAS, q, slot))


@runtime_checkable
class Measured(Protocol):
    """A buffer of measurement results, addressed by slot."""

    def get(self, slot: Any) -> bool: ...


class Layer(ABC):
    """Abstract quantum layer.

    Subclasses implement `send`, `receive` and `make_buffer`. `supported_ops`
    lists the opcodes the layer can execute; the bridge refuses anything else
    before it reaches the layer.
    """

    supported_ops: ClassVar[frozenset[OpId]] = frozenset(OpId)

    @abstractmethod
    def send(self, ops: list[Operation]) -> None:
        """Submit a batch of operations."""
        raise NotImplementedError

    @abstractmethod
    def receive(self, buf: Measured) -> None:
        """Block until the results of the last batch are written into `buf`."""
        raise NotImplementedError

    @abstractmethod
    def make_buffer(self) -> Measured:
        raise NotImplementedError

    def send_receive(self, ops: list[Operation], buf: Measured) -> None:
        self.send(ops)
        self.receive(buf)

    def opsvec(self) -> OpsVec:
        return OpsVec()

    def supports(self, opid: OpId) -> bool:
        return opid in self.supported_ops
