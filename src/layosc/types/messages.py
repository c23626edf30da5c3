"""Request and response types carried over the wire.

Every message maps to one OSC address. The tables at the bottom of this module
are the single source of truth for address -> type and opcode -> type; the
codec, the server runner and the layer adapter all use them.
"""

from __future__ import annotations

from dataclasses import astuple, dataclass, fields
from typing import ClassVar, Optional

from .errors import ContractError
from .layer import OpId

I32_MIN = -(2**31)
I32_MAX = 2**31 - 1

Coord = tuple[int, int]


def _check_i32(name: str, value) -> None:
    # bool is an int subclass, but never a valid coordinate
    if type(value) is not int:
        raise ValueError(f"{name} must be int, got {type(value).__name__}")
    if not I32_MIN <= value <= I32_MAX:
        raise ValueError(f"{name}={value} out of i32 range")


@dataclass(frozen=True)
class Message:
    """Base class for all messages."""

    ADDRESS: ClassVar[str] = ""
    ARG_TYPES: ClassVar[tuple[str, ...]] = ()

    @property
    def args(self) -> tuple:
        return astuple(self)

    @classmethod
    def arity(cls) -> int:
        return len(cls.ARG_TYPES)


@dataclass(frozen=True)
class Request(Message):
    """A gate or measurement instruction (client -> server)."""

    OPID: ClassVar[Optional[OpId]] = None

    def __post_init__(self):
        for f in fields(self):
            _check_i32(f.name, getattr(self, f.name))


@dataclass(frozen=True)
class _SingleQubitRequest(Request):
    ARG_TYPES: ClassVar[tuple[str, ...]] = ("i", "i")

    x: int
    y: int

    @property
    def coord(self) -> Coord:
        return (self.x, self.y)


@dataclass(frozen=True)
class InitZero(_SingleQubitRequest):
    ADDRESS: ClassVar[str] = "/InitZero"
    OPID: ClassVar[Optional[OpId]] = OpId.RESET


@dataclass(frozen=True)
class PauliX(_SingleQubitRequest):
    ADDRESS: ClassVar[str] = "/X"
    OPID: ClassVar[Optional[OpId]] = OpId.X


@dataclass(frozen=True)
class PauliY(_SingleQubitRequest):
    ADDRESS: ClassVar[str] = "/Y"
    OPID: ClassVar[Optional[OpId]] = OpId.Y


@dataclass(frozen=True)
class PauliZ(_SingleQubitRequest):
    ADDRESS: ClassVar[str] = "/Z"
    OPID: ClassVar[Optional[OpId]] = OpId.Z


@dataclass(frozen=True)
class Hadamard(_SingleQubitRequest):
    ADDRESS: ClassVar[str] = "/H"
    OPID: ClassVar[Optional[OpId]] = OpId.H


@dataclass(frozen=True)
class SGate(_SingleQubitRequest):
    ADDRESS: ClassVar[str] = "/S"
    OPID: ClassVar[Optional[OpId]] = OpId.S


@dataclass(frozen=True)
class SdgGate(_SingleQubitRequest):
    ADDRESS: ClassVar[str] = "/Sdg"
    OPID: ClassVar[Optional[OpId]] = OpId.SDG


@dataclass(frozen=True)
class TGate(_SingleQubitRequest):
    ADDRESS: ClassVar[str] = "/T"
    OPID: ClassVar[Optional[OpId]] = OpId.T


@dataclass(frozen=True)
class TdgGate(_SingleQubitRequest):
    ADDRESS: ClassVar[str] = "/Tdg"
    OPID: ClassVar[Optional[OpId]] = OpId.TDG


@dataclass(frozen=True)
class CXGate(Request):
    ADDRESS: ClassVar[str] = "/CX"
    ARG_TYPES: ClassVar[tuple[str, ...]] = ("i", "i", "i", "i")
    OPID: ClassVar[Optional[OpId]] = OpId.CX

    x1: int
    y1: int
    x2: int
    y2: int

    @property
    def control(self) -> Coord:
        return (self.x1, self.y1)

    @property
    def target(self) -> Coord:
        return (self.x2, self.y2)


@dataclass(frozen=True)
class Measure(_SingleQubitRequest):
    ADDRESS: ClassVar[str] = "/Mz"
    OPID: ClassVar[Optional[OpId]] = OpId.MEAS


@dataclass(frozen=True)
class Response(Message):
    """A result sent back for a request (server -> client)."""

    pass


@dataclass(frozen=True)
class MeasureResult(Response):
    """Result of a `Measure` request.

    `index` is reserved and always 0. `value` carries the bit as 0.0 or 1.0.
    """

    ADDRESS: ClassVar[str] = "/Mz"
    ARG_TYPES: ClassVar[tuple[str, ...]] = ("i", "f")

    index: int
    value: float

    def __post_init__(self):
        _check_i32("index", self.index)
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise ValueError(f"value must be float, got {type(self.value).__name__}")
        if float(self.value) not in (0.0, 1.0):
            raise ValueError(f"value={self.value} is not a bit")
        object.__setattr__(self, "value", float(self.value))

    @classmethod
    def from_bit(cls, bit: bool) -> MeasureResult:
        return cls(0, float(bool(bit)))

    @property
    def bit(self) -> bool:
        return self.value == 1.0


def check_measure_target(qubit: Coord, slot: Coord) -> None:
    """Measurements read a qubit into the slot at the same grid position."""
    if qubit != slot:
        raise ContractError(
            f"Qubit and slot must be same (qubit={qubit}, slot={slot})."
        )


REQUEST_CLASSES: tuple[type[Request], ...] = (
    InitZero,
    PauliX,
    PauliY,
    PauliZ,
    Hadamard,
    SGate,
    SdgGate,
    TGate,
    TdgGate,
    CXGate,
    Measure,
)

REQUEST_TYPES: dict[str, type[Request]] = {c.ADDRESS: c for c in REQUEST_CLASSES}
RESPONSE_TYPES: dict[str, type[Response]] = {MeasureResult.ADDRESS: MeasureResult}
REQUEST_BY_OPID: dict[OpId, type[Request]] = {c.OPID: c for c in REQUEST_CLASSES}
