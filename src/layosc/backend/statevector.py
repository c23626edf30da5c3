"""State-vector simulation backend.

`StateVectorLayer` keeps the full 2**n amplitude vector of an n-qubit register
and applies each operation of a batch in order. Measurements are projective in
the Z basis, sampled from a seeded generator, and collapse the state. Results
are held until `receive` copies them into a `MeasuredBuffer`.

Qubits and slots are plain integer indices; the server maps grid coordinates
onto them (see `layosc.backend.mapping`).
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from loguru import logger

from layosc.types import Layer, OpId, Operation, OpShape

_SQRT1_2 = 1 / np.sqrt(2)

GATE_MATRICES: dict[OpId, np.ndarray] = {
    OpId.X: np.array([[0, 1], [1, 0]], dtype=complex),
    OpId.Y: np.array([[0, -1j], [1j, 0]], dtype=complex),
    OpId.Z: np.array([[1, 0], [0, -1]], dtype=complex),
    OpId.H: np.array([[1, 1], [1, -1]], dtype=complex) * _SQRT1_2,
    OpId.S: np.diag([1, 1j]).astype(complex),
    OpId.SDG: np.diag([1, -1j]).astype(complex),
    OpId.T: np.diag([1, np.exp(1j * np.pi / 4)]),
    OpId.TDG: np.diag([1, np.exp(-1j * np.pi / 4)]),
}


class MeasuredBuffer:
    """Measurement results, one bit per slot."""

    def __init__(self, n_slots: int):
        self.bits = np.zeros(n_slots, dtype=bool)

    def get(self, slot: int) -> bool:
        return bool(self.bits[slot])

    def __setitem__(self, slot: int, bit: bool) -> None:
        self.bits[slot] = bit

    def __len__(self) -> int:
        return len(self.bits)

    def __repr__(self):
        return f"MeasuredBuffer({''.join('1' if b else '0' for b in self.bits)})"


class StateVectorLayer(Layer):
    """Exact state-vector simulator of an n-qubit register.

    Parameters
    ----------
    n_qubits : int
        Register size. Memory use is 16 * 2**n_qubits bytes.
    seed : int, optional
        Seed for measurement sampling.
    """

    supported_ops = frozenset(OpId)

    def __init__(self, n_qubits: int, seed: Optional[int] = None):
        if n_qubits <= 0:
            raise ValueError("n_qubits must be positive.")
        self.n_qubits = n_qubits
        self.seed = seed
        self._rng = np.random.default_rng(seed)
        self._state = self._zero_state()
        self._results: dict[int, bool] = {}

    def __repr__(self):
        return f"StateVectorLayer(n_qubits={self.n_qubits}, seed={self.seed})"

    # ------------------------------------------------------------------------
    # Layer interface

    def send(self, ops: list[Operation]) -> None:
        for op in ops:
            self._apply(op)

    def receive(self, buf: MeasuredBuffer) -> None:
        for slot, bit in self._results.items():
            buf[slot] = bit
        self._results.clear()

    def make_buffer(self) -> MeasuredBuffer:
        return MeasuredBuffer(self.n_qubits)

    # ------------------------------------------------------------------------

    @property
    def state(self) -> np.ndarray:
        return self._state.copy()

    def probability_one(self, q: int) -> float:
        """Probability of reading 1 from qubit `q`."""
        psi = self._tensor()
        return float(np.sum(np.abs(psi.take(1, axis=self._axis(q))) ** 2))

    def _zero_state(self) -> np.ndarray:
        state = np.zeros(2**self.n_qubits, dtype=complex)
        state[0] = 1.0
        return state

    def _tensor(self) -> np.ndarray:
        return self._state.reshape([2] * self.n_qubits)

    def _axis(self, q: int) -> int:
        # basis index bit q <-> qubit q
        if type(q) is not int or not 0 <= q < self.n_qubits:
            raise ValueError(f"Qubit {q!r} out of range for {self.n_qubits} qubits.")
        return self.n_qubits - 1 - q

    def _apply(self, op: Operation) -> None:
        if not op.well_shaped:
            raise ValueError(f"Malformed operation {op}")
        if op.opid is OpId.INIT:
            self._state = self._zero_state()
            self._results.clear()
        elif op.opid is OpId.RESET:
            if self._collapse(op.args[0]):
                self._apply_1q(GATE_MATRICES[OpId.X], op.args[0])
        elif op.opid is OpId.MEAS:
            q, slot = op.args
            self._results[slot] = self._collapse(q)
            logger.trace("StateVectorLayer: measured q{} -> slot {}: {}", q, slot, self._results[slot])
        elif op.opid is OpId.CX:
            self._apply_cx(*op.args)
        elif op.shape is OpShape.Q:
            self._apply_1q(GATE_MATRICES[op.opid], op.args[0])

    def _apply_1q(self, mat: np.ndarray, q: int) -> None:
        axis = self._axis(q)
        psi = np.tensordot(mat, self._tensor(), axes=([1], [axis]))
        self._state = np.moveaxis(psi, 0, axis).reshape(-1)

    def _apply_cx(self, control: int, target: int) -> None:
        c_axis, t_axis = self._axis(control), self._axis(target)
        if c_axis == t_axis:
            raise ValueError(f"CX control and target are both qubit {control}.")
        psi = self._tensor().copy()
        idx = [slice(None)] * self.n_qubits
        idx[c_axis] = 1
        sub = psi[tuple(idx)]
        # target axis inside the control=1 sub-tensor
        sub_axis = t_axis if t_axis < c_axis else t_axis - 1
        psi[tuple(idx)] = np.flip(sub, axis=sub_axis).copy()
        self._state = psi.reshape(-1)

    def _collapse(self, q: int) -> bool:
        axis = self._axis(q)
        p1 = self.probability_one(q)
        bit = bool(self._rng.random() < p1)
        psi = self._tensor().copy()
        idx = [slice(None)] * self.n_qubits
        idx[axis] = 0 if bit else 1
        psi[tuple(idx)] = 0
        norm = np.sqrt(p1 if bit else 1 - p1)
        self._state = psi.reshape(-1) / norm
        return bit
