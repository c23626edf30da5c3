"""Coordinate -> qubit/slot mappings used by the server runner.

Requests address a 2D grid of (x, y) positions; simulation backends address
qubits and slots by integer index. A mapping is any callable `(x, y) -> id`.
"""

from __future__ import annotations

from typing import Callable

from layosc.types import QubitMap


def cast_y(x: int, y: int) -> int:
    """Use the y coordinate alone (one row of qubits along y)."""
    return y


def cast_x(x: int, y: int) -> int:
    """Use the x coordinate alone."""
    return x


def row_major(width: int) -> Callable[[int, int], int]:
    """Index a `width`-wide grid row by row: `x + y * width`."""
    if width <= 0:
        raise ValueError("Grid width must be positive.")

    def cast(x: int, y: int) -> int:
        return x + y * width

    cast.__name__ = f"row_major_{width}"
    return cast


QUBIT_MAPS: dict[str, QubitMap] = {
    "y": cast_y,
    "x": cast_x,
}


def get_qubit_map(name: str) -> QubitMap:
    """Look up a mapping by name: "y", "x" or "row_major:<width>"."""
    if name.startswith("row_major:"):
        return row_major(int(name.split(":", 1)[1]))
    try:
        return QUBIT_MAPS[name]
    except KeyError:
        raise ValueError(f"Unknown qubit map: {name}") from None
