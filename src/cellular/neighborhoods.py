"""
Neighborhoods: which surrounding cells influence a cell, and how they combine.

Three variants are provided:

- ``RadialNeighborhood``: one-dimensional, Moore, von Neumann or rotated von
  Neumann shapes of any integer radius.
- ``CustomNeighborhood``: an arbitrary list of offsets relative to the cell.
- ``MultiCustomNeighborhood``: several offset lists, each summed separately.

The inner summation loops are compiled with numba; the Python classes only
normalise the grid and index before handing over to the kernels.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from numba import njit

from .errors import InvalidOverflowError, ShapeMismatchError
from .overflow import Overflow, _resolve

logger = logging.getLogger(__name__)

###############################################################################
# Shapes
###############################################################################

# Integer codes handed to the numba kernels
_ONEDIM = 0
_MOORE = 1
_VONNEUMANN = 2
_ROTVONNEUMANN = 3


class Shape(Enum):
    """Radial neighborhood shapes."""

    ONEDIM = "onedim"
    MOORE = "moore"
    VONNEUMANN = "vonneumann"
    ROTVONNEUMANN = "rotvonneumann"

    @classmethod
    def coerce(cls, value: Shape | str) -> Shape:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower().replace("_", "").replace(" ", ""))
            except ValueError:
                pass
        names = ", ".join(repr(s.value) for s in cls)
        raise ValueError(f"Unknown neighborhood shape: {value!r} (expected one of {names})")

    @property
    def code(self) -> int:
        return _SHAPE_CODES[self]


_SHAPE_CODES = {
    Shape.ONEDIM: _ONEDIM,
    Shape.MOORE: _MOORE,
    Shape.VONNEUMANN: _VONNEUMANN,
    Shape.ROTVONNEUMANN: _ROTVONNEUMANN,
}

###############################################################################
# Kernels
###############################################################################


@njit(cache=True)
def _in_hood(shape_code: int, dr: int, dc: int, radius: int) -> bool:
    """Shape predicate for an offset inside the (2r+1) x (2r+1) square."""
    if shape_code == _MOORE:
        return True
    distance = abs(dr) + abs(dc)
    if shape_code == _VONNEUMANN:
        return distance <= radius
    # Rotated von Neumann: the corners of the square left over by the diamond
    return distance > radius


@njit(cache=True)
def _sum_onedim(source: np.ndarray, i: int, radius: int, wrap: bool, zero):
    n = source.shape[0]
    total = zero
    for d in range(-radius, radius + 1):
        if d == 0:
            continue
        p, ok = _resolve(i + d, n, wrap)
        if ok:
            total += source[p]
    return total


@njit(cache=True)
def _sum_radial(
    source: np.ndarray, row: int, col: int, radius: int, shape_code: int, wrap: bool, zero
):
    height = source.shape[0]
    width = source.shape[1]
    total = zero
    for dr in range(-radius, radius + 1):
        for dc in range(-radius, radius + 1):
            if dr == 0 and dc == 0:
                continue
            if not _in_hood(shape_code, dr, dc, radius):
                continue
            p, ok_p = _resolve(row + dr, height, wrap)
            q, ok_q = _resolve(col + dc, width, wrap)
            if ok_p and ok_q:
                total += source[p, q]
    return total


@njit(cache=True)
def _sum_offsets_1d(source: np.ndarray, i: int, offsets: np.ndarray, wrap: bool, zero):
    n = source.shape[0]
    total = zero
    for k in range(offsets.shape[0]):
        p, ok = _resolve(i + offsets[k, 0], n, wrap)
        if ok:
            total += source[p]
    return total


@njit(cache=True)
def _sum_offsets_2d(
    source: np.ndarray, row: int, col: int, offsets: np.ndarray, wrap: bool, zero
):
    height = source.shape[0]
    width = source.shape[1]
    total = zero
    for k in range(offsets.shape[0]):
        p, ok_p = _resolve(row + offsets[k, 0], height, wrap)
        q, ok_q = _resolve(col + offsets[k, 1], width, wrap)
        if ok_p and ok_q:
            total += source[p, q]
    return total


###############################################################################
# Helpers
###############################################################################


def _numeric(source) -> np.ndarray:
    """Return ``source`` as an array the kernels can sum (bool counted as 0/1)."""
    source = np.asarray(source)
    if source.dtype == np.bool_:
        return source.view(np.uint8)
    return source


def _zero(source: np.ndarray):
    """Accumulator start value: int64 for bool and integer grids, float64 otherwise."""
    if source.dtype.kind in "biu":
        return np.int64(0)
    return np.float64(0.0)


def _typed_total(total, source: np.ndarray):
    if source.dtype.kind in "biu":
        return int(total)
    return total


def _index_tuple(index) -> Tuple[int, ...]:
    if isinstance(index, (int, np.integer)):
        return (int(index),)
    return tuple(int(i) for i in index)


def _as_offsets(offsets: Iterable, ndim: int | None = None) -> np.ndarray:
    """Normalise an offset collection into a read-only (n, ndim) int64 array."""
    rows: List[Tuple[int, ...]] = []
    for offset in offsets:
        if isinstance(offset, (int, np.integer)):
            offset = (offset,)
        rows.append(tuple(int(v) for v in offset))

    lengths = {len(r) for r in rows}
    if len(lengths) > 1:
        raise ValueError(f"Offsets must all have the same length, got lengths {sorted(lengths)}")
    if rows:
        found = lengths.pop()
        if ndim is not None and found != ndim:
            raise ValueError(f"Expected {ndim}-dimensional offsets, got {found}-dimensional")
        ndim = found
    if ndim is not None and ndim not in (1, 2):
        raise ValueError(f"Offsets must be 1 or 2 dimensional, got {ndim}")

    # An empty offset set with no known dimensionality fits any grid
    arr = np.array(rows, dtype=np.int64).reshape(len(rows), ndim or 0)
    arr.flags.writeable = False
    return arr


def _sum_offsets(source: np.ndarray, index: Tuple[int, ...], offsets: np.ndarray, wrap: bool):
    zero = _zero(source)
    if offsets.shape[0] == 0:
        return zero
    if len(index) == 1:
        return _sum_offsets_1d(source, index[0], offsets, wrap, zero)
    return _sum_offsets_2d(source, index[0], index[1], offsets, wrap, zero)


def _check_grid(hood: Neighborhood, shape: Sequence[int]) -> None:
    if hood.ndim is not None and len(shape) != hood.ndim:
        raise ShapeMismatchError(
            f"{type(hood).__name__} is {hood.ndim}-dimensional but the grid has shape {tuple(shape)}"
        )
    if hood.overflow is Overflow.WRAP and any(int(s) <= 0 for s in shape):
        raise InvalidOverflowError(f"Wrap overflow needs a non-empty grid, got shape {tuple(shape)}")


def _check_call(hood: Neighborhood, source: np.ndarray, index: Tuple[int, ...]) -> None:
    ndim = hood.ndim
    if ndim is not None and (source.ndim != ndim or len(index) != ndim):
        raise ShapeMismatchError(
            f"{type(hood).__name__} is {ndim}-dimensional but got index {index} "
            f"on a grid of shape {source.shape}"
        )


def _warn_unreachable(offsets: np.ndarray, shape: Sequence[int], overflow: Overflow, label: str) -> None:
    """Log offsets that can never land on the grid under Skip."""
    if overflow is Overflow.WRAP or offsets.shape[0] == 0:
        return
    sizes = np.asarray(shape, dtype=np.int64)
    unreachable = np.any(np.abs(offsets) >= sizes, axis=1)
    for offset in offsets[unreachable]:
        logger.warning(
            "%s offset %s is outside a %s grid for every cell and will never contribute",
            label,
            tuple(int(v) for v in offset),
            tuple(shape),
        )


###############################################################################
# Neighborhoods
###############################################################################


class Neighborhood:
    """Base class for neighborhoods. Subclasses implement ``neighbors``."""

    overflow: Overflow
    ndim: Optional[int]

    def neighbors(self, state, index, t, source, *args):
        raise NotImplementedError

    def validate(self, shape: Sequence[int]) -> None:
        _check_grid(self, shape)


@dataclass(frozen=True)
class RadialNeighborhood(Neighborhood):
    """
    Neighborhood defined by a radius around the central cell.

    A neighborhood with radius 1 is 3 cells wide. The central cell itself is
    never counted.

    Args:
        shape: ``"onedim"``, ``"moore"``, ``"vonneumann"`` or ``"rotvonneumann"``.
        radius: Distance from the centre to the edge of the neighborhood.
        overflow: How coordinates beyond the grid edge are handled.
    """

    shape: Shape | str = Shape.MOORE
    radius: int = 1
    overflow: Overflow | str = Overflow.SKIP

    def __post_init__(self) -> None:
        object.__setattr__(self, "shape", Shape.coerce(self.shape))
        object.__setattr__(self, "overflow", Overflow.coerce(self.overflow))
        if isinstance(self.radius, bool) or not isinstance(self.radius, (int, np.integer)):
            raise TypeError(f"radius must be an integer, got {type(self.radius).__name__}")
        if self.radius < 1:
            raise ValueError(f"radius must be >= 1, got {self.radius}")
        object.__setattr__(self, "radius", int(self.radius))

    @property
    def ndim(self) -> int:
        return 1 if self.shape is Shape.ONEDIM else 2

    def in_hood(self, dr: int, dc: int = 0) -> bool:
        if self.shape is Shape.ONEDIM:
            return dc == 0 and dr != 0 and abs(dr) <= self.radius
        if dr == 0 and dc == 0:
            return False
        if max(abs(dr), abs(dc)) > self.radius:
            return False
        return bool(_in_hood(self.shape.code, dr, dc, self.radius))

    def offsets(self) -> List[Tuple[int, ...]]:
        """Member offsets in row-major order."""
        r = self.radius
        if self.shape is Shape.ONEDIM:
            return [(d,) for d in range(-r, r + 1) if d != 0]
        return [
            (dr, dc)
            for dr in range(-r, r + 1)
            for dc in range(-r, r + 1)
            if self.in_hood(dr, dc)
        ]

    def neighbors(self, state, index, t, source, *args):
        src = _numeric(source)
        idx = _index_tuple(index)
        _check_call(self, src, idx)
        wrap = self.overflow.wraps
        if self.shape is Shape.ONEDIM:
            total = _sum_onedim(src, idx[0], self.radius, wrap, _zero(src))
        else:
            total = _sum_radial(src, idx[0], idx[1], self.radius, self.shape.code, wrap, _zero(src))
        return _typed_total(total, src)


@dataclass(frozen=True, eq=False)
class CustomNeighborhood(Neighborhood):
    """
    Completely arbitrary neighborhood shape.

    Args:
        offsets: Coordinates relative to the central cell, e.g.
            ``[(-1, 0), (1, 0), (0, 2)]``. Bare integers are accepted for
            one-dimensional grids. May be empty.
        overflow: How coordinates beyond the grid edge are handled.
    """

    offsets: np.ndarray
    overflow: Overflow | str = Overflow.SKIP

    def __post_init__(self) -> None:
        object.__setattr__(self, "offsets", _as_offsets(self.offsets))
        object.__setattr__(self, "overflow", Overflow.coerce(self.overflow))

    @property
    def ndim(self) -> Optional[int]:
        """None for an empty offset set, which fits a grid of any dimensionality."""
        return self.offsets.shape[1] if self.offsets.shape[0] else None

    def validate(self, shape: Sequence[int]) -> None:
        _check_grid(self, shape)
        _warn_unreachable(self.offsets, shape, self.overflow, "CustomNeighborhood")

    def neighbors(self, state, index, t, source, *args):
        src = _numeric(source)
        idx = _index_tuple(index)
        _check_call(self, src, idx)
        total = _sum_offsets(src, idx, self.offsets, self.overflow.wraps)
        return _typed_total(total, src)


@dataclass(frozen=True, eq=False)
class MultiCustomNeighborhood(Neighborhood):
    """
    Sets of custom neighborhoods, each summed separately.

    ``neighbors`` returns a read-only view of an internal buffer holding one
    sum per group. The buffer is overwritten on every call, so copy the result
    if it has to outlive the next call. Use ``spawn`` to give each parallel
    worker its own buffer.
    """

    groups: Tuple[np.ndarray, ...]
    overflow: Overflow | str = Overflow.SKIP
    cc: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        groups = [g if isinstance(g, np.ndarray) else list(g) for g in self.groups]
        ndims = {_as_offsets(g).shape[1] for g in groups if len(g)}
        if len(ndims) > 1:
            raise ValueError(f"All groups must have the same dimensionality, got {sorted(ndims)}")
        ndim = ndims.pop() if ndims else None
        object.__setattr__(self, "groups", tuple(_as_offsets(g, ndim) for g in groups))
        object.__setattr__(self, "overflow", Overflow.coerce(self.overflow))
        object.__setattr__(self, "cc", np.zeros(len(self.groups), dtype=np.float64))
        view = self.cc.view()
        view.flags.writeable = False
        object.__setattr__(self, "_view", view)

    @property
    def ndim(self) -> Optional[int]:
        for offsets in self.groups:
            if offsets.shape[0]:
                return offsets.shape[1]
        return None

    def spawn(self) -> MultiCustomNeighborhood:
        """Independent copy sharing the offsets but not the scratch buffer."""
        return MultiCustomNeighborhood(self.groups, self.overflow)

    def validate(self, shape: Sequence[int]) -> None:
        _check_grid(self, shape)
        for g, offsets in enumerate(self.groups):
            _warn_unreachable(offsets, shape, self.overflow, f"MultiCustomNeighborhood group {g}")

    def neighbors(self, state, index, t, source, *args):
        src = _numeric(source)
        idx = _index_tuple(index)
        _check_call(self, src, idx)
        wrap = self.overflow.wraps
        for g, offsets in enumerate(self.groups):
            self.cc[g] = _sum_offsets(src, idx, offsets, wrap)
        return self._view


def neighbors(hood: Neighborhood, state, index, t, source, *args):
    """
    Check all cells in ``hood`` around ``index`` and combine them.

    Radial and custom neighborhoods return a single sum; multi-custom
    neighborhoods return one sum per group.
    """
    return hood.neighbors(state, index, t, source, *args)


__all__ = [
    "Shape",
    "Neighborhood",
    "RadialNeighborhood",
    "CustomNeighborhood",
    "MultiCustomNeighborhood",
    "neighbors",
]
