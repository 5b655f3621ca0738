"""
Grid edge handling.

Neighborhoods regularly reach past the edge of the grid. An overflow policy
decides what happens to those coordinates:

- ``Wrap``: the coordinate is folded back onto the grid (toroidal topology)
  and is always in bounds.
- ``Skip``: the coordinate is reported out of bounds and the caller leaves
  that cell out entirely.
"""

from __future__ import annotations

from enum import Enum
from typing import Tuple, Union

from numba import njit

from .errors import InvalidOverflowError


class Overflow(Enum):
    """Closed set of overflow rules used by ``inbounds``."""

    WRAP = "wrap"
    SKIP = "skip"

    @classmethod
    def coerce(cls, value: Overflow | str) -> Overflow:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        raise ValueError(f"Unknown overflow rule: {value!r} (expected 'wrap' or 'skip')")

    @property
    def wraps(self) -> bool:
        return self is Overflow.WRAP


Wrap = Overflow.WRAP
Skip = Overflow.SKIP

Coord = Union[int, Tuple[int, ...]]


@njit(cache=True)
def _resolve(x: int, size: int, wrap: bool) -> Tuple[int, bool]:
    """Resolve a single coordinate against an axis of ``size`` cells."""
    if wrap:
        # numba follows Python semantics: the result is non-negative for size > 0
        return x % size, True
    return x, 0 <= x < size


def _resolve_axis(x: int, size: int, overflow: Overflow) -> Tuple[int, bool]:
    if overflow is Overflow.WRAP:
        if size <= 0:
            raise InvalidOverflowError(f"Cannot wrap coordinate {x} onto an axis of size {size}")
        return x % size, True
    return x, 0 <= x < size


def inbounds(x: Coord, bounds: Coord, overflow: Overflow | str) -> Tuple[Coord, bool]:
    """
    Check grid boundaries for a single coordinate, or a tuple of coordinates.

    Args:
        x: Coordinate, or tuple of coordinates (one per axis).
        bounds: Axis size, or tuple of axis sizes matching ``x``.
        overflow: ``Wrap`` or ``Skip`` (or their string names).

    Returns:
        ``(resolved, in_bounds)``. With ``Skip`` the coordinate comes back
        unchanged and ``in_bounds`` is False if any axis overflows. With
        ``Wrap`` the wrapped coordinate comes back and ``in_bounds`` is always
        True.
    """
    overflow = Overflow.coerce(overflow)
    if isinstance(x, tuple):
        if not isinstance(bounds, tuple) or len(bounds) != len(x):
            raise ValueError(f"Coordinate {x} and bounds {bounds} must have the same length")
        resolved = []
        ok = True
        for xi, mi in zip(x, bounds):
            ri, oki = _resolve_axis(int(xi), int(mi), overflow)
            resolved.append(ri)
            ok = ok and oki
        return tuple(resolved), ok
    return _resolve_axis(int(x), int(bounds), overflow)


__all__ = ["Overflow", "Wrap", "Skip", "inbounds"]
