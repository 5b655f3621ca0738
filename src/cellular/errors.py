from __future__ import annotations


class CellularError(Exception):
    """Base class for errors raised while configuring a simulation."""


class ShapeMismatchError(CellularError, ValueError):
    """A model or neighborhood does not fit the dimensions of the grid."""


class InvalidOverflowError(CellularError, ValueError):
    """Wrap overflow requested on an axis with no cells to wrap onto."""


__all__ = ["CellularError", "ShapeMismatchError", "InvalidOverflowError"]
