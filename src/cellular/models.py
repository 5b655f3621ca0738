"""
Models hold the configuration for a simulation and provide the ``rule`` that
is run for every cell of the grid.

Two kinds of model exist:

- ``Model``: the value returned by ``rule`` is written to the current cell of
  the destination grid. Rules must not write to ``dest`` themselves.
- ``PartialModel``: the destination grid is filled with ``neutral`` before the
  sweep, the return value of ``rule`` is ignored, and the rule writes into
  ``dest`` directly (at the current index or anywhere else).

``rule`` receives ``(state, index, t, source, dest, *args)``:

- state: value of the current cell
- index: tuple of ints for the current cell, ``(row, col)`` on 2-D grids
- t: current time step
- source: the whole source grid, read only
- dest: the whole destination grid, only written to by partial models
- args: extra arguments passed through from ``sim``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional

from . import utils
from .neighborhoods import Neighborhood, RadialNeighborhood

logger = logging.getLogger(__name__)


class Model:
    """Base class for models whose rule returns the new cell value."""

    @property
    def ndim(self) -> Optional[int]:
        """Grid dimensionality the model needs, or None if it works on any."""
        hood = getattr(self, "neighborhood", None)
        return None if hood is None else hood.ndim

    def rule(self, state, index, t, source, dest, *args):
        raise NotImplementedError(f"{type(self).__name__} does not define a rule")


class PartialModel(Model):
    """
    Base class for models that write to the destination grid themselves.

    Useful when only a subset of cells changes each step, e.g. spreading or
    jumping processes that push values onto other cells.
    """

    neutral: Any = 0


def rule(model: Model, state, index, t, source, dest, *args):
    """Run the rule of ``model`` for one cell."""
    return model.rule(state, index, t, source, dest, *args)


def _as_counts(values: Iterable[int], name: str) -> FrozenSet[int]:
    counts = frozenset(int(v) for v in values)
    negative = sorted(c for c in counts if c < 0)
    if negative:
        raise ValueError(f"{name} counts must be non-negative, got {negative}")
    return counts


@dataclass(frozen=True)
class Life(Model):
    """
    Game-of-life style cellular automata.

    An empty cell becomes active when its neighbor count is in ``b`` (birth),
    and an active cell stays active when its neighbor count is in ``s``
    (survival). Everything else becomes inactive.
    """

    neighborhood: Neighborhood = field(default_factory=RadialNeighborhood)
    b: FrozenSet[int] = frozenset({3})
    s: FrozenSet[int] = frozenset({2, 3})

    def __post_init__(self) -> None:
        object.__setattr__(self, "b", _as_counts(self.b, "birth"))
        object.__setattr__(self, "s", _as_counts(self.s, "survival"))

    @classmethod
    def from_rulestring(cls, rulestring: str, neighborhood: Optional[Neighborhood] = None) -> Life:
        b, s = utils.parse_rulestring(rulestring)
        if neighborhood is None:
            return cls(b=b, s=s)
        return cls(neighborhood=neighborhood, b=b, s=s)

    @property
    def rulestring(self) -> str:
        return utils.format_rulestring(self.b, self.s)

    def rule(self, state, index, t, source, dest, *args):
        cc = self.neighborhood.neighbors(state, index, t, source, *args)
        if state:
            return cc in self.s
        return cc in self.b


# Named life-like rules
LIFE_PRESETS: Dict[str, str] = {
    "life": "B3/S23",
    "morley": "B368/S245",
    "2x2": "B36/S125",
    "dimoeba": "B35678/S5678",
    "no_death": "B3/S012345678",
    "34_life": "B34/S34",
    "replicator": "B1357/S1357",
}


def life_from_config(config: Dict[str, Any] | None = None) -> Life:
    """
    Build a ``Life`` model from a plain dict (as loaded by ``utils.load_params``).

    Recognised keys: ``rule`` (rulestring) or ``preset`` (a ``LIFE_PRESETS``
    name), ``shape``, ``radius`` and ``overflow``.
    """
    params = dict(config or {})
    if "rule" in params and "preset" in params:
        raise ValueError("Give either 'rule' or 'preset', not both")
    if "preset" in params:
        name = params.pop("preset")
        if name not in LIFE_PRESETS:
            raise ValueError(f"Unknown preset {name!r}; choose from {sorted(LIFE_PRESETS)}")
        rulestring = LIFE_PRESETS[name]
    else:
        rulestring = params.pop("rule", LIFE_PRESETS["life"])

    hood = RadialNeighborhood(
        shape=params.pop("shape", "moore"),
        radius=params.pop("radius", 1),
        overflow=params.pop("overflow", "skip"),
    )
    if params:
        logger.warning("Ignoring unknown model config keys: %s", sorted(params))
    return Life.from_rulestring(rulestring, neighborhood=hood)


__all__ = ["Model", "PartialModel", "Life", "LIFE_PRESETS", "rule", "life_from_config"]
