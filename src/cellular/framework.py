"""
Simulation stepping.

A simulation owns two grids of identical shape, ``source`` and ``dest``.
Each model in the chain reads ``source`` and writes a complete new generation
into ``dest``; the two then swap roles so the next model (or the next time
step) reads what was just written. Grids are swapped, never copied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Iterable, Iterator, Optional, Sequence, Tuple

import numpy as np

from .errors import ShapeMismatchError
from .models import Model, PartialModel
from .outputs import Output

logger = logging.getLogger(__name__)


def _as_chain(models: Model | Sequence[Model]) -> Tuple[Model, ...]:
    if isinstance(models, Model):
        return (models,)
    chain = tuple(models)
    if not chain:
        raise ValueError("At least one model is required")
    for model in chain:
        if not isinstance(model, Model):
            raise TypeError(f"Expected a Model, got {type(model).__name__}")
    return chain


def validate_models(models: Model | Sequence[Model], shape: Sequence[int]) -> Tuple[Model, ...]:
    """
    Check every model in the chain against the grid shape before stepping.

    Raises ``ShapeMismatchError`` for models built for another dimensionality
    and ``InvalidOverflowError`` for Wrap neighborhoods on an empty axis.
    """
    chain = _as_chain(models)
    shape = tuple(int(s) for s in shape)
    for model in chain:
        ndim = model.ndim
        if ndim is not None and ndim != len(shape):
            raise ShapeMismatchError(
                f"{type(model).__name__} needs a {ndim}-dimensional grid, got shape {shape}"
            )
        hood = getattr(model, "neighborhood", None)
        if hood is not None:
            hood.validate(shape)
    return chain


def _sweep(model: Model, source: np.ndarray, dest: np.ndarray, t, args: tuple) -> None:
    """Run one model over every cell, row-major."""
    if isinstance(model, PartialModel):
        dest.fill(model.neutral)
        for index in np.ndindex(source.shape):
            model.rule(source[index], index, t, source, dest, *args)
    else:
        for index in np.ndindex(source.shape):
            dest[index] = model.rule(source[index], index, t, source, dest, *args)


def broadcast_rules(
    models: Model | Sequence[Model], source: np.ndarray, dest: np.ndarray, t, *args
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Run the rule(s) for each cell in the grid.

    For ``Model`` the returned values are written to ``dest``, while for
    ``PartialModel`` ``dest`` is filled with the model's neutral value and the
    rule populates it. After each model the grids swap roles.

    Returns:
        ``(source, dest)`` for the next iteration; ``source`` holds the frame
        that was just produced.
    """
    if source is dest or np.may_share_memory(source, dest):
        raise ValueError("source and dest must be separate grids")
    if source.shape != dest.shape:
        raise ShapeMismatchError(f"source {source.shape} and dest {dest.shape} differ in shape")

    for model in _as_chain(models):
        writeable = source.flags.writeable
        source.flags.writeable = False
        try:
            _sweep(model, source, dest, t, args)
        finally:
            source.flags.writeable = writeable
        source, dest = dest, source
    return source, dest


class RunState(Enum):
    PENDING = auto()
    STEPPING = auto()
    DONE = auto()


@dataclass
class SimParams:
    """Run length and playback speed."""

    time: Iterable[Any] = field(default_factory=lambda: range(1, 1001))
    pause: float = 0.0


class Simulation:
    """
    A single run: a model chain stepped over a time range.

    Each step runs the whole chain once, then hands the new frame to the
    output. The run is done when the time range is exhausted.
    """

    def __init__(
        self,
        output: Output,
        models: Model | Sequence[Model],
        init,
        *args,
        params: SimParams | None = None,
    ) -> None:
        self.output = output
        self.params = params or SimParams()
        if self.params.pause < 0:
            raise ValueError(f"pause must be >= 0, got {self.params.pause}")

        init = np.asarray(init)
        self.models = validate_models(models, init.shape)
        self.args = args

        # The caller's array is never written to
        self.source = np.array(init, copy=True)
        self.dest = np.zeros_like(self.source)

        self._times: Iterator[Any] = iter(self.params.time)
        self.t: Optional[Any] = None
        self.state = RunState.PENDING
        self.steps_taken = 0
        self._advance()

    def _advance(self) -> None:
        try:
            self.t = next(self._times)
        except StopIteration:
            self.t = None
            self.state = RunState.DONE

    @property
    def frame(self) -> np.ndarray:
        """The most recently produced frame (the initial grid before any step)."""
        return self.source

    def step(self) -> bool:
        """Advance one time step. Returns False once the run is done."""
        if self.state is RunState.DONE:
            return False
        self.state = RunState.STEPPING
        t = self.t
        self.source, self.dest = broadcast_rules(self.models, self.source, self.dest, t, *self.args)
        self.steps_taken += 1
        logger.debug("Completed timestep %s", t)
        self.output.update(self.source, t, self.params.pause)
        self.state = RunState.PENDING
        self._advance()
        return self.state is not RunState.DONE

    def run(self) -> Output:
        """Step until the time range is exhausted."""
        logger.info(
            "Starting simulation: %d model(s), grid %s",
            len(self.models),
            self.source.shape,
        )
        while self.step():
            pass
        logger.info("Simulation finished after %d step(s)", self.steps_taken)
        return self.output


def sim(
    output: Output,
    models: Model | Sequence[Model],
    init,
    *args,
    time: Iterable[Any] = range(1, 1001),
    pause: float = 0.0,
) -> Output:
    """
    Run the whole simulation, passing each new frame to ``output``.

    Args:
        output: An ``Output`` to store frames or display them.
        models: A single model or a sequence of models run in order each step.
        init: The initial grid. It is copied, never modified.
        args: Extra arguments passed through to every ``rule`` and
            ``neighbors`` call.
        time: Any iterable of time values. Default: 1 through 1000.
        pause: Seconds between frames, used by interactive outputs.

    Returns:
        The output, for convenience.
    """
    return Simulation(output, models, init, *args, params=SimParams(time=time, pause=pause)).run()


__all__ = [
    "broadcast_rules",
    "validate_models",
    "RunState",
    "SimParams",
    "Simulation",
    "sim",
]
