"""
Simulation outputs.

Outputs are decoupled from simulation behaviour and can be swapped freely.
Each defines ``update(frame, t, pause)``, called once per completed time step
with the frame just produced. ``frame`` belongs to the simulation and is
reused on later steps: outputs must not modify it, and must copy it if they
keep it.
"""

from __future__ import annotations

import os
import sys
import time
from typing import Any, Dict, List, Optional, TextIO

import numpy as np

from . import utils


class Output:
    """Base class for simulation outputs."""

    def update(self, frame: np.ndarray, t, pause: float) -> None:
        raise NotImplementedError


def update_output(output: Output, frame: np.ndarray, t, pause: float) -> None:
    """Update ``output`` with the frame for time step ``t``."""
    output.update(frame, t, pause)


class ArrayOutput(Output):
    """Stores a copy of every frame, starting with the initial grid."""

    def __init__(self, init) -> None:
        self.frames: List[np.ndarray] = [np.array(init, copy=True)]
        self.times: List[Any] = [None]

    def update(self, frame: np.ndarray, t, pause: float) -> None:
        self.frames.append(np.array(frame, copy=True))
        self.times.append(t)

    def __len__(self) -> int:
        return len(self.frames)

    def __getitem__(self, i: int) -> np.ndarray:
        return self.frames[i]

    def save(self, path: str | os.PathLike[str], meta: Optional[Dict[str, Any]] = None) -> None:
        """Write all frames to a compressed .npz."""
        utils.save_frames(path, self.frames, meta)


class REPLOutput(ArrayOutput):
    """An ``ArrayOutput`` that also prints each frame as block characters."""

    def __init__(self, init, stream: Optional[TextIO] = None, on: str = "██", off: str = "  ") -> None:
        super().__init__(init)
        self.stream = stream if stream is not None else sys.stdout
        self.on = on
        self.off = off

    def render(self, frame: np.ndarray) -> str:
        grid = np.asarray(frame)
        if grid.ndim == 1:
            grid = grid[np.newaxis, :]
        return "\n".join("".join(self.on if cell else self.off for cell in row) for row in grid)

    def update(self, frame: np.ndarray, t, pause: float) -> None:
        super().update(frame, t, pause)
        self.stream.write(f"t = {t}\n{self.render(frame)}\n")
        self.stream.flush()
        if pause > 0:
            time.sleep(pause)


class MatplotlibOutput(Output):
    """Draws each frame with ``imshow`` in a matplotlib figure."""

    def __init__(self, init, cmap: str = "binary", ax=None) -> None:
        # pyplot selects a backend on import
        import matplotlib.pyplot as plt

        self._plt = plt
        if ax is None:
            self.fig, self.ax = plt.subplots()
        else:
            self.fig, self.ax = ax.figure, ax
        image = utils.process_image(np.atleast_2d(init))
        self.image = self.ax.imshow(image, cmap=cmap, vmin=0.0, vmax=1.0, interpolation="nearest")
        self.ax.set_axis_off()
        self.t = None

    def update(self, frame: np.ndarray, t, pause: float) -> None:
        self.image.set_data(utils.process_image(np.atleast_2d(frame)))
        self.ax.set_title(f"t = {t}")
        self.t = t
        self.fig.canvas.draw_idle()
        if pause > 0:
            self._plt.pause(pause)


__all__ = ["Output", "ArrayOutput", "REPLOutput", "MatplotlibOutput", "update_output"]
