"""
Cellular - Grid Based Simulations

This package provides a framework for cellular automata and related grid
simulations:
- Models and rules: Model, PartialModel and the life-like Life model
- Neighborhoods: radial (one-dimensional, Moore, von Neumann, rotated von
  Neumann), custom and multi-custom offset neighborhoods
- Overflow rules (Wrap, Skip) for coordinates beyond the grid edge
- Outputs to store or display frames, and sim() to run it all
"""

from .errors import CellularError, InvalidOverflowError, ShapeMismatchError
from .overflow import Overflow, Wrap, Skip, inbounds
from .neighborhoods import (
    Shape,
    Neighborhood,
    RadialNeighborhood,
    CustomNeighborhood,
    MultiCustomNeighborhood,
    neighbors,
)
from .models import Model, PartialModel, Life, LIFE_PRESETS, rule, life_from_config
from .outputs import Output, ArrayOutput, REPLOutput, MatplotlibOutput, update_output
from .framework import (
    RunState,
    SimParams,
    Simulation,
    broadcast_rules,
    sim,
    validate_models,
)
from . import utils

__all__ = [
    # Simulation
    "sim",
    "Simulation",
    "SimParams",
    "RunState",
    "broadcast_rules",
    "validate_models",
    # Models
    "Model",
    "PartialModel",
    "Life",
    "LIFE_PRESETS",
    "rule",
    "life_from_config",
    # Neighborhoods
    "Shape",
    "Neighborhood",
    "RadialNeighborhood",
    "CustomNeighborhood",
    "MultiCustomNeighborhood",
    "neighbors",
    # Overflow
    "Overflow",
    "Wrap",
    "Skip",
    "inbounds",
    # Outputs
    "Output",
    "ArrayOutput",
    "REPLOutput",
    "MatplotlibOutput",
    "update_output",
    # Errors
    "CellularError",
    "ShapeMismatchError",
    "InvalidOverflowError",
    # Utilities
    "utils",
]
