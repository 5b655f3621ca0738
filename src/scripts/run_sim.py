#!/usr/bin/env python3
"""
Life-like Simulation Runner

Runs a life-like cellular automaton on a random grid and saves every frame
to an .npz file. Frames can also be printed to the terminal or drawn with
matplotlib while the simulation runs.
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.cellular import (  # noqa: E402
    LIFE_PRESETS,
    ArrayOutput,
    MatplotlibOutput,
    REPLOutput,
    life_from_config,
    sim,
    utils,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run a life-like cellular automaton",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    rule = parser.add_mutually_exclusive_group()
    rule.add_argument("--rule", type=str, default=None, help="Rulestring, e.g. B3/S23")
    rule.add_argument(
        "--preset",
        choices=sorted(LIFE_PRESETS),
        default=None,
        help="Named life-like rule",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON or TOML file with model settings (command line flags take precedence)",
    )
    parser.add_argument("--size", type=int, default=70, help="Grid side length (default: 70)")
    parser.add_argument("--steps", type=int, default=100, help="Number of time steps (default: 100)")
    parser.add_argument(
        "--density", type=float, default=0.2, help="Fraction of initially active cells (default: 0.2)"
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument(
        "--shape",
        choices=["moore", "vonneumann", "rotvonneumann"],
        default=None,
        help="Neighborhood shape (default: moore)",
    )
    parser.add_argument("--radius", type=int, default=None, help="Neighborhood radius (default: 1)")
    parser.add_argument(
        "--overflow", choices=["wrap", "skip"], default=None, help="Edge handling (default: skip)"
    )
    parser.add_argument("--pause", type=float, default=0.0, help="Seconds between frames")
    parser.add_argument(
        "--output",
        choices=["array", "repl", "plot"],
        default="array",
        help="How frames are shown while running (default: array, i.e. not shown)",
    )
    parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output .npz file path (auto-generated if not provided)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    return parser


def model_config(args: argparse.Namespace) -> dict:
    """Merge the config file (if any) with command line overrides."""
    config = utils.load_params(args.config) if args.config else {}
    if args.rule is not None or args.preset is not None:
        config.pop("rule", None)
        config.pop("preset", None)
    if args.rule is not None:
        config["rule"] = args.rule
    if args.preset is not None:
        config["preset"] = args.preset
    for key in ("shape", "radius", "overflow"):
        value = getattr(args, key)
        if value is not None:
            config[key] = value
    return config


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    config = model_config(args)
    model = life_from_config(config)
    init = utils.random_init((args.size, args.size), density=args.density, seed=args.seed)

    if args.output == "repl":
        output = REPLOutput(init)
    elif args.output == "plot":
        output = MatplotlibOutput(init)
    else:
        output = ArrayOutput(init)

    print(f"Running {model.rulestring} on a {args.size}x{args.size} grid for {args.steps} steps")
    start_time = time.time()
    sim(output, model, init, time=range(1, args.steps + 1), pause=args.pause)
    elapsed_time = time.time() - start_time

    frames = output.frames if isinstance(output, ArrayOutput) else None
    if frames is None:
        print(f"Simulation completed in {elapsed_time:.2f} seconds")
        return 0

    if args.out is None:
        output_dir = Path("results")
        output_dir.mkdir(exist_ok=True)
        rule_tag = model.rulestring.replace("/", "")
        args.out = str(output_dir / f"life_{rule_tag}_N{args.size}_S{args.seed}_{utils.now_str()}.npz")

    meta = {
        "model": "life",
        "rule": model.rulestring,
        "shape": model.neighborhood.shape.value,
        "radius": model.neighborhood.radius,
        "overflow": model.neighborhood.overflow.value,
        "size": args.size,
        "density": args.density,
        "seed": args.seed,
        "steps": args.steps,
    }
    output.save(args.out, meta=meta)

    print("\nSimulation completed successfully!")
    print(f"   Time elapsed: {elapsed_time:.2f} seconds")
    print(f"   Frames stored: {len(frames)}")
    print(f"   Active cells in last frame: {int(frames[-1].sum())}")
    print(f"   Output saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
