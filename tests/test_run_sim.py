"""
Tests for the command line runner.
"""

import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.scripts import run_sim  # noqa: E402
from cellular import utils  # noqa: E402


def test_run_and_save(tmp_path, capsys):
    out = tmp_path / "life.npz"
    code = run_sim.main(
        ["--size", "8", "--steps", "3", "--preset", "life", "--overflow", "wrap", "--out", str(out)]
    )
    assert code == 0
    assert "Output saved to" in capsys.readouterr().out

    frames, meta = utils.load_frames(out)
    assert len(frames) == 4
    assert frames[0].shape == (8, 8)
    assert meta["rule"] == "B3/S23"
    assert meta["overflow"] == "wrap"
    assert meta["steps"] == 3


def test_config_file_with_overrides(tmp_path):
    config = tmp_path / "model.json"
    config.write_text(json.dumps({"rule": "B36/S23", "shape": "vonneumann", "overflow": "wrap"}))
    out = tmp_path / "highlife.npz"
    run_sim.main(["--config", str(config), "--overflow", "skip", "--steps", "1", "--size", "6", "--out", str(out)])

    _, meta = utils.load_frames(out)
    assert meta["rule"] == "B36/S23"
    assert meta["shape"] == "vonneumann"
    assert meta["overflow"] == "skip"


def test_rule_and_preset_are_exclusive():
    with pytest.raises(SystemExit):
        run_sim.main(["--rule", "B3/S23", "--preset", "life"])
