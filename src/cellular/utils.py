# src/cellular/utils.py
from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

import numpy as np

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    tomllib = None  # type: ignore


def now_str() -> str:
    return time.strftime("%Y%m%d-%H%M%S")


def random_init(
    shape: int | Tuple[int, ...],
    density: float = 0.2,
    dtype=np.int8,
    seed: Optional[int] = None,
) -> np.ndarray:
    """Random initial grid with roughly ``density`` of the cells active."""
    if not 0.0 <= density <= 1.0:
        raise ValueError(f"density must be in [0, 1], got {density}")
    rng = np.random.default_rng(seed)
    return (rng.random(shape) < density).astype(dtype)


def process_image(frame: np.ndarray) -> np.ndarray:
    """Convert a frame to a float image scaled to [0, 1]."""
    img = np.asarray(frame, dtype=np.float64)
    if img.size == 0:
        return img
    lo = img.min()
    hi = img.max()
    if hi > lo:
        return (img - lo) / (hi - lo)
    # Flat frame: all ones if active, otherwise blank
    return np.full_like(img, 1.0 if hi > 0 else 0.0)


def parse_rulestring(rule: str) -> Tuple[FrozenSet[int], FrozenSet[int]]:
    """
    Parse life-like notation such as ``"B3/S23"``, ``"B36S125"`` or ``"S23/B3"``.

    Returns the (birth, survival) neighbor counts.
    """
    text = rule.upper().replace(" ", "")
    birth = ""
    survival = ""
    if "/" in text:
        for part in text.split("/"):
            if part.startswith("B"):
                birth = part[1:]
            elif part.startswith("S"):
                survival = part[1:]
            else:
                raise ValueError(f"Invalid rulestring {rule!r}")
    elif text.startswith("B"):
        if "S" in text:
            idx = text.index("S")
            birth, survival = text[1:idx], text[idx + 1 :]
        else:
            birth = text[1:]
    else:
        raise ValueError(f"Invalid rulestring {rule!r}")

    return _counts(birth, rule), _counts(survival, rule)


def _counts(digits: str, rule: str) -> FrozenSet[int]:
    if digits and not digits.replace(",", "").isdigit():
        raise ValueError(f"Invalid rulestring {rule!r}")
    if "," in digits:
        return frozenset(int(c) for c in digits.split(",") if c)
    return frozenset(int(c) for c in digits)


def format_rulestring(b, s) -> str:
    """Standard ``B.../S...`` notation; counts above 9 are comma separated."""
    def fmt(counts):
        counts = sorted(int(c) for c in counts)
        sep = "," if any(c > 9 for c in counts) else ""
        return sep.join(str(c) for c in counts)

    return f"B{fmt(b)}/S{fmt(s)}"


def save_frames(
    path: str | os.PathLike[str],
    frames: Sequence[np.ndarray],
    meta: Optional[Dict[str, Any]] = None,
    *,
    overwrite: bool = True,
) -> None:
    """Serialize a sequence of frames (and metadata) to a compressed .npz."""
    path = Path(path)
    if not overwrite and path.exists():
        raise FileExistsError(f"{path} already exists")
    path.parent.mkdir(parents=True, exist_ok=True)
    out: Dict[str, Any] = {"frames": np.stack([np.asarray(f) for f in frames])}

    # numpy arrays in meta are stored at top level for easier loading
    meta_clean = {}
    for key, value in (meta or {}).items():
        if isinstance(value, np.ndarray):
            out[key] = value
        else:
            meta_clean[key] = value
    out["meta"] = meta_clean
    np.savez_compressed(path, **out)


def load_frames(path: str | os.PathLike[str]) -> Tuple[List[np.ndarray], Dict[str, Any]]:
    """Load frames and metadata written by ``save_frames``."""
    with np.load(path, allow_pickle=True) as data:
        frames = list(data["frames"])
        meta: Dict[str, Any] = {}
        if "meta" in data:
            meta_raw = data["meta"]
            meta = dict(meta_raw.item()) if meta_raw.shape == () else {}
        for key in data.files:
            if key not in ("frames", "meta") and key not in meta:
                meta[key] = data[key]
    return frames, meta


def load_params(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """
    Load simulation parameters from JSON or TOML.
    """
    path = str(path)
    with open(path, "rb") as fh:
        data = fh.read()
    suffix = Path(path).suffix.lower()
    if suffix in {".json", ""}:
        return json.loads(data.decode("utf-8"))
    if suffix in {".toml", ".tml"}:
        if tomllib is None:
            raise RuntimeError("tomllib is unavailable; cannot parse TOML files")
        return tomllib.loads(data.decode("utf-8"))
    raise ValueError(f"Unsupported parameter file format: {suffix}")
