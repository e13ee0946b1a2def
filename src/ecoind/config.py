#!/usr/bin/env python3
"""ecoind.config

Shared configuration utilities for the ecoind indicator CLI.

The indicators YAML holds per-indicator defaults (engine, stats, processing
mode) and where the pre-fetched raster resource lives on disk. Command line
flags override anything set here.

Design notes:
- YAML loading is strict: files must exist and be valid mappings.
- Token validation is left to ecoind.engines so the CLI and the library
  reject bad values with the same message.
- All functions are pure (no side effects on import).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml


# -----------------------------------------------------------------------------
# YAML loading
# -----------------------------------------------------------------------------

def load_yaml(path: Path) -> Dict[str, Any]:
    """Read an indicators YAML (or any mapping-shaped YAML) into a dict.

    A missing file or a document that is not a mapping stops the CLI with
    SystemExit naming the path.
    """
    if not path.exists():
        raise SystemExit(f"Config not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise SystemExit(f"Expected YAML mapping at {path}")
    return data


def load_indicators_yaml(path: Path) -> Dict[str, Dict[str, Any]]:
    """Load the indicator blocks from an indicators YAML file.

    Expects structure like:
        indicators:
          drought_indicator:
            engine: extract
            stats: [mean]
            local_glob: "data/res/nasa_grace/*.tif"

    Returns the mapping of indicator name -> settings dict.
    Raises ValueError if structure is invalid.
    """
    data = load_yaml(path)
    indicators = data.get("indicators")
    if not isinstance(indicators, dict):
        raise ValueError(f"{path} must have a top-level 'indicators:' mapping.")
    for name, block in indicators.items():
        if not isinstance(block, dict):
            raise ValueError(f"{path}: indicator '{name}' must be a mapping, got {type(block).__name__}")
    return indicators


# -----------------------------------------------------------------------------
# Defaults resolution
# -----------------------------------------------------------------------------

def indicator_defaults(indicators: Dict[str, Dict[str, Any]], name: str) -> Dict[str, Any]:
    """Return the settings block for one indicator (empty dict if absent).

    `stats` is normalized to a list of strings so a single YAML scalar
    (`stats: mean`) behaves like a one-element list.
    """
    block = dict(indicators.get(name) or {})
    stats = block.get("stats")
    if isinstance(stats, str):
        block["stats"] = [stats]
    elif isinstance(stats, (list, tuple)):
        block["stats"] = [str(s) for s in stats]
    return block


def resolve_rasters(block: Dict[str, Any]) -> List[Path]:
    """Expand the `local_glob` of an indicator block into sorted paths.

    Sorting keeps layer order deterministic (dates and years sort lexically
    in the upstream file names). Relative patterns resolve against the
    working directory; absolute ones against their own root.
    """
    local_glob = block.get("local_glob")
    if not isinstance(local_glob, str) or not local_glob.strip():
        return []
    pattern = Path(local_glob).expanduser()
    if pattern.is_absolute():
        # Path.glob only takes relative patterns
        anchor = Path(pattern.anchor)
        return sorted(anchor.glob(str(pattern.relative_to(anchor))))
    return sorted(Path().glob(local_glob))


# -----------------------------------------------------------------------------
# Default paths
# -----------------------------------------------------------------------------

DEFAULT_INDICATORS_YAML = Path("config/indicators.yaml")
