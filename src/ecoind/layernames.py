"""Metadata extraction from raster layer names.

Upstream resources encode their metadata in file names:

- drought (NASA GRACE):     ``..._20220103.tif``        -> date (YYYYMMDD)
- land cover (ESA):         ``..._2016_...tif``         -> year (YYYY)
- soil (SoilGrids):         ``clay_0-5cm_mean.tif``     -> property, depth, stat
- travel time (Nelson):     ``traveltime-5k_10k.tif``   -> distance band

Each convention has one parser returning a frozen record. Dates are the only
soft case: a name without a valid 8-digit date parses to ``date=None`` so a
time series with one odd layer still computes. Everything else raises
LayerNameError, since a guessed label would silently mislabel a column.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import PurePath
from typing import Optional


class LayerNameError(ValueError):
    """A raster layer name does not follow the expected naming convention."""


_DATE_RE = re.compile(r".*(\d{8})")
_YEAR_RE = re.compile(r"\d{4}")
_DISTANCE_SPLIT_RE = re.compile(r"-|\.tif")


def _strip_tif(name: str) -> str:
    base = PurePath(name).name
    if base.lower().endswith(".tif"):
        base = base[: -len(".tif")]
    return base


@dataclass(frozen=True)
class LayerDate:
    name: str
    token: Optional[str]
    date: Optional[date]


@dataclass(frozen=True)
class LayerYear:
    name: str
    year: int


@dataclass(frozen=True)
class SoilLayer:
    name: str
    layer: str
    depth: str
    stat: str


@dataclass(frozen=True)
class DistanceBand:
    name: str
    distance: str


def parse_date(name: str) -> LayerDate:
    """Parse the last 8-digit run of a layer name as YYYYMMDD.

    Returns a record with date=None when there is no 8-digit run or it is
    not a calendar date (e.g. ``20221399``).
    """
    m = _DATE_RE.match(name)
    if not m:
        return LayerDate(name=name, token=None, date=None)
    token = m.group(1)
    try:
        parsed = datetime.strptime(token, "%Y%m%d").date()
    except ValueError:
        parsed = None
    return LayerDate(name=name, token=token, date=parsed)


def parse_year(name: str) -> LayerYear:
    """Extract the first 4-digit run of a layer name as the year."""
    m = _YEAR_RE.search(name)
    if not m:
        raise LayerNameError(f"Layer '{name}' has no 4-digit year")
    return LayerYear(name=name, year=int(m.group(0)))


def parse_soil_layer(name: str) -> SoilLayer:
    """Split a SoilGrids name ``{property}_{depth}_{stat}.tif`` into its tokens."""
    tokens = _strip_tif(name).split("_")
    if len(tokens) != 3 or not all(tokens):
        raise LayerNameError(
            f"Soil layer '{name}' must look like '<property>_<depth>_<stat>.tif' "
            f"(got {len(tokens)} '_'-separated tokens: {tokens})"
        )
    layer, depth, stat = tokens
    return SoilLayer(name=name, layer=layer, depth=depth, stat=stat)


def parse_distance_band(name: str) -> DistanceBand:
    """Extract the city-size band of a travel-time layer, e.g. ``5k_10k``.

    The band is the text after the first '-' and before the next '-' or the
    '.tif' suffix.
    """
    base = PurePath(name).name
    parts = _DISTANCE_SPLIT_RE.split(base)
    if len(parts) < 2 or not parts[1]:
        raise LayerNameError(f"Travel-time layer '{name}' must look like '<prefix>-<band>.tif'")
    return DistanceBand(name=name, distance=parts[1])
