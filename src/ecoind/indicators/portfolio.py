"""Indicator registry and portfolio-level helpers.

A portfolio is a GeoDataFrame of areas of interest (one polygon per row).
calc_indicators runs one indicator for every row and stores the per-row
result table in a column named after the indicator; unnest flattens that
column into one long table keyed by `assetid`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

import geopandas as gpd
import numpy as np
import pandas as pd

from ecoind.indicators.drought import calc_drought_indicator
from ecoind.indicators.landcover import calc_landcover
from ecoind.indicators.soilproperties import calc_soilproperties
from ecoind.indicators.traveltime import calc_traveltime
from ecoind.raster import RasterStack


@dataclass(frozen=True)
class Indicator:
    func: Callable
    resource: str
    stats_param: Optional[str] = None
    default_engine: Optional[str] = None
    supports_portfolio: bool = False


INDICATORS: Dict[str, Indicator] = {
    "drought_indicator": Indicator(calc_drought_indicator, "nasa_grace", "stats_drought", "extract", True),
    "landcover": Indicator(calc_landcover, "esalandcover"),
    "soilproperties": Indicator(calc_soilproperties, "soilgrids", "stats_soil", "zonal"),
    "traveltime": Indicator(calc_traveltime, "nelson_et_al", "stats_accessibility", "extract"),
}


def get_indicator(name: str) -> Indicator:
    try:
        return INDICATORS[name]
    except KeyError:
        raise ValueError(f"Unknown indicator '{name}'. Available: {sorted(INDICATORS)}") from None


def calc_indicators(
    aoi: gpd.GeoDataFrame,
    indicator: str,
    raster: Optional[RasterStack],
    stats=None,
    engine: Optional[str] = None,
    processing_mode: str = "asset",
    rundir=None,
    verbose: bool = True,
) -> gpd.GeoDataFrame:
    """Run `indicator` for every AOI row.

    Returns a copy of `aoi` with a column named after the indicator holding
    each row's result table (None when the resource is unavailable).
    Portfolio mode is honoured only by indicators that support it; the
    others always run one polygon at a time.
    """
    entry = get_indicator(indicator)

    kwargs = {"rundir": rundir, "verbose": verbose}
    if entry.stats_param and stats is not None:
        kwargs[entry.stats_param] = stats
    if entry.default_engine is not None:
        kwargs["engine"] = engine or entry.default_engine
    if entry.supports_portfolio:
        kwargs["processing_mode"] = processing_mode

    if entry.supports_portfolio and processing_mode == "portfolio":
        tables = entry.func(aoi, raster, **kwargs)
        values = [None] * len(aoi) if tables is None else list(tables)
    else:
        values = []
        for i in range(len(aoi)):
            if verbose:
                print(f"[{indicator.upper()}] asset {i + 1}/{len(aoi)}")
            values.append(entry.func(aoi.iloc[[i]], raster, **kwargs))

    out = aoi.copy()
    # element-wise fill: np.array(values) would try to stack the tables
    nested = np.empty(len(values), dtype=object)
    for i, value in enumerate(values):
        nested[i] = value
    out[indicator] = nested
    return out


def unnest(portfolio: pd.DataFrame, column: str, id_column: str = "assetid") -> pd.DataFrame:
    """Flatten a nested indicator column into one long table.

    Rows whose value is None (resource unavailable) are dropped. The asset
    id is taken from `id_column` when present, else from the row position
    (1-based).
    """
    frames = []
    for pos, (_, row) in enumerate(portfolio.iterrows(), start=1):
        table = row[column]
        if table is None:
            continue
        asset = row[id_column] if id_column in portfolio.columns else pos
        frames.append(table.assign(**{id_column: asset}))

    if not frames:
        return pd.DataFrame(columns=[id_column])

    long = pd.concat(frames, ignore_index=True)
    return long[[id_column] + [c for c in long.columns if c != id_column]]
