"""Soil properties indicator from SoilGrids layers.

SoilGrids publishes 10+ soil properties at 6 depths with several model
outputs (mean, quantiles, uncertainty). Each pre-fetched layer is named
`{property}_{depth}_{stat}.tif`, e.g. `clay_0-5cm_mean.tif`. Zonal
statistics are computed for every layer and converted from SoilGrids'
integer mapped units to conventional units.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ecoind.engines import select_engine, validate_stats
from ecoind.layernames import LayerNameError, parse_soil_layer
from ecoind.lookups import SOILGRIDS_PROPERTIES
from ecoind.raster import RasterStack


def _conversion_factors(layers: List[str]) -> np.ndarray:
    unknown = sorted({p for p in layers if p not in SOILGRIDS_PROPERTIES})
    if unknown:
        raise LayerNameError(
            f"Unknown SoilGrids propert(y/ies) {unknown}. Known: {sorted(SOILGRIDS_PROPERTIES)}"
        )
    return np.array([SOILGRIDS_PROPERTIES[p].conversion_factor for p in layers], dtype="float64")


def calc_soilproperties(
    shp,
    soilgrids: Optional[RasterStack],
    engine: str = "zonal",
    stats_soil: Union[str, Sequence[str]] = ("mean",),
    rundir=None,
    verbose: bool = True,
    **kwargs,
) -> Optional[pd.DataFrame]:
    """Zonal statistics per SoilGrids layer in conventional units.

    Columns: layer, depth, stat, then one column per requested statistic.
    """
    if soilgrids is None:
        return None

    stats = validate_stats(stats_soil)
    # parse before computing so a bad name fails early
    parsed = [parse_soil_layer(n) for n in soilgrids.names]
    factors = _conversion_factors([p.layer for p in parsed])

    results = select_engine(
        shp=shp,
        raster=soilgrids,
        stats=stats,
        engine=engine,
        mode="asset",
        verbose=verbose,
    )

    results["layer"] = [p.layer for p in parsed]
    results["depth"] = [p.depth for p in parsed]
    results["stat"] = [p.stat for p in parsed]
    for stat in stats:
        results[stat] = results[stat] / factors

    return results[["layer", "depth", "stat", *stats]]
