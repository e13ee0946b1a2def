"""Drought indicator: relative wetness of shallow groundwater.

Layers come from the NASA GRACE-based drought indicator (0.25 degree). Each
value is the wetness percentile an area reaches at a point in time relative
to the 1948-2012 reference period. Layer names carry the date as YYYYMMDD.

Output: one row per layer with a "wetness_<stat>" column per statistic and a
"date" column.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Union

import pandas as pd

from ecoind.engines import select_engine
from ecoind.layernames import parse_date
from ecoind.raster import RasterStack


def calc_drought_indicator(
    shp,
    nasa_grace: Optional[RasterStack],
    engine: str = "extract",
    stats_drought: Union[str, Sequence[str]] = ("mean",),
    rundir=None,
    verbose: bool = True,
    processing_mode: str = "portfolio",
    **kwargs,
) -> Union[None, pd.DataFrame, List[pd.DataFrame]]:
    """Zonal statistics of the drought indicator with the date of each layer.

    Returns None when the resource is unavailable. In portfolio mode `shp`
    holds all polygons and the result is a list with one table per polygon.
    """
    if nasa_grace is None:
        return None

    results = select_engine(
        shp=shp,
        raster=nasa_grace,
        stats=stats_drought,
        engine=engine,
        name="wetness",
        mode=processing_mode,
        verbose=verbose,
    )

    dates = pd.to_datetime([parse_date(n).date for n in nasa_grace.names]).to_numpy()

    if processing_mode == "portfolio":
        for i, table in enumerate(results):
            if len(table) != len(dates):
                raise ValueError(
                    f"Polygon {i}: engine returned {len(table)} rows for {len(dates)} raster layers"
                )
        return [table.assign(date=dates) for table in results]

    results["date"] = dates
    return results
