"""Accessibility indicator: travel time to major cities.

Uses the 1 km travel-time rasters of Nelson et al. (2019), one layer per
city-size band (`traveltime-5k_10k.tif`, `traveltime-1mio_5mio.tif`, ...).
Values are minutes; 65535 encodes "no data" and is dropped before the
statistics are computed.
"""
from __future__ import annotations

from typing import Optional, Sequence, Union

import pandas as pd

from ecoind.engines import select_engine
from ecoind.layernames import parse_distance_band
from ecoind.raster import RasterStack


NODATA_SENTINEL = 65535


def calc_traveltime(
    shp,
    nelson_et_al: Optional[RasterStack],
    engine: str = "extract",
    stats_accessibility: Union[str, Sequence[str]] = ("mean",),
    rundir=None,
    verbose: bool = True,
    **kwargs,
) -> Optional[pd.DataFrame]:
    """Travel-time statistics ("minutes_<stat>") with a "distance" band column."""
    if nelson_et_al is None:
        return None

    distances = [parse_distance_band(n).distance for n in nelson_et_al.names]
    cleaned = nelson_et_al.mask_at_or_above(NODATA_SENTINEL)

    results = select_engine(
        shp=shp,
        raster=cleaned,
        stats=stats_accessibility,
        engine=engine,
        name="minutes",
        mode="asset",
        verbose=verbose,
    )
    results["distance"] = distances
    return results
