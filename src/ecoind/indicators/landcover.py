"""Land cover indicator: area per ESA land-cover class and year.

Works on the 100 m Copernicus global land cover (23 discrete classes), one
categorical layer per year. For each year the area (ha) of every class
inside the polygon is returned together with its share of the area
mapped in that year (cells with a code), so footprints may differ by year.

Codes missing from ESA_LANDCOVER_CLASSES are kept and labelled "unknown",
so class areas of a year always add up to the total mapped area.
"""
from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd

from ecoind.engines import as_geometries
from ecoind.layernames import parse_year
from ecoind.lookups import ESA_LANDCOVER_CLASSES, UNKNOWN_LANDCOVER_CLASS
from ecoind.raster import RasterStack


COLUMNS = ["classes", "year", "area", "percentage"]


def calc_landcover(
    shp,
    esalandcover: Optional[RasterStack],
    rundir=None,
    verbose: bool = True,
    **kwargs,
) -> Optional[pd.DataFrame]:
    """Area (ha) and percentage of each land-cover class per year."""
    if esalandcover is None:
        return None

    geometries = as_geometries(shp, esalandcover.crs)
    if len(geometries) != 1:
        raise ValueError(f"Land cover expects exactly one polygon, got {len(geometries)}")

    inside = esalandcover.polygon_mask(geometries[0])
    cell_area = esalandcover.cell_area_ha()

    frames = []
    for i, name in enumerate(esalandcover.names):
        year = parse_year(name).year
        codes = esalandcover.layer(i)
        # each year's denominator is its own coded footprint
        sel = inside & ~np.isnan(codes)
        total_size = float(cell_area[sel].sum())

        per_code = (
            pd.DataFrame({"code": codes[sel].astype("int64"), "area": cell_area[sel]})
            .groupby("code", as_index=False)["area"]
            .sum()
            .sort_values("code")
        )
        per_code["classes"] = per_code["code"].map(dict(ESA_LANDCOVER_CLASSES)).fillna(UNKNOWN_LANDCOVER_CLASS)
        per_code["year"] = year
        per_code["percentage"] = per_code["area"] / total_size
        frames.append(per_code[COLUMNS])

        if verbose:
            print(f"[LANDCOVER] {year}: {len(per_code)} class(es) over {total_size:.2f} ha")

    return pd.concat(frames, ignore_index=True)
