"""Zonal statistics engines and the shared dispatcher.

Three interchangeable backends compute the same table (one row per raster
layer, one column per statistic) for a polygon:

- zonal:        rasterio pixel-centre mask + numpy reducers
- extract:      rasterstats.zonal_stats on the in-memory layer
- exactextract: exactextract, weighting cells by the fraction covered

They differ only in how edge cells are counted. select_engine validates the
request, maps the engine token to its backend and shapes the output for
either one polygon ("asset") or a collection ("portfolio").
"""
from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Union

import geopandas as gpd
import numpy as np
import pandas as pd
from pyproj import CRS
from rasterstats import zonal_stats
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

from ecoind.raster import RasterStack


STATS = ("mean", "median", "sd", "min", "max", "sum", "var")
MODES = ("portfolio", "asset")

# Cell value handed to rasterstats/exactextract in place of NaN
_FILL = -3.0e38


class Engine(str, Enum):
    ZONAL = "zonal"
    EXTRACT = "extract"
    EXACTEXTRACT = "exactextract"


# -----------------------------------------------------------------------------
# Token validation
# -----------------------------------------------------------------------------

def validate_stats(stats: Union[str, Sequence[str]]) -> List[str]:
    """Return stats as a de-duplicated list, rejecting unknown tokens."""
    if isinstance(stats, str):
        stats = [stats]
    stats = list(dict.fromkeys(stats))
    if not stats:
        raise ValueError(f"At least one statistic is required. Supported: {list(STATS)}")
    bad = [s for s in stats if s not in STATS]
    if bad:
        raise ValueError(f"Unsupported statistic(s) {bad}. Supported: {list(STATS)}")
    return stats


def validate_engine(engine: Union[str, Engine]) -> Engine:
    try:
        return Engine(engine)
    except ValueError:
        raise ValueError(
            f"Unsupported engine '{engine}'. Supported: {[e.value for e in Engine]}"
        ) from None


def validate_mode(mode: str) -> str:
    if mode not in MODES:
        raise ValueError(f"Unsupported processing mode '{mode}'. Supported: {list(MODES)}")
    return mode


# -----------------------------------------------------------------------------
# Reducers shared by the zonal and extract backends
# -----------------------------------------------------------------------------
# sd and var are sample statistics (n - 1); they need at least two cells.

def _sample_sd(v: np.ndarray) -> float:
    return float(np.std(v, ddof=1)) if v.size > 1 else np.nan


def _sample_var(v: np.ndarray) -> float:
    return float(np.var(v, ddof=1)) if v.size > 1 else np.nan


_REDUCERS: Dict[str, Callable[[np.ndarray], float]] = {
    "mean": lambda v: float(np.mean(v)),
    "median": lambda v: float(np.median(v)),
    "sd": _sample_sd,
    "min": lambda v: float(np.min(v)),
    "max": lambda v: float(np.max(v)),
    "sum": lambda v: float(np.sum(v)),
    "var": _sample_var,
}


def _reduce(stat: str, values: np.ndarray) -> float:
    if values.size == 0:
        return np.nan
    return _REDUCERS[stat](values)


def _as_float(x) -> float:
    return np.nan if x is None else float(x)


# -----------------------------------------------------------------------------
# Backends
# -----------------------------------------------------------------------------

def _zonal(geometry: BaseGeometry, stack: RasterStack, stats: Sequence[str]) -> pd.DataFrame:
    inside = stack.polygon_mask(geometry)
    rows = []
    for i in range(stack.nlayers):
        values = stack.layer(i)[inside]
        values = values[~np.isnan(values)]
        rows.append({s: _reduce(s, values) for s in stats})
    return pd.DataFrame(rows, columns=list(stats))


_RASTERSTATS_NATIVE = ("mean", "median", "min", "max", "sum")


def _masked_reducer(stat: str) -> Callable:
    def fn(masked):
        return _reduce(stat, np.asarray(masked.compressed(), dtype="float64"))
    return fn


def _extract(geometry: BaseGeometry, stack: RasterStack, stats: Sequence[str]) -> pd.DataFrame:
    native = [s for s in stats if s in _RASTERSTATS_NATIVE]
    extra = {s: _masked_reducer(s) for s in stats if s not in _RASTERSTATS_NATIVE}
    rows = []
    for i in range(stack.nlayers):
        layer = stack.layer(i)
        filled = np.where(np.isnan(layer), _FILL, layer)
        out = zonal_stats(
            [geometry],
            filled,
            affine=stack.transform,
            nodata=_FILL,
            stats=native or ["count"],
            add_stats=extra or None,
            all_touched=False,
        )[0]
        rows.append({s: _as_float(out.get(s)) for s in stats})
    return pd.DataFrame(rows, columns=list(stats))


_EXACTEXTRACT_OPS = {
    "mean": "mean",
    "median": "median",
    "sd": "stdev",
    "min": "min",
    "max": "max",
    "sum": "sum",
    "var": "variance",
}


def _exactextract(geometry: BaseGeometry, stack: RasterStack, stats: Sequence[str]) -> pd.DataFrame:
    # Lazy import: exactextract loads GDAL bindings of its own
    from exactextract import exact_extract
    from exactextract.raster import NumPyRasterSource

    ops = [_EXACTEXTRACT_OPS[s] for s in stats] + ["count"]
    xmin, ymin, xmax, ymax = stack.bounds

    if stack.crs is None:
        # GeoJSON features carry no CRS, so exactextract has nothing to compare
        features = [{"type": "Feature", "properties": {}, "geometry": mapping(geometry)}]
        srs_wkt = None
    else:
        crs = CRS.from_user_input(stack.crs)
        features = gpd.GeoDataFrame(geometry=[geometry], crs=crs)
        srs_wkt = crs.to_wkt()

    rows = []
    for i in range(stack.nlayers):
        layer = stack.layer(i)
        filled = np.where(np.isnan(layer), _FILL, layer)
        src = NumPyRasterSource(filled, xmin, ymin, xmax, ymax, nodata=_FILL, srs_wkt=srs_wkt)
        out = exact_extract(src, features, ops, output="pandas")
        values = [float(v) for v in out[ops].iloc[0]]
        covered = values[-1] > 0
        rows.append({s: (values[j] if covered else np.nan) for j, s in enumerate(stats)})
    return pd.DataFrame(rows, columns=list(stats))


_BACKENDS: Dict[Engine, Callable[[BaseGeometry, RasterStack, Sequence[str]], pd.DataFrame]] = {
    Engine.ZONAL: _zonal,
    Engine.EXTRACT: _extract,
    Engine.EXACTEXTRACT: _exactextract,
}


# -----------------------------------------------------------------------------
# Dispatcher
# -----------------------------------------------------------------------------

def as_geometries(shp, raster_crs) -> List[BaseGeometry]:
    """Normalize a geometry, GeoSeries/GeoDataFrame or list into geometries."""
    if isinstance(shp, (gpd.GeoDataFrame, gpd.GeoSeries)):
        if shp.crs is not None and raster_crs is not None:
            if CRS.from_user_input(shp.crs) != CRS.from_user_input(raster_crs):
                raise ValueError(
                    f"Polygon CRS ({shp.crs}) differs from raster CRS ({raster_crs}). "
                    "Reproject the polygons before computing indicators."
                )
        return list(shp.geometry)
    if isinstance(shp, BaseGeometry):
        return [shp]
    return list(shp)


def select_engine(
    shp,
    raster: RasterStack,
    stats: Union[str, Sequence[str]],
    engine: Union[str, Engine] = "extract",
    name: Optional[str] = None,
    mode: str = "asset",
    verbose: bool = False,
) -> Union[pd.DataFrame, List[pd.DataFrame]]:
    """Compute zonal statistics of every layer of `raster` over `shp`.

    Args:
        shp: A shapely geometry or one-row GeoDataFrame (asset mode), or a
            GeoDataFrame/GeoSeries/list of geometries (portfolio mode).
        raster: Layers to summarise.
        stats: Statistic token(s), see STATS.
        engine: Backend token, see Engine.
        name: Optional prefix; columns become "<name>_<stat>".
        mode: "asset" returns one DataFrame, "portfolio" one per polygon.
        verbose: Print a one-line summary of the work done.

    Returns:
        DataFrame (asset) or list of DataFrames (portfolio), each with one
        row per layer in layer order.

    Note:
        "sd" and "var" are sample statistics (n - 1) on the zonal and
        extract engines. exactextract reports population statistics
        weighted by cell coverage, so on the same cells its sd is smaller
        (2.06 against 2.38 for the values 1, 2, 5, 6).

    Raises:
        ValueError: On unknown tokens, an asset call with more than one
            polygon, or mismatching CRS.
    """
    stats = validate_stats(stats)
    engine = validate_engine(engine)
    mode = validate_mode(mode)

    geometries = as_geometries(shp, raster.crs)
    if mode == "asset" and len(geometries) != 1:
        raise ValueError(f"Asset mode expects exactly one polygon, got {len(geometries)}")

    backend = _BACKENDS[engine]
    columns = {s: f"{name}_{s}" if name else s for s in stats}
    tables = [backend(geom, raster, stats).rename(columns=columns) for geom in geometries]

    if verbose:
        print(
            f"[ENGINE] {engine.value}: {len(stats)} stat(s) x {raster.nlayers} layer(s) "
            f"x {len(geometries)} polygon(s)"
        )

    return tables[0] if mode == "asset" else tables
