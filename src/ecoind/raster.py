"""In-memory raster stacks for zonal indicator computation.

A RasterStack is an ordered sequence of co-registered layers sharing one
grid: a (layers, rows, cols) float64 array with NaN marking nodata, the
affine transform of the grid, an optional CRS and one name per layer. Layer
names carry the metadata indicators parse (dates, years, soil depths, ...),
so they travel with the data.

Stacks are never modified in place. Masking sentinel values or building an
area raster returns new arrays, so indicators can share an input stack.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence, Tuple

import numpy as np
import rasterio
from affine import Affine
from pyproj import CRS, Geod
from rasterio.features import geometry_mask


@dataclass(frozen=True, eq=False)
class RasterStack:
    data: np.ndarray
    transform: Affine
    names: Tuple[str, ...]
    crs: Optional[Any] = None
    nodata: Optional[float] = None

    def __post_init__(self) -> None:
        data = np.asarray(self.data)
        if data.ndim == 2:
            data = data[np.newaxis, ...]
        if data.ndim != 3:
            raise ValueError(f"Raster data must be 2D or 3D (layers, rows, cols), got shape {data.shape}")
        data = data.astype("float64", copy=True)
        if self.nodata is not None and not np.isnan(self.nodata):
            data[data == self.nodata] = np.nan
        data.setflags(write=False)

        names = tuple(str(n) for n in self.names)
        if len(names) != data.shape[0]:
            raise ValueError(f"Got {len(names)} layer names for {data.shape[0]} layers")

        # frozen dataclass: bypass __setattr__ for the normalized values
        object.__setattr__(self, "data", data)
        object.__setattr__(self, "names", names)
        object.__setattr__(self, "nodata", None)

    # -------------------------------------------------------------------------
    # Shape helpers
    # -------------------------------------------------------------------------

    @property
    def nlayers(self) -> int:
        return self.data.shape[0]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape[1], self.data.shape[2]

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(xmin, ymin, xmax, ymax) of the grid. Assumes a north-up transform."""
        rows, cols = self.shape
        xmin, ymax = self.transform.c, self.transform.f
        xmax = xmin + cols * self.transform.a
        ymin = ymax + rows * self.transform.e
        return (xmin, ymin, xmax, ymax)

    def __len__(self) -> int:
        return self.nlayers

    def layer(self, i: int) -> np.ndarray:
        return self.data[i]

    # -------------------------------------------------------------------------
    # Derived stacks and masks
    # -------------------------------------------------------------------------

    def with_data(self, data: np.ndarray) -> "RasterStack":
        """Return a new stack on the same grid and names with different values."""
        return replace(self, data=data)

    def mask_at_or_above(self, threshold: float) -> "RasterStack":
        """Return a copy where every cell >= threshold is NaN."""
        data = np.array(self.data, copy=True)
        with np.errstate(invalid="ignore"):
            data[data >= threshold] = np.nan
        return self.with_data(data)

    def polygon_mask(self, geometry, all_touched: bool = False) -> np.ndarray:
        """Boolean (rows, cols) array, True for cells inside the geometry.

        With all_touched=False a cell counts as inside when its centre falls
        inside the polygon (GDAL rasterization rule).
        """
        return geometry_mask(
            [geometry],
            out_shape=self.shape,
            transform=self.transform,
            all_touched=all_touched,
            invert=True,
        )

    def cell_area_ha(self) -> np.ndarray:
        """Per-cell area in hectares as a (rows, cols) array.

        Geographic grids get geodesic areas on the WGS84 ellipsoid (varies by
        row only). Projected grids use the pixel size scaled by the CRS linear
        unit; a stack without CRS is taken to be in metres.
        """
        rows, cols = self.shape
        a, e = self.transform.a, self.transform.e
        crs = CRS.from_user_input(self.crs) if self.crs is not None else None

        if crs is not None and crs.is_geographic:
            geod = Geod(ellps="WGS84")
            x0 = self.transform.c
            top = self.transform.f + np.arange(rows) * e
            row_area = np.empty(rows, dtype="float64")
            for r in range(rows):
                area, _ = geod.polygon_area_perimeter(
                    [x0, x0 + a, x0 + a, x0],
                    [top[r], top[r], top[r] + e, top[r] + e],
                )
                row_area[r] = abs(area)
            return np.repeat(row_area[:, np.newaxis], cols, axis=1) / 10_000.0

        factor = 1.0
        if crs is not None and crs.axis_info:
            factor = crs.axis_info[0].unit_conversion_factor or 1.0
        cell_m2 = abs(a * e) * factor * factor
        return np.full((rows, cols), cell_m2 / 10_000.0, dtype="float64")

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    @classmethod
    def from_files(cls, paths: Iterable[Path]) -> "RasterStack":
        """Read GeoTIFFs sharing one grid into a stack.

        Single-band files are named after the file (`clay_0-5cm_mean.tif`),
        multi-band files after their band descriptions, falling back to
        `<stem>_<band>`. Rasters on different grids are rejected: align
        them before calling this.
        """
        paths = [Path(p) for p in paths]
        if not paths:
            raise ValueError("No raster files given")

        layers = []
        names = []
        ref = None
        for p in paths:
            with rasterio.open(p) as src:
                grid = (src.transform, src.height, src.width, src.crs)
                if ref is None:
                    ref = grid
                elif grid != ref:
                    raise ValueError(
                        f"Raster {p} is not on the same grid as {paths[0]}. "
                        "Resample/reproject the inputs to one grid first."
                    )
                data = src.read(masked=True).astype("float64").filled(np.nan)
                layers.append(data)
                if src.count == 1:
                    names.append(p.name)
                else:
                    for i, desc in enumerate(src.descriptions):
                        names.append(desc or f"{p.stem}_{i + 1}")

        transform, _, _, crs = ref
        return cls(data=np.concatenate(layers, axis=0), transform=transform, names=tuple(names), crs=crs)

    @classmethod
    def from_arrays(
        cls,
        arrays: Sequence[np.ndarray],
        names: Sequence[str],
        transform: Affine,
        crs: Optional[Any] = None,
        nodata: Optional[float] = None,
    ) -> "RasterStack":
        """Stack 2D arrays on a shared grid."""
        return cls(data=np.stack([np.asarray(a) for a in arrays]), transform=transform, names=tuple(names), crs=crs, nodata=nodata)
