from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest
from affine import Affine
from shapely.geometry import box

# Ensure we can import from src/ without installing the package
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from ecoind.raster import RasterStack  # noqa: E402

# 100 m cells in UTM 33N: one cell is exactly one hectare
X0, Y0, CELL = 500_000.0, 5_000_000.0, 100.0
CRS_UTM = "EPSG:32633"
TRANSFORM = Affine(CELL, 0.0, X0, 0.0, -CELL, Y0)


def cells_box(row0: int, col0: int, nrows: int, ncols: int):
    """Polygon whose edges follow cell boundaries (rows/cols from top-left)."""
    return box(
        X0 + col0 * CELL,
        Y0 - (row0 + nrows) * CELL,
        X0 + (col0 + ncols) * CELL,
        Y0 - row0 * CELL,
    )


def make_stack(arrays, names, nodata=None) -> RasterStack:
    return RasterStack.from_arrays(arrays, names, transform=TRANSFORM, crs=CRS_UTM, nodata=nodata)


@pytest.fixture
def grid4():
    """4x4 layer holding 1..16 row by row."""
    return np.arange(1, 17, dtype="float64").reshape(4, 4)


@pytest.fixture
def top_left_2x2():
    # covers values 1, 2, 5, 6 of grid4
    return cells_box(0, 0, 2, 2)
