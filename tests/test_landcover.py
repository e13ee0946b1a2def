from __future__ import annotations

import numpy as np
import pytest

from conftest import cells_box, make_stack
from ecoind.indicators.landcover import calc_landcover
from ecoind.layernames import LayerNameError


@pytest.fixture
def esa():
    """10x10 grid (100 ha), codes {0, 111, 200} in 2016 and 2017."""
    y2016 = np.full((10, 10), 111.0)
    y2016[:3, :] = 0        # 30 ha no_data class
    y2016[8:, :] = 200      # 20 ha open sea
    y2017 = np.full((10, 10), 111.0)
    y2017[:1, :] = 0        # 10 ha
    y2017[5:, :] = 200      # 50 ha
    return make_stack([y2016, y2017], ["esalandcover_2016.tif", "esalandcover_2017.tif"])


@pytest.fixture
def whole_grid():
    return cells_box(0, 0, 10, 10)


def test_missing_resource_returns_none(whole_grid):
    assert calc_landcover(whole_grid, None) is None


def test_area_and_percentage_per_class_and_year(esa, whole_grid):
    out = calc_landcover(whole_grid, esa, verbose=False)

    assert list(out.columns) == ["classes", "year", "area", "percentage"]
    assert len(out) == 6

    y16 = out[out["year"] == 2016].set_index("classes")
    assert list(y16.index) == ["no_data", "closed_forest_evergreen_needle_leaf", "open_sea"]
    assert y16.loc["no_data", "area"] == pytest.approx(30.0)
    assert y16.loc["closed_forest_evergreen_needle_leaf", "area"] == pytest.approx(50.0)
    assert y16.loc["open_sea", "percentage"] == pytest.approx(0.2)

    y17 = out[out["year"] == 2017].set_index("classes")
    assert y17.loc["open_sea", "area"] == pytest.approx(50.0)


def test_areas_sum_to_total_and_percentages_to_one(esa, whole_grid):
    out = calc_landcover(whole_grid, esa, verbose=False)
    for _, group in out.groupby("year"):
        assert group["area"].sum() == pytest.approx(100.0)
        assert group["percentage"].sum() == pytest.approx(1.0)


def test_years_in_layer_order(esa, whole_grid):
    out = calc_landcover(whole_grid, esa, verbose=False)
    assert list(out["year"]) == [2016] * 3 + [2017] * 3


def test_partial_polygon(esa):
    # bottom half: rows 5-9 -> 2016: 30 ha forest + 20 ha sea
    out = calc_landcover(cells_box(5, 0, 5, 10), esa, verbose=False)
    y16 = out[out["year"] == 2016].set_index("classes")
    assert y16["area"].sum() == pytest.approx(50.0)
    assert y16.loc["open_sea", "percentage"] == pytest.approx(0.4)


def test_unknown_codes_are_labelled(whole_grid):
    layer = np.full((10, 10), 111.0)
    layer[0, :] = 999
    stack = make_stack([layer], ["esalandcover_2019.tif"])
    out = calc_landcover(whole_grid, stack, verbose=False).set_index("classes")
    assert out.loc["unknown", "area"] == pytest.approx(10.0)
    assert out["percentage"].sum() == pytest.approx(1.0)


def test_nodata_cells_excluded_from_total(whole_grid):
    layer = np.full((10, 10), 20.0)
    layer[:5, :] = 255
    stack = make_stack([layer], ["esalandcover_2015.tif"], nodata=255)
    out = calc_landcover(whole_grid, stack, verbose=False)
    assert len(out) == 1
    assert out.loc[0, "classes"] == "shrubs"
    assert out.loc[0, "area"] == pytest.approx(50.0)
    assert out.loc[0, "percentage"] == pytest.approx(1.0)


def test_layer_without_year_raises(whole_grid):
    stack = make_stack([np.zeros((10, 10))], ["esalandcover.tif"])
    with pytest.raises(LayerNameError):
        calc_landcover(whole_grid, stack, verbose=False)


def test_each_year_uses_its_own_coded_footprint(whole_grid):
    y2016 = np.full((10, 10), 20.0)
    y2017 = np.full((10, 10), 20.0)
    y2017[:5, :] = np.nan
    stack = make_stack([y2016, y2017], ["esalandcover_2016.tif", "esalandcover_2017.tif"])
    out = calc_landcover(whole_grid, stack, verbose=False)

    totals = out.groupby("year")["percentage"].sum()
    assert totals[2016] == pytest.approx(1.0)
    assert totals[2017] == pytest.approx(1.0)
    assert out.loc[out["year"] == 2017, "area"].sum() == pytest.approx(50.0)


def test_cells_missing_only_in_first_year_are_counted_later(whole_grid):
    y2016 = np.full((10, 10), 20.0)
    y2016[:5, :] = np.nan
    y2017 = np.full((10, 10), 20.0)
    stack = make_stack([y2016, y2017], ["esalandcover_2016.tif", "esalandcover_2017.tif"])
    out = calc_landcover(whole_grid, stack, verbose=False).set_index("year")

    assert out.loc[2016, "area"] == pytest.approx(50.0)
    assert out.loc[2017, "classes"] == "shrubs"
    assert out.loc[2017, "area"] == pytest.approx(100.0)
    assert out.loc[2017, "percentage"] == pytest.approx(1.0)
