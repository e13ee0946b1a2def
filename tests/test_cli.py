from __future__ import annotations

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
import rasterio

from conftest import CRS_UTM, TRANSFORM, cells_box
from ecoind.indicators.__main__ import build_parser, main


def _write_tif(path, data):
    with rasterio.open(
        path, "w", driver="GTiff", height=data.shape[0], width=data.shape[1], count=1,
        dtype="float32", crs=CRS_UTM, transform=TRANSFORM,
    ) as dst:
        dst.write(data.astype("float32"), 1)


@pytest.fixture
def aoi_file(tmp_path):
    p = tmp_path / "aoi.gpkg"
    gpd.GeoDataFrame(
        {"assetid": [1, 2]},
        geometry=[cells_box(0, 0, 2, 2), cells_box(2, 2, 2, 2)],
        crs=CRS_UTM,
    ).to_file(p, driver="GPKG")
    return p


def test_parser_rejects_unknown_engine():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["calc", "traveltime", "--aoi", "a.gpkg", "--out", "o.csv", "--engine", "terra"])


def test_list_prints_indicators(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "missing.yaml"), "list"]) == 0
    out = capsys.readouterr().out
    assert "drought_indicator" in out
    assert "nelson_et_al" in out


def test_calc_dry_run_writes_nothing(tmp_path, aoi_file, capsys):
    out_csv = tmp_path / "out.csv"
    rc = main([
        "--config", str(tmp_path / "missing.yaml"), "--dry-run",
        "calc", "traveltime", "--aoi", str(aoi_file), "--out", str(out_csv),
    ])
    assert rc == 0
    assert not out_csv.exists()
    assert "[dry-run]" in capsys.readouterr().out


def test_calc_unknown_indicator_exits(tmp_path, aoi_file):
    with pytest.raises(SystemExit, match="Unknown indicator"):
        main(["calc", "biodiversity", "--aoi", str(aoi_file), "--out", str(tmp_path / "o.csv")])


def test_calc_soilproperties_end_to_end(tmp_path, aoi_file):
    grid = np.arange(1, 17, dtype="float64").reshape(4, 4)
    clay = tmp_path / "clay_0-5cm_mean.tif"
    _write_tif(clay, grid * 10)

    out_csv = tmp_path / "soil.csv"
    rc = main([
        "--config", str(tmp_path / "missing.yaml"),
        "calc", "soilproperties", "--aoi", str(aoi_file), "--rasters", str(clay),
        "--stats", "mean", "max", "--out", str(out_csv),
    ])
    assert rc == 0

    table = pd.read_csv(out_csv)
    assert list(table.columns) == ["assetid", "layer", "depth", "stat", "mean", "max"]
    assert list(table["assetid"]) == [1, 2]
    assert list(table["mean"]) == pytest.approx([3.5, 13.5])
    assert list(table["max"]) == pytest.approx([6.0, 16.0])


def test_calc_skips_existing_output(tmp_path, aoi_file, capsys):
    out_csv = tmp_path / "out.csv"
    out_csv.write_text("keep\n")
    rc = main([
        "--config", str(tmp_path / "missing.yaml"),
        "calc", "landcover", "--aoi", str(aoi_file), "--out", str(out_csv),
    ])
    assert rc == 0
    assert out_csv.read_text() == "keep\n"
    assert "[SKIP]" in capsys.readouterr().out
