from __future__ import annotations

from datetime import date

import pytest

from ecoind.layernames import (
    LayerNameError,
    parse_date,
    parse_distance_band,
    parse_soil_layer,
    parse_year,
)


def test_parse_date_from_8_digits():
    rec = parse_date("nasa_grace_gws_20220103.tif")
    assert rec.token == "20220103"
    assert rec.date == date(2022, 1, 3)


def test_parse_date_takes_last_8_digit_run():
    assert parse_date("v12345678_20210517").date == date(2021, 5, 17)


def test_parse_date_missing_or_invalid_is_none():
    assert parse_date("nasa_grace_2022.tif").date is None
    assert parse_date("nasa_grace_2022.tif").token is None
    # 8 digits but not a calendar date
    rec = parse_date("grace_20221399.tif")
    assert rec.token == "20221399"
    assert rec.date is None


def test_parse_year_first_4_digits():
    assert parse_year("esalandcover_2016.tif").year == 2016
    assert parse_year("PROBAV_LC100_global_v3.0.1_2017-conso.tif").year == 2017


def test_parse_year_missing_raises():
    with pytest.raises(LayerNameError):
        parse_year("esalandcover.tif")


def test_parse_soil_layer_tokens():
    rec = parse_soil_layer("clay_0-5cm_mean.tif")
    assert (rec.layer, rec.depth, rec.stat) == ("clay", "0-5cm", "mean")


def test_parse_soil_layer_keeps_dots_in_stat():
    rec = parse_soil_layer("soc_15-30cm_Q0.95.tif")
    assert rec.stat == "Q0.95"


def test_parse_soil_layer_strips_directories():
    assert parse_soil_layer("/data/res/soilgrids/silt_5-15cm_mean.tif").layer == "silt"


@pytest.mark.parametrize("name", ["clay_0-5cm.tif", "clay_0-5cm_mean_extra.tif", "clay__mean.tif"])
def test_parse_soil_layer_malformed_raises(name):
    with pytest.raises(LayerNameError, match="<property>_<depth>_<stat>"):
        parse_soil_layer(name)


def test_parse_distance_band():
    assert parse_distance_band("traveltime-5k_10k.tif").distance == "5k_10k"
    assert parse_distance_band("res/traveltime-1mio_5mio.tif").distance == "1mio_5mio"


def test_parse_distance_band_without_dash_raises():
    with pytest.raises(LayerNameError):
        parse_distance_band("traveltime.tif")
