"""Static lookup tables used by the indicators.

Both tables are read-only mappings built once at import.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping


# -----------------------------------------------------------------------------
# ESA / Copernicus global land cover (100 m), 23 discrete classes
# -----------------------------------------------------------------------------

ESA_LANDCOVER_CLASSES: Mapping[int, str] = MappingProxyType({
    0: "no_data",
    111: "closed_forest_evergreen_needle_leaf",
    112: "closed_forest_evergreen_broad_leaf",
    113: "closed_forest_deciduous_needle_leaf",
    114: "closed_forest_deciduous_broad_leaf",
    115: "closed_forest_mixed",
    116: "closed_forest_unknown",
    121: "open_forest_evergreen_needle_leaf",
    122: "open_forest_evergreen_broad_leaf",
    123: "open_forest_deciduous_needle_leaf",
    124: "open_forest_deciduous_broad_leaf",
    125: "open_forest_mixed",
    126: "open_forest_unknown",
    20: "shrubs",
    30: "herbaceous_vegetation",
    40: "cropland",
    50: "built_up",
    60: "bare_vegetation",
    70: "snow_and_ice",
    80: "permanent_water_bodies",
    90: "herbaceous_wetland",
    100: "moss_and_lichen",
    200: "open_sea",
})

# Label for codes present in the raster but absent from the table.
UNKNOWN_LANDCOVER_CLASS = "unknown"


# -----------------------------------------------------------------------------
# SoilGrids 2.0 properties
# -----------------------------------------------------------------------------
# Values are stored as integers in "mapped units"; dividing by the conversion
# factor gives conventional units.

@dataclass(frozen=True)
class SoilProperty:
    description: str
    mapped_units: str
    conversion_factor: int
    conventional_units: str


SOILGRIDS_PROPERTIES: Mapping[str, SoilProperty] = MappingProxyType({
    "bdod": SoilProperty("Bulk density of the fine earth fraction", "cg/cm³", 100, "kg/dm³"),
    "cec": SoilProperty("Cation Exchange Capacity of the soil", "mmol(c)/kg", 10, "cmol(c)/kg"),
    "cfvo": SoilProperty("Volumetric fraction of coarse fragments (> 2 mm)", "cm3/dm3 (vol‰)", 10, "cm3/100cm3 (vol%)"),
    "clay": SoilProperty("Proportion of clay particles (< 0.002 mm) in the fine earth fraction", "g/kg", 10, "g/100g (%)"),
    "nitrogen": SoilProperty("Total nitrogen (N)", "cg/kg", 100, "g/kg"),
    "phh2o": SoilProperty("Soil pH", "pHx10", 10, "pH"),
    "sand": SoilProperty("Proportion of sand particles (> 0.05 mm) in the fine earth fraction", "g/kg", 10, "g/100g (%)"),
    "silt": SoilProperty("Proportion of silt particles (>= 0.002 mm and <= 0.05 mm) in the fine earth fraction", "g/kg", 10, "g/100g (%)"),
    "soc": SoilProperty("Soil organic carbon content in the fine earth fraction", "dg/kg", 10, "g/kg"),
    "ocd": SoilProperty("Organic carbon density", "hg/m³", 10, "kg/m³"),
    "ocs": SoilProperty("Organic carbon stocks", "t/ha", 10, "kg/m²"),
})
