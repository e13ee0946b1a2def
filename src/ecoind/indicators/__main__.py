#!/usr/bin/env python3
"""ecoind.indicators

Indicator CLI for ecoind.

Computes zonal indicators over a portfolio of polygons from raster
resources that were fetched beforehand:
- drought_indicator → NASA GRACE wetness percentiles (dated layers)
- landcover         → ESA land cover area per class and year
- soilproperties    → SoilGrids properties in conventional units
- traveltime        → travel time to cities, per city-size band

Design notes:
- Defaults (engine, stats, where the rasters live) come from the
  indicators YAML; flags override them
- Lazy-imports the readers (geopandas, rasterio) only when `calc` runs
- `calc` supports --dry-run for safe exploration

Examples:
  # Show registered indicators and configured defaults
  python -m ecoind.indicators list

  # Drought statistics for every polygon of a GeoPackage
  python -m ecoind.indicators calc drought_indicator \
    --aoi data/aoi/portfolio.gpkg --stats mean median --out out/drought.csv

  # Soil properties from explicit rasters
  python -m ecoind.indicators calc soilproperties --aoi data/aoi/portfolio.gpkg \
    --rasters data/res/soilgrids/clay_0-5cm_mean.tif data/res/soilgrids/silt_0-5cm_mean.tif \
    --engine exactextract --out out/soil.parquet
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from ecoind.config import (
    DEFAULT_INDICATORS_YAML,
    indicator_defaults,
    load_indicators_yaml,
    resolve_rasters,
)
from ecoind.engines import MODES, STATS, Engine


# -----------------------------------------------------------------------------
# CLI structure
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for ecoind.indicators."""
    ap = argparse.ArgumentParser(
        prog="ecoind.indicators",
        description="Zonal environmental indicators for polygon portfolios",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # --- Global args ---
    ap.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_INDICATORS_YAML,
        help=f"Path to indicators YAML (default: {DEFAULT_INDICATORS_YAML})",
    )
    ap.add_argument(
        "--dry-run",
        action="store_true",
        help="Print planned actions without computing or writing files",
    )
    ap.add_argument(
        "--overwrite",
        action="store_true",
        help="Overwrite existing output files",
    )

    # --- Subcommands ---
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List available indicators and their defaults")

    calc = sub.add_parser(
        "calc",
        help="Compute one indicator for every polygon of an AOI file",
        description="""
Compute one indicator for every polygon of an AOI file.

This command:
1. Reads the AOI polygons (any format geopandas can read)
2. Stacks the indicator rasters (--rasters, or local_glob from the YAML)
3. Runs the indicator per polygon (or once, in portfolio mode)
4. Writes one long table keyed by assetid (.csv or .parquet)
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    calc.add_argument("indicator", help="Indicator name (see `list`)")
    calc.add_argument("--aoi", required=True, type=Path, help="Polygon file (GeoPackage, GeoJSON, shapefile)")
    calc.add_argument("--layer", default=None, help="Layer name inside the AOI file")
    calc.add_argument("--rasters", nargs="+", type=Path, default=None, help="Raster files (default: local_glob from config)")
    calc.add_argument("--stats", nargs="+", choices=STATS, default=None, help="Statistics (default from config)")
    calc.add_argument("--engine", choices=[e.value for e in Engine], default=None, help="Engine (default from config)")
    calc.add_argument("--mode", choices=MODES, default=None, help="Processing mode (default from config, else asset)")
    calc.add_argument("--id-column", default="assetid", help="AOI column identifying polygons (default: assetid)")
    calc.add_argument("--out", required=True, type=Path, help="Output table (.csv or .parquet)")

    return ap


# -----------------------------------------------------------------------------
# Command handlers
# -----------------------------------------------------------------------------

def _load_config(path: Path) -> dict:
    # The YAML is optional: without it, only flags and built-in defaults apply
    if not path.exists():
        return {}
    try:
        return load_indicators_yaml(path)
    except ValueError as e:
        raise SystemExit(str(e)) from e


def _handle_list(args: argparse.Namespace) -> int:
    from ecoind.indicators.portfolio import INDICATORS

    indicators = _load_config(args.config)
    for name, entry in INDICATORS.items():
        block = indicator_defaults(indicators, name)
        print(f"{name}")
        print(f"  - resource: {entry.resource}")
        if entry.stats_param:
            print(f"  - stats: {block.get('stats', ['mean'])} (param: {entry.stats_param})")
        if entry.default_engine:
            print(f"  - engine: {block.get('engine', entry.default_engine)}")
        if block.get("local_glob"):
            print(f"  - local_glob: {block['local_glob']}")
    return 0


def _handle_calc(args: argparse.Namespace) -> int:
    from ecoind.indicators.portfolio import get_indicator

    try:
        entry = get_indicator(args.indicator)
    except ValueError as e:
        raise SystemExit(str(e)) from e

    block = indicator_defaults(_load_config(args.config), args.indicator)
    rasters = args.rasters or resolve_rasters(block)
    stats = args.stats or block.get("stats")
    engine = args.engine or block.get("engine")
    mode = args.mode or block.get("mode") or "asset"

    if not args.aoi.exists():
        raise SystemExit(f"AOI file not found: {args.aoi}")
    if args.out.exists() and not args.overwrite:
        print(f"[SKIP] {args.out} exists (use --overwrite)")
        return 0

    if args.dry_run:
        print(f"[dry-run] Would compute {args.indicator}:")
        print(f"  AOI: {args.aoi}")
        print(f"  Rasters ({len(rasters)}): {[str(p) for p in rasters[:5]]}")
        print(f"  Stats / engine / mode: {stats} / {engine} / {mode}")
        print(f"  Output: {args.out}")
        return 0

    # Lazy import: keeps CLI startup fast, avoids loading GDAL until needed
    import geopandas as gpd

    from ecoind.indicators.portfolio import calc_indicators, unnest
    from ecoind.raster import RasterStack

    aoi = gpd.read_file(args.aoi, layer=args.layer) if args.layer else gpd.read_file(args.aoi)
    if aoi.empty:
        raise SystemExit(f"AOI file has no features: {args.aoi}")

    # No rasters means the resource is unavailable: indicators return None
    if rasters:
        raster = RasterStack.from_files(rasters)
        print(f"[{args.indicator.upper()}] {raster.nlayers} layer(s) from {len(rasters)} file(s) ({entry.resource})")
    else:
        raster = None
        print(f"[{args.indicator.upper()}] no rasters for {entry.resource}; results will be empty")

    try:
        portfolio = calc_indicators(
            aoi,
            args.indicator,
            raster,
            stats=stats,
            engine=engine,
            processing_mode=mode,
            verbose=True,
        )
    except ValueError as e:
        raise SystemExit(f"{args.indicator} failed: {e}") from e

    table = unnest(portfolio, args.indicator, id_column=args.id_column)

    args.out.parent.mkdir(parents=True, exist_ok=True)
    if args.out.suffix == ".parquet":
        table.to_parquet(args.out, index=False)
    else:
        table.to_csv(args.out, index=False)

    print(f"Wrote {len(table)} rows -> {args.out}")
    return 0


# -----------------------------------------------------------------------------
# Main entrypoint
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """Main entrypoint for ecoind.indicators CLI."""
    ap = build_parser()
    args = ap.parse_args(argv)

    handlers = {
        "list": _handle_list,
        "calc": _handle_calc,
    }

    handler = handlers.get(args.command)
    if handler is None:
        raise SystemExit(f"Unknown command: {args.command}")

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
