#!/usr/bin/env python3
"""
data_utils.py - Shared Data Loading Utilities

Loads the regional statistics table and the boundary geometries, and holds
the small cleaning helpers shared by the join and the map scripts.
"""

from pathlib import Path
from typing import Iterable, Optional, Tuple

import geopandas as gpd
import numpy as np
import pandas as pd
from loguru import logger

WGS84 = "EPSG:4326"


def clean_numeric(series: pd.Series) -> pd.Series:
    """
    Cleans a pandas Series to float, handling thousands separators.

    Values that cannot be parsed (e.g. "N/A", "") and infinities become NaN.

    Args:
        series: The pandas Series to clean.

    Returns:
        A float64 Series.
    """
    s = series.astype(str).str.replace(",", "", regex=False).str.strip()
    vals = pd.to_numeric(s, errors="coerce")
    return vals.replace([np.inf, -np.inf], np.nan).astype(float)


def validate_required_columns(df: pd.DataFrame, required: Iterable[str], description: str) -> bool:
    """Validate that required columns exist in a DataFrame.

    Args:
        df: DataFrame to validate
        required: Exact column names that must be present
        description: Description for logging

    Returns:
        True if all required columns are found, False otherwise
    """
    missing_columns = [col for col in required if col not in df.columns]

    if missing_columns:
        logger.error(f"❌ Missing required columns in {description}: {missing_columns}")
        logger.info(f"Available columns: {list(df.columns)}")
        return False

    return True


def ensure_output_directory(output_path: str | Path) -> Path:
    """Ensure output directory exists and return Path object.

    Args:
        output_path: Output file path (string or Path)

    Returns:
        Path object with directory created
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    return output_path


def load_region_table(csv_path: Path, key: str) -> pd.DataFrame:
    """
    Load the regional statistics table with every value kept as raw text.

    Args:
        csv_path: Path to the CSV file
        key: Region key column that must be present

    Returns:
        DataFrame of raw strings, one row per region
    """
    csv_path = Path(csv_path)
    logger.info(f"📊 Loading regional statistics from {csv_path}")

    if not csv_path.exists():
        raise FileNotFoundError(f"Statistics CSV not found: {csv_path}")

    df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
    df.columns = [str(col).strip() for col in df.columns]

    if not validate_required_columns(df, [key], "statistics table"):
        raise ValueError(f"Region key column '{key}' missing from {csv_path.name}")

    logger.success(f"  ✅ Loaded {len(df):,} statistics rows")
    return df


def validate_and_reproject_to_wgs84(
    gdf: gpd.GeoDataFrame, source_description: str = "GeoDataFrame"
) -> gpd.GeoDataFrame:
    """
    Reprojects a GeoDataFrame to WGS84 (EPSG:4326) if needed.

    Data without a CRS is assumed to already be longitude/latitude, which is
    what TopoJSON and most GeoJSON files carry.

    Args:
        gdf: Input GeoDataFrame
        source_description: Description for logging

    Returns:
        GeoDataFrame in WGS84 coordinate system
    """
    logger.debug(f"🗺️ Validating CRS of {source_description}: {gdf.crs}")

    if gdf.crs is None:
        logger.warning(f"  ⚠️ No CRS found in {source_description}, assuming WGS84")
        return gdf.set_crs(WGS84)

    if gdf.crs.to_epsg() != 4326:
        logger.info(f"  🔄 Reprojecting {source_description} from {gdf.crs} to WGS84")
        return gdf.to_crs(WGS84)

    logger.debug("  ✓ Already in WGS84")
    return gdf


def load_region_geometries(
    geo_path: Path, key: str, layer: Optional[str] = None
) -> gpd.GeoDataFrame:
    """
    Load region boundary polygons from any format geopandas can read.

    Args:
        geo_path: Path to GeoJSON, TopoJSON, shapefile, etc.
        key: Region key property that must be present
        layer: Layer name for multi-layer sources (e.g. a TopoJSON object)

    Returns:
        GeoDataFrame in WGS84 with valid geometries
    """
    geo_path = Path(geo_path)
    logger.info(f"🗺️ Loading region boundaries from {geo_path}")

    if not geo_path.exists():
        raise FileNotFoundError(f"Boundary file not found: {geo_path}")

    if layer:
        gdf = gpd.read_file(geo_path, layer=layer)
    else:
        gdf = gpd.read_file(geo_path)

    if not validate_required_columns(gdf, [key], "boundary file"):
        raise ValueError(f"Region key property '{key}' missing from {geo_path.name}")

    gdf = validate_and_reproject_to_wgs84(gdf, geo_path.name)

    original_count = len(gdf)
    gdf = gdf[gdf.geometry.notna()]
    if len(gdf) < original_count:
        logger.info(f"  🧹 Removed {original_count - len(gdf)} features without geometry")

    invalid = ~gdf.geometry.is_valid
    if invalid.any():
        logger.warning(f"  ⚠️ Found {int(invalid.sum())} invalid geometries, fixing...")
        gdf = gdf.copy()
        gdf.loc[invalid, "geometry"] = gdf.loc[invalid, "geometry"].buffer(0)

    logger.success(f"  ✅ Loaded {len(gdf):,} region boundaries")
    return gdf


def load_region_data(
    csv_path: Path, geo_path: Path, key: str, layer: Optional[str] = None
) -> Tuple[pd.DataFrame, gpd.GeoDataFrame]:
    """Load both datasets; the join can only start once both are in memory."""
    rows = load_region_table(csv_path, key)
    geometries = load_region_geometries(geo_path, key, layer)
    return rows, geometries
