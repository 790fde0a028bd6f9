"""
Join regional attribute rows onto boundary geometries.

The join matches on exact region name, compared as strings. Rows whose
name has no geometry are dropped without error; geometries with no matching
row keep NaN for every attribute and are rendered as "no data" downstream.
Inputs are never modified: the result is a new GeoDataFrame.
"""

from dataclasses import dataclass
from typing import Iterable, Tuple

import geopandas as gpd
import pandas as pd
from loguru import logger

from .data_utils import clean_numeric

DEFAULT_REGION_KEY = "REGC2017_N"


class JoinKeyError(ValueError):
    """Raised when an input is missing the region key column."""


@dataclass(frozen=True)
class JoinSummary:
    """Counts of matched and unmatched region names for one join."""

    matched: int
    unmatched_rows: Tuple[str, ...]
    unmatched_geometries: Tuple[str, ...]

    @property
    def complete(self) -> bool:
        return not self.unmatched_rows and not self.unmatched_geometries


def _require_key(frame: pd.DataFrame, key: str, description: str) -> None:
    if key not in frame.columns:
        raise JoinKeyError(
            f"Region key '{key}' not found in {description} columns: {list(frame.columns)}"
        )


def parse_attribute_values(rows: pd.DataFrame, attributes: Iterable[str]) -> pd.DataFrame:
    """
    Parse raw attribute values to floats.

    Unparseable values become NaN. An attribute column absent from ``rows``
    is filled with NaN.

    Args:
        rows: Table with raw (often string) attribute values
        attributes: Attribute column names to parse

    Returns:
        A copy of ``rows`` with every attribute column as float64
    """
    parsed = rows.copy()
    for attr in attributes:
        if attr not in parsed.columns:
            logger.warning(f"  ⚠️ Attribute column '{attr}' missing from table, treating as no data")
            parsed[attr] = float("nan")
            continue

        parsed[attr] = clean_numeric(parsed[attr])
        missing = int(parsed[attr].isna().sum())
        if missing:
            logger.debug(f"     {attr}: {missing} value(s) could not be parsed")

    return parsed


def _key_strings(keys: pd.Series) -> pd.Series:
    """Region keys as strings; missing keys stay missing."""
    return keys.astype(str).where(keys.notna())


def summarize_join(
    rows: pd.DataFrame, geometries: pd.DataFrame, key: str = DEFAULT_REGION_KEY
) -> JoinSummary:
    """Report which region names match between the table and the geometries."""
    _require_key(rows, key, "attribute table")
    _require_key(geometries, key, "geometry")

    row_keys = set(_key_strings(rows[key]).dropna())
    geo_keys = set(_key_strings(geometries[key]).dropna())

    return JoinSummary(
        matched=len(row_keys & geo_keys),
        unmatched_rows=tuple(sorted(str(k) for k in row_keys - geo_keys)),
        unmatched_geometries=tuple(sorted(str(k) for k in geo_keys - row_keys)),
    )


def join_attributes(
    rows: pd.DataFrame,
    geometries: gpd.GeoDataFrame,
    attributes: Iterable[str],
    key: str = DEFAULT_REGION_KEY,
) -> gpd.GeoDataFrame:
    """
    Attach parsed attribute values to geometry records by region name.

    Args:
        rows: Attribute table, one row per region
        geometries: Boundary records with the same region key column
        attributes: Attribute names to attach
        key: Name of the region key column in both inputs

    Returns:
        New GeoDataFrame with one float column per attribute
    """
    attributes = list(attributes)
    _require_key(rows, key, "attribute table")
    _require_key(geometries, key, "geometry")

    logger.info(f"🔗 Joining {len(rows)} attribute rows onto {len(geometries)} geometries...")

    parsed = parse_attribute_values(rows, attributes)
    parsed = parsed[parsed[key].notna()].copy()
    parsed[key] = _key_strings(parsed[key])

    duplicates = parsed[key].duplicated(keep="last")
    if duplicates.any():
        logger.warning(
            f"  ⚠️ Duplicate region names in attribute table, keeping last: "
            f"{sorted(parsed.loc[duplicates, key].unique())}"
        )
        parsed = parsed[~duplicates]

    lookup = parsed.set_index(key)[attributes]

    # Existing properties that share an attribute's name are replaced, so
    # unmatched geometries end up with no data rather than stale values.
    joined = geometries.copy()
    geo_keys = _key_strings(joined[key])
    for attr in attributes:
        joined[attr] = geo_keys.map(lookup[attr]).astype(float)

    summary = summarize_join(parsed, geometries, key)
    logger.debug(f"     Matched regions: {summary.matched}")
    if summary.unmatched_rows:
        logger.debug(f"     Rows without geometry (dropped): {list(summary.unmatched_rows)}")
    if summary.unmatched_geometries:
        logger.debug(f"     Geometries without data: {list(summary.unmatched_geometries)}")

    logger.success(f"  ✅ Joined attributes for {summary.matched}/{len(geometries)} regions")
    return joined
