"""Shared fixtures: a small New Zealand sample and a throwaway project directory."""

import sys
from pathlib import Path

import geopandas as gpd
import matplotlib
import pandas as pd
import pytest
import yaml
from loguru import logger
from shapely.geometry import box

matplotlib.use("Agg")

from processing.attributes import AttributeRegistry  # noqa: E402

KEY = "REGC2017_N"

SAMPLE_ROWS = [
    # name, Population, Unemployment, Median_Income, Median_Age, Pct_Native
    ("Northland Region", "151689", "0.081", "22700", "43.0", "0.323"),
    ("Auckland Region", "1415550", "0.054", "29600", "35.1", "0.107"),
    ("Waikato Region", "403638", "0.062", "27400", "37.6", "0.213"),
    ("Bay of Plenty Region", "267741", "0.066", "25800", "41.0", "0.278"),
    ("Gisborne Region", "43653", "0.089", "24400", "37.9", "0.488"),
    ("Taranaki Region", "109608", "0.049", "28200", "40.1", "0.173"),
    ("Wellington Region", "471315", "0.055", "32700", "37.8", "0.124"),
    ("Canterbury Region", "539436", "0.035", "29900", "40.0", "0.081"),
    ("Otago Region", "202470", "N/A", "26000", "40.2", "0.067"),
]


def _sample_table() -> pd.DataFrame:
    return pd.DataFrame(
        SAMPLE_ROWS,
        columns=[KEY, "Population", "Unemployment", "Median_Income", "Median_Age", "Pct_Native"],
    )


def _sample_geometries() -> gpd.GeoDataFrame:
    names = [row[0] for row in SAMPLE_ROWS] + ["Area Outside Region"]
    geometries = [box(170 + i, -46 + i * 0.5, 171 + i, -45.5 + i * 0.5) for i in range(len(names))]
    return gpd.GeoDataFrame({KEY: names, "LAND_AREA": range(len(names))}, geometry=geometries, crs="EPSG:4326")


@pytest.fixture
def regions_table() -> pd.DataFrame:
    """Raw statistics rows, values kept as strings like a CSV read."""
    return _sample_table()


@pytest.fixture
def region_geometries() -> gpd.GeoDataFrame:
    """One box per region plus a boundary with no statistics row."""
    return _sample_geometries()


@pytest.fixture
def registry() -> AttributeRegistry:
    return AttributeRegistry.default()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Project root with config.yaml, a statistics CSV and a GeoJSON boundary file."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (tmp_path / "pyproject.toml").write_text("")

    _sample_table().to_csv(data_dir / "stats.csv", index=False)
    _sample_geometries().to_file(data_dir / "regions.geojson", driver="GeoJSON")

    config = {
        "project_name": "Test Regions",
        "input_files": {
            "regions_csv": "data/stats.csv",
            "regions_geo": "data/regions.geojson",
        },
        "columns": {"region_key": KEY},
        "directories": {
            "html": "out/html",
            "maps": "out/maps",
            "geospatial": "out/geospatial",
        },
    }
    with open(tmp_path / "config.yaml", "w") as f:
        yaml.safe_dump(config, f)

    return tmp_path


@pytest.fixture(autouse=True)
def reset_logging():
    """The CLI replaces loguru sinks; put a quiet one back after each test."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="WARNING")
