"""
Configuration Loader for the Regional Statistics Map Pipeline

This module provides a centralized way to load and access configuration
settings from the config.yaml file.

Usage:
    from ops.config_loader import Config

    config = Config()
    stats_csv = config.get_input_path('regions_csv')
    html_dir = config.get_output_dir('html')
    key = config.get_column_name('region_key')
"""

import os
import pathlib
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml  # type: ignore[import-untyped]
from loguru import logger

OPS_DIR = Path(__file__).parent


class Config:
    """Configuration manager for the regional statistics map pipeline."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        "project_name": "Regional Statistics Map",
        "columns": {
            "region_key": "REGC2017_N",
        },
        "input_files": {
            "regions_layer": None,
        },
        "classification": {
            "classes": 5,
            "colors": ["#f2f0f7", "#cbc9e2", "#9e9ac8", "#756bb1", "#54278f"],
            "no_data_color": "#CCC",
        },
        "directories": {
            "html": "html",
            "maps": "data/maps",
            "geospatial": "data/geospatial",
        },
        "output_files": {
            "map_html": "regional_statistics.html",
            "web_geojson": "regional_statistics.geojson",
            "chart_suffix": "_chart.png",
        },
        "visualization": {
            "tiles": "CartoDB Positron",
            "zoom_start": 5,
            "chart_dpi": 150,
            "chart_width": 10,
            "chart_height": 6,
            "fill_opacity": 0.8,
        },
    }

    def __init__(
        self,
        config_file: Optional[str] = None,
        project_root_override: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to config file. If None, looks for:
                        1. Environment variable PIPELINE_CONFIG_PATH
                        2. config.yaml in current directory
                        3. config.yaml next to this module (ops/config.yaml)
            project_root_override: Override project root detection (useful for tests)
        """
        if config_file is None:
            env_config = os.environ.get("PIPELINE_CONFIG_PATH")
            if env_config and Path(env_config).exists():
                config_file = env_config
                logger.debug(f"Using config from environment: {config_file}")
            elif Path("config.yaml").exists():
                config_file = "config.yaml"
            elif (OPS_DIR / "config.yaml").exists():
                config_file = str(OPS_DIR / "config.yaml")
                logger.debug("Using ops/config.yaml")
            else:
                raise FileNotFoundError(
                    "No config.yaml found. Check current directory or set PIPELINE_CONFIG_PATH"
                )

        self.config_path = Path(config_file).resolve()
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        if project_root_override:
            self.project_root = Path(project_root_override).resolve()
            logger.debug(f"Using project root override: {self.project_root}")
        else:
            self.project_root = self._find_project_root()

        logger.debug(f"Loading config from: {self.config_path}")
        logger.debug(f"Project root: {self.project_root}")

        with open(self.config_path, "r") as f:
            self.data: Dict[str, Any] = yaml.safe_load(f) or {}

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation with intelligent defaults.

        Args:
            key_path: Dot-separated path to the configuration value
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key_path.split(".")

        # Try to get from config first
        value: Any = self.data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                value = None
                break

        # If not found in config, try defaults
        if value is None:
            value = self.DEFAULTS
            for key in keys:
                if isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    return default
            if value is None:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set a value in memory using dot notation (CLI overrides)."""
        keys = key_path.split(".")
        current = self.data
        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        current[keys[-1]] = value
        logger.debug(f"Config override: {key_path} = {value}")

    def get_input_path(self, filename_key: str) -> pathlib.Path:
        """
        Get full path to an input file. The path is taken directly from config.yaml
        and joined with the project root.

        Args:
            filename_key: Key for the filename in input_files

        Returns:
            Full absolute path to the input file
        """
        relative_path_str = self.data.get("input_files", {}).get(filename_key)
        if not relative_path_str:
            raise ValueError(
                f"Input filename key '{filename_key}' not found in config: input_files"
            )

        return self.project_root / relative_path_str

    def get_output_dir(self, dir_key: str) -> pathlib.Path:
        """
        Get full path to an output directory, creating it if needed.

        Args:
            dir_key: Directory key ('html', 'maps', 'geospatial')

        Returns:
            Full path to the directory
        """
        relative = self.get(f"directories.{dir_key}")
        if not relative:
            raise ValueError(f"Unknown directory key: {dir_key}")

        directory = self.project_root / relative
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def get_column_name(self, column_key: str) -> str:
        """Get column name with intelligent defaults."""
        result = self.get(f"columns.{column_key}")
        if isinstance(result, str):
            return result
        raise ValueError(f"Column name not found or not a string: {column_key}")

    def get_classification_setting(self, setting_key: str) -> Any:
        """Get classification setting with intelligent defaults."""
        return self.get(f"classification.{setting_key}")

    def get_visualization_setting(self, setting_key: str) -> Any:
        """Get visualization setting with intelligent defaults."""
        return self.get(f"visualization.{setting_key}")

    def get_attribute_entries(self) -> List[Dict[str, Any]]:
        """Attribute definitions listed in config.yaml (empty for the built-in set)."""
        entries = self.data.get("attributes") or []
        if not isinstance(entries, list):
            raise ValueError("'attributes' must be a list of {name, label, percentage} entries")
        return entries

    # Convenience methods for derived files
    def get_map_html_path(self) -> pathlib.Path:
        """Get path to the interactive map HTML file."""
        return self.get_output_dir("html") / self.get("output_files.map_html")

    def get_web_geojson_path(self) -> pathlib.Path:
        """Get path to the joined web-ready GeoJSON file."""
        return self.get_output_dir("geospatial") / self.get("output_files.web_geojson")

    def get_chart_path(self, attribute: str) -> pathlib.Path:
        """Get path to the bar chart image for one attribute."""
        filename = f"{attribute.lower()}{self.get('output_files.chart_suffix')}"
        return self.get_output_dir("maps") / filename

    def validate_input_files(self) -> Dict[str, bool]:
        """Validate that input files exist."""
        results: Dict[str, bool] = {}
        input_files = self.data.get("input_files", {})

        for filename_key, value in input_files.items():
            if filename_key.endswith("_layer") or not value:
                continue
            results[filename_key] = self.get_input_path(filename_key).exists()

        return results

    def print_config_summary(self) -> None:
        """Log a summary of the current configuration."""
        logger.debug("📋 Configuration Summary")
        logger.debug("=" * 50)
        logger.debug(f"Project: {self.get('project_name', 'Unknown')}")
        logger.debug(f"Config file: {self.config_path}")
        logger.debug(f"Project root: {self.project_root}")

        logger.debug("📊 Input Files:")
        for file_key, exists in self.validate_input_files().items():
            status = "✅" if exists else "❌"
            logger.debug(f"  {status} {file_key}")

    def _find_project_root(self) -> Path:
        """Find the project root directory by looking for characteristic files/directories."""
        current = self.config_path.parent

        project_markers = ["ops", "processing", "data", "pyproject.toml", ".git"]

        for _ in range(5):  # Limit to 5 levels up
            markers_found = sum(1 for marker in project_markers if (current / marker).exists())

            if markers_found >= 2:
                return current

            parent = current.parent
            if parent == current:
                break
            current = parent

        # Fallback: if config is in ops/, project root is parent
        if self.config_path.parent.name == "ops":
            return self.config_path.parent.parent

        logger.warning(
            f"Could not reliably detect project root, using config directory: {self.config_path.parent}"
        )
        return self.config_path.parent


# Convenience function for easy importing
def load_config(config_file: Optional[str] = None) -> Config:
    """
    Load configuration from file.

    Args:
        config_file: Path to configuration file

    Returns:
        Config instance
    """
    return Config(config_file)
