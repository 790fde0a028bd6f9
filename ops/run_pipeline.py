#!/usr/bin/env python3
"""
Regional Statistics Map Pipeline with Click CLI

Loads the regional statistics table and boundary file, joins them, classifies
every attribute with natural breaks and writes the interactive map, the bar
charts and a web GeoJSON. Configuration values can be overridden on the
command line instead of editing config.yaml.

Usage:
    python -m ops.run_pipeline [OPTIONS] [COMMAND]

    # Full run with the defaults from ops/config.yaml:
    python -m ops.run_pipeline

    # Open the map on another attribute:
    python -m ops.run_pipeline --attribute Median_Age

    # Different input files:
    python -m ops.run_pipeline --regions-csv data/other.csv --regions-geo data/other.geojson

    # Inspect the breaks of one attribute:
    python -m ops.run_pipeline breaks Unemployment

    # Verbose logging:
    python -m ops.run_pipeline --verbose
"""

import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click
from click import exceptions as click_exceptions
from loguru import logger

from analysis.map_regions import create_bar_chart, create_interactive_map, export_web_geojson
from ops.config_loader import Config
from processing.attributes import AttributeRegistry
from processing.classify import break_labels
from processing.data_utils import load_region_data
from processing.state import ClassificationSettings, MapSession, MapState, on_data_ready


class ConfigContext:
    """Click context object holding the config file and its overrides."""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file
        self.overrides: Dict[str, Any] = {}
        self.config: Optional[Config] = None
        self.kwargs: Dict[str, Any] = {}

    def add_override(self, key: str, value: Any):
        """Add config override using dot notation."""
        self.overrides[key] = value
        logger.debug(f"Added override: {key} = {value}")

    def get_config(self) -> Config:
        """Get config with overrides applied."""
        config = Config(self.config_file)
        for key, value in self.overrides.items():
            config.set(key, value)
        return config


# Custom Click types for better validation
class ConfigOverride(click.ParamType):
    """Custom parameter type for config overrides."""

    name = "config_override"

    def convert(self, value, param, ctx) -> Tuple[str, Any]:
        if "=" not in value:
            self.fail(f"Invalid format: {value}. Use KEY=VALUE", param, ctx)

        key, val = value.split("=", 1)

        # Auto-parse value type
        if val.lower() in ("true", "false"):
            parsed_val: Any = val.lower() == "true"
        elif val.isdigit():
            parsed_val = int(val)
        elif "." in val and val.replace(".", "", 1).isdigit():
            parsed_val = float(val)
        else:
            parsed_val = val

        return key, parsed_val


def build_registry(config: Config) -> AttributeRegistry:
    """Attribute registry from config.yaml, falling back to the built-in set."""
    return AttributeRegistry.from_config(config.get_attribute_entries())


def build_settings(config: Config) -> ClassificationSettings:
    """Classification settings from config.yaml."""
    return ClassificationSettings(
        k=int(config.get_classification_setting("classes")),
        colors=tuple(config.get_classification_setting("colors")),
        no_data_color=config.get_classification_setting("no_data_color"),
    )


def load_state(config: Config, expressed: Optional[str] = None) -> MapState:
    """Load both datasets, then join and classify the initial attribute."""
    key = config.get_column_name("region_key")
    rows, geometries = load_region_data(
        config.get_input_path("regions_csv"),
        config.get_input_path("regions_geo"),
        key,
        layer=config.get("input_files.regions_layer"),
    )
    return on_data_ready(
        rows,
        geometries,
        build_registry(config),
        key=key,
        expressed=expressed,
        settings=build_settings(config),
    )


def render_outputs(
    config: Config, state: MapState, skip_charts: bool = False, skip_geojson: bool = False
) -> List[Path]:
    """
    Write the map, charts and GeoJSON for every attribute.

    The initially expressed attribute's layer is shown first on the map.

    Returns:
        Paths of every file written
    """
    session = MapSession(state)
    order = [state.expressed] + [n for n in state.registry.names if n != state.expressed]

    states = []
    for attribute in order:
        states.append(session.select(attribute))

    written: List[Path] = []
    written.append(
        create_interactive_map(
            states,
            config.get_map_html_path(),
            title=config.get("project_name"),
            tiles=config.get_visualization_setting("tiles"),
            zoom_start=config.get_visualization_setting("zoom_start"),
            fill_opacity=config.get_visualization_setting("fill_opacity"),
        )
    )

    if not skip_charts:
        figsize = (
            config.get_visualization_setting("chart_width"),
            config.get_visualization_setting("chart_height"),
        )
        for attr_state in states:
            written.append(
                create_bar_chart(
                    attr_state,
                    config.get_chart_path(attr_state.expressed),
                    dpi=config.get_visualization_setting("chart_dpi"),
                    figsize=figsize,
                )
            )
    else:
        logger.info("⏭️ Skipping bar charts")

    if not skip_geojson:
        written.append(export_web_geojson(state, config.get_web_geojson_path()))
    else:
        logger.info("⏭️ Skipping GeoJSON export")

    return written


# Main CLI group
@click.group(invoke_without_command=True)
@click.option("--dry-run", is_flag=True, help="Show what would be run without executing")
@click.option("--attribute", type=str, help="Attribute expressed when the map opens")
@click.option("--skip-charts", is_flag=True, help="Skip bar chart generation")
@click.option("--skip-geojson", is_flag=True, help="Skip web GeoJSON export")
@click.option(
    "--config-file", type=click.Path(exists=True, dir_okay=False), help="Path to config.yaml"
)
@click.option(
    "--regions-csv", type=click.Path(exists=False), help="Override statistics CSV file path"
)
@click.option(
    "--regions-geo", type=click.Path(exists=False), help="Override boundary file path"
)
@click.option(
    "--config",
    "config_overrides",
    multiple=True,
    type=ConfigOverride(),
    help="Set config values using dot notation (e.g., classification.no_data_color=#999)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG level logging")
@click.option(
    "--trace", is_flag=True, help="Enable TRACE level logging for deep debugging (maximum detail)"
)
@click.option("--log-file", type=str, help="Also log to specified file")
@click.pass_context
def cli(ctx, **kwargs):
    """
    Regional Statistics Map Pipeline

    Join regional statistics to boundaries, classify each attribute with
    natural breaks and render the choropleth map and bar charts.

    \b
    Examples:
      python -m ops.run_pipeline                                  # Full run
      python -m ops.run_pipeline --attribute Median_Age           # Open on another attribute
      python -m ops.run_pipeline --skip-charts                    # Map and GeoJSON only
      python -m ops.run_pipeline --config columns.region_key=NAME # Override any config value
      python -m ops.run_pipeline breaks Unemployment              # Print class breaks
      python -m ops.run_pipeline attributes                       # List attributes
    """
    setup_logging(verbose=kwargs.get("verbose", False), enable_trace=kwargs.get("trace", False))

    if kwargs.get("log_file"):
        log_file = kwargs["log_file"]
        log_level = (
            "TRACE" if kwargs.get("trace") else ("DEBUG" if kwargs.get("verbose") else "INFO")
        )
        logger.add(
            log_file,
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
        )
        logger.info(f"📄 Also logging to file: {log_file}")

    logger.info("🗺️ Regional Statistics Map Pipeline")
    logger.debug(f"🔧 CLI arguments received: {kwargs}")

    config_ctx = ConfigContext(kwargs.get("config_file"))
    ctx.obj = config_ctx

    if kwargs.get("regions_csv"):
        config_ctx.add_override("input_files.regions_csv", kwargs["regions_csv"])
    if kwargs.get("regions_geo"):
        config_ctx.add_override("input_files.regions_geo", kwargs["regions_geo"])
        # An explicit boundary file is read as a single layer
        config_ctx.add_override("input_files.regions_layer", None)

    for key, value in kwargs["config_overrides"]:
        config_ctx.add_override(key, value)

    try:
        config = config_ctx.get_config()
        logger.info(f"📋 Project: {config.get('project_name')}")
        config.print_config_summary()
    except Exception as e:
        logger.critical(f"Configuration error: {e}")
        logger.info("💡 Make sure config.yaml exists and is valid")
        ctx.exit(1)

    ctx.obj.config = config
    ctx.obj.kwargs = kwargs

    if ctx.invoked_subcommand is None:
        ctx.invoke(render)


@cli.command()
@click.pass_context
def render(ctx):
    """Load, join, classify and write the map, charts and GeoJSON."""
    config = ctx.obj.config
    kwargs = ctx.obj.kwargs

    try:
        if kwargs["dry_run"]:
            show_dry_run_info(config, kwargs)
            return

        total_start = time.time()
        state = load_state(config, kwargs.get("attribute"))
        written = render_outputs(
            config,
            state,
            skip_charts=kwargs["skip_charts"],
            skip_geojson=kwargs["skip_geojson"],
        )

        total_elapsed = time.time() - total_start
        logger.info("=" * 60)
        logger.success("🎉 PIPELINE COMPLETE")
        logger.info("=" * 60)
        for path in written:
            logger.info(f"   📄 {path}")
        logger.info(f"⏱️ Total time: {total_elapsed:.1f}s")

    except click_exceptions.Exit:
        raise
    except Exception as e:
        handle_critical_error(e, "Pipeline execution")
        ctx.exit(1)


@cli.command()
@click.argument("attribute")
@click.pass_context
def breaks(ctx, attribute):
    """Print the natural-breaks classes of ATTRIBUTE."""
    config = ctx.obj.config
    try:
        state = load_state(config, attribute)
    except Exception as e:
        handle_critical_error(e, f"Classifying {attribute}")
        ctx.exit(1)

    definition = state.definition
    click.echo(definition.label)
    for color, label in zip(
        state.classification.colors,
        break_labels(state.classification, definition.is_percentage),
    ):
        click.echo(f"  {color}  {label}")

    missing = int(state.values.isna().sum())
    if missing:
        click.echo(f"  {state.classification.no_data_color}  No Data ({missing} regions)")


@cli.command()
@click.pass_context
def attributes(ctx):
    """List the selectable attributes."""
    registry = build_registry(ctx.obj.config)
    for definition in registry:
        suffix = " (percentage)" if definition.is_percentage else ""
        click.echo(f"{definition.name}: {definition.label}{suffix}")


def show_dry_run_info(config: Config, kwargs: Dict):
    """Show dry run information."""
    logger.info("🔍 DRY RUN MODE - Nothing will be written")
    logger.info("=" * 60)

    logger.info("Configuration Summary:")
    logger.info(f"  📋 Project: {config.get('project_name')}")

    for file_key in ("regions_csv", "regions_geo"):
        try:
            path = config.get_input_path(file_key)
            logger.info(f"  📄 {file_key}: {path} {'✅' if path.exists() else '❌'}")
        except ValueError as e:
            logger.warning(f"Could not resolve {file_key}: {e}")

    registry = build_registry(config)
    expressed = kwargs.get("attribute") or registry.initial
    logger.info(f"  🎨 Initial attribute: {expressed}")

    logger.info("Outputs that would be written:")
    logger.info(f"  1. Interactive map: {config.get('output_files.map_html')}")
    step = 2
    if not kwargs["skip_charts"]:
        logger.info(f"  {step}. Bar charts for {len(registry)} attributes")
        step += 1
    if not kwargs["skip_geojson"]:
        logger.info(f"  {step}. Web GeoJSON: {config.get('output_files.web_geojson')}")


def setup_logging(verbose: bool = False, enable_trace: bool = False) -> None:
    """
    Configure loguru logging with appropriate levels.

    Args:
        verbose: If True, set log level to DEBUG
        enable_trace: If True, enable TRACE level logging for deep debugging
    """
    logger.remove()

    if enable_trace:
        log_level = "TRACE"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    elif verbose:
        log_level = "DEBUG"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    else:
        log_level = "INFO"
        log_format = (
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
        )

    logger.add(
        sys.stderr,
        format=log_format,
        level=log_level,
        colorize=True,
        backtrace=enable_trace,
        diagnose=enable_trace,
    )

    os.environ["LOGURU_LEVEL"] = log_level

    if verbose:
        logger.debug("🔧 Verbose logging enabled (DEBUG level)")
    if enable_trace:
        logger.trace("🔍 Trace logging enabled - maximum detail mode")

    logger.success("📋 Logging system initialized")


def handle_critical_error(error: Exception, context: str = "") -> None:
    """
    Handle critical errors with optional trace logging.

    Args:
        error: The exception that occurred
        context: Additional context about where the error occurred
    """
    current_level = os.environ.get("LOGURU_LEVEL", "INFO")
    enable_trace = current_level == "TRACE"

    if enable_trace:
        logger.trace("💥 TRACE MODE: Analyzing critical error with full context")
        logger.trace(f"Error context: {context}")
        logger.trace(f"Error type: {type(error).__name__}")
        logger.trace(f"Error args: {error.args}")

        import traceback

        logger.trace("Full traceback:")
        logger.trace(traceback.format_exc())

    logger.critical(f"💥 CRITICAL ERROR: {context}")
    logger.critical(f"Exception: {type(error).__name__}: {error}")

    if not enable_trace:
        logger.info("💡 For detailed debugging, run with --trace flag")


if __name__ == "__main__":
    cli()
