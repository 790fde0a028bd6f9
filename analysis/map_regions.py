#!/usr/bin/env python3
"""
Regional Statistics Choropleth and Bar Chart

Draws the joined regional statistics as:
- an interactive Folium choropleth with one selectable layer per attribute
  (the layer control acts as the attribute selector), tooltips showing each
  region's formatted value, and a legend of natural-breaks classes
- a bar chart per attribute, regions sorted ascending and coloured with the
  same classification as the map
- a web-ready GeoJSON of the joined records

Everything here only reads MapState; colours and labels come from
processing.classify.
"""

import html
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import folium
import geopandas as gpd
import matplotlib.pyplot as plt
import pandas as pd
from loguru import logger

from processing.attributes import AttributeDefinition
from processing.classify import color_for_value, format_value, is_missing
from processing.data_utils import ensure_output_directory, validate_and_reproject_to_wgs84
from processing.state import MapState

FILL_COLUMN = "fill_color"
LABEL_COLUMN = "display_value"


def chart_value_range(definition: AttributeDefinition, values: Sequence[float]) -> Tuple[float, float]:
    """Bar chart y-axis domain: 0-1 for percentage attributes, 0-max otherwise."""
    if definition.is_percentage:
        return 0.0, 1.0

    finite = [float(v) for v in values if not is_missing(v)]
    if not finite or max(finite) <= 0:
        return 0.0, 1.0
    return 0.0, max(finite)


def sort_for_chart(records: pd.DataFrame, attribute: str) -> pd.DataFrame:
    """Records in ascending order of ``attribute``, regions without data last."""
    return records.sort_values(attribute, ascending=True, na_position="last", kind="stable")


def styled_records(state: MapState) -> gpd.GeoDataFrame:
    """Region key, geometry, fill colour and display text for the expressed attribute."""
    styled = state.records[[state.key, "geometry"]].copy()
    styled[FILL_COLUMN] = state.colors()
    styled[LABEL_COLUMN] = state.labels()
    styled[state.key] = styled[state.key].astype(str)
    return styled


def create_bar_chart(
    state: MapState,
    output_path: Path,
    dpi: int = 150,
    figsize: Tuple[float, float] = (10, 6),
) -> Path:
    """
    Save a bar chart of the expressed attribute, one bar per region.

    Args:
        state: Current map state
        output_path: PNG file to write
        dpi: Output resolution
        figsize: Figure size in inches

    Returns:
        Path of the written chart
    """
    attribute = state.expressed
    definition = state.definition
    logger.info(f"📊 Creating bar chart for {definition.label}...")

    ordered = sort_for_chart(state.records, attribute)
    values = ordered[attribute].tolist()
    heights = [0.0 if is_missing(v) else float(v) for v in values]
    colors = [color_for_value(state.classification, v) for v in values]
    labels = [format_value(v, definition.is_percentage) for v in values]

    fig, ax = plt.subplots(figsize=figsize, dpi=dpi)
    positions = range(len(ordered))
    ax.bar(positions, heights, width=0.95, color=colors, edgecolor="none")

    _, ymax = chart_value_range(definition, values)
    ax.set_ylim(0, ymax * 1.08)

    for x, height, text in zip(positions, heights, labels):
        ax.text(x, height, text, ha="center", va="bottom", fontsize=7, color="#333333")

    ax.set_xticks(list(positions))
    ax.set_xticklabels(ordered[state.key].astype(str).tolist(), rotation=60, ha="right", fontsize=8)
    ax.set_title(definition.label, loc="left", fontsize=14, fontweight="bold")

    for spine in ("top", "right"):
        ax.spines[spine].set_visible(False)
    ax.tick_params(axis="y", labelsize=8, colors="#333333")

    output_path = ensure_output_directory(output_path)
    fig.tight_layout()
    fig.savefig(output_path, dpi=dpi, facecolor="white", edgecolor="none")
    plt.close(fig)

    logger.success(f"  ✅ Bar chart saved: {output_path}")
    return output_path


def legend_html(state: MapState) -> str:
    """HTML block with one swatch per class plus the no-data swatch."""
    rows = []
    for color, text in zip(state.classification.colors, state.legend()):
        rows.append(
            f'<div><span style="display:inline-block;width:28px;height:12px;'
            f'background:{color};margin-right:6px;"></span>{text}</div>'
        )
    rows.append(
        f'<div><span style="display:inline-block;width:28px;height:12px;'
        f'background:{state.classification.no_data_color};margin-right:6px;"></span>No Data</div>'
    )
    return (
        f'<div style="margin-bottom:8px;"><b>{state.definition.label}</b>'
        f'{"".join(rows)}</div>'
    )


def create_interactive_map(
    states: Sequence[MapState],
    output_path: Path,
    title: str = "Regional Statistics",
    tiles: str = "CartoDB Positron",
    zoom_start: int = 5,
    fill_opacity: float = 0.8,
) -> Path:
    """
    Create the interactive choropleth with one radio-selectable layer per state.

    Args:
        states: One MapState per attribute; the first is shown on load
        output_path: HTML file to write
        title: Heading shown above the map
        tiles: Folium tile set
        zoom_start: Initial zoom level
        fill_opacity: Polygon fill opacity

    Returns:
        Path of the written HTML file
    """
    if not states:
        raise ValueError("At least one map state is needed to draw the map")

    logger.info("🗺️ Creating interactive choropleth map...")

    first = validate_and_reproject_to_wgs84(states[0].records, "region records")
    bounds = first.total_bounds
    center = [(bounds[1] + bounds[3]) / 2, (bounds[0] + bounds[2]) / 2]
    logger.debug(f"     Map center: {center[0]:.4f}, {center[1]:.4f}")

    m = folium.Map(location=center, zoom_start=zoom_start, tiles=tiles, prefer_canvas=True)

    for index, state in enumerate(states):
        styled = validate_and_reproject_to_wgs84(styled_records(state), state.expressed)
        layer = folium.FeatureGroup(name=state.definition.label, overlay=False, show=index == 0)

        folium.GeoJson(
            data=styled.__geo_interface__,
            name=state.definition.label,
            style_function=lambda feature, opacity=fill_opacity: {
                "fillColor": feature["properties"][FILL_COLUMN],
                "color": "#000000",
                "weight": 0.5,
                "fillOpacity": opacity,
            },
            highlight_function=lambda feature: {"color": "yellow", "weight": 2.0},
            tooltip=folium.GeoJsonTooltip(
                fields=[state.key, LABEL_COLUMN],
                aliases=["Region:", f"{state.definition.label}:"],
                localize=True,
                sticky=True,
                labels=True,
            ),
        ).add_to(layer)

        layer.add_to(m)
        logger.debug(f"     Added layer: {state.definition.label}")

    folium.LayerControl(collapsed=False).add_to(m)

    title_html = f"""
    <h3 align="center" style="font-size:20px; color: #333333; margin-top:10px;">
    <b>{title}</b>
    </h3>
    """
    m.get_root().html.add_child(folium.Element(title_html))

    legend_divs = "".join(
        f'<div class="attribute-legend" data-layer="{html.escape(state.definition.label, quote=True)}"'
        f' style="display:{"block" if index == 0 else "none"};">{legend_html(state)}</div>'
        for index, state in enumerate(states)
    )
    legend_box = f"""
    <div style="position: fixed; bottom: 30px; left: 30px; z-index: 9999;
                background-color: white; padding: 10px; border: 1px solid #999999;
                font-family: Arial, sans-serif; font-size: 12px;">
    {legend_divs}
    </div>
    <script>
    window.addEventListener("load", function() {{
        {m.get_name()}.on("baselayerchange", function(e) {{
            document.querySelectorAll(".attribute-legend").forEach(function(el) {{
                el.style.display = el.dataset.layer === e.name ? "block" : "none";
            }});
        }});
    }});
    </script>
    """
    m.get_root().html.add_child(folium.Element(legend_box))
    m.fit_bounds([[bounds[1], bounds[0]], [bounds[3], bounds[2]]])

    output_path = ensure_output_directory(output_path)
    m.save(str(output_path))
    logger.success(f"  ✅ Interactive choropleth map saved: {output_path}")
    return output_path


def export_web_geojson(state: MapState, output_path: Path, columns: Optional[List[str]] = None) -> Path:
    """
    Write the joined records as GeoJSON; missing values are written as null.

    Args:
        state: Map state holding the joined records
        output_path: GeoJSON file to write
        columns: Property columns to keep; defaults to the key plus every attribute

    Returns:
        Path of the written file
    """
    columns = columns or [state.key] + state.registry.names
    logger.info(f"💾 Exporting web GeoJSON: {output_path}")

    export = state.records[columns + ["geometry"]].copy()
    export = validate_and_reproject_to_wgs84(export, "web export")

    output_path = ensure_output_directory(output_path)
    if output_path.exists():
        output_path.unlink()
    export.to_file(output_path, driver="GeoJSON")

    logger.success(f"  ✅ Exported {len(export):,} regions to {output_path}")
    return output_path
