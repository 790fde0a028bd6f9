"""
Application state for the regional statistics map.

The expressed attribute lives on an explicit ``MapState`` rather than in a
module global. Both entry points are plain functions:

    state = on_data_ready(rows, geometries, registry)
    state = change_attribute(state, "Median_Age")

Each returns a new state with a freshly computed classification; the
previous state is left untouched.
"""

import threading
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence

import geopandas as gpd
import pandas as pd
from loguru import logger

from .attributes import AttributeDefinition, AttributeRegistry
from .classify import (
    N_CLASSES,
    NO_DATA_COLOR,
    PURPLES_5,
    Classification,
    break_labels,
    classify,
    color_for_value,
    format_value,
)
from .join import DEFAULT_REGION_KEY, join_attributes


@dataclass(frozen=True)
class ClassificationSettings:
    """Class count and colours used for every attribute."""

    k: int = N_CLASSES
    colors: Sequence[str] = PURPLES_5
    no_data_color: str = NO_DATA_COLOR


@dataclass(frozen=True, eq=False)
class MapState:
    """Joined region records plus the classification of the expressed attribute."""

    records: gpd.GeoDataFrame
    registry: AttributeRegistry
    expressed: str
    classification: Classification
    key: str = DEFAULT_REGION_KEY
    settings: ClassificationSettings = field(default_factory=ClassificationSettings)

    @property
    def definition(self) -> AttributeDefinition:
        return self.registry.get(self.expressed)

    @property
    def values(self) -> pd.Series:
        return self.records[self.expressed]

    def colors(self) -> List[str]:
        """Fill colour for every record, in record order."""
        return [color_for_value(self.classification, v) for v in self.values]

    def labels(self) -> List[str]:
        """Formatted value for every record, in record order."""
        pct = self.definition.is_percentage
        return [format_value(v, pct) for v in self.values]

    def legend(self) -> List[str]:
        return break_labels(self.classification, self.definition.is_percentage)


def classify_attribute(
    records: pd.DataFrame,
    attribute: str,
    settings: Optional[ClassificationSettings] = None,
) -> Classification:
    """Classification of one attribute over every record, recomputed from scratch."""
    settings = settings or ClassificationSettings()
    return classify(
        records[attribute].tolist(),
        attribute=attribute,
        k=settings.k,
        colors=settings.colors,
        no_data_color=settings.no_data_color,
    )


def on_data_ready(
    rows: pd.DataFrame,
    geometries: gpd.GeoDataFrame,
    registry: AttributeRegistry,
    key: str = DEFAULT_REGION_KEY,
    expressed: Optional[str] = None,
    settings: Optional[ClassificationSettings] = None,
) -> MapState:
    """
    Join both datasets and classify the initially expressed attribute.

    Args:
        rows: Attribute table with raw values
        geometries: Region boundaries
        registry: Selectable attributes
        key: Region key column shared by both inputs
        expressed: Initial attribute; defaults to the registry's first
        settings: Class count and colours

    Returns:
        The initial MapState
    """
    settings = settings or ClassificationSettings()
    expressed = expressed or registry.initial
    registry.get(expressed)

    records = join_attributes(rows, geometries, registry.names, key=key)
    classification = classify_attribute(records, expressed, settings)
    logger.info(f"🎨 Expressing '{registry.label(expressed)}'")

    return MapState(
        records=records,
        registry=registry,
        expressed=expressed,
        classification=classification,
        key=key,
        settings=settings,
    )


def change_attribute(state: MapState, attribute: str) -> MapState:
    """Return a new state expressing ``attribute`` with a rebuilt classification."""
    state.registry.get(attribute)
    classification = classify_attribute(state.records, attribute, state.settings)
    logger.info(f"🎨 Expressing '{state.registry.label(attribute)}'")
    return replace(state, expressed=attribute, classification=classification)


class MapSession:
    """
    Holds the current state and applies attribute selections in call order.

    Every selection recomputes the classification before the new state is
    published, so ``current`` never pairs an attribute with a classification
    computed for another one.
    """

    def __init__(self, state: MapState):
        self._state = state
        self._lock = threading.Lock()

    @property
    def current(self) -> MapState:
        return self._state

    def select(self, attribute: str) -> MapState:
        with self._lock:
            self._state = change_attribute(self._state, attribute)
            return self._state
