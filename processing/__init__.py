"""
Processing package for the Regional Statistics Map

This package contains the data loading, join and classification steps that
turn a statistics table and a boundary file into coloured region records.
"""

__version__ = "0.1.0"

# Import key utilities for easy access
from .attributes import AttributeDefinition, AttributeRegistry, UnknownAttributeError
from .classify import (
    Classification,
    break_labels,
    classify,
    color_for_value,
    format_value,
)
from .join import JoinKeyError, JoinSummary, join_attributes, summarize_join
from .state import MapSession, MapState, change_attribute, on_data_ready

__all__ = [
    "AttributeDefinition",
    "AttributeRegistry",
    "UnknownAttributeError",
    "Classification",
    "classify",
    "color_for_value",
    "format_value",
    "break_labels",
    "JoinKeyError",
    "JoinSummary",
    "join_attributes",
    "summarize_join",
    "MapState",
    "MapSession",
    "on_data_ready",
    "change_attribute",
]
