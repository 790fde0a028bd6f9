"""
Natural-breaks classification and value formatting for the choropleth.

Values of the expressed attribute are split into five classes with
Fisher-Jenks optimal breaks (minimum within-class variance). Each class is
represented by its smallest value; the first break is therefore the global
minimum and the remaining four are the thresholds of the colour scale:

    value <  b1        -> colors[0]
    b1 <= value < b2   -> colors[1]
    ...
    value >= b4        -> colors[4]

Missing values (NaN or infinite) never take part in the classification and
are always drawn with the neutral no-data colour.
"""

import math
from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import mapclassify
import numpy as np
from loguru import logger

N_CLASSES = 5

# ColorBrewer Purples, 5 classes
PURPLES_5 = ("#f2f0f7", "#cbc9e2", "#9e9ac8", "#756bb1", "#54278f")
NO_DATA_COLOR = "#CCC"
NO_DATA_LABEL = "No Data"


@dataclass(frozen=True)
class Classification:
    """Break boundaries and colour scale for one attribute's values."""

    attribute: Optional[str]
    breaks: Tuple[float, ...]
    colors: Tuple[str, ...] = PURPLES_5
    no_data_color: str = NO_DATA_COLOR

    @property
    def thresholds(self) -> Tuple[float, ...]:
        """Colour scale domain; the first break is below every value."""
        return self.breaks[1:]

    def color_for(self, value: Optional[float]) -> str:
        return color_for_value(self, value)


def is_missing(value: Optional[float]) -> bool:
    """True for None, NaN, infinities and anything that is not a number."""
    if value is None or isinstance(value, bool):
        return True
    try:
        return not math.isfinite(float(value))
    except (TypeError, ValueError):
        return True


def valid_values(values: Iterable[Optional[float]]) -> np.ndarray:
    """Sorted array of the finite values, missing entries removed."""
    kept = [float(v) for v in values if not is_missing(v)]
    return np.sort(np.asarray(kept, dtype=float))


def natural_breaks(values: Sequence[float], k: int = N_CLASSES) -> List[float]:
    """
    Compute ``k`` class minima with Fisher-Jenks natural breaks.

    Fewer than ``k`` distinct values is not an error: every distinct value
    becomes its own class and the result is padded with the largest value,
    so the sequence always has ``k`` non-decreasing entries.

    Args:
        values: Finite numeric values
        k: Number of classes

    Returns:
        List of ``k`` break values, the first being the minimum. Empty when
        ``values`` is empty.
    """
    y = np.sort(np.asarray(values, dtype=float))
    if y.size == 0:
        return []

    unique = np.unique(y)
    if unique.size <= k:
        logger.debug(f"     Only {unique.size} distinct value(s), one class per value")
        distinct = [float(v) for v in unique]
        return distinct + [distinct[-1]] * (k - len(distinct))

    classifier = mapclassify.FisherJenks(y, k=k)
    labels = np.asarray(classifier.yb)

    breaks: List[float] = []
    for cls in range(k):
        members = y[labels == cls]
        if members.size:
            breaks.append(float(members.min()))
        else:
            breaks.append(breaks[-1] if breaks else float(y[0]))

    # Empty middle classes reuse the previous minimum
    return [float(b) for b in np.maximum.accumulate(breaks)]


def classify(
    values: Iterable[Optional[float]],
    attribute: Optional[str] = None,
    k: int = N_CLASSES,
    colors: Sequence[str] = PURPLES_5,
    no_data_color: str = NO_DATA_COLOR,
) -> Classification:
    """
    Build the classification for one attribute's full set of values.

    Args:
        values: Every region's value for the attribute; missing entries allowed
        attribute: Attribute name, kept for reference
        k: Number of classes
        colors: One colour per class, lightest first
        no_data_color: Colour for missing values

    Returns:
        Classification with ``k`` breaks (none if every value is missing)
    """
    if len(colors) != k:
        raise ValueError(f"Need exactly {k} colours, got {len(colors)}")

    clean = valid_values(values)
    breaks = natural_breaks(clean, k)

    if breaks:
        logger.debug(f"  📊 Breaks for {attribute or 'values'}: {breaks}")
    else:
        logger.warning(f"  ⚠️ No valid values for {attribute or 'values'}, every region is no data")

    return Classification(
        attribute=attribute,
        breaks=tuple(breaks),
        colors=tuple(colors),
        no_data_color=no_data_color,
    )


def color_for_value(classification: Classification, value: Optional[float]) -> str:
    """Colour of ``value`` under ``classification``; neutral when missing."""
    if is_missing(value):
        return classification.no_data_color
    index = bisect_right(classification.thresholds, float(value))
    return classification.colors[min(index, len(classification.colors) - 1)]


def format_value(value: Optional[float], is_percentage: bool = False) -> str:
    """
    Display text for a single value.

    Percentage attributes are stored as fractions: 0.4321 -> "43.21".
    Other values keep their own precision: 1415550.0 -> "1415550",
    37.5 -> "37.5", 0.00001 -> "0.00001", 1e-07 -> "1e-7".
    """
    if is_missing(value):
        return NO_DATA_LABEL

    number = float(value)
    if is_percentage:
        return f"{number * 100:.2f}"
    if number.is_integer() and abs(number) < 1e21:
        return str(int(number))
    return _shortest_text(number)


def _shortest_text(number: float) -> str:
    """Shortest round-trip text; exponent form only below 1e-6 or from 1e21 up."""
    text = repr(number)
    if "e" not in text:
        return text
    mantissa, exponent = text.split("e")
    if -7 < int(exponent) < 21:
        return np.format_float_positional(number, trim="-")
    return f"{mantissa}e{int(exponent):+d}"


def break_labels(classification: Classification, is_percentage: bool = False) -> List[str]:
    """Legend text per class: "low-high" ranges, then ">= last" for the top class."""
    breaks = classification.breaks
    labels = []
    for i, low in enumerate(breaks):
        if i < len(breaks) - 1:
            labels.append(
                f"{format_value(low, is_percentage)}-{format_value(breaks[i + 1], is_percentage)}"
            )
        else:
            labels.append(f">= {format_value(low, is_percentage)}")
    return labels
