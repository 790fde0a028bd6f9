"""
Attribute registry for the regional statistics map.

Tracks the selectable attributes, their display labels and whether their
values are stored as fractions that should be shown as percentages.

Usage:
    from processing.attributes import AttributeRegistry

    registry = AttributeRegistry.default()
    registry.label("Median_Age")          # "Median Age (Years)"
    registry.is_percentage("Pct_Native")  # True
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional

from loguru import logger


class UnknownAttributeError(KeyError):
    """Raised when an attribute name is not part of the registry."""


@dataclass(frozen=True)
class AttributeDefinition:
    """A selectable attribute and how its values are displayed."""

    name: str
    label: str
    is_percentage: bool = False


DEFAULT_ATTRIBUTES = (
    AttributeDefinition("Population", "Resident Population"),
    AttributeDefinition("Unemployment", "Unemployment (Percent)", is_percentage=True),
    AttributeDefinition("Median_Income", "Median Income (USD)"),
    AttributeDefinition("Median_Age", "Median Age (Years)"),
    AttributeDefinition("Pct_Native", "Native Residents (Percent)", is_percentage=True),
)


class AttributeRegistry:
    """
    Ordered, read-only collection of attribute definitions.

    The first registered attribute is the one expressed when data first
    becomes available.
    """

    def __init__(self, definitions: Iterable[AttributeDefinition]):
        self._attributes: Dict[str, AttributeDefinition] = {}
        for definition in definitions:
            if definition.name in self._attributes:
                raise ValueError(f"Duplicate attribute definition: {definition.name}")
            self._attributes[definition.name] = definition
            logger.trace(f"Registered attribute: {definition.name}")

        if not self._attributes:
            raise ValueError("Attribute registry needs at least one attribute")

    @classmethod
    def default(cls) -> "AttributeRegistry":
        return cls(DEFAULT_ATTRIBUTES)

    @classmethod
    def from_config(cls, entries: Optional[List[Dict[str, Any]]]) -> "AttributeRegistry":
        """
        Build a registry from the ``attributes`` list of config.yaml.

        Each entry needs a ``name``; ``label`` defaults to the name and
        ``percentage`` to False. An empty or missing list gives the defaults.
        """
        if not entries:
            return cls.default()

        definitions = []
        for entry in entries:
            if "name" not in entry:
                raise ValueError(f"Attribute entry without a name: {entry}")
            definitions.append(
                AttributeDefinition(
                    name=str(entry["name"]),
                    label=str(entry.get("label", entry["name"])),
                    is_percentage=bool(entry.get("percentage", False)),
                )
            )
        return cls(definitions)

    def __iter__(self) -> Iterator[AttributeDefinition]:
        return iter(self._attributes.values())

    def __len__(self) -> int:
        return len(self._attributes)

    def __contains__(self, name: object) -> bool:
        return name in self._attributes

    @property
    def names(self) -> List[str]:
        return list(self._attributes)

    @property
    def initial(self) -> str:
        return self.names[0]

    def get(self, name: str) -> AttributeDefinition:
        try:
            return self._attributes[name]
        except KeyError:
            raise UnknownAttributeError(
                f"Unknown attribute '{name}'. Available: {', '.join(self.names)}"
            ) from None

    def label(self, name: str) -> str:
        return self.get(name).label

    def is_percentage(self, name: str) -> bool:
        return self.get(name).is_percentage
