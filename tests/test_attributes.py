import pytest

from processing.attributes import (
    DEFAULT_ATTRIBUTES,
    AttributeDefinition,
    AttributeRegistry,
    UnknownAttributeError,
)


def test_default_registry(registry):
    assert registry.names == ["Population", "Unemployment", "Median_Income", "Median_Age", "Pct_Native"]
    assert registry.initial == "Population"
    assert registry.label("Median_Income") == "Median Income (USD)"
    assert [d.name for d in registry if d.is_percentage] == ["Unemployment", "Pct_Native"]


def test_unknown_attribute(registry):
    assert "Rainfall" not in registry
    with pytest.raises(UnknownAttributeError):
        registry.get("Rainfall")
    with pytest.raises(KeyError):
        registry.is_percentage("Rainfall")


def test_definitions_are_immutable():
    with pytest.raises(AttributeError):
        DEFAULT_ATTRIBUTES[0].label = "Changed"


def test_from_config_entries():
    registry = AttributeRegistry.from_config(
        [
            {"name": "Median_Age", "label": "Median Age (Years)"},
            {"name": "Pct_Native", "percentage": True},
        ]
    )

    assert registry.names == ["Median_Age", "Pct_Native"]
    assert registry.label("Pct_Native") == "Pct_Native"
    assert registry.is_percentage("Pct_Native")
    assert not registry.is_percentage("Median_Age")


def test_from_config_without_entries_uses_defaults():
    assert AttributeRegistry.from_config(None).names == AttributeRegistry.default().names
    assert len(AttributeRegistry.from_config([])) == 5


def test_invalid_registries():
    with pytest.raises(ValueError):
        AttributeRegistry([])
    with pytest.raises(ValueError):
        AttributeRegistry([AttributeDefinition("A", "a"), AttributeDefinition("A", "b")])
    with pytest.raises(ValueError):
        AttributeRegistry.from_config([{"label": "No name"}])
