import pytest

from processing.attributes import UnknownAttributeError
from processing.classify import NO_DATA_COLOR
from processing.state import (
    ClassificationSettings,
    MapSession,
    change_attribute,
    classify_attribute,
    on_data_ready,
)

KEY = "REGC2017_N"


@pytest.fixture
def state(regions_table, region_geometries, registry):
    return on_data_ready(regions_table, region_geometries, registry, key=KEY)


def test_initial_state_expresses_first_attribute(state):
    assert state.expressed == "Population"
    assert state.classification.attribute == "Population"
    assert state.classification.breaks[0] == 43653
    assert len(state.classification.breaks) == 5


def test_initial_attribute_can_be_chosen(regions_table, region_geometries, registry):
    state = on_data_ready(regions_table, region_geometries, registry, key=KEY, expressed="Median_Age")

    assert state.expressed == "Median_Age"
    assert state.classification.breaks[0] == 35.1


def test_records_without_data_use_neutral_color(state):
    colors = dict(zip(state.records[KEY], state.colors()))

    assert colors["Area Outside Region"] == NO_DATA_COLOR
    assert colors["Auckland Region"] == state.classification.colors[-1]


def test_change_attribute_returns_new_state(state):
    changed = change_attribute(state, "Unemployment")

    assert changed.expressed == "Unemployment"
    assert changed.classification.attribute == "Unemployment"
    assert state.expressed == "Population"
    assert changed.records is state.records


def test_unparseable_value_is_no_data_after_change(state):
    changed = change_attribute(state, "Unemployment")
    colors = dict(zip(changed.records[KEY], changed.colors()))
    labels = dict(zip(changed.records[KEY], changed.labels()))

    assert colors["Otago Region"] == NO_DATA_COLOR
    assert labels["Otago Region"] == "No Data"
    assert changed.classification.breaks[0] == pytest.approx(0.035)


def test_percentage_labels_and_legend(state):
    changed = change_attribute(state, "Unemployment")
    labels = dict(zip(changed.records[KEY], changed.labels()))

    assert labels["Auckland Region"] == "5.40"
    assert changed.legend()[0].startswith("3.50-")
    assert changed.legend()[-1].startswith(">= ")


def test_raw_labels(state):
    labels = dict(zip(state.records[KEY], state.labels()))

    assert labels["Auckland Region"] == "1415550"


def test_reclassifying_same_attribute_is_idempotent(state):
    again = change_attribute(state, "Population")

    assert again.classification == state.classification
    assert again.colors() == state.colors()


def test_unknown_attribute_raises(state):
    with pytest.raises(UnknownAttributeError):
        change_attribute(state, "Rainfall")


def test_settings_flow_into_classification(regions_table, region_geometries, registry):
    settings = ClassificationSettings(colors=("#1", "#2", "#3", "#4", "#5"), no_data_color="#000")
    state = on_data_ready(regions_table, region_geometries, registry, key=KEY, settings=settings)

    assert set(state.colors()) <= {"#1", "#2", "#3", "#4", "#5", "#000"}
    assert change_attribute(state, "Median_Income").classification.no_data_color == "#000"


def test_classify_attribute_uses_every_record(state):
    classification = classify_attribute(state.records, "Median_Income")

    assert classification.breaks[0] == 22700


def test_session_applies_last_selection(state):
    session = MapSession(state)
    session.select("Median_Age")
    latest = session.select("Pct_Native")

    assert session.current is latest
    assert latest.expressed == "Pct_Native"
    assert latest.classification.attribute == "Pct_Native"
