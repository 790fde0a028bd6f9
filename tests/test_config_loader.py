import pytest

from ops.config_loader import Config


def test_loads_values_and_defaults(project_dir):
    config = Config(str(project_dir / "config.yaml"))

    assert config.project_root == project_dir.resolve()
    assert config.get("project_name") == "Test Regions"
    assert config.get_column_name("region_key") == "REGC2017_N"
    # Not in the file, comes from DEFAULTS
    assert config.get_classification_setting("classes") == 5
    assert config.get_classification_setting("no_data_color") == "#CCC"
    assert config.get("input_files.regions_layer") is None
    assert config.get("does.not.exist", "fallback") == "fallback"


def test_input_paths_are_resolved_against_project_root(project_dir):
    config = Config(str(project_dir / "config.yaml"))

    assert config.get_input_path("regions_csv") == project_dir.resolve() / "data/stats.csv"
    assert config.validate_input_files() == {"regions_csv": True, "regions_geo": True}
    with pytest.raises(ValueError):
        config.get_input_path("unknown_file")


def test_output_paths_create_directories(project_dir):
    config = Config(str(project_dir / "config.yaml"))

    html_path = config.get_map_html_path()
    chart_path = config.get_chart_path("Median_Age")

    assert html_path.parent.is_dir()
    assert html_path.name == "regional_statistics.html"
    assert chart_path.name == "median_age_chart.png"
    assert chart_path.parent == project_dir.resolve() / "out/maps"
    with pytest.raises(ValueError):
        config.get_output_dir("nowhere")


def test_set_overrides_in_memory(project_dir):
    config = Config(str(project_dir / "config.yaml"))
    config.set("columns.region_key", "NAME")
    config.set("classification.colors", ["#1", "#2", "#3", "#4", "#5"])

    assert config.get_column_name("region_key") == "NAME"
    assert config.get_classification_setting("colors")[0] == "#1"
    assert "NAME" not in (project_dir / "config.yaml").read_text()


def test_environment_variable_points_to_config(project_dir, monkeypatch, tmp_path_factory):
    monkeypatch.setenv("PIPELINE_CONFIG_PATH", str(project_dir / "config.yaml"))
    monkeypatch.chdir(tmp_path_factory.mktemp("elsewhere"))

    assert Config().config_path == (project_dir / "config.yaml").resolve()


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config(str(tmp_path / "missing.yaml"))


def test_attribute_entries(project_dir):
    config = Config(str(project_dir / "config.yaml"))
    assert config.get_attribute_entries() == []

    config.set("attributes", "Population")
    with pytest.raises(ValueError):
        config.get_attribute_entries()


def test_shipped_config_is_valid():
    from ops.config_loader import OPS_DIR

    config = Config(str(OPS_DIR / "config.yaml"))

    assert config.get_column_name("region_key") == "REGC2017_N"
    assert [e["name"] for e in config.get_attribute_entries()][0] == "Population"
    assert len(config.get_classification_setting("colors")) == config.get_classification_setting("classes")
