import pytest
from click.testing import CliRunner

from ops.config_loader import Config
from ops.run_pipeline import (
    ConfigOverride,
    build_registry,
    build_settings,
    cli,
    load_state,
)


@pytest.fixture
def runner():
    return CliRunner()


def _config_args(project_dir):
    return ["--config-file", str(project_dir / "config.yaml")]


def test_config_override_parsing():
    override = ConfigOverride()

    assert override.convert("classification.classes=5", None, None) == ("classification.classes", 5)
    assert override.convert("visualization.fill_opacity=0.6", None, None) == (
        "visualization.fill_opacity",
        0.6,
    )
    assert override.convert("flag=true", None, None) == ("flag", True)
    assert override.convert("columns.region_key=NAME", None, None) == ("columns.region_key", "NAME")


def test_invalid_override_is_rejected(runner, project_dir):
    result = runner.invoke(cli, _config_args(project_dir) + ["--config", "no-equals-sign"])

    assert result.exit_code != 0
    assert "KEY=VALUE" in result.output


def test_attributes_command(runner, project_dir):
    result = runner.invoke(cli, _config_args(project_dir) + ["attributes"])

    assert result.exit_code == 0, result.output
    assert "Population: Resident Population" in result.output
    assert "Unemployment: Unemployment (Percent) (percentage)" in result.output


def test_breaks_command(runner, project_dir):
    result = runner.invoke(cli, _config_args(project_dir) + ["breaks", "Unemployment"])

    assert result.exit_code == 0, result.output
    assert "Unemployment (Percent)" in result.output
    assert "3.50-" in result.output
    assert "No Data (2 regions)" in result.output


def test_breaks_command_unknown_attribute(runner, project_dir):
    result = runner.invoke(cli, _config_args(project_dir) + ["breaks", "Rainfall"])

    assert result.exit_code == 1


def test_full_render(runner, project_dir):
    result = runner.invoke(cli, _config_args(project_dir) + ["--attribute", "Median_Age"])

    assert result.exit_code == 0, result.output
    out = project_dir / "out"
    assert (out / "html" / "regional_statistics.html").exists()
    assert (out / "geospatial" / "regional_statistics.geojson").exists()
    charts = sorted(p.name for p in (out / "maps").glob("*_chart.png"))
    assert charts == [
        "median_age_chart.png",
        "median_income_chart.png",
        "pct_native_chart.png",
        "population_chart.png",
        "unemployment_chart.png",
    ]


def test_render_with_skips(runner, project_dir):
    result = runner.invoke(
        cli, _config_args(project_dir) + ["--skip-charts", "--skip-geojson", "render"]
    )

    assert result.exit_code == 0, result.output
    assert (project_dir / "out" / "html" / "regional_statistics.html").exists()
    assert not (project_dir / "out" / "maps").exists()
    assert not (project_dir / "out" / "geospatial").exists()


def test_dry_run_writes_nothing(runner, project_dir):
    result = runner.invoke(cli, _config_args(project_dir) + ["--dry-run"])

    assert result.exit_code == 0, result.output
    assert not (project_dir / "out").exists()


def test_missing_input_fails(runner, project_dir):
    result = runner.invoke(
        cli, _config_args(project_dir) + ["--regions-csv", "data/does_not_exist.csv"]
    )

    assert result.exit_code == 1


def test_load_state_with_overrides(project_dir):
    config = Config(str(project_dir / "config.yaml"))
    config.set("classification.no_data_color", "#999")

    state = load_state(config, "Pct_Native")

    assert state.expressed == "Pct_Native"
    assert state.classification.no_data_color == "#999"
    assert build_settings(config).k == 5
    assert build_registry(config).initial == "Population"
