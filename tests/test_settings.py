"""
Tests for chart settings.
"""

from pathlib import Path

import pytest

from chartmix.charts.row import RowChart
from chartmix.exceptions import InvalidConfigurationError
from chartmix.settings import ChartSettings, get_settings, load_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestChartSettings:
    """Tests for defaults and environment overrides."""

    def test_defaults(self) -> None:
        settings = ChartSettings()
        assert settings.cap is None
        assert settings.others_label == "Others"
        assert settings.stacked is True
        assert settings.palette == "tab10"

    def test_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHARTMIX_CAP", "3")
        monkeypatch.setenv("CHARTMIX_STACKED", "false")
        settings = get_settings()
        assert settings.cap == 3
        assert settings.stacked is False

    def test_charts_read_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHARTMIX_OTHERS_LABEL", "Rest")
        assert RowChart().others_label == "Rest"

    def test_negative_cap(self) -> None:
        with pytest.raises(ValueError):
            ChartSettings(cap=-1)

    def test_unknown_field(self) -> None:
        with pytest.raises(ValueError):
            ChartSettings(rows=3)

    def test_unknown_palette(self) -> None:
        with pytest.raises(InvalidConfigurationError) as exc_info:
            RowChart(settings=ChartSettings(palette="no-such-palette"))
        assert exc_info.value.setting == "palette"


class TestLoadSettings:
    """Tests for YAML settings files."""

    def test_load(self, tmp_path: Path) -> None:
        path = tmp_path / "chart.yaml"
        path.write_text("chart:\n  cap: 2\n  others_label: Rest\n  stacked: false\n")

        settings = load_settings(path)
        assert settings.cap == 2
        assert settings.others_label == "Rest"
        assert settings.stacked is False

    def test_overrides(self, tmp_path: Path) -> None:
        path = tmp_path / "chart.yaml"
        path.write_text("chart:\n  cap: 2\n")
        assert load_settings(path, cap=4).cap == 4

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "chart.yaml"
        path.write_text("")
        assert load_settings(path).cap is None

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "chart.yaml"
        path.write_text("chart: [unclosed\n")
        with pytest.raises(InvalidConfigurationError):
            load_settings(path)

    def test_invalid_section(self, tmp_path: Path) -> None:
        path = tmp_path / "chart.yaml"
        path.write_text("chart: 3\n")
        with pytest.raises(InvalidConfigurationError) as exc_info:
            load_settings(path)
        assert exc_info.value.setting == "chart"

    def test_invalid_values(self, tmp_path: Path) -> None:
        path = tmp_path / "chart.yaml"
        path.write_text("chart:\n  cap: -2\n")
        with pytest.raises(InvalidConfigurationError) as exc_info:
            load_settings(path)
        assert exc_info.value.context["errors"]
