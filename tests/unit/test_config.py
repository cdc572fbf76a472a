"""Tests for scoring configuration loading."""

import logging

import pytest

from contriblab.config import ScoringConfig, load_config
from contriblab.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's environment and working directory."""
    for var in ("CONTRIBLAB_CONFIG", "CONTRIBLAB_QUANTILE_METHOD", "CONTRIBLAB_MAX_WORKERS"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


def write_config(tmp_path, text):
    path = tmp_path / "scoring.yaml"
    path.write_text(text)
    return path


class TestScoringConfig:
    """Tests for ScoringConfig validation."""

    def test_defaults(self) -> None:
        config = ScoringConfig()
        assert config.quantile_method == "scipy"
        assert config.max_workers == 8
        assert config.log_dir == "logs"
        assert config.level == logging.INFO

    def test_level_is_case_insensitive(self) -> None:
        assert ScoringConfig(log_level="debug").level == logging.DEBUG

    def test_unknown_quantile_method(self) -> None:
        with pytest.raises(ConfigurationError, match="quantile_method"):
            ScoringConfig(quantile_method="erfinv")

    @pytest.mark.parametrize("workers", [0, -2, 1.5])
    def test_invalid_max_workers(self, workers) -> None:
        with pytest.raises(ConfigurationError, match="max_workers"):
            ScoringConfig(max_workers=workers)

    def test_unknown_log_level(self) -> None:
        with pytest.raises(ConfigurationError, match="log level"):
            ScoringConfig(log_level="LOUD")

    def test_frozen(self) -> None:
        config = ScoringConfig()
        with pytest.raises(AttributeError):
            config.max_workers = 2


class TestLoadConfig:
    """Tests for load_config."""

    def test_reads_yaml(self, tmp_path) -> None:
        path = write_config(tmp_path, (
            "true_contribution:\n"
            "  quantile_method: acklam\n"
            "  max_workers: 2\n"
            "logging:\n"
            "  log_dir: out/logs\n"
            "  level: DEBUG\n"
        ))

        config = load_config(path)

        assert config == ScoringConfig(
            quantile_method="acklam", max_workers=2, log_dir="out/logs", log_level="DEBUG"
        )

    def test_partial_yaml_keeps_defaults(self, tmp_path) -> None:
        path = write_config(tmp_path, "true_contribution:\n  max_workers: 4\n")
        config = load_config(path)
        assert config.max_workers == 4
        assert config.quantile_method == "scipy"
        assert config.log_level == "INFO"

    def test_empty_yaml_is_defaults(self, tmp_path) -> None:
        assert load_config(write_config(tmp_path, "")) == ScoringConfig()

    def test_missing_file_uses_defaults(self, tmp_path, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="contriblab.config"):
            config = load_config(tmp_path / "nope.yaml")
        assert config == ScoringConfig()
        assert "Configuration file not found" in caplog.text

    def test_default_path_in_working_directory(self, tmp_path) -> None:
        (tmp_path / "configs").mkdir()
        (tmp_path / "configs" / "scoring.yaml").write_text(
            "true_contribution:\n  quantile_method: acklam\n"
        )
        assert load_config().quantile_method == "acklam"

    def test_path_from_environment(self, tmp_path, monkeypatch) -> None:
        path = write_config(tmp_path, "true_contribution:\n  max_workers: 3\n")
        monkeypatch.setenv("CONTRIBLAB_CONFIG", str(path))
        assert load_config().max_workers == 3

    def test_environment_overrides_file(self, tmp_path, monkeypatch) -> None:
        path = write_config(tmp_path, "true_contribution:\n  quantile_method: scipy\n  max_workers: 2\n")
        monkeypatch.setenv("CONTRIBLAB_QUANTILE_METHOD", "acklam")
        monkeypatch.setenv("CONTRIBLAB_MAX_WORKERS", "6")

        config = load_config(path)

        assert config.quantile_method == "acklam"
        assert config.max_workers == 6

    def test_non_integer_workers_env(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("CONTRIBLAB_MAX_WORKERS", "many")
        with pytest.raises(ConfigurationError, match="CONTRIBLAB_MAX_WORKERS"):
            load_config(tmp_path / "nope.yaml")

    def test_malformed_yaml(self, tmp_path) -> None:
        path = write_config(tmp_path, "true_contribution: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Failed to parse"):
            load_config(path)

    def test_non_mapping_yaml(self, tmp_path) -> None:
        path = write_config(tmp_path, "- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(path)

    def test_invalid_value_in_file(self, tmp_path) -> None:
        path = write_config(tmp_path, "true_contribution:\n  quantile_method: magic\n")
        with pytest.raises(ConfigurationError):
            load_config(path)
