"""
Tests for CCPI configuration loading.
"""

import pytest

from ccpi import CCPIConfig, ConfigurationError, get_config, set_config


class TestCCPIConfig:
    """Defaults, environment and YAML."""

    def test_defaults(self):
        config = CCPIConfig()

        assert config.timeouts.api_timeout_seconds == 8.0
        assert config.timeouts.ai_timeout_seconds == 25.0
        assert config.timeouts.run_deadline_seconds == 60.0
        assert config.confidence_weights.total() == pytest.approx(1.0)
        assert config.no_data_score == 50.0

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CCPI_RUN_DEADLINE", "30")
        monkeypatch.setenv("CCPI_SOURCE_CONCURRENCY", "2")
        monkeypatch.setenv("CCPI_PERSIST_RUNS", "false")
        monkeypatch.setenv("CCPI_WEIGHT_FRESHNESS", "1")
        monkeypatch.setenv("CCPI_WEIGHT_TIER_HEALTH", "1")
        monkeypatch.setenv("CCPI_WEIGHT_CONSISTENCY", "2")

        config = CCPIConfig.from_env()

        assert config.timeouts.run_deadline_seconds == 30.0
        assert config.source_concurrency == 2
        assert config.persist_runs is False
        assert config.confidence_weights.consistency == pytest.approx(0.5)

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "ccpi.yaml"
        path.write_text(
            "tier_weights:\n"
            "  ai_estimate: 0.3\n"
            "alert_levels:\n"
            "  watch_at: 2\n"
            "  elevated_at: 4\n"
            "  critical_at: 8\n"
            "cache_max_age_seconds: 60\n"
        )

        config = CCPIConfig.from_yaml(path)

        assert config.tier_weights.ai_estimate == 0.3
        assert config.alert_levels.critical_at == 8
        assert config.cache_max_age_seconds == 60

    def test_unreadable_yaml_falls_back_to_defaults(self, tmp_path):
        config = CCPIConfig.from_yaml(tmp_path / "missing.yaml")

        assert config.to_dict() == CCPIConfig().to_dict()

    def test_invalid_scalar_rejected(self):
        with pytest.raises(ConfigurationError):
            CCPIConfig(no_data_score=150.0)

    def test_global_config(self):
        previous = get_config()
        custom = CCPIConfig(dispersion_penalty=1.0)
        try:
            set_config(custom)
            assert get_config() is custom
        finally:
            set_config(previous)


class TestLoaderValidation:
    """Values from the environment or YAML are validated like constructor arguments."""

    @pytest.mark.parametrize("name, value", [
        ("CCPI_SOURCE_CONCURRENCY", "0"),
        ("CCPI_API_TIMEOUT", "-5"),
        ("CCPI_RUN_DEADLINE", "0"),
        ("CCPI_DISPERSION_PENALTY", "-1"),
        ("CCPI_CACHE_MAX_AGE", "-10"),
        ("CCPI_SOURCE_CONCURRENCY", "four"),
    ])
    def test_from_env_rejects_invalid(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ConfigurationError):
            CCPIConfig.from_env()

    def test_from_env_rejects_zero_confidence_weights(self, monkeypatch):
        for name in ("CCPI_WEIGHT_FRESHNESS", "CCPI_WEIGHT_TIER_HEALTH", "CCPI_WEIGHT_CONSISTENCY"):
            monkeypatch.setenv(name, "0")

        with pytest.raises(ConfigurationError):
            CCPIConfig.from_env()

    @pytest.mark.parametrize("body", [
        "source_concurrency: 0\n",
        "no_data_score: 150\n",
        "history_limit: 0\n",
        "timeouts:\n  api_timeout_seconds: -5\n",
        "confidence_weights:\n  freshness: 0\n  tier_health: 0\n  consistency: 0\n",
    ])
    def test_from_yaml_rejects_invalid(self, tmp_path, body):
        path = tmp_path / "ccpi.yaml"
        path.write_text(body)

        with pytest.raises(ConfigurationError):
            CCPIConfig.from_yaml(path)

    def test_from_yaml_keeps_valid_scalars(self, tmp_path):
        path = tmp_path / "ccpi.yaml"
        path.write_text("source_concurrency: 2\nrefresh_interval_seconds: 120\n")

        config = CCPIConfig.from_yaml(path)

        assert config.source_concurrency == 2
        assert config.refresh_interval_seconds == 120
