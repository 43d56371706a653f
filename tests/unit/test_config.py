"""
Unit tests for org_resolver.config module.

Settings are built with _env_file=None so a local .env never leaks into the
results; environment variables are set with monkeypatch.
"""

import pytest
from pydantic import ValidationError

from org_resolver.config import (
    DEFAULT_EXTRACTION_DEADLINE_MS,
    CacheConfig,
    ConfidenceThresholds,
    ConfidenceWeights,
    ResolverConfig,
    Settings,
    get_settings,
)


class TestConfidenceWeights:
    def test_defaults_sum_to_one(self):
        assert ConfidenceWeights().total() == pytest.approx(1.0)

    def test_rejects_negative_weight(self):
        with pytest.raises(ValidationError):
            ConfidenceWeights(pattern=-0.1)

    def test_rejects_all_zero(self):
        with pytest.raises(ValidationError):
            ConfidenceWeights(
                pattern=0, structural=0, extraction=0, cross_reference=0, consistency=0
            )


class TestConfidenceThresholds:
    def test_defaults(self):
        thresholds = ConfidenceThresholds()
        assert (thresholds.high, thresholds.medium, thresholds.low) == (0.85, 0.65, 0.45)

    def test_rejects_unordered(self):
        with pytest.raises(ValidationError):
            ConfidenceThresholds(high=0.5, medium=0.7, low=0.3)

    def test_rejects_out_of_range(self):
        with pytest.raises(ValidationError):
            ConfidenceThresholds(high=1.5)


class TestResolverConfig:
    def test_defaults(self):
        config = ResolverConfig()
        assert config.extraction.deadline_ms == DEFAULT_EXTRACTION_DEADLINE_MS
        assert config.max_results == 10
        assert config.fuzzy_match_threshold == 0.75
        assert config.structure_cache.capacity == 500
        assert config.structure_cache.ttl_seconds == 60.0

    def test_cache_config_rejects_zero_capacity(self):
        with pytest.raises(ValidationError):
            CacheConfig(capacity=0)


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("LOG_LEVEL", "CACHE_TTL_SECONDS", "MAX_RESULTS"):
            monkeypatch.delenv(f"ORG_RESOLVER_{name}", raising=False)
        settings = Settings(_env_file=None)
        assert settings.log_level == "INFO"
        assert settings.cache_capacity == 1000

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("ORG_RESOLVER_CACHE_TTL_SECONDS", "30")
        monkeypatch.setenv("ORG_RESOLVER_MAX_RESULTS", "3")
        monkeypatch.setenv("ORG_RESOLVER_LOG_LEVEL", " debug ")

        settings = Settings(_env_file=None)
        assert settings.cache_ttl_seconds == 30.0
        assert settings.max_results == 3
        assert settings.log_level == "DEBUG"

    def test_rejects_invalid_environment(self, monkeypatch):
        monkeypatch.setenv("ORG_RESOLVER_MAX_RESULTS", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_to_resolver_config(self, monkeypatch):
        monkeypatch.setenv("ORG_RESOLVER_EXTRACTION_DEADLINE_MS", "25")
        monkeypatch.setenv("ORG_RESOLVER_MIN_CONFIDENCE", "0.45")

        config = Settings(_env_file=None).to_resolver_config()
        assert isinstance(config, ResolverConfig)
        assert config.extraction.deadline_ms == 25.0
        assert config.min_confidence == 0.45

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
