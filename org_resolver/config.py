"""
Configuration management for org_resolver.

The resolution core is configured with plain in-memory structs (pydantic
models) passed at construction; it never reads files or environment
variables itself. Scripts build those structs from ``Settings``, which uses
pydantic-settings for environment variable loading and validation.
"""

from functools import lru_cache

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Heuristic constants carried over unchanged. No derivation is known for
# these values; override them through the config structs below.
DEFAULT_MAX_INPUT_LENGTH = 1000
DEFAULT_MAX_ENTITIES = 20
DEFAULT_EXTRACTION_DEADLINE_MS = 50.0
DEFAULT_MAX_RESULTS = 10
DEFAULT_FUZZY_MATCH_THRESHOLD = 0.75
DEFAULT_STRUCTURAL_WEIGHT = 0.5


class ExtractionConfig(BaseModel):
    """Limits applied to a single extraction pass."""

    max_input_length: int = Field(default=DEFAULT_MAX_INPUT_LENGTH, gt=0)
    max_entities: int = Field(default=DEFAULT_MAX_ENTITIES, gt=0)
    deadline_ms: float = Field(default=DEFAULT_EXTRACTION_DEADLINE_MS, gt=0)


class CacheConfig(BaseModel):
    """Capacity and time-to-live for one bounded cache."""

    capacity: int = Field(default=1000, gt=0)
    ttl_seconds: float = Field(default=300.0, gt=0)


class ConfidenceWeights(BaseModel):
    """Weights for the five confidence sub-scores."""

    pattern: float = Field(default=0.25, ge=0)
    structural: float = Field(default=0.20, ge=0)
    extraction: float = Field(default=0.25, ge=0)
    cross_reference: float = Field(default=0.15, ge=0)
    consistency: float = Field(default=0.15, ge=0)

    @model_validator(mode="after")
    def check_total(self) -> "ConfidenceWeights":
        """Reject an all-zero weighting."""
        if self.total() <= 0:
            raise ValueError("At least one confidence weight must be positive")
        return self

    def total(self) -> float:
        return (
            self.pattern
            + self.structural
            + self.extraction
            + self.cross_reference
            + self.consistency
        )


class ConfidenceThresholds(BaseModel):
    """Cut points mapping a score to a confidence level."""

    high: float = Field(default=0.85, ge=0, le=1)
    medium: float = Field(default=0.65, ge=0, le=1)
    low: float = Field(default=0.45, ge=0, le=1)

    @model_validator(mode="after")
    def check_order(self) -> "ConfidenceThresholds":
        """Thresholds must satisfy high >= medium >= low."""
        if not (self.high >= self.medium >= self.low):
            raise ValueError(
                f"Thresholds must be ordered high >= medium >= low, got "
                f"{self.high}/{self.medium}/{self.low}"
            )
        return self


class ResolverConfig(BaseModel):
    """Complete configuration for an EntityResolver."""

    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    result_cache: CacheConfig = Field(default_factory=CacheConfig)
    structure_cache: CacheConfig = Field(
        default_factory=lambda: CacheConfig(capacity=500, ttl_seconds=60.0)
    )
    knowledge_base_cache: CacheConfig = Field(default_factory=CacheConfig)
    weights: ConfidenceWeights = Field(default_factory=ConfidenceWeights)
    thresholds: ConfidenceThresholds = Field(default_factory=ConfidenceThresholds)
    max_results: int = Field(default=DEFAULT_MAX_RESULTS, gt=0)
    fuzzy_match_threshold: float = Field(default=DEFAULT_FUZZY_MATCH_THRESHOLD, ge=0, le=1)
    min_confidence: float = Field(
        default=0.0,
        ge=0,
        le=1,
        description="Entities scoring below this are dropped (0 keeps reject-level entities)",
    )


class Settings(BaseSettings):
    """
    Settings for scripts, loaded from environment variables.

    Variables use the ``ORG_RESOLVER_`` prefix, e.g. ``ORG_RESOLVER_CACHE_TTL_SECONDS``.
    """

    model_config = SettingsConfigDict(
        env_prefix="ORG_RESOLVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars
    )

    log_level: str = Field(default="INFO", description="Logging level for scripts")
    cache_capacity: int = Field(default=1000, gt=0, description="Result cache capacity")
    cache_ttl_seconds: float = Field(default=300.0, gt=0, description="Result cache TTL")
    extraction_deadline_ms: float = Field(
        default=DEFAULT_EXTRACTION_DEADLINE_MS,
        gt=0,
        description="Extraction deadline in milliseconds",
    )
    max_input_length: int = Field(default=DEFAULT_MAX_INPUT_LENGTH, gt=0)
    max_results: int = Field(default=DEFAULT_MAX_RESULTS, gt=0)
    min_confidence: float = Field(default=0.0, ge=0, le=1)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Strip whitespace and upper-case the level name."""
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v

    def to_resolver_config(self) -> ResolverConfig:
        """Build the in-memory resolver configuration from these settings."""
        return ResolverConfig(
            extraction=ExtractionConfig(
                max_input_length=self.max_input_length,
                deadline_ms=self.extraction_deadline_ms,
            ),
            result_cache=CacheConfig(
                capacity=self.cache_capacity,
                ttl_seconds=self.cache_ttl_seconds,
            ),
            max_results=self.max_results,
            min_confidence=self.min_confidence,
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
