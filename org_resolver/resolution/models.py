"""
Data model for organization entity resolution.

Candidates and resolved entities are frozen dataclasses (immutable once
produced). Knowledge base records are frozen pydantic models so they can be
validated on import and serialized on export.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EntityType(str, Enum):
    """Declared semantic type of an extracted entity."""

    COMPANY = "company"
    COMPANY_ABBREV = "company_abbrev"
    COMPANY_INTL = "company_intl"
    COMPANY_CONTEXT = "company_context"
    TICKER = "ticker"


# Lower sorts first when ranking ties
TYPE_PRIORITY: dict[EntityType, int] = {
    EntityType.TICKER: 0,
    EntityType.COMPANY: 1,
    EntityType.COMPANY_INTL: 2,
    EntityType.COMPANY_ABBREV: 3,
    EntityType.COMPANY_CONTEXT: 4,
}

# Weight of each type in the extraction-level aggregate confidence
TYPE_WEIGHTS: dict[EntityType, float] = {
    EntityType.TICKER: 1.0,
    EntityType.COMPANY: 0.9,
    EntityType.COMPANY_INTL: 0.85,
    EntityType.COMPANY_ABBREV: 0.8,
    EntityType.COMPANY_CONTEXT: 0.7,
}


@dataclass(frozen=True)
class Candidate:
    """An unvalidated pattern match, before normalization and scoring."""

    text: str
    start: int  # Offset in the sanitized text
    end: int
    pattern: str  # Pattern group name ("company_formal", "ticker_symbol", ...)
    entity_type: EntityType
    base_confidence: float
    reference: bool = False  # Coreference phrase ("the company"), not a name


@dataclass(frozen=True)
class NormalizedForm:
    """Canonical representation of a raw entity string."""

    base_name: str
    suffixes: tuple[str, ...] = ()
    company_types: tuple[str, ...] = ()
    jurisdictions: tuple[str, ...] = ()


def _clean_ticker(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip().lstrip("$").upper()
    return cleaned or None


class KnownOrganization(BaseModel):
    """A record in the knowledge base. Identity is the id, not the name."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    aliases: tuple[str, ...] = ()
    ticker: str | None = None
    industry: str | None = None
    exchange: str | None = None
    previous_names: tuple[str, ...] = ()
    org_type: str | None = None
    # Filled in by the knowledge base from its normalizer
    normalized_name: str = ""

    @field_validator("id", "name", mode="before")
    @classmethod
    def strip_required(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("ticker", mode="before")
    @classmethod
    def normalize_ticker(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _clean_ticker(v)
        return v

    @field_validator("aliases", "previous_names", mode="before")
    @classmethod
    def drop_blank_names(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple, set)):
            return tuple(s.strip() for s in v if isinstance(s, str) and s.strip())
        return v


@dataclass(frozen=True)
class KnowledgeBaseMatch:
    """One knowledge base search hit."""

    organization: KnownOrganization
    score: float
    match_field: str  # "name", "alias" or "ticker"
    match_type: str  # "exact_ticker", "exact_name", "alias" or "fuzzy"
    matched_text: str

    def to_dict(self) -> dict:
        return {
            "id": self.organization.id,
            "name": self.organization.name,
            "score": round(self.score, 4),
            "match_field": self.match_field,
            "match_type": self.match_type,
            "matched_text": self.matched_text,
        }


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    REJECT = "reject"
    ERROR = "error"


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-factor sub-scores, each already clamped to [0, 1]."""

    pattern: float = 0.0
    structural: float = 0.0
    extraction: float = 0.0
    cross_reference: float = 0.0
    consistency: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "pattern": round(self.pattern, 4),
            "structural": round(self.structural, 4),
            "extraction": round(self.extraction, 4),
            "cross_reference": round(self.cross_reference, 4),
            "consistency": round(self.consistency, 4),
        }


@dataclass(frozen=True)
class ConfidenceResult:
    """Fused confidence for one entity."""

    score: float
    level: ConfidenceLevel
    breakdown: ScoreBreakdown
    recommendation: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        result = {
            "score": self.score,
            "level": self.level.value,
            "breakdown": self.breakdown.to_dict(),
        }
        if self.recommendation:
            result["recommendation"] = self.recommendation
        if self.error:
            result["error"] = self.error
        return result


@dataclass(frozen=True)
class MentionReference:
    """A later mention folded into an entity by coreference."""

    text: str
    start: int
    relation: str  # "pronoun" or "partial"

    def to_dict(self) -> dict:
        return {"text": self.text, "start": self.start, "relation": self.relation}


@dataclass(frozen=True)
class ResolvedEntity:
    """The externally visible result unit. Read-only to callers."""

    text: str
    normalized: str
    entity_type: EntityType
    start: int
    confidence: ConfidenceResult
    known_organization: KnownOrganization | None = None
    variations: tuple[str, ...] = ()
    references: tuple[MentionReference, ...] = ()
    context_metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "text": self.text,
            "normalized": self.normalized,
            "type": self.entity_type.value,
            "start": self.start,
            "confidence": self.confidence.to_dict(),
        }
        if self.known_organization is not None:
            org = self.known_organization
            result["known_organization"] = {
                "id": org.id,
                "name": org.name,
                "ticker": org.ticker,
                "industry": org.industry,
                "exchange": org.exchange,
            }
        if self.variations:
            result["variations"] = list(self.variations)
        if self.references:
            result["references"] = [r.to_dict() for r in self.references]
        if self.context_metadata:
            result["context_metadata"] = self.context_metadata
        return result


@dataclass(frozen=True)
class ResolutionResult:
    """Ranked entities for one resolve() call plus any degradation diagnostics."""

    entities: tuple[ResolvedEntity, ...] = ()
    diagnostics: tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.entities)

    def __iter__(self):
        return iter(self.entities)

    def to_dict(self) -> dict:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "diagnostics": list(self.diagnostics),
        }
