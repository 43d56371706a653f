"""
Structural Context Analysis.

Interprets the structural hints a host supplies about where a text span
sits in a page (position tags, nearby attributes, link targets, matched
site micro-patterns) into a structural weight and a list of context clues.
It never looks at raw text beyond what the hints carry.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from org_resolver.cache import TTLCache
from org_resolver.config import DEFAULT_STRUCTURAL_WEIGHT

logger = logging.getLogger(__name__)

DEFAULT_POSITION_WEIGHTS: dict[str, float] = {
    "title": 1.0,
    "h1": 0.9,
    "h2": 0.8,
    "h3": 0.7,
    "article_header": 0.85,
    "table_cell": 0.7,
    "article_body": 0.6,
    "sidebar": 0.3,
    "footer": 0.1,
}

# Host vocabularies for the same positions
TAG_ALIASES: dict[str, str] = {
    "headline": "h1",
    "subheadline": "h2",
    "firstparagraph": "first_paragraph",
    "lead": "first_paragraph",
    "articleheader": "article_header",
    "articlebody": "article_body",
    "body": "article_body",
    "tablecell": "table_cell",
    "td": "table_cell",
    "blockquote": "quote",
}

DATA_SYMBOL_ATTRIBUTES = frozenset({"data-symbol", "data_symbol", "symbol"})

PATTERN_CLUE_CONFIDENCE = 0.9
DATA_ATTRIBUTE_CONFIDENCE = 0.95
LINK_CLUE_CONFIDENCE = 0.85
ANCESTOR_DECAY_PER_LEVEL = 0.1
SIBLING_FACTOR = 0.7
SLOW_ANALYSIS_MS = 100.0


class HintObservation(BaseModel):
    """One attribute, link or matched micro-pattern near the span."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    kind: Literal["attribute", "link", "pattern"]
    name: str = ""
    value: str
    relation: Literal["self", "ancestor", "sibling"] = "self"
    distance: int = Field(default=0, ge=0)


class HintMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    publish_date: str | None = None
    author: str | None = None
    section: str | None = None


class StructuralHints(BaseModel):
    """Host-supplied description of where a span sits in its document."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    element_id: str | None = None
    position_tags: tuple[str, ...] = ()
    observations: tuple[HintObservation, ...] = ()
    metadata: HintMetadata = Field(default_factory=HintMetadata)

    @classmethod
    def coerce(cls, value: Any) -> StructuralHints:
        """
        Accept None, a mapping or an existing model.

        Raises:
            pydantic.ValidationError: If a mapping does not fit the shape
            TypeError: For any other type
        """
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls.model_validate(value)
        raise TypeError(f"Unsupported structural hints type: {type(value).__name__}")

    def cache_payload(self) -> dict:
        return self.model_dump(mode="json")


@dataclass(frozen=True)
class SiteProfile:
    """Site-specific micro-patterns and weight multipliers."""

    name: str
    patterns: dict[str, re.Pattern] = field(default_factory=dict)
    weight_multipliers: dict[str, float] = field(default_factory=dict)


DEFAULT_SITE_PROFILES: dict[str, SiteProfile] = {
    "forbes": SiteProfile(
        name="forbes",
        patterns={
            "company_link": re.compile(r"/companies/([^/]+)/?$"),
            "profile_link": re.compile(r"/profile/([^/]+)/?$"),
            "ticker_pattern": re.compile(r"\(([A-Z]{1,5})\)"),
        },
        weight_multipliers={
            "in_headline": 1.5,
            "in_first_paragraph": 1.3,
            "has_company_link": 1.4,
            "in_quote": 0.8,
        },
    ),
    "yahoo": SiteProfile(
        name="yahoo",
        patterns={
            "symbol_pattern": re.compile(r'data-symbol="([A-Z]{1,5})"'),
            "ticker_in_url": re.compile(r"quote/([A-Z]{1,5})"),
            "company_in_title": re.compile(r"^(.+?)\s*\([A-Z]{1,5}\)"),
        },
        weight_multipliers={
            "has_data_symbol": 2.0,
            "in_quote_header": 1.8,
            "in_news_headline": 1.4,
            "in_financial_table": 1.2,
        },
    ),
    "bloomberg": SiteProfile(
        name="bloomberg",
        patterns={
            "ticker_format": re.compile(r"\b([A-Z]{1,5})\s+(?:US|LN|HK|JP)(?:\s+Equity)?\b"),
            "company_mention": re.compile(
                r"\b([A-Z][a-zA-Z\s&.]{2,50})\s+(?:said|announced|reported)"
            ),
        },
        weight_multipliers={
            "has_ticker": 1.6,
            "in_headline": 1.5,
            "has_company_tag": 1.4,
            "in_lead": 1.3,
        },
    ),
    "marketwatch": SiteProfile(
        name="marketwatch",
        patterns={
            "ticker_in_link": re.compile(r"/investing/stock/([A-Za-z]{1,5})"),
            "company_format": re.compile(r"^([A-Z][a-zA-Z\s&.]{2,50}?)\s+\([A-Z]{1,5}\)"),
        },
        weight_multipliers={
            "has_stock_link": 1.5,
            "in_headline": 1.4,
            "in_first_paragraph": 1.3,
            "has_ticker_tag": 1.4,
        },
    ),
    "generic": SiteProfile(
        name="generic",
        patterns={"ticker_pattern": re.compile(r"\(([A-Z]{1,5})\)")},
    ),
}


@dataclass(frozen=True)
class ContextClue:
    type: str
    value: str
    confidence: float
    distance: int = 0

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "value": self.value,
            "confidence": round(self.confidence, 4),
            "distance": self.distance,
        }


@dataclass(frozen=True)
class StructuralAnalysis:
    """Result of interpreting one hint descriptor."""

    position_tags: tuple[str, ...] = ()
    structural_weight: float = DEFAULT_STRUCTURAL_WEIGHT
    clues: tuple[ContextClue, ...] = ()
    metadata: dict[str, str] = field(default_factory=dict)
    confidence: float = DEFAULT_STRUCTURAL_WEIGHT
    site_id: str = "generic"

    def has_tag(self, tag: str) -> bool:
        return tag in self.position_tags

    def to_dict(self) -> dict:
        return {
            "position_tags": list(self.position_tags),
            "structural_weight": round(self.structural_weight, 4),
            "clues": [c.to_dict() for c in self.clues],
            "metadata": dict(self.metadata),
            "confidence": round(self.confidence, 4),
        }


def default_analysis(site_id: str = "generic") -> StructuralAnalysis:
    return StructuralAnalysis(site_id=site_id)


def canonical_tag(tag: str) -> str:
    """Map host tag spellings (headline, firstParagraph, table-cell) to one vocabulary."""
    key = tag.strip().lower().replace("-", "_")
    return TAG_ALIASES.get(key.replace("_", ""), TAG_ALIASES.get(key, key))


class StructuralContextAnalyzer:
    """
    Turns structural hints into a weight, clues and metadata.

    Results are cached per (element_id, site) when the hints carry an
    element_id; hints without one are always recomputed.
    """

    def __init__(
        self,
        profiles: Mapping[str, SiteProfile] | None = None,
        position_weights: Mapping[str, float] | None = None,
        cache: TTLCache | None = None,
        clock: Callable[[], float] = time.perf_counter,
        slow_analysis_ms: float = SLOW_ANALYSIS_MS,
    ):
        self.profiles = dict(profiles) if profiles is not None else dict(DEFAULT_SITE_PROFILES)
        self.position_weights = (
            dict(position_weights) if position_weights is not None else DEFAULT_POSITION_WEIGHTS
        )
        if cache is None:
            cache = TTLCache(capacity=500, ttl_seconds=60.0, name="structure")
        self.cache = cache
        self._clock = clock
        self.slow_analysis_ms = slow_analysis_ms

    def profile_for(self, site_id: str) -> SiteProfile:
        profile = self.profiles.get(site_id)
        if profile is None:
            logger.debug(f"No profile for site {site_id!r}, using generic")
            profile = self.profiles.get("generic", SiteProfile(name="generic"))
        return profile

    def analyze(self, hints: Any, site_id: str = "generic") -> StructuralAnalysis:
        """
        Analyze hints for a site. Never raises; failures yield the default analysis.

        Args:
            hints: StructuralHints, a mapping of the same shape, or None
            site_id: Site profile key ("forbes", "yahoo", ...)

        Returns:
            StructuralAnalysis
        """
        started = self._clock()
        try:
            hints = StructuralHints.coerce(hints)
            cache_key = (hints.element_id, site_id) if hints.element_id else None
            if cache_key is not None:
                cached = self.cache.get(cache_key)
                if cached is not None:
                    return cached

            analysis = self._analyze(hints, site_id, self.profile_for(site_id))
            if cache_key is not None:
                self.cache.set(cache_key, analysis)
        except Exception as e:
            logger.warning(f"Structural analysis failed for site {site_id!r}: {e}")
            return default_analysis(site_id)

        elapsed_ms = (self._clock() - started) * 1000.0
        if elapsed_ms > self.slow_analysis_ms:
            logger.warning(
                f"Structural analysis took {elapsed_ms:.1f}ms, exceeding {self.slow_analysis_ms}ms"
            )
        return analysis

    def _analyze(
        self, hints: StructuralHints, site_id: str, profile: SiteProfile
    ) -> StructuralAnalysis:
        tags: list[str] = []
        for tag in hints.position_tags:
            canonical = canonical_tag(tag)
            if canonical and canonical not in tags:
                tags.append(canonical)

        weight = self.structural_weight(tags)
        clues = tuple(self.extract_clues(hints, profile))
        metadata = hints.metadata.model_dump(exclude_none=True)
        confidence = self._confidence(weight, tags, clues, profile)
        return StructuralAnalysis(
            position_tags=tuple(tags),
            structural_weight=weight,
            clues=clues,
            metadata=metadata,
            confidence=confidence,
            site_id=site_id,
        )

    def structural_weight(self, tags: list[str] | tuple[str, ...]) -> float:
        """Max weight over recognized tags, or the default when none is recognized."""
        weights = [self.position_weights[t] for t in tags if t in self.position_weights]
        return max(weights) if weights else DEFAULT_STRUCTURAL_WEIGHT

    def extract_clues(self, hints: StructuralHints, profile: SiteProfile) -> list[ContextClue]:
        clues: list[ContextClue] = []
        for obs in hints.observations:
            for clue_type, value, confidence in self._observation_clues(obs, profile):
                if obs.relation == "ancestor":
                    confidence *= max(0.0, 1.0 - ANCESTOR_DECAY_PER_LEVEL * obs.distance)
                elif obs.relation == "sibling":
                    confidence *= SIBLING_FACTOR
                clues.append(
                    ContextClue(
                        type=clue_type,
                        value=value,
                        confidence=confidence,
                        distance=obs.distance,
                    )
                )
        return clues

    @staticmethod
    def _observation_clues(obs: HintObservation, profile: SiteProfile):
        if obs.kind == "pattern":
            yield (obs.name or "pattern", obs.value, PATTERN_CLUE_CONFIDENCE)
        elif obs.kind == "attribute":
            if obs.name.lower() in DATA_SYMBOL_ATTRIBUTES:
                yield ("data_attribute", obs.value.strip().upper(), DATA_ATTRIBUTE_CONFIDENCE)
            else:
                for name, pattern in profile.patterns.items():
                    match = pattern.search(obs.value)
                    if match:
                        value = match.group(1) if match.groups() else match.group(0)
                        yield (name, value, PATTERN_CLUE_CONFIDENCE)
        elif obs.kind == "link":
            for name, pattern in profile.patterns.items():
                match = pattern.search(obs.value)
                if match and match.groups():
                    yield (f"href_{name}", match.group(1), LINK_CLUE_CONFIDENCE)

    @staticmethod
    def _confidence(
        weight: float,
        tags: list[str],
        clues: tuple[ContextClue, ...],
        profile: SiteProfile,
    ) -> float:
        multipliers = profile.weight_multipliers
        confidence = weight
        if "h1" in tags and "in_headline" in multipliers:
            confidence *= multipliers["in_headline"]
        if "first_paragraph" in tags and "in_first_paragraph" in multipliers:
            confidence *= multipliers["in_first_paragraph"]
        if "quote" in tags and "in_quote" in multipliers:
            confidence *= multipliers["in_quote"]
        for clue in clues:
            if clue.type == "data_attribute" and "has_data_symbol" in multipliers:
                confidence *= multipliers["has_data_symbol"]
            elif "ticker" in clue.type and "has_ticker" in multipliers:
                confidence *= multipliers["has_ticker"]
            elif "company" in clue.type and "has_company_tag" in multipliers:
                confidence *= multipliers["has_company_tag"]
        return min(confidence, 1.0)
