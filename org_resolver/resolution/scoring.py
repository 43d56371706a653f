"""
Confidence Scoring Module.

Fuses five signals into one calibrated score per entity:

- pattern: base confidence of the pattern group, boosted or penalized by type
- structural: where the span sits in the document, plus strong clues
- extraction: extraction-level confidence, boosted by corroborating matches
- cross_reference: knowledge base exact/fuzzy match and industry agreement
- consistency: agreement between pattern text, resolved entity and clues

Each sub-score is computed as base x multipliers and clamped to [0, 1]
BEFORE the weighted average (clamp-then-combine). The final score is
rounded to 4 decimals and then bucketed into a level.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from org_resolver.config import ConfidenceThresholds, ConfidenceWeights
from org_resolver.resolution.models import (
    TYPE_WEIGHTS,
    Candidate,
    ConfidenceLevel,
    ConfidenceResult,
    EntityType,
    KnowledgeBaseMatch,
    ScoreBreakdown,
)
from org_resolver.resolution.structure import StructuralAnalysis
from org_resolver.utils.stats import ExecutionStats, RollingAverage

logger = logging.getLogger(__name__)

KNOWLEDGE_BASE_EXTRACTION_BONUS = 0.1
DEFAULT_CONSISTENCY = 0.7

FACTOR_LABELS = {
    "pattern": "pattern matching",
    "structural": "document position",
    "extraction": "extraction confidence",
    "cross_reference": "knowledge base verification",
    "consistency": "cross-signal consistency",
}

# Industry keywords per knowledge base industry, used for the consistency adjustment
INDUSTRY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "technology": ("tech", "software", "internet", "digital", "cloud", "semiconductor"),
    "finance": ("financ", "bank", "invest", "fund", "capital", "asset"),
    "retail": ("retail", "consumer", "store", "commerce", "shopping"),
    "automotive": ("auto", "vehicle", "car", "energy"),
}


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def confidence_level(score: float, thresholds: ConfidenceThresholds) -> ConfidenceLevel:
    """Bucket a score. Pure and monotonic in score."""
    if score >= thresholds.high:
        return ConfidenceLevel.HIGH
    if score >= thresholds.medium:
        return ConfidenceLevel.MEDIUM
    if score >= thresholds.low:
        return ConfidenceLevel.LOW
    return ConfidenceLevel.REJECT


def extraction_confidence(candidate: Candidate, has_knowledge_base_match: bool) -> float:
    """Per-candidate extraction confidence: base, plus a bonus for a knowledge base hit."""
    bonus = KNOWLEDGE_BASE_EXTRACTION_BONUS if has_knowledge_base_match else 0.0
    return min(1.0, candidate.base_confidence + bonus)


@dataclass(frozen=True)
class ExtractionSummary:
    """Extraction-level view shared by every candidate of one call."""

    confidence: float = 0.0
    # (normalized text, extraction confidence), best first
    ranked: tuple[tuple[str, float], ...] = ()

    @classmethod
    def build(cls, items: Iterable[tuple[Candidate, str, float]]) -> ExtractionSummary:
        """
        Summarize (candidate, normalized, extraction confidence) triples.

        The aggregate is the average of extraction confidences weighted by
        entity type (ticker 1.0 down to company_context 0.7).
        """
        items = list(items)
        if not items:
            return cls()
        weighted_sum = 0.0
        total_weight = 0.0
        for candidate, _, conf in items:
            weight = TYPE_WEIGHTS.get(candidate.entity_type, 0.5)
            weighted_sum += conf * weight
            total_weight += weight
        ranked = sorted(
            ((normalized, conf) for candidate, normalized, conf in items),
            key=lambda item: -item[1],
        )
        return cls(
            confidence=weighted_sum / total_weight if total_weight else 0.0,
            ranked=tuple(ranked),
        )


@dataclass(frozen=True)
class ScoringInput:
    """Everything the scorer needs for one candidate."""

    candidate: Candidate
    normalized: str
    entity: str  # Resolved entity string (knowledge base name, ticker or normalized text)
    structure: StructuralAnalysis
    extraction: ExtractionSummary
    extraction_confidence: float
    knowledge_base_match: KnowledgeBaseMatch | None = None
    context: Mapping[str, Any] = field(default_factory=dict)


def _word_jaccard(a: str, b: str) -> float:
    words1 = set(a.lower().split())
    words2 = set(b.lower().split())
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def industry_consistent(declared: str, known_industry: str) -> bool:
    declared = declared.lower()
    known = known_industry.lower()
    if declared == known or known in declared or declared in known:
        return True
    return any(keyword in declared for keyword in INDUSTRY_KEYWORDS.get(known, ()))


class ConfidenceScorer:
    """
    Multi-factor confidence scorer.

    A knowledge base may be injected; it is consulted for the
    cross-reference factor when the input does not already carry a match.
    """

    def __init__(
        self,
        weights: ConfidenceWeights | None = None,
        thresholds: ConfidenceThresholds | None = None,
        knowledge_base=None,
    ):
        self.weights = weights or ConfidenceWeights()
        self.thresholds = thresholds or ConfidenceThresholds()
        self.knowledge_base = knowledge_base
        self._stats = ExecutionStats(
            total_scored=0, high=0, medium=0, low=0, reject=0, error=0
        )
        self._average = RollingAverage()

    def score(self, inputs: ScoringInput) -> ConfidenceResult:
        """Score one candidate. Never raises; internal errors yield level 'error'."""
        try:
            breakdown = ScoreBreakdown(
                pattern=self.score_pattern(inputs.candidate),
                structural=self.score_structure(inputs.structure),
                extraction=self.score_extraction(inputs),
                cross_reference=self.score_cross_reference(inputs),
                consistency=self.score_consistency(inputs),
            )
            score = round(clamp(self._weighted(breakdown)), 4)
            level = confidence_level(score, self.thresholds)
            result = ConfidenceResult(
                score=score,
                level=level,
                breakdown=breakdown,
                recommendation=self.recommendation(level, breakdown),
            )
        except Exception as e:
            logger.warning(f"Scoring failed for {getattr(inputs, 'normalized', '?')!r}: {e}")
            result = ConfidenceResult(
                score=0.0,
                level=ConfidenceLevel.ERROR,
                breakdown=ScoreBreakdown(),
                recommendation="Unable to calculate confidence",
                error=str(e),
            )
        self._record(result)
        return result

    # ------------------------------------------------------------------
    # Sub-scores (each clamped)
    # ------------------------------------------------------------------

    @staticmethod
    def score_pattern(candidate: Candidate) -> float:
        score = candidate.base_confidence
        if candidate.entity_type == EntityType.TICKER:
            score *= 1.2
        elif candidate.pattern == "company_formal":
            score *= 1.1
        if candidate.entity_type == EntityType.COMPANY_CONTEXT:
            score *= 0.8
        return clamp(score)

    @staticmethod
    def score_structure(structure: StructuralAnalysis) -> float:
        score = structure.confidence
        if structure.has_tag("h1"):
            score *= 1.3
        elif structure.has_tag("h2"):
            score *= 1.2
        elif structure.has_tag("first_paragraph"):
            score *= 1.15
        if any(c.type == "data_attribute" or "ticker" in c.type for c in structure.clues):
            score *= 1.25
        return clamp(score)

    @staticmethod
    def score_extraction(inputs: ScoringInput) -> float:
        score = inputs.extraction_confidence
        ranked = inputs.extraction.ranked
        if ranked:
            if ranked[0][1] > 0.9:
                score *= 1.15
            if any(conf > 0.7 for _, conf in ranked[1:]):
                score *= 1.1
        return clamp(score)

    def _resolve_match(self, inputs: ScoringInput) -> KnowledgeBaseMatch | None:
        if inputs.knowledge_base_match is not None:
            return inputs.knowledge_base_match
        if self.knowledge_base is None:
            return None
        return self.knowledge_base.lookup(inputs.normalized, inputs.candidate.entity_type)

    def score_cross_reference(self, inputs: ScoringInput) -> float:
        match = self._resolve_match(inputs)
        if match is None:
            return 0.0
        if match.match_type == "exact_ticker":
            score = 1.0
        elif match.match_type in ("exact_name", "alias"):
            score = 0.9
        else:
            score = match.score * 0.8

        declared = (inputs.context or {}).get("industry")
        if declared and match.organization.industry:
            score *= 1.1 if industry_consistent(str(declared), match.organization.industry) else 0.9
        return clamp(score)

    @staticmethod
    def score_consistency(inputs: ScoringInput) -> float:
        checks: list[float] = []

        if inputs.normalized and inputs.entity:
            pattern_entity = inputs.normalized.lower()
            resolved = inputs.entity.lower()
            if pattern_entity == resolved:
                checks.append(1.0)
            elif _word_jaccard(pattern_entity, resolved) > 0.7:
                checks.append(0.8)
            else:
                checks.append(0.5)

        clues = inputs.structure.clues
        if clues:
            if inputs.candidate.entity_type == EntityType.TICKER:
                relevant = any(
                    "ticker" in c.type or "symbol" in c.type or c.type == "data_attribute"
                    for c in clues
                )
            else:
                relevant = any("company" in c.type for c in clues)
            checks.append(1.0 if relevant else 0.6)

        if not checks:
            return DEFAULT_CONSISTENCY
        return clamp(sum(checks) / len(checks))

    def _weighted(self, breakdown: ScoreBreakdown) -> float:
        w = self.weights
        total = w.total()
        return (
            w.pattern * breakdown.pattern
            + w.structural * breakdown.structural
            + w.extraction * breakdown.extraction
            + w.cross_reference * breakdown.cross_reference
            + w.consistency * breakdown.consistency
        ) / total

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @staticmethod
    def weakest_factor(breakdown: ScoreBreakdown) -> str:
        scores = {
            "pattern": breakdown.pattern,
            "structural": breakdown.structural,
            "extraction": breakdown.extraction,
            "cross_reference": breakdown.cross_reference,
            "consistency": breakdown.consistency,
        }
        weakest = min(scores, key=scores.get)
        return FACTOR_LABELS[weakest]

    def recommendation(self, level: ConfidenceLevel, breakdown: ScoreBreakdown) -> str | None:
        if level == ConfidenceLevel.HIGH:
            return None
        weakest = self.weakest_factor(breakdown)
        if level == ConfidenceLevel.MEDIUM:
            return f"Moderately reliable; verify {weakest}"
        if level == ConfidenceLevel.LOW:
            return f"Uncertain; weakest factor is {weakest}"
        return f"Not reliable; weakest factor is {weakest}"

    def _record(self, result: ConfidenceResult) -> None:
        self._stats.increment("total_scored")
        self._stats.increment(result.level.value)
        self._average.add(result.score)

    def get_statistics(self) -> dict:
        counts = self._stats.to_dict()
        total = counts.pop("total_scored", 0)
        return {
            "total_scored": total,
            "average_score": round(self._average.value, 4),
            "distribution_by_level": counts,
            "distribution_percentages": {
                level: round(count / total * 100, 1) if total else 0.0
                for level, count in counts.items()
            },
        }

    def adjust_thresholds(self, **updates: float) -> ConfidenceThresholds:
        """
        Replace some thresholds; the result must still be ordered high >= medium >= low.

        Raises:
            pydantic.ValidationError: If the new thresholds are out of order or range
        """
        self.thresholds = ConfidenceThresholds(**{**self.thresholds.model_dump(), **updates})
        logger.info(
            f"Confidence thresholds updated: high={self.thresholds.high} "
            f"medium={self.thresholds.medium} low={self.thresholds.low}"
        )
        return self.thresholds
