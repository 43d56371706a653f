"""
Entity Resolver Module.

Orchestrates the full resolution pipeline for one text span:

1. Sanitize and truncate the input
2. Check the result cache
3. Extract candidates under the extraction deadline
4. Normalize each candidate and look it up in the knowledge base
5. Fold pronoun and partial mentions into earlier entities (coreference)
6. Analyze the structural hints once for the enclosing span
7. Score every surviving entity
8. Rank by score, then text position, then type priority
9. Truncate to the maximum result count
10. Write through the cache

A failing candidate is skipped with a diagnostic; a failure anywhere else
returns an empty result with a pipeline_error diagnostic. resolve() never
raises.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from org_resolver.cache import TTLCache
from org_resolver.config import ResolverConfig
from org_resolver.resolution.coreference import (
    CoreferenceResolver,
    HeuristicCoreferenceResolver,
    Mention,
)
from org_resolver.resolution.knowledge_base import CompanyKnowledgeBase
from org_resolver.resolution.models import (
    TYPE_PRIORITY,
    Candidate,
    EntityType,
    KnowledgeBaseMatch,
    ResolutionResult,
    ResolvedEntity,
)
from org_resolver.resolution.normalizer import CompanyNormalizer
from org_resolver.resolution.patterns import PatternExtractor, describe_surroundings
from org_resolver.resolution.scoring import (
    ConfidenceScorer,
    ExtractionSummary,
    ScoringInput,
    extraction_confidence,
)
from org_resolver.resolution.structure import (
    StructuralAnalysis,
    StructuralContextAnalyzer,
    StructuralHints,
)
from org_resolver.utils.hashing import make_cache_key
from org_resolver.utils.security import sanitize_text
from org_resolver.utils.stats import ExecutionStats, RollingAverage

logger = logging.getLogger(__name__)

# Minimum company_name_ratio for another entity in the same text to count as a variation
VARIATION_THRESHOLD = 0.75


@dataclass(frozen=True)
class _Resolved:
    """A candidate after normalization and lookup, before scoring."""

    candidate: Candidate
    normalized: str
    match: KnowledgeBaseMatch | None
    extraction_confidence: float
    surroundings: dict


def ranking_key(entity: ResolvedEntity) -> tuple[float, int, int]:
    """Sort key: score descending, then text position, then type priority."""
    return (-entity.confidence.score, entity.start, TYPE_PRIORITY.get(entity.entity_type, 99))


def normalize_ticker_text(text: str) -> str:
    return text.strip().lstrip("$").upper()


class EntityResolver:
    """
    Main entity resolution orchestrator.

    Every collaborator is injectable; anything not supplied is built from
    the configuration. The resolver shares its knowledge base with the
    scorer so cross-reference scoring sees the same records.

    Example:
        >>> resolver = EntityResolver()
        >>> result = resolver.resolve("$AAPL rose 3% today")
        >>> result.entities[0].normalized, result.entities[0].entity_type.value
        ('AAPL', 'ticker')
    """

    def __init__(
        self,
        config: ResolverConfig | None = None,
        normalizer: CompanyNormalizer | None = None,
        extractor: PatternExtractor | None = None,
        knowledge_base: CompanyKnowledgeBase | None = None,
        analyzer: StructuralContextAnalyzer | None = None,
        scorer: ConfidenceScorer | None = None,
        coreference: CoreferenceResolver | None = None,
        cache: TTLCache | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        """
        Initialize resolver with configurable components.

        Args:
            config: Resolver configuration (default: ResolverConfig())
            normalizer: Company name normalizer
            extractor: Pattern extractor (default: built from config.extraction)
            knowledge_base: Known organizations (default: seeded knowledge base)
            analyzer: Structural context analyzer
            scorer: Confidence scorer (default: config weights and thresholds)
            coreference: Coreference strategy (default: heuristic)
            cache: Result cache (default: built from config.result_cache)
            clock: Time source for processing-time statistics
        """
        self.config = config or ResolverConfig()
        self.normalizer = normalizer or CompanyNormalizer()
        self.extractor = extractor or PatternExtractor(
            max_entities=self.config.extraction.max_entities,
            deadline_ms=self.config.extraction.deadline_ms,
        )
        if knowledge_base is None:
            knowledge_base = CompanyKnowledgeBase(
                normalizer=self.normalizer,
                cache=TTLCache.from_config(self.config.knowledge_base_cache, name="knowledge_base"),
                fuzzy_threshold=self.config.fuzzy_match_threshold,
            )
        self.knowledge_base = knowledge_base
        self.analyzer = analyzer or StructuralContextAnalyzer(
            cache=TTLCache.from_config(self.config.structure_cache, name="structure"),
        )
        self.scorer = scorer or ConfidenceScorer(
            weights=self.config.weights,
            thresholds=self.config.thresholds,
            knowledge_base=self.knowledge_base,
        )
        self.coreference = coreference or HeuristicCoreferenceResolver()
        if cache is None:
            cache = TTLCache.from_config(self.config.result_cache, name="results")
        self.cache = cache
        self._clock = clock

        self._stats = ExecutionStats(
            total_processed=0,
            cache_hits=0,
            extraction_timeouts=0,
            candidate_failures=0,
            pipeline_errors=0,
        )
        self._processing_ms = RollingAverage()

    def resolve(
        self,
        text: Any,
        site_id: str = "generic",
        hints: Any = None,
        context: Mapping[str, Any] | None = None,
    ) -> ResolutionResult:
        """
        Resolve all organization mentions in a text span.

        Args:
            text: Text span (non-strings are coerced, markup stripped)
            site_id: Site profile key for structural analysis
            hints: StructuralHints or a mapping of the same shape
            context: Optional cross-document context, e.g. {"industry": "Finance"}

        Returns:
            ResolutionResult with ranked entities and any diagnostics
        """
        started = self._clock()
        self._stats.increment("total_processed")
        try:
            result = self._resolve(text, site_id, hints, context)
        except Exception as e:
            logger.error(f"Resolution pipeline failed: {e}", exc_info=True)
            self._stats.increment("pipeline_errors")
            result = ResolutionResult(diagnostics=(f"pipeline_error: {e}",))
        self._processing_ms.add((self._clock() - started) * 1000.0)
        return result

    def _resolve(
        self,
        text: Any,
        site_id: str,
        hints: Any,
        context: Mapping[str, Any] | None,
    ) -> ResolutionResult:
        # 1. Sanitize. Input diagnostics belong to this call and never enter the cache.
        sanitized, input_diagnostics = sanitize_text(text, self.config.extraction.max_input_length)
        site_id = site_id if isinstance(site_id, str) and site_id else "generic"
        hints_model = self._coerce_hints(hints, input_diagnostics)
        if context is not None and not isinstance(context, Mapping):
            input_diagnostics.append(
                f"malformed_input: ignored context of type {type(context).__name__}"
            )
            context = None
        context = dict(context or {})

        if not sanitized:
            return ResolutionResult(diagnostics=tuple(input_diagnostics))

        # 2. Result cache
        cache_key = make_cache_key(sanitized, site_id, hints_model.cache_payload(), context)
        cached = self.cache.get(cache_key)
        if cached is not None:
            self._stats.increment("cache_hits")
            logger.debug(f"Result cache hit for {len(sanitized)}-char text on {site_id!r}")
            return self._with_input_diagnostics(cached, input_diagnostics)

        diagnostics: list[str] = []

        # 3. Extraction
        extraction = self.extractor.extract(sanitized)
        if extraction.timed_out:
            self._stats.increment("extraction_timeouts")
            diagnostics.append(
                f"soft_timeout: extraction exceeded {self.extractor.deadline_ms}ms, "
                f"kept {len(extraction.candidates)} candidates"
            )
        for group in extraction.failed_groups:
            diagnostics.append(f"pattern_failure: group {group!r} skipped")

        # 4. Normalize and look up
        resolved: list[_Resolved] = []
        references: list[Candidate] = []
        for candidate in extraction.candidates:
            if candidate.reference:
                references.append(candidate)
                continue
            try:
                item = self._resolve_candidate(candidate, sanitized)
            except Exception as e:
                logger.warning(f"Skipping candidate {candidate.text!r}: {e}")
                self._stats.increment("candidate_failures")
                diagnostics.append(f"candidate_failure: {candidate.text!r}: {e}")
                continue
            if item is not None:
                resolved.append(item)

        # 5. Coreference
        mentions = [
            Mention(
                key=i,
                text=item.candidate.text,
                normalized=item.normalized,
                start=item.candidate.start,
                confidence=item.candidate.base_confidence,
            )
            for i, item in enumerate(resolved)
        ]
        offset = len(mentions)
        mentions.extend(
            Mention(
                key=offset + i,
                text=c.text,
                normalized=c.text.lower(),
                start=c.start,
                confidence=c.base_confidence,
                reference=True,
            )
            for i, c in enumerate(references)
        )
        coreference = self.coreference.resolve(mentions)
        for phrase in coreference.unattached:
            diagnostics.append(f"unattached_reference: {phrase.text!r} at {phrase.start}")
        primaries = [resolved[m.key] for m in coreference.primaries]

        # 6. Structural analysis, once per call
        structure = self.analyzer.analyze(hints_model, site_id)

        # 7. Score
        summary = ExtractionSummary.build(
            (item.candidate, item.normalized, item.extraction_confidence) for item in primaries
        )
        entities: list[ResolvedEntity] = []
        for mention, item in zip(coreference.primaries, primaries):
            confidence = self.scorer.score(
                ScoringInput(
                    candidate=item.candidate,
                    normalized=item.normalized,
                    entity=self._entity_string(item),
                    structure=structure,
                    extraction=summary,
                    extraction_confidence=item.extraction_confidence,
                    knowledge_base_match=item.match,
                    context=context,
                )
            )
            if confidence.score < self.config.min_confidence:
                logger.debug(
                    f"Dropping {item.normalized!r}: score {confidence.score} "
                    f"below {self.config.min_confidence}"
                )
                continue
            entities.append(
                ResolvedEntity(
                    text=item.candidate.text,
                    normalized=item.normalized,
                    entity_type=item.candidate.entity_type,
                    start=item.candidate.start,
                    confidence=confidence,
                    known_organization=item.match.organization if item.match else None,
                    variations=self._variations(item, primaries),
                    references=coreference.references_for(mention.key),
                    context_metadata=self._context_metadata(item, structure),
                )
            )

        # 8-9. Rank and truncate
        entities.sort(key=ranking_key)
        result = ResolutionResult(
            entities=tuple(entities[: self.config.max_results]),
            diagnostics=tuple(diagnostics),
        )

        # 10. Write through, unless the result is degraded by a timeout
        if not extraction.timed_out:
            self.cache.set(cache_key, result)
        return self._with_input_diagnostics(result, input_diagnostics)

    # ------------------------------------------------------------------
    # Stage helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _with_input_diagnostics(
        result: ResolutionResult, input_diagnostics: list[str]
    ) -> ResolutionResult:
        if not input_diagnostics:
            return result
        return replace(result, diagnostics=(*input_diagnostics, *result.diagnostics))

    @staticmethod
    def _coerce_hints(hints: Any, diagnostics: list[str]) -> StructuralHints:
        try:
            return StructuralHints.coerce(hints)
        except (TypeError, ValueError) as e:
            # pydantic.ValidationError is a ValueError
            diagnostics.append(f"malformed_input: ignored structural hints ({str(e).splitlines()[0]})")
            return StructuralHints()

    def _resolve_candidate(self, candidate: Candidate, text: str) -> _Resolved | None:
        if candidate.entity_type == EntityType.TICKER:
            normalized = normalize_ticker_text(candidate.text)
        else:
            normalized = self.normalizer.normalize(candidate.text)
        if not normalized:
            logger.debug(f"Candidate {candidate.text!r} normalized to nothing")
            return None
        match = self.knowledge_base.lookup(normalized, candidate.entity_type)
        return _Resolved(
            candidate=candidate,
            normalized=normalized,
            match=match,
            extraction_confidence=extraction_confidence(candidate, match is not None),
            surroundings=describe_surroundings(text, candidate.start, candidate.end),
        )

    @staticmethod
    def _entity_string(item: _Resolved) -> str:
        if item.match is None:
            return item.normalized
        org = item.match.organization
        if item.match.match_type == "exact_ticker" and org.ticker:
            return org.ticker
        return org.normalized_name or org.name

    def _variations(self, item: _Resolved, primaries: list[_Resolved]) -> tuple[str, ...]:
        variations: list[str] = []
        if item.match is not None:
            variations.extend(self.knowledge_base.get_variations(item.match.organization.id))
        matcher = self.knowledge_base.matcher
        for other in primaries:
            if other is item or other.normalized == item.normalized:
                continue
            if matcher.company_name_ratio(item.normalized, other.normalized) >= VARIATION_THRESHOLD:
                variations.append(other.normalized)

        unique: list[str] = []
        for value in variations:
            if value and value != item.normalized and value not in unique:
                unique.append(value)
        return tuple(unique)

    @staticmethod
    def _context_metadata(item: _Resolved, structure: StructuralAnalysis) -> dict:
        metadata = {k: v for k, v in item.surroundings.items() if v}
        if structure.position_tags:
            metadata["position_tags"] = list(structure.position_tags)
        if structure.clues:
            metadata["clues"] = [c.to_dict() for c in structure.clues]
        if structure.metadata:
            metadata["page"] = dict(structure.metadata)
        return metadata

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def get_performance_stats(self) -> dict:
        """Counters, average processing time and cache statistics."""
        stats: dict[str, Any] = self._stats.to_dict()
        total = stats["total_processed"]
        stats["cache_hit_rate"] = round(stats["cache_hits"] / total, 4) if total else 0.0
        stats["average_processing_ms"] = round(self._processing_ms.value, 3)
        stats["caches"] = {
            "results": self.cache.stats(),
            "structure": self.analyzer.cache.stats(),
            "knowledge_base": self.knowledge_base.cache.stats(),
        }
        stats["scoring"] = self.scorer.get_statistics()
        return stats

    def clear_cache(self) -> int:
        """Drop every cached result, structural analysis and knowledge base query."""
        cleared = self.cache.clear() + self.analyzer.cache.clear() + self.knowledge_base.cache.clear()
        logger.info(f"Cleared {cleared} cached entries")
        return cleared


def build_resolver(
    config: ResolverConfig | None = None,
    knowledge_base: CompanyKnowledgeBase | None = None,
) -> EntityResolver:
    """
    Build a resolver whose components all share one normalizer.

    Args:
        config: Resolver configuration (default: ResolverConfig())
        knowledge_base: Existing knowledge base to resolve against

    Returns:
        Configured EntityResolver
    """
    config = config or ResolverConfig()
    normalizer = knowledge_base.normalizer if knowledge_base is not None else CompanyNormalizer()
    resolver = EntityResolver(config=config, normalizer=normalizer, knowledge_base=knowledge_base)
    logger.debug(
        f"Built resolver: {len(resolver.knowledge_base)} organizations, "
        f"deadline {config.extraction.deadline_ms}ms, max {config.max_results} results"
    )
    return resolver
