"""
Tests for the end-to-end entity resolver.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from org_resolver.config import ResolverConfig
from org_resolver.exceptions import KnowledgeBaseImportError
from org_resolver.resolution.knowledge_base import CompanyKnowledgeBase
from org_resolver.resolution.models import (
    ConfidenceLevel,
    ConfidenceResult,
    EntityType,
    ResolvedEntity,
    ScoreBreakdown,
)
from org_resolver.resolution.patterns import DEFAULT_PATTERN_GROUPS, PatternExtractor, PatternGroup
from org_resolver.resolution.resolver import EntityResolver, build_resolver, ranking_key


class TestResolveExamples:
    def test_formal_company(self, resolver):
        result = resolver.resolve("BlackRock Inc. announced quarterly earnings")
        assert len(result.entities) == 1
        entity = result.entities[0]
        assert entity.text == "BlackRock Inc."
        assert entity.entity_type == EntityType.COMPANY
        assert entity.normalized == "BlackRock"
        assert entity.confidence.level == ConfidenceLevel.HIGH
        assert entity.known_organization.id == "blackrock"
        assert "BLK" in entity.variations

    def test_ticker(self, resolver):
        result = resolver.resolve("$AAPL rose 3% today")
        assert [(e.normalized, e.entity_type) for e in result.entities] == [("AAPL", EntityType.TICKER)]
        assert result.entities[0].confidence.score >= 0.9
        assert result.entities[0].known_organization.name == "Apple Inc."

    def test_common_noun_is_not_an_organization(self, resolver):
        result = resolver.resolve("I bought an apple and an Apple pie at the market")
        assert all(e.confidence.level == ConfidenceLevel.REJECT for e in result.entities)

    def test_pronoun_folds_into_entity(self, resolver):
        result = resolver.resolve(
            "Tesla Inc. reported record deliveries. The company expects growth."
        )
        assert len(result.entities) == 1
        entity = result.entities[0]
        assert entity.normalized == "Tesla"
        assert [(r.text, r.relation) for r in entity.references] == [("The company", "pronoun")]
        assert result.diagnostics == ()

    def test_it_folds_into_entity(self, resolver):
        result = resolver.resolve("Tesla Inc. posted results. Later, it raised guidance.")
        assert [e.normalized for e in result.entities] == ["Tesla"]
        assert [(r.text, r.relation) for r in result.entities[0].references] == [("it", "pronoun")]
        assert result.diagnostics == ()

    def test_unattached_reference(self, resolver):
        result = resolver.resolve("The company said BlackRock Inc. agreed")
        assert [e.normalized for e in result.entities] == ["BlackRock"]
        assert "unattached_reference: 'The company' at 0" in result.diagnostics

    def test_headline_examples(self, resolver):
        blackrock = resolver.resolve("BlackRock Inc. manages $9 trillion in client assets.", "generic", {})
        assert [(e.normalized, e.entity_type, e.confidence.level) for e in blackrock.entities] == [
            ("BlackRock", EntityType.COMPANY, ConfidenceLevel.HIGH)
        ]

        assert resolver.resolve("Apple", "generic", {}).entities == ()

        tesla = resolver.resolve(
            "Tesla Inc. posted results. Later, the company raised guidance.", "generic", {}
        )
        assert [e.normalized for e in tesla.entities] == ["Tesla"]
        assert [r.text for r in tesla.entities[0].references] == ["the company"]

    def test_structural_hints_raise_confidence(self, resolver):
        hints = {
            "position_tags": ["headline"],
            "observations": [{"kind": "attribute", "name": "data-symbol", "value": "AAPL"}],
        }
        result = resolver.resolve("$AAPL rose", site_id="yahoo", hints=hints)
        entity = result.entities[0]
        assert entity.confidence.score == 1.0
        assert entity.context_metadata["position_tags"] == ["h1"]
        assert entity.context_metadata["clues"][0]["type"] == "data_attribute"

    def test_to_dict(self, resolver):
        data = resolver.resolve("$AAPL rose 3% today").to_dict()
        entity = data["entities"][0]
        assert entity["type"] == "ticker"
        assert entity["confidence"]["level"] == "high"
        assert entity["known_organization"]["id"] == "apple"
        assert data["diagnostics"] == []


class TestRanking:
    def test_sorted_by_score(self, resolver):
        result = resolver.resolve("BlackRock Inc. and $AAPL")
        assert [e.normalized for e in result.entities] == ["AAPL", "BlackRock"]
        scores = [e.confidence.score for e in result.entities]
        assert scores == sorted(scores, reverse=True)

    def test_equal_scores_keep_text_order(self, resolver):
        result = resolver.resolve("$MSFT and $AAPL")
        assert [(e.normalized, e.start) for e in result.entities] == [("MSFT", 1), ("AAPL", 11)]
        assert [e.confidence.score for e in result.entities] == [pytest.approx(0.9)] * 2

    def test_type_priority_breaks_remaining_ties(self):
        def entity(text, entity_type, score=0.8, start=0):
            confidence = ConfidenceResult(score, ConfidenceLevel.MEDIUM, ScoreBreakdown())
            return ResolvedEntity(text, text, entity_type, start, confidence)

        entities = [
            entity("Acme Corp.", EntityType.COMPANY_CONTEXT),
            entity("Acme Corp.", EntityType.COMPANY),
            entity("ACME", EntityType.TICKER),
            entity("Globex", EntityType.COMPANY_CONTEXT, score=0.95, start=30),
            entity("Initech", EntityType.TICKER, start=5),
        ]
        entities.sort(key=ranking_key)
        assert [(e.text, e.entity_type) for e in entities] == [
            ("Globex", EntityType.COMPANY_CONTEXT),
            ("ACME", EntityType.TICKER),
            ("Acme Corp.", EntityType.COMPANY),
            ("Acme Corp.", EntityType.COMPANY_CONTEXT),
            ("Initech", EntityType.TICKER),
        ]

    def test_max_results(self, knowledge_base):
        resolver = EntityResolver(
            config=ResolverConfig(max_results=1),
            normalizer=knowledge_base.normalizer,
            knowledge_base=knowledge_base,
        )
        result = resolver.resolve("BlackRock Inc. and $AAPL")
        assert [e.normalized for e in result.entities] == ["AAPL"]

    def test_min_confidence(self, knowledge_base):
        resolver = EntityResolver(
            config=ResolverConfig(min_confidence=0.89),
            normalizer=knowledge_base.normalizer,
            knowledge_base=knowledge_base,
        )
        result = resolver.resolve("BlackRock Inc. and $AAPL")
        assert [e.normalized for e in result.entities] == ["AAPL"]


class TestCaching:
    def test_repeat_call_is_served_from_cache(self, resolver):
        first = resolver.resolve("BlackRock Inc. announced quarterly earnings")
        second = resolver.resolve("BlackRock Inc. announced quarterly earnings")
        assert second is first
        assert resolver.get_performance_stats()["cache_hits"] == 1

    def test_hints_are_part_of_the_key(self, resolver):
        first = resolver.resolve("$AAPL rose")
        second = resolver.resolve("$AAPL rose", hints={"position_tags": ["footer"]})
        assert second is not first

    def test_knowledge_base_change_visible_after_ttl(self, resolver, knowledge_base, fake_clock):
        text = "Widget Holdings expanded overseas"
        first = resolver.resolve(text)
        assert first.entities[0].known_organization is None

        knowledge_base.add_organization({"id": "widget", "name": "Widget Holdings"})
        assert resolver.resolve(text) is first

        fake_clock.advance(300)
        refreshed = resolver.resolve(text)
        assert refreshed.entities[0].known_organization.id == "widget"

    def test_clear_cache(self, resolver):
        first = resolver.resolve("$AAPL rose")
        assert resolver.clear_cache() >= 1
        assert resolver.resolve("$AAPL rose") is not first

    def test_input_diagnostics_are_not_cached(self, resolver):
        malformed = resolver.resolve("$AAPL rose", hints=["h1"])
        assert any(d.startswith("malformed_input:") for d in malformed.diagnostics)

        clean = resolver.resolve("$AAPL rose")
        assert clean.diagnostics == ()
        assert clean.entities == malformed.entities
        assert resolver.get_performance_stats()["cache_hits"] == 1

    def test_input_diagnostics_reported_on_cache_hit(self, resolver):
        clean = resolver.resolve("$AAPL rose")
        malformed = resolver.resolve("$AAPL rose", hints=["h1"], context="finance")
        assert clean.diagnostics == ()
        assert malformed.entities == clean.entities
        assert "malformed_input: ignored context of type str" in malformed.diagnostics

    def test_timed_out_result_is_not_cached(self, knowledge_base, stepping_clock):
        extractor = PatternExtractor(deadline_ms=25.0, clock=stepping_clock(0.01))
        resolver = EntityResolver(
            normalizer=knowledge_base.normalizer,
            extractor=extractor,
            knowledge_base=knowledge_base,
        )
        result = resolver.resolve("Acme Corp. beat $MSFT while Widget Holdings lagged")
        assert any(d.startswith("soft_timeout:") for d in result.diagnostics)
        assert len(resolver.cache) == 0
        assert resolver.get_performance_stats()["extraction_timeouts"] == 1


class TestDegradation:
    def test_none_and_empty(self, resolver):
        assert resolver.resolve(None).entities == ()
        assert resolver.resolve("   ").entities == ()

    def test_non_string_input(self, resolver):
        result = resolver.resolve(12345)
        assert result.entities == ()
        assert "malformed_input: coerced int to text" in result.diagnostics

        result = resolver.resolve(b"$AAPL rose")
        assert [e.normalized for e in result.entities] == ["AAPL"]
        assert "malformed_input: decoded bytes" in result.diagnostics

    def test_markup_is_stripped(self, resolver):
        result = resolver.resolve("<b>BlackRock Inc.</b> rallied<script>alert(1)</script>")
        assert [e.text for e in result.entities] == ["BlackRock Inc."]
        assert "malformed_input: removed markup" in result.diagnostics

    def test_malformed_hints_and_context(self, resolver):
        result = resolver.resolve("$AAPL rose", hints=["h1"], context="finance")
        assert [e.normalized for e in result.entities] == ["AAPL"]
        assert any(d.startswith("malformed_input: ignored structural hints") for d in result.diagnostics)
        assert "malformed_input: ignored context of type str" in result.diagnostics

    def test_invalid_pattern_group_is_reported(self, knowledge_base):
        broken = PatternGroup(
            name="broken", patterns=("(",), entity_type=EntityType.COMPANY, confidence=0.9
        )
        resolver = EntityResolver(
            normalizer=knowledge_base.normalizer,
            extractor=PatternExtractor(groups=(*DEFAULT_PATTERN_GROUPS, broken)),
            knowledge_base=knowledge_base,
        )
        result = resolver.resolve("$AAPL rose")
        assert [e.normalized for e in result.entities] == ["AAPL"]
        assert "pattern_failure: group 'broken' skipped" in result.diagnostics

    def test_candidate_failure_skips_only_that_candidate(self):
        class FlakyKnowledgeBase(CompanyKnowledgeBase):
            def lookup(self, text, entity_type=None, threshold=None):
                if text == "AAPL":
                    raise RuntimeError("lookup unavailable")
                return super().lookup(text, entity_type, threshold)

        knowledge_base = FlakyKnowledgeBase()
        resolver = EntityResolver(normalizer=knowledge_base.normalizer, knowledge_base=knowledge_base)
        result = resolver.resolve("BlackRock Inc. and $AAPL")
        assert [e.normalized for e in result.entities] == ["BlackRock"]
        assert "candidate_failure: 'AAPL': lookup unavailable" in result.diagnostics
        assert resolver.get_performance_stats()["candidate_failures"] == 1

    def test_pipeline_error(self, knowledge_base):
        class ExplodingExtractor(PatternExtractor):
            def extract(self, text):
                raise RuntimeError("boom")

        resolver = EntityResolver(
            normalizer=knowledge_base.normalizer,
            extractor=ExplodingExtractor(),
            knowledge_base=knowledge_base,
        )
        result = resolver.resolve("$AAPL rose")
        assert result.entities == ()
        assert result.diagnostics == ("pipeline_error: boom",)
        assert resolver.get_performance_stats()["pipeline_errors"] == 1

    def test_failed_import_keeps_lookups(self, resolver, knowledge_base):
        with pytest.raises(KnowledgeBaseImportError):
            knowledge_base.import_state("{not json")
        result = resolver.resolve("$AAPL rose")
        assert result.entities[0].known_organization.id == "apple"


class TestMaintenance:
    def test_performance_stats(self, resolver):
        resolver.resolve("$AAPL rose")
        resolver.resolve("$AAPL rose")
        stats = resolver.get_performance_stats()
        assert stats["total_processed"] == 2
        assert stats["cache_hit_rate"] == 0.5
        assert set(stats["caches"]) == {"results", "structure", "knowledge_base"}
        assert stats["scoring"]["total_scored"] == 1
        assert stats["average_processing_ms"] >= 0

    def test_concurrent_resolution(self, resolver):
        texts = ["$AAPL rose", "BlackRock Inc. announced quarterly earnings"] * 10
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(resolver.resolve, texts))
        assert {r.entities[0].normalized for r in results} == {"AAPL", "BlackRock"}
        assert resolver.get_performance_stats()["total_processed"] == 20


class TestBuildResolver:
    def test_defaults(self):
        resolver = build_resolver()
        assert resolver.normalizer is resolver.knowledge_base.normalizer
        assert resolver.scorer.knowledge_base is resolver.knowledge_base

    def test_existing_knowledge_base(self, knowledge_base):
        resolver = build_resolver(ResolverConfig(max_results=3), knowledge_base)
        assert resolver.knowledge_base is knowledge_base
        assert resolver.config.max_results == 3
