"""
Unit tests for confidence scoring.
"""

import pytest
from pydantic import ValidationError

from org_resolver.config import ConfidenceThresholds
from org_resolver.resolution.models import (
    Candidate,
    ConfidenceLevel,
    EntityType,
    KnowledgeBaseMatch,
    KnownOrganization,
)
from org_resolver.resolution.scoring import (
    ConfidenceScorer,
    ExtractionSummary,
    ScoringInput,
    confidence_level,
    extraction_confidence,
    industry_consistent,
)
from org_resolver.resolution.structure import ContextClue, StructuralAnalysis

ACME = KnownOrganization(id="acme", name="Acme Corp", industry="Technology", ticker="ACME")


def make_candidate(text, entity_type=EntityType.COMPANY, pattern="company_formal", confidence=0.9):
    return Candidate(
        text=text,
        start=0,
        end=len(text),
        pattern=pattern,
        entity_type=entity_type,
        base_confidence=confidence,
    )


def make_input(candidate, normalized, entity=None, match=None, structure=None, context=None):
    ext = extraction_confidence(candidate, match is not None)
    return ScoringInput(
        candidate=candidate,
        normalized=normalized,
        entity=entity if entity is not None else normalized,
        structure=structure or StructuralAnalysis(),
        extraction=ExtractionSummary.build([(candidate, normalized, ext)]),
        extraction_confidence=ext,
        knowledge_base_match=match,
        context=context or {},
    )


class TestConfidenceLevel:
    @pytest.mark.parametrize(
        "score,level",
        [
            (1.0, ConfidenceLevel.HIGH),
            (0.85, ConfidenceLevel.HIGH),
            (0.84, ConfidenceLevel.MEDIUM),
            (0.65, ConfidenceLevel.MEDIUM),
            (0.5, ConfidenceLevel.LOW),
            (0.44, ConfidenceLevel.REJECT),
            (0.0, ConfidenceLevel.REJECT),
        ],
    )
    def test_buckets(self, score, level):
        assert confidence_level(score, ConfidenceThresholds()) == level

    def test_monotonic(self):
        order = [ConfidenceLevel.REJECT, ConfidenceLevel.LOW, ConfidenceLevel.MEDIUM, ConfidenceLevel.HIGH]
        ranks = [order.index(confidence_level(i / 100, ConfidenceThresholds())) for i in range(101)]
        assert ranks == sorted(ranks)


class TestExtractionSummary:
    def test_empty(self):
        summary = ExtractionSummary.build([])
        assert summary.confidence == 0.0
        assert summary.ranked == ()

    def test_type_weighted_average(self):
        ticker = make_candidate("AAPL", EntityType.TICKER, "ticker_symbol", 0.95)
        company = make_candidate("Acme Corp")
        summary = ExtractionSummary.build([(ticker, "AAPL", 1.0), (company, "Acme", 0.9)])
        assert summary.confidence == pytest.approx((1.0 + 0.9 * 0.9) / 1.9)
        assert summary.ranked == (("AAPL", 1.0), ("Acme", 0.9))

    def test_knowledge_base_bonus_is_capped(self):
        assert extraction_confidence(make_candidate("Acme Corp"), True) == 1.0
        assert extraction_confidence(make_candidate("Acme", confidence=0.75), True) == pytest.approx(0.85)
        assert extraction_confidence(make_candidate("Acme", confidence=0.75), False) == 0.75


class TestSubScores:
    def test_pattern_adjustments(self):
        assert ConfidenceScorer.score_pattern(
            make_candidate("AAPL", EntityType.TICKER, "ticker_symbol", 0.95)
        ) == 1.0
        assert ConfidenceScorer.score_pattern(make_candidate("Acme Corp")) == pytest.approx(0.99)
        assert ConfidenceScorer.score_pattern(
            make_candidate("Acme", EntityType.COMPANY_CONTEXT, "context_indicators", 0.75)
        ) == pytest.approx(0.6)

    def test_structure_adjustments(self):
        assert ConfidenceScorer.score_structure(
            StructuralAnalysis(position_tags=("h1",), confidence=0.6)
        ) == pytest.approx(0.78)
        clue = ContextClue(type="data_attribute", value="AAPL", confidence=0.95)
        assert ConfidenceScorer.score_structure(
            StructuralAnalysis(position_tags=("h1",), clues=(clue,), confidence=0.6)
        ) == pytest.approx(0.975)
        assert ConfidenceScorer.score_structure(StructuralAnalysis(confidence=1.0, position_tags=("h2",))) == 1.0

    def test_extraction_boosts(self):
        candidate = make_candidate("Acme Corp")
        corroborated = ScoringInput(
            candidate=candidate,
            normalized="Acme",
            entity="Acme",
            structure=StructuralAnalysis(),
            extraction=ExtractionSummary(confidence=0.8, ranked=(("Acme", 0.8), ("Other", 0.75))),
            extraction_confidence=0.75,
        )
        assert ConfidenceScorer.score_extraction(corroborated) == pytest.approx(0.825)

    def test_cross_reference_without_match(self):
        scorer = ConfidenceScorer()
        assert scorer.score_cross_reference(make_input(make_candidate("Acme Corp"), "Acme")) == 0.0

    def test_cross_reference_uses_injected_knowledge_base(self, knowledge_base):
        scorer = ConfidenceScorer(knowledge_base=knowledge_base)
        inputs = make_input(make_candidate("AAPL", EntityType.TICKER, "ticker_symbol", 0.95), "AAPL")
        assert scorer.score_cross_reference(inputs) == 1.0

    @pytest.mark.parametrize(
        "industry,expected",
        [(None, 0.72), ("technology", 0.792), ("software and cloud", 0.792), ("Finance", 0.648)],
    )
    def test_cross_reference_industry(self, industry, expected):
        match = KnowledgeBaseMatch(ACME, 0.9, "name", "fuzzy", "Acme Corp")
        context = {"industry": industry} if industry else {}
        inputs = make_input(make_candidate("Acme Corp"), "Acme", match=match, context=context)
        assert ConfidenceScorer().score_cross_reference(inputs) == pytest.approx(expected)

    def test_industry_consistent(self):
        assert industry_consistent("Technology", "Technology")
        assert industry_consistent("investment banking", "finance")
        assert not industry_consistent("healthcare", "finance")

    def test_consistency(self):
        candidate = make_candidate("Tesla Motors Inc.")
        # no clues: only the text check counts
        assert ConfidenceScorer.score_consistency(make_input(candidate, "Tesla Motors", entity="Tesla Motors")) == 1.0
        company_clue = ContextClue(type="company_tag", value="Tesla", confidence=0.9)
        inputs = make_input(
            candidate,
            "Tesla Motors",
            entity="Tesla",
            structure=StructuralAnalysis(clues=(company_clue,)),
        )
        # jaccard 1/2 -> 0.5, relevant clue -> 1.0
        assert ConfidenceScorer.score_consistency(inputs) == pytest.approx(0.75)

    def test_consistency_ticker_clue_mismatch(self):
        candidate = make_candidate("AAPL", EntityType.TICKER, "ticker_symbol", 0.95)
        clue = ContextClue(type="company_tag", value="Apple", confidence=0.9)
        inputs = make_input(candidate, "AAPL", structure=StructuralAnalysis(clues=(clue,)))
        assert ConfidenceScorer.score_consistency(inputs) == pytest.approx(0.8)


class TestScore:
    def test_exact_ticker_is_high(self, knowledge_base):
        scorer = ConfidenceScorer(knowledge_base=knowledge_base)
        candidate = make_candidate("AAPL", EntityType.TICKER, "ticker_symbol", 0.95)
        match = knowledge_base.lookup("AAPL", EntityType.TICKER)
        result = scorer.score(make_input(candidate, "AAPL", match=match))
        assert result.score == pytest.approx(0.9)
        assert result.level == ConfidenceLevel.HIGH
        assert result.recommendation is None

    def test_formal_company_with_name_match_is_high(self, knowledge_base):
        match = knowledge_base.lookup("BlackRock")
        assert match is not None and match.match_type == "exact_name"
        result = ConfidenceScorer().score(
            make_input(make_candidate("BlackRock Inc."), "BlackRock", entity="BlackRock", match=match)
        )
        assert result.score == pytest.approx(0.8825)
        assert result.level == ConfidenceLevel.HIGH

    def test_unknown_context_mention_is_low(self):
        candidate = make_candidate("Widgetworks", EntityType.COMPANY_CONTEXT, "context_indicators", 0.75)
        result = ConfidenceScorer().score(make_input(candidate, "Widgetworks"))
        assert result.score == pytest.approx(0.5875)
        assert result.level == ConfidenceLevel.LOW
        assert result.recommendation == "Uncertain; weakest factor is knowledge base verification"

    def test_score_is_bounded(self):
        weights = ConfidenceScorer().weights.model_copy(update={"pattern": 5.0})
        scorer = ConfidenceScorer(weights=weights)
        result = scorer.score(make_input(make_candidate("Acme Corp"), "Acme"))
        assert 0.0 <= result.score <= 1.0

    def test_internal_error_yields_error_level(self):
        class BrokenKnowledgeBase:
            def lookup(self, *args, **kwargs):
                raise RuntimeError("index unavailable")

        scorer = ConfidenceScorer(knowledge_base=BrokenKnowledgeBase())
        result = scorer.score(make_input(make_candidate("Acme Corp"), "Acme"))
        assert result.level == ConfidenceLevel.ERROR
        assert result.score == 0.0
        assert result.error == "index unavailable"
        assert result.recommendation == "Unable to calculate confidence"
        assert scorer.get_statistics()["distribution_by_level"]["error"] == 1


class TestReporting:
    def test_statistics(self, knowledge_base):
        scorer = ConfidenceScorer()
        ticker = make_candidate("AAPL", EntityType.TICKER, "ticker_symbol", 0.95)
        scorer.score(make_input(ticker, "AAPL", match=knowledge_base.lookup("AAPL", EntityType.TICKER)))
        context = make_candidate("Widgetworks", EntityType.COMPANY_CONTEXT, "context_indicators", 0.75)
        scorer.score(make_input(context, "Widgetworks"))

        stats = scorer.get_statistics()
        assert stats["total_scored"] == 2
        assert stats["average_score"] == pytest.approx(0.74375, abs=1e-4)
        assert stats["distribution_by_level"]["high"] == 1
        assert stats["distribution_by_level"]["low"] == 1
        assert stats["distribution_percentages"]["high"] == 50.0

    def test_empty_statistics(self):
        stats = ConfidenceScorer().get_statistics()
        assert stats["total_scored"] == 0
        assert stats["distribution_percentages"]["high"] == 0.0

    def test_adjust_thresholds(self):
        scorer = ConfidenceScorer()
        thresholds = scorer.adjust_thresholds(high=0.95)
        assert thresholds.high == 0.95
        assert thresholds.medium == 0.65

    def test_adjust_thresholds_rejects_disorder(self):
        scorer = ConfidenceScorer()
        with pytest.raises(ValidationError):
            scorer.adjust_thresholds(high=0.5)
        assert scorer.thresholds.high == 0.85
