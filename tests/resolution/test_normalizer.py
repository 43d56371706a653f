"""
Tests for company name normalization.
"""

import pytest

from org_resolver.resolution.normalizer import CompanyNormalizer, canonical_suffix


@pytest.fixture
def normalizer():
    return CompanyNormalizer()


class TestNormalize:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("BlackRock Inc.", "BlackRock"),
            ("BlackRock, Inc.", "BlackRock"),
            ("Tesla Inc.", "Tesla"),
            ("Microsoft Corporation", "Microsoft"),
            ("Wells Fargo & Company", "Wells Fargo"),
            ("JPMorgan Chase & Co.", "JPMorgan Chase"),
            ("The Goldman Sachs Group Inc.", "Goldman Sachs"),
            ("The Vanguard Group", "Vanguard"),
            ("Siemens AG", "Siemens"),
            ("Toyota Motor Co., Ltd.", "Toyota Motor"),
            ("Morgan Stanley", "Morgan Stanley"),
        ],
    )
    def test_strips_suffixes(self, normalizer, raw, expected):
        assert normalizer.normalize(raw) == expected

    def test_expands_known_abbreviation(self, normalizer):
        assert normalizer.normalize("IBM") == "International Business Machines"

    def test_abbreviation_expansion_is_stripped_too(self, normalizer):
        """HSBC expands to a name ending in Corporation, which is then stripped."""
        assert normalizer.normalize("HSBC") == "Hongkong and Shanghai Banking"

    def test_short_caps_suffix_is_case_sensitive(self, normalizer):
        """'as' at the end of a name is a word, not the Norwegian AS suffix."""
        assert normalizer.normalize("Known as") == "Known as"
        assert normalizer.normalize("Equinor AS") == "Equinor"

    def test_suffix_only_name_is_kept(self, normalizer):
        assert normalizer.normalize("Company") == "Company"

    @pytest.mark.parametrize("value", [None, "", "   ", 42, ["Apple"]])
    def test_non_text_is_empty(self, normalizer, value):
        assert normalizer.normalize(value) == ""

    @pytest.mark.parametrize(
        "raw",
        [
            "The Goldman Sachs Group Inc.",
            "Toyota Motor Co., Ltd.",
            "HSBC",
            "IBM",
            "Acme Holdings Group LLC",
            "  Tesla,   Inc. ",
            "ソニー株式会社",
            "The The Company",
        ],
    )
    def test_idempotent(self, normalizer, raw):
        once = normalizer.normalize(raw)
        assert normalizer.normalize(once) == once

    def test_deterministic(self, normalizer):
        other = CompanyNormalizer()
        assert normalizer.normalize("Acme Holdings LLC") == other.normalize("Acme Holdings LLC")

    def test_cjk_suffix(self, normalizer):
        assert normalizer.normalize("ソニー株式会社") == "ソニー"


class TestAnalysis:
    def test_get_suffixes_in_text_order(self, normalizer):
        assert normalizer.get_suffixes("Acme Holdings LLC") == ["Holdings", "LLC"]

    def test_get_type(self, normalizer):
        assert normalizer.get_type("Acme Corp.") == ["corporation"]
        assert normalizer.get_type("Acme PLC") == ["public_limited_company"]
        assert normalizer.get_type("Acme") == []

    def test_get_country_hints(self, normalizer):
        assert normalizer.get_country_hints("Siemens AG") == ["DE", "CH"]
        assert normalizer.get_country_hints("Acme Ltd") == ["US", "UK"]
        assert normalizer.get_country_hints("Acme") == []

    def test_analyze(self, normalizer):
        form = normalizer.analyze("Sony KK")
        assert form.base_name == "Sony"
        assert form.suffixes == ("KK",)
        assert form.jurisdictions == ("JP",)

    def test_analyze_empty(self, normalizer):
        assert normalizer.analyze(None).base_name == ""

    def test_canonical_suffix(self):
        assert canonical_suffix("L.L.C.") == "llc"
        assert canonical_suffix("Co., Ltd.") == "co ltd"


class TestVariations:
    def test_known_rename(self, normalizer):
        assert normalizer.is_variation("Google", "Alphabet Inc.")
        assert normalizer.is_variation("Facebook", "Meta Platforms")

    def test_same_normalized_name(self, normalizer):
        assert normalizer.is_variation("Tesla Inc.", "Tesla")

    def test_unrelated(self, normalizer):
        assert not normalizer.is_variation("Google", "Facebook")
        assert not normalizer.is_variation("", "Google")


class TestExpandAbbreviations:
    def test_whole_words_only(self, normalizer):
        assert normalizer.expand_abbreviations("GM and GE report") == (
            "General Motors and General Electric report"
        )
        assert normalizer.expand_abbreviations("GMT time") == "GMT time"

    def test_ampersand_abbreviations(self, normalizer):
        assert normalizer.expand_abbreviations("P&G sales") == "Procter & Gamble sales"

    def test_non_text(self, normalizer):
        assert normalizer.expand_abbreviations(None) == ""
