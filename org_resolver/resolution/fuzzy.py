"""
Fuzzy Matching for Company Names.

String-similarity primitives, each returning a value in [0, 1]:

- ratio: 1 - edit_distance / max(len)
- partial_ratio: best ratio of the shorter string against any equal-length
  window of the longer one (not guaranteed symmetric)
- token_sort_ratio: ratio after sorting each side's tokens
- token_set_ratio: Jaccard similarity of stopword-filtered token sets

plus a weighted company-name ratio and an abbreviation-aware variant.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein

DEFAULT_THRESHOLD = 0.8
DEFAULT_ABBREVIATION_BONUS = 0.1

DEFAULT_STOPWORDS = frozenset(
    {
        "the", "and", "of", "in", "for", "a", "an", "&",
        "company", "corporation", "incorporated", "limited",
        "corp", "inc", "ltd", "llc", "co",
    }
)

# (abbreviation, expansion) token pairs that earn the bonus
ABBREVIATION_PAIRS: tuple[tuple[str, str], ...] = (
    ("intl", "international"),
    ("corp", "corporation"),
    ("inc", "incorporated"),
    ("ltd", "limited"),
    ("co", "company"),
    ("assoc", "associates"),
    ("mgmt", "management"),
    ("svcs", "services"),
    ("tech", "technologies"),
    ("pharm", "pharmaceutical"),
    ("mfg", "manufacturing"),
)

DEFAULT_WEIGHTS: dict[str, float] = {
    "ratio": 0.2,
    "partial": 0.2,
    "token_sort": 0.3,
    "token_set": 0.3,
}

_NON_WORD_RE = re.compile(r"[^\w\s]")


@dataclass(frozen=True)
class FuzzyMatch:
    """A ranked choice from extract_best()."""

    match: str
    score: float
    confidence: str  # very_high, high, medium, low, very_low


def score_to_confidence(score: float) -> str:
    """Coarse label for a similarity score."""
    if score >= 0.95:
        return "very_high"
    if score >= 0.85:
        return "high"
    if score >= 0.75:
        return "medium"
    if score >= 0.65:
        return "low"
    return "very_low"


def tokenize(text: str) -> list[str]:
    """Lower-case word tokens; punctuation acts as a separator."""
    return _NON_WORD_RE.sub(" ", text.lower()).split()


class FuzzyMatcher:
    """
    Fuzzy string matching tuned for company names.

    Example:
        >>> matcher = FuzzyMatcher()
        >>> matcher.ratio("Microsoft", "microsoft")
        1.0
        >>> matcher.token_sort_ratio("Bank of America", "America Bank of")
        1.0
    """

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        abbreviation_bonus: float = DEFAULT_ABBREVIATION_BONUS,
        stopwords: Iterable[str] | None = None,
    ):
        self.threshold = threshold
        self.abbreviation_bonus = abbreviation_bonus
        self.stopwords = frozenset(stopwords) if stopwords is not None else DEFAULT_STOPWORDS

    def ratio(self, str1: str, str2: str) -> float:
        if not str1 or not str2:
            return 0.0
        s1 = str1.lower().strip()
        s2 = str2.lower().strip()
        if s1 == s2:
            return 1.0
        max_len = max(len(s1), len(s2))
        if max_len == 0:
            return 1.0
        return 1.0 - Levenshtein.distance(s1, s2) / max_len

    def partial_ratio(self, str1: str, str2: str) -> float:
        if not str1 or not str2:
            return 0.0
        s1 = str1.lower().strip()
        s2 = str2.lower().strip()
        if s1 == s2:
            return 1.0
        shorter, longer = (s1, s2) if len(s1) <= len(s2) else (s2, s1)
        if not shorter:
            return 0.0

        best = 0.0
        window = len(shorter)
        for i in range(len(longer) - window + 1):
            best = max(best, self.ratio(shorter, longer[i : i + window]))
            if best == 1.0:
                break
        return best

    def token_sort_ratio(self, str1: str, str2: str) -> float:
        if not str1 or not str2:
            return 0.0
        sorted1 = " ".join(sorted(tokenize(str1)))
        sorted2 = " ".join(sorted(tokenize(str2)))
        if not sorted1 and not sorted2:
            # Punctuation-only input has no tokens to sort
            return self.ratio(str1, str2)
        return self.ratio(sorted1, sorted2)

    def token_set_ratio(self, str1: str, str2: str) -> float:
        if not str1 or not str2:
            return 0.0
        tokens1 = set(tokenize(str1))
        tokens2 = set(tokenize(str2))

        filtered1 = tokens1 - self.stopwords
        filtered2 = tokens2 - self.stopwords
        # Fall back to the unfiltered set when every token was a stopword
        set1 = filtered1 or tokens1
        set2 = filtered2 or tokens2

        union = set1 | set2
        if not union:
            return 1.0
        return len(set1 & set2) / len(union)

    def company_name_ratio(
        self,
        str1: str,
        str2: str,
        weights: dict[str, float] | None = None,
    ) -> float:
        """Weighted average of the four primitives (default 0.2/0.2/0.3/0.3)."""
        w = {**DEFAULT_WEIGHTS, **(weights or {})}
        scores = {
            "ratio": self.ratio(str1, str2),
            "partial": self.partial_ratio(str1, str2),
            "token_sort": self.token_sort_ratio(str1, str2),
            "token_set": self.token_set_ratio(str1, str2),
        }
        weighted_sum = 0.0
        total_weight = 0.0
        for key, weight in w.items():
            if key in scores:
                weighted_sum += scores[key] * weight
                total_weight += weight
        if total_weight <= 0:
            return 0.0
        return max(0.0, min(1.0, weighted_sum / total_weight))

    def abbreviation_match(self, str1: str, str2: str) -> bool:
        """True when one side carries an abbreviation token and the other its expansion."""
        if not str1 or not str2:
            return False
        tokens1 = set(tokenize(str1))
        tokens2 = set(tokenize(str2))
        for abbr, full in ABBREVIATION_PAIRS:
            if (abbr in tokens1 and full in tokens2) or (full in tokens1 and abbr in tokens2):
                return True
        return False

    def enhanced_company_ratio(self, str1: str, str2: str) -> float:
        """Company-name ratio plus the abbreviation bonus, clamped to 1.0."""
        base = self.company_name_ratio(str1, str2)
        if self.abbreviation_match(str1, str2):
            return min(1.0, base + self.abbreviation_bonus)
        return base

    def extract_best(
        self,
        query: str,
        choices: Iterable[str],
        limit: int = 5,
        scorer: Callable[[str, str], float] | None = None,
    ) -> list[FuzzyMatch]:
        """Rank choices against query, best first."""
        choices = list(choices or [])
        if not query or not choices:
            return []
        scorer_func = scorer or self.company_name_ratio

        scored = [(choice, scorer_func(query, choice)) for choice in choices]
        # Stable sort keeps input order among equal scores
        scored.sort(key=lambda item: -item[1])
        return [
            FuzzyMatch(match=choice, score=score, confidence=score_to_confidence(score))
            for choice, score in scored[:limit]
        ]

    def extract_one(
        self,
        query: str,
        choices: Iterable[str],
        scorer: Callable[[str, str], float] | None = None,
    ) -> FuzzyMatch | None:
        results = self.extract_best(query, choices, limit=1, scorer=scorer)
        return results[0] if results else None

    def is_match(self, str1: str, str2: str, threshold: float | None = None) -> bool:
        """Check if two company names are likely the same."""
        min_threshold = threshold if threshold is not None else self.threshold
        return self.company_name_ratio(str1, str2) >= min_threshold
