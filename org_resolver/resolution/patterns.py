"""
Pattern-based Candidate Extraction.

Extraction is driven by an ordered table of PatternGroup rows, each holding
one or more regexes, a declared entity type, a base confidence and an
optional validator. New entity patterns are added by adding rows; the
extractor itself never changes.

A disambiguation rule drops matches on words that are also common nouns
("Apple", "Target") unless the text carries supporting context.

Extraction runs under a cooperative deadline checked between matches. On
timeout it returns whatever was collected so far.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from org_resolver.config import DEFAULT_EXTRACTION_DEADLINE_MS, DEFAULT_MAX_ENTITIES
from org_resolver.resolution.models import Candidate, EntityType

logger = logging.getLogger(__name__)

# A run of up to five capitalized words, optionally joined by "&"
NAME_SEQ = r"[A-Z][\w&'\-]*(?:\.[A-Za-z]+)?(?:\s+(?:&\s+)?[A-Z][\w&'\-]*){0,4}"

FORMAL_SUFFIXES = r"Corporation|Company|Limited|Corp|Inc|LLC|LLP|Ltd|PLC|plc|LP|Co"
DESCRIPTOR_WORDS = (
    r"Group|Holdings|Partners|Capital|Financial|Services|Industries|Enterprises"
)
INTL_SUFFIXES = (
    r"Co\.,?\s*Ltd\.?|GmbH|S\.A\.|N\.V\.|B\.V\.|K\.K\.|S\.p\.A\.|SpA|SARL|"
    r"Oyj|Oy|A/S|AG|SA|NV|BV|KK|AB|AS"
)
EXCHANGES = r"NYSE|NASDAQ|LSE|TSE|HKG|TYO"

# Acronyms that look like tickers but almost never are
NON_TICKER_WORDS = frozenset({"I", "O", "CEO", "CFO", "COO", "CTO", "IPO", "ETF", "GDP", "USA", "US"})

_TRAILING_PUNCT_RE = re.compile(r"[.,;:!?'\"]+$")


def validate_ticker(text: str) -> bool:
    """Accept 1-5 upper-case letters, rejecting ambiguous single letters and common acronyms."""
    ticker = text.replace("$", "").strip()
    return bool(re.fullmatch(r"[A-Z]{1,5}", ticker)) and ticker not in NON_TICKER_WORDS


@dataclass(frozen=True)
class PatternGroup:
    """One row of the extraction table."""

    name: str
    patterns: tuple[str, ...]
    entity_type: EntityType
    confidence: float
    validator: Callable[[str], bool] | None = None
    # Coreference phrases ("the company") rather than names
    reference: bool = False


DEFAULT_PATTERN_GROUPS: tuple[PatternGroup, ...] = (
    PatternGroup(
        name="company_formal",
        patterns=(
            rf"\b({NAME_SEQ},?(?:\s+&)?\s+(?:{FORMAL_SUFFIXES})\b\.?)",
            rf"\b({NAME_SEQ}\s+(?:{DESCRIPTOR_WORDS})(?:\s+(?:Inc|Corp|LLC|Ltd|LP)\b\.?)?)",
        ),
        entity_type=EntityType.COMPANY,
        confidence=0.9,
    ),
    PatternGroup(
        name="ticker_symbol",
        patterns=(
            r"\$([A-Z]{1,5})\b",
            rf"\b(?i:{EXCHANGES}):\s*([A-Z]{{1,5}})\b",
            r"\b([A-Z]{2,5})\s+(?i:stock|shares?|equity)\b",
        ),
        entity_type=EntityType.TICKER,
        confidence=0.95,
        validator=validate_ticker,
    ),
    PatternGroup(
        name="company_informal",
        patterns=(
            r"\b(JPM|GS|MS|BAC|WFC|USB|PNC|COF|TFC)\b",
            r"\b(AAPL|MSFT|GOOGL?|AMZN|FB|META|TSLA|NVDA|AMD)\b",
            r"\b((?i:Big\s+(?:Tech|Four|Five)|FAANG|MAMAA))\b",
        ),
        entity_type=EntityType.COMPANY_ABBREV,
        confidence=0.8,
    ),
    PatternGroup(
        name="company_international",
        patterns=(
            rf"\b({NAME_SEQ},?\s+(?:{INTL_SUFFIXES}))(?![\w/])",
            rf"\b((?:Kabushiki\s+Kaisha|KK)\s+{NAME_SEQ})",
        ),
        entity_type=EntityType.COMPANY_INTL,
        confidence=0.85,
    ),
    PatternGroup(
        name="context_indicators",
        patterns=(
            rf"(?i:CEO|CFO|President|Chairman|founder)\s+(?i:of|at)\s+({NAME_SEQ})",
            rf"\b({NAME_SEQ})['’]s\s+(?i:CEO|CFO|president|earnings|revenue|stock|shares)\b",
            rf"(?i:acquired|bought|merged\s+with|purchased)\s+({NAME_SEQ})",
        ),
        entity_type=EntityType.COMPANY_CONTEXT,
        confidence=0.75,
    ),
    PatternGroup(
        name="coreference_mentions",
        patterns=(
            r"\b((?i:the)\s+(?:company|firm))\b",
            r"\b((?i:this|that|these|those)\s+(?:company|firm|business))\b",
            # Lower-case or sentence-initial only, so "IT" is never a pronoun
            r"\b([Ii]t|[Tt]hey|[Tt]hem)\b",
        ),
        entity_type=EntityType.COMPANY_CONTEXT,
        confidence=0.5,
        reference=True,
    ),
)


@dataclass(frozen=True)
class DisambiguationRule:
    """Words that only count as organizations when supporting context is present."""

    words: frozenset[str]
    context_patterns: tuple[re.Pattern, ...]
    industry_patterns: dict[str, re.Pattern] = field(default_factory=dict)

    def requires_context(self, text: str) -> bool:
        return text in self.words

    def supporting_context(self, full_text: str) -> str | None:
        """Return "context", an industry name, or None when nothing supports the match."""
        for pattern in self.context_patterns:
            if pattern.search(full_text):
                return "context"
        for industry, pattern in self.industry_patterns.items():
            if pattern.search(full_text):
                return industry
        return None


DEFAULT_DISAMBIGUATION = DisambiguationRule(
    words=frozenset(
        {
            "Apple", "Amazon", "Oracle", "Square", "Box", "Snap", "Match",
            "Target", "Gap", "Best", "First", "Next", "New", "Old", "Big",
        }
    ),
    context_patterns=(
        re.compile(r"\b(?:Inc|Corp|stock|shares|CEO|company)\b", re.IGNORECASE),
        re.compile(r"\$[A-Z]{1,5}\b"),
        re.compile(r"\b(?:NYSE|NASDAQ):", re.IGNORECASE),
    ),
    industry_patterns={
        "finance": re.compile(
            r"\b(?:bank|financial|capital|investment|holdings|asset|fund)\b", re.IGNORECASE
        ),
        "tech": re.compile(
            r"\b(?:software|technology|tech|cloud|AI|data|cyber|digital)\b", re.IGNORECASE
        ),
        "retail": re.compile(r"\b(?:retail|store|shopping|consumer|brand)\b", re.IGNORECASE),
        "healthcare": re.compile(
            r"\b(?:pharmaceutical|pharma|medical|healthcare|biotech|drug)\b", re.IGNORECASE
        ),
    },
)


@dataclass(frozen=True)
class ExtractionResult:
    """Candidates from one extraction pass, in text order."""

    candidates: tuple[Candidate, ...] = ()
    timed_out: bool = False
    failed_groups: tuple[str, ...] = ()
    elapsed_ms: float = 0.0


@dataclass
class _CompiledGroup:
    group: PatternGroup
    regexes: list[re.Pattern]


def _dedupe_key(text: str) -> str:
    return _TRAILING_PUNCT_RE.sub("", text.strip())


class PatternExtractor:
    """
    Table-driven extractor.

    Example:
        >>> result = PatternExtractor().extract("$AAPL rose 3% today")
        >>> [(c.text, c.entity_type.value) for c in result.candidates]
        [('AAPL', 'ticker')]
    """

    def __init__(
        self,
        groups: Iterable[PatternGroup] | None = None,
        disambiguation: DisambiguationRule | None = None,
        max_entities: int = DEFAULT_MAX_ENTITIES,
        deadline_ms: float = DEFAULT_EXTRACTION_DEADLINE_MS,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.groups = tuple(groups) if groups is not None else DEFAULT_PATTERN_GROUPS
        self.disambiguation = disambiguation or DEFAULT_DISAMBIGUATION
        self.max_entities = max_entities
        self.deadline_ms = deadline_ms
        self._clock = clock
        self._compiled: list[_CompiledGroup] = []
        self._invalid_groups: list[str] = []

        for group in self.groups:
            try:
                regexes = [re.compile(p) for p in group.patterns]
            except re.error as e:
                logger.warning(f"Skipping pattern group {group.name!r}: invalid regex ({e})")
                self._invalid_groups.append(group.name)
                continue
            self._compiled.append(_CompiledGroup(group=group, regexes=regexes))

    def extract(self, text: str) -> ExtractionResult:
        """
        Scan text against every pattern group.

        Never raises for a timeout or a failing group: the result carries
        timed_out and failed_groups instead.
        """
        started = self._clock()
        if not text:
            return ExtractionResult(failed_groups=tuple(self._invalid_groups))

        kept: list[Candidate] = []
        seen_text: set[str] = set()
        spans: list[tuple[int, int]] = []
        reference_spans: set[tuple[int, int]] = set()
        failed = list(self._invalid_groups)
        timed_out = False

        def expired() -> bool:
            return (self._clock() - started) * 1000.0 > self.deadline_ms

        for compiled in self._compiled:
            if timed_out or len(kept) >= self.max_entities:
                break
            group = compiled.group
            pending: list[Candidate] = []
            pending_keys: set[str] = set()
            pending_spans: list[tuple[int, int]] = []
            try:
                for regex in compiled.regexes:
                    for match in regex.finditer(text):
                        if expired():
                            timed_out = True
                            break
                        if len(kept) + len(pending) >= self.max_entities:
                            break
                        candidate = self._to_candidate(group, match)
                        if candidate is None:
                            continue
                        span = (candidate.start, candidate.end)
                        if group.reference:
                            if span not in reference_spans and span not in pending_spans:
                                pending_spans.append(span)
                                pending.append(candidate)
                            continue

                        key = _dedupe_key(candidate.text)
                        if key in seen_text or key in pending_keys:
                            continue
                        if any(s <= span[0] and span[1] <= e for s, e in spans + pending_spans):
                            continue
                        if group.validator is not None and not group.validator(candidate.text):
                            continue
                        if self.disambiguation.requires_context(key):
                            if self.disambiguation.supporting_context(text) is None:
                                logger.debug(f"Dropping ambiguous match {key!r}: no supporting context")
                                continue
                        pending_keys.add(key)
                        pending_spans.append(span)
                        pending.append(candidate)
                    if timed_out:
                        break
            except Exception as e:
                # Contain the failure to this group and keep going
                logger.warning(f"Pattern group {group.name!r} failed: {e}")
                failed.append(group.name)
                continue

            kept.extend(pending)
            seen_text.update(pending_keys)
            if group.reference:
                reference_spans.update(pending_spans)
            else:
                spans.extend(pending_spans)

        elapsed_ms = (self._clock() - started) * 1000.0
        if timed_out:
            logger.debug(
                f"Extraction exceeded {self.deadline_ms}ms deadline; "
                f"returning {len(kept)} candidates collected so far"
            )
        kept.sort(key=lambda c: (c.start, c.end))
        return ExtractionResult(
            candidates=tuple(kept[: self.max_entities]),
            timed_out=timed_out,
            failed_groups=tuple(failed),
            elapsed_ms=elapsed_ms,
        )

    @staticmethod
    def _to_candidate(group: PatternGroup, match: re.Match) -> Candidate | None:
        index = 1 if match.re.groups else 0
        raw = match.group(index)
        if not raw:
            return None
        stripped = raw.rstrip()
        if not stripped.strip():
            return None
        start = match.start(index) + (len(stripped) - len(stripped.lstrip()))
        stripped = stripped.lstrip()
        return Candidate(
            text=stripped,
            start=start,
            end=start + len(stripped),
            pattern=group.name,
            entity_type=group.entity_type,
            base_confidence=group.confidence,
            reference=group.reference,
        )


# Context window vocabulary around a mention
CONTEXT_WINDOW = 50

INDUSTRY_PATTERNS: dict[str, re.Pattern] = {
    "finance": re.compile(
        r"\b(?:bank|financial|capital|investment|portfolio|fund|trading)\b", re.IGNORECASE
    ),
    "technology": re.compile(
        r"\b(?:software|tech|AI|cloud|data|digital|platform|app)\b", re.IGNORECASE
    ),
    "healthcare": re.compile(
        r"\b(?:pharma|medical|health|drug|biotech|clinical)\b", re.IGNORECASE
    ),
    "retail": re.compile(
        r"\b(?:retail|store|consumer|brand|shopping|commerce)\b", re.IGNORECASE
    ),
    "energy": re.compile(
        r"\b(?:oil|gas|energy|renewable|solar|electric|power)\b", re.IGNORECASE
    ),
    "manufacturing": re.compile(
        r"\b(?:manufacturing|factory|production|industrial)\b", re.IGNORECASE
    ),
}

FINANCIAL_INDICATORS: dict[str, re.Pattern] = {
    "revenue": re.compile(r"\b(?:revenue|sales|turnover)[\s:]+\$?[\d.,]+[BMK]?\b", re.IGNORECASE),
    "market_cap": re.compile(
        r"\b(?:market\s+cap|valuation)[\s:]+\$?[\d.,]+[BMK]?\b", re.IGNORECASE
    ),
    "stock_price": re.compile(r"\$[\d.,]+(?:\s+per\s+share)?", re.IGNORECASE),
    "percentage": re.compile(r"[\d.,]+%"),
}

_POSITIVE_RE = re.compile(
    r"\b(?:growth|profit|success|increase|gain|improve|strong|positive|up|rose|raised)\b",
    re.IGNORECASE,
)
_NEGATIVE_RE = re.compile(
    r"\b(?:loss|decline|decrease|fall|weak|negative|down|risk|concern|fell|cut)\b",
    re.IGNORECASE,
)


def analyze_sentiment(text: str) -> str:
    """Coarse positive / negative / neutral label from keyword counts."""
    positive = len(_POSITIVE_RE.findall(text))
    negative = len(_NEGATIVE_RE.findall(text))
    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


def describe_surroundings(
    text: str, start: int, end: int, window: int = CONTEXT_WINDOW
) -> dict:
    """
    Industries, financial figures and sentiment near a mention.

    Args:
        text: Full sanitized text
        start: Mention start offset
        end: Mention end offset
        window: Characters to look at on each side

    Returns:
        Dict with industries, financial_data (or None) and sentiment
    """
    snippet = text[max(0, start - window) : min(len(text), end + window)]
    industries = [name for name, pattern in INDUSTRY_PATTERNS.items() if pattern.search(snippet)]
    financial_data = {}
    for indicator, pattern in FINANCIAL_INDICATORS.items():
        match = pattern.search(snippet)
        if match:
            financial_data[indicator] = match.group(0)
    return {
        "industries": industries,
        "financial_data": financial_data or None,
        "sentiment": analyze_sentiment(snippet),
    }
