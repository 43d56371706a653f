"""
Same-text coreference.

Folds vaguer mentions into an earlier, fully resolved entity:

- Reference phrases ("the company", "this firm", "it") attach to the nearest
  preceding resolved mention. With nothing before them they are dropped.
- A name whose normalized form is a whole-word substring of an already
  resolved name (or the reverse) is merged into that entity as a partial
  mention.

The policy is simple and known to be imprecise; it sits
behind CoreferenceResolver so a better resolver can replace it without
touching extraction or scoring.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field

from org_resolver.resolution.models import MentionReference

logger = logging.getLogger(__name__)

MIN_PARTIAL_LENGTH = 3


@dataclass(frozen=True)
class Mention:
    """One extracted mention as seen by coreference."""

    key: int  # Caller's handle for the mention
    text: str
    normalized: str
    start: int
    confidence: float
    reference: bool = False


@dataclass
class CoreferenceResult:
    """Primary mentions plus what was folded into each of them."""

    primaries: list[Mention] = field(default_factory=list)
    references: dict[int, list[MentionReference]] = field(default_factory=dict)
    unattached: list[Mention] = field(default_factory=list)

    def references_for(self, key: int) -> tuple[MentionReference, ...]:
        return tuple(sorted(self.references.get(key, ()), key=lambda r: r.start))


class CoreferenceResolver(ABC):
    """Interface for coreference strategies."""

    @abstractmethod
    def resolve(self, mentions: Sequence[Mention]) -> CoreferenceResult:
        """Split mentions into primaries and references attached to them."""
        pass


def is_partial_mention(short: str, long: str, min_length: int = MIN_PARTIAL_LENGTH) -> bool:
    """True if short occurs in long as whole words (case-insensitive)."""
    short = short.strip().lower()
    long = long.strip().lower()
    if len(short) < min_length or short == long or len(short) > len(long):
        return False
    return re.search(rf"(?<!\w){re.escape(short)}(?!\w)", long) is not None


class HeuristicCoreferenceResolver(CoreferenceResolver):
    """
    Nearest-antecedent pronoun linking plus substring merging.

    Names are considered best first (confidence, then text position), so
    the stronger of two overlapping names becomes the primary.
    """

    def __init__(self, min_partial_length: int = MIN_PARTIAL_LENGTH):
        self.min_partial_length = min_partial_length

    def _partial_of(self, a: str, b: str) -> bool:
        return is_partial_mention(a, b, self.min_partial_length) or is_partial_mention(
            b, a, self.min_partial_length
        )

    def resolve(self, mentions: Sequence[Mention]) -> CoreferenceResult:
        result = CoreferenceResult()
        names = sorted((m for m in mentions if not m.reference), key=lambda m: (-m.confidence, m.start))
        phrases = sorted((m for m in mentions if m.reference), key=lambda m: m.start)

        # Every name position, pointing at the primary it ended up in
        anchors: list[tuple[int, Mention]] = []

        for mention in names:
            owner = next(
                (p for p in result.primaries if self._partial_of(mention.normalized, p.normalized)),
                None,
            )
            if owner is None:
                result.primaries.append(mention)
                anchors.append((mention.start, mention))
                continue
            result.references.setdefault(owner.key, []).append(
                MentionReference(text=mention.text, start=mention.start, relation="partial")
            )
            anchors.append((mention.start, owner))

        anchors.sort(key=lambda item: item[0])
        for phrase in phrases:
            preceding = [owner for start, owner in anchors if start < phrase.start]
            if not preceding:
                logger.debug(f"Dropping reference {phrase.text!r} at {phrase.start}: no antecedent")
                result.unattached.append(phrase)
                continue
            result.references.setdefault(preceding[-1].key, []).append(
                MentionReference(text=phrase.text, start=phrase.start, relation="pronoun")
            )

        result.primaries.sort(key=lambda m: m.start)
        return result
