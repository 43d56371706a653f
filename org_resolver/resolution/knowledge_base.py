"""
Company Knowledge Base.

An in-memory directory of known organizations with three indexes
(canonical name, alias, ticker) over normalized lower-case keys. Exact
lookups hit the indexes; search() scores every name, alias and ticker with
the fuzzy matcher.

Mutations run under a re-entrant lock and update all three indexes
together. import_state() builds replacement indexes aside and swaps them in
only once the whole payload has validated.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from threading import RLock

from pydantic import BaseModel, Field, ValidationError

from org_resolver.cache import TTLCache
from org_resolver.config import DEFAULT_FUZZY_MATCH_THRESHOLD
from org_resolver.exceptions import DuplicateOrganizationError, KnowledgeBaseImportError
from org_resolver.resolution.fuzzy import FuzzyMatcher
from org_resolver.resolution.models import EntityType, KnowledgeBaseMatch, KnownOrganization
from org_resolver.resolution.normalizer import CompanyNormalizer
from org_resolver.resolution.seed import DEFAULT_ORGANIZATIONS

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

# Search score multipliers per matched field
NAME_BOOST = 1.0
ALIAS_BOOST = 0.9
TICKER_BOOST = 0.8

# Ranking tie-break among equal scores
_FIELD_RANK = {"name": 0, "alias": 1, "ticker": 2}

SAME_COMPANY_SEARCH_THRESHOLD = 0.6


class KnowledgeBaseSnapshot(BaseModel):
    """Serializable form of the knowledge base used by export/import."""

    version: int = SNAPSHOT_VERSION
    organizations: list[KnownOrganization] = Field(default_factory=list)


@dataclass
class _IndexState:
    organizations: dict[str, KnownOrganization] = field(default_factory=dict)
    name_index: dict[str, list[str]] = field(default_factory=dict)
    alias_index: dict[str, list[str]] = field(default_factory=dict)
    ticker_index: dict[str, list[str]] = field(default_factory=dict)
    # Normalized alias forms per id, so search() doesn't re-normalize
    alias_forms: dict[str, tuple[tuple[str, str], ...]] = field(default_factory=dict)


def _index_add(index: dict[str, list[str]], key: str, org_id: str) -> None:
    if not key:
        return
    ids = index.setdefault(key, [])
    if org_id not in ids:
        ids.append(org_id)


def _index_remove(index: dict[str, list[str]], key: str, org_id: str) -> None:
    ids = index.get(key)
    if not ids:
        return
    if org_id in ids:
        ids.remove(org_id)
    if not ids:
        del index[key]


def normalize_ticker(value: str | None) -> str:
    """Upper-case ticker symbol without a leading '$'."""
    if not value:
        return ""
    return value.strip().lstrip("$").upper()


class CompanyKnowledgeBase:
    """
    Known organizations with exact and fuzzy lookup.

    Example:
        >>> kb = CompanyKnowledgeBase()
        >>> kb.find_by_ticker("$aapl").name
        'Apple Inc.'
        >>> kb.search("Apple", limit=1)[0].match_field
        'name'
    """

    def __init__(
        self,
        normalizer: CompanyNormalizer | None = None,
        matcher: FuzzyMatcher | None = None,
        organizations: Iterable[Mapping | KnownOrganization] | None = None,
        cache: TTLCache | None = None,
        fuzzy_threshold: float = DEFAULT_FUZZY_MATCH_THRESHOLD,
    ):
        """
        Initialize the knowledge base.

        Args:
            normalizer: Name normalizer (default: CompanyNormalizer())
            matcher: Fuzzy matcher used by search (default: FuzzyMatcher())
            organizations: Seed records (default: DEFAULT_ORGANIZATIONS)
            cache: Query cache (default: 1000 entries, 300s TTL)
            fuzzy_threshold: Minimum search score for lookup()'s fuzzy fallback
        """
        self.normalizer = normalizer or CompanyNormalizer()
        self.matcher = matcher or FuzzyMatcher()
        if cache is None:
            cache = TTLCache(capacity=1000, ttl_seconds=300.0, name="knowledge_base")
        self.cache = cache
        self.fuzzy_threshold = fuzzy_threshold
        self._lock = RLock()
        self._state = _IndexState()

        seed = DEFAULT_ORGANIZATIONS if organizations is None else organizations
        for record in seed:
            self.add_organization(record)
        logger.debug(f"Knowledge base seeded with {len(self._state.organizations)} organizations")

    # ------------------------------------------------------------------
    # Keys and indexing
    # ------------------------------------------------------------------

    def _key(self, name: str) -> str:
        return self.normalizer.normalize(name).lower()

    def _prepare(self, data: Mapping | KnownOrganization) -> KnownOrganization:
        org = data if isinstance(data, KnownOrganization) else KnownOrganization.model_validate(data)
        return org.model_copy(update={"normalized_name": self.normalizer.normalize(org.name)})

    def _index(self, state: _IndexState, org: KnownOrganization) -> None:
        state.organizations[org.id] = org
        _index_add(state.name_index, org.normalized_name.lower(), org.id)
        forms = []
        for alias in org.aliases:
            alias_norm = self.normalizer.normalize(alias)
            _index_add(state.alias_index, alias_norm.lower(), org.id)
            forms.append((alias, alias_norm))
        state.alias_forms[org.id] = tuple(forms)
        if org.ticker:
            _index_add(state.ticker_index, normalize_ticker(org.ticker), org.id)

    def _unindex(self, state: _IndexState, org: KnownOrganization) -> None:
        _index_remove(state.name_index, org.normalized_name.lower(), org.id)
        for _, alias_norm in state.alias_forms.pop(org.id, ()):
            _index_remove(state.alias_index, alias_norm.lower(), org.id)
        if org.ticker:
            _index_remove(state.ticker_index, normalize_ticker(org.ticker), org.id)
        state.organizations.pop(org.id, None)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_organization(self, data: Mapping | KnownOrganization) -> KnownOrganization:
        """
        Add a record and index its name, aliases and ticker.

        Raises:
            DuplicateOrganizationError: If a record with the same id exists
            pydantic.ValidationError: If the record is malformed
        """
        org = self._prepare(data)
        with self._lock:
            if org.id in self._state.organizations:
                raise DuplicateOrganizationError(org.id)
            self._index(self._state, org)
            self.cache.clear()
        return org

    def update_organization(self, org_id: str, **updates) -> bool:
        """
        Update a record's fields and re-index it.

        Returns:
            False if no record has this id, True otherwise
        """
        if "id" in updates:
            raise ValueError("The id of an organization cannot be updated")
        unknown = set(updates) - set(KnownOrganization.model_fields)
        if unknown:
            raise ValueError(f"Unknown organization fields: {sorted(unknown)}")

        with self._lock:
            current = self._state.organizations.get(org_id)
            if current is None:
                return False
            merged = current.model_dump()
            merged.update(updates)
            updated = self._prepare(merged)
            self._unindex(self._state, current)
            self._index(self._state, updated)
            self.cache.clear()
        logger.debug(f"Updated organization {org_id}: {sorted(updates)}")
        return True

    # ------------------------------------------------------------------
    # Exact lookups
    # ------------------------------------------------------------------

    def get(self, org_id: str) -> KnownOrganization | None:
        with self._lock:
            return self._state.organizations.get(org_id)

    def _first(self, index: dict[str, list[str]], key: str) -> KnownOrganization | None:
        ids = index.get(key)
        if not ids:
            return None
        return self._state.organizations.get(ids[0])

    def find_by_name(self, name: str) -> KnownOrganization | None:
        """Exact lookup on the normalized canonical name."""
        if not isinstance(name, str):
            return None
        with self._lock:
            return self._first(self._state.name_index, self._key(name))

    def find_by_alias(self, alias: str) -> list[KnownOrganization]:
        """All records carrying this alias (after normalization)."""
        if not isinstance(alias, str):
            return []
        with self._lock:
            ids = self._state.alias_index.get(self._key(alias), [])
            return [self._state.organizations[i] for i in ids]

    def find_by_ticker(self, ticker: str) -> KnownOrganization | None:
        if not isinstance(ticker, str):
            return None
        with self._lock:
            return self._first(self._state.ticker_index, normalize_ticker(ticker))

    def organizations(self) -> list[KnownOrganization]:
        with self._lock:
            return list(self._state.organizations.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._state.organizations)

    def __contains__(self, org_id: object) -> bool:
        with self._lock:
            return org_id in self._state.organizations

    def get_variations(self, org_id: str) -> list[str]:
        """Every known spelling of a record: name, aliases, normalized name, ticker, prior names."""
        org = self.get(org_id)
        if org is None:
            return []
        variations: list[str] = []
        for value in (org.name, *org.aliases, org.normalized_name, org.ticker, *org.previous_names):
            if value and value not in variations:
                variations.append(value)
        return variations

    # ------------------------------------------------------------------
    # Fuzzy search
    # ------------------------------------------------------------------

    def search(
        self,
        query: str,
        limit: int = 5,
        threshold: float = 0.7,
        include_aliases: bool = True,
        include_tickers: bool = True,
    ) -> list[KnowledgeBaseMatch]:
        """
        Fuzzy search over names, aliases and tickers.

        Each candidate is scored with the enhanced company ratio against the
        normalized query, then multiplied by its field boost (name 1.0,
        alias 0.9, ticker 0.8). Results are deduplicated by id keeping the
        best score and sorted best first.

        Args:
            query: Free-text organization name or ticker
            limit: Maximum number of results
            threshold: Minimum boosted score
            include_aliases: Score aliases too
            include_tickers: Score tickers too

        Returns:
            List of KnowledgeBaseMatch, best first
        """
        if not isinstance(query, str) or limit <= 0:
            return []
        normalized_query = self.normalizer.normalize(query)
        if not normalized_query:
            return []

        cache_key = (
            "search",
            normalized_query.lower(),
            limit,
            threshold,
            include_aliases,
            include_tickers,
        )
        # Cache read, compute and write share the lock so a concurrent
        # mutation cannot leave a stale entry behind
        with self._lock:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return list(cached)

            best: dict[str, tuple[float, str, str, str]] = {}
            for org in self._state.organizations.values():
                candidates = [("name", org.name, org.normalized_name, NAME_BOOST)]
                if include_aliases:
                    for alias, alias_norm in self._state.alias_forms.get(org.id, ()):
                        candidates.append(("alias", alias, alias_norm, ALIAS_BOOST))
                if include_tickers and org.ticker:
                    candidates.append(("ticker", org.ticker, org.ticker, TICKER_BOOST))

                for match_field, text, normalized, boost in candidates:
                    score = self.matcher.enhanced_company_ratio(normalized_query, normalized) * boost
                    if score < threshold:
                        continue
                    exact = normalized.lower() == normalized_query.lower()
                    previous = best.get(org.id)
                    if previous is None or (score, -_FIELD_RANK[match_field]) > (
                        previous[0],
                        -_FIELD_RANK[previous[1]],
                    ):
                        best[org.id] = (score, match_field, text, "exact" if exact else "fuzzy")

            ranked = sorted(
                best.items(),
                key=lambda item: (-item[1][0], _FIELD_RANK[item[1][1]], item[0]),
            )
            results = [
                KnowledgeBaseMatch(
                    organization=self._state.organizations[org_id],
                    score=score,
                    match_field=match_field,
                    match_type=_match_type(match_field, exactness),
                    matched_text=text,
                )
                for org_id, (score, match_field, text, exactness) in ranked[:limit]
            ]
            self.cache.set(cache_key, tuple(results))
        return results

    def suggest(self, partial_text: str, limit: int = 10, threshold: float = 0.5) -> list[dict]:
        """
        Autocomplete suggestions for a partially typed name.

        Returns:
            List of dicts with text, ticker and confidence, best first
        """
        return [
            {
                "text": match.organization.name,
                "ticker": match.organization.ticker,
                "confidence": match.score,
            }
            for match in self.search(partial_text, limit=limit, threshold=threshold)
        ]

    def lookup(
        self,
        text: str,
        entity_type: EntityType | None = None,
        threshold: float | None = None,
    ) -> KnowledgeBaseMatch | None:
        """
        Resolve one extracted entity against the knowledge base.

        Tries, in order: exact ticker (ticker-typed entities only), exact
        canonical name, exact alias, then the best fuzzy search hit at or
        above threshold.
        """
        if not isinstance(text, str) or not text.strip():
            return None
        threshold = self.fuzzy_threshold if threshold is None else threshold
        is_ticker = entity_type == EntityType.TICKER
        cache_key = ("lookup", text.strip().lower(), is_ticker, threshold)
        with self._lock:
            cached = self.cache.get(cache_key)
            if cached is not None:
                # Misses are cached as False
                return cached or None

            match = self._lookup_uncached(text, is_ticker, threshold)
            self.cache.set(cache_key, match if match is not None else False)
        return match

    def _lookup_uncached(
        self, text: str, is_ticker: bool, threshold: float
    ) -> KnowledgeBaseMatch | None:
        if is_ticker:
            org = self.find_by_ticker(text)
            if org is not None:
                return KnowledgeBaseMatch(org, 1.0, "ticker", "exact_ticker", org.ticker or text)

        org = self.find_by_name(text)
        if org is not None:
            return KnowledgeBaseMatch(org, NAME_BOOST, "name", "exact_name", org.name)

        by_alias = self.find_by_alias(text)
        if by_alias:
            return KnowledgeBaseMatch(by_alias[0], ALIAS_BOOST, "alias", "alias", text)

        hits = self.search(text, limit=1, threshold=threshold, include_tickers=is_ticker)
        if not hits:
            return None
        hit = hits[0]
        return KnowledgeBaseMatch(hit.organization, hit.score, hit.match_field, "fuzzy", hit.matched_text)

    def is_same_company(self, ref1: str, ref2: str, threshold: float = 0.8) -> bool:
        """
        Check if two references likely denote the same organization.

        When both resolve through search the ids are compared; otherwise the
        raw strings are fuzzy-matched at threshold.
        """
        results1 = self.search(ref1, limit=1, threshold=SAME_COMPANY_SEARCH_THRESHOLD)
        results2 = self.search(ref2, limit=1, threshold=SAME_COMPANY_SEARCH_THRESHOLD)
        if results1 and results2:
            return results1[0].organization.id == results2[0].organization.id
        return self.matcher.is_match(ref1, ref2, threshold)

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_state(self) -> str:
        """Serialize every record to JSON."""
        with self._lock:
            snapshot = KnowledgeBaseSnapshot(organizations=list(self._state.organizations.values()))
        return snapshot.model_dump_json(indent=2)

    def import_state(self, payload: str | bytes | Mapping) -> int:
        """
        Replace all records with those in payload.

        The payload is validated completely and new indexes are built aside
        before being swapped in, so a failed import leaves the prior state
        untouched.

        Returns:
            Number of records imported

        Raises:
            KnowledgeBaseImportError: If the payload cannot be parsed or validated
        """
        try:
            if isinstance(payload, (str, bytes, bytearray)):
                snapshot = KnowledgeBaseSnapshot.model_validate_json(payload)
            elif isinstance(payload, Mapping):
                snapshot = KnowledgeBaseSnapshot.model_validate(payload)
            else:
                raise KnowledgeBaseImportError(
                    f"unsupported payload type {type(payload).__name__}"
                )
        except (ValidationError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise KnowledgeBaseImportError(str(e).splitlines()[0]) from e

        if snapshot.version != SNAPSHOT_VERSION:
            raise KnowledgeBaseImportError(f"unsupported snapshot version {snapshot.version}")

        new_state = _IndexState()
        for record in snapshot.organizations:
            if record.id in new_state.organizations:
                raise KnowledgeBaseImportError(f"duplicate organization id {record.id!r}")
            self._index(new_state, self._prepare(record))

        with self._lock:
            self._state = new_state
            self.cache.clear()
        logger.info(f"Imported {len(new_state.organizations)} organizations")
        return len(new_state.organizations)


def _match_type(match_field: str, exactness: str) -> str:
    if exactness != "exact":
        return "fuzzy"
    return {"name": "exact_name", "alias": "alias", "ticker": "exact_ticker"}[match_field]
