"""
Company Name Normalization.

Canonicalizes organization names: removes punctuation noise, strips trailing
legal-entity suffixes and generic descriptors, and expands well-known
abbreviations. Also infers legal-form tags and jurisdiction hints from the
suffixes it strips.

normalize() is idempotent: normalize(normalize(x)) == normalize(x).
"""

from __future__ import annotations

import re

from org_resolver.resolution.models import NormalizedForm

# Suffix tables by region. Short all-caps entries (AG, SA, AS, ...) match
# case-sensitively so ordinary words like "as" are never stripped.
US_SUFFIXES = (
    "Inc", "Inc.", "Incorporated",
    "Corp", "Corp.", "Corporation",
    "Co", "Co.", "Company",
    "LLC", "L.L.C.", "Limited Liability Company",
    "LP", "L.P.", "Limited Partnership",
    "LLP", "L.L.P.", "Limited Liability Partnership",
    "Ltd", "Ltd.", "Limited",
    "PC", "P.C.", "Professional Corporation",
    "PA", "P.A.", "Professional Association",
    "PLLC", "P.L.L.C.", "Professional Limited Liability Company",
)

UK_SUFFIXES = (
    "Ltd", "Ltd.", "Limited",
    "PLC", "P.L.C.", "Public Limited Company",
    "LLP", "L.L.P.", "Limited Liability Partnership",
)

EUROPE_SUFFIXES = (
    "AG", "A.G.", "Aktiengesellschaft",
    "GmbH", "G.m.b.H.", "Gesellschaft mit beschränkter Haftung",
    "SA", "S.A.", "Société Anonyme",
    "SARL", "S.A.R.L.", "Société à responsabilité limitée",
    "BV", "B.V.", "Besloten Vennootschap",
    "NV", "N.V.", "Naamloze Vennootschap",
    "SpA", "S.p.A.", "Società per Azioni",
    "AB", "A.B.", "Aktiebolag",
    "AS", "A.S.", "Aksjeselskap",
    "Oy", "Oyj",
)

ASIA_SUFFIXES = (
    "KK", "K.K.", "Kabushiki Kaisha", "株式会社",
    "YK", "Y.K.", "Yugen Kaisha", "有限会社",
    "Pte Ltd", "Pte. Ltd.", "Private Limited",
    "Sdn Bhd", "Sdn. Bhd.", "Sendirian Berhad",
    "Co., Ltd.",
    "有限公司", "股份有限公司",
)

DESCRIPTOR_SUFFIXES = (
    "Group", "Groups",
    "Holdings", "Holding",
    "International", "Intl", "Intl.",
    "Global",
    "Worldwide",
    "Partners",
    "Associates",
    "Enterprises",
    "Ventures",
    "Technologies", "Tech",
    "Solutions",
    "Services",
    "Systems",
    "Industries",
)

DEFAULT_SUFFIXES: dict[str, tuple[str, ...]] = {
    "us": US_SUFFIXES,
    "uk": UK_SUFFIXES,
    "europe": EUROPE_SUFFIXES,
    "asia": ASIA_SUFFIXES,
    "other": DESCRIPTOR_SUFFIXES,
}

DEFAULT_ABBREVIATIONS: dict[str, str] = {
    "IBM": "International Business Machines",
    "GM": "General Motors",
    "GE": "General Electric",
    "P&G": "Procter & Gamble",
    "J&J": "Johnson & Johnson",
    "AT&T": "American Telephone & Telegraph",
    "UPS": "United Parcel Service",
    "FedEx": "Federal Express",
    "BMW": "Bayerische Motoren Werke",
    "HSBC": "Hongkong and Shanghai Banking Corporation",
    "KPMG": "Klynveld Peat Marwick Goerdeler",
    "PwC": "PricewaterhouseCoopers",
    "EY": "Ernst & Young",
    "CVS": "Consumer Value Stores",
    "IKEA": "Ingvar Kamprad Elmtaryd Agunnaryd",
}

# Known renames and common alternate names
DEFAULT_VARIATIONS: dict[str, tuple[str, ...]] = {
    "alphabet": ("google", "alphabet inc"),
    "meta": ("facebook", "meta platforms"),
    "x": ("twitter", "x corp"),
    "salesforce": ("salesforce.com",),
    "walmart": ("wal-mart",),
    "exxonmobil": ("exxon mobil", "exxon", "mobil"),
    "jpmorgan": ("jp morgan", "jpmorgan chase", "chase"),
    "berkshire hathaway": ("berkshire",),
    "procter gamble": ("p&g", "procter and gamble", "procter & gamble"),
    "johnson johnson": ("j&j", "johnson and johnson", "johnson & johnson"),
}

# Legal-form tags keyed by canonical suffix (lower-case, dots removed)
COMPANY_TYPE_BY_SUFFIX: dict[str, str] = {
    "inc": "corporation",
    "incorporated": "corporation",
    "corp": "corporation",
    "corporation": "corporation",
    "llc": "limited_liability_company",
    "limited liability company": "limited_liability_company",
    "ltd": "limited_company",
    "limited": "limited_company",
    "co ltd": "limited_company",
    "pte ltd": "limited_company",
    "plc": "public_limited_company",
    "public limited company": "public_limited_company",
    "lp": "limited_partnership",
    "limited partnership": "limited_partnership",
    "llp": "limited_liability_partnership",
    "limited liability partnership": "limited_liability_partnership",
}

COUNTRY_HINTS_BY_SUFFIX: dict[str, tuple[str, ...]] = {
    "ag": ("DE", "CH"),
    "gmbh": ("DE",),
    "sa": ("FR",),
    "sarl": ("FR",),
    "bv": ("NL",),
    "nv": ("NL",),
    "spa": ("IT",),
    "ab": ("SE",),
    "as": ("NO",),
    "oy": ("FI",),
    "oyj": ("FI",),
    "kk": ("JP",),
    "yk": ("JP",),
    "pte ltd": ("SG",),
    "sdn bhd": ("MY",),
}

_NOISE_RE = re.compile(r"[,;\"“”]")
_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_RE = re.compile(r"[\s.!?:&\-]+$")
_LEADING_ARTICLE_RE = re.compile(r"^the\s+(?=\S)", re.IGNORECASE)
_CJK_RE = re.compile(r"[぀-ヿ㐀-鿿]")
_SHORT_CAPS_RE = re.compile(r"^[A-Z]{2}$")


def _clean(text: str) -> str:
    """Remove punctuation noise, collapse whitespace, trim trailing punctuation."""
    text = _NOISE_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return _TRAILING_RE.sub("", text)


def canonical_suffix(suffix: str) -> str:
    """Canonical lookup key for a suffix: lower-case, no dots, single spaces."""
    return _WHITESPACE_RE.sub(" ", _clean(suffix).replace(".", "")).strip().lower()


class CompanyNormalizer:
    """
    Normalizes company names by removing legal suffixes and standardizing formats.

    All tables are injectable; the module-level defaults are used otherwise.

    Example:
        >>> CompanyNormalizer().normalize("BlackRock, Inc.")
        'BlackRock'
        >>> CompanyNormalizer().normalize("IBM")
        'International Business Machines'
    """

    def __init__(
        self,
        suffixes: dict[str, tuple[str, ...]] | None = None,
        abbreviations: dict[str, str] | None = None,
        variations: dict[str, tuple[str, ...]] | None = None,
    ):
        self.suffixes = suffixes if suffixes is not None else DEFAULT_SUFFIXES
        self.abbreviations = abbreviations if abbreviations is not None else DEFAULT_ABBREVIATIONS
        variations = variations if variations is not None else DEFAULT_VARIATIONS

        self._us_keys = {canonical_suffix(s) for s in self.suffixes.get("us", ())}
        self._uk_keys = {canonical_suffix(s) for s in self.suffixes.get("uk", ())}
        self._suffix_re = self._build_suffix_pattern()

        # Expansions are normalized too so abbreviation substitution stays idempotent
        self._expansions: dict[str, str] = {}
        for abbr, full in self.abbreviations.items():
            self._expansions[abbr.lower()] = self._strip(full)[0]

        self._abbr_patterns = [
            (re.compile(rf"(?<![\w&]){re.escape(abbr)}(?![\w&])", re.IGNORECASE), full)
            for abbr, full in sorted(self.abbreviations.items(), key=lambda kv: -len(kv[0]))
        ]

        self._variation_groups: list[frozenset[str]] = []
        for key, names in variations.items():
            group = {key.lower()}
            for name in (key, *names):
                group.add(name.lower())
                group.add(self.normalize(name).lower())
            self._variation_groups.append(frozenset(group))

    def _build_suffix_pattern(self) -> re.Pattern:
        latin: set[str] = set()
        cjk: set[str] = set()
        for table in self.suffixes.values():
            for suffix in table:
                cleaned = _clean(suffix)
                if not cleaned:
                    continue
                (cjk if _CJK_RE.search(cleaned) else latin).add(cleaned)

        def alternative(s: str) -> str:
            escaped = re.escape(s)
            if _SHORT_CAPS_RE.match(s):
                return escaped
            return f"(?i:{escaped})"

        latin_alt = "|".join(alternative(s) for s in sorted(latin, key=lambda s: (-len(s), s)))
        cjk_alt = "|".join(re.escape(s) for s in sorted(cjk, key=lambda s: (-len(s), s)))
        parts = []
        if latin_alt:
            parts.append(rf"\s+(?P<latin>{latin_alt})")
        if cjk_alt:
            parts.append(rf"(?<=\S)(?P<cjk>{cjk_alt})")
        if not parts:
            return re.compile(r"(?!x)x")
        return re.compile(rf"(?:{'|'.join(parts)})\.?$")

    def _strip(self, name: str) -> tuple[str, list[str]]:
        """Strip trailing suffixes and a leading article to a fixed point."""
        text = _clean(name)
        found: list[str] = []
        while True:
            match = self._suffix_re.search(text)
            if match:
                remainder = _clean(text[: match.start()])
                if remainder:
                    groups = match.groupdict()
                    found.append(groups.get("latin") or groups.get("cjk"))
                    text = remainder
                    continue
            article = _LEADING_ARTICLE_RE.match(text)
            if article:
                text = text[article.end() :]
                continue
            break
        found.reverse()
        return text, found

    def normalize(self, name: object) -> str:
        """
        Return the canonical base name, or "" for non-string or empty input.

        Args:
            name: Raw entity string

        Returns:
            Suffix-stripped, cleaned name (abbreviations expanded)
        """
        if not isinstance(name, str) or not name.strip():
            return ""
        text, _ = self._strip(name)
        return self._expansions.get(text.lower(), text)

    def get_base_name(self, name: object) -> str:
        return self.normalize(name)

    def get_suffixes(self, name: object) -> list[str]:
        """Suffixes stripped from the name, in text order."""
        if not isinstance(name, str) or not name.strip():
            return []
        return self._strip(name)[1]

    def get_type(self, name: object) -> list[str]:
        """Legal-form tags implied by the name's suffixes."""
        types: list[str] = []
        for suffix in self.get_suffixes(name):
            tag = COMPANY_TYPE_BY_SUFFIX.get(canonical_suffix(suffix))
            if tag and tag not in types:
                types.append(tag)
        return types

    def get_country_hints(self, name: object) -> list[str]:
        """Country codes suggested by the name's suffixes."""
        countries: list[str] = []
        for suffix in self.get_suffixes(name):
            key = canonical_suffix(suffix)
            hints: list[str] = []
            if key in self._us_keys:
                hints.append("US")
            if key in self._uk_keys:
                hints.append("UK")
            hints.extend(COUNTRY_HINTS_BY_SUFFIX.get(key, ()))
            for code in hints:
                if code not in countries:
                    countries.append(code)
        return countries

    def analyze(self, name: object) -> NormalizedForm:
        """Compute the full normalized form in one pass."""
        if not isinstance(name, str) or not name.strip():
            return NormalizedForm(base_name="")
        base, suffixes = self._strip(name)
        return NormalizedForm(
            base_name=self._expansions.get(base.lower(), base),
            suffixes=tuple(suffixes),
            company_types=tuple(self.get_type(name)),
            jurisdictions=tuple(self.get_country_hints(name)),
        )

    def is_variation(self, name1: str, name2: str) -> bool:
        """Check if two names are variations of the same company (e.g. Google/Alphabet)."""
        norm1 = self.normalize(name1).lower()
        norm2 = self.normalize(name2).lower()
        if not norm1 or not norm2:
            return False
        if norm1 == norm2:
            return True
        return any(norm1 in group and norm2 in group for group in self._variation_groups)

    def expand_abbreviations(self, text: str) -> str:
        """Expand every known abbreviation appearing as a whole word in text."""
        if not isinstance(text, str):
            return ""
        for pattern, full in self._abbr_patterns:
            text = pattern.sub(full, text)
        return text
