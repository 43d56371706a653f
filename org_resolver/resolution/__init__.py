"""
Entity Resolution Module.

Turns raw text into ranked, scored organization entities.

Concerns are split into components that can be tested and swapped
independently:
- Name normalization and fuzzy matching
- Knowledge base of known organizations
- Pattern-based candidate extraction
- Structural context analysis
- Confidence scoring
- Same-text coreference
"""

from org_resolver.resolution.coreference import (
    CoreferenceResolver,
    HeuristicCoreferenceResolver,
)
from org_resolver.resolution.fuzzy import FuzzyMatcher
from org_resolver.resolution.knowledge_base import CompanyKnowledgeBase
from org_resolver.resolution.models import (
    Candidate,
    ConfidenceLevel,
    ConfidenceResult,
    EntityType,
    KnownOrganization,
    ResolutionResult,
    ResolvedEntity,
)
from org_resolver.resolution.normalizer import CompanyNormalizer
from org_resolver.resolution.patterns import PatternExtractor, PatternGroup
from org_resolver.resolution.resolver import EntityResolver, build_resolver
from org_resolver.resolution.scoring import ConfidenceScorer
from org_resolver.resolution.structure import StructuralContextAnalyzer, StructuralHints

__all__ = [
    # Model
    "Candidate",
    "ConfidenceLevel",
    "ConfidenceResult",
    "EntityType",
    "KnownOrganization",
    "ResolutionResult",
    "ResolvedEntity",
    # Components
    "CompanyNormalizer",
    "FuzzyMatcher",
    "CompanyKnowledgeBase",
    "PatternExtractor",
    "PatternGroup",
    "StructuralContextAnalyzer",
    "StructuralHints",
    "ConfidenceScorer",
    "CoreferenceResolver",
    "HeuristicCoreferenceResolver",
    # Main resolver
    "EntityResolver",
    "build_resolver",
]
