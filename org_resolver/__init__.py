"""
org_resolver - Organization entity resolution for short text spans.

This package provides utilities for:
- Extracting company names and ticker symbols from text
- Normalizing names and matching them against a knowledge base
- Scoring each resolved entity with a calibrated confidence
- Common CLI utilities for scripts
"""

import logging

# Set up NullHandler to prevent "No handler found" warnings
# when used as a library. Applications should configure their own handlers.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

# Re-export commonly used items
from org_resolver.config import (
    DEFAULT_EXTRACTION_DEADLINE_MS,
    DEFAULT_FUZZY_MATCH_THRESHOLD,
    DEFAULT_MAX_ENTITIES,
    DEFAULT_MAX_RESULTS,
    ResolverConfig,
)
from org_resolver.exceptions import (
    DuplicateOrganizationError,
    KnowledgeBaseError,
    KnowledgeBaseImportError,
    OrgResolverError,
)

__all__ = [
    "__version__",
    # Config
    "ResolverConfig",
    # Constants
    "DEFAULT_EXTRACTION_DEADLINE_MS",
    "DEFAULT_FUZZY_MATCH_THRESHOLD",
    "DEFAULT_MAX_ENTITIES",
    "DEFAULT_MAX_RESULTS",
    # Errors
    "OrgResolverError",
    "KnowledgeBaseError",
    "KnowledgeBaseImportError",
    "DuplicateOrganizationError",
]
