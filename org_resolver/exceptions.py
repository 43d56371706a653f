"""Custom exceptions for org_resolver."""


class OrgResolverError(Exception):
    """Base exception for org_resolver."""

    pass


class KnowledgeBaseError(OrgResolverError):
    """Raised when a knowledge base operation fails."""

    pass


class DuplicateOrganizationError(KnowledgeBaseError):
    """Raised when adding an organization whose id is already present."""

    def __init__(self, org_id: str):
        self.org_id = org_id
        super().__init__(f"Organization already exists: {org_id}")


class KnowledgeBaseImportError(KnowledgeBaseError):
    """Raised when an import payload is rejected. Prior state is retained."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Knowledge base import failed: {reason}")
