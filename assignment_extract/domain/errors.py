from __future__ import annotations


class DomainError(Exception):
    pass


class DomainValidationError(DomainError):
    pass


class DomainInvariantError(DomainError):
    pass


class SourceReadError(DomainError):
    """Raised by document source connectors when a document or region cannot be read."""


class DefinitionNotFoundError(DomainError):
    pass


class ArtifactHydrationError(DomainError):
    pass
