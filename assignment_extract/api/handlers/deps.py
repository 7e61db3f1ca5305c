from __future__ import annotations

from dataclasses import dataclass

from assignment_extract.domain.contracts import DefinitionRepository, DocumentSources, EventSink, StorageClient


@dataclass(frozen=True)
class ApiDeps:
    repository: DefinitionRepository
    storage: StorageClient
    sources: DocumentSources
    events: EventSink
