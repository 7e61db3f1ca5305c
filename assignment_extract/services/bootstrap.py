from __future__ import annotations

from dataclasses import dataclass

from assignment_extract.api.handlers.deps import ApiDeps
from assignment_extract.clients.stub import InMemoryDocumentSource, InMemoryStorageClient
from assignment_extract.clients.yaml_source import load_document_source
from assignment_extract.domain.contracts import DefinitionRepository, DocumentSources, EventSink, StorageClient
from assignment_extract.domain.events import LoggingEventSink
from assignment_extract.lib.artifacts import build_definition_repository
from assignment_extract.roles import RuntimeRole
from assignment_extract.settings import RuntimeSettings, runtime_settings_from_env


@dataclass
class RuntimeContainer:
    role: RuntimeRole
    settings: RuntimeSettings
    storage: StorageClient
    repository: DefinitionRepository
    sources: DocumentSources
    events: EventSink
    api_deps: ApiDeps


def build_runtime_container(
    role: RuntimeRole,
    settings: RuntimeSettings | None = None,
    *,
    source_file: str | None = None,
) -> RuntimeContainer:
    settings = settings or runtime_settings_from_env()
    source_file = source_file or settings.document_source_file
    if source_file:
        sources = load_document_source(source_file)
    else:
        documents = InMemoryDocumentSource()
        sources = DocumentSources(grids=documents, slides=documents)

    storage = InMemoryStorageClient()
    repository = build_definition_repository(
        storage=storage,
        active_contract_version=settings.definition_contract_version,
        compat_policy=settings.definition_compat_policy,
    )
    events = LoggingEventSink()
    api_deps = ApiDeps(repository=repository, storage=storage, sources=sources, events=events)
    return RuntimeContainer(
        role=role,
        settings=settings,
        storage=storage,
        repository=repository,
        sources=sources,
        events=events,
        api_deps=api_deps,
    )
