import pytest

from assignment_extract.clients.stub import (
    InMemoryDocumentSource,
    InMemoryStorageClient,
    RecordingEventSink,
    StubImageSource,
)
from assignment_extract.domain.contracts import (
    STORAGE_PREFIXES,
    DefinitionRepository,
    EventSink,
    GridSource,
    ImageSource,
    SlideSource,
    StorageClient,
)
from assignment_extract.domain.events import LoggingEventSink
from assignment_extract.roles import validate_role
from assignment_extract.services.bootstrap import build_runtime_container
from assignment_extract.settings import RuntimeSettings


@pytest.mark.unit
def test_stub_clients_satisfy_connector_protocols() -> None:
    source = InMemoryDocumentSource()

    assert isinstance(source, GridSource)
    assert isinstance(source, SlideSource)
    assert isinstance(StubImageSource(), ImageSource)
    assert isinstance(InMemoryStorageClient(), StorageClient)
    assert isinstance(RecordingEventSink(), EventSink)
    assert isinstance(LoggingEventSink(), EventSink)


@pytest.mark.unit
def test_runtime_container_wires_repository_and_sources() -> None:
    container = build_runtime_container(validate_role("api"), RuntimeSettings())

    assert isinstance(container.repository, DefinitionRepository)
    assert container.sources.grids is container.sources.slides
    assert container.sources.images is None
    assert container.api_deps.repository is container.repository
    assert isinstance(container.events, LoggingEventSink)


@pytest.mark.unit
def test_runtime_container_honours_compat_policy_setting() -> None:
    container = build_runtime_container(
        validate_role("extract-definitions"),
        RuntimeSettings(definition_compat_policy="compatible"),
    )

    assert container.repository.compat_policy == "compatible"


@pytest.mark.unit
def test_storage_stub_enforces_prefix_contract() -> None:
    container = build_runtime_container(validate_role("api"), RuntimeSettings())

    ok_key = f"{STORAGE_PREFIXES[0]}definition-1.json"
    assert container.storage.put_bytes(key=ok_key, payload=b"{}").startswith("mem://")
    assert container.storage.list_keys(prefix=STORAGE_PREFIXES[0]) == [ok_key]

    with pytest.raises(ValueError):
        container.storage.put_bytes(key="unknown/definition-2.json", payload=b"{}")
