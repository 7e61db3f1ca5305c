from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from assignment_extract.domain.formula_diff import BoundingBox
    from assignment_extract.domain.models import AssignmentDefinition

STORAGE_PREFIXES = ("definitions/",)


@dataclass(frozen=True)
class PageRef:
    """A sheet tab or slide within a document."""

    page_id: str
    title: str


@dataclass(frozen=True)
class PageElement:
    # Tagged element on a slide. `kind` is one of shape, table, image.
    page_id: str
    element_id: str
    kind: str
    description: str = ""


@runtime_checkable
class GridSource(Protocol):
    """Spreadsheet-like document connector.

    Grids are raw formula text as read from the host document; rows may be
    ragged. Implementations raise SourceReadError when a read fails.
    """

    def list_pages(self, document_id: str) -> Sequence[PageRef]: ...

    def extract_grid(self, document_id: str, page_id: str) -> list[list[str]] | None: ...

    def read_region(self, document_id: str, page_id: str, bbox: BoundingBox) -> list[list[str]]: ...


@runtime_checkable
class SlideSource(Protocol):
    """Slides-like document connector exposing tagged page elements."""

    def list_page_elements(self, document_id: str) -> Sequence[PageElement]: ...

    def extract_text(self, document_id: str, page_id: str, element_id: str) -> str: ...

    def extract_cells(self, document_id: str, page_id: str, element_id: str) -> list[list[str]]: ...


@runtime_checkable
class ImageSource(Protocol):
    def fetch_image(self, url: str) -> bytes: ...


@runtime_checkable
class EventSink(Protocol):
    """Injected observability collaborator for extraction runs."""

    def log(self, event: str, **context: object) -> None: ...

    def capture_error(self, error: BaseException, context: Mapping[str, object]) -> None: ...


@runtime_checkable
class StorageClient(Protocol):
    """Storage contract using single-bucket, prefix-scoped paths."""

    def put_bytes(self, *, key: str, payload: bytes) -> str: ...

    def get_bytes(self, *, key: str) -> bytes: ...

    def list_keys(self, *, prefix: str) -> list[str]: ...


@runtime_checkable
class DefinitionRepository(Protocol):
    def save_definition(self, *, definition: AssignmentDefinition) -> str: ...

    def load_definition(self, *, definition_key: str) -> AssignmentDefinition: ...

    def list_definition_keys(self) -> list[str]: ...


@dataclass(frozen=True)
class DocumentSources:
    """Connectors available to an extraction run; any of them may be absent."""

    grids: GridSource | None = None
    slides: SlideSource | None = None
    images: ImageSource | None = None
