from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from assignment_extract.domain.contracts import STORAGE_PREFIXES, PageElement, PageRef
from assignment_extract.domain.errors import SourceReadError
from assignment_extract.domain.formula_diff import BoundingBox


@dataclass
class InMemoryStorageClient:
    writes: list[str] = field(default_factory=list)
    objects: dict[str, bytes] = field(default_factory=dict)

    def put_bytes(self, *, key: str, payload: bytes) -> str:
        if not any(key.startswith(prefix) for prefix in STORAGE_PREFIXES):
            raise ValueError("storage key must start with an allowed prefix")
        self.writes.append(key)
        self.objects[key] = payload
        return f"mem://{key}"

    def get_bytes(self, *, key: str) -> bytes:
        payload = self.objects.get(key)
        if payload is None:
            raise KeyError(f"storage key not found: {key}")
        return payload

    def list_keys(self, *, prefix: str) -> list[str]:
        return sorted(key for key in self.objects if key.startswith(prefix))


@dataclass
class SheetPage:
    page_id: str
    title: str
    grid: list[list[str]] = field(default_factory=list)


@dataclass
class SlideElement:
    page_id: str
    element_id: str
    kind: str
    description: str = ""
    text: str = ""
    cells: list[list[str]] = field(default_factory=list)


@dataclass
class InMemoryDocument:
    document_id: str
    sheets: list[SheetPage] = field(default_factory=list)
    elements: list[SlideElement] = field(default_factory=list)


@dataclass
class InMemoryDocumentSource:
    """GridSource and SlideSource over documents held in memory.

    Document ids listed in ``unavailable`` fail every read with
    SourceReadError; ``failing_pages`` fails reads of single pages.
    """

    documents: dict[str, InMemoryDocument] = field(default_factory=dict)
    unavailable: set[str] = field(default_factory=set)
    failing_pages: set[tuple[str, str]] = field(default_factory=set)
    region_reads: list[tuple[str, str, BoundingBox]] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> InMemoryDocumentSource:
        documents: dict[str, InMemoryDocument] = {}
        for document_id, document in (payload.get("documents") or {}).items():
            document = document or {}
            sheets = [
                SheetPage(
                    page_id=str(sheet.get("id") or sheet["name"]),
                    title=str(sheet["name"]),
                    grid=[[_cell(value) for value in row or []] for row in sheet.get("grid") or []],
                )
                for sheet in document.get("sheets") or []
            ]
            elements = [
                SlideElement(
                    page_id=str(slide["id"]),
                    element_id=str(element["id"]),
                    kind=str(element.get("kind") or "shape"),
                    description=str(element.get("description") or ""),
                    text=str(element.get("text") or ""),
                    cells=[[_cell(value) for value in row or []] for row in element.get("cells") or []],
                )
                for slide in document.get("slides") or []
                for element in slide.get("elements") or []
            ]
            documents[str(document_id)] = InMemoryDocument(
                document_id=str(document_id),
                sheets=sheets,
                elements=elements,
            )
        return cls(documents=documents)

    def list_pages(self, document_id: str) -> list[PageRef]:
        document = self._document(document_id)
        return [PageRef(page_id=sheet.page_id, title=sheet.title) for sheet in document.sheets]

    def extract_grid(self, document_id: str, page_id: str) -> list[list[str]] | None:
        sheet = self._sheet(document_id, page_id)
        if sheet is None:
            return None
        return [list(row) for row in sheet.grid]

    def read_region(self, document_id: str, page_id: str, bbox: BoundingBox) -> list[list[str]]:
        sheet = self._sheet(document_id, page_id)
        if sheet is None:
            raise SourceReadError(f"sheet {page_id} not found in document {document_id}")
        self.region_reads.append((document_id, page_id, bbox))
        region: list[list[str]] = []
        for row in range(bbox.start_row - 1, bbox.end_row):
            cells = sheet.grid[row] if row < len(sheet.grid) else []
            region.append(
                [
                    cells[column] if column < len(cells) else ""
                    for column in range(bbox.start_column - 1, bbox.end_column)
                ]
            )
        return region

    def list_page_elements(self, document_id: str) -> list[PageElement]:
        document = self._document(document_id)
        return [
            PageElement(
                page_id=element.page_id,
                element_id=element.element_id,
                kind=element.kind,
                description=element.description,
            )
            for element in document.elements
        ]

    def extract_text(self, document_id: str, page_id: str, element_id: str) -> str:
        return self._element(document_id, page_id, element_id).text

    def extract_cells(self, document_id: str, page_id: str, element_id: str) -> list[list[str]]:
        return [list(row) for row in self._element(document_id, page_id, element_id).cells]

    def _document(self, document_id: str) -> InMemoryDocument:
        if document_id in self.unavailable:
            raise SourceReadError(f"document is unavailable: {document_id}")
        document = self.documents.get(document_id)
        if document is None:
            raise SourceReadError(f"document not found: {document_id}")
        return document

    def _sheet(self, document_id: str, page_id: str) -> SheetPage | None:
        document = self._document(document_id)
        if (document_id, page_id) in self.failing_pages:
            raise SourceReadError(f"failed to read page {page_id} of {document_id}")
        for sheet in document.sheets:
            if sheet.page_id == page_id:
                return sheet
        return None

    def _element(self, document_id: str, page_id: str, element_id: str) -> SlideElement:
        document = self._document(document_id)
        if (document_id, page_id) in self.failing_pages:
            raise SourceReadError(f"failed to read page {page_id} of {document_id}")
        for element in document.elements:
            if element.page_id == page_id and element.element_id == element_id:
                return element
        raise SourceReadError(f"element {element_id} not found on page {page_id}")


@dataclass
class StubImageSource:
    images: dict[str, bytes] = field(default_factory=dict)
    default: bytes | None = None
    fetched: list[str] = field(default_factory=list)

    def fetch_image(self, url: str) -> bytes:
        self.fetched.append(url)
        payload = self.images.get(url, self.default)
        if payload is None:
            raise SourceReadError(f"image is unavailable: {url}")
        return payload


@dataclass
class RecordingEventSink:
    events: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    errors: list[tuple[BaseException, dict[str, object]]] = field(default_factory=list)

    def log(self, event: str, **context: object) -> None:
        self.events.append((event, dict(context)))

    def capture_error(self, error: BaseException, context: Mapping[str, object]) -> None:
        self.errors.append((error, dict(context)))


def _cell(value: object) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
