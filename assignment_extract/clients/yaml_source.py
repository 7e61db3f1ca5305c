from __future__ import annotations

from pathlib import Path

import yaml

from assignment_extract.clients.stub import InMemoryDocumentSource, StubImageSource
from assignment_extract.domain.contracts import DocumentSources
from assignment_extract.domain.errors import SourceReadError


def load_document_source(path: str | Path) -> DocumentSources:
    """Load fixture documents from a YAML file.

    Expected shape::

        documents:
          <document id>:
            sheets: [{id, name, grid: [[...], ...]}]
            slides: [{id, elements: [{id, kind, description, text, cells}]}]
        images:
          <url>: <payload text, stored as UTF-8 bytes>
    """
    source_path = Path(path)
    try:
        payload = yaml.safe_load(source_path.read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise SourceReadError(f"document source file is unreadable: {source_path}") from exc
    except yaml.YAMLError as exc:
        raise SourceReadError(f"document source file is not valid YAML: {source_path}") from exc
    if not isinstance(payload, dict):
        raise SourceReadError(f"document source file must contain a mapping: {source_path}")

    documents = InMemoryDocumentSource.from_mapping(payload)
    images = StubImageSource(
        images={str(url): str(body).encode("utf-8") for url, body in (payload.get("images") or {}).items()}
    )
    return DocumentSources(grids=documents, slides=documents, images=images)
