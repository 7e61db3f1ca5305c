from __future__ import annotations

from assignment_extract.domain.contracts import EventSink, ImageSource
from assignment_extract.domain.dto import ExtractionFailure, ImageCaptureResult
from assignment_extract.domain.models import AssignmentDefinition
from assignment_extract.domain.use_cases.failures import record_failure
from assignment_extract.lib.artifacts.types import ArtifactType

COMPONENT_ID = "domain.images.capture"


def capture_images(
    *,
    assignment: AssignmentDefinition,
    image_source: ImageSource,
    events: EventSink,
) -> ImageCaptureResult:
    """Fill IMAGE artifacts that have a ``sourceUrl`` but no content yet.

    Fetching is best effort: a failed fetch is recorded and the artifact keeps
    empty content.
    """
    captured = 0
    failures: list[ExtractionFailure] = []
    for task in assignment.ordered_tasks():
        for artifacts in task.artifacts.values():
            for artifact in artifacts:
                url = artifact.metadata.get("sourceUrl")
                if artifact.type is not ArtifactType.IMAGE or not url or artifact.content is not None:
                    continue
                try:
                    payload = image_source.fetch_image(url)
                except Exception as exc:
                    failures.append(
                        record_failure(
                            events,
                            exc,
                            stage="images",
                            message="failed to fetch slide image",
                            task_title=task.task_title,
                            document_id=artifact.document_id,
                        )
                    )
                    continue
                artifact.set_content_from_bytes(payload)
                if artifact.content is not None:
                    captured += 1

    events.log("slide images captured", document_id=assignment.reference_document_id, count=captured)
    return ImageCaptureResult(captured=captured, failures=failures)
