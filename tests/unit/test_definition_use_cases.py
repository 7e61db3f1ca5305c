import pytest

from assignment_extract.clients.stub import RecordingEventSink, StubImageSource
from assignment_extract.domain.contracts import DocumentSources
from assignment_extract.domain.dto import BuildDefinitionCommand
from assignment_extract.domain.errors import DomainInvariantError, DomainValidationError
from assignment_extract.domain.models import DocumentType
from assignment_extract.domain.use_cases.definitions import attach_submissions, build_assignment_definition
from assignment_extract.domain.use_cases.images import capture_images
from assignment_extract.domain.use_cases.slides import slide_image_url
from assignment_extract.lib.artifacts.types import PNG_DATA_URL_PREFIX
from tests.unit.source_fixtures import (
    SHEETS_REFERENCE_ID,
    SHEETS_STUDENT_ID,
    SHEETS_TEMPLATE_ID,
    SLIDES_REFERENCE_ID,
    SLIDES_STUDENT_ID,
    SLIDES_TEMPLATE_ID,
    sheets_source,
    slides_source,
)


def _sheets_command() -> BuildDefinitionCommand:
    return BuildDefinitionCommand(
        primary_title="Shop",
        primary_topic="Formulas",
        document_type="SHEETS",
        reference_document_id=SHEETS_REFERENCE_ID,
        template_document_id=SHEETS_TEMPLATE_ID,
        year_group=7,
    )


def _slides_command() -> BuildDefinitionCommand:
    return BuildDefinitionCommand(
        primary_title="Cells",
        primary_topic="Biology",
        document_type=DocumentType.SLIDES,
        reference_document_id=SLIDES_REFERENCE_ID,
        template_document_id=SLIDES_TEMPLATE_ID,
    )


@pytest.mark.unit
def test_sheets_definition_collects_extracted_tasks() -> None:
    source = sheets_source()
    events = RecordingEventSink()

    result = build_assignment_definition(_sheets_command(), sources=DocumentSources(grids=source), events=events)

    definition = result.definition
    assert definition.definition_key == "Shop_Formulas_7"
    assert [task.task_title for task in definition.ordered_tasks()] == ["Sales", "Costs"]
    assert result.failures == []
    assert events.events[-1][0] == "assignment definition built"


@pytest.mark.unit
def test_missing_source_for_document_type_is_rejected() -> None:
    with pytest.raises(DomainInvariantError, match="spreadsheet source is required"):
        build_assignment_definition(
            _sheets_command(),
            sources=DocumentSources(slides=slides_source()),
            events=RecordingEventSink(),
        )


@pytest.mark.unit
def test_invalid_command_fails_validation_before_extraction() -> None:
    command = BuildDefinitionCommand(
        primary_title="",
        primary_topic="Formulas",
        document_type="SHEETS",
        reference_document_id=SHEETS_REFERENCE_ID,
        template_document_id=SHEETS_TEMPLATE_ID,
    )

    with pytest.raises(DomainValidationError, match="primaryTitle"):
        build_assignment_definition(
            command,
            sources=DocumentSources(grids=sheets_source()),
            events=RecordingEventSink(),
        )


@pytest.mark.unit
def test_attach_submissions_touches_updated_timestamp() -> None:
    source = sheets_source()
    sources = DocumentSources(grids=source)
    definition = build_assignment_definition(_sheets_command(), sources=sources, events=RecordingEventSink()).definition
    before = definition.updated_at

    result = attach_submissions(
        definition,
        student_document_id=SHEETS_STUDENT_ID,
        sources=sources,
        events=RecordingEventSink(),
    )

    assert result.appended == 2
    assert definition.updated_at >= before
    assert all(len(task.artifacts["submission"]) == 1 for task in definition.ordered_tasks())


@pytest.mark.unit
def test_attach_submissions_requires_student_document() -> None:
    sources = DocumentSources(grids=sheets_source())
    definition = build_assignment_definition(_sheets_command(), sources=sources, events=RecordingEventSink()).definition

    with pytest.raises(DomainInvariantError, match="student document id"):
        attach_submissions(definition, student_document_id="", sources=sources, events=RecordingEventSink())


@pytest.mark.unit
def test_slides_definition_captures_images_when_source_is_available() -> None:
    images = StubImageSource(default=b"png-bytes")
    sources = DocumentSources(slides=slides_source(), images=images)

    result = build_assignment_definition(_slides_command(), sources=sources, events=RecordingEventSink())

    diagram = next(task for task in result.definition.ordered_tasks() if task.task_title == "Diagram")
    assert diagram.get_primary_reference().content == PNG_DATA_URL_PREFIX + "cG5nLWJ5dGVz"
    assert diagram.get_primary_template().content == PNG_DATA_URL_PREFIX + "cG5nLWJ5dGVz"
    assert sorted(images.fetched) == sorted(
        [slide_image_url(SLIDES_REFERENCE_ID, "p1"), slide_image_url(SLIDES_TEMPLATE_ID, "p1")]
    )


@pytest.mark.unit
def test_image_capture_is_best_effort() -> None:
    definition = build_assignment_definition(
        _slides_command(),
        sources=DocumentSources(slides=slides_source()),
        events=RecordingEventSink(),
    ).definition
    reference_url = slide_image_url(SLIDES_REFERENCE_ID, "p1")
    images = StubImageSource(images={reference_url: b"ref"})
    events = RecordingEventSink()

    result = capture_images(assignment=definition, image_source=images, events=events)

    assert result.captured == 1
    assert [(failure.task_title, failure.error_code) for failure in result.failures] == [
        ("Diagram", "source_unavailable")
    ]
    diagram = next(task for task in definition.ordered_tasks() if task.task_title == "Diagram")
    assert diagram.get_primary_reference().content is not None
    assert diagram.get_primary_template().content is None


@pytest.mark.unit
def test_slide_submissions_capture_student_images() -> None:
    images = StubImageSource(default=b"png-bytes")
    sources = DocumentSources(slides=slides_source(), images=images)
    definition = build_assignment_definition(_slides_command(), sources=sources, events=RecordingEventSink()).definition

    result = attach_submissions(
        definition,
        student_document_id=SLIDES_STUDENT_ID,
        sources=sources,
        events=RecordingEventSink(),
    )

    diagram = next(task for task in definition.ordered_tasks() if task.task_title == "Diagram")
    assert diagram.artifacts["submission"][0].content == PNG_DATA_URL_PREFIX + "cG5nLWJ5dGVz"
    assert [failure.error_code for failure in result.failures] == ["element_missing"]
