from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
import sys
import uuid

import uvicorn

from assignment_extract.api.http_app import build_app
from assignment_extract.domain.dto import BuildDefinitionCommand, ExtractionFailure
from assignment_extract.domain.errors import DomainError
from assignment_extract.domain.models import AssignmentDefinition
from assignment_extract.domain.use_cases.definitions import attach_submissions, build_assignment_definition
from assignment_extract.logging_setup import configure_logging
from assignment_extract.roles import SUPPORTED_ROLES, RuntimeRole, validate_role
from assignment_extract.services.bootstrap import RuntimeContainer, build_runtime_container
from assignment_extract.settings import runtime_settings_from_env


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Assignment extraction entrypoint")
    parser.add_argument("--role", required=True, help="Runtime role")
    parser.add_argument("--host", default=os.getenv("APP_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument(
        "--dry-run-startup",
        action="store_true",
        help="Validate startup and exit",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable code reload (dev mode)",
    )
    parser.add_argument("--source", default=None, help="YAML document source file")
    parser.add_argument("--output", default=None, help="Write the resulting JSON here instead of stdout")

    definition = parser.add_argument_group("extract-definitions")
    definition.add_argument("--title", default=None)
    definition.add_argument("--topic", default=None)
    definition.add_argument("--year-group", type=int, default=None)
    definition.add_argument("--document-type", default=None, help="SHEETS or SLIDES")
    definition.add_argument("--reference-document-id", default=None)
    definition.add_argument("--template-document-id", default=None)
    definition.add_argument(
        "--partial",
        action="store_true",
        help="Emit the redacted projection without artifact content",
    )

    submissions = parser.add_argument_group("extract-submissions")
    submissions.add_argument("--definition-file", default=None, help="Full definition JSON to extend")
    submissions.add_argument("--student-document-id", action="append", default=[])
    return parser.parse_args(argv)


def create_runtime_app() -> object:
    role_name = os.getenv("APP_ROLE", "api")
    role = validate_role(role_name)
    run_id = str(uuid.uuid4())
    configure_logging()
    container = build_runtime_container(role)
    return build_app(role=role.name, run_id=run_id, api_deps=container.api_deps)


def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        role = validate_role(args.role)
    except ValueError as exc:
        supported = ", ".join(SUPPORTED_ROLES)
        sys.stderr.write(f"ERROR: {exc}\n")
        sys.stderr.write(f"Try one of: {supported}\n")
        return 2

    settings = runtime_settings_from_env()
    configure_logging(settings.log_level)
    run_id = str(uuid.uuid4())
    logger = logging.getLogger("runtime")

    logger.info(
        "runtime initialized",
        extra={"role": role.name, "service": role.name, "run_id": run_id},
    )

    if args.dry_run_startup:
        logger.info(
            "dry-run startup complete",
            extra={"role": role.name, "service": role.name, "run_id": run_id},
        )
        return 0

    try:
        container = build_runtime_container(role, settings, source_file=args.source)
    except DomainError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 1

    if role.serves_http:
        port = args.port if args.port is not None else settings.port
        if args.reload:
            os.environ["APP_ROLE"] = role.name
            uvicorn.run(
                "assignment_extract.main:create_runtime_app",
                host=args.host,
                port=port,
                log_level="warning",
                reload=True,
                factory=True,
            )
        else:
            app = build_app(role=role.name, run_id=run_id, api_deps=container.api_deps)
            uvicorn.run(app, host=args.host, port=port, log_level="warning")
        return 0

    try:
        payload = _run_extraction(role, args, container)
    except (DomainError, ValueError, OSError) as exc:
        logger.error(
            "extraction run failed",
            extra={"role": role.name, "service": role.name, "run_id": run_id, "detail": str(exc)},
        )
        sys.stderr.write(f"ERROR: {exc}\n")
        return 1

    _write_output(payload, args.output)
    logger.info(
        "extraction run complete",
        extra={"role": role.name, "service": role.name, "run_id": run_id, "count": len(payload["failures"])},
    )
    return 0


def _run_extraction(role: RuntimeRole, args: argparse.Namespace, container: RuntimeContainer) -> dict[str, object]:
    if role.name == "extract-definitions":
        command = BuildDefinitionCommand(
            primary_title=args.title,
            primary_topic=args.topic,
            document_type=args.document_type,
            reference_document_id=args.reference_document_id,
            template_document_id=args.template_document_id,
            year_group=args.year_group,
        )
        result = build_assignment_definition(command, sources=container.sources, events=container.events)
        definition = result.definition
        failures = list(result.failures)
    else:
        if not args.definition_file:
            raise ValueError("--definition-file is required for extract-submissions")
        if not args.student_document_id:
            raise ValueError("at least one --student-document-id is required for extract-submissions")
        definition = AssignmentDefinition.from_json(
            json.loads(Path(args.definition_file).read_text(encoding="utf-8"))
        )
        failures = []
        for student_document_id in args.student_document_id:
            result = attach_submissions(
                definition,
                student_document_id=student_document_id,
                sources=container.sources,
                events=container.events,
            )
            failures.extend(result.failures)

    return {
        "definition": definition.to_partial_json() if args.partial else definition.to_json(),
        "failures": [_failure_json(failure) for failure in failures],
    }


def _failure_json(failure: ExtractionFailure) -> dict[str, object]:
    return {
        "taskTitle": failure.task_title,
        "documentId": failure.document_id,
        "errorCode": failure.error_code,
        "detail": failure.detail,
        "retry": failure.retry,
    }


def _write_output(payload: dict[str, object], output: str | None) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
    else:
        sys.stdout.write(text + "\n")


if __name__ == "__main__":
    raise SystemExit(run())
