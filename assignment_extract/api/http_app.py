from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, HTTPException

from assignment_extract.api.handlers.definitions import (
    attach_submission_handler,
    extract_definition_handler,
    get_definition_handler,
    list_definitions_handler,
)
from assignment_extract.api.handlers.deps import ApiDeps
from assignment_extract.api.schemas import (
    AttachSubmissionRequest,
    AttachSubmissionResponse,
    DefinitionResponse,
    ErrorResponse,
    ExtractDefinitionRequest,
    HealthResponse,
    ListDefinitionsResponse,
)
from assignment_extract.domain.errors import DefinitionNotFoundError, DomainInvariantError, DomainValidationError


def build_app(
    role: str,
    run_id: str,
    api_deps: ApiDeps | None = None,
) -> FastAPI:
    logger = logging.getLogger("runtime")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        del app
        logger.info(
            "role started",
            extra={"role": role, "service": role, "run_id": run_id},
        )

        yield

        logger.info(
            "role stopped",
            extra={"role": role, "service": role, "run_id": run_id},
        )

    app = FastAPI(title="assignment-extract", version="0.1.0", lifespan=lifespan)

    def require_deps() -> ApiDeps:
        if api_deps is None:
            raise HTTPException(status_code=503, detail="api dependencies are not available")
        return api_deps

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", role=role, mode="in-memory")

    @app.get(
        "/definitions",
        response_model=ListDefinitionsResponse,
        responses={503: {"model": ErrorResponse}},
        tags=["Definitions"],
    )
    async def list_definitions() -> ListDefinitionsResponse:
        return await list_definitions_handler(api_deps=require_deps())

    @app.get(
        "/definitions/{definition_key}",
        response_model=DefinitionResponse,
        responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Definitions"],
    )
    async def get_definition(definition_key: str) -> DefinitionResponse:
        deps = require_deps()
        try:
            return await get_definition_handler(definition_key=definition_key, api_deps=deps)
        except DefinitionNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.post(
        "/definitions/extract",
        response_model=DefinitionResponse,
        responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Definitions"],
    )
    async def extract_definition(request: ExtractDefinitionRequest) -> DefinitionResponse:
        deps = require_deps()
        try:
            return await extract_definition_handler(request=request, api_deps=deps)
        except (DomainValidationError, DomainInvariantError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.post(
        "/definitions/{definition_key}/submissions",
        response_model=AttachSubmissionResponse,
        responses={
            400: {"model": ErrorResponse},
            404: {"model": ErrorResponse},
            422: {"model": ErrorResponse},
            503: {"model": ErrorResponse},
        },
        tags=["Definitions"],
    )
    async def attach_submission(definition_key: str, request: AttachSubmissionRequest) -> AttachSubmissionResponse:
        deps = require_deps()
        try:
            return await attach_submission_handler(
                definition_key=definition_key,
                student_document_id=request.student_document_id,
                api_deps=deps,
            )
        except DefinitionNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except (DomainValidationError, DomainInvariantError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    return app
