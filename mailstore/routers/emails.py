"""Email ingestion API routes."""

import json
from datetime import datetime
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..database.store import EmailStore
from ..exceptions import EmailNotFoundError, ValidationError
from ..ingestion import IngestionPipeline, IngestionResult, IngestionStatus
from ..ingestion.validation import PAYLOAD_FIELD

logger = structlog.get_logger(__name__)
router = APIRouter()

SUCCESS_MESSAGE = "Email and sections stored successfully"


class StoreEmailResponse(BaseModel):
    """Response model for a stored email."""
    message: str
    email_id: int
    sections: int


class EmailStatusResponse(BaseModel):
    """Response model for the ingestion state of one email."""
    email_id: int
    status: str
    sections: int
    created_at: Optional[datetime] = None


def get_pipeline(request: Request) -> IngestionPipeline:
    """Return the pipeline built at application startup."""
    return request.app.state.pipeline


def get_store(request: Request) -> EmailStore:
    """Return the store built at application startup."""
    return request.app.state.store


def _result_response(result: IngestionResult) -> JSONResponse:
    """Map a tagged ingestion result to an HTTP response."""
    if result.ok:
        body = StoreEmailResponse(
            message=SUCCESS_MESSAGE,
            email_id=result.email_id,
            sections=result.total_sections,
        )
        return JSONResponse(status_code=200, content=body.model_dump())

    if result.status == IngestionStatus.VALIDATION_ERROR:
        return JSONResponse(status_code=400, content=result.error.to_dict())

    return JSONResponse(status_code=500, content=result.error.to_dict())


@router.post("/store-email")
async def store_email(request: Request, pipeline: IngestionPipeline = Depends(get_pipeline)) -> JSONResponse:
    """Validate, store and embed one email."""
    try:
        payload: Any = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        error = ValidationError({PAYLOAD_FIELD: ["Request body is not valid JSON"]})
        return JSONResponse(status_code=400, content=error.to_dict())

    result = await pipeline.ingest(payload)

    logger.info(
        "Store email request finished",
        status=result.status.value,
        email_id=result.email_id,
        sections=result.sections_written,
    )
    return _result_response(result)


@router.get("/emails/{email_id}", response_model=EmailStatusResponse)
async def get_email_status(email_id: int, store: EmailStore = Depends(get_store)) -> EmailStatusResponse:
    """Report whether an email and all of its sections were stored."""
    email = await store.get_email(email_id)
    if email is None:
        raise EmailNotFoundError(email_id)

    sections = await store.count_sections(email_id)
    return EmailStatusResponse(
        email_id=email.id,
        status=email.status.value,
        sections=sections,
        created_at=email.created_at,
    )


@router.post("/emails/{email_id}/resume")
async def resume_email(
    email_id: int,
    force: bool = False,
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Embed and store the sections missing from a partially ingested email.

    A ``pending`` email is refused with 409 unless ``force`` is set.
    """
    result = await pipeline.resume(email_id, force=force)
    logger.info(
        "Resume email request finished",
        status=result.status.value,
        email_id=email_id,
        sections=result.sections_written,
    )
    return _result_response(result)

