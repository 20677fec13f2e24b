"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse, StreamingResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from app.schemas import ExportFormat, HelloItem, HelloResponse, Submission, UserOut
from datastore.database import StorageConnectionError
from services.submission import (
    DuplicateSubmissionError,
    SubmissionService,
    SubmissionValidationError,
    SubmissionWriteError,
    build_default_submission_service,
)
from services.users import (
    CSV_FILENAME,
    UserExportError,
    UserExportService,
    build_default_user_export_service,
)

logger = logging.getLogger(__name__)

SUBMISSION_SUCCESS_MSG = "Data submission successful"
HELLO_DATA = {
    "key1": "value1",
    "key2": "value2",
    "key3": "value3",
}

router = APIRouter()


def get_submission_service() -> SubmissionService:
    return build_default_submission_service()


def get_user_export_service() -> UserExportService:
    return build_default_user_export_service()


def _internal_error(message: str, exc: Exception) -> HTTPException:
    logger.error("%s: %s", message, exc, exc_info=exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)


@router.post(
    "/submit-iot-data",
    response_class=PlainTextResponse,
    summary="Submit a timestamped location with the devices observed there.",
)
async def submit_iot_data(
    request: Request,
    service: SubmissionService = Depends(get_submission_service),
) -> PlainTextResponse:
    body = await request.body()
    try:
        submission = Submission.model_validate_json(body)
    except ValidationError as exc:
        logger.info("Rejected unparseable submission", extra={"reason": "parse_error"})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Error parsing request body",
        ) from exc

    try:
        await run_in_threadpool(service.submit, submission)
    except SubmissionValidationError as exc:
        logger.info("Rejected invalid submission", extra={"reason": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except DuplicateSubmissionError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except StorageConnectionError as exc:
        raise _internal_error("Error connecting to the database", exc) from exc
    except SubmissionWriteError as exc:
        raise _internal_error(str(exc), exc) from exc

    return PlainTextResponse(SUBMISSION_SUCCESS_MSG, status_code=status.HTTP_200_OK)


@router.get(
    "/users",
    summary="Export all users as JSON or as a CSV attachment.",
    response_model=list[UserOut],
)
def export_users(
    requested_format: Optional[str] = Query(
        None, alias="format", description="Either 'json' or 'csv'."
    ),
    service: UserExportService = Depends(get_user_export_service),
):
    try:
        export_format = ExportFormat(requested_format) if requested_format is not None else None
    except ValueError:
        export_format = None
    if export_format is None:
        logger.info("Rejected users export", extra={"format": requested_format, "reason": "bad_format"})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or missing 'format' parameter",
        )

    try:
        if export_format is ExportFormat.json:
            return service.export_json()
        content = service.export_csv()
    except StorageConnectionError as exc:
        raise _internal_error("Error connecting to the database", exc) from exc
    except UserExportError as exc:
        raise _internal_error(str(exc), exc) from exc

    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={CSV_FILENAME}"},
    )


@router.get(
    "/hello",
    response_model=HelloResponse,
    summary="Demo endpoint returning a fixed greeting.",
    status_code=status.HTTP_200_OK,
)
async def hello() -> HelloResponse:
    items = [HelloItem(key=key, value=value) for key, value in HELLO_DATA.items()]
    for index, item in enumerate(items):
        logger.info("Item %d - Key: %s, Value: %s", index, item.key, item.value)
    return HelloResponse(message="Hello, World!", items=items)
