# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class application API endpoints.

This module provides endpoints for the class application workflow:
- GET /template - Download the bulk roster template (public)
- POST /draft - Convert cart courses into the caller's draft
- POST /validate-student - Check a claimed student identity
- GET / - List the caller's applications
- GET /{application_id} - Get application details
- GET /{application_id}/enrollments - List enrollments of an application
- POST /{application_id}/courses/{course_id}/students - Add a student
- DELETE /{application_id}/courses/{course_id}/students/{entry_id} - Remove a student
- POST /{application_id}/courses/{course_id}/bulk-roster - Upload a roster file
- PUT /{application_id}/payment - Set payment information
- POST /{application_id}/submit - Submit the application
- POST /{application_id}/cancel - Cancel the application
- POST /{application_id}/complete - Mark the application completed (admin)

Domain errors are returned as ``{"kind", "message", "details"}`` in the
``detail`` field.
"""

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, require_admin, require_auth
from src.api.middleware.auth import CurrentUser
from src.api.middleware.rate_limit import RATE_LIMIT_UPLOAD, RATE_LIMIT_VALIDATION, limiter
from src.domains.class_application import ClassApplicationService
from src.core.config import get_settings
from src.domains.errors import ClassApplicationError, InvalidInputError
from src.domains.roster import build_template
from src.models.class_application import (
    AgreementsRequest,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationStatus,
    CancelApplicationRequest,
    CreateDraftRequest,
    PaymentInfoRequest,
    StudentPayload,
    StudentValidationResponse,
    SubmissionResponse,
)
from src.models.enrollment import EnrollmentListResponse

logger = logging.getLogger(__name__)

router = APIRouter()

_STATUS_BY_KIND = {
    "invalid_input": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "conflict": status.HTTP_409_CONFLICT,
    "validation_failed": status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def _get_service(db: AsyncSession) -> ClassApplicationService:
    """Get class application service instance.

    Args:
        db: Database session.

    Returns:
        Configured ClassApplicationService instance.
    """
    return ClassApplicationService(db=db)


def _http_error(error: ClassApplicationError) -> HTTPException:
    """Map a domain error to an HTTP error."""
    return HTTPException(
        status_code=_STATUS_BY_KIND.get(error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.to_dict(),
    )


async def _read_roster_upload(file: UploadFile) -> bytes:
    """Read an uploaded roster, refusing it once it passes the size limit.

    Raises:
        InvalidInputError: If the file is larger than the configured maximum.
    """
    upload = get_settings().upload
    too_large = InvalidInputError(
        f"Roster file exceeds {upload.max_file_size_mb} MB",
        {"max_file_size_mb": upload.max_file_size_mb},
    )
    if file.size is not None and file.size > upload.max_file_size_bytes:
        raise too_large
    content = await file.read(upload.max_file_size_bytes + 1)
    if len(content) > upload.max_file_size_bytes:
        raise too_large
    return content


@router.get(
    "/template",
    summary="Download roster template",
    description="Download an empty bulk roster template as XLSX or CSV.",
)
async def download_template(
    fmt: Annotated[
        Literal["xlsx", "csv"], Query(alias="format", description="Template format")
    ] = "xlsx",
) -> Response:
    """Download the bulk roster template."""
    content, media_type, filename = build_template(fmt)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/draft",
    response_model=ApplicationResponse,
    summary="Create or update draft",
    description="Convert selected cart courses into the caller's single draft application.",
)
async def create_or_update_draft(
    data: CreateDraftRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    """Create the caller's draft or replace its courses."""
    service = _get_service(db)
    try:
        return await service.create_or_update_draft(current_user.id, data.course_ids)
    except ClassApplicationError as e:
        raise _http_error(e)


@router.post(
    "/validate-student",
    response_model=StudentValidationResponse,
    summary="Validate student",
    description="Check that a claimed name, email and phone match a registered account.",
)
@limiter.limit(RATE_LIMIT_VALIDATION)
async def validate_student(
    request: Request,
    data: StudentPayload,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> StudentValidationResponse:
    """Validate a claimed student identity."""
    service = _get_service(db)
    return await service.validate_student(data)


@router.get(
    "",
    response_model=ApplicationListResponse,
    summary="List my applications",
    description="List the caller's applications, newest first.",
)
async def list_applications(
    status_filter: Annotated[
        ApplicationStatus | None, Query(alias="status", description="Filter by status")
    ] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Maximum results")] = 20,
    offset: Annotated[int, Query(ge=0, description="Pagination offset")] = 0,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> ApplicationListResponse:
    """List the caller's applications."""
    service = _get_service(db)
    return await service.list_applications(
        current_user.id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{application_id}",
    response_model=ApplicationResponse,
    summary="Get application",
)
async def get_application(
    application_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    """Get an application owned by the caller."""
    service = _get_service(db)
    try:
        return await service.get_application(application_id, current_user.id)
    except ClassApplicationError as e:
        raise _http_error(e)


@router.get(
    "/{application_id}/enrollments",
    response_model=EnrollmentListResponse,
    summary="List application enrollments",
)
async def list_enrollments(
    application_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentListResponse:
    """List the enrollments created by an application."""
    service = _get_service(db)
    try:
        return await service.list_enrollments(application_id, current_user.id)
    except ClassApplicationError as e:
        raise _http_error(e)


@router.post(
    "/{application_id}/courses/{course_id}/students",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add student",
    description="Add a verified student to a course. Up to 5 students per course.",
)
async def attach_student(
    application_id: str,
    course_id: str,
    data: StudentPayload,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    """Add a student to a course line."""
    service = _get_service(db)
    try:
        return await service.attach_student(application_id, course_id, data, current_user.id)
    except ClassApplicationError as e:
        raise _http_error(e)


@router.delete(
    "/{application_id}/courses/{course_id}/students/{entry_id}",
    response_model=ApplicationResponse,
    summary="Remove student",
)
async def remove_student(
    application_id: str,
    course_id: str,
    entry_id: str,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    """Remove an individually-added student from a course line."""
    service = _get_service(db)
    try:
        return await service.remove_student(application_id, course_id, entry_id, current_user.id)
    except ClassApplicationError as e:
        raise _http_error(e)


@router.post(
    "/{application_id}/courses/{course_id}/bulk-roster",
    response_model=ApplicationResponse,
    summary="Upload bulk roster",
    description="Upload a CSV or XLSX roster of 6 or more students for a course.",
)
@limiter.limit(RATE_LIMIT_UPLOAD)
async def attach_bulk_roster(
    request: Request,
    application_id: str,
    course_id: str,
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    """Upload a bulk roster for a course line."""
    try:
        content = await _read_roster_upload(file)
    except ClassApplicationError as e:
        raise _http_error(e)
    logger.info(
        "Roster upload: application=%s, course=%s, file=%s, size=%d, by=%s",
        application_id,
        course_id,
        file.filename,
        len(content),
        current_user.id,
    )

    service = _get_service(db)
    try:
        return await service.attach_bulk_roster(
            application_id,
            course_id,
            file.filename or "",
            content,
            current_user.id,
        )
    except ClassApplicationError as e:
        raise _http_error(e)


@router.put(
    "/{application_id}/payment",
    response_model=ApplicationResponse,
    summary="Set payment information",
)
async def set_payment_info(
    application_id: str,
    data: PaymentInfoRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    """Merge payment information into a draft."""
    service = _get_service(db)
    try:
        return await service.set_payment_info(application_id, data, current_user.id)
    except ClassApplicationError as e:
        raise _http_error(e)


@router.post(
    "/{application_id}/submit",
    response_model=SubmissionResponse,
    summary="Submit application",
    description="Submit a draft. Enrolls every rostered student and clears the cart.",
)
async def submit_application(
    application_id: str,
    data: AgreementsRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> SubmissionResponse:
    """Submit an application."""
    service = _get_service(db)
    try:
        return await service.submit(application_id, data, current_user.id)
    except ClassApplicationError as e:
        raise _http_error(e)


@router.post(
    "/{application_id}/cancel",
    response_model=ApplicationResponse,
    summary="Cancel application",
)
async def cancel_application(
    application_id: str,
    data: CancelApplicationRequest,
    current_user: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    """Cancel a draft or submitted application."""
    service = _get_service(db)
    try:
        return await service.cancel(application_id, data.reason, current_user.id)
    except ClassApplicationError as e:
        raise _http_error(e)


@router.post(
    "/{application_id}/complete",
    response_model=ApplicationResponse,
    summary="Complete application",
    description="Mark a submitted application and its enrollments completed. Admin only.",
)
async def complete_application(
    application_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse:
    """Complete a submitted application."""
    logger.info("Completing application: id=%s, by=%s", application_id, current_user.id)

    service = _get_service(db)
    try:
        return await service.complete(application_id)
    except ClassApplicationError as e:
        raise _http_error(e)
