# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class application schemas.

Request bodies for the draft-to-submission workflow and the response
shapes returned by ClassApplicationService.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from src.models.enrollment import EnrollmentResponse


class ApplicationStatus(str, Enum):
    """Application lifecycle status."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentMethod(str, Enum):
    """Accepted payment methods.

    Online card payment is only allowed for single-student applications.
    """

    SIMPLE_PAY = "simple_pay"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    BANK_DEPOSIT = "bank_deposit"
    ONSITE_CARD = "onsite_card"


class PaymentStatus(str, Enum):
    """Payment status recorded on the application."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class StudentSource(str, Enum):
    """How a student got onto a roster."""

    INDIVIDUAL = "individual"
    BULK = "bulk"


# =============================================================================
# Requests
# =============================================================================


class CreateDraftRequest(BaseModel):
    """Convert selected cart courses into a draft application."""

    course_ids: list[str] = Field(
        default_factory=list,
        description="IDs of courses in the caller's cart to apply for.",
    )


class StudentPayload(BaseModel):
    """Claimed identity of a student to add to a course."""

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    phone: str = Field(min_length=1, max_length=20)
    company: str | None = Field(default=None, max_length=200)
    position: str | None = Field(default=None, max_length=100)


class InvoiceManager(BaseModel):
    """Contact who receives the tax invoice."""

    name: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=1, max_length=20)
    email: str = Field(min_length=3, max_length=255)


class PaymentInfoRequest(BaseModel):
    """Payment fields to merge into a draft. Omitted fields are unchanged."""

    payment_method: PaymentMethod | None = None
    tax_invoice_required: bool | None = None
    invoice_manager: InvoiceManager | None = None


class AgreementsRequest(BaseModel):
    """Agreements accepted at submission."""

    payment_and_refund_policy: bool = False
    refund_policy: bool = False


class CancelApplicationRequest(BaseModel):
    """Cancellation reason."""

    reason: str = Field(min_length=1, max_length=500)


# =============================================================================
# Responses
# =============================================================================


class StudentEntryResponse(BaseModel):
    """A student on a course line's roster."""

    id: str
    user_id: str
    name: str
    phone: str
    email: str
    company: str | None = None
    position: str | None = None
    source: StudentSource
    row_number: int | None = None


class CourseLineResponse(BaseModel):
    """A course line with its roster."""

    id: str
    course_id: str
    schedule_id: str
    course_name: str
    period: str | None = None
    price: int
    discounted_price: int
    bulk_upload_file: str | None = None
    roster_size: int = 0
    students: list[StudentEntryResponse] = Field(default_factory=list)


class PaymentInfoResponse(BaseModel):
    """Payment metadata."""

    payment_method: PaymentMethod | None = None
    total_amount: int
    payment_status: PaymentStatus
    tax_invoice_required: bool
    invoice_manager: InvoiceManager | None = None


class AgreementsResponse(BaseModel):
    """Accepted agreements."""

    payment_and_refund_policy: bool
    refund_policy: bool


class ApplicationResponse(BaseModel):
    """Full application view."""

    id: str
    application_number: str | None = None
    owner_id: str
    status: ApplicationStatus
    courses: list[CourseLineResponse] = Field(default_factory=list)
    payment_info: PaymentInfoResponse
    agreements: AgreementsResponse
    total_students: int = 0
    created_at: datetime
    updated_at: datetime
    submitted_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None


class ApplicationListResponse(BaseModel):
    """Paginated list of the caller's applications."""

    items: list[ApplicationResponse] = Field(default_factory=list)
    total: int = 0
    limit: int = 20
    offset: int = 0


class SubmissionResponse(BaseModel):
    """Result of a successful submission."""

    application: ApplicationResponse
    enrollments: list[EnrollmentResponse] = Field(default_factory=list)


class StudentValidationResponse(BaseModel):
    """Outcome of validating a claimed student identity."""

    valid: bool
    user_id: str | None = None
    reason: str | None = None
    message: str | None = None


class RowErrorResponse(BaseModel):
    """A rejected roster row."""

    row_number: int
    email: str | None = None
    reason: str
    message: str
