# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class application service.

This module provides the ClassApplicationService class, which drives an
application from cart conversion to a terminal state:

    draft -> submitted -> completed
      |          |
      +----------+--> cancelled

Every operation that touches an application takes the acting user's ID
and refuses non-owners. Draft edits are last-write-wins. Submission runs
as a single unit of work: the status change, application number,
enrollments, seat increments and cart cleanup commit together or not at
all.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.config.settings import Settings, get_settings
from src.domains.enrollment import EnrollmentService
from src.domains.errors import (
    ConflictError,
    ForbiddenError,
    IndividualCapReachedError,
    IneligibleStudentError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    RosterModeConflictError,
    ValidationFailedError,
)
from src.domains.gateways import (
    AccountDirectory,
    CartBridge,
    CatalogGateway,
    ResolvedCourse,
    ScheduleStore,
)
from src.domains.roster import RosterIngestor
from src.domains.student_validation import (
    StudentValidator,
    normalize_email,
    normalize_phone,
)
from src.infrastructure.database.models import (
    ApplicationNumberCounter,
    ApplicationCourse,
    ApplicationStudent,
    ClassApplication,
)
from src.infrastructure.storage import LocalRosterFileStorage, RosterFileStorage, StorageError
from src.models.class_application import (
    AgreementsRequest,
    AgreementsResponse,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationStatus,
    CourseLineResponse,
    InvoiceManager,
    PaymentInfoRequest,
    PaymentInfoResponse,
    PaymentMethod,
    PaymentStatus,
    StudentEntryResponse,
    StudentPayload,
    StudentSource,
    StudentValidationResponse,
    SubmissionResponse,
)
from src.models.enrollment import EnrollmentListResponse
from src.utils.datetime import compact_date, ensure_utc, utc_now

logger = logging.getLogger(__name__)


class ClassApplicationService:
    """Service for the class application workflow.

    Collaborators default to implementations over the same session, so
    everything a call touches shares one transaction.

    Attributes:
        db: Async database session.
        settings: Application settings.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        *,
        catalog: CatalogGateway | None = None,
        accounts: AccountDirectory | None = None,
        schedules: ScheduleStore | None = None,
        cart: CartBridge | None = None,
        storage: RosterFileStorage | None = None,
    ) -> None:
        """Initialize the class application service.

        Args:
            db: Async database session.
            settings: Application settings, defaults to the cached settings.
            catalog: Cart-to-course resolution.
            accounts: Account lookup for student validation.
            schedules: Seat accounting.
            cart: Cart cleanup after submission.
            storage: Storage for uploaded roster files.
        """
        self.db = db
        self.settings = settings or get_settings()
        self.rules = self.settings.application

        self.catalog = catalog or CatalogGateway(db)
        self.schedules = schedules or ScheduleStore(db)
        self.cart = cart or CartBridge(db)
        self.storage = storage or LocalRosterFileStorage(self.settings.upload.directory)

        self.validator = StudentValidator(
            db,
            accounts=accounts or AccountDirectory(db),
            schedules=self.schedules,
        )
        self.ingestor = RosterIngestor(self.validator, self.rules, self.settings.upload)
        self.enrollments = EnrollmentService(db, schedules=self.schedules)

    # =========================================================================
    # Draft
    # =========================================================================

    async def create_or_update_draft(
        self,
        owner_id: str,
        course_ids: list[str],
    ) -> ApplicationResponse:
        """Convert selected cart courses into the owner's draft.

        An existing draft has its course lines replaced; rosters on the old
        lines are discarded. Otherwise a new draft is created.

        Args:
            owner_id: Purchasing user.
            course_ids: Course IDs selected in the cart.

        Returns:
            The draft application.

        Raises:
            InvalidInputError: If no course was selected or none could be
                resolved from the cart.
        """
        course_ids = [cid for cid in dict.fromkeys(course_ids or []) if cid]
        if not course_ids:
            raise InvalidInputError("Select at least one course to apply for")

        resolved = await self.catalog.resolve_cart_courses(owner_id, course_ids)
        if not resolved:
            raise InvalidInputError(
                "None of the selected courses are available in your cart",
                {"course_ids": course_ids},
            )

        draft = await self._find_draft(owner_id)
        if draft is None:
            draft = ClassApplication(
                owner_id=owner_id,
                status=ApplicationStatus.DRAFT.value,
                payment_status=PaymentStatus.PENDING.value,
                courses=self._build_lines(resolved),
            )
            draft.recompute_total()
            self.db.add(draft)
            try:
                await self.db.commit()
                logger.info(
                    "Created draft application: id=%s, owner=%s, courses=%d",
                    draft.id,
                    owner_id,
                    len(resolved),
                )
                return await self._respond(draft.id)
            except IntegrityError:
                # Another request created the owner's draft first
                await self.db.rollback()
                draft = await self._find_draft(owner_id)
                if draft is None:
                    raise ConflictError("Could not create a draft application, please retry")

        draft.courses = self._build_lines(resolved)
        draft.recompute_total()
        await self.db.commit()

        logger.info(
            "Replaced draft courses: id=%s, owner=%s, courses=%d",
            draft.id,
            owner_id,
            len(resolved),
        )
        return await self._respond(draft.id)

    # =========================================================================
    # Rosters
    # =========================================================================

    async def validate_student(self, payload: StudentPayload) -> StudentValidationResponse:
        """Check a claimed student identity without changing anything."""
        result = await self.validator.validate(payload.name, payload.email, payload.phone)
        return StudentValidationResponse(
            valid=result.valid,
            user_id=result.user_id,
            reason=result.reason,
            message=result.error,
        )

    async def attach_student(
        self,
        application_id: str,
        course_id: str,
        payload: StudentPayload,
        actor_id: str,
    ) -> ApplicationResponse:
        """Add a verified student to a course line.

        Args:
            application_id: Application identifier.
            course_id: Course of the target line.
            payload: Claimed student identity.
            actor_id: Acting user.

        Returns:
            Updated application.

        Raises:
            NotFoundError: If the application or course line does not exist.
            ForbiddenError: If the actor does not own the application.
            InvalidStateError: If the application is not a draft.
            RosterModeConflictError: If the line already has a bulk roster.
            IndividualCapReachedError: If the line is at the individual cap.
            ValidationFailedError: If the identity does not match an account.
            IneligibleStudentError: If the student cannot enroll.
            ConflictError: If the student is already on the line.
        """
        application = await self._get_owned(application_id, actor_id)
        self._require_draft(application)
        line = self._get_line(application, course_id)

        if line.has_bulk_roster:
            raise RosterModeConflictError(
                f"{line.course_name} already has a bulk roster; "
                "individual students cannot be added",
                {"course_id": course_id},
            )
        cap = self.rules.individual_student_cap
        if len(line.individual_students) >= cap:
            raise IndividualCapReachedError(
                f"Up to {cap} students can be added individually; "
                "use a bulk roster upload for larger groups",
                {"course_id": course_id, "cap": cap},
            )

        identity = await self.validator.validate(payload.name, payload.email, payload.phone)
        if not identity.valid:
            raise ValidationFailedError(
                identity.error or "Student validation failed",
                reason=identity.reason or "invalid",
            )

        if any(s.user_id == identity.user_id for s in line.students):
            raise ConflictError(
                f"{payload.name} is already on the roster for {line.course_name}",
                {"course_id": course_id, "user_id": identity.user_id},
            )

        eligibility = await self.validator.check_eligibility(
            identity.user_id, line.course_id, line.schedule_id
        )
        if not eligibility.eligible:
            raise IneligibleStudentError(
                eligibility.error or "Student is not eligible for this course",
                reason=eligibility.reason or "ineligible",
                details={"course_id": course_id},
            )

        line.students.append(
            ApplicationStudent(
                position=self._next_position(line),
                user_id=identity.user_id,
                name=payload.name.strip(),
                phone=normalize_phone(payload.phone),
                email=normalize_email(payload.email),
                company=payload.company,
                position_title=payload.position,
                source=StudentSource.INDIVIDUAL.value,
            )
        )
        application.updated_at = utc_now()
        await self.db.commit()

        logger.info(
            "Attached student: application=%s, course=%s, student=%s",
            application_id,
            course_id,
            identity.user_id,
        )
        return await self._respond(application_id)

    async def remove_student(
        self,
        application_id: str,
        course_id: str,
        student_entry_id: str,
        actor_id: str,
    ) -> ApplicationResponse:
        """Remove an individually-added student from a draft's course line.

        Raises:
            NotFoundError: If the application, line or entry does not exist.
            ForbiddenError: If the actor does not own the application.
            InvalidStateError: If the application is not a draft.
            RosterModeConflictError: If the entry came from a bulk roster.
        """
        application = await self._get_owned(application_id, actor_id)
        self._require_draft(application)
        line = self._get_line(application, course_id)

        entry = next((s for s in line.students if s.id == student_entry_id), None)
        if entry is None:
            raise NotFoundError(
                f"Student entry {student_entry_id} not found",
                {"course_id": course_id},
            )
        if entry.source != StudentSource.INDIVIDUAL.value:
            raise RosterModeConflictError(
                "Students from a bulk roster cannot be removed individually; "
                "upload a corrected roster instead",
                {"course_id": course_id},
            )

        line.students.remove(entry)
        application.updated_at = utc_now()
        await self.db.commit()

        logger.info(
            "Removed student: application=%s, course=%s, entry=%s",
            application_id,
            course_id,
            student_entry_id,
        )
        return await self._respond(application_id)

    async def attach_bulk_roster(
        self,
        application_id: str,
        course_id: str,
        filename: str,
        content: bytes,
        actor_id: str,
    ) -> ApplicationResponse:
        """Attach a bulk roster file to a course line.

        Every row must validate before anything is stored. On success the
        file is kept as an audit artifact and the validated rows replace any
        previous bulk roster on the line.

        Args:
            application_id: Application identifier.
            course_id: Course of the target line.
            filename: Original filename.
            content: Raw file bytes.
            actor_id: Acting user.

        Returns:
            Updated application.

        Raises:
            RosterModeConflictError: If the line has individual students.
            InvalidInputError: On a bad file or a row count out of range.
            RosterValidationError: If any row fails validation.
        """
        application = await self._get_owned(application_id, actor_id)
        self._require_draft(application)
        line = self._get_line(application, course_id)

        if line.individual_students:
            raise RosterModeConflictError(
                f"{line.course_name} already has individually-added students; "
                "remove them before uploading a roster",
                {"course_id": course_id},
            )

        rows = await self.ingestor.ingest(filename, content, line.course_id, line.schedule_id)
        file_ref = self.storage.save(actor_id, filename, content)

        try:
            line.students = [
                ApplicationStudent(
                    position=index,
                    user_id=row.user_id,
                    name=row.name,
                    phone=row.phone,
                    email=row.email,
                    company=row.row.company,
                    position_title=row.row.position,
                    source=StudentSource.BULK.value,
                    row_number=row.row.row_number,
                )
                for index, row in enumerate(rows)
            ]
            line.bulk_upload_file = file_ref
            application.updated_at = utc_now()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            self._discard_roster_file(file_ref)
            raise

        logger.info(
            "Attached bulk roster: application=%s, course=%s, rows=%d, file=%s",
            application_id,
            course_id,
            len(rows),
            file_ref,
        )
        return await self._respond(application_id)

    # =========================================================================
    # Payment
    # =========================================================================

    async def set_payment_info(
        self,
        application_id: str,
        payment: PaymentInfoRequest,
        actor_id: str,
    ) -> ApplicationResponse:
        """Merge payment fields into a draft.

        Raises:
            InvalidInputError: If online card payment is chosen for a group.
            InvalidStateError: If the application is not a draft.
        """
        application = await self._get_owned(application_id, actor_id)
        self._require_draft(application)

        if payment.payment_method is not None:
            self._check_payment_method(payment.payment_method.value, application)
            application.payment_method = payment.payment_method.value
        if payment.tax_invoice_required is not None:
            application.tax_invoice_required = payment.tax_invoice_required
        if payment.invoice_manager is not None:
            application.invoice_manager_name = payment.invoice_manager.name
            application.invoice_manager_phone = normalize_phone(payment.invoice_manager.phone)
            application.invoice_manager_email = normalize_email(payment.invoice_manager.email)

        application.updated_at = utc_now()
        await self.db.commit()

        logger.info(
            "Updated payment info: application=%s, method=%s",
            application_id,
            application.payment_method,
        )
        return await self._respond(application_id)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def submit(
        self,
        application_id: str,
        agreements: AgreementsRequest,
        actor_id: str,
    ) -> SubmissionResponse:
        """Submit a draft and enroll every rostered student.

        Args:
            application_id: Application identifier.
            agreements: Accepted agreements; both must be true.
            actor_id: Acting user.

        Returns:
            Submitted application and the created enrollments.

        Raises:
            InvalidStateError: If the application is not a draft.
            InvalidInputError: If a line has no students, an agreement is
                missing, or the payment method is unset or not allowed.
            DuplicateEnrollmentError: If a student is already enrolled.
            SeatsExhaustedError: If a schedule ran out of seats.
        """
        application = await self._get_owned(application_id, actor_id)
        self._require_draft(application)

        if not application.courses:
            raise InvalidInputError("The application has no courses")

        empty = [line for line in application.courses if not line.students]
        if empty:
            raise InvalidInputError(
                "Add students to every course before submitting: "
                + ", ".join(line.course_name for line in empty),
                {
                    "empty_courses": [
                        {"course_id": line.course_id, "course_name": line.course_name}
                        for line in empty
                    ]
                },
            )

        missing = []
        if not agreements.payment_and_refund_policy:
            missing.append("payment_and_refund_policy")
        if not agreements.refund_policy:
            missing.append("refund_policy")
        if missing:
            raise InvalidInputError(
                "All agreements must be accepted before submitting",
                {"missing_agreements": missing},
            )

        if not application.payment_method:
            raise InvalidInputError("Choose a payment method before submitting")
        self._check_payment_method(application.payment_method, application)

        try:
            now = utc_now()
            application.status = ApplicationStatus.SUBMITTED.value
            application.submitted_at = now
            application.updated_at = now
            application.agreed_payment_and_refund_policy = True
            application.agreed_refund_policy = True
            application.recompute_total()
            await self.db.flush()

            enrollments = await self.enrollments.create_enrollments(application)
            removed = await self.cart.remove_courses(
                application.owner_id,
                [line.course_id for line in application.courses],
            )
            # Taken last so the day counter stays locked only until commit.
            application.application_number = await self._next_application_number(now)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Submitted application: id=%s, number=%s, enrollments=%d, cart_removed=%d",
            application_id,
            application.application_number,
            len(enrollments),
            removed,
        )
        return SubmissionResponse(
            application=await self._respond(application_id),
            enrollments=[EnrollmentService.to_response(e) for e in enrollments],
        )

    async def cancel(
        self,
        application_id: str,
        reason: str,
        actor_id: str,
    ) -> ApplicationResponse:
        """Cancel a draft or submitted application.

        Enrollments of the application are cancelled with the same reason
        and timestamp, and their seats are released.

        Raises:
            InvalidInputError: If the reason is blank.
            InvalidStateError: If the application is completed or cancelled.
        """
        reason = (reason or "").strip()
        if not reason:
            raise InvalidInputError("A cancellation reason is required")

        application = await self._get_owned(application_id, actor_id)
        if application.status not in (
            ApplicationStatus.DRAFT.value,
            ApplicationStatus.SUBMITTED.value,
        ):
            raise InvalidStateError(
                f"A {application.status} application cannot be cancelled",
                {"status": application.status},
            )

        try:
            now = utc_now()
            application.status = ApplicationStatus.CANCELLED.value
            application.cancelled_at = now
            application.cancellation_reason = reason
            application.updated_at = now
            cancelled = await self.enrollments.cancel_enrollments(application.id, reason, now)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Cancelled application: id=%s, enrollments=%d",
            application_id,
            cancelled,
        )
        return await self._respond(application_id)

    async def complete(self, application_id: str) -> ApplicationResponse:
        """Mark a submitted application and its enrollments completed.

        Raises:
            NotFoundError: If the application does not exist.
            InvalidStateError: If the application is not submitted.
        """
        application = await self._load(application_id)
        if application is None:
            raise NotFoundError(f"Application {application_id} not found")
        if application.status != ApplicationStatus.SUBMITTED.value:
            raise InvalidStateError(
                f"Only submitted applications can be completed, got {application.status}",
                {"status": application.status},
            )

        try:
            now = utc_now()
            application.status = ApplicationStatus.COMPLETED.value
            application.completed_at = now
            application.updated_at = now
            completed = await self.enrollments.complete_enrollments(application.id, now)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Completed application: id=%s, enrollments=%d",
            application_id,
            completed,
        )
        return await self._respond(application_id)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_application(self, application_id: str, actor_id: str) -> ApplicationResponse:
        """Get an application owned by the actor."""
        application = await self._get_owned(application_id, actor_id)
        return self._to_response(application)

    async def list_applications(
        self,
        owner_id: str,
        status: ApplicationStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> ApplicationListResponse:
        """List the owner's applications, newest first.

        Args:
            owner_id: Owning user.
            status: Optional status filter.
            limit: Page size.
            offset: Number of items to skip.

        Returns:
            Page of applications with the total count.
        """
        conditions = [ClassApplication.owner_id == owner_id]
        if status is not None:
            conditions.append(ClassApplication.status == ApplicationStatus(status).value)

        count_query = select(func.count(ClassApplication.id)).where(*conditions)
        total = (await self.db.execute(count_query)).scalar() or 0

        query = (
            select(ClassApplication)
            .options(
                selectinload(ClassApplication.courses).selectinload(ApplicationCourse.students)
            )
            .where(*conditions)
            .order_by(ClassApplication.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)
        items = [self._to_response(a) for a in result.scalars().all()]

        return ApplicationListResponse(items=items, total=total, limit=limit, offset=offset)

    async def list_enrollments(
        self,
        application_id: str,
        actor_id: str,
    ) -> EnrollmentListResponse:
        """List the enrollments created by an application."""
        await self._get_owned(application_id, actor_id)
        enrollments = await self.enrollments.list_for_application(application_id)
        return EnrollmentListResponse(
            application_id=application_id,
            items=[EnrollmentService.to_response(e) for e in enrollments],
            total=len(enrollments),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _load(self, application_id: str) -> ClassApplication | None:
        query = (
            select(ClassApplication)
            .options(
                selectinload(ClassApplication.courses).selectinload(ApplicationCourse.students)
            )
            .where(ClassApplication.id == application_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _find_draft(self, owner_id: str) -> ClassApplication | None:
        query = (
            select(ClassApplication)
            .options(
                selectinload(ClassApplication.courses).selectinload(ApplicationCourse.students)
            )
            .where(
                ClassApplication.owner_id == owner_id,
                ClassApplication.status == ApplicationStatus.DRAFT.value,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _get_owned(self, application_id: str, actor_id: str) -> ClassApplication:
        """Load an application and check ownership.

        Raises:
            NotFoundError: If the application does not exist.
            ForbiddenError: If the actor is not the owner.
        """
        application = await self._load(application_id)
        if application is None:
            raise NotFoundError(f"Application {application_id} not found")
        if application.owner_id != actor_id:
            raise ForbiddenError("You do not have access to this application")
        return application

    async def _respond(self, application_id: str) -> ApplicationResponse:
        application = await self._load(application_id)
        if application is None:
            raise NotFoundError(f"Application {application_id} not found")
        return self._to_response(application)

    async def _next_application_number(self, now: datetime) -> str:
        """Issue the next number for the day: PREFIX-YYYYMMDD-NNNN.

        The day's counter row is created or incremented by one upsert that
        returns the new value, so concurrent submissions get distinct
        numbers. The row stays locked until this transaction ends.
        """
        day = compact_date(now)
        dialect = self.db.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        stmt = (
            insert(ApplicationNumberCounter)
            .values(day=day, last_value=1)
            .on_conflict_do_update(
                index_elements=[ApplicationNumberCounter.day],
                set_={"last_value": ApplicationNumberCounter.last_value + 1},
            )
            .returning(ApplicationNumberCounter.last_value)
        )
        issued = (await self.db.execute(stmt)).scalar_one()
        return f"{self.rules.number_prefix}-{day}-{issued:04d}"

    def _discard_roster_file(self, file_ref: str) -> None:
        try:
            self.storage.delete(file_ref)
        except StorageError as e:
            logger.error("Roster file %s left behind after failed save: %s", file_ref, e)

    @staticmethod
    def _require_draft(application: ClassApplication) -> None:
        if not application.is_draft:
            raise InvalidStateError(
                f"Only draft applications can be changed, got {application.status}",
                {"status": application.status},
            )

    @staticmethod
    def _get_line(application: ClassApplication, course_id: str) -> ApplicationCourse:
        line = application.find_course(course_id)
        if line is None:
            raise NotFoundError(
                f"Course {course_id} is not part of this application",
                {"course_id": course_id},
            )
        return line

    @staticmethod
    def _next_position(line: ApplicationCourse) -> int:
        return max((s.position for s in line.students), default=-1) + 1

    @staticmethod
    def _check_payment_method(method: str, application: ClassApplication) -> None:
        if method == PaymentMethod.CARD.value and application.total_students > 1:
            raise InvalidInputError(
                "Online card payment is only available for a single student",
                {"payment_method": method, "total_students": application.total_students},
            )

    @staticmethod
    def _build_lines(resolved: list[ResolvedCourse]) -> list[ApplicationCourse]:
        return [
            ApplicationCourse(
                position=index,
                course_id=course.course_id,
                schedule_id=course.schedule_id,
                course_name=course.name,
                period=course.period,
                price=course.price,
                discounted_price=course.discounted_price,
                students=[],
            )
            for index, course in enumerate(resolved)
        ]

    @staticmethod
    def _to_response(application: ClassApplication) -> ApplicationResponse:
        """Convert an application model to its response schema."""
        invoice_manager = None
        if application.invoice_manager_name:
            invoice_manager = InvoiceManager(
                name=application.invoice_manager_name,
                phone=application.invoice_manager_phone or "",
                email=application.invoice_manager_email or "",
            )

        return ApplicationResponse(
            id=application.id,
            application_number=application.application_number,
            owner_id=application.owner_id,
            status=ApplicationStatus(application.status),
            courses=[
                CourseLineResponse(
                    id=line.id,
                    course_id=line.course_id,
                    schedule_id=line.schedule_id,
                    course_name=line.course_name,
                    period=line.period,
                    price=line.price,
                    discounted_price=line.discounted_price,
                    bulk_upload_file=line.bulk_upload_file,
                    roster_size=line.roster_size,
                    students=[
                        StudentEntryResponse(
                            id=s.id,
                            user_id=s.user_id,
                            name=s.name,
                            phone=s.phone,
                            email=s.email,
                            company=s.company,
                            position=s.position_title,
                            source=StudentSource(s.source),
                            row_number=s.row_number,
                        )
                        for s in line.students
                    ],
                )
                for line in application.courses
            ],
            payment_info=PaymentInfoResponse(
                payment_method=(
                    PaymentMethod(application.payment_method)
                    if application.payment_method
                    else None
                ),
                total_amount=application.total_amount,
                payment_status=PaymentStatus(application.payment_status),
                tax_invoice_required=application.tax_invoice_required,
                invoice_manager=invoice_manager,
            ),
            agreements=AgreementsResponse(
                payment_and_refund_policy=application.agreed_payment_and_refund_policy,
                refund_policy=application.agreed_refund_policy,
            ),
            total_students=application.total_students,
            created_at=ensure_utc(application.created_at),
            updated_at=ensure_utc(application.updated_at),
            submitted_at=ensure_utc(application.submitted_at),
            completed_at=ensure_utc(application.completed_at),
            cancelled_at=ensure_utc(application.cancelled_at),
            cancellation_reason=application.cancellation_reason,
        )
