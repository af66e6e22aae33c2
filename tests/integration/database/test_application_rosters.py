# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for per-course rosters.

Covers individually-added students, bulk roster uploads and the rule that
a course line holds one kind or the other.
"""

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from src.domains.class_application import ClassApplicationService
from src.domains.errors import (
    ConflictError,
    ForbiddenError,
    IndividualCapReachedError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    RosterModeConflictError,
    RosterValidationError,
    ValidationFailedError,
)
from src.infrastructure.storage import StorageError
from src.models.class_application import AgreementsRequest, PaymentInfoRequest, PaymentMethod

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def draft(service: ClassApplicationService, seed):
    """Create the owner's draft for the design and analytics courses."""
    return await service.create_or_update_draft(
        seed.owner.id, [seed.design.id, seed.analytics.id]
    )


class TestValidateStudent:
    """Tests for ClassApplicationService.validate_student."""

    @pytest.mark.asyncio
    async def test_registered_student_is_valid(self, service, seed) -> None:
        """Test that a matching identity is valid and returns the account."""
        student = seed.students[0]

        result = await service.validate_student(student.payload(phone="01010000001"))

        assert result.valid is True
        assert result.user_id == student.id

    @pytest.mark.asyncio
    async def test_unregistered_student_is_invalid(self, service, seed) -> None:
        """Test that an unknown email is reported without raising."""
        result = await service.validate_student(
            seed.students[0].payload(email="nobody@example.com")
        )

        assert result.valid is False
        assert result.reason == "account_not_found"
        assert result.message


class TestAttachStudent:
    """Tests for individually-added students."""

    @pytest.mark.asyncio
    async def test_attach_stores_normalized_entry(self, service, seed, draft) -> None:
        """Test that a verified student is added with normalized contact data."""
        student = seed.students[0]

        updated = await service.attach_student(
            draft.id,
            seed.design.id,
            student.payload(email=student.email.upper(), company="Acme", position="PM"),
            seed.owner.id,
        )

        line = updated.courses[0]
        assert line.roster_size == 1
        entry = line.students[0]
        assert entry.user_id == student.id
        assert entry.email == student.email
        assert entry.phone == "01010000001"
        assert entry.company == "Acme"
        assert entry.position == "PM"
        assert entry.source == "individual"
        assert entry.row_number is None
        assert updated.total_students == 1

    @pytest.mark.asyncio
    async def test_sixth_individual_student_is_rejected(self, service, seed, draft) -> None:
        """Test the individual cap of five students per course."""
        for student in seed.students[:5]:
            await service.attach_student(draft.id, seed.design.id, student.payload(), seed.owner.id)

        with pytest.raises(IndividualCapReachedError) as exc_info:
            await service.attach_student(
                draft.id, seed.design.id, seed.students[5].payload(), seed.owner.id
            )

        assert exc_info.value.kind == "conflict"
        current = await service.get_application(draft.id, seed.owner.id)
        assert current.courses[0].roster_size == 5

    @pytest.mark.asyncio
    async def test_cap_applies_per_course(self, service, seed, draft) -> None:
        """Test that each course line has its own cap."""
        for student in seed.students[:5]:
            await service.attach_student(draft.id, seed.design.id, student.payload(), seed.owner.id)

        updated = await service.attach_student(
            draft.id, seed.analytics.id, seed.students[5].payload(), seed.owner.id
        )

        assert updated.total_students == 6

    @pytest.mark.asyncio
    async def test_identity_mismatch_is_rejected(self, service, seed, draft) -> None:
        """Test that a wrong phone number fails validation with its reason."""
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.attach_student(
                draft.id,
                seed.design.id,
                seed.students[0].payload(phone="010-9999-9999"),
                seed.owner.id,
            )

        assert exc_info.value.reason == "phone_mismatch"
        assert exc_info.value.kind == "validation_failed"

    @pytest.mark.asyncio
    async def test_same_student_twice_on_line_is_rejected(self, service, seed, draft) -> None:
        """Test that a student appears at most once per course line."""
        student = seed.students[0]
        await service.attach_student(draft.id, seed.design.id, student.payload(), seed.owner.id)

        with pytest.raises(ConflictError):
            await service.attach_student(draft.id, seed.design.id, student.payload(), seed.owner.id)

    @pytest.mark.asyncio
    async def test_unknown_course_line(self, service, seed, draft) -> None:
        """Test that students can only be added to courses on the application."""
        with pytest.raises(NotFoundError):
            await service.attach_student(
                draft.id, seed.tiny.id, seed.students[0].payload(), seed.owner.id
            )

    @pytest.mark.asyncio
    async def test_non_owner_is_forbidden(self, service, seed, draft) -> None:
        """Test that only the owner can edit the roster."""
        with pytest.raises(ForbiddenError):
            await service.attach_student(
                draft.id, seed.design.id, seed.students[0].payload(), seed.other_owner.id
            )

    @pytest.mark.asyncio
    async def test_unknown_application(self, service, seed) -> None:
        """Test that a missing application is reported as not found."""
        with pytest.raises(NotFoundError):
            await service.attach_student(
                "missing", seed.design.id, seed.students[0].payload(), seed.owner.id
            )

    @pytest.mark.asyncio
    async def test_submitted_application_is_read_only(self, service, seed) -> None:
        """Test that rosters cannot change after submission."""
        draft = await service.create_or_update_draft(seed.owner.id, [seed.design.id])
        await service.attach_student(
            draft.id, seed.design.id, seed.students[0].payload(), seed.owner.id
        )
        await service.set_payment_info(
            draft.id,
            PaymentInfoRequest(payment_method=PaymentMethod.BANK_TRANSFER),
            seed.owner.id,
        )
        await service.submit(
            draft.id,
            AgreementsRequest(payment_and_refund_policy=True, refund_policy=True),
            seed.owner.id,
        )

        with pytest.raises(InvalidStateError):
            await service.attach_student(
                draft.id, seed.design.id, seed.students[1].payload(), seed.owner.id
            )


class TestRemoveStudent:
    """Tests for removing individually-added students."""

    @pytest.mark.asyncio
    async def test_remove_student(self, service, seed, draft) -> None:
        """Test that an individual entry can be removed."""
        updated = await service.attach_student(
            draft.id, seed.design.id, seed.students[0].payload(), seed.owner.id
        )
        entry_id = updated.courses[0].students[0].id

        updated = await service.remove_student(draft.id, seed.design.id, entry_id, seed.owner.id)

        assert updated.courses[0].students == []

    @pytest.mark.asyncio
    async def test_remove_unknown_entry(self, service, seed, draft) -> None:
        """Test that removing a missing entry is reported."""
        with pytest.raises(NotFoundError):
            await service.remove_student(draft.id, seed.design.id, "missing", seed.owner.id)

    @pytest.mark.asyncio
    async def test_bulk_entries_cannot_be_removed_individually(
        self,
        service,
        seed,
        draft,
        make_roster,
    ) -> None:
        """Test that bulk rosters are only changed by uploading again."""
        updated = await service.attach_bulk_roster(
            draft.id, seed.design.id, "roster.csv", make_roster(seed.students[:6]), seed.owner.id
        )
        entry_id = updated.courses[0].students[0].id

        with pytest.raises(RosterModeConflictError):
            await service.remove_student(draft.id, seed.design.id, entry_id, seed.owner.id)


class TestAttachBulkRoster:
    """Tests for bulk roster uploads."""

    @pytest.mark.asyncio
    async def test_bulk_roster_persists_rows(
        self,
        service,
        seed,
        draft,
        make_roster,
        upload_root,
    ) -> None:
        """Test that every row of a valid roster is stored with its row number."""
        content = make_roster(seed.students[:6])

        updated = await service.attach_bulk_roster(
            draft.id, seed.design.id, "october.csv", content, seed.owner.id
        )

        line = updated.courses[0]
        assert line.roster_size == 6
        assert [s.row_number for s in line.students] == [2, 3, 4, 5, 6, 7]
        assert all(s.source == "bulk" for s in line.students)
        assert [s.user_id for s in line.students] == [s.id for s in seed.students[:6]]
        assert line.students[0].company == "Acme"
        assert line.bulk_upload_file.endswith("october.csv")
        assert (upload_root / line.bulk_upload_file).read_bytes() == content

    @pytest.mark.asyncio
    async def test_five_rows_are_rejected(self, service, seed, draft, make_roster) -> None:
        """Test that a roster below the bulk floor stores nothing."""
        with pytest.raises(InvalidInputError) as exc_info:
            await service.attach_bulk_roster(
                draft.id,
                seed.design.id,
                "roster.csv",
                make_roster(seed.students[:5]),
                seed.owner.id,
            )

        assert exc_info.value.details["minimum"] == 6
        current = await service.get_application(draft.id, seed.owner.id)
        assert current.courses[0].roster_size == 0
        assert current.courses[0].bulk_upload_file is None

    @pytest.mark.asyncio
    async def test_invalid_row_rejects_whole_file(
        self,
        service,
        seed,
        draft,
        make_roster,
        upload_root,
    ) -> None:
        """Test that one bad row rejects the upload and names the row."""
        content = make_roster(seed.students[:6]).replace(
            b"Student 02,", b"Somebody Else,"
        )

        with pytest.raises(RosterValidationError) as exc_info:
            await service.attach_bulk_roster(
                draft.id, seed.design.id, "roster.csv", content, seed.owner.id
            )

        assert [(e.row_number, e.reason) for e in exc_info.value.row_errors] == [
            (3, "name_mismatch")
        ]
        current = await service.get_application(draft.id, seed.owner.id)
        assert current.courses[0].roster_size == 0
        assert not upload_root.exists() or not any(upload_root.rglob("*.csv"))

    @pytest.mark.asyncio
    async def test_reupload_replaces_roster(self, service, seed, draft, make_roster) -> None:
        """Test that a new upload replaces the previous bulk roster."""
        await service.attach_bulk_roster(
            draft.id, seed.design.id, "first.csv", make_roster(seed.students[:8]), seed.owner.id
        )

        updated = await service.attach_bulk_roster(
            draft.id, seed.design.id, "second.csv", make_roster(seed.students[2:8]), seed.owner.id
        )

        line = updated.courses[0]
        assert line.roster_size == 6
        assert line.students[0].user_id == seed.students[2].id
        assert line.bulk_upload_file.endswith("second.csv")

    @pytest.mark.asyncio
    async def test_failed_commit_removes_stored_file(
        self,
        service,
        seed,
        draft,
        make_roster,
        upload_root,
    ) -> None:
        """Test that a roster whose rows were not saved leaves no file behind."""
        failure = OperationalError("COMMIT", {}, Exception("database is locked"))

        with patch.object(service.db, "commit", AsyncMock(side_effect=failure)):
            with pytest.raises(OperationalError):
                await service.attach_bulk_roster(
                    draft.id,
                    seed.design.id,
                    "roster.csv",
                    make_roster(seed.students[:6]),
                    seed.owner.id,
                )

        assert not any(upload_root.rglob("*.csv"))
        current = await service.get_application(draft.id, seed.owner.id)
        assert current.courses[0].roster_size == 0
        assert current.courses[0].bulk_upload_file is None

    @pytest.mark.asyncio
    async def test_commit_error_wins_over_cleanup_error(
        self,
        service,
        seed,
        draft,
        make_roster,
    ) -> None:
        """Test that a failed cleanup does not hide why the save failed."""
        failure = OperationalError("COMMIT", {}, Exception("database is locked"))

        with (
            patch.object(service.db, "commit", AsyncMock(side_effect=failure)),
            patch.object(service.storage, "delete", side_effect=StorageError("busy")) as delete,
        ):
            with pytest.raises(OperationalError):
                await service.attach_bulk_roster(
                    draft.id,
                    seed.design.id,
                    "roster.csv",
                    make_roster(seed.students[:6]),
                    seed.owner.id,
                )

        delete.assert_called_once()

    @pytest.mark.asyncio
    async def test_bulk_after_individual_conflicts(
        self,
        service,
        seed,
        draft,
        make_roster,
    ) -> None:
        """Test that a line with individual students refuses a bulk roster."""
        await service.attach_student(
            draft.id, seed.design.id, seed.students[0].payload(), seed.owner.id
        )

        with pytest.raises(RosterModeConflictError):
            await service.attach_bulk_roster(
                draft.id,
                seed.design.id,
                "roster.csv",
                make_roster(seed.students[1:7]),
                seed.owner.id,
            )

    @pytest.mark.asyncio
    async def test_individual_after_bulk_conflicts(
        self,
        service,
        seed,
        draft,
        make_roster,
    ) -> None:
        """Test that a line with a bulk roster refuses individual students."""
        await service.attach_bulk_roster(
            draft.id, seed.design.id, "roster.csv", make_roster(seed.students[:6]), seed.owner.id
        )

        with pytest.raises(RosterModeConflictError):
            await service.attach_student(
                draft.id, seed.design.id, seed.students[6].payload(), seed.owner.id
            )

    @pytest.mark.asyncio
    async def test_unsupported_file_type(self, service, seed, draft) -> None:
        """Test that only CSV and XLSX rosters are accepted."""
        with pytest.raises(InvalidInputError):
            await service.attach_bulk_roster(
                draft.id, seed.design.id, "roster.pdf", b"%PDF-1.4", seed.owner.id
            )
