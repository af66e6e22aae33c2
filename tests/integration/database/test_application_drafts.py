# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for cart-to-draft conversion."""

import pytest
from sqlalchemy.exc import IntegrityError

from src.domains.class_application import ClassApplicationService
from src.domains.errors import InvalidInputError
from src.infrastructure.database.models import ClassApplication
from src.models.class_application import ApplicationStatus

pytestmark = pytest.mark.integration


class TestCreateOrUpdateDraft:
    """Tests for ClassApplicationService.create_or_update_draft."""

    @pytest.mark.asyncio
    async def test_creates_draft_from_cart(self, service: ClassApplicationService, seed) -> None:
        """Test that selected cart courses become priced course lines."""
        draft = await service.create_or_update_draft(
            seed.owner.id, [seed.design.id, seed.analytics.id]
        )

        assert draft.status == ApplicationStatus.DRAFT
        assert draft.owner_id == seed.owner.id
        assert draft.application_number is None
        assert [line.course_id for line in draft.courses] == [seed.design.id, seed.analytics.id]

        design = draft.courses[0]
        assert design.course_name == "Service Design Basics"
        assert design.price == 350000
        assert design.discounted_price == 300000
        assert design.period == "2025.10.06~2025.10.31"
        assert design.schedule_id == seed.design.schedule_id
        assert design.students == []

        assert draft.payment_info.total_amount == 750000
        assert draft.payment_info.payment_method is None
        assert draft.total_students == 0

    @pytest.mark.asyncio
    async def test_second_call_replaces_lines_of_same_draft(
        self,
        service: ClassApplicationService,
        seed,
    ) -> None:
        """Test that an owner keeps a single draft whose lines are replaced."""
        first = await service.create_or_update_draft(
            seed.owner.id, [seed.design.id, seed.analytics.id]
        )
        await service.attach_student(
            first.id, seed.design.id, seed.students[0].payload(), seed.owner.id
        )

        second = await service.create_or_update_draft(seed.owner.id, [seed.analytics.id])

        assert second.id == first.id
        assert [line.course_id for line in second.courses] == [seed.analytics.id]
        assert second.total_students == 0
        assert second.payment_info.total_amount == 450000

        listing = await service.list_applications(seed.owner.id)
        assert listing.total == 1

    @pytest.mark.asyncio
    async def test_requested_order_is_kept(self, service: ClassApplicationService, seed) -> None:
        """Test that lines follow the order of the requested course IDs."""
        draft = await service.create_or_update_draft(
            seed.owner.id, [seed.analytics.id, seed.design.id]
        )

        assert [line.course_id for line in draft.courses] == [seed.analytics.id, seed.design.id]

    @pytest.mark.asyncio
    async def test_inactive_courses_are_skipped(
        self,
        service: ClassApplicationService,
        seed,
    ) -> None:
        """Test that courses that are no longer purchasable are dropped."""
        draft = await service.create_or_update_draft(
            seed.owner.id, [seed.design.id, seed.inactive.id]
        )

        assert [line.course_id for line in draft.courses] == [seed.design.id]
        assert draft.payment_info.total_amount == 300000

    @pytest.mark.asyncio
    async def test_empty_selection_raises(self, service: ClassApplicationService, seed) -> None:
        """Test that an empty selection is rejected."""
        with pytest.raises(InvalidInputError):
            await service.create_or_update_draft(seed.owner.id, [])

    @pytest.mark.asyncio
    async def test_nothing_purchasable_raises(
        self,
        service: ClassApplicationService,
        seed,
    ) -> None:
        """Test that a selection with no purchasable course is rejected."""
        with pytest.raises(InvalidInputError) as exc_info:
            await service.create_or_update_draft(seed.owner.id, [seed.inactive.id, "unknown"])

        assert exc_info.value.kind == "invalid_input"

    @pytest.mark.asyncio
    async def test_drafts_of_different_owners_coexist(
        self,
        service: ClassApplicationService,
        seed,
    ) -> None:
        """Test that drafts without numbers never collide with each other."""
        mine = await service.create_or_update_draft(seed.owner.id, [seed.design.id])
        theirs = await service.create_or_update_draft(seed.other_owner.id, [seed.design.id])

        assert mine.id != theirs.id
        assert mine.application_number is None
        assert theirs.application_number is None

    @pytest.mark.asyncio
    async def test_storage_rejects_second_draft_for_owner(
        self,
        service: ClassApplicationService,
        db_session,
        seed,
    ) -> None:
        """Test the one-draft-per-owner index."""
        await service.create_or_update_draft(seed.owner.id, [seed.design.id])

        db_session.add(ClassApplication(owner_id=seed.owner.id, status="draft"))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_draft_found_when_created_by_another_request(
        self,
        service: ClassApplicationService,
        other_service: ClassApplicationService,
        seed,
    ) -> None:
        """Test that a draft created through another session is reused."""
        created = await other_service.create_or_update_draft(seed.owner.id, [seed.design.id])

        updated = await service.create_or_update_draft(
            seed.owner.id, [seed.design.id, seed.analytics.id]
        )

        assert updated.id == created.id
        assert len(updated.courses) == 2
