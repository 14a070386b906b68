"""
Unit tests for UseCaseService.

Tests cover:
- Use case creation with its Created audit event
- Listing with status, tier and search filters
- Decision generation and regeneration
- Submit, approve and send back, including refused transitions
- Conditional updates losing a race
- Review commit failures leaving no partial state
- Editing and deleting Draft or Sent Back use cases

Source: pytest best practices
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
from minio.error import S3Error
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from modelrisk.errors import InvalidStateError, NotFoundError, UpstreamFailureError
from modelrisk.models import Attachment, AuditEventType, Decision, RiskTier, UseCase, UseCaseStatus
from modelrisk.models.base import generate_id
from modelrisk.services.audit_service import audit_service
from modelrisk.services.lifecycle import ReviewAction
from modelrisk.services.use_case_service import UseCaseService, use_case_service
from tests.conftest import create_test_use_case
from tests.fixtures.factories import create_high_risk_use_case_data, create_use_case_data


async def event_types(db: AsyncSession, use_case_id: str) -> list[str]:
    events = await audit_service.list_events(db, use_case_id)
    return [e.event_type for e in events]


@pytest.mark.unit
class TestUseCaseServiceInit:
    """Tests for UseCaseService initialization."""

    def test_use_case_service_singleton_exists(self):
        """Test that use_case_service singleton is available."""
        assert isinstance(use_case_service, UseCaseService)


@pytest.mark.unit
class TestCreateUseCase:
    """Tests for use case creation."""

    @pytest.mark.asyncio
    async def test_create_use_case(self, db_session: AsyncSession):
        """Test a new use case starts in Draft with a Created event."""
        data = create_use_case_data(title="Fraud alert triage")

        use_case = await use_case_service.create_use_case(db_session, data, "alice")

        assert use_case.title == "Fraud alert triage"
        assert use_case.status == UseCaseStatus.DRAFT
        assert use_case.created_by == "alice"
        assert use_case.decision is None
        assert [e.event_type for e in use_case.audit_events] == ["Created"]
        assert json.loads(use_case.audit_events[0].details) == {"title": "Fraud alert triage"}

    @pytest.mark.asyncio
    async def test_get_unknown_use_case(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError) as exc_info:
            await use_case_service.get_use_case(db_session, "missing")

        assert exc_info.value.message == "Use case not found"


@pytest.mark.unit
class TestListUseCases:
    """Tests for listing use cases."""

    @pytest.mark.asyncio
    async def test_list_with_stats(self, db_session: AsyncSession):
        """Test stats count every status and high-tier decisions."""
        await create_test_use_case(db_session)
        await create_test_use_case(db_session, status=UseCaseStatus.SUBMITTED, tier=RiskTier.T3)
        await create_test_use_case(db_session, status=UseCaseStatus.APPROVED, tier=RiskTier.T2)

        result = await use_case_service.list_use_cases(db_session)

        assert len(result["use_cases"]) == 3
        assert result["stats"] == {
            "total": 3,
            "draft": 1,
            "submitted": 1,
            "approved": 1,
            "high_tier": 1,
        }

    @pytest.mark.asyncio
    async def test_status_filter(self, db_session: AsyncSession):
        await create_test_use_case(db_session)
        submitted = await create_test_use_case(db_session, status=UseCaseStatus.SUBMITTED)

        result = await use_case_service.list_use_cases(db_session, status="Submitted")

        assert [uc.id for uc in result["use_cases"]] == [submitted.id]
        assert result["stats"]["total"] == 1

    @pytest.mark.asyncio
    async def test_tier_filter_leaves_stats(self, db_session: AsyncSession):
        """Test the tier filter narrows the list but not the stats."""
        await create_test_use_case(db_session)
        high = await create_test_use_case(db_session, tier=RiskTier.T3)

        result = await use_case_service.list_use_cases(db_session, tier="T3")

        assert [uc.id for uc in result["use_cases"]] == [high.id]
        assert result["stats"]["total"] == 2

    @pytest.mark.asyncio
    async def test_search(self, db_session: AsyncSession):
        """Test search matches title, description and business line."""
        await create_test_use_case(db_session, title="Chatbot for branches")
        await create_test_use_case(db_session, business_line="Wealth")
        await create_test_use_case(db_session)

        assert len((await use_case_service.list_use_cases(db_session, search="chatbot"))["use_cases"]) == 1
        assert len((await use_case_service.list_use_cases(db_session, search="wealth"))["use_cases"]) == 1
        assert len((await use_case_service.list_use_cases(db_session, search="procedure"))["use_cases"]) == 3

    @pytest.mark.asyncio
    async def test_all_filters(self, db_session: AsyncSession):
        await create_test_use_case(db_session)

        result = await use_case_service.list_use_cases(db_session, status="all", tier="all")

        assert len(result["use_cases"]) == 1


@pytest.mark.unit
class TestGenerateDecision:
    """Tests for decision generation."""

    @pytest.mark.asyncio
    async def test_generate_decision(self, db_session: AsyncSession):
        """Test the engine result is stored with an audit event."""
        use_case = await create_test_use_case(db_session, **create_high_risk_use_case_data())

        decision, result = await use_case_service.generate_decision(db_session, use_case.id, "system")

        assert decision.tier == RiskTier.T3
        assert decision.is_model.value == "Yes"
        assert decision.required_artifacts == result["required_artifacts"]
        assert "DecisionGenerated" in await event_types(db_session, use_case.id)

        stored = await use_case_service.get_decision(db_session, use_case.id)
        assert stored.id == decision.id

    @pytest.mark.asyncio
    async def test_regenerate_replaces_decision(self, db_session: AsyncSession):
        """Test a second run updates the one decision in place."""
        use_case = await create_test_use_case(db_session)
        first, _ = await use_case_service.generate_decision(db_session, use_case.id, "system")

        await db_session.execute(
            update(UseCase).where(UseCase.id == use_case.id).values(customer_impact="Direct", usage_type="Decisioning")
        )
        await db_session.commit()
        second, _ = await use_case_service.generate_decision(db_session, use_case.id, "system")

        assert second.id == first.id
        assert second.tier == RiskTier.T3
        assert (await event_types(db_session, use_case.id)).count("DecisionGenerated") == 2

    @pytest.mark.asyncio
    async def test_get_missing_decision(self, db_session: AsyncSession):
        use_case = await create_test_use_case(db_session)

        with pytest.raises(NotFoundError) as exc_info:
            await use_case_service.get_decision(db_session, use_case.id)

        assert exc_info.value.message == "Decision not found"


@pytest.mark.unit
class TestSubmit:
    """Tests for submitting a use case."""

    @pytest.mark.asyncio
    async def test_submit_draft(self, db_session: AsyncSession):
        use_case = await create_test_use_case(db_session)

        submitted = await use_case_service.submit(db_session, use_case.id, "Model Owner")

        assert submitted.status == UseCaseStatus.SUBMITTED
        events = await audit_service.list_events(db_session, use_case.id)
        assert events[0].event_type == "Submitted"
        assert events[0].actor == "Model Owner"

    @pytest.mark.asyncio
    async def test_submit_twice_rejected(self, db_session: AsyncSession):
        use_case = await create_test_use_case(db_session, status=UseCaseStatus.SUBMITTED)

        with pytest.raises(InvalidStateError):
            await use_case_service.submit(db_session, use_case.id, "Model Owner")


@pytest.mark.unit
class TestApprove:
    """Tests for approving a use case."""

    @pytest.mark.asyncio
    async def test_approve_submitted(self, db_session: AsyncSession):
        """Test approval sets reviewer fields and records the tier."""
        use_case = await create_test_use_case(db_session, status=UseCaseStatus.SUBMITTED, tier=RiskTier.T2)

        approved = await use_case_service.approve(db_session, use_case.id, "Jane Doe")

        assert approved.status == UseCaseStatus.APPROVED
        assert approved.reviewed_by == "Jane Doe"
        assert approved.reviewed_at is not None
        events = await audit_service.list_events(db_session, use_case.id)
        assert events[0].event_type == "Approved"
        assert events[0].details == "Use case approved with tier T2"

    @pytest.mark.asyncio
    async def test_approve_under_review(self, db_session: AsyncSession):
        use_case = await create_test_use_case(db_session, status=UseCaseStatus.UNDER_REVIEW, tier=RiskTier.T1)

        approved = await use_case_service.approve(db_session, use_case.id, "Jane Doe")

        assert approved.status == UseCaseStatus.APPROVED

    @pytest.mark.asyncio
    async def test_approve_without_decision(self, db_session: AsyncSession):
        """Test nothing is written when the decision is missing."""
        use_case = await create_test_use_case(db_session, status=UseCaseStatus.SUBMITTED)

        with pytest.raises(InvalidStateError) as exc_info:
            await use_case_service.approve(db_session, use_case.id, "Jane Doe")

        assert exc_info.value.message == "Cannot approve without a generated decision"
        reloaded = await use_case_service.get_use_case(db_session, use_case.id, refresh=True)
        assert reloaded.status == UseCaseStatus.SUBMITTED
        assert reloaded.reviewed_by is None
        assert await event_types(db_session, use_case.id) == []

    @pytest.mark.asyncio
    async def test_approve_twice_rejected(self, db_session: AsyncSession):
        """Test a second approval fails and adds no audit event."""
        use_case = await create_test_use_case(db_session, status=UseCaseStatus.SUBMITTED, tier=RiskTier.T2)
        await use_case_service.approve(db_session, use_case.id, "Jane Doe")

        with pytest.raises(InvalidStateError) as exc_info:
            await use_case_service.approve(db_session, use_case.id, "Jane Doe")

        assert exc_info.value.message == "Use case is not in a reviewable state"
        assert (await event_types(db_session, use_case.id)).count("Approved") == 1

    @pytest.mark.asyncio
    async def test_approve_unknown(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await use_case_service.approve(db_session, "missing", "Jane Doe")

    @pytest.mark.asyncio
    async def test_approve_loses_race(self, db_session: AsyncSession, session_factory):
        """Test the conditional update refuses a row another reviewer moved."""
        use_case = await create_test_use_case(db_session, status=UseCaseStatus.SUBMITTED, tier=RiskTier.T2)
        use_case_id = use_case.id
        loaded = await use_case_service.get_use_case(db_session, use_case_id)

        async with session_factory() as other:
            await use_case_service.send_back(other, use_case_id, "Other Reviewer", "Needs work")

        with pytest.raises(InvalidStateError):
            await use_case_service._transition(
                db_session,
                loaded,
                ReviewAction.APPROVE,
                "Jane Doe",
                values={"reviewed_by": "Jane Doe"},
                event_type=AuditEventType.APPROVED,
                details="Use case approved with tier T2",
            )

        reloaded = await use_case_service.get_use_case(db_session, use_case_id, refresh=True)
        assert reloaded.status == UseCaseStatus.SENT_BACK
        assert reloaded.reviewed_by == "Other Reviewer"
        assert "Approved" not in await event_types(db_session, use_case_id)


@pytest.mark.unit
class TestSendBack:
    """Tests for sending a use case back."""

    @pytest.mark.asyncio
    async def test_send_back_with_notes(self, db_session: AsyncSession):
        use_case = await create_test_use_case(db_session, status=UseCaseStatus.SUBMITTED)

        sent_back = await use_case_service.send_back(
            db_session, use_case.id, "Jane Doe", "Please attach the model card"
        )

        assert sent_back.status == UseCaseStatus.SENT_BACK
        assert sent_back.reviewer_notes == "Please attach the model card"
        assert sent_back.reviewed_by == "Jane Doe"
        events = await audit_service.list_events(db_session, use_case.id)
        assert events[0].event_type == "SentBack"
        assert events[0].details == "Please attach the model card"

    @pytest.mark.asyncio
    async def test_send_back_without_notes(self, db_session: AsyncSession):
        """Test the default note and fallback audit details."""
        use_case = await create_test_use_case(db_session, status=UseCaseStatus.UNDER_REVIEW)

        sent_back = await use_case_service.send_back(db_session, use_case.id, "Jane Doe")

        assert sent_back.reviewer_notes == "Please review and update your submission."
        events = await audit_service.list_events(db_session, use_case.id)
        assert events[0].details == "Sent back for revision"

    @pytest.mark.asyncio
    async def test_send_back_long_notes_truncated_in_audit(self, db_session: AsyncSession):
        use_case = await create_test_use_case(db_session, status=UseCaseStatus.SUBMITTED)
        notes = "n" * 240

        sent_back = await use_case_service.send_back(db_session, use_case.id, "Jane Doe", notes)

        assert sent_back.reviewer_notes == notes
        events = await audit_service.list_events(db_session, use_case.id)
        assert events[0].details == "n" * 100 + "..."

    @pytest.mark.asyncio
    async def test_send_back_draft_rejected(self, db_session: AsyncSession):
        use_case = await create_test_use_case(db_session)

        with pytest.raises(InvalidStateError):
            await use_case_service.send_back(db_session, use_case.id, "Jane Doe", "x")

        assert await event_types(db_session, use_case.id) == []


@pytest.mark.unit
class TestReviewCommitFailure:
    """Tests that a failed commit leaves neither the new status nor its event."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "action, event_type",
        [("approve", "Approved"), ("send_back", "SentBack")],
    )
    async def test_commit_failure_rolls_back(
        self, db_session: AsyncSession, session_factory, action, event_type
    ):
        use_case = await create_test_use_case(db_session, status=UseCaseStatus.SUBMITTED, tier=RiskTier.T2)
        use_case_id = use_case.id
        review = getattr(use_case_service, action)

        with patch.object(db_session, "commit", AsyncMock(side_effect=SQLAlchemyError("disk full"))):
            with pytest.raises(UpstreamFailureError):
                await review(db_session, use_case_id, "Jane Doe")

        async with session_factory() as fresh:
            stored = await use_case_service.get_use_case(fresh, use_case_id)
            assert stored.status == UseCaseStatus.SUBMITTED
            assert stored.reviewed_by is None
            assert event_type not in await event_types(fresh, use_case_id)


@pytest.mark.unit
class TestUpdateUseCase:
    """Tests for editing intake fields."""

    @pytest.mark.asyncio
    async def test_update_draft(self, db_session: AsyncSession):
        """Test only the given fields change and the keys are audited."""
        use_case = await create_test_use_case(db_session, title="Old title")

        updated = await use_case_service.update_use_case(
            db_session, use_case.id, {"title": "New title", "contains_pii": True}, "alice"
        )

        assert updated.title == "New title"
        assert updated.contains_pii is True
        assert updated.business_line == "Operations"
        events = await audit_service.list_events(db_session, use_case.id)
        assert events[0].event_type == "Updated"
        assert events[0].actor == "alice"
        assert json.loads(events[0].details) == ["contains_pii", "title"]

    @pytest.mark.asyncio
    async def test_update_sent_back(self, db_session: AsyncSession):
        use_case = await create_test_use_case(db_session, status=UseCaseStatus.SENT_BACK)

        updated = await use_case_service.update_use_case(
            db_session, use_case.id, {"monitoring_cadence": "Monthly"}, "alice"
        )

        assert updated.monitoring_cadence == "Monthly"
        assert updated.status == UseCaseStatus.SENT_BACK

    @pytest.mark.asyncio
    async def test_update_without_changes_writes_nothing(self, db_session: AsyncSession):
        use_case = await create_test_use_case(db_session)

        await use_case_service.update_use_case(db_session, use_case.id, {}, "alice")

        assert await event_types(db_session, use_case.id) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status",
        [UseCaseStatus.SUBMITTED, UseCaseStatus.UNDER_REVIEW, UseCaseStatus.APPROVED],
    )
    async def test_update_locked_once_submitted(self, db_session: AsyncSession, status):
        use_case = await create_test_use_case(db_session, status=status, title="Frozen")
        use_case_id = use_case.id

        with pytest.raises(InvalidStateError) as exc_info:
            await use_case_service.update_use_case(db_session, use_case_id, {"title": "Changed"}, "alice")

        assert exc_info.value.message == "Only draft or sent back use cases can be changed"
        stored = await use_case_service.get_use_case(db_session, use_case_id, refresh=True)
        assert stored.title == "Frozen"

    @pytest.mark.asyncio
    async def test_update_unknown(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await use_case_service.update_use_case(db_session, "missing", {"title": "x"}, "alice")


@pytest.mark.unit
class TestDeleteUseCase:
    """Tests for deleting a use case."""

    @pytest.mark.asyncio
    async def test_delete_removes_children_and_objects(
        self, db_session: AsyncSession, storage, mock_minio_client
    ):
        use_case = await create_test_use_case(db_session, tier=RiskTier.T2)
        use_case_id = use_case.id
        db_session.add(Attachment(
            id=generate_id(),
            use_case_id=use_case_id,
            filename="model-card.pdf",
            type="Model card",
            storage_path=f"attachments/{use_case_id}/abc-model-card.pdf",
            file_size=1024,
        ))
        audit_service.record(db_session, use_case_id, "alice", AuditEventType.CREATED)
        await db_session.commit()

        await use_case_service.delete_use_case(db_session, storage, use_case_id, "alice")

        with pytest.raises(NotFoundError):
            await use_case_service.get_use_case(db_session, use_case_id)
        assert await event_types(db_session, use_case_id) == []
        remaining = await db_session.scalar(
            select(func.count()).select_from(Decision).where(Decision.use_case_id == use_case_id)
        )
        assert remaining == 0
        mock_minio_client.remove_object.assert_called_once_with(
            "attachments", f"attachments/{use_case_id}/abc-model-card.pdf"
        )

    @pytest.mark.asyncio
    async def test_delete_survives_storage_failure(
        self, db_session: AsyncSession, storage, mock_minio_client
    ):
        use_case = await create_test_use_case(db_session)
        use_case_id = use_case.id
        db_session.add(Attachment(
            id=generate_id(),
            use_case_id=use_case_id,
            filename="plan.pdf",
            type="Model card",
            storage_path=f"attachments/{use_case_id}/abc-plan.pdf",
            file_size=10,
        ))
        await db_session.commit()
        mock_minio_client.remove_object.side_effect = S3Error(
            code="AccessDenied",
            message="denied",
            resource="/attachments",
            request_id="1",
            host_id="h",
            response=None,
        )

        await use_case_service.delete_use_case(db_session, storage, use_case_id, "alice")

        with pytest.raises(NotFoundError):
            await use_case_service.get_use_case(db_session, use_case_id)

    @pytest.mark.asyncio
    async def test_delete_submitted_rejected(self, db_session: AsyncSession, storage):
        use_case = await create_test_use_case(db_session, status=UseCaseStatus.SUBMITTED)
        use_case_id = use_case.id

        with pytest.raises(InvalidStateError):
            await use_case_service.delete_use_case(db_session, storage, use_case_id, "alice")

        stored = await use_case_service.get_use_case(db_session, use_case_id, refresh=True)
        assert stored.status == UseCaseStatus.SUBMITTED
