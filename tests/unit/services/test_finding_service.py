"""
Unit tests for FindingService.

Tests cover:
- Finding creation, numbering and severity default
- Validation result downgrade on the first finding
- Remediation, including repeats
- MRM sign-off guards
- Editing, including the signed-off and Remediated guards
- Lookups scoped to the parent validation and inventory model
- Open and overdue classification

Source: pytest best practices
"""

from datetime import date, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from modelrisk.errors import AlreadyDoneError, InvalidStateError, NotFoundError
from modelrisk.models import (
    FindingSeverity,
    RemediationStatus,
    Validation,
    ValidationResult,
)
from modelrisk.services.finding_service import (
    FindingService,
    finding_service,
    format_finding_number,
)
from tests.conftest import create_test_finding, create_test_inventory


def finding_input(**overrides) -> dict:
    data = {
        "title": "Benchmark missing",
        "description": "No challenger benchmark was run.",
        "severity": None,
        "category": "Performance",
        "remediation_due_date": date.today() + timedelta(days=45),
    }
    data.update(overrides)
    return data


@pytest.mark.unit
class TestCreateFinding:
    """Tests for finding creation."""

    def test_format_finding_number(self):
        assert format_finding_number(1) == "F-001"
        assert format_finding_number(42) == "F-042"

    @pytest.mark.asyncio
    async def test_create_first_finding(self, db_session: AsyncSession):
        """Test the first finding is F-001, Open and Medium by default."""
        model, validation = await create_test_inventory(db_session)

        finding = await finding_service.create_finding(
            db_session, model.id, validation.id, finding_input()
        )

        assert finding.finding_number == "F-001"
        assert finding.remediation_status == RemediationStatus.OPEN
        assert finding.severity == FindingSeverity.MEDIUM
        assert finding.mrm_signed_off is False

    @pytest.mark.asyncio
    async def test_numbering_continues(self, db_session: AsyncSession):
        model, validation = await create_test_inventory(db_session)
        await create_test_finding(db_session, validation, number="F-001")
        await create_test_finding(db_session, validation, number="F-002")

        finding = await finding_service.create_finding(
            db_session, model.id, validation.id, finding_input(severity="Critical")
        )

        assert finding.finding_number == "F-003"
        assert finding.severity == FindingSeverity.CRITICAL

    @pytest.mark.asyncio
    async def test_satisfactory_becomes_with_findings(self, db_session: AsyncSession):
        """Test a Satisfactory validation is downgraded by a finding."""
        model, validation = await create_test_inventory(db_session)

        await finding_service.create_finding(db_session, model.id, validation.id, finding_input())

        refreshed = await db_session.get(Validation, validation.id, populate_existing=True)
        assert refreshed.overall_result == ValidationResult.SATISFACTORY_WITH_FINDINGS

    @pytest.mark.asyncio
    async def test_unsatisfactory_unchanged(self, db_session: AsyncSession):
        model, validation = await create_test_inventory(
            db_session, validation_result=ValidationResult.UNSATISFACTORY
        )

        await finding_service.create_finding(db_session, model.id, validation.id, finding_input())

        refreshed = await db_session.get(Validation, validation.id, populate_existing=True)
        assert refreshed.overall_result == ValidationResult.UNSATISFACTORY

    @pytest.mark.asyncio
    async def test_create_under_wrong_model(self, db_session: AsyncSession):
        _, validation = await create_test_inventory(db_session)
        other_model, _ = await create_test_inventory(db_session)

        with pytest.raises(NotFoundError) as exc_info:
            await finding_service.create_finding(
                db_session, other_model.id, validation.id, finding_input()
            )

        assert exc_info.value.message == "Validation not found"

    @pytest.mark.asyncio
    async def test_list_findings_ordered(self, db_session: AsyncSession):
        model, validation = await create_test_inventory(db_session)
        await create_test_finding(db_session, validation, number="F-002")
        await create_test_finding(db_session, validation, number="F-001")

        findings = await finding_service.list_findings(db_session, model.id, validation.id)

        assert [f.finding_number for f in findings] == ["F-001", "F-002"]


@pytest.mark.unit
class TestRemediate:
    """Tests for remediation."""

    @pytest.mark.asyncio
    async def test_remediate_open_finding(self, db_session: AsyncSession):
        model, validation = await create_test_inventory(db_session)
        finding = await create_test_finding(db_session, validation)

        remediated = await finding_service.remediate(
            db_session, model.id, validation.id, finding.id,
            notes="Added PSI dashboard", remediated_by="Model Owner",
        )

        assert remediated.remediation_status == RemediationStatus.REMEDIATED
        assert remediated.remediation_notes == "Added PSI dashboard"
        assert remediated.remediated_by == "Model Owner"
        assert remediated.remediated_at is not None

    @pytest.mark.asyncio
    async def test_remediate_twice_rejected(self, db_session: AsyncSession):
        """Test the second remediation fails and keeps the first one's data."""
        model, validation = await create_test_inventory(db_session)
        finding = await create_test_finding(db_session, validation)
        await finding_service.remediate(
            db_session, model.id, validation.id, finding.id, notes="first", remediated_by="A"
        )

        with pytest.raises(AlreadyDoneError) as exc_info:
            await finding_service.remediate(
                db_session, model.id, validation.id, finding.id, notes="second", remediated_by="B"
            )

        assert exc_info.value.message == "Finding is already remediated"
        current = await finding_service.get_finding(
            db_session, model.id, validation.id, finding.id, refresh=True
        )
        assert current.remediation_notes == "first"
        assert current.remediated_by == "A"

    @pytest.mark.asyncio
    async def test_remediate_accepted_finding(self, db_session: AsyncSession):
        model, validation = await create_test_inventory(db_session)
        finding = await create_test_finding(
            db_session, validation, remediation_status=RemediationStatus.ACCEPTED
        )

        remediated = await finding_service.remediate(
            db_session, model.id, validation.id, finding.id, notes=None, remediated_by="A"
        )

        assert remediated.remediation_status == RemediationStatus.REMEDIATED

    @pytest.mark.asyncio
    async def test_remediate_under_wrong_validation(self, db_session: AsyncSession):
        """Test a finding id under another validation is not found."""
        model, validation = await create_test_inventory(db_session)
        other_model, other_validation = await create_test_inventory(db_session)
        finding = await create_test_finding(db_session, validation)

        with pytest.raises(NotFoundError) as exc_info:
            await finding_service.remediate(
                db_session, other_model.id, other_validation.id, finding.id,
                notes=None, remediated_by="A",
            )

        assert exc_info.value.message == "Finding not found"


@pytest.mark.unit
class TestSignOff:
    """Tests for MRM sign-off."""

    @pytest.mark.asyncio
    async def test_sign_off_remediated(self, db_session: AsyncSession):
        model, validation = await create_test_inventory(db_session)
        finding = await create_test_finding(
            db_session, validation, remediation_status=RemediationStatus.REMEDIATED
        )

        signed = await finding_service.sign_off(
            db_session, model.id, validation.id, finding.id,
            notes="Evidence reviewed", signed_off_by="Model Risk Manager",
        )

        assert signed.mrm_signed_off is True
        assert signed.mrm_sign_off_by == "Model Risk Manager"
        assert signed.mrm_sign_off_notes == "Evidence reviewed"
        assert signed.mrm_sign_off_date is not None

    @pytest.mark.asyncio
    async def test_sign_off_open_rejected(self, db_session: AsyncSession):
        model, validation = await create_test_inventory(db_session)
        finding = await create_test_finding(db_session, validation)

        with pytest.raises(InvalidStateError):
            await finding_service.sign_off(
                db_session, model.id, validation.id, finding.id, notes=None, signed_off_by="MRM"
            )

    @pytest.mark.asyncio
    async def test_sign_off_twice_rejected(self, db_session: AsyncSession):
        model, validation = await create_test_inventory(db_session)
        finding = await create_test_finding(
            db_session, validation,
            remediation_status=RemediationStatus.REMEDIATED,
            signed_off=True,
        )

        with pytest.raises(AlreadyDoneError):
            await finding_service.sign_off(
                db_session, model.id, validation.id, finding.id, notes=None, signed_off_by="MRM"
            )


@pytest.mark.unit
class TestFindingClassification:
    """Tests for open and overdue checks."""

    def make(self, status, due):
        return SimpleNamespace(remediation_status=status, remediation_due_date=due)

    def test_open_statuses(self):
        assert FindingService.is_open(self.make(RemediationStatus.OPEN, None)) is True
        assert FindingService.is_open(self.make(RemediationStatus.IN_PROGRESS, None)) is True
        assert FindingService.is_open(self.make(RemediationStatus.REMEDIATED, None)) is False
        assert FindingService.is_open(self.make(RemediationStatus.ACCEPTED, None)) is False

    def test_overdue(self):
        today = date(2026, 6, 1)
        past = date(2026, 5, 31)

        assert FindingService.is_overdue(self.make(RemediationStatus.OPEN, past), today) is True
        assert FindingService.is_overdue(self.make(RemediationStatus.OPEN, today), today) is False
        assert FindingService.is_overdue(self.make(RemediationStatus.OPEN, None), today) is False
        assert FindingService.is_overdue(self.make(RemediationStatus.REMEDIATED, past), today) is False


@pytest.mark.unit
class TestUpdateFinding:
    """Tests for editing findings."""

    @pytest.mark.asyncio
    async def test_update_fields(self, db_session: AsyncSession):
        model, validation = await create_test_inventory(db_session)
        finding = await create_test_finding(db_session, validation)

        updated = await finding_service.update_finding(
            db_session, model.id, validation.id, finding.id,
            {"severity": "Critical", "remediation_status": "In Progress", "category": None},
        )

        assert updated.severity == FindingSeverity.CRITICAL
        assert updated.remediation_status == RemediationStatus.IN_PROGRESS
        assert updated.category is None
        assert updated.title == "Challenger model not documented"

    @pytest.mark.asyncio
    async def test_null_on_required_field_ignored(self, db_session: AsyncSession):
        model, validation = await create_test_inventory(db_session)
        finding = await create_test_finding(db_session, validation)

        updated = await finding_service.update_finding(
            db_session, model.id, validation.id, finding.id, {"title": None, "remediation_notes": "Plan agreed"}
        )

        assert updated.title == "Challenger model not documented"
        assert updated.remediation_notes == "Plan agreed"

    @pytest.mark.asyncio
    async def test_accepting_allows_sign_off(self, db_session: AsyncSession):
        model, validation = await create_test_inventory(db_session)
        finding = await create_test_finding(db_session, validation)

        await finding_service.update_finding(
            db_session, model.id, validation.id, finding.id, {"remediation_status": "Accepted"}
        )
        signed = await finding_service.sign_off(
            db_session, model.id, validation.id, finding.id, notes=None, signed_off_by="MRM"
        )

        assert signed.mrm_signed_off is True

    @pytest.mark.asyncio
    async def test_cannot_mark_remediated(self, db_session: AsyncSession):
        model, validation = await create_test_inventory(db_session)
        finding = await create_test_finding(db_session, validation)

        with pytest.raises(InvalidStateError) as exc_info:
            await finding_service.update_finding(
                db_session, model.id, validation.id, finding.id, {"remediation_status": "Remediated"}
            )

        assert exc_info.value.message == "Use the remediate action to mark a finding remediated"

    @pytest.mark.asyncio
    async def test_signed_off_finding_locked(self, db_session: AsyncSession):
        model, validation = await create_test_inventory(db_session)
        finding = await create_test_finding(
            db_session, validation,
            remediation_status=RemediationStatus.REMEDIATED,
            signed_off=True,
        )
        finding_id = finding.id

        with pytest.raises(AlreadyDoneError):
            await finding_service.update_finding(
                db_session, model.id, validation.id, finding_id, {"title": "Renamed"}
            )

        current = await finding_service.get_finding(
            db_session, model.id, validation.id, finding_id, refresh=True
        )
        assert current.title == "Challenger model not documented"

    @pytest.mark.asyncio
    async def test_update_under_wrong_validation(self, db_session: AsyncSession):
        model, validation = await create_test_inventory(db_session)
        other_model, other_validation = await create_test_inventory(db_session)
        finding = await create_test_finding(db_session, validation)

        with pytest.raises(NotFoundError):
            await finding_service.update_finding(
                db_session, other_model.id, other_validation.id, finding.id, {"title": "x"}
            )
