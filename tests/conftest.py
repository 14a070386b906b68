"""
Pytest configuration and fixtures for ModelRisk tests.

Each test gets its own SQLite database (aiosqlite) with the schema built
from the ORM metadata, and a MinIO client replaced by a MagicMock.

Source: https://fastapi.tiangolo.com/advanced/async-tests/
"""

import os

# Settings are read once at import time, so point them at SQLite first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SENTRY_DSN", "")
os.environ.setdefault("ENVIRONMENT", "testing")

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import date, timedelta  # noqa: E402
from typing import Any  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from modelrisk.database import get_db  # noqa: E402
from modelrisk.dependencies import get_storage  # noqa: E402
from modelrisk.main import app  # noqa: E402
from modelrisk.models import (  # noqa: E402
    Base,
    Decision,
    FindingSeverity,
    InventoryModel,
    InventoryStatus,
    IsModel,
    RemediationStatus,
    RiskTier,
    UseCase,
    UseCaseStatus,
    Validation,
    ValidationFinding,
    ValidationResult,
)
from modelrisk.models.base import generate_id  # noqa: E402
from modelrisk.services.storage_service import StorageService  # noqa: E402
from modelrisk.utils.security import create_access_token  # noqa: E402

from tests.fixtures.factories import (  # noqa: E402
    create_inventory_model_data,
    create_use_case_data,
    create_validation_data,
)

# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest_asyncio.fixture
async def async_engine(tmp_path):
    """Create a file-backed SQLite engine with all tables."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'modelrisk-test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging data and calling services directly."""
    async with session_factory() as session:
        yield session


# =============================================================================
# STORAGE FIXTURES
# =============================================================================


@pytest.fixture
def mock_minio_client():
    """Create a mock MinIO client for testing storage operations."""
    client = MagicMock()
    client.bucket_exists.return_value = True
    client.put_object.return_value = None
    client.remove_object.return_value = None
    client.presigned_get_object.return_value = "http://minio.test/attachments/presigned"
    return client


@pytest.fixture
def storage(mock_minio_client) -> StorageService:
    """StorageService wired to the mock client."""
    service = StorageService(
        endpoint="minio.test:9000",
        access_key="test",
        secret_key="test",
        bucket_name="attachments",
        secure=False,
        public_endpoint="files.test",
    )
    service.client = mock_minio_client
    service._initialized = True
    return service


# =============================================================================
# HTTP CLIENT FIXTURES
# =============================================================================


@pytest_asyncio.fixture
async def async_client(session_factory, storage) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client against the app with database and storage overridden.

    Every request gets a fresh session, as it would in production.
    """
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def reviewer_headers() -> dict[str, str]:
    """Authorization headers for a named MRM reviewer."""
    token = create_access_token({"sub": "jdoe", "name": "Jane Doe", "role": "reviewer"})
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# DATA HELPERS
# =============================================================================


async def create_test_use_case(
    db: AsyncSession,
    *,
    status: UseCaseStatus = UseCaseStatus.DRAFT,
    tier: RiskTier | None = None,
    created_by: str = "demo-user",
    **overrides: Any,
) -> UseCase:
    """
    Insert a use case directly, optionally with a Decision.

    Args:
        db: Database session
        status: Lifecycle state to start in
        tier: When given, a Decision with this tier is attached
        created_by: Creator identity
        **overrides: Intake field overrides
    """
    use_case = UseCase(
        id=generate_id(),
        status=status,
        created_by=created_by,
        **create_use_case_data(**overrides),
    )
    if tier is not None:
        use_case.decision = Decision(
            is_model=IsModel.YES,
            tier=tier,
            triggered_rules=[],
            rationale_summary=f"Risk tier assigned: {tier.value}",
            required_artifacts=[],
            missing_evidence=[],
            risk_flags=[],
        )
    db.add(use_case)
    await db.commit()
    return use_case


async def create_test_inventory(
    db: AsyncSession,
    *,
    validation_result: ValidationResult | None = ValidationResult.SATISFACTORY,
    **overrides: Any,
) -> tuple[InventoryModel, Validation]:
    """Insert an inventory model with one completed validation."""
    data = create_inventory_model_data(**overrides)
    data["tier"] = RiskTier(data["tier"])
    data["status"] = InventoryStatus(data["status"])
    model = InventoryModel(id=generate_id(), **data)
    validation = Validation(
        id=generate_id(),
        **create_validation_data(overall_result=validation_result),
    )
    model.validations.append(validation)
    db.add(model)
    await db.commit()
    return model, validation


async def create_test_finding(
    db: AsyncSession,
    validation: Validation,
    *,
    number: str = "F-001",
    remediation_status: RemediationStatus = RemediationStatus.OPEN,
    signed_off: bool = False,
    due_in_days: int | None = 30,
) -> ValidationFinding:
    """Insert a finding on a validation."""
    finding = ValidationFinding(
        id=generate_id(),
        validation_id=validation.id,
        finding_number=number,
        title="Challenger model not documented",
        description="The challenger benchmark is referenced but not documented.",
        severity=FindingSeverity.MEDIUM,
        category="Documentation",
        remediation_status=remediation_status,
        remediation_due_date=(
            date.today() + timedelta(days=due_in_days) if due_in_days is not None else None
        ),
        mrm_signed_off=signed_off,
    )
    db.add(finding)
    await db.commit()
    return finding
