"""
LexGate - Test Configuration

Pytest fixtures and configuration.

Each test gets its own SQLite database file (aiosqlite) so that separate
sessions (request session, audit session, a second concurrent reviewer)
see each other's commits the way they would on PostgreSQL.
"""

import os

os.environ.setdefault("DATABASE_URL_ASYNC", "sqlite+aiosqlite:///./lexgate_unused.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("APP_ENV", "testing")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Dict, Optional
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from lexgate.database import Base, get_async_session, get_session_factory
import lexgate.models  # noqa: F401
from lexgate.models.case import Case, CaseStatus, CaseType, ConflictCheckStatus, Creditor
from lexgate.models.draft import Draft, DraftStatus, DraftType
from lexgate.models.principal import Principal, Role
from lexgate.services.audit_service import AuditService
from lexgate.utils.security import create_access_token
from main import app


# ===========================================
# DATABASE
# ===========================================

@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'lexgate_test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def broken_session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Session factory over a database with no tables: every write fails."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}", echo=False)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def audit_service(db_session, session_factory) -> AuditService:
    return AuditService(db_session, session_factory)


# ===========================================
# PRINCIPALS
# ===========================================

@pytest.fixture
def tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_tenant_id() -> UUID:
    return uuid4()


def make_principal(role: Role, tenant_id: UUID, **kwargs) -> Principal:
    if role == Role.LAWYER:
        kwargs.setdefault("license_number", "TK-12345")
    return Principal(id=uuid4(), tenant_id=tenant_id, role=role, **kwargs)


@pytest.fixture
def lawyer(tenant_id) -> Principal:
    return make_principal(Role.LAWYER, tenant_id, name="Lawyer Sato")


@pytest.fixture
def second_lawyer(tenant_id) -> Principal:
    return make_principal(Role.LAWYER, tenant_id, name="Lawyer Suzuki")


@pytest.fixture
def staff(tenant_id) -> Principal:
    return make_principal(Role.STAFF, tenant_id, name="Staff Tanaka")


@pytest.fixture
def client_principal(tenant_id) -> Principal:
    return make_principal(Role.CLIENT, tenant_id, name="Client Yamada")


@pytest.fixture
def tech_support(tenant_id) -> Principal:
    return make_principal(Role.TECH_SUPPORT, tenant_id)


@pytest.fixture
def elevated_tech_support(tenant_id) -> Principal:
    return make_principal(
        Role.TECH_SUPPORT,
        tenant_id,
        elevated_until=datetime.now(timezone.utc) + timedelta(hours=1),
    )


@pytest.fixture
def admin(tenant_id) -> Principal:
    return make_principal(Role.ADMIN, tenant_id)


@pytest.fixture
def foreign_lawyer(other_tenant_id) -> Principal:
    return make_principal(Role.LAWYER, other_tenant_id, name="Lawyer Elsewhere")


def auth_headers(principal: Principal) -> Dict[str, str]:
    """Bearer header carrying a real access token for the principal."""
    claims = {
        "sub": str(principal.id),
        "tenant_id": str(principal.tenant_id),
        "role": principal.role.value,
    }
    if principal.license_number:
        claims["license_number"] = principal.license_number
    if principal.elevated_until:
        claims["elevated_until"] = principal.elevated_until.isoformat()
    return {"Authorization": f"Bearer {create_access_token(claims)}"}


# ===========================================
# DATA FIXTURES
# ===========================================

async def make_case(
    db: AsyncSession,
    tenant_id: UUID,
    case_number: str = "2026-0001",
    client_name: str = "Yamada Taro",
    lawyer_id: Optional[UUID] = None,
    staff_id: Optional[UUID] = None,
    client_id: Optional[UUID] = None,
    creditor_names=("Acme Credit", "Blue Bank"),
) -> Case:
    case = Case(
        tenant_id=tenant_id,
        case_number=case_number,
        case_type=CaseType.BANKRUPTCY,
        status=CaseStatus.RETAINED,
        conflict_check_status=ConflictCheckStatus.PENDING,
        client_name=client_name,
        client_id=client_id,
        lawyer_id=lawyer_id,
        staff_id=staff_id,
        creditors=[Creditor(tenant_id=tenant_id, name=name, debt_amount=500000) for name in creditor_names],
    )
    db.add(case)
    await db.commit()
    await db.refresh(case)
    return case


async def make_draft(
    db: AsyncSession,
    case: Case,
    status: DraftStatus = DraftStatus.PENDING,
    draft_type: DraftType = DraftType.RETENTION_NOTICE,
    version: int = 1,
    flags=None,
    content: str = "Notice of retention: we have been retained by the debtor.",
) -> Draft:
    draft = Draft(
        tenant_id=case.tenant_id,
        case_id=case.id,
        draft_type=draft_type,
        version=version,
        content=content,
        flags=flags or [],
        status=status,
        final_content=content if status == DraftStatus.APPROVED else None,
    )
    db.add(draft)
    await db.commit()
    await db.refresh(draft)
    return draft


@pytest_asyncio.fixture
async def case(db_session, tenant_id, lawyer, staff, client_principal) -> Case:
    return await make_case(
        db_session,
        tenant_id,
        lawyer_id=lawyer.id,
        staff_id=staff.id,
        client_id=client_principal.id,
    )


@pytest_asyncio.fixture
async def foreign_case(db_session, other_tenant_id) -> Case:
    return await make_case(db_session, other_tenant_id, case_number="2026-0001", client_name="Other Client")


@pytest_asyncio.fixture
async def pending_draft(db_session, case) -> Draft:
    return await make_draft(db_session, case)


@pytest_asyncio.fixture
async def flagged_draft(db_session, case) -> Draft:
    return await make_draft(
        db_session,
        case,
        draft_type=DraftType.PETITION,
        flags=[
            {
                "kind": "missing_info",
                "severity": "warning",
                "message": "Date of the last repayment is not recorded",
                "action": "Confirm the last repayment date with the client",
            },
            {
                "kind": "inconsistency",
                "severity": "critical",
                "message": "Declared income differs from the uploaded pay slip",
                "action": "Check the pay slip against the declaration",
            },
        ],
    )


@pytest_asyncio.fixture
async def approved_draft(db_session, case) -> Draft:
    return await make_draft(db_session, case, status=DraftStatus.APPROVED, draft_type=DraftType.RETENTION_NOTICE, version=2)


@pytest_asyncio.fixture
async def foreign_draft(db_session, foreign_case) -> Draft:
    return await make_draft(db_session, foreign_case, status=DraftStatus.APPROVED)


# ===========================================
# HTTP CLIENT
# ===========================================

@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
