"""
LexGate - FastAPI Dependencies

Shared dependencies for authentication, database sessions, and services.

This module provides dependency injection for:
1. Database sessions (request session + audit session factory)
2. Current principal resolution (pluggable PrincipalResolver)
3. Request context for the audit trail
4. Service construction
5. Audit-log access gate
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lexgate.database import get_async_session, get_session_factory
from lexgate.models.principal import Principal, Role
from lexgate.services.approval_anomaly_service import ApprovalAnomalyService
from lexgate.services.audit_service import AuditService, RequestContext
from lexgate.services.authorization_guard import require_audit_log_access
from lexgate.services.case_service import CaseService
from lexgate.services.draft_review_service import DraftReviewService
from lexgate.services.send_gate_service import SendGateService
from lexgate.utils.error_handling import AuthenticationException, AuthorizationException, TokenInvalidException
from lexgate.utils.security import verify_access_token


# HTTP Bearer token security
security = HTTPBearer(auto_error=False)


# ===========================================
# PRINCIPAL RESOLUTION
# ===========================================

class PrincipalResolver(ABC):
    """
    Turns a request's credentials into a Principal.

    Override `get_principal_resolver` (app.dependency_overrides) to plug in
    another identity provider.
    """

    @abstractmethod
    async def resolve(self, request: Request, token: Optional[str]) -> Optional[Principal]:
        """Principal for the token, or None when it cannot be resolved."""
        pass


class JWTPrincipalResolver(PrincipalResolver):
    """Principal from a python-jose access token."""

    async def resolve(self, request: Request, token: Optional[str]) -> Optional[Principal]:
        if not token:
            return None

        payload = verify_access_token(token)
        if not payload:
            raise TokenInvalidException()

        try:
            elevated_until = payload.get("elevated_until")
            return Principal(
                id=uuid.UUID(payload["sub"]),
                tenant_id=uuid.UUID(payload["tenant_id"]),
                role=Role(payload["role"]),
                license_number=payload.get("license_number"),
                elevated_until=datetime.fromisoformat(elevated_until) if elevated_until else None,
                email=payload.get("email"),
                name=payload.get("name"),
            )
        except (KeyError, ValueError, TypeError):
            raise TokenInvalidException("Invalid token payload")


_default_resolver = JWTPrincipalResolver()


def get_principal_resolver() -> PrincipalResolver:
    return _default_resolver


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    resolver: PrincipalResolver = Depends(get_principal_resolver),
) -> Principal:
    """
    Get the current authenticated principal.

    Token can be provided via:
    1. Authorization: Bearer <token> header
    2. access_token cookie

    Raises:
        AuthenticationException: no or invalid credentials (401)
    """
    token = None

    if credentials:
        token = credentials.credentials
    else:
        token = request.cookies.get("access_token")
        if token and token.startswith("Bearer "):
            token = token[7:]

    principal = await resolver.resolve(request, token)
    if principal is None:
        raise AuthenticationException()
    return principal


# ===========================================
# REQUEST CONTEXT
# ===========================================

def get_request_context(request: Request) -> RequestContext:
    """Client IP (first X-Forwarded-For hop, then X-Real-IP) and user agent."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.headers.get("x-real-ip") or (request.client.host if request.client else None)
    return RequestContext(
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent"),
    )


# ===========================================
# SERVICES
# ===========================================

def get_audit_service(
    db: AsyncSession = Depends(get_async_session),
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> AuditService:
    return AuditService(db, session_factory)


def get_case_service(
    db: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> CaseService:
    return CaseService(db, audit)


def get_draft_review_service(
    db: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> DraftReviewService:
    return DraftReviewService(db, audit)


def get_send_gate_service(
    db: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> SendGateService:
    return SendGateService(db, audit)


def get_anomaly_service(
    db: AsyncSession = Depends(get_async_session),
    audit: AuditService = Depends(get_audit_service),
) -> ApprovalAnomalyService:
    return ApprovalAnomalyService(db, audit)


# ===========================================
# ACCESS GATES
# ===========================================

async def require_audit_log_viewer(
    principal: Principal = Depends(get_current_principal),
    audit: AuditService = Depends(get_audit_service),
    context: RequestContext = Depends(get_request_context),
) -> Principal:
    """
    AUDIT_LOG_VIEW holders, or tech support inside an elevation window.

    Usage:
        @router.get("/audit-logs")
        async def list_logs(principal: Principal = Depends(require_audit_log_viewer)):
            ...
    """
    try:
        require_audit_log_access(principal)
    except AuthorizationException as exc:
        await audit.log_denial(principal, exc, "audit_log", context=context)
        raise
    return principal
