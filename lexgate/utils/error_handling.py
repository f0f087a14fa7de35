"""
Centralized Error Handling for LexGate

This module provides:
- Custom exception hierarchy
- Standardized error responses (machine-readable code + human-readable message)
- Error logging to the diagnostics channel
- Database error handling

Status mapping:
    401 - authentication missing
    403 - authorization denial (role, permission, tenant mismatch)
    400 - validation failure and state conflicts
    404 - missing draft / case / send
    500 - unexpected failures (no internal detail is exposed)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union
from uuid import UUID
import logging

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import (
    SQLAlchemyError,
    IntegrityError,
    OperationalError,
    DataError,
)
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("lexgate.errors")


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


class ErrorCode(str, Enum):
    """Standardized error codes for the application"""

    # Validation Errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    FLAGS_NOT_ACKNOWLEDGED = "FLAGS_NOT_ACKNOWLEDGED"
    FLAG_POLICY_VIOLATION = "FLAG_POLICY_VIOLATION"
    FINAL_CONTENT_REQUIRED = "FINAL_CONTENT_REQUIRED"
    DRAFT_CASE_MISMATCH = "DRAFT_CASE_MISMATCH"

    # State Conflicts (400)
    ALREADY_PROCESSED = "ALREADY_PROCESSED"
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"
    DRAFT_NOT_APPROVED = "DRAFT_NOT_APPROVED"
    CONFLICT_CHECK_COMPLETED = "CONFLICT_CHECK_COMPLETED"

    # Authentication/Authorization Errors (401/403)
    UNAUTHORIZED = "UNAUTHORIZED"
    TOKEN_INVALID = "TOKEN_INVALID"
    FORBIDDEN = "FORBIDDEN"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    LAWYER_REQUIRED = "LAWYER_REQUIRED"
    TENANT_MISMATCH = "TENANT_MISMATCH"
    SEND_GATE_BLOCKED = "SEND_GATE_BLOCKED"

    # Resource Errors (404/409)
    NOT_FOUND = "NOT_FOUND"
    CASE_NOT_FOUND = "CASE_NOT_FOUND"
    DRAFT_NOT_FOUND = "DRAFT_NOT_FOUND"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"

    # Rate Limiting (429)
    RATE_LIMITED = "RATE_LIMITED"

    # Database Errors (500)
    DATABASE_ERROR = "DATABASE_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DATA_INTEGRITY_ERROR = "DATA_INTEGRITY_ERROR"

    # Internal Errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppException(Exception):
    """Base exception for all application exceptions"""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.field = field
        self.original_error = original_error
        self.timestamp = _utcnow_iso()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response"""
        result = {
            "code": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        if self.field:
            result["field"] = self.field
        if self.details:
            result["details"] = self.details
        return result


# ============================================================================
# Validation Exceptions
# ============================================================================

class ValidationException(AppException):
    """Malformed or out-of-range request. Not a security event."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
            field=field,
        )


class FlagsNotAcknowledgedException(ValidationException):
    """A draft carrying flags cannot be dispositioned silently"""

    def __init__(self, flags_count: int):
        super().__init__(
            message=f"This draft carries {flags_count} flag(s) that must be acknowledged before review",
            field="flags_acknowledged",
            code=ErrorCode.FLAGS_NOT_ACKNOWLEDGED,
            details={"flags_count": flags_count},
        )


class FlagPolicyException(ValidationException):
    """Flag message states a legal conclusion"""

    def __init__(self, violations: list):
        super().__init__(
            message="Flag messages must name a next action, not a legal conclusion",
            field="flags",
            code=ErrorCode.FLAG_POLICY_VIOLATION,
            details={"violations": violations},
        )


# ============================================================================
# Authentication/Authorization Exceptions
# ============================================================================

class AuthenticationException(AppException):
    """No authenticated principal"""

    def __init__(
        self,
        message: str = "Authentication required",
        code: ErrorCode = ErrorCode.UNAUTHORIZED,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
        )


class TokenInvalidException(AuthenticationException):
    """Token is invalid or expired"""

    def __init__(self, message: str = "Invalid or expired access token"):
        super().__init__(
            message=message,
            code=ErrorCode.TOKEN_INVALID,
        )


class AuthorizationException(AppException):
    """
    Authorization denied exception.

    Carries the attempted action so the caller can write the
    PERMISSION_DENIED audit entry before responding.
    """

    def __init__(
        self,
        message: str = "Permission denied",
        required_permission: Optional[str] = None,
        code: ErrorCode = ErrorCode.FORBIDDEN,
        attempted_action: Optional[str] = None,
        user_role: Optional[str] = None,
    ):
        details = {}
        if required_permission:
            details["required_permission"] = required_permission
        if user_role:
            details["current_role"] = user_role
        self.attempted_action = attempted_action or required_permission
        self.required_permission = required_permission
        self.user_role = user_role
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details,
        )


class InsufficientPermissionsException(AuthorizationException):
    """Insufficient permissions"""

    def __init__(self, required_permission: str, user_role: Optional[str] = None):
        super().__init__(
            message=f"Insufficient permissions. Required: {required_permission}",
            required_permission=required_permission,
            code=ErrorCode.INSUFFICIENT_PERMISSIONS,
            user_role=user_role,
        )


class LawyerRequiredException(AuthorizationException):
    """Operation reserved to the lawyer role"""

    def __init__(self, attempted_action: str, user_role: Optional[str] = None):
        super().__init__(
            message="This operation can only be performed by a lawyer",
            code=ErrorCode.LAWYER_REQUIRED,
            attempted_action=attempted_action,
            user_role=user_role,
        )


class TenantMismatchException(AuthorizationException):
    """Resource belongs to another tenant"""

    def __init__(self, attempted_action: str, resource_type: str):
        super().__init__(
            message="Access denied",
            code=ErrorCode.TENANT_MISMATCH,
            attempted_action=attempted_action,
        )
        self.details["resource_type"] = resource_type


class SendGateBlockedException(AuthorizationException):
    """External send refused by the send gate"""

    def __init__(self, send_type: str, user_role: Optional[str] = None):
        super().__init__(
            message="Send not permitted. External legal sends can only be executed by a lawyer.",
            code=ErrorCode.SEND_GATE_BLOCKED,
            attempted_action=f"send:{send_type}",
            user_role=user_role,
        )
        self.details["send_type"] = send_type


# ============================================================================
# State Conflict Exceptions
# ============================================================================

class StateConflictException(AppException):
    """Request is well-formed but the resource is in the wrong state"""

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class DraftAlreadyProcessedException(StateConflictException):
    """Draft has already left PENDING"""

    def __init__(self, draft_id: Union[str, UUID], current_status: Optional[str] = None):
        details = {"draft_id": str(draft_id)}
        if current_status:
            details["current_status"] = current_status
        super().__init__(
            message="This draft has already been processed",
            code=ErrorCode.ALREADY_PROCESSED,
            details=details,
        )


class ConfirmationRequiredException(StateConflictException):
    """Human confirmation checkbox not ticked"""

    def __init__(self):
        super().__init__(
            message="The pre-send confirmation must be checked",
            code=ErrorCode.CONFIRMATION_REQUIRED,
        )


class DraftNotApprovedException(StateConflictException):
    """Referenced draft is not approved or modified"""

    def __init__(self, draft_id: Union[str, UUID], current_status: str):
        super().__init__(
            message="A draft that has not been approved cannot be sent",
            code=ErrorCode.DRAFT_NOT_APPROVED,
            details={"draft_id": str(draft_id), "current_status": current_status},
        )


# ============================================================================
# Resource Exceptions
# ============================================================================

class NotFoundException(AppException):
    """Resource not found exception"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Union[str, UUID]] = None,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOT_FOUND,
    ):
        if message is None:
            if resource_id:
                message = f"{resource_type} with ID '{resource_id}' not found"
            else:
                message = f"{resource_type} not found"
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": str(resource_id) if resource_id else None},
        )


class CaseNotFoundException(NotFoundException):
    """Case not found"""

    def __init__(self, case_id: Union[str, UUID]):
        super().__init__(resource_type="Case", resource_id=case_id, code=ErrorCode.CASE_NOT_FOUND)


class DraftNotFoundException(NotFoundException):
    """Draft not found"""

    def __init__(self, draft_id: Union[str, UUID]):
        super().__init__(resource_type="Draft", resource_id=draft_id, code=ErrorCode.DRAFT_NOT_FOUND)


# ============================================================================
# Exception Handlers
# ============================================================================

def create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    field: Optional[str] = None,
) -> JSONResponse:
    """Create a standardized error response"""
    content = {
        "detail": {
            "code": code.value,
            "message": message,
            "timestamp": _utcnow_iso(),
        }
    }
    if field:
        content["detail"]["field"] = field
    if details:
        content["detail"]["details"] = details

    return JSONResponse(status_code=status_code, content=content)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle AppException"""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"AppException: {exc.code.value} - {exc.message}",
        extra={
            "code": exc.code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
        },
        exc_info=exc.original_error,
    )

    return create_error_response(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        field=exc.field,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException"""
    code_map = {
        400: ErrorCode.INVALID_INPUT,
        401: ErrorCode.UNAUTHORIZED,
        403: ErrorCode.FORBIDDEN,
        404: ErrorCode.NOT_FOUND,
        409: ErrorCode.RESOURCE_CONFLICT,
        422: ErrorCode.VALIDATION_ERROR,
        429: ErrorCode.RATE_LIMITED,
        500: ErrorCode.INTERNAL_ERROR,
    }

    error_code = code_map.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    logger.warning(
        f"HTTPException: {exc.status_code} - {message}",
        extra={"path": request.url.path, "method": request.method},
    )

    return create_error_response(
        code=error_code,
        message=message,
        status_code=exc.status_code,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request body/query validation errors as 400"""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    logger.warning(
        f"ValidationError: {len(errors)} validation errors",
        extra={"path": request.url.path, "method": request.method, "errors": errors},
    )

    return create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Request validation failed",
        status_code=status.HTTP_400_BAD_REQUEST,
        details={"errors": errors},
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy errors"""
    error_message = "A database error occurred"
    error_code = ErrorCode.DATABASE_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if isinstance(exc, IntegrityError):
        error_message = "Data integrity constraint violated"
        error_code = ErrorCode.DATA_INTEGRITY_ERROR
        error_str = str(exc.orig).lower() if exc.orig else ""
        if "unique" in error_str or "duplicate" in error_str:
            error_message = "A record with this value already exists"
            error_code = ErrorCode.DUPLICATE_ENTRY
            status_code = status.HTTP_409_CONFLICT
    elif isinstance(exc, OperationalError):
        error_message = "Database operation failed"
        error_code = ErrorCode.CONNECTION_ERROR
    elif isinstance(exc, DataError):
        error_message = "Invalid data format for database"
        status_code = status.HTTP_400_BAD_REQUEST

    logger.error(
        f"SQLAlchemyError: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    return create_error_response(
        code=error_code,
        message=error_message,
        status_code=status_code,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions"""
    logger.critical(
        f"UnhandledException: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    # Never expose internal error details
    return create_error_response(
        code=ErrorCode.INTERNAL_ERROR,
        message="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
