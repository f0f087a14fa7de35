"""
LexGate - Services Package

Business logic services.
"""

from lexgate.services.audit_service import AuditService, RequestContext
from lexgate.services.case_service import CaseService
from lexgate.services.draft_review_service import DraftReviewService
from lexgate.services.send_gate_service import SendGateService
from lexgate.services.approval_anomaly_service import ApprovalAnomalyService

__all__ = [
    "AuditService",
    "RequestContext",
    "CaseService",
    "DraftReviewService",
    "SendGateService",
    "ApprovalAnomalyService",
]
