"""
LexGate - Routers Package

FastAPI route handlers.

Routers:
- cases: Case list, intake and conflict check
- drafts: Draft view and lawyer review
- send: External send gate
- audit_logs: Audit trail and approval anomaly reports
"""

from lexgate.routers import (
    cases,
    drafts,
    send,
    audit_logs,
)

__all__ = [
    "cases",
    "drafts",
    "send",
    "audit_logs",
]
