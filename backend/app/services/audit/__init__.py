from .audit_service import AuditService
from .recorder import AuditAction, AuditContext, AuditRecorder, AuditResult

__all__ = ["AuditAction", "AuditContext", "AuditRecorder", "AuditResult", "AuditService"]
