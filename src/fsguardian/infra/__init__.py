"""External process plumbing.

Public API: AuditLog, CommandMediator, CommandRunner, LoggingAuditLog,
    OpaqueText, OperationOutcome, RunResult, SubprocessRunner, Tool, opaque_text
Internal: audit_log, mediator, runner
"""

from fsguardian.infra.audit_log import AuditLog, LoggingAuditLog, OperationOutcome
from fsguardian.infra.mediator import CommandMediator, OpaqueText, Tool, opaque_text
from fsguardian.infra.runner import CommandRunner, RunResult, SubprocessRunner

__all__ = [
    "AuditLog",
    "CommandMediator",
    "CommandRunner",
    "LoggingAuditLog",
    "OpaqueText",
    "OperationOutcome",
    "RunResult",
    "SubprocessRunner",
    "Tool",
    "opaque_text",
]
