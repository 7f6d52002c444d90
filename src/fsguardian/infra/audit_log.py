"""Audit hook for metadata operations.

Durable storage belongs to the host application; it supplies any object with
a matching ``record`` method. ``LoggingAuditLog`` is the default.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationOutcome:
    """One audited operation: what ran, on which path, and whether it worked."""

    operation: str
    target: str
    attribute: str | None
    success: bool


class AuditLog(Protocol):
    """Receives one call per audited operation.

    *target* is the validated path. A search has no single path: its target
    is the validated scope directories joined with ``,``, or ``*`` when the
    whole index was searched.
    """

    def record(
        self,
        operation: str,
        target: str,
        attribute: str | None,
        success: bool,
    ) -> None: ...


class LoggingAuditLog:
    """Write each outcome to the ``fsguardian.audit`` logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("fsguardian.audit")

    def record(
        self,
        operation: str,
        target: str,
        attribute: str | None,
        success: bool,
    ) -> None:
        outcome = OperationOutcome(operation, target, attribute, success)
        self._logger.info(
            "operation=%s target=%r attribute=%s success=%s",
            outcome.operation,
            outcome.target,
            outcome.attribute or "-",
            outcome.success,
        )
