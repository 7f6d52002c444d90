"""Error taxonomy for the sandbox layer.

Guard errors carry fixed messages only. The offending input never becomes
part of an exception message, so ``str(exc)`` is always safe to relay.
"""

from __future__ import annotations

from fsguardian.security.error_sanitizer import sanitize_error


class GuardianError(Exception):
    """Base class for every failure raised by the sandbox layer."""

    category: str = "error"
    default_message: str = "Operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class InvalidInput(GuardianError, ValueError):
    """Raised when a path, token or argument is not usable at all."""

    category = "invalid_input"
    default_message = "Invalid path: must be a non-empty string"


class OutsideSandbox(GuardianError, PermissionError):
    """Raised when a normalized path is not under any sandbox root."""

    category = "outside_sandbox"
    default_message = "Path outside allowed directories"


class SymlinkRejected(GuardianError, PermissionError):
    """Raised when the resolved path is a symbolic link."""

    category = "symlink_rejected"
    default_message = "Symlinks are not allowed"


class OutputTooLarge(GuardianError):
    """Raised when an external tool writes more than the output cap."""

    category = "output_too_large"
    default_message = "Tool output exceeded the size limit"


class ToolFailure(GuardianError):
    """Raised when an external tool exits unsuccessfully.

    ``detail`` holds the raw diagnostic text and must not leave the process
    unsanitized; use :meth:`public_message` for anything crossing the trust
    boundary.
    """

    category = "tool_failure"
    default_message = "Tool invocation failed"

    def __init__(self, detail: str, *, tool: str | None = None) -> None:
        label = f"{tool} failed" if tool else self.default_message
        super().__init__(label)
        self.detail = detail
        self.tool = tool

    def public_message(self) -> str:
        """Return the failure text with path-shaped fragments removed."""
        return f"{self}: {sanitize_error(self.detail)}"
