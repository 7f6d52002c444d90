"""Sandbox enforcement: path and attribute-name validation, error scrubbing."""

from fsguardian.security.attribute_guard import AttributeToken, require_token, sanitize_tokens
from fsguardian.security.error_sanitizer import sanitize_error
from fsguardian.security.errors import (
    GuardianError,
    InvalidInput,
    OutputTooLarge,
    OutsideSandbox,
    SymlinkRejected,
    ToolFailure,
)
from fsguardian.security.path_guard import PathGuard, ValidatedPath

__all__ = [
    "AttributeToken",
    "GuardianError",
    "InvalidInput",
    "OutputTooLarge",
    "OutsideSandbox",
    "PathGuard",
    "SymlinkRejected",
    "ToolFailure",
    "ValidatedPath",
    "require_token",
    "sanitize_error",
    "sanitize_tokens",
]
