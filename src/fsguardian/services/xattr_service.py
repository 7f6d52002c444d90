"""Extended-attribute operations on sandboxed files via ``xattr``.

Batch operations fan out one invocation per attribute and run them
concurrently. Each item reports its own outcome; results keep input order.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any

from fsguardian.codec import DecodedValue, decode_attribute_value
from fsguardian.infra.audit_log import AuditLog, LoggingAuditLog
from fsguardian.infra.mediator import CommandMediator, Tool, opaque_text
from fsguardian.models import AttributeFailure, ListXattrResult, SetXattrResult, XattrResult
from fsguardian.security.attribute_guard import AttributeToken, is_identifier, require_token
from fsguardian.security.error_sanitizer import sanitize_error
from fsguardian.security.errors import GuardianError, ToolFailure
from fsguardian.security.path_guard import ValidatedPath

_log = logging.getLogger(__name__)

_INVALID_NAME = "Invalid attribute name"
_REJECTED_NAME = "[rejected]"
_ALREADY_EXISTS = "Attribute already exists"
_INVALID_VALUE = "Invalid attribute value"

AttributeUpdate = str | int | float | bool | Mapping[str, Any] | list[Any] | None


def _public_error(exc: GuardianError) -> str:
    if isinstance(exc, ToolFailure):
        return exc.public_message()
    return sanitize_error(str(exc))


def _encode_value(value: AttributeUpdate) -> str:
    if isinstance(value, Mapping | list | bool):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


class XattrService:
    """List, read and write extended attributes inside the sandbox."""

    def __init__(self, mediator: CommandMediator, audit: AuditLog | None = None) -> None:
        self._mediator = mediator
        self._audit: AuditLog = audit or LoggingAuditLog()

    async def _list_names(self, path: ValidatedPath) -> list[str]:
        stdout = await self._mediator.invoke(Tool.LIST_ATTRS, path)
        return [line.strip() for line in stdout.splitlines() if line.strip()]

    async def list_xattrs(self, raw_path: object) -> ListXattrResult:
        """Return the attribute names on *raw_path*; none is an empty list."""
        path = self._mediator.guard.validate(raw_path)
        try:
            names = await self._list_names(path)
        except GuardianError:
            self._audit.record("list", path, None, False)
            raise
        self._audit.record("list", path, None, True)
        return ListXattrResult(path=path, attributes=names, count=len(names))

    async def _read_one(
        self, path: ValidatedPath, name: AttributeToken
    ) -> tuple[str, DecodedValue | None]:
        try:
            stdout = await self._mediator.invoke(Tool.GET_ATTR, path, [name])
        except GuardianError as exc:
            _log.warning("Failed to read attribute %s: %s", name, _public_error(exc))
            self._audit.record("get", path, name, False)
            return name, None
        self._audit.record("get", path, name, True)
        return name, decode_attribute_value(stdout.strip())

    async def get_xattrs(self, raw_path: object, attribute: str | None = None) -> XattrResult:
        """Return decoded values for every readable attribute.

        With *attribute*, only that name is read. Names that are not plain
        identifiers are not requested from the tool.
        """
        path = self._mediator.guard.validate(raw_path)
        if attribute is not None:
            require_token(attribute)

        try:
            listed = await self._list_names(path)
        except GuardianError:
            self._audit.record("get", path, attribute, False)
            raise

        wanted = [name for name in listed if attribute is None or name == attribute]
        readable = [require_token(name) for name in wanted if is_identifier(name)]
        if len(readable) != len(wanted):
            _log.info("Skipped %d attribute(s) with non-identifier names", len(wanted) - len(readable))

        reads = await asyncio.gather(*(self._read_one(path, name) for name in readable))
        values = {name: decoded.as_dict() for name, decoded in reads if decoded is not None}
        return XattrResult(path=path, attributes=values, count=len(values))

    async def _apply_one(
        self,
        path: ValidatedPath,
        name: str,
        value: AttributeUpdate,
        existing: frozenset[str],
    ) -> tuple[str, str, str | None]:
        """Return ``(name, outcome, error)`` where outcome is set/deleted/failed."""
        operation = "delete" if value is None else "set"
        try:
            token = require_token(name)
        except GuardianError:
            self._audit.record(operation, path, None, False)
            return _REJECTED_NAME, "failed", _INVALID_NAME

        if value is not None and token in existing:
            return token, "failed", _ALREADY_EXISTS

        encoded: str | None = None
        if value is not None:
            try:
                encoded = _encode_value(value)
            except (TypeError, ValueError):
                self._audit.record(operation, path, token, False)
                return token, "failed", _INVALID_VALUE

        try:
            if encoded is None:
                await self._mediator.invoke(Tool.DELETE_ATTR, path, [token])
            else:
                await self._mediator.invoke(Tool.SET_ATTR, path, [token, opaque_text(encoded)])
        except GuardianError as exc:
            self._audit.record(operation, path, token, False)
            return token, "failed", _public_error(exc)

        self._audit.record(operation, path, token, True)
        return token, "deleted" if value is None else "set", None

    async def set_xattrs(
        self,
        raw_path: object,
        attrs: Mapping[str, AttributeUpdate],
        create_only: bool = False,
    ) -> SetXattrResult:
        """Write or delete (``None`` value) several attributes at once.

        With *create_only*, names that already exist are reported as failed.
        """
        path = self._mediator.guard.validate(raw_path)
        existing: frozenset[str] = frozenset()
        if create_only:
            existing = frozenset(await self._list_names(path))

        outcomes = await asyncio.gather(
            *(self._apply_one(path, name, value, existing) for name, value in attrs.items())
        )

        result = SetXattrResult(path=path)
        for name, outcome, error in outcomes:
            if outcome == "set":
                result.set.append(name)
            elif outcome == "deleted":
                result.deleted.append(name)
            else:
                result.failed.append(AttributeFailure(name=name, error=error or _INVALID_NAME))
        return result
