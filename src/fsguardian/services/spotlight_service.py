"""Spotlight search, metadata and reindexing via ``mdfind``/``mdls``/``mdimport``.

Search hits are re-validated against the sandbox before anything about them
is returned, since the index covers the whole volume.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from fsguardian.codec import MetadataValue, parse_metadata_dump
from fsguardian.infra.audit_log import AuditLog, LoggingAuditLog
from fsguardian.infra.mediator import CommandMediator, Tool, opaque_text
from fsguardian.models import ReindexResult, SearchOutput, SpotlightResult
from fsguardian.security.attribute_guard import AttributeToken, sanitize_tokens
from fsguardian.security.error_sanitizer import PATH_PLACEHOLDER, sanitize_error
from fsguardian.security.errors import GuardianError, InvalidInput, ToolFailure
from fsguardian.security.path_guard import ValidatedPath

_log = logging.getLogger(__name__)

DEFAULT_LIMIT = 100

_FILE_KINDS: dict[str, str] = {
    "md": "Markdown Document",
    "txt": "Plain Text",
    "pdf": "PDF Document",
    "doc": "Word Document",
    "docx": "Word Document",
    "xls": "Excel Spreadsheet",
    "xlsx": "Excel Spreadsheet",
    "ppt": "PowerPoint",
    "pptx": "PowerPoint",
    "jpg": "JPEG Image",
    "jpeg": "JPEG Image",
    "png": "PNG Image",
    "gif": "GIF Image",
    "mp3": "MP3 Audio",
    "mp4": "MP4 Video",
    "mov": "QuickTime Movie",
    "js": "JavaScript",
    "ts": "TypeScript",
    "json": "JSON",
    "html": "HTML",
    "css": "CSS",
    "py": "Python Script",
    "sh": "Shell Script",
    "zip": "ZIP Archive",
    "gz": "Gzip Archive",
    "tar": "TAR Archive",
}


def file_kind(path: str) -> str:
    """Return a human-readable kind from the file extension."""
    _, ext = os.path.splitext(path)
    return _FILE_KINDS.get(ext.lstrip(".").lower(), "Document")


class SpotlightService:
    """Query and refresh the Spotlight index inside the sandbox."""

    def __init__(self, mediator: CommandMediator, audit: AuditLog | None = None) -> None:
        self._mediator = mediator
        self._audit: AuditLog = audit or LoggingAuditLog()

    async def _metadata(
        self, path: ValidatedPath, tokens: Sequence[AttributeToken]
    ) -> dict[str, MetadataValue]:
        stdout = await self._mediator.invoke(Tool.GET_METADATA, path, tokens)
        parsed = parse_metadata_dump(stdout)
        return {name: parsed[name] for name in tokens if name in parsed}

    async def get_metadata(
        self, raw_path: object, attributes: Iterable[object]
    ) -> dict[str, MetadataValue]:
        """Return the requested Spotlight attributes for one file.

        Invalid attribute names are dropped; if none remain, nothing runs.
        """
        path = self._mediator.guard.validate(raw_path)
        tokens = sanitize_tokens(attributes)
        if not tokens:
            return {}
        try:
            values = await self._metadata(path, tokens)
        except GuardianError:
            self._audit.record("metadata", path, None, False)
            raise
        self._audit.record("metadata", path, None, True)
        return values

    async def _describe(
        self, path: ValidatedPath, tokens: Sequence[AttributeToken]
    ) -> SpotlightResult | None:
        try:
            stats = await asyncio.to_thread(os.stat, path)
        except OSError:
            return None

        result = SpotlightResult(
            path=path,
            name=os.path.basename(path),
            kind=file_kind(path),
            modified=datetime.fromtimestamp(stats.st_mtime, tz=UTC),
            size=stats.st_size,
        )
        if tokens:
            try:
                attrs = await self._metadata(path, tokens)
            except GuardianError:
                _log.info("Metadata unavailable for one search result")
                attrs = {}
            if attrs:
                result.attributes = attrs
        return result

    async def search(
        self,
        query: str,
        scope: Sequence[object] | None = None,
        limit: int = DEFAULT_LIMIT,
        attributes: Iterable[object] | None = None,
    ) -> SearchOutput:
        """Run a Spotlight query and describe the hits inside the sandbox.

        Invalid scope directories are skipped; if a scope was given and none
        of it is valid, nothing is searched.
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidInput("Invalid limit: must be a positive integer")

        scopes: list[ValidatedPath] = []
        for directory in scope or ():
            try:
                scopes.append(self._mediator.guard.validate(directory))
            except GuardianError:
                _log.warning("Skipping invalid scope directory")
        if scope and not scopes:
            return SearchOutput()

        target = ",".join(scopes) or "*"
        try:
            stdout = await self._mediator.invoke(Tool.SEARCH, None, [*scopes, opaque_text(query)])
        except ToolFailure as exc:
            self._audit.record("search", target, None, False)
            raise ToolFailure(sanitize_error(exc.detail), tool=exc.tool) from None
        self._audit.record("search", target, None, True)

        allowed = self._mediator.guard.filter_allowed(
            line.strip() for line in stdout.splitlines() if line.strip()
        )

        truncated = len(allowed) > limit
        tokens = sanitize_tokens(attributes or ())
        described = await asyncio.gather(*(self._describe(path, tokens) for path in allowed[:limit]))
        results = [result for result in described if result is not None]
        return SearchOutput(results=results, count=len(results), truncated=truncated)

    async def reindex(self, raw_path: object) -> ReindexResult:
        """Ask Spotlight to reimport *raw_path*; failures are reported, not raised."""
        try:
            path = self._mediator.guard.validate(raw_path)
        except GuardianError as exc:
            return ReindexResult(
                path=PATH_PLACEHOLDER,
                queued=False,
                message=f"Path validation failed: {exc}",
            )

        try:
            await self._mediator.invoke(Tool.REINDEX, path)
        except ToolFailure as exc:
            self._audit.record("reindex", path, None, False)
            return ReindexResult(
                path=path, queued=False, message=f"Reindex failed: {exc.public_message()}"
            )
        except GuardianError as exc:
            self._audit.record("reindex", path, None, False)
            return ReindexResult(path=path, queued=False, message=f"Reindex failed: {exc}")

        self._audit.record("reindex", path, None, True)
        return ReindexResult(path=path, queued=True, message="Reindex queued successfully")
