"""Allow-listed invocation of the macOS metadata tools.

Every tool maps to one fixed binary and one fixed argument layout. Arguments
must already be typed: :class:`ValidatedPath`, :class:`AttributeToken`, or
:class:`OpaqueText` for free-text values. A plain ``str`` is refused, so no
unchecked caller input can reach an argument vector. Nothing is ever passed
through a shell.

Dependencies: config, security/*, infra/runner
Wired in: services/xattr_service.py, services/spotlight_service.py
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from fsguardian.config import ToolConfig
from fsguardian.infra.runner import CommandRunner, SubprocessRunner
from fsguardian.security.attribute_guard import AttributeToken
from fsguardian.security.error_sanitizer import sanitize_error
from fsguardian.security.errors import InvalidInput, OutputTooLarge, ToolFailure
from fsguardian.security.path_guard import PathGuard, ValidatedPath

_log = logging.getLogger(__name__)

_MINT = object()

_NO_SUCH_XATTR = re.compile(r"No such xattr", re.IGNORECASE)


class OpaqueText(str):
    """A free-text argument (attribute value or search query).

    Never shell-interpreted; only checked to be a string without null
    characters. Create with :func:`opaque_text`.
    """

    __slots__ = ()

    def __new__(cls, value: str, *, _mint: object = None) -> OpaqueText:
        if _mint is not _MINT:
            raise TypeError("OpaqueText is created by opaque_text()")
        return super().__new__(cls, value)


def opaque_text(value: object) -> OpaqueText:
    """Wrap *value* as an :class:`OpaqueText` or raise ``InvalidInput``."""
    if not isinstance(value, str) or "\0" in value:
        raise InvalidInput("Invalid value: must be a string without null characters")
    return OpaqueText(value, _mint=_MINT)


class Tool(StrEnum):
    """The complete set of external operations."""

    LIST_ATTRS = "list-attrs"
    GET_ATTR = "get-attr"
    SET_ATTR = "set-attr"
    DELETE_ATTR = "delete-attr"
    SEARCH = "search"
    REINDEX = "reindex"
    GET_METADATA = "get-metadata"


@dataclass(frozen=True)
class _ToolSpec:
    binary: str
    benign: re.Pattern[str] | None = None


_TOOL_SPECS: dict[Tool, _ToolSpec] = {
    Tool.LIST_ATTRS: _ToolSpec("xattr", _NO_SUCH_XATTR),
    Tool.GET_ATTR: _ToolSpec("xattr", _NO_SUCH_XATTR),
    Tool.SET_ATTR: _ToolSpec("xattr"),
    Tool.DELETE_ATTR: _ToolSpec("xattr", _NO_SUCH_XATTR),
    Tool.SEARCH: _ToolSpec("mdfind"),
    Tool.REINDEX: _ToolSpec("mdimport"),
    Tool.GET_METADATA: _ToolSpec("mdls"),
}


def _bad_arguments(tool: Tool) -> InvalidInput:
    return InvalidInput(f"Invalid arguments for {tool}")


class CommandMediator:
    """Compose validated inputs into allow-listed tool invocations."""

    def __init__(
        self,
        guard: PathGuard,
        config: ToolConfig | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self._guard = guard
        self._config = config or ToolConfig()
        self._runner: CommandRunner = runner or SubprocessRunner()

    @property
    def guard(self) -> PathGuard:
        return self._guard

    async def invoke(
        self,
        tool: Tool | str,
        target: ValidatedPath | None,
        args: Sequence[object] = (),
    ) -> str:
        """Run *tool* on *target* and return its standard output.

        A known "nothing found" failure returns ``""``. Raises ``InvalidInput``
        for malformed arguments, ``OutputTooLarge`` past the output cap and
        ``ToolFailure`` for any other unsuccessful exit.
        """
        try:
            tool = Tool(tool)
        except ValueError as exc:
            raise InvalidInput("Unknown tool") from exc
        spec = _TOOL_SPECS[tool]
        argv = self._build_argv(tool, target, list(args))

        result = await self._runner.run(
            spec.binary,
            argv,
            max_output_bytes=self._config.max_output_bytes,
            timeout=self._config.timeout_seconds,
        )
        # Decoded length never exceeds the raw byte count
        if len(result.stdout) > self._config.max_output_bytes:
            raise OutputTooLarge()
        if result.exit_code == 0:
            return result.stdout

        detail = result.stderr.strip() or result.stdout.strip() or f"exit code {result.exit_code}"
        if spec.benign is not None and spec.benign.search(detail):
            return ""
        _log.warning("%s exited with %d: %s", spec.binary, result.exit_code, sanitize_error(detail))
        raise ToolFailure(detail, tool=str(tool))

    def _path(self, tool: Tool, value: object) -> ValidatedPath:
        if not isinstance(value, ValidatedPath):
            raise _bad_arguments(tool)
        # Re-check right before use; validation is idempotent on its own output
        return self._guard.validate(value)

    def _build_argv(self, tool: Tool, target: ValidatedPath | None, args: list[object]) -> list[str]:
        if tool is Tool.SEARCH:
            return self._search_argv(target, args)
        path = self._path(tool, target)

        if tool in (Tool.LIST_ATTRS, Tool.REINDEX):
            if args:
                raise _bad_arguments(tool)
            return [path]

        if tool in (Tool.GET_ATTR, Tool.DELETE_ATTR):
            if len(args) != 1 or not isinstance(args[0], AttributeToken):
                raise _bad_arguments(tool)
            flag = "-p" if tool is Tool.GET_ATTR else "-d"
            return [flag, args[0], path]

        if tool is Tool.SET_ATTR:
            if (
                len(args) != 2
                or not isinstance(args[0], AttributeToken)
                or not isinstance(args[1], OpaqueText)
            ):
                raise _bad_arguments(tool)
            return ["-w", args[0], args[1], path]

        # GET_METADATA
        if not args or not all(isinstance(arg, AttributeToken) for arg in args):
            raise _bad_arguments(tool)
        argv: list[str] = []
        for name in args:
            argv.extend(["-name", str(name)])
        argv.append(path)
        return argv

    def _search_argv(self, target: ValidatedPath | None, args: list[object]) -> list[str]:
        if not args or not isinstance(args[-1], OpaqueText):
            raise _bad_arguments(Tool.SEARCH)
        query = args[-1]
        # mdfind would read a leading '-' as an option
        if not query.strip() or query.lstrip().startswith("-"):
            raise InvalidInput("Invalid search query")
        scopes = ([target] if target is not None else []) + args[:-1]
        argv: list[str] = []
        for scope in scopes:
            argv.extend(["-onlyin", self._path(Tool.SEARCH, scope)])
        argv.append(query)
        return argv
