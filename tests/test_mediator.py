"""Tests for allow-listed tool invocation."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FakeRunner, failed, ok

from fsguardian.config import ToolConfig
from fsguardian.infra.mediator import CommandMediator, Tool, opaque_text
from fsguardian.security.attribute_guard import require_token
from fsguardian.security.errors import (
    InvalidInput,
    OutputTooLarge,
    SymlinkRejected,
    ToolFailure,
)
from fsguardian.security.path_guard import PathGuard


@pytest.mark.asyncio()
async def test_list_attrs_passes_only_the_path(
    mediator: CommandMediator, runner: FakeRunner, guard: PathGuard, sandbox_root: str
) -> None:
    path = guard.validate(f"{sandbox_root}/doc.md")
    runner.handler = lambda _b, _a: ok("kMDItemUserTags\nkMDItemWhereFroms\n")

    stdout = await mediator.invoke(Tool.LIST_ATTRS, path)

    assert stdout == "kMDItemUserTags\nkMDItemWhereFroms\n"
    assert runner.calls == [("xattr", [path])]


@pytest.mark.asyncio()
async def test_attribute_tools_build_fixed_argument_layouts(
    mediator: CommandMediator, runner: FakeRunner, guard: PathGuard, sandbox_root: str
) -> None:
    path = guard.validate(f"{sandbox_root}/doc.md")
    name = require_token("myTag")

    await mediator.invoke(Tool.GET_ATTR, path, [name])
    await mediator.invoke(Tool.SET_ATTR, path, [name, opaque_text("$(reboot); rm -rf /")])
    await mediator.invoke(Tool.DELETE_ATTR, path, [name])
    await mediator.invoke(Tool.REINDEX, path)

    assert runner.calls == [
        ("xattr", ["-p", "myTag", path]),
        ("xattr", ["-w", "myTag", "$(reboot); rm -rf /", path]),
        ("xattr", ["-d", "myTag", path]),
        ("mdimport", [path]),
    ]


@pytest.mark.asyncio()
async def test_get_metadata_names_each_attribute(
    mediator: CommandMediator, runner: FakeRunner, guard: PathGuard, sandbox_root: str
) -> None:
    path = guard.validate(f"{sandbox_root}/doc.md")
    names = [require_token("kMDItemDisplayName"), require_token("kMDItemFSSize")]

    await mediator.invoke(Tool.GET_METADATA, path, names)

    assert runner.calls == [
        ("mdls", ["-name", "kMDItemDisplayName", "-name", "kMDItemFSSize", path])
    ]


@pytest.mark.asyncio()
async def test_search_adds_scopes_before_query(
    mediator: CommandMediator, runner: FakeRunner, guard: PathGuard, sandbox_root: str
) -> None:
    first = guard.validate(f"{sandbox_root}/a")
    second = guard.validate(f"{sandbox_root}/b")

    await mediator.invoke(Tool.SEARCH, None, [first, second, opaque_text('kMDItemUserTags == "Red"')])

    assert runner.calls == [
        ("mdfind", ["-onlyin", first, "-onlyin", second, 'kMDItemUserTags == "Red"'])
    ]


@pytest.mark.asyncio()
@pytest.mark.parametrize("query", ["", "   ", "-0", " -live"])
async def test_search_rejects_option_like_or_empty_queries(
    mediator: CommandMediator, runner: FakeRunner, query: str
) -> None:
    with pytest.raises(InvalidInput, match="Invalid search query"):
        await mediator.invoke(Tool.SEARCH, None, [opaque_text(query)])
    assert runner.calls == []


@pytest.mark.asyncio()
async def test_plain_strings_are_refused(
    mediator: CommandMediator, runner: FakeRunner, guard: PathGuard, sandbox_root: str
) -> None:
    path = guard.validate(f"{sandbox_root}/doc.md")

    with pytest.raises(InvalidInput):
        await mediator.invoke(Tool.LIST_ATTRS, f"{sandbox_root}/doc.md")  # type: ignore[arg-type]
    with pytest.raises(InvalidInput):
        await mediator.invoke(Tool.GET_ATTR, path, ["myTag"])
    with pytest.raises(InvalidInput):
        await mediator.invoke(Tool.SET_ATTR, path, [require_token("myTag"), "raw value"])
    with pytest.raises(InvalidInput):
        await mediator.invoke(Tool.SEARCH, None, ["raw query"])
    with pytest.raises(InvalidInput):
        await mediator.invoke(Tool.LIST_ATTRS, path, [require_token("extra")])
    assert runner.calls == []


@pytest.mark.asyncio()
async def test_unknown_tool_is_refused(
    mediator: CommandMediator, guard: PathGuard, sandbox_root: str
) -> None:
    path = guard.validate(f"{sandbox_root}/doc.md")
    with pytest.raises(InvalidInput, match="Unknown tool"):
        await mediator.invoke("rm", path)


@pytest.mark.asyncio()
async def test_target_is_rechecked_before_running(
    mediator: CommandMediator, runner: FakeRunner, guard: PathGuard, sandbox_root: str, tmp_path: Path
) -> None:
    path = guard.validate(f"{sandbox_root}/swapped.txt")
    Path(path).symlink_to(tmp_path / "elsewhere.txt")

    with pytest.raises(SymlinkRejected):
        await mediator.invoke(Tool.LIST_ATTRS, path)
    assert runner.calls == []


@pytest.mark.asyncio()
async def test_missing_attribute_is_empty_success(
    mediator: CommandMediator, runner: FakeRunner, guard: PathGuard, sandbox_root: str
) -> None:
    path = guard.validate(f"{sandbox_root}/doc.md")
    runner.handler = lambda _b, _a: failed(f"xattr: {path}: No such xattr: myTag")

    assert await mediator.invoke(Tool.GET_ATTR, path, [require_token("myTag")]) == ""


@pytest.mark.asyncio()
async def test_other_failures_raise_tool_failure(
    mediator: CommandMediator, runner: FakeRunner, guard: PathGuard, sandbox_root: str
) -> None:
    path = guard.validate(f"{sandbox_root}/doc.md")
    runner.handler = lambda _b, _a: failed(f"xattr: [Errno 1] Operation not permitted: '{path}'")

    with pytest.raises(ToolFailure) as exc_info:
        await mediator.invoke(Tool.SET_ATTR, path, [require_token("myTag"), opaque_text("v")])

    assert sandbox_root in exc_info.value.detail
    assert sandbox_root not in exc_info.value.public_message()
    assert sandbox_root not in str(exc_info.value)


@pytest.mark.asyncio()
async def test_failure_without_output_reports_exit_code(
    mediator: CommandMediator, runner: FakeRunner, guard: PathGuard, sandbox_root: str
) -> None:
    path = guard.validate(f"{sandbox_root}/doc.md")
    runner.handler = lambda _b, _a: failed("", exit_code=3)

    with pytest.raises(ToolFailure) as exc_info:
        await mediator.invoke(Tool.REINDEX, path)
    assert exc_info.value.detail == "exit code 3"


@pytest.mark.asyncio()
async def test_output_over_cap_is_rejected(
    guard: PathGuard, runner: FakeRunner, sandbox_root: str
) -> None:
    mediator = CommandMediator(guard, ToolConfig(max_output_bytes=16), runner)
    path = guard.validate(f"{sandbox_root}/doc.md")
    runner.handler = lambda _b, _a: ok("x" * 17)

    with pytest.raises(OutputTooLarge):
        await mediator.invoke(Tool.LIST_ATTRS, path)


@pytest.mark.asyncio()
async def test_replacement_characters_count_once_against_the_cap(
    guard: PathGuard, runner: FakeRunner, sandbox_root: str
) -> None:
    mediator = CommandMediator(guard, ToolConfig(max_output_bytes=16), runner)
    path = guard.validate(f"{sandbox_root}/doc.md")
    runner.handler = lambda _b, _a: ok("\ufffd" * 16)

    assert await mediator.invoke(Tool.LIST_ATTRS, path) == "\ufffd" * 16


def test_opaque_text_rejects_null_and_non_strings() -> None:
    assert opaque_text("value") == "value"
    with pytest.raises(InvalidInput):
        opaque_text("a\0b")
    with pytest.raises(InvalidInput):
        opaque_text(42)
