"""Shared test fixtures for fsguardian."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from fsguardian.config import SandboxConfig, ToolConfig
from fsguardian.infra.audit_log import OperationOutcome
from fsguardian.infra.mediator import CommandMediator
from fsguardian.infra.runner import RunResult
from fsguardian.security.path_guard import PathGuard

Handler = Callable[[str, list[str]], RunResult]


def ok(stdout: str = "") -> RunResult:
    return RunResult(stdout=stdout, stderr="", exit_code=0)


def failed(stderr: str, exit_code: int = 1) -> RunResult:
    return RunResult(stdout="", stderr=stderr, exit_code=exit_code)


class FakeRunner:
    """Records argument vectors and answers through a handler."""

    def __init__(self, handler: Handler | None = None) -> None:
        self.handler = handler or (lambda _binary, _args: ok())
        self.calls: list[tuple[str, list[str]]] = []

    async def run(
        self,
        binary: str,
        args: Sequence[str],
        *,
        max_output_bytes: int,
        timeout: float,
    ) -> RunResult:
        argv = [str(arg) for arg in args]
        self.calls.append((binary, argv))
        return self.handler(binary, argv)


class MemoryAuditLog:
    """Keeps audited outcomes in call order."""

    def __init__(self) -> None:
        self.outcomes: list[OperationOutcome] = []

    def record(
        self,
        operation: str,
        target: str,
        attribute: str | None,
        success: bool,
    ) -> None:
        self.outcomes.append(OperationOutcome(operation, target, attribute, success))


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every test from a directory outside the sandbox root."""
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def sandbox_root(tmp_path: Path) -> str:
    """Existing sandbox root directory, symlink-free."""
    root = tmp_path.resolve() / "allowed"
    root.mkdir()
    return str(root)


@pytest.fixture()
def guard(sandbox_root: str) -> PathGuard:
    return PathGuard(SandboxConfig(roots=(sandbox_root,)))


@pytest.fixture()
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture()
def mediator(guard: PathGuard, runner: FakeRunner) -> CommandMediator:
    return CommandMediator(guard, ToolConfig(), runner)


@pytest.fixture()
def audit() -> MemoryAuditLog:
    return MemoryAuditLog()
