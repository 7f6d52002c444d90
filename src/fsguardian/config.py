"""Deployment configuration: sandbox roots and external tool limits.

The sandbox root set is loaded once at startup and is immutable afterwards.
Configs come from a ``fsguardian.toml`` file, optionally overridden by
environment variables (a ``.env`` file is honoured through ``python-dotenv``).

Example::

    [sandbox]
    roots = ["/Users/me/Documents/Projects", "/Users/me/Documents/Inbox"]
    reject_intermediate_symlinks = false

    [tools]
    max_output_bytes = 10485760
    timeout_seconds = 30

Dependencies: python-dotenv
Wired in: security/path_guard.py, infra/mediator.py, infra/runner.py
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

from dotenv import load_dotenv

CONFIG_ENV_VAR = "FSGUARDIAN_CONFIG"
ROOTS_ENV_VAR = "FSGUARDIAN_ROOTS"
TIMEOUT_ENV_VAR = "FSGUARDIAN_TOOL_TIMEOUT"

_DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024
_DEFAULT_TIMEOUT_SECONDS = 30.0


def _normalize_root(root: str) -> str:
    if not isinstance(root, str) or not root:
        raise TypeError("Sandbox roots must be non-empty strings.")
    if "\0" in root:
        raise ValueError("Sandbox roots must not contain null characters.")
    if not os.path.isabs(root):
        raise ValueError(f"Sandbox root must be an absolute path: {root!r}")
    normalized = os.path.normpath(root)
    # normpath keeps a leading '//' on POSIX
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def _dedupe(roots: tuple[str, ...]) -> tuple[str, ...]:
    deduped: list[str] = []
    for root in roots:
        if root not in deduped:
            deduped.append(root)
    return tuple(deduped)


@dataclass(frozen=True)
class SandboxConfig:
    """Ordered, immutable set of permitted root directories."""

    roots: tuple[str, ...]
    reject_intermediate_symlinks: bool = False
    """When ``True``, every existing path component below the matched root is
    checked for symlinks, not only the final one."""

    def __post_init__(self) -> None:
        if isinstance(self.roots, str):
            raise TypeError("roots must be a sequence of paths, not a single string.")
        normalized = _dedupe(tuple(_normalize_root(root) for root in self.roots))
        if not normalized:
            raise ValueError("At least one sandbox root is required.")
        object.__setattr__(self, "roots", normalized)


@dataclass(frozen=True)
class ToolConfig:
    """Limits applied to every external tool invocation."""

    max_output_bytes: int = _DEFAULT_MAX_OUTPUT_BYTES
    timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if self.max_output_bytes <= 0:
            raise ValueError("max_output_bytes must be > 0.")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0.")


@dataclass(frozen=True)
class GuardianConfig:
    """Complete process-wide configuration."""

    sandbox: SandboxConfig
    tools: ToolConfig = field(default_factory=ToolConfig)


def _section(data: dict[str, object], name: str) -> dict[str, object]:
    raw = data.get(name, {})
    if not isinstance(raw, dict):
        msg = f"'[{name}]' must be a table."
        raise TypeError(msg)
    return cast(dict[str, object], raw)


def _roots_from_env(raw: str) -> tuple[str, ...]:
    return tuple(part for part in raw.split(os.pathsep) if part)


def load_config(config_path: Path | None = None) -> GuardianConfig:
    """Load configuration from TOML and environment overrides.

    *config_path* defaults to ``$FSGUARDIAN_CONFIG``. ``$FSGUARDIAN_ROOTS``
    (``os.pathsep``-separated) replaces the file's roots and
    ``$FSGUARDIAN_TOOL_TIMEOUT`` replaces the tool timeout.
    """
    load_dotenv()
    if config_path is None:
        env_path = os.getenv(CONFIG_ENV_VAR, "")
        config_path = Path(env_path) if env_path else None

    data: dict[str, object] = {}
    if config_path is not None:
        with config_path.open("rb") as fh:
            data = tomllib.load(fh)

    sandbox_raw = _section(data, "sandbox")
    tools_raw = _section(data, "tools")

    raw_roots = sandbox_raw.get("roots", [])
    if not isinstance(raw_roots, list):
        msg = "'sandbox.roots' must be a list."
        raise TypeError(msg)
    roots = tuple(cast(list[str], raw_roots))
    env_roots = os.getenv(ROOTS_ENV_VAR, "")
    if env_roots:
        roots = _roots_from_env(env_roots)

    sandbox = SandboxConfig(
        roots=roots,
        reject_intermediate_symlinks=bool(sandbox_raw.get("reject_intermediate_symlinks", False)),
    )

    timeout = float(str(tools_raw.get("timeout_seconds", _DEFAULT_TIMEOUT_SECONDS)))
    env_timeout = os.getenv(TIMEOUT_ENV_VAR, "")
    if env_timeout:
        timeout = float(env_timeout)
    tools = ToolConfig(
        max_output_bytes=int(str(tools_raw.get("max_output_bytes", _DEFAULT_MAX_OUTPUT_BYTES))),
        timeout_seconds=timeout,
    )
    return GuardianConfig(sandbox=sandbox, tools=tools)
