"""Process runner used by the command mediator.

``CommandRunner`` is the only seam through which external binaries run, so
validation and decoding can be tested with a fake runner.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from fsguardian.security.errors import OutputTooLarge, ToolFailure

_log = logging.getLogger(__name__)

_ENV_WHITELIST: frozenset[str] = frozenset({"PATH", "HOME", "USER", "LANG", "LC_ALL", "TMPDIR"})
_READ_CHUNK_BYTES = 64 * 1024


@dataclass(frozen=True)
class RunResult:
    """Captured outcome of one external process."""

    stdout: str
    stderr: str
    exit_code: int


class CommandRunner(Protocol):
    async def run(
        self,
        binary: str,
        args: Sequence[str],
        *,
        max_output_bytes: int,
        timeout: float,
    ) -> RunResult: ...


def _safe_env() -> dict[str, str]:
    return {k: v for k, v in os.environ.items() if k in _ENV_WHITELIST}


async def _read_capped(stream: asyncio.StreamReader, limit: int) -> bytes:
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await stream.read(_READ_CHUNK_BYTES)
        if not chunk:
            return b"".join(chunks)
        total += len(chunk)
        if total > limit:
            raise OutputTooLarge()
        chunks.append(chunk)


async def _read_truncated(stream: asyncio.StreamReader, limit: int) -> bytes:
    """Drain *stream* to EOF, keeping at most *limit* bytes."""
    kept = bytearray()
    while True:
        chunk = await stream.read(_READ_CHUNK_BYTES)
        if not chunk:
            return bytes(kept)
        if len(kept) < limit:
            kept.extend(chunk[: limit - len(kept)])


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    with contextlib.suppress(ProcessLookupError):
        proc.kill()
    await proc.wait()


class SubprocessRunner:
    """Run binaries directly via ``execve``; no shell is ever involved."""

    async def run(
        self,
        binary: str,
        args: Sequence[str],
        *,
        max_output_bytes: int,
        timeout: float,
    ) -> RunResult:
        argv = [str(part) for part in args]
        try:
            proc = await asyncio.create_subprocess_exec(
                binary,
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=_safe_env(),
            )
        except OSError as exc:
            raise ToolFailure(str(exc), tool=binary) from exc

        if proc.stdout is None or proc.stderr is None:
            await _terminate(proc)
            raise ToolFailure("output pipes unavailable", tool=binary)
        readers = [
            asyncio.ensure_future(_read_capped(proc.stdout, max_output_bytes)),
            asyncio.ensure_future(_read_truncated(proc.stderr, max_output_bytes)),
        ]

        async def collect() -> tuple[bytes, bytes, int]:
            stdout, stderr = await asyncio.gather(*readers)
            return stdout, stderr, await proc.wait()

        try:
            stdout_bytes, stderr_bytes, exit_code = await asyncio.wait_for(
                collect(), timeout=timeout
            )
        except TimeoutError as exc:
            _log.warning("%s timed out after %.1fs", binary, timeout)
            raise ToolFailure(f"timed out after {timeout:g}s", tool=binary) from exc
        finally:
            for reader in readers:
                reader.cancel()
            await _terminate(proc)

        return RunResult(
            stdout=stdout_bytes.decode("utf-8", errors="replace"),
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
            exit_code=exit_code,
        )
