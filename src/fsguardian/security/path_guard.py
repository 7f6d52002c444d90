"""Allowlist-based path validation for sandboxed metadata operations.

``PathGuard.validate`` is the only producer of :class:`ValidatedPath`. Every
step before the final root comparison only normalizes the candidate; the root
comparison alone decides acceptance.

Dependencies: config, security/errors
Wired in: infra/mediator.py, services/xattr_service.py, services/spotlight_service.py
"""

from __future__ import annotations

import logging
import os
import unicodedata
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import unquote

from fsguardian.config import SandboxConfig
from fsguardian.security.errors import (
    GuardianError,
    InvalidInput,
    OutsideSandbox,
    SymlinkRejected,
)

_log = logging.getLogger(__name__)

_MAX_DECODE_ROUNDS = 10
_MINT = object()


class ValidatedPath(str):
    """An absolute, normalized, null-free path inside a sandbox root.

    Only :meth:`PathGuard.validate` can create one.
    """

    __slots__ = ()

    def __new__(cls, value: str, *, _mint: object = None) -> ValidatedPath:
        if _mint is not _MINT:
            raise TypeError("ValidatedPath is created by PathGuard.validate()")
        return super().__new__(cls, value)


def _canonical_text(value: str) -> str:
    return unicodedata.normalize("NFC", value.replace("\0", ""))


def _decode_once(value: str) -> str:
    """Percent-decode one layer; raises ``UnicodeDecodeError`` on bad UTF-8."""
    return _canonical_text(unquote(value, errors="strict"))


def _percent_decode(value: str) -> str:
    current = value
    for _ in range(_MAX_DECODE_ROUNDS):
        try:
            decoded = _decode_once(current)
        except UnicodeDecodeError:
            break
        if decoded == current:
            break
        current = decoded
    return current


def _is_fixed_point(value: str) -> bool:
    try:
        return _decode_once(value) == value
    except UnicodeDecodeError:
        return True


def _absolute(value: str) -> str:
    normalized = os.path.normpath(os.path.abspath(value))
    # POSIX normpath preserves exactly two leading slashes
    if normalized.startswith("//"):
        normalized = os.sep + normalized.lstrip("/")
    return normalized


def _root_prefix(root: str) -> str:
    return root if root.endswith(os.sep) else root + os.sep


@dataclass(frozen=True)
class PathGuard:
    """Validate candidate paths against the configured sandbox roots."""

    config: SandboxConfig

    @property
    def roots(self) -> tuple[str, ...]:
        return self.config.roots

    def validate(self, raw: object) -> ValidatedPath:
        """Normalize *raw* and require it to sit inside a sandbox root.

        Raises ``InvalidInput``, ``SymlinkRejected`` or ``OutsideSandbox``.
        """
        if not isinstance(raw, str) or not raw:
            raise InvalidInput()

        candidate = _canonical_text(raw)
        candidate = _percent_decode(candidate)
        if not candidate:
            raise InvalidInput()

        normalized = _absolute(candidate)
        if os.path.islink(normalized):
            _log.warning("Rejected symlink path")
            raise SymlinkRejected()

        root = self._matching_root(normalized)
        if root is None:
            _log.warning("Rejected path outside sandbox roots")
            raise OutsideSandbox()

        # Re-running validation on the result must not decode anything further
        if not _is_fixed_point(normalized):
            _log.warning("Rejected path with unresolved percent-encoding")
            raise InvalidInput("Invalid path: ambiguous encoding")

        if self.config.reject_intermediate_symlinks:
            self._reject_intermediate_symlinks(root, normalized)

        return ValidatedPath(normalized, _mint=_MINT)

    def is_allowed(self, raw: object) -> bool:
        """Return whether *raw* validates; never raises."""
        try:
            self.validate(raw)
        except GuardianError:
            return False
        return True

    def filter_allowed(self, paths: Iterable[object]) -> list[ValidatedPath]:
        """Validate each path, dropping failures and keeping input order."""
        allowed: list[ValidatedPath] = []
        for path in paths:
            try:
                allowed.append(self.validate(path))
            except GuardianError:
                continue
        return allowed

    def _matching_root(self, normalized: str) -> str | None:
        for root in self.config.roots:
            if normalized == root or normalized.startswith(_root_prefix(root)):
                return root
        return None

    def _reject_intermediate_symlinks(self, root: str, normalized: str) -> None:
        relative = normalized[len(_root_prefix(root)) :] if normalized != root else ""
        current = root
        for part in [p for p in relative.split(os.sep) if p][:-1]:
            current = os.path.join(current, part)
            if os.path.islink(current):
                _log.warning("Rejected path through symlinked directory")
                raise SymlinkRejected()
