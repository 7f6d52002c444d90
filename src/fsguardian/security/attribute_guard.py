"""Identifier validation for attribute names passed to external tools.

Attribute names become discrete process arguments, never shell text, but the
tools' own attribute-name syntax is still off limits to callers. Only plain
identifiers survive.

Dependencies: security/errors
Wired in: infra/mediator.py, services/xattr_service.py, services/spotlight_service.py
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from fsguardian.security.errors import InvalidInput

_log = logging.getLogger(__name__)

_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_MINT = object()


class AttributeToken(str):
    """An attribute name known to match the identifier grammar.

    Instances come only from :func:`sanitize_tokens` or :func:`require_token`.
    """

    __slots__ = ()

    def __new__(cls, value: str, *, _mint: object = None) -> AttributeToken:
        if _mint is not _MINT:
            raise TypeError("AttributeToken is created by sanitize_tokens() or require_token()")
        return super().__new__(cls, value)


def is_identifier(value: object) -> bool:
    """Return whether *value* is a non-empty string in the identifier grammar."""
    return isinstance(value, str) and _IDENTIFIER_PATTERN.fullmatch(value) is not None


def require_token(value: object) -> AttributeToken:
    """Return *value* as an :class:`AttributeToken` or raise ``InvalidInput``."""
    if not is_identifier(value):
        raise InvalidInput("Invalid attribute name")
    return AttributeToken(value, _mint=_MINT)  # type: ignore[arg-type]


def sanitize_tokens(tokens: Iterable[object]) -> list[AttributeToken]:
    """Keep the tokens matching the identifier grammar, in input order.

    Rejected tokens are dropped silently. Their content is not logged. A
    single ``str`` is one token, not a sequence of characters.
    """
    if isinstance(tokens, str):
        tokens = [tokens]
    kept: list[AttributeToken] = []
    rejected = 0
    for token in tokens:
        if is_identifier(token):
            kept.append(AttributeToken(token, _mint=_MINT))  # type: ignore[arg-type]
        else:
            rejected += 1
    if rejected:
        _log.warning("Rejected %d invalid attribute name(s)", rejected)
    return kept
