"""Tests for attribute-name sanitization."""

from __future__ import annotations

import logging

import pytest

from fsguardian.security.attribute_guard import (
    AttributeToken,
    is_identifier,
    require_token,
    sanitize_tokens,
)
from fsguardian.security.errors import InvalidInput


def test_injection_attempt_is_dropped() -> None:
    tokens = ["kMDItemDisplayName", "kMDItem; rm -rf /", "_ok1"]
    assert sanitize_tokens(tokens) == ["kMDItemDisplayName", "_ok1"]


@pytest.mark.parametrize(
    "token",
    [
        "",
        "1startsWithDigit",
        "has space",
        "dotted.name",
        "com.apple.quarantine",
        "kMDItem$(whoami)",
        "name\n",
        "tab\tname",
        "café",
        "--name",
        "*",
    ],
)
def test_grammar_violations_are_rejected(token: str) -> None:
    assert sanitize_tokens([token]) == []
    assert is_identifier(token) is False


def test_non_string_tokens_are_dropped() -> None:
    assert sanitize_tokens([None, 42, b"kMDItemFSSize", ["x"], "kMDItemFSSize"]) == [
        "kMDItemFSSize"
    ]


def test_output_is_an_ordered_subsequence() -> None:
    tokens = ["b", "bad name", "a", "", "C_3", "a"]
    result = sanitize_tokens(tokens)
    assert result == ["b", "a", "C_3", "a"]
    assert all(isinstance(token, AttributeToken) for token in result)


def test_single_string_is_one_token() -> None:
    assert sanitize_tokens("kMDItemFSSize") == ["kMDItemFSSize"]
    assert sanitize_tokens("bad name") == []


def test_rejected_content_is_not_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        sanitize_tokens(["ok", "secret; payload"])
    assert "Rejected 1 invalid attribute name" in caplog.text
    assert "secret" not in caplog.text


def test_require_token_raises_for_invalid_names() -> None:
    assert require_token("kMDItemUserTags") == "kMDItemUserTags"
    with pytest.raises(InvalidInput, match="Invalid attribute name"):
        require_token("bad-name")


def test_attribute_token_cannot_be_constructed_directly() -> None:
    with pytest.raises(TypeError):
        AttributeToken("kMDItemDisplayName")
