"""Pydantic result models returned by the metadata services."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

# --- Extended attributes ---


class ListXattrResult(BaseModel):
    """Attribute names present on one file."""

    path: str
    attributes: list[str] = Field(default_factory=list)
    count: int = 0


class XattrResult(BaseModel):
    """Decoded attribute values keyed by name.

    Each value is ``DecodedValue.as_dict()``: ``{kind, value, size, encoding}``.
    """

    path: str
    attributes: dict[str, dict[str, Any]] = Field(default_factory=dict)
    count: int = 0


class AttributeFailure(BaseModel):
    """A single attribute that could not be written or removed."""

    name: str
    error: str


class SetXattrResult(BaseModel):
    """Per-item outcome of a batch attribute update."""

    path: str
    set: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
    failed: list[AttributeFailure] = Field(default_factory=list)


# --- Spotlight ---


class SpotlightResult(BaseModel):
    """One search hit with basic file facts and requested metadata."""

    path: str
    name: str
    kind: str
    modified: datetime
    size: int
    attributes: dict[str, Any] | None = None


class SearchOutput(BaseModel):
    """Search hits inside the sandbox, capped at the requested limit."""

    results: list[SpotlightResult] = Field(default_factory=list)
    count: int = 0
    truncated: bool = False


class ReindexResult(BaseModel):
    """Outcome of asking Spotlight to reimport a path."""

    path: str
    queued: bool
    message: str
