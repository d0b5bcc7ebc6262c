#!/usr/bin/env python3
"""Pydantic models for conventional commits and changelog results.

This module defines the raw commit reference supplied by a history provider,
the structured record produced by the commit parser, the aggregate changelog
result and the immutable scanner options.
"""

from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, conint, constr

from configs.config import Config


DEFAULT_MARKER_TYPE = "release"
DEFAULT_PAGE_SIZE = 30


class RawCommit(BaseModel):
    """A commit as supplied by the history provider, carried through unmodified."""

    sha: str = Field(..., description="Commit SHA")
    message: str = Field(..., description="Full commit message")
    author: str = Field("", description="Name of the author of the changes")
    author_email: str = Field("", description="Email of the author")
    authored_at: Optional[str] = Field(None, description="Authoring timestamp (UTC, ISO 8601)")
    committer: str = Field("", description="Name of the person who created the commit")
    committer_email: str = Field("", description="Email of the committer")
    committed_at: Optional[str] = Field(None, description="Commit timestamp (UTC, ISO 8601)")
    url: str = Field("", description="Commit detail page on the hosting service")

    model_config = ConfigDict(extra="ignore", frozen=True)


class CommitRecord(BaseModel):
    """Structured conventional commit.

    ``type`` and ``description`` are always present; a message that does not
    match the grammar never becomes a record.
    """

    type: constr(min_length=1) = Field(..., description="Lowercased category token, e.g. feat or fix")
    scope: Optional[str] = Field(None, description="Lowercased qualifier in parentheses")
    description: constr(min_length=3) = Field(..., description="Single-line summary")
    body: Optional[str] = Field(None, description="Free text separated from the header by a blank line")
    is_breaking: bool = Field(False, description="Marked by '!' or a BREAKING CHANGE footer")
    breaking_description: Optional[str] = Field(None, description="Text of the BREAKING CHANGE footer")
    footers: Dict[str, str] = Field(default_factory=dict, description="Trailer lines as Key -> value")
    origin: Optional[RawCommit] = Field(None, description="Raw commit this record was parsed from")

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def sha(self) -> str:
        return self.origin.sha if self.origin else ""

    def is_marker(self, marker_type: str, scope: Optional[str] = None) -> bool:
        """Check whether this commit is a marker of the given type (and scope, when given)."""
        if self.type != marker_type:
            return False
        return scope is None or self.scope == scope

    def __str__(self) -> str:
        scope = f"({self.scope})" if self.scope else ""
        bang = "!" if self.is_breaking else ""
        return f"{self.type}{scope}{bang}: {self.description}"


class ChangelogResult(BaseModel):
    """Changelog of one release: the marker commit and everything since the previous one."""

    version: str = Field(..., description="Description of the marker commit")
    version_description: str = Field("", description="Body of the marker commit, empty if none")
    release_marker: CommitRecord = Field(..., description="Marker commit terminating the release")
    commits: Tuple[CommitRecord, ...] = Field(default_factory=tuple, description="Commits in chronological order")

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def scope(self) -> Optional[str]:
        return self.release_marker.scope

    def commits_of_type(self, commit_type: str) -> List[CommitRecord]:
        return [c for c in self.commits if c.type == commit_type]


class ScannerOptions(BaseModel):
    """Immutable configuration of a changelog scan."""

    marker_type: constr(strip_whitespace=True, to_lower=True, min_length=1) = DEFAULT_MARKER_TYPE
    page_size: conint(ge=1, le=100) = DEFAULT_PAGE_SIZE
    scope: Optional[constr(strip_whitespace=True, to_lower=True, min_length=1)] = None
    max_pages: Optional[conint(ge=1)] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_config(cls, **overrides: Any) -> "ScannerOptions":
        """Build options from Config, letting non-None keyword arguments win.

        Args:
            **overrides: marker_type, page_size, scope or max_pages

        Returns:
            Validated ScannerOptions
        """
        data: Dict[str, Any] = dict(Config.get_scanner_config())
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)


def safe_extract(data: Dict, *keys, default=None):
    """Safely extract nested dictionary values.

    Args:
        data: Dictionary to extract from
        *keys: Sequence of keys to traverse
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default

    Example:
        safe_extract(commit_data, "commit", "author", "name", default="")
    """
    current = data
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current if current is not None else default


def raw_commit_from_github(data: Dict[str, Any]) -> RawCommit:
    """Convert an item of the GitHub 'list commits' response into a RawCommit.

    Args:
        data: Raw commit object from the GitHub REST API

    Returns:
        RawCommit with author, committer and URL metadata
    """
    return RawCommit(
        sha=data.get("sha") or "",
        message=safe_extract(data, "commit", "message", default=""),
        author=safe_extract(data, "commit", "author", "name", default=""),
        author_email=safe_extract(data, "commit", "author", "email", default=""),
        authored_at=safe_extract(data, "commit", "author", "date"),
        committer=safe_extract(data, "commit", "committer", "name", default=""),
        committer_email=safe_extract(data, "commit", "committer", "email", default=""),
        committed_at=safe_extract(data, "commit", "committer", "date"),
        url=data.get("html_url") or data.get("url") or "",
    )


def raw_commit_from_dict(data: Dict[str, Any]) -> RawCommit:
    """Accept either a GitHub-shaped commit object or a flat RawCommit mapping."""
    if isinstance(data.get("commit"), dict):
        return raw_commit_from_github(data)
    return RawCommit.model_validate(data)
