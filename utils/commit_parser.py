#!/usr/bin/env python3
"""Parser for commit messages written in the Conventional Commits convention.

The message is read as a sequence of sections:

    <type>[(<scope>)][!]: <description>
    <blank line>
    [<body>]
    <blank line>
    [BREAKING CHANGE: <breaking description>]
    [<Footer-Key>: <value>]*

The header is matched with a regular expression; body and footers are split
line by line. A message must match the whole grammar or parsing fails, there
are no partial results.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from utils.commit_models import CommitRecord, RawCommit


HEADER_PATTERN = re.compile(
    r"(?P<type>\w+)"
    r"(?:\((?P<scope>[\w-]+)\))?"
    r"(?P<breaking>!)?"
    r": "
    r"(?P<description>\b[\w#<> ./\t\\-]{3,}(?:\b|\.))"
)
FOOTER_PATTERN = re.compile(r"(?P<token>\w+(?:-\w+)*): (?P<value>.+)")
BREAKING_TOKEN = "BREAKING CHANGE:"
BREAKING_PATTERN = re.compile(r"BREAKING CHANGE: (?P<description>.*(?:\w|\.))")


class ParseFailureCode:
    MALFORMED_HEADER = "MALFORMED_HEADER"
    MALFORMED_BODY = "MALFORMED_BODY"
    MALFORMED_FOOTER = "MALFORMED_FOOTER"


class CommitParseError(ValueError):
    """Raised when a commit message does not follow the conventional commit grammar."""
    def __init__(self, message: str, code: str = ParseFailureCode.MALFORMED_HEADER) -> None:
        super().__init__(message)
        self.code = code


def _is_blank(line: str) -> bool:
    # Hosting providers may leave a lone carriage return where a blank line belongs
    return line in ("", "\r")


def _is_footer_shaped(line: str) -> bool:
    return line.startswith(BREAKING_TOKEN) or FOOTER_PATTERN.match(line) is not None


def _split_lines(message: str) -> List[str]:
    text = message.replace("\r\n", "\n")
    if text.endswith("\n"):
        text = text[:-1]
    return text.split("\n")


def _trim_body(lines: List[str]) -> Optional[str]:
    lines = list(lines)
    while lines and _is_blank(lines[-1]):
        lines.pop()
    if not lines:
        return None
    lines[-1] = lines[-1].rstrip("\r")
    return "\n".join(lines)


def _split_sections(lines: List[str]) -> Tuple[Optional[str], List[str]]:
    """Split the lines following the header into the body and the footer block.

    Args:
        lines: Message lines after the header line

    Returns:
        Tuple of body text (None when absent) and the raw footer lines

    Raises:
        CommitParseError: If sections are not separated by blank lines
    """
    if not lines:
        return None, []
    if not _is_blank(lines[0]):
        raise CommitParseError(
            "Commit header must be followed by a blank line",
            code=ParseFailureCode.MALFORMED_BODY,
        )

    body: List[str] = []
    for index, line in enumerate(lines[1:], start=1):
        if _is_footer_shaped(line):
            if body and not _is_blank(body[-1]):
                raise CommitParseError(
                    f"Footer {line[:40]!r} is not separated from the body by a blank line",
                    code=ParseFailureCode.MALFORMED_FOOTER,
                )
            return _trim_body(body), lines[index:]
        body.append(line)
    return _trim_body(body), []


def _split_footers(lines: List[str]) -> Dict[str, str]:
    """Split footer lines on the first colon.

    Lines that do not yield both a key and a value are dropped.
    """
    footers: Dict[str, str] = {}
    for line in lines:
        parts = [part.strip() for part in line.strip().split(":", 1)]
        parts = [part for part in parts if part]
        if len(parts) < 2:
            continue
        footers[parts[0]] = parts[1]
    return footers


def _parse_footers(lines: List[str]) -> Tuple[Optional[str], Dict[str, str]]:
    """Parse the footer block.

    Args:
        lines: Raw footer lines, the first one possibly a BREAKING CHANGE line

    Returns:
        Tuple of breaking change description (None when absent) and footers

    Raises:
        CommitParseError: If a line in the block is not a footer
    """
    if not lines:
        return None, {}

    breaking_description = None
    if lines[0].startswith(BREAKING_TOKEN):
        match = BREAKING_PATTERN.fullmatch(lines[0].rstrip())
        if not match:
            raise CommitParseError(
                "BREAKING CHANGE footer requires a description",
                code=ParseFailureCode.MALFORMED_FOOTER,
            )
        breaking_description = match.group("description").strip()
        lines = lines[1:]

    for line in lines:
        if _is_blank(line) or FOOTER_PATTERN.fullmatch(line):
            continue
        raise CommitParseError(
            f"Invalid footer line: {line[:72]!r}",
            code=ParseFailureCode.MALFORMED_FOOTER,
        )

    return breaking_description, _split_footers(lines)


def parse_commit(message: str, origin: Optional[RawCommit] = None) -> CommitRecord:
    """Parse a raw commit message into a CommitRecord.

    Args:
        message: Full commit message as stored by the hosting service
        origin: Optional raw commit carried through to the record

    Returns:
        Parsed CommitRecord

    Raises:
        CommitParseError: If the message does not match the grammar
    """
    if not message or not message.strip():
        raise CommitParseError("Commit message is empty", code=ParseFailureCode.MALFORMED_HEADER)

    lines = _split_lines(message)
    header = HEADER_PATTERN.fullmatch(lines[0].rstrip("\r"))
    if not header:
        raise CommitParseError(
            f"Invalid commit header: {lines[0][:72]!r}",
            code=ParseFailureCode.MALFORMED_HEADER,
        )

    body, footer_lines = _split_sections(lines[1:])
    breaking_description, footers = _parse_footers(footer_lines)

    scope = header.group("scope")
    return CommitRecord(
        type=header.group("type").lower(),
        scope=scope.lower() if scope else None,
        description=header.group("description").strip(),
        body=body,
        is_breaking=bool(header.group("breaking")) or breaking_description is not None,
        breaking_description=breaking_description,
        footers=footers,
        origin=origin,
    )


def render_commit_message(record: CommitRecord) -> str:
    """Render a CommitRecord back into a canonical conventional commit message.

    The '!' marker is only emitted for breaking records without a breaking
    description, so the result parses back into an equal record.
    """
    scope = f"({record.scope})" if record.scope else ""
    bang = "!" if record.is_breaking and not record.breaking_description else ""
    sections = [f"{record.type}{scope}{bang}: {record.description}"]
    if record.body:
        sections.append(record.body)

    footer_lines = []
    if record.breaking_description:
        footer_lines.append(f"{BREAKING_TOKEN} {record.breaking_description}")
    footer_lines.extend(f"{key}: {value}" for key, value in record.footers.items())
    if footer_lines:
        sections.append("\n".join(footer_lines))
    return "\n\n".join(sections)
