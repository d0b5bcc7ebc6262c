#!/usr/bin/env python3
"""Slack block-kit message for a released changelog."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

from utils.commit_models import ChangelogResult
from configs.config import Config

Block = Dict[str, Any]


def _text(text: str, kind: str = "plain_text") -> Dict[str, Any]:
	if kind == "plain_text":
		return {"type": "plain_text", "text": text, "emoji": True}
	return {"type": kind, "text": text}


def _section(text: str, kind: str = "mrkdwn") -> Block:
	return {"type": "section", "text": _text(text, kind)}


def _context(text: str, kind: str = "plain_text") -> Block:
	return {"type": "context", "elements": [_text(text, kind)]}


def build_slack_message(result: ChangelogResult, commit_types: Optional[Mapping[str, str]] = None) -> Tuple[str, List[Block]]:
	"""Build the Slack notification for a release.

	Returns:
		Tuple of plain fallback text for notifications and the list of blocks
	"""
	if commit_types is None:
		commit_types = Config.get_commit_types()
	fallback = f"A new version {result.version} has been released."

	blocks: List[Block] = [
		{"type": "header", "text": _text(":rocket: New version has been released!")},
	]
	if result.version_description:
		blocks.append(_context(result.version_description, "mrkdwn"))
	blocks.append(_section(f"Changelist for version *{result.version}*"))

	for commit_type, heading in commit_types.items():
		blocks.append({"type": "divider"})
		blocks.append(_section(heading))
		for commit in result.commits_of_type(commit_type):
			blocks.append(_section(commit.description, "plain_text"))
			if commit.body:
				blocks.append(_context(commit.body))
	return fallback, blocks
