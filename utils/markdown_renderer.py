#!/usr/bin/env python3
from __future__ import annotations

from typing import List, Mapping, Optional

from utils.commit_models import ChangelogResult, CommitRecord
from configs.config import Config


def escape_md(s: str) -> str:
	if not s:
		return s
	for ch in ["*", "_", "`", "|"]:
		s = s.replace(ch, f"\\{ch}")
	return s


def _one_line(text: str) -> str:
	return " ".join((text or "").split())


def bullets(commits: List[CommitRecord]) -> List[str]:
	out_lines: List[str] = []
	for commit in commits or []:
		breaking_suffix = " **(breaking)**" if commit.is_breaking else ""
		out_lines.append(f"- **{escape_md(commit.description)}**{breaking_suffix}")
		if commit.body:
			out_lines.append(f"\t- _{escape_md(_one_line(commit.body))}_")
		if commit.breaking_description:
			out_lines.append(f"\t- BREAKING CHANGE: {escape_md(commit.breaking_description)}")
	return out_lines


def render_changelog_markdown(result: ChangelogResult, commit_types: Optional[Mapping[str, str]] = None) -> str:
	"""Render a changelog as a Markdown document.

	One section per entry of ``commit_types`` in its order; commit types absent
	from the mapping are left out of the document.
	"""
	if commit_types is None:
		commit_types = Config.get_commit_types()
	lines: List[str] = [f"# \U0001f680 Version {escape_md(result.version)}"]
	if result.version_description:
		lines.append(f"*{escape_md(_one_line(result.version_description))}*")
	for commit_type, heading in commit_types.items():
		lines.append("")
		lines.append(f"## {heading}")
		lines.extend(bullets(result.commits_of_type(commit_type)))
	return "\n".join(lines) + "\n"
