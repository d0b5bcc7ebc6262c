#!/usr/bin/env python3
"""History provider interface for the changelog scanner.

A provider supplies commits newest-first in fixed-size pages. An empty page
signals the end of history.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Union

from utils.commit_models import RawCommit, raw_commit_from_dict

# Set up logging
logger = logging.getLogger(__name__)


class HistoryPager:
    """Base class for commit history providers."""

    def fetch_page(self, page_index: int, page_size: int) -> List[RawCommit]:
        """Fetch one page of commits, newest first.

        Args:
            page_index: 1-based page number
            page_size: Maximum number of commits per page

        Returns:
            Commits of the page; an empty list when history is exhausted
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release transport resources held by the provider."""
        return None


class ListHistoryPager(HistoryPager):
    """Serves an in-memory, newest-first list of commits page by page."""

    def __init__(self, commits: Iterable[RawCommit]):
        self.commits: List[RawCommit] = list(commits)

    def fetch_page(self, page_index: int, page_size: int) -> List[RawCommit]:
        if page_index < 1:
            raise ValueError(f"Page index must be positive, got {page_index}")
        start = (page_index - 1) * page_size
        return self.commits[start:start + page_size]

    @classmethod
    def from_messages(cls, messages: Iterable[str]) -> "ListHistoryPager":
        """Create a pager from bare messages, numbering commits as c1, c2, ..."""
        return cls(RawCommit(sha=f"c{i}", message=m) for i, m in enumerate(messages, start=1))

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "ListHistoryPager":
        """Load a newest-first JSON array of commits.

        Items may be GitHub 'list commits' objects or flat RawCommit mappings.
        """
        data: Any = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON array of commits in {path}")
        commits = [raw_commit_from_dict(item) for item in data]
        logger.debug(f"✓ Loaded {len(commits)} commits from {path}")
        return cls(commits)
