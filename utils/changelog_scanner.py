#!/usr/bin/env python3
"""Release boundary scanner building a changelog from conventional commits.

Every release is marked by a commit of the marker type (``release`` by
default) whose scope names the release line, e.g. an environment, and whose
description carries the version:

    release(prod): 2.0.0

The scanner reads history newest-first, resolves the marker of the requested
version and collects every commit up to the previous marker of the same
scope. Markers of other scopes are ordinary content, so independent release
lines can share one history.
"""

import logging
from collections import deque
from typing import Deque, List, Optional

from utils.commit_models import ChangelogResult, CommitRecord, ScannerOptions
from utils.commit_parser import CommitParseError, parse_commit
from utils.history_pager import HistoryPager
from utils.metrics import Timer, incr

# Set up logging
logger = logging.getLogger(__name__)


class ChangelogScanError(Exception):
    """Raised when the changelog cannot be built, with a typed code for friendly handling."""
    def __init__(self, message: str, code: str = "UNKNOWN") -> None:
        super().__init__(message)
        self.code = code


class EndOfHistoryError(ChangelogScanError):
    """History was exhausted before any release marker was found."""
    def __init__(self, message: str = "The history has ended without any release marker") -> None:
        super().__init__(message, code="END_OF_HISTORY")


class VersionNotFoundError(ChangelogScanError):
    """History was exhausted before the marker of the requested version was found."""
    def __init__(self, version: str) -> None:
        super().__init__(f"Release {version!r} has not been found in the history", code="VERSION_NOT_FOUND")
        self.version = version


class MissingScopeError(ChangelogScanError):
    """A release marker carries no scope, so its release line cannot be determined."""
    def __init__(self, sha: str, version: str) -> None:
        super().__init__(
            f"Release marker {sha or '<unknown>'} for {version!r} has no scope",
            code="MISSING_SCOPE",
        )
        self.sha = sha
        self.version = version


class ChangelogStateError(ChangelogScanError):
    """The scanner was used out of order."""
    pass


class ChangelogScanner:
    """Pulls commits page by page and assembles the changelog of one release.

    The scanner is single-use: resolve a version (or let get_changelog resolve
    the latest one), then call get_changelog once. It keeps one page request in
    flight at most and must not be shared between callers.
    """

    def __init__(self, pager: HistoryPager, options: Optional[ScannerOptions] = None):
        """Initialize the scanner.

        Args:
            pager: History provider serving newest-first pages
            options: Scan options; defaults to the built-in ScannerOptions
        """
        self.pager = pager
        self.options = options or ScannerOptions()
        self._page = 1
        self._queue: Deque[CommitRecord] = deque()
        self._exhausted = False
        self._marker: Optional[CommitRecord] = None
        self._consumed = False
        self.pages_loaded = 0
        self.skipped_commits = 0

    @property
    def release_marker(self) -> CommitRecord:
        if self._marker is None:
            raise ChangelogStateError("The release marker has not been resolved yet", code="NOT_RESOLVED")
        return self._marker

    @property
    def resolved_version(self) -> str:
        return self.release_marker.description

    @property
    def release_scope(self) -> str:
        # Scope presence is enforced at resolution time
        return self.release_marker.scope or ""

    def resolve_latest_version(self) -> str:
        """Find the newest release marker.

        Returns:
            Version taken from the marker's description

        Raises:
            EndOfHistoryError: If history ends without a marker
            MissingScopeError: If the marker has no scope
        """
        return self._find_version()

    def resolve_version(self, version: str) -> str:
        """Find the release marker whose description equals ``version``.

        Raises:
            VersionNotFoundError: If history ends without that marker
            MissingScopeError: If the marker has no scope
        """
        if not version or not version.strip():
            raise ValueError("Version to resolve cannot be empty")
        return self._find_version(version.strip())

    def get_changelog(self) -> ChangelogResult:
        """Collect the commits between the resolved marker and the previous one of the same scope.

        Resolves the latest version first when nothing was resolved yet. Reaching
        the end of history closes the oldest release and is not an error.

        Returns:
            ChangelogResult with commits in chronological order

        Raises:
            ChangelogStateError: If the changelog was already produced
            EndOfHistoryError: If implicit resolution finds no marker
        """
        if self._consumed:
            raise ChangelogStateError("This scanner has already produced its changelog", code="ALREADY_CONSUMED")

        if self._marker is None:
            logger.info("Version has not been resolved yet")
            self._find_version()

        marker = self.release_marker
        collected: List[CommitRecord] = []
        while True:
            commit = self._next_commit()
            if commit is None:
                logger.info("The changelog has reached the end of history")
                break

            if commit.is_marker(self.options.marker_type, marker.scope):
                logger.info(
                    f"Reached end of changelog for version {marker.description}, "
                    f"found {len(collected)} commits in total"
                )
                break

            logger.debug(f"{commit}")
            collected.append(commit)

        # History is read newest-first
        collected.reverse()
        self._consumed = True

        return ChangelogResult(
            version=marker.description,
            version_description=marker.body or "",
            release_marker=marker,
            commits=tuple(collected),
        )

    def _find_version(self, version: Optional[str] = None) -> str:
        if self._marker is not None:
            raise ChangelogStateError(
                f"Version {self._marker.description} has already been resolved",
                code="ALREADY_RESOLVED",
            )

        if version is None:
            logger.info("Searching for latest version in commits history")
        else:
            logger.info(f"Searching for version {version} in commits history")

        marker_type = self.options.marker_type
        while True:
            commit = self._next_commit()
            if commit is None:
                if version is None:
                    logger.error("The history has ended without any release marker")
                    raise EndOfHistoryError()
                logger.error(f"The history has ended without release {version}")
                raise VersionNotFoundError(version)

            if commit.type != marker_type:
                continue

            if version is not None and commit.description != version:
                logger.debug(f"Found version {commit.description}, but searching for specific version {version}")
                continue

            if self.options.scope and commit.scope != self.options.scope:
                logger.debug(f"Skipping version {commit.description} of scope {commit.scope}")
                continue

            if not commit.scope:
                logger.error(f"Release marker {commit.sha} has no scope")
                raise MissingScopeError(commit.sha, commit.description)

            self._marker = commit
            logger.info(f"Resolved version {commit.description} in scope {commit.scope} on commit {commit.sha}")
            if commit.origin:
                logger.info(
                    f"Version {commit.description} has been committed by {commit.origin.committer} "
                    f"and authored by {commit.origin.author}"
                )
            return commit.description

    def _next_commit(self) -> Optional[CommitRecord]:
        """Pop the next parsed commit, loading pages as needed; None at the end of history."""
        while not self._queue:
            if not self._load_next_page():
                return None
        return self._queue.popleft()

    def _load_next_page(self) -> bool:
        if self._exhausted:
            return False

        max_pages = self.options.max_pages
        if max_pages and self._page > max_pages:
            logger.warning(f"Reached the limit of {max_pages} pages, treating it as the end of history")
            self._exhausted = True
            return False

        logger.debug(f"Loading page {self._page} of commits history with size {self.options.page_size}")
        with Timer("changelog.page.fetch", page=self._page):
            raw_commits = self.pager.fetch_page(self._page, self.options.page_size)
        page_index = self._page
        self._page += 1

        if not raw_commits:
            logger.warning(f"No more commits after page {page_index - 1}")
            self._exhausted = True
            return False

        self.pages_loaded += 1
        incr("changelog.page.loaded", value=len(raw_commits), page=page_index)

        for raw in raw_commits:
            try:
                self._queue.append(parse_commit(raw.message, origin=raw))
            except CommitParseError as e:
                self.skipped_commits += 1
                logger.warning(f"Commit {raw.sha} is not in correct conventional commit format: {e}")
                incr("changelog.commit.skipped", code=e.code, sha=raw.sha)
        return True


def build_changelog(
    pager: HistoryPager,
    version: Optional[str] = None,
    options: Optional[ScannerOptions] = None,
) -> ChangelogResult:
    """Resolve a version (the latest when None) and return its changelog."""
    scanner = ChangelogScanner(pager, options)
    if version:
        scanner.resolve_version(version)
    return scanner.get_changelog()
