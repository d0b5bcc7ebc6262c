#!/usr/bin/env python3
"""GitHub REST API history provider for the changelog scanner.

Lists the commits of a branch page by page, newest first, and maps them to
RawCommit objects. Transport faults are raised as typed errors and are not
retried beyond the session's transient-failure policy.
"""

import logging
from typing import Dict, List, Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from configs.config import Config
from utils.commit_models import RawCommit, raw_commit_from_github
from utils.history_pager import HistoryPager

# Set up logging
logger = logging.getLogger(__name__)


class GithubAuthError(Exception):
    """Raised when GitHub API authentication fails."""
    pass


class GithubApiError(Exception):
    """Raised when GitHub API operations fail."""
    pass


class GitHubHistoryPager(HistoryPager):
    """Pages through the commit history of a GitHub branch."""

    def __init__(
        self,
        owner: str,
        repo: str,
        branch: Optional[str] = None,
        token: Optional[str] = None,
        timeout_s: Optional[int] = None,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the GitHub history provider.

        Args:
            owner: Repository owner (user or organization)
            repo: Repository name
            branch: Branch to read (defaults to Config.CHANGELOG_BRANCH)
            token: GitHub Personal Access Token (defaults to Config.GITHUB_TOKEN)
            timeout_s: Request timeout in seconds (defaults to Config.HTTP_TIMEOUT_S)
            base_url: REST API root (defaults to Config.GITHUB_API_URL)
            session: Preconfigured requests session, mostly for tests

        Raises:
            ValueError: If owner or repo is empty
        """
        if not owner or not repo:
            raise ValueError("Repository owner and name are required")

        github_config = Config.get_github_config()
        self.owner = owner
        self.repo = repo
        self.branch = branch or github_config["branch"]
        self.token = token or github_config["token"]
        self.timeout_s = timeout_s or github_config["timeout_s"]
        self.base_url = (base_url or github_config["base_url"]).rstrip('/')

        if session is None:
            session = requests.Session()
            # Configure retries for transient failures
            retry_strategy = Retry(
                total=3,
                status_forcelist=[429, 500, 502, 503, 504],
                backoff_factor=1,
                allowed_methods=["HEAD", "GET", "OPTIONS"]
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("https://", adapter)
        self.session = session

        self.session.headers.update({
            'Accept': 'application/vnd.github+json',
            'User-Agent': 'conventional-changelog/1.0'
        })
        if self.token:
            self.session.headers['Authorization'] = f'token {self.token}'
        else:
            logger.warning("No GitHub token configured; unauthenticated requests are heavily rate limited")

        logger.info(f"GitHub history source for {self.owner}/{self.repo} [{self.branch}] has been created")

    @property
    def commits_url(self) -> str:
        return f"{self.base_url}/repos/{self.owner}/{self.repo}/commits"

    def _check_response(self, response: requests.Response) -> None:
        if response.status_code in (401, 403):
            raise GithubAuthError(
                f"GitHub denied access to {self.owner}/{self.repo}: HTTP {response.status_code}"
            )
        elif response.status_code == 404:
            raise GithubApiError(f"Repository {self.owner}/{self.repo} or branch {self.branch} not found")
        elif response.status_code != 200:
            raise GithubApiError(f"GitHub API error: HTTP {response.status_code}")

    def fetch_page(self, page_index: int, page_size: int) -> List[RawCommit]:
        """Fetch one page of branch commits via the GitHub REST API.

        Args:
            page_index: 1-based page number
            page_size: Commits per page (GitHub caps this at 100)

        Returns:
            List of RawCommit objects, empty past the end of history

        Raises:
            GithubAuthError: If the token is missing permissions or invalid
            GithubApiError: If the request fails
        """
        params: Dict[str, Any] = {'sha': self.branch, 'page': page_index, 'per_page': page_size}

        try:
            logger.debug(f"Loading page {page_index} of {self.owner}/{self.repo} [{self.branch}] with size {page_size}")
            response = self.session.get(self.commits_url, params=params, timeout=self.timeout_s)
            self._check_response(response)
            page = response.json()
        except requests.RequestException as e:
            raise GithubApiError(f"Failed to fetch commits for {self.owner}/{self.repo}: {e}")

        if not isinstance(page, list):
            raise GithubApiError("Unexpected response shape from GitHub commits listing")

        if not page:
            logger.warning(
                f"No more commits found in {self.owner}/{self.repo} for branch {self.branch}"
            )
        commits = [raw_commit_from_github(item) for item in page]
        logger.debug(f"✓ Retrieved {len(commits)} commits on page {page_index}")
        return commits

    def close(self) -> None:
        """Close the GitHub client session."""
        if self.session:
            self.session.close()
            logger.debug("GitHub history session closed")
