#!/usr/bin/env python3
"""Changelog agent producing release notes from conventional commit history.

This agent reads the commit history of a branch (GitHub or a JSON export),
resolves a release marker and renders the commits of that release as
Markdown, a Slack message or JSON.
"""

import json
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from clients.slack_client import SlackPostError, SlackWebhookClient
from configs.config import Config
from utils.changelog_scanner import ChangelogScanError, ChangelogScanner
from utils.commit_models import ChangelogResult, ScannerOptions
from utils.github_history import GitHubHistoryPager, GithubApiError, GithubAuthError
from utils.history_pager import HistoryPager, ListHistoryPager

load_dotenv()

# Set up logging
logger = logging.getLogger(__name__)


class ChangelogAgent:
	"""Agent resolving a release and collecting its changelog from a history provider."""
	
	def __init__(self, pager: HistoryPager, options: Optional[ScannerOptions] = None):
		"""Initialize the changelog agent.
		
		Args:
			pager: History provider to read commits from
			options: Scan options. If None, built from Config.
		"""
		self.pager = pager
		self.options = options or ScannerOptions.from_config()
		self.skipped_commits = 0
		logger.info("Changelog agent initialized")
	
	def build_changelog(self, version: Optional[str] = None) -> ChangelogResult:
		"""Build the changelog of one release.
		
		Args:
			version: Version to look up. The latest release is used when None.
			
		Returns:
			ChangelogResult of the release
			
		Raises:
			ChangelogScanError: If the release cannot be resolved
		"""
		scanner = ChangelogScanner(self.pager, self.options)
		if version:
			scanner.resolve_version(version)
		result = scanner.get_changelog()
		self.skipped_commits = scanner.skipped_commits
		
		logger.info(
			f"✓ Changelog for version {result.version} [{result.scope}]: "
			f"{len(result.commits)} commits, {scanner.skipped_commits} skipped, {scanner.pages_loaded} pages"
		)
		return result
	
	def close(self) -> None:
		"""Close the agent and cleanup resources."""
		self.pager.close()
		logger.info("Changelog agent closed")


def render_result(result: ChangelogResult, output_format: str) -> str:
	"""Render a changelog in the requested output format."""
	if output_format == "json":
		return json.dumps(result.model_dump(), indent=2, ensure_ascii=False, default=str)
	if output_format == "slack":
		from utils.slack_renderer import build_slack_message
		fallback, blocks = build_slack_message(result)
		return json.dumps({"text": fallback, "blocks": blocks}, indent=2, ensure_ascii=False)
	from utils.markdown_renderer import render_changelog_markdown
	return render_changelog_markdown(result)


def _build_pager(args) -> HistoryPager:
	if args.commits_file:
		return ListHistoryPager.from_json_file(args.commits_file)
	return GitHubHistoryPager(args.owner, args.repo, branch=args.branch)


def main(argv: Optional[List[str]] = None):
	"""CLI entry point for the changelog agent."""
	import argparse
	
	parser = argparse.ArgumentParser(
		description="Changelog Agent - Build release changelogs from conventional commits",
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""
Examples:
  python -m agents.changelog_agent --owner octo --repo app --branch production
  python -m agents.changelog_agent --owner octo --repo app --version 2.0.0 --format slack
  python -m agents.changelog_agent --commits-file history.json --format json
		"""
	)
	
	source = parser.add_argument_group("history source")
	source.add_argument("--owner", help="Repository owner (user or organization)")
	source.add_argument("--repo", help="Repository name")
	source.add_argument("--branch", help=f"Branch to scan (default: {Config.CHANGELOG_BRANCH})")
	source.add_argument("--commits-file", help="JSON array of commits, newest first, instead of GitHub")
	
	parser.add_argument("--version", dest="release_version", help="Release to build (default: latest)")
	parser.add_argument("--scope", help="Only consider release markers of this scope")
	parser.add_argument("--marker-type", help=f"Commit type marking a release (default: {Config.RELEASE_MARKER_TYPE})")
	parser.add_argument("--page-size", type=int, help=f"Commits per page (default: {Config.HISTORY_PAGE_SIZE})")
	parser.add_argument("--max-pages", type=int, help="Stop after this many pages")
	parser.add_argument("--format", choices=["markdown", "slack", "json"], default="markdown", help="Output format")
	parser.add_argument("--post-slack", action="store_true", help="Post the Slack message to SLACK_WEBHOOK_URL")
	parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
	
	args = parser.parse_args(argv)
	
	if not args.commits_file and not (args.owner and args.repo):
		parser.error("either --commits-file or both --owner and --repo are required")
	
	# Set up logging
	log_level = logging.DEBUG if args.verbose else logging.INFO
	logging.basicConfig(
		level=log_level,
		format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
	)
	
	# Suppress verbose logs from libraries unless in debug mode
	if not args.verbose:
		logging.getLogger("utils.github_history").setLevel(logging.WARNING)
		logging.getLogger("urllib3").setLevel(logging.WARNING)
	
	agent = None
	try:
		options = ScannerOptions.from_config(
			marker_type=args.marker_type,
			page_size=args.page_size,
			scope=args.scope,
			max_pages=args.max_pages,
		)
		agent = ChangelogAgent(_build_pager(args), options)
		result = agent.build_changelog(args.release_version)
		if agent.skipped_commits:
			logger.warning(f"{agent.skipped_commits} commits were skipped for not following the conventional format")
		print(render_result(result, args.format))
		
		if args.post_slack:
			from utils.slack_renderer import build_slack_message
			fallback, blocks = build_slack_message(result)
			client = SlackWebhookClient()
			try:
				client.post_message(fallback, blocks)
			finally:
				client.close()
		sys.exit(0)
	
	except (ChangelogScanError, GithubAuthError, GithubApiError, SlackPostError, ValueError) as e:
		print(f"Error: {e}", file=sys.stderr)
		if args.verbose:
			logger.exception("Detailed error information:")
		sys.exit(1)
	
	except KeyboardInterrupt:
		print("\nOperation cancelled by user", file=sys.stderr)
		sys.exit(1)
	
	except Exception as e:
		# Unexpected error
		print(f"Unexpected error: {e}", file=sys.stderr)
		if args.verbose:
			logger.exception("Detailed error information:")
		else:
			print("Use --verbose for more details", file=sys.stderr)
		sys.exit(1)
	
	finally:
		if agent:
			agent.close()


if __name__ == "__main__":
	main()
