import os
from typing import Dict, Any


def _parse_commit_types(raw: str) -> Dict[str, str]:
	"""Parse 'feat=Features,fix=Fixes' into an ordered type -> heading mapping."""
	mapping: Dict[str, str] = {}
	for part in (raw or "").split(","):
		if "=" not in part:
			continue
		key, heading = part.split("=", 1)
		key = key.strip().lower()
		if key and heading.strip():
			mapping[key] = heading.strip()
	return mapping


class Config:
	"""Configuration for the changelog scanner and its renderers."""
	
	# GitHub history provider
	GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip('/')
	GITHUB_TOKEN = os.getenv("GITHUB_TOKEN") or os.getenv("GITHUB_PAT")
	HTTP_TIMEOUT_S = int(os.getenv("HTTP_TIMEOUT_S", "30"))
	CHANGELOG_BRANCH = os.getenv("CHANGELOG_BRANCH", "main")
	
	# Release boundary scanning
	RELEASE_MARKER_TYPE = os.getenv("RELEASE_MARKER_TYPE", "release")
	HISTORY_PAGE_SIZE = int(os.getenv("HISTORY_PAGE_SIZE", "30"))
	# 0 disables the page safety limit
	HISTORY_MAX_PAGES = int(os.getenv("HISTORY_MAX_PAGES", "0"))
	
	# Rendering
	CHANGELOG_COMMIT_TYPES = os.getenv("CHANGELOG_COMMIT_TYPES", "feat=✨ Features,fix=🐛 Fixes")
	
	# Slack
	SLACK_WEBHOOK_URL = os.getenv("SLACK_WEBHOOK_URL", "")
	
	# Observability
	METRICS_ROOT = os.getenv("METRICS_ROOT", ".cache/changelog/metrics")
	METRICS_ENABLED = bool(int(os.getenv("METRICS_ENABLED", "1")))
	
	@classmethod
	def get_github_config(cls) -> Dict[str, Any]:
		"""Get GitHub configuration for the REST history provider."""
		return {
			"base_url": cls.GITHUB_API_URL,
			"token": cls.GITHUB_TOKEN,
			"timeout_s": cls.HTTP_TIMEOUT_S,
			"branch": cls.CHANGELOG_BRANCH,
		}
	
	@classmethod
	def get_scanner_config(cls) -> Dict[str, Any]:
		"""Get release boundary scanning configuration.
		
		Returns:
			Mapping with marker type, page size and page safety limit (None when unlimited).
		"""
		return {
			"marker_type": cls.RELEASE_MARKER_TYPE,
			"page_size": cls.HISTORY_PAGE_SIZE,
			"max_pages": cls.HISTORY_MAX_PAGES or None,
		}
	
	@classmethod
	def get_commit_types(cls) -> Dict[str, str]:
		"""Get the ordered commit type -> section heading mapping used by renderers."""
		return _parse_commit_types(cls.CHANGELOG_COMMIT_TYPES)
	
	@classmethod
	def get_slack_config(cls) -> Dict[str, Any]:
		return {
			"webhook_url": cls.SLACK_WEBHOOK_URL,
			"timeout_s": cls.HTTP_TIMEOUT_S,
		}
	
	@classmethod
	def observability(cls) -> Dict[str, Any]:
		return {
			"metrics_root": cls.METRICS_ROOT,
			"metrics_enabled": cls.METRICS_ENABLED,
		}
