#!/usr/bin/env python3
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from configs.config import Config

logger = logging.getLogger(__name__)


class SlackPostError(Exception):
	def __init__(self, message: str, code: str = "UNKNOWN") -> None:
		super().__init__(message)
		self.code = code


class SlackWebhookClient:
	def __init__(self, webhook_url: Optional[str] = None, timeout_s: Optional[int] = None, session: Optional[requests.Session] = None) -> None:
		cfg = Config.get_slack_config()
		self.webhook_url = webhook_url or cfg.get("webhook_url")
		self.timeout_s = int(timeout_s if timeout_s is not None else cfg.get("timeout_s", Config.HTTP_TIMEOUT_S))
		if not self.webhook_url:
			raise SlackPostError("Slack webhook URL is required (SLACK_WEBHOOK_URL env var)", code="CONFIG")
		self.session = session or requests.Session()

	def post_message(self, text: str, blocks: List[Dict[str, Any]]) -> None:
		# Incoming webhooks answer 200 with body "ok"
		payload = {"text": text, "blocks": blocks}
		try:
			response = self.session.post(self.webhook_url, json=payload, timeout=self.timeout_s)
		except requests.RequestException as e:
			raise SlackPostError(f"Failed to post Slack message: {e}", code="NETWORK") from e
		if response.status_code != 200:
			raise SlackPostError(
				f"Slack webhook error: HTTP {response.status_code} {response.text[:200]}",
				code=f"HTTP_{response.status_code}",
			)
		logger.info(f"✓ Posted Slack message with {len(blocks)} blocks")

	def close(self) -> None:
		self.session.close()
