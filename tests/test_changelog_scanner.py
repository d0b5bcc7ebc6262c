import json

import pytest

from configs.config import Config
from utils.changelog_scanner import (
    ChangelogScanner,
    ChangelogStateError,
    EndOfHistoryError,
    MissingScopeError,
    VersionNotFoundError,
    build_changelog,
)
from utils.commit_models import ScannerOptions
from utils.history_pager import ListHistoryPager


class RecordingPager(ListHistoryPager):
    def __init__(self, commits):
        super().__init__(commits)
        self.requests = []

    def fetch_page(self, page_index, page_size):
        self.requests.append((page_index, page_size))
        return super().fetch_page(page_index, page_size)


def make_pager(*messages):
    return RecordingPager(ListHistoryPager.from_messages(messages).commits)


def descriptions(result):
    return [commit.description for commit in result.commits]


def test_latest_version_and_changelog():
    pager = make_pager(
        "feat: Unreleased feature",
        "release(prod): 2.0.0\n\nSpring release.",
        "fix: Fix bug B",
        "feat: Add feature A",
        "release(prod): 1.0.0",
        "feat: Initial feature",
    )
    scanner = ChangelogScanner(pager, ScannerOptions(page_size=2))

    assert scanner.resolve_latest_version() == "2.0.0"
    assert scanner.release_scope == "prod"

    result = scanner.get_changelog()
    assert result.version == "2.0.0"
    assert result.version_description == "Spring release."
    assert result.release_marker.sha == "c2"
    assert result.scope == "prod"
    assert descriptions(result) == ["Add feature A", "Fix bug B"]


def test_get_changelog_resolves_latest_version_implicitly():
    pager = make_pager("release(prod): 2.0.0", "chore: Tidy things up", "release(prod): 1.0.0")
    result = ChangelogScanner(pager).get_changelog()
    assert result.version == "2.0.0"
    assert result.version_description == ""
    assert descriptions(result) == ["Tidy things up"]


def test_terminating_marker_is_excluded_but_other_scopes_are_included():
    pager = make_pager(
        "release(prod): 2.0.0",
        "feat: Add feature A",
        "release(staging): 2.0.0-rc",
        "fix: Fix bug B",
        "release(prod): 1.0.0",
        "feat: Older feature",
    )
    result = ChangelogScanner(pager).get_changelog()

    assert descriptions(result) == ["Fix bug B", "2.0.0-rc", "Add feature A"]
    assert all(not c.is_marker("release", "prod") for c in result.commits)
    assert result.commits[1].scope == "staging"


def test_end_of_history_closes_the_oldest_release():
    pager = make_pager("release(prod): 1.0.0", "feat: Initial commit here", "chore: Set up repository")
    result = ChangelogScanner(pager, ScannerOptions(page_size=1)).get_changelog()
    assert descriptions(result) == ["Set up repository", "Initial commit here"]


def test_resolve_specific_version():
    pager = make_pager(
        "release(prod): 2.0.0",
        "feat: Add feature A",
        "release(prod): 1.1.0",
        "fix: Fix bug B",
        "fix: Fix bug C",
        "release(prod): 1.0.0",
    )
    scanner = ChangelogScanner(pager, ScannerOptions(page_size=2))
    assert scanner.resolve_version("1.1.0") == "1.1.0"

    result = scanner.get_changelog()
    assert result.version == "1.1.0"
    assert descriptions(result) == ["Fix bug C", "Fix bug B"]


def test_no_marker_raises_end_of_history():
    pager = make_pager("feat: Add feature A", "fix: Fix bug B")
    scanner = ChangelogScanner(pager)
    with pytest.raises(EndOfHistoryError) as exc_info:
        scanner.resolve_latest_version()
    assert exc_info.value.code == "END_OF_HISTORY"


def test_no_marker_fails_get_changelog():
    with pytest.raises(EndOfHistoryError):
        ChangelogScanner(make_pager("feat: Add feature A")).get_changelog()


def test_empty_history_raises_end_of_history():
    with pytest.raises(EndOfHistoryError):
        ChangelogScanner(make_pager()).resolve_latest_version()


def test_unknown_version_raises_version_not_found():
    pager = make_pager("release(prod): 2.0.0", "release(prod): 1.0.0")
    with pytest.raises(VersionNotFoundError) as exc_info:
        ChangelogScanner(pager).resolve_version("3.0.0")
    assert exc_info.value.version == "3.0.0"
    assert exc_info.value.code == "VERSION_NOT_FOUND"


def test_marker_without_scope_is_an_error():
    pager = make_pager("feat: Add feature A", "release: 1.0.0")
    with pytest.raises(MissingScopeError) as exc_info:
        ChangelogScanner(pager).resolve_latest_version()
    assert exc_info.value.sha == "c2"
    assert exc_info.value.code == "MISSING_SCOPE"


def test_malformed_commits_are_skipped():
    pager = make_pager(
        "release(prod): 2.0.0",
        "WIP stuff",
        "feat: Add feature A",
        "Merge branch 'develop'",
        "fix: Fix bug B",
        "release(prod): 1.0.0",
    )
    scanner = ChangelogScanner(pager, ScannerOptions(page_size=2))
    result = scanner.get_changelog()

    assert descriptions(result) == ["Fix bug B", "Add feature A"]
    assert scanner.skipped_commits == 2


def test_page_of_only_malformed_commits_does_not_end_history():
    pager = make_pager(
        "release(prod): 2.0.0",
        "oops",
        "another oops",
        "fix: Fix bug B",
    )
    scanner = ChangelogScanner(pager, ScannerOptions(page_size=1))
    result = scanner.get_changelog()
    assert descriptions(result) == ["Fix bug B"]
    assert scanner.skipped_commits == 2


def test_skipped_commits_are_reported_as_metrics(metrics_root):
    pager = make_pager("release(prod): 2.0.0", "not conventional")
    ChangelogScanner(pager).get_changelog()

    records = [json.loads(line) for line in (metrics_root / "metrics.log").read_text(encoding="utf-8").splitlines()]
    skipped = [r for r in records if r["metric"] == "changelog.commit.skipped"]
    assert skipped == [
        {"ts": skipped[0]["ts"], "metric": "changelog.commit.skipped", "value": 1, "code": "MALFORMED_HEADER", "sha": "c2"}
    ]


def test_pages_are_requested_one_at_a_time_in_order():
    pager = make_pager(
        "release(prod): 2.0.0",
        "feat: Add feature A",
        "fix: Fix bug B",
        "release(prod): 1.0.0",
        "feat: Never read",
        "feat: Never read either",
    )
    scanner = ChangelogScanner(pager, ScannerOptions(page_size=2))
    scanner.get_changelog()

    assert pager.requests == [(1, 2), (2, 2)]
    assert scanner.pages_loaded == 2


def test_end_of_history_is_not_requested_twice():
    pager = make_pager("release(prod): 1.0.0", "feat: Add feature A")
    scanner = ChangelogScanner(pager, ScannerOptions(page_size=5))
    scanner.get_changelog()
    assert pager.requests == [(1, 5), (2, 5)]


def test_transport_errors_are_forwarded():
    class FailingPager(ListHistoryPager):
        def fetch_page(self, page_index, page_size):
            if page_index == 2:
                raise ConnectionError("network down")
            return super().fetch_page(page_index, page_size)

    pager = FailingPager(ListHistoryPager.from_messages(["release(prod): 2.0.0", "feat: Add feature A"]).commits)
    scanner = ChangelogScanner(pager, ScannerOptions(page_size=1))
    with pytest.raises(ConnectionError, match="network down"):
        scanner.get_changelog()


def test_scope_option_selects_release_line():
    pager = make_pager(
        "release(staging): 2.1.0",
        "feat: Staging only feature",
        "release(prod): 2.0.0",
        "fix: Fix bug B",
        "release(prod): 1.0.0",
    )
    result = ChangelogScanner(pager, ScannerOptions(scope="PROD")).get_changelog()
    assert result.version == "2.0.0"
    assert descriptions(result) == ["Fix bug B"]


def test_custom_marker_type():
    pager = make_pager(
        "deploy(eu): 7.2.0",
        "fix: Fix bug B",
        "release(eu): 7.1.5",
        "deploy(eu): 7.1.0",
    )
    result = ChangelogScanner(pager, ScannerOptions(marker_type="Deploy")).get_changelog()
    assert result.version == "7.2.0"
    assert descriptions(result) == ["7.1.5", "Fix bug B"]


def test_max_pages_limits_the_scan():
    pager = make_pager(
        "release(prod): 2.0.0",
        "feat: Add feature A",
        "fix: Fix bug B",
        "chore: Beyond the limit",
    )
    scanner = ChangelogScanner(pager, ScannerOptions(page_size=2, max_pages=1))
    result = scanner.get_changelog()
    assert descriptions(result) == ["Add feature A"]
    assert pager.requests == [(1, 2)]


def test_changelog_can_only_be_taken_once():
    scanner = ChangelogScanner(make_pager("release(prod): 1.0.0"))
    scanner.get_changelog()
    with pytest.raises(ChangelogStateError) as exc_info:
        scanner.get_changelog()
    assert exc_info.value.code == "ALREADY_CONSUMED"


def test_version_can_only_be_resolved_once():
    scanner = ChangelogScanner(make_pager("release(prod): 2.0.0", "release(prod): 1.0.0"))
    scanner.resolve_latest_version()
    with pytest.raises(ChangelogStateError) as exc_info:
        scanner.resolve_version("1.0.0")
    assert exc_info.value.code == "ALREADY_RESOLVED"


def test_marker_is_unavailable_before_resolution():
    scanner = ChangelogScanner(make_pager("release(prod): 1.0.0"))
    with pytest.raises(ChangelogStateError) as exc_info:
        scanner.resolved_version
    assert exc_info.value.code == "NOT_RESOLVED"


def test_empty_version_is_rejected():
    with pytest.raises(ValueError):
        ChangelogScanner(make_pager("release(prod): 1.0.0")).resolve_version("  ")


def test_result_is_immutable():
    result = ChangelogScanner(make_pager("release(prod): 1.0.0", "feat: Add feature A")).get_changelog()
    with pytest.raises(Exception):
        result.version = "9.9.9"
    assert isinstance(result.commits, tuple)


def test_build_changelog_helper():
    pager = make_pager("release(prod): 2.0.0", "fix: Fix bug B", "release(prod): 1.0.0", "feat: Add feature A")
    result = build_changelog(pager, version="1.0.0")
    assert result.version == "1.0.0"
    assert descriptions(result) == ["Add feature A"]


def test_unwritable_metrics_do_not_abort_the_scan(tmp_path, monkeypatch, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    monkeypatch.setattr(Config, "METRICS_ROOT", str(blocker / "metrics"))
    pager = make_pager("Merge branch x", "release(prod): 1.0.0", "feat: Add login.", "release(prod): 0.9.0")

    scanner = ChangelogScanner(pager, ScannerOptions(page_size=2))
    result = scanner.get_changelog()

    assert result.version == "1.0.0"
    assert descriptions(result) == ["Add login."]
    assert scanner.skipped_commits == 1
    assert pager.requests == [(1, 2), (2, 2)]
    assert "Failed to record metric" in caplog.text


def test_scope_option_passes_over_unscoped_markers():
    pager = make_pager("release: 9.9.9", "feat: Add login.", "release(prod): 1.0.0", "fix: Fix bug B")
    result = ChangelogScanner(pager, ScannerOptions(scope="prod")).get_changelog()
    assert result.version == "1.0.0"
    assert descriptions(result) == ["Fix bug B"]
