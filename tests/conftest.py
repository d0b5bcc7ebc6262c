import pytest

from configs.config import Config


@pytest.fixture(autouse=True)
def metrics_root(tmp_path, monkeypatch):
    root = tmp_path / "metrics"
    monkeypatch.setattr(Config, "METRICS_ROOT", str(root))
    monkeypatch.setattr(Config, "METRICS_ENABLED", True)
    return root
