# tests/unit/test_config.py

import pytest

from credfeed.core.config import AppConfig, StoreBackend, load_config
from credfeed.exceptions import ConfigError
from credfeed.model.schema import FeedOrder

ENV_VARS = [
    "CREDFEED_STORE_BACKEND",
    "NEO4J_URI",
    "NEO4J_USERNAME",
    "NEO4J_PASSWORD",
    "NEO4J_DATABASE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadConfig:
    """Test YAML loading, defaults and environment overrides."""

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")

        assert config.store.backend == StoreBackend.MEMORY
        assert config.scoring.max_initial == 5.0
        assert config.scoring.high_threshold == 3.5
        assert config.feed.order == FeedOrder.RECENCY

    def test_yaml_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "store:\n"
            "  backend: neo4j\n"
            "neo4j:\n"
            "  uri: bolt://graph:7687\n"
            "  password: hunter2\n"
            "scoring:\n"
            "  high_threshold: 4.0\n"
            "feed:\n"
            "  order: id\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.store.backend == StoreBackend.NEO4J
        assert config.neo4j.uri == "bolt://graph:7687"
        assert config.neo4j.password.get_secret_value() == "hunter2"
        assert "hunter2" not in repr(config)
        assert config.scoring.high_threshold == 4.0
        assert config.feed.order == FeedOrder.ID

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("neo4j:\n  uri: bolt://from-file:7687\n", encoding="utf-8")
        monkeypatch.setenv("NEO4J_URI", "bolt://from-env:7687")
        monkeypatch.setenv("NEO4J_PASSWORD", "s3cret")
        monkeypatch.setenv("CREDFEED_STORE_BACKEND", "NEO4J")

        config = load_config(path)

        assert config.neo4j.uri == "bolt://from-env:7687"
        assert config.neo4j.password.get_secret_value() == "s3cret"
        assert config.store.backend == StoreBackend.NEO4J

    def test_env_applies_without_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NEO4J_DATABASE", "feeds")
        assert load_config(tmp_path / "absent.yaml").neo4j.database == "feeds"

    def test_invalid_value_raises_config_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("scoring:\n  max_initial: -1\n", encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        assert "errors" in exc_info.value.details

    def test_unknown_backend_raises_config_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("store:\n  backend: postgres\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == AppConfig()
