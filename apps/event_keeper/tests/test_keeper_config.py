"""Tests for event keeper configuration loading."""

import pytest

from event_keeper.config import EventKeeperConfig, load_config

from keeper_helpers import PROGRAM_ID


ENV_NAMES = (
    "EVENTKEEPER_CONFIG_PATH",
    "EVENTKEEPER_WS_URL",
    "EVENTKEEPER_PROGRAM_ID",
    "EVENTKEEPER_COMMITMENT",
    "EVENTKEEPER_DATABASE_URL",
    "EVENTKEEPER_HEALTH_LOG_INTERVAL",
    "CLUSTER_WS_URL",
    "DATABASE_URL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's environment and any .env file."""
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestEventKeeperConfig:
    def test_defaults(self):
        config = EventKeeperConfig()

        assert config.program_id == PROGRAM_ID
        assert config.commitment == "confirmed"
        assert config.health_log_interval == 60.0
        assert config.backoff_initial == 1.0
        assert config.backoff_max == 30.0
        assert config.create_tables is True

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("EVENTKEEPER_WS_URL", "wss://rpc.example.com")
        monkeypatch.setenv("EVENTKEEPER_HEALTH_LOG_INTERVAL", "15")

        config = EventKeeperConfig()

        assert config.ws_url == "wss://rpc.example.com"
        assert config.health_log_interval == 15.0

    def test_legacy_env_names(self, monkeypatch):
        monkeypatch.setenv("CLUSTER_WS_URL", "wss://legacy.example.com")
        monkeypatch.setenv("DATABASE_URL", "postgresql://keeper:pw@db/twob")

        config = EventKeeperConfig()

        assert config.ws_url == "wss://legacy.example.com"
        assert config.database_url == "postgresql://keeper:pw@db/twob"

    def test_invalid_program_id(self):
        with pytest.raises(ValueError, match="program_id"):
            EventKeeperConfig(program_id="not-a-pubkey")

    def test_invalid_commitment(self):
        with pytest.raises(ValueError, match="commitment"):
            EventKeeperConfig(commitment="recent")

    def test_invalid_ws_url(self):
        with pytest.raises(ValueError, match="ws_url"):
            EventKeeperConfig(ws_url="https://api.mainnet-beta.solana.com")

    def test_unsupported_database_backend(self):
        with pytest.raises(ValueError, match="Unsupported database backend"):
            EventKeeperConfig(database_url="mysql://keeper@db/twob")

    def test_backoff_max_below_initial(self):
        with pytest.raises(ValueError, match="backoff_max"):
            EventKeeperConfig(backoff_initial=5.0, backoff_max=1.0)


class TestLoadConfig:
    def test_env_only_when_no_file(self, monkeypatch):
        monkeypatch.setenv("EVENTKEEPER_COMMITMENT", "finalized")

        config = load_config()

        assert config.commitment == "finalized"

    def test_yaml_overrides_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EVENTKEEPER_COMMITMENT", "finalized")
        path = tmp_path / "keeper.yaml"
        path.write_text("commitment: processed\nhealth_log_interval: 5\n")

        config = load_config(str(path))

        assert config.commitment == "processed"
        assert config.health_log_interval == 5.0

    def test_default_search_path(self, tmp_path):
        (tmp_path / "conf").mkdir()
        (tmp_path / "conf" / "event_keeper.yaml").write_text("ws_url: ws://node:8900\n")

        assert load_config().ws_url == "ws://node:8900"

    def test_config_path_env(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("backoff_initial: 2\nbackoff_max: 8\n")
        monkeypatch.setenv("EVENTKEEPER_CONFIG_PATH", str(path))

        config = load_config()

        assert (config.backoff_initial, config.backoff_max) == (2.0, 8.0)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_config(str(path)).commitment == "confirmed"

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("ws_url: [unclosed\n")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config(str(path))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="mapping"):
            load_config(str(path))

    def test_validation_error_is_value_error(self, tmp_path):
        path = tmp_path / "bad_values.yaml"
        path.write_text("health_log_interval: 0\n")

        with pytest.raises(ValueError):
            load_config(str(path))
