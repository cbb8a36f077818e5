"""Tests for settings loading, validation and updates."""

from pathlib import Path

import pytest
import yaml

from tiered_backup.config.settings import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    BackupSettings,
    load_settings,
    resolve_config_path,
    save_settings,
    update_setting,
)
from tiered_backup.core.exceptions import ConfigurationError

FULL_CONFIG = """
interval: 1D2H30M
root-dir: /srv/minecraft
target-save-paths:
  - world
  - world_nether
output-dir: /var/backups/mc
archive-prefix: World
exclude-dirs: [cache]
exclude-files: [usercache.json]
exclude-extensions: [.log]
progress-every-files: 100
buffer-size-kb: 128
max-backups: 5
notify-players: false
retention:
  max-total: 12
  tiers:
    - name: recent
      window: 1D
      spacings: [30M, 4H, 8H, 12H]
    - name: daily
      window: 7D
      keep: 4
      min-spacing: 1D
      growth-multiplier: 1.5
freeze-commands: ["rcon save-off"]
resume-commands: ["rcon save-on"]
notifications:
  console: false
  webhook-url: https://hooks.example.com/backup
unknown-key: ignored
"""


def write_config(directory: Path, content: str) -> Path:
    path = directory / "tiered-backup.yaml"
    path.write_text(content)
    return path


# =============================================================================
# Loading
# =============================================================================


class TestLoadSettings:
    """Tests for load_settings."""

    def test_missing_file_uses_defaults(self, temp_dir: Path) -> None:
        settings = load_settings(temp_dir / "absent.yaml")

        assert settings.interval == "6H"
        assert settings.interval_seconds() == 6 * 3600
        assert settings.output_dir == "backups"
        assert settings.max_backups == 10
        assert settings.progress_every_files == 500
        assert settings.buffer_size_kb == 64
        assert settings.notify_players is True
        assert settings.retention.tiers == []

    def test_full_config(self, temp_dir: Path) -> None:
        """Test that every hyphenated key maps onto the settings model."""
        settings = load_settings(write_config(temp_dir, FULL_CONFIG))

        assert settings.interval_seconds() == 95400
        assert settings.targets() == ["world", "world_nether"]
        assert settings.resolve_output_dir() == Path("/var/backups/mc")
        assert settings.archive_prefix == "World"
        assert settings.max_backups == 5
        assert settings.notify_players is False
        assert settings.retention.max_total == 12
        assert settings.freeze_commands == ["rcon save-off"]
        assert settings.notifications.console is False
        assert settings.notifications.webhook_url == "https://hooks.example.com/backup"

    def test_tiers_converted(self, temp_dir: Path) -> None:
        settings = load_settings(write_config(temp_dir, FULL_CONFIG))

        recent, daily = settings.retention_tiers()

        assert recent.name == "recent"
        assert recent.window_seconds == 86400
        assert recent.spacings == (1800, 14400, 28800, 43200)
        assert daily.keep == 4
        assert daily.min_spacing_seconds == 86400
        assert daily.growth == 1.5

    def test_unnamed_tier_gets_position_label(self) -> None:
        settings = BackupSettings.model_validate({"retention": {"tiers": [{"keep": 2}]}})
        assert settings.retention_tiers()[0].name == "tier-1"

    def test_exclusion_set(self, temp_dir: Path) -> None:
        exclusions = load_settings(write_config(temp_dir, FULL_CONFIG)).exclusion_set()

        assert exclusions.excludes_dir("Cache")
        assert exclusions.excludes_file("usercache.json")
        assert exclusions.excludes_file("latest.log")
        assert exclusions.excludes_file("session.lock")

    def test_legacy_target_key(self, temp_dir: Path) -> None:
        settings = load_settings(write_config(temp_dir, "target-save-dir: [world]\n"))
        assert settings.targets() == ["world"]

    def test_relative_output_under_root(self, temp_dir: Path) -> None:
        settings = BackupSettings(root_dir=str(temp_dir), output_dir="backups")

        assert settings.resolve_output_dir() == temp_dir.resolve() / "backups"
        state_file = settings.resolve_state_file()
        assert state_file == temp_dir.resolve() / "backups" / ".backup-state.json"

    def test_explicit_state_file(self, temp_dir: Path) -> None:
        settings = BackupSettings(state_file=str(temp_dir / "state.json"))
        assert settings.resolve_state_file() == temp_dir / "state.json"

    def test_invalid_interval_rejected(self, temp_dir: Path) -> None:
        """Test that a bad interval fails at load time."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(write_config(temp_dir, "interval: '30'\n"))

        assert exc_info.value.config_key == "interval"

    def test_invalid_tier_duration_rejected(self, temp_dir: Path) -> None:
        content = "retention:\n  tiers:\n    - window: 7X\n"

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(write_config(temp_dir, content))

        assert exc_info.value.config_key == "retention.tiers[0]"

    def test_negative_tier_keep_rejected(self, temp_dir: Path) -> None:
        content = "retention:\n  tiers:\n    - window: 1D\n    - keep: -1\n"

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(write_config(temp_dir, content))

        assert exc_info.value.config_key == "retention.tiers[1]"

    def test_unknown_tier_field_rejected(self, temp_dir: Path) -> None:
        content = "retention:\n  tiers:\n    - window: 1D\n      kep: 3\n"

        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_settings(write_config(temp_dir, content))

    def test_malformed_yaml(self, temp_dir: Path) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(write_config(temp_dir, "interval: [unclosed\n"))

        assert "config_file" in exc_info.value.details

    def test_non_mapping_root(self, temp_dir: Path) -> None:
        with pytest.raises(ConfigurationError, match="mapping"):
            load_settings(write_config(temp_dir, "- just\n- a list\n"))

    def test_empty_file_uses_defaults(self, temp_dir: Path) -> None:
        settings = load_settings(write_config(temp_dir, ""))
        assert settings.interval == "6H"


class TestConfigPath:
    """Tests for resolve_config_path."""

    def test_explicit_path_wins(self, temp_dir: Path, monkeypatch) -> None:
        monkeypatch.setenv(CONFIG_ENV_VAR, str(temp_dir / "env.yaml"))
        assert resolve_config_path(temp_dir / "cli.yaml") == temp_dir / "cli.yaml"

    def test_environment_variable(self, temp_dir: Path, monkeypatch) -> None:
        monkeypatch.setenv(CONFIG_ENV_VAR, str(temp_dir / "env.yaml"))
        assert resolve_config_path() == temp_dir / "env.yaml"

    def test_default(self, monkeypatch) -> None:
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert resolve_config_path() == DEFAULT_CONFIG_PATH


# =============================================================================
# Updates
# =============================================================================


class TestUpdateSetting:
    """Tests for update_setting and save_settings."""

    def test_set_interval(self) -> None:
        updated = update_setting(BackupSettings(), "interval", "3H")
        assert updated.interval_seconds() == 10800

    def test_set_interval_invalid(self) -> None:
        with pytest.raises(ConfigurationError, match="1D2H30M"):
            update_setting(BackupSettings(), "interval", "3 hours")

    def test_set_interval_non_ascii_digit(self) -> None:
        """Test that superscript digits are a configuration error, not a crash."""
        with pytest.raises(ConfigurationError):
            update_setting(BackupSettings(), "interval", "²h")

    def test_set_output_dir(self) -> None:
        assert update_setting(BackupSettings(), "OUTPUT-DIR", "/tmp/b").output_dir == "/tmp/b"

    def test_set_max_backups(self) -> None:
        assert update_setting(BackupSettings(), "max-backups", "0").max_backups == 0

        with pytest.raises(ConfigurationError):
            update_setting(BackupSettings(), "max-backups", "many")

    @pytest.mark.parametrize("value,expected", [("true", True), ("off", False), ("YES", True)])
    def test_set_notify_players(self, value: str, expected: bool) -> None:
        assert update_setting(BackupSettings(), "notify-players", value).notify_players is expected

    def test_unknown_key(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown key"):
            update_setting(BackupSettings(), "root-dir", "/")

    def test_original_unchanged(self) -> None:
        settings = BackupSettings()
        update_setting(settings, "max-backups", "3")
        assert settings.max_backups == 10

    def test_save_round_trip(self, temp_dir: Path) -> None:
        """Test that saved settings load back with hyphenated keys."""
        path = temp_dir / "conf" / "tiered-backup.yaml"
        settings = update_setting(load_settings(path), "interval", "45S")

        save_settings(settings, path)
        data = yaml.safe_load(path.read_text())
        reloaded = load_settings(path)

        assert data["interval"] == "45S"
        assert "max-backups" in data
        assert reloaded.interval_seconds() == 45
