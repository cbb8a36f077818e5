"""
Backup settings.

Settings are read from a YAML file whose keys use the hyphenated names
of the original plugin configuration (``target-save-paths``,
``max-backups``, ``retention.tiers`` ...). A missing file yields the
defaults. Every duration literal is validated at load time so a bad
configuration is rejected before any I/O happens.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from tiered_backup.archiver.exclusions import ExclusionSet
from tiered_backup.core.exceptions import ConfigurationError
from tiered_backup.retention.models import RetentionTier

from .duration import parse_duration_seconds

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TIERED_BACKUP_CONFIG"
DEFAULT_CONFIG_PATH = Path("tiered-backup.yaml")


class TierConfig(BaseModel):
    """A retention tier as written in the config file."""

    model_config = {"populate_by_name": True, "extra": "forbid"}

    name: str | None = None
    window: str | None = Field(default=None, description="Window duration, e.g. 7D")
    keep: int | None = Field(default=None, description="Artifacts to keep in this tier")
    spacings: list[str] = Field(default_factory=list, description="Explicit gaps")
    min_spacing: str | None = Field(default=None, alias="min-spacing")
    growth_multiplier: float = Field(default=1.0, alias="growth-multiplier")

    def to_tier(self, index: int = 0) -> RetentionTier:
        """
        Convert to the engine's tier model.

        Raises:
            ConfigurationError: If a duration or numeric field is invalid
        """
        key = f"retention.tiers[{index}]"
        try:
            return RetentionTier(
                name=self.name or f"tier-{index + 1}",
                window_seconds=parse_duration_seconds(self.window) if self.window else None,
                keep=self.keep,
                spacings=tuple(parse_duration_seconds(s) for s in self.spacings),
                min_spacing_seconds=parse_duration_seconds(self.min_spacing) if self.min_spacing else 0,
                growth=self.growth_multiplier,
            )
        except ConfigurationError as e:
            raise ConfigurationError(
                f"Invalid duration in retention tier: {e.message}",
                config_key=key,
                details=dict(e.details),
            ) from e
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid retention tier",
                config_key=key,
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e


class RetentionConfig(BaseModel):
    """Tiered retention block."""

    model_config = {"populate_by_name": True, "extra": "forbid"}

    max_total: int | None = Field(default=None, alias="max-total")
    tiers: list[TierConfig] = Field(default_factory=list)


class NotificationConfig(BaseModel):
    """Notification channels enabled for backup messages."""

    model_config = {"populate_by_name": True, "extra": "forbid"}

    console: bool = True
    webhook_url: str | None = Field(default=None, alias="webhook-url")
    webhook_timeout_seconds: int = Field(default=10, alias="webhook-timeout-seconds")


class BackupSettings(BaseModel):
    """Complete backup configuration."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    interval: str = Field(default="6H", description="Auto-backup interval; 0S disables")
    root_dir: str = Field(default=".", alias="root-dir")
    target_save_paths: list[str] = Field(default_factory=list, alias="target-save-paths")
    target_save_dir: list[str] = Field(
        default_factory=list,
        alias="target-save-dir",
        description="Legacy name for target-save-paths",
    )
    output_dir: str = Field(default="backups", alias="output-dir")
    archive_prefix: str = Field(default="Backup", alias="archive-prefix")
    archive_extension: str = Field(default="zip", alias="archive-extension")
    exclude_dirs: list[str] = Field(default_factory=list, alias="exclude-dirs")
    exclude_files: list[str] = Field(default_factory=list, alias="exclude-files")
    exclude_extensions: list[str] = Field(default_factory=list, alias="exclude-extensions")
    progress_every_files: int = Field(default=500, alias="progress-every-files")
    buffer_size_kb: int = Field(default=64, alias="buffer-size-kb")
    max_backups: int = Field(default=10, alias="max-backups")
    notify_players: bool = Field(default=True, alias="notify-players")
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    freeze_commands: list[str] = Field(default_factory=list, alias="freeze-commands")
    resume_commands: list[str] = Field(default_factory=list, alias="resume-commands")
    command_timeout_seconds: float = Field(default=60.0, alias="command-timeout-seconds")
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    state_file: str | None = Field(default=None, alias="state-file")

    def targets(self) -> list[str]:
        """Configured targets, falling back to the legacy key."""
        return list(self.target_save_paths or self.target_save_dir)

    def interval_seconds(self) -> int:
        """Auto-backup interval in seconds (0 disables scheduling)."""
        return parse_duration_seconds(self.interval)

    def resolve_root(self) -> Path:
        return Path(self.root_dir).expanduser().resolve()

    def resolve_output_dir(self) -> Path:
        """Output directory; relative paths are taken from the root."""
        output = Path(self.output_dir).expanduser()
        if not output.is_absolute():
            output = self.resolve_root() / output
        return output

    def resolve_state_file(self) -> Path:
        if self.state_file:
            return Path(self.state_file).expanduser()
        return self.resolve_output_dir() / ".backup-state.json"

    def exclusion_set(self) -> ExclusionSet:
        return ExclusionSet.from_lists(
            dirs=self.exclude_dirs,
            files=self.exclude_files,
            extensions=self.exclude_extensions,
        )

    def retention_tiers(self) -> list[RetentionTier]:
        """Engine tiers; raises ConfigurationError on the first invalid tier."""
        return [tier.to_tier(i) for i, tier in enumerate(self.retention.tiers)]

    def validate_all(self) -> None:
        """
        Check every derived value.

        Raises:
            ConfigurationError: If the interval or any tier is invalid
        """
        try:
            self.interval_seconds()
        except ConfigurationError as e:
            raise ConfigurationError(
                f"Invalid interval: {e.message}", config_key="interval", details=dict(e.details)
            ) from e
        self.retention_tiers()

    def to_yaml_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


def resolve_config_path(path: Path | None = None) -> Path:
    """Config path from the argument, the environment, or the default."""
    if path is not None:
        return path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_settings(path: Path | None = None) -> BackupSettings:
    """
    Load and validate settings from YAML.

    Args:
        path: Config file; see resolve_config_path for the fallbacks

    Returns:
        Validated BackupSettings (defaults when the file does not exist)

    Raises:
        ConfigurationError: If the file is unreadable or invalid
    """
    config_path = resolve_config_path(path)
    if not config_path.exists():
        logger.debug(f"Config file {config_path} not found, using defaults")
        settings = BackupSettings()
        settings.validate_all()
        return settings

    try:
        data = yaml.safe_load(config_path.read_text()) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read config: {e}", config_file=str(config_path)) from e

    if not isinstance(data, dict):
        raise ConfigurationError("Config root must be a mapping", config_file=str(config_path))

    try:
        settings = BackupSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid configuration",
            config_file=str(config_path),
            details={"errors": [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]},
        ) from e

    settings.validate_all()
    return settings


def save_settings(settings: BackupSettings, path: Path | None = None) -> Path:
    """Write settings back to YAML and return the path written."""
    config_path = resolve_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    content = yaml.dump(settings.to_yaml_dict(), default_flow_style=False, sort_keys=False)
    config_path.write_text(content)
    return config_path


SETTABLE_KEYS = ("interval", "output-dir", "max-backups", "notify-players")

_TRUE_WORDS = {"true", "yes", "on", "1"}
_FALSE_WORDS = {"false", "no", "off", "0"}


def update_setting(settings: BackupSettings, key: str, value: str) -> BackupSettings:
    """
    Return a copy of ``settings`` with one operator-settable key changed.

    Raises:
        ConfigurationError: If the key is unknown or the value invalid
    """
    key = key.lower()
    if key == "interval":
        try:
            parse_duration_seconds(value)
        except ConfigurationError as e:
            raise ConfigurationError(
                f"Invalid interval, expected e.g. 1D2H30M, 3H, 5M or 45S: {e.message}",
                config_key=key,
            ) from e
        return settings.model_copy(update={"interval": value})
    if key == "output-dir":
        return settings.model_copy(update={"output_dir": value})
    if key == "max-backups":
        try:
            count = int(value)
        except ValueError as e:
            raise ConfigurationError("max-backups must be a number", config_key=key) from e
        return settings.model_copy(update={"max_backups": count})
    if key == "notify-players":
        lowered = value.strip().lower()
        if lowered not in _TRUE_WORDS | _FALSE_WORDS:
            raise ConfigurationError("notify-players must be true or false", config_key=key)
        return settings.model_copy(update={"notify_players": lowered in _TRUE_WORDS})
    raise ConfigurationError(
        f"Unknown key, expected one of: {', '.join(SETTABLE_KEYS)}", config_key=key
    )
