"""
Tiered Backup Configuration Module.

Provides the duration literal grammar and the YAML-backed settings model.
"""

from .duration import format_duration, parse_duration, parse_duration_seconds
from .settings import (
    CONFIG_ENV_VAR,
    SETTABLE_KEYS,
    BackupSettings,
    NotificationConfig,
    RetentionConfig,
    TierConfig,
    load_settings,
    resolve_config_path,
    save_settings,
    update_setting,
)

__all__ = [
    # Durations
    "parse_duration",
    "parse_duration_seconds",
    "format_duration",
    # Settings
    "BackupSettings",
    "TierConfig",
    "RetentionConfig",
    "NotificationConfig",
    "CONFIG_ENV_VAR",
    "SETTABLE_KEYS",
    "load_settings",
    "save_settings",
    "resolve_config_path",
    "update_setting",
]
