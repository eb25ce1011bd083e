"""pingwatch configuration: YAML file, ``.env`` and CLI overrides."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

DEFAULT_CONFIG_ENV = "PINGWATCH_CONFIG"
DEFAULT_CONFIG_FILE = "pingwatch.yaml"


class ConfigValidationError(ValueError):
    """Raised when a configuration value is out of range."""


@dataclass(frozen=True)
class MonitorConfig:
    primary_target: str = "8.8.8.8"
    fallback_target: str = "1.1.1.1"
    interval_ms: int = 1000
    payload_bytes: int = 32
    critical_ms: int = 100
    quiet_threshold: int = 10
    history_size: int = 100
    mute: bool = False
    log_path: str = "logs/pingwatch.log"
    log_level: str = "INFO"
    log_retention_days: int = 7
    webhook_url: str = ""
    alert_cooldown_s: float = 300.0
    status_enabled: bool = False
    status_host: str = "127.0.0.1"
    status_port: int = 8085

    @classmethod
    def from_yaml(cls, path: str) -> MonitorConfig:
        with open(path, "r") as f:
            raw: dict[str, Any] = yaml.safe_load(f) or {}
        targets = raw.get("targets") or {}
        probe = raw.get("probe") or {}
        thresholds = raw.get("thresholds") or {}
        stats = raw.get("stats") or {}
        console = raw.get("console") or {}
        log_cfg = raw.get("logging") or {}
        alerts = raw.get("alerts") or {}
        status = raw.get("status") or {}
        return cls(
            primary_target=targets.get("primary", cls.primary_target),
            fallback_target=targets.get("fallback", cls.fallback_target),
            interval_ms=probe.get("interval_ms", cls.interval_ms),
            payload_bytes=probe.get("payload_bytes", cls.payload_bytes),
            critical_ms=thresholds.get("critical_ms", cls.critical_ms),
            quiet_threshold=thresholds.get("quiet_threshold", cls.quiet_threshold),
            history_size=stats.get("history_size", cls.history_size),
            mute=console.get("mute", cls.mute),
            log_path=log_cfg.get("log_path", cls.log_path),
            log_level=log_cfg.get("level", cls.log_level),
            log_retention_days=log_cfg.get("retention_days", cls.log_retention_days),
            webhook_url=alerts.get("webhook_url", cls.webhook_url),
            alert_cooldown_s=alerts.get("cooldown_s", cls.alert_cooldown_s),
            status_enabled=status.get("enabled", cls.status_enabled),
            status_host=status.get("host", cls.status_host),
            status_port=status.get("port", cls.status_port),
        )

    @classmethod
    def load(cls, path: str | None = None) -> MonitorConfig:
        """Resolve the config file (argument, ``PINGWATCH_CONFIG``, cwd) or use defaults."""
        load_dotenv()
        config_path = path or os.environ.get(DEFAULT_CONFIG_ENV, DEFAULT_CONFIG_FILE)
        if Path(config_path).exists():
            return cls.from_yaml(config_path)
        if path:
            raise FileNotFoundError(f"config file not found: {path}")
        return cls()


def validate_config(cfg: MonitorConfig) -> None:
    if not cfg.primary_target or not cfg.fallback_target:
        raise ConfigValidationError("primary and fallback targets are required")
    if cfg.primary_target == cfg.fallback_target:
        raise ConfigValidationError("fallback target must differ from the primary target")
    if cfg.interval_ms <= 0:
        raise ConfigValidationError(f"interval_ms must be > 0, got {cfg.interval_ms}")
    if cfg.critical_ms <= 0:
        raise ConfigValidationError(f"critical_ms must be > 0, got {cfg.critical_ms}")
    if cfg.history_size <= 0:
        raise ConfigValidationError(f"history_size must be > 0, got {cfg.history_size}")
    if cfg.quiet_threshold <= 0:
        raise ConfigValidationError(f"quiet_threshold must be > 0, got {cfg.quiet_threshold}")
    if not 0 <= cfg.payload_bytes <= 65500:
        raise ConfigValidationError(f"payload_bytes must be in 0..65500, got {cfg.payload_bytes}")
    if not 1 <= cfg.status_port <= 65535:
        raise ConfigValidationError(f"status port must be in 1..65535, got {cfg.status_port}")
    if cfg.alert_cooldown_s < 0:
        raise ConfigValidationError("alert cooldown must not be negative")
