"""pingwatch: failover-aware latency monitor."""
from .classifier import classify
from .config import ConfigValidationError, MonitorConfig, validate_config
from .models import EventKind, FailureKind, MonitorEvent, MonitorState
from .monitor import FailoverMonitor
from .recovery import CheckStatus, RecoveryChecker, RecoveryHandleError
from .stats import RollingStats

__all__ = [
    "FailoverMonitor",
    "MonitorConfig",
    "MonitorState",
    "MonitorEvent",
    "EventKind",
    "FailureKind",
    "RollingStats",
    "RecoveryChecker",
    "RecoveryHandleError",
    "CheckStatus",
    "ConfigValidationError",
    "classify",
    "validate_config",
]
