"""Configuration settings for the Restart Guard."""

import math
import threading
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigError

# Target workload
DEFAULT_NAMESPACE = "sre"
DEFAULT_DEPLOYMENT = "swype-app"
SELECTOR_LABEL = "app"

# Restart threshold: scale down once the summed restart count exceeds this
DEFAULT_MAX_RESTARTS = 3

# Loop timing (seconds)
POLL_INTERVAL_SECONDS = 60
FAILURE_BACKOFF_SECONDS = 60

# Log file settings
DEFAULT_LOG_FILE = "./swype_monitoring.log"
LOG_ROTATE_BYTES = 1024 * 1024  # 1Mi
LOG_RETENTION_SECONDS = 7 * 24 * 60 * 60  # 7 days
ROTATED_SUFFIX = ".old"

# Retry settings for cluster calls
RETRY_COUNT = 3
RETRY_DELAY_SECONDS = 10
BACKOFF_MULTIPLIER = 1.0  # 1.0 = fixed delay
REQUEST_TIMEOUT_SECONDS = 30

# Events containing this keyword are highlighted after a scale-down
NETWORK_EVENT_KEYWORD = "network"

BACKENDS = ("api", "kubectl")


@dataclass(frozen=True)
class MonitorConfig:
    """Immutable settings for one monitor run."""
    namespace: str = DEFAULT_NAMESPACE
    deployment: str = DEFAULT_DEPLOYMENT
    selector: Optional[str] = None
    threshold: int = DEFAULT_MAX_RESTARTS
    poll_interval: float = POLL_INTERVAL_SECONDS
    failure_backoff: float = FAILURE_BACKOFF_SECONDS
    log_file: str = DEFAULT_LOG_FILE
    rotate_bytes: int = LOG_ROTATE_BYTES
    retention: float = LOG_RETENTION_SECONDS
    retry_count: int = RETRY_COUNT
    retry_delay: float = RETRY_DELAY_SECONDS
    backoff_multiplier: float = BACKOFF_MULTIPLIER
    request_timeout: float = REQUEST_TIMEOUT_SECONDS
    backend: str = "api"
    dry_run: bool = False

    @property
    def label_selector(self) -> str:
        """Selector used to find the deployment's pods."""
        return self.selector or f"{SELECTOR_LABEL}={self.deployment}"

    def validate(self) -> "MonitorConfig":
        """
        Check the settings before the monitor starts.

        Returns:
            The same config, so calls can be chained

        Raises:
            ConfigError: If any setting is out of range
        """
        if not self.namespace:
            raise ConfigError("namespace must not be empty")
        if not self.deployment:
            raise ConfigError("deployment must not be empty")
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, int):
            raise ConfigError(f"threshold must be an integer, got {self.threshold!r}")
        if self.threshold < 0:
            raise ConfigError(f"threshold must be >= 0, got {self.threshold}")
        for name in ("poll_interval", "failure_backoff", "retention", "retry_delay",
                     "backoff_multiplier", "request_timeout"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ConfigError(f"{name.replace('_', ' ')} must be a finite number, got {value}")
        for name in ("poll_interval", "failure_backoff", "retry_delay"):
            if getattr(self, name) > threading.TIMEOUT_MAX:
                raise ConfigError(f"{name.replace('_', ' ')} is too large, got {getattr(self, name)}")
        if self.poll_interval <= 0:
            raise ConfigError(f"poll interval must be positive, got {self.poll_interval}")
        if self.failure_backoff <= 0:
            raise ConfigError(f"failure backoff must be positive, got {self.failure_backoff}")
        if self.rotate_bytes <= 0:
            raise ConfigError(f"rotation size must be positive, got {self.rotate_bytes}")
        if self.retention < 0:
            raise ConfigError(f"retention must be >= 0, got {self.retention}")
        if self.retry_count < 1:
            raise ConfigError(f"retry count must be >= 1, got {self.retry_count}")
        if self.retry_delay < 0:
            raise ConfigError(f"retry delay must be >= 0, got {self.retry_delay}")
        if self.backoff_multiplier < 1:
            raise ConfigError(f"backoff multiplier must be >= 1, got {self.backoff_multiplier}")
        if self.request_timeout <= 0:
            raise ConfigError(f"request timeout must be positive, got {self.request_timeout}")
        if self.backend not in BACKENDS:
            raise ConfigError(f"unknown backend {self.backend!r}, expected one of {', '.join(BACKENDS)}")
        if not self.log_file:
            raise ConfigError("log file path must not be empty")
        return self
