"""
Configuration module for kreconcile.

Loads configuration from environment variables. Retry and polling budgets
are plain values threaded into each call; there is no process-wide state.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from kreconcile.retry import AttemptPolicy


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class RetryConfig:
    """Retry and polling budgets."""

    retry_interval: float = 0.05  # seconds between attempts
    retry_timeout: float = 2.0  # wall-clock budget for write retries
    readiness_timeout: float = 600.0  # budget for convergence polling
    max_attempts: int = 5  # used where retries are bounded by count

    def __post_init__(self):
        if self.retry_interval < 0:
            raise ValueError("retry_interval must not be negative")
        if self.retry_timeout <= 0 or self.readiness_timeout <= 0:
            raise ValueError("retry_timeout and readiness_timeout must be positive")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            retry_interval=float(os.getenv("RETRY_INTERVAL", "0.05")),
            retry_timeout=float(os.getenv("RETRY_TIMEOUT", "2")),
            readiness_timeout=float(os.getenv("READINESS_TIMEOUT", "600")),
            max_attempts=int(os.getenv("MAX_ATTEMPTS", "5")),
        )

    def update_policy(self) -> AttemptPolicy:
        """Policy for read-modify-write retries, bounded by retry_timeout."""
        return AttemptPolicy(interval=self.retry_interval, timeout=self.retry_timeout)

    def attempt_policy(self) -> AttemptPolicy:
        """Policy bounded by max_attempts."""
        return AttemptPolicy(
            interval=self.retry_interval, max_attempts=self.max_attempts
        )

    def readiness_policy(self) -> AttemptPolicy:
        """Policy for readiness and deletion polling."""
        return AttemptPolicy(
            interval=self.retry_interval, timeout=self.readiness_timeout
        )


@dataclass
class KubernetesConfig:
    """Kubernetes API connection configuration."""

    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    in_cluster: bool = False

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            kubeconfig=os.getenv("KUBECONFIG") or None,
            context=os.getenv("KUBE_CONTEXT") or None,
            in_cluster=_env_bool("KUBE_IN_CLUSTER"),
        )


@dataclass
class Config:
    """Main configuration object."""

    retry: RetryConfig = field(default_factory=RetryConfig)
    kubernetes: KubernetesConfig = field(default_factory=KubernetesConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls):
        """Load all configuration from environment variables."""
        return cls(
            retry=RetryConfig.from_env(),
            kubernetes=KubernetesConfig.from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @classmethod
    def default(cls):
        """Return default configuration."""
        return cls()
