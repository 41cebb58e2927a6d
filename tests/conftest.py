"""Shared fixtures for Restart Guard tests."""

import logging

import pytest

from restart_guard.cluster_client import ClusterEvent, RetryingClusterClient
from restart_guard.config import MonitorConfig

from tests.fakes import RecordingWait


@pytest.fixture
def monitor_config(tmp_path):
    return MonitorConfig(
        namespace="sre",
        deployment="swype-app",
        threshold=3,
        poll_interval=60,
        failure_backoff=30,
        log_file=str(tmp_path / "swype_monitoring.log"),
        rotate_bytes=1024,
        retention=7 * 24 * 60 * 60,
        retry_count=3,
        retry_delay=10,
    ).validate()


@pytest.fixture
def make_client():
    def _make(backend, retry_count=3, retry_delay=10, backoff_multiplier=1.0, wait=None):
        return RetryingClusterClient(
            backend,
            retry_count=retry_count,
            retry_delay=retry_delay,
            backoff_multiplier=backoff_multiplier,
            wait=wait or RecordingWait()
        )
    return _make


@pytest.fixture
def restore_root_logging():
    """Drop the handlers configure_logging installs on the root logger."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if type(handler).__module__.startswith("_pytest"):
            continue
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)


@pytest.fixture
def sample_events():
    return [
        ClusterEvent(timestamp="2024-04-21T10:00:00+00:00", message="Back-off restarting failed container"),
        ClusterEvent(timestamp="2024-04-21T10:01:00+00:00", message="Network is unreachable", reason="FailedSync"),
    ]
