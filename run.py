#!/usr/bin/env python3
"""
Restart Guard - Entry Point

Monitors a Kubernetes deployment for excessive pod restarts, scales it
down to zero once the restart count exceeds the threshold, and keeps
its own log file rotated and pruned.

Usage:
    python run.py [--namespace NAMESPACE] [--deployment NAME] [--threshold N] [--dry-run] [--in-cluster]
"""

import argparse
import logging
import signal
import sys
import threading

from kubernetes import config

from restart_guard import config as defaults
from restart_guard.cluster_client import KubectlBackend, KubernetesBackend, RetryingClusterClient
from restart_guard.config import MonitorConfig
from restart_guard.errors import ConfigError
from restart_guard.log_manager import LogRotator, configure_logging
from restart_guard.monitor import LoopState, RestartMonitor
from restart_guard.utils import parse_duration, parse_size

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_KUBE_CONFIG = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Restart Guard - Scale down a deployment whose pods restart too often"
    )
    parser.add_argument(
        "--namespace", "-n",
        default=defaults.DEFAULT_NAMESPACE,
        help=f"Namespace of the deployment (default: {defaults.DEFAULT_NAMESPACE})"
    )
    parser.add_argument(
        "--deployment", "-d",
        default=defaults.DEFAULT_DEPLOYMENT,
        help=f"Deployment to guard (default: {defaults.DEFAULT_DEPLOYMENT})"
    )
    parser.add_argument(
        "--selector", "-l",
        default=None,
        help="Pod label selector (default: app=<deployment>)"
    )
    parser.add_argument(
        "--threshold", "-t",
        type=int,
        default=defaults.DEFAULT_MAX_RESTARTS,
        help=f"Scale down once total restarts exceed this (default: {defaults.DEFAULT_MAX_RESTARTS})"
    )
    parser.add_argument(
        "--interval",
        type=parse_duration,
        default=defaults.POLL_INTERVAL_SECONDS,
        help=f"Time between checks, e.g. 60, 5m (default: {defaults.POLL_INTERVAL_SECONDS}s)"
    )
    parser.add_argument(
        "--failure-backoff",
        type=parse_duration,
        default=defaults.FAILURE_BACKOFF_SECONDS,
        help=f"Wait after a failed cluster call (default: {defaults.FAILURE_BACKOFF_SECONDS}s)"
    )
    parser.add_argument(
        "--log-file",
        default=defaults.DEFAULT_LOG_FILE,
        help=f"Log file path (default: {defaults.DEFAULT_LOG_FILE})"
    )
    parser.add_argument(
        "--rotate-size",
        type=parse_size,
        default=defaults.LOG_ROTATE_BYTES,
        help="Rotate the log file at this size, e.g. 1Mi, 512K (default: 1Mi)"
    )
    parser.add_argument(
        "--retention",
        type=parse_duration,
        default=defaults.LOG_RETENTION_SECONDS,
        help="Keep rotated log files this long, e.g. 7d, 12h (default: 7d)"
    )
    parser.add_argument(
        "--retry-count",
        type=int,
        default=defaults.RETRY_COUNT,
        help=f"Attempts per cluster call (default: {defaults.RETRY_COUNT})"
    )
    parser.add_argument(
        "--retry-delay",
        type=parse_duration,
        default=defaults.RETRY_DELAY_SECONDS,
        help=f"Wait between attempts (default: {defaults.RETRY_DELAY_SECONDS}s)"
    )
    parser.add_argument(
        "--backoff-multiplier",
        type=float,
        default=defaults.BACKOFF_MULTIPLIER,
        help="Multiply the retry delay by this after each failure (default: 1.0, fixed delay)"
    )
    parser.add_argument(
        "--request-timeout",
        type=parse_duration,
        default=defaults.REQUEST_TIMEOUT_SECONDS,
        help=f"Timeout for each cluster call (default: {defaults.REQUEST_TIMEOUT_SECONDS}s)"
    )
    parser.add_argument(
        "--backend",
        choices=defaults.BACKENDS,
        default="api",
        help="Cluster access: Kubernetes API client or kubectl CLI (default: api)"
    )
    parser.add_argument(
        "--in-cluster",
        action="store_true",
        help="Use in-cluster config (for running inside Kubernetes)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run in dry-run mode (deployment is not scaled)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose/debug logging"
    )
    return parser


def config_from_args(args: argparse.Namespace) -> MonitorConfig:
    """Build and validate the monitor configuration from CLI arguments."""
    return MonitorConfig(
        namespace=args.namespace,
        deployment=args.deployment,
        selector=args.selector,
        threshold=args.threshold,
        poll_interval=args.interval,
        failure_backoff=args.failure_backoff,
        log_file=args.log_file,
        rotate_bytes=args.rotate_size,
        retention=args.retention,
        retry_count=args.retry_count,
        retry_delay=args.retry_delay,
        backoff_multiplier=args.backoff_multiplier,
        request_timeout=args.request_timeout,
        backend=args.backend,
        dry_run=args.dry_run,
    ).validate()


def load_kube_config(in_cluster: bool) -> None:
    if in_cluster:
        config.load_incluster_config()
        logger.info("Loaded in-cluster configuration")
    else:
        config.load_kube_config()
        logger.info("Loaded kubeconfig from default location")


def build_monitor(monitor_config: MonitorConfig, file_handler=None, stop_event=None) -> RestartMonitor:
    """Wire the backend, retrying client and log rotator into a monitor."""
    stop_event = stop_event or threading.Event()

    if monitor_config.backend == "kubectl":
        backend = KubectlBackend(request_timeout=monitor_config.request_timeout)
    else:
        backend = KubernetesBackend(request_timeout=monitor_config.request_timeout)

    cluster = RetryingClusterClient(
        backend,
        retry_count=monitor_config.retry_count,
        retry_delay=monitor_config.retry_delay,
        backoff_multiplier=monitor_config.backoff_multiplier,
        wait=stop_event.wait
    )
    rotator = LogRotator(
        monitor_config.log_file,
        rotate_bytes=monitor_config.rotate_bytes,
        retention=monitor_config.retention,
        handler=file_handler
    )
    return RestartMonitor(monitor_config, cluster, rotator, stop_event=stop_event)


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        monitor_config = config_from_args(args)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    file_handler = configure_logging(monitor_config.log_file, verbose=args.verbose)

    # kubectl reads its own kubeconfig
    if monitor_config.backend == "api":
        try:
            load_kube_config(args.in_cluster)
        except Exception as e:
            logger.error(f"Failed to load Kubernetes config: {e}")
            return EXIT_KUBE_CONFIG

    monitor = build_monitor(monitor_config, file_handler=file_handler)

    def handle_signal(signum, frame):
        monitor.stop()

    signal.signal(signal.SIGTERM, handle_signal)

    try:
        final_state = monitor.run()
    except KeyboardInterrupt:
        monitor.stop()
        logger.info("Monitor stopped by user")
        return EXIT_OK

    if final_state is LoopState.HALTED:
        logger.info("Deployment scaled down, exiting")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
