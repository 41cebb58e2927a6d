"""Restart monitoring loop for the Restart Guard."""

import enum
import logging
import threading
from typing import Optional

from .cluster_client import (
    ClusterResult,
    ListEvents,
    ReadRestartCount,
    RetryingClusterClient,
    ScaleDeployment,
)
from .config import MonitorConfig
from .errors import InvalidTransition
from .log_manager import LogRotator
from .utils import format_seconds, network_events

logger = logging.getLogger(__name__)


class LoopState(enum.Enum):
    RUNNING = "Running"
    SCALING_DOWN = "ScalingDown"
    HALTED = "Halted"


# Scale-down is one-shot: nothing leads back to RUNNING once it starts
TRANSITIONS = {
    LoopState.RUNNING: {LoopState.RUNNING, LoopState.SCALING_DOWN},
    LoopState.SCALING_DOWN: {LoopState.SCALING_DOWN, LoopState.HALTED},
    LoopState.HALTED: set(),
}


class RestartMonitor:
    """
    Watches a deployment's restart count and scales it to zero once the
    count exceeds the threshold, then stops.
    """

    def __init__(
        self,
        config: MonitorConfig,
        cluster: RetryingClusterClient,
        rotator: LogRotator,
        stop_event: Optional[threading.Event] = None
    ):
        """
        Initialize the monitor.

        Args:
            config: Validated monitor settings
            cluster: Retrying client used for all cluster calls
            rotator: Log rotator invoked at the start of every tick
            stop_event: Event that interrupts sleeps when set
        """
        self.config = config
        self.cluster = cluster
        self.rotator = rotator
        self._stop_event = stop_event or threading.Event()
        self.state = LoopState.RUNNING
        self.last_snapshot: Optional[int] = None

    def _transition(self, target: LoopState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransition(self.state, target)
        if target is not self.state:
            logger.debug(f"State {self.state.value} -> {target.value}")
        self.state = target

    def _maintain_logs(self) -> None:
        self.rotator.maybe_rotate()
        self.rotator.prune_old()

    def check_restarts(self) -> Optional[float]:
        """Read the restart count and decide whether to scale down."""
        result = self.cluster.execute(
            ReadRestartCount(self.config.namespace, self.config.label_selector)
        )
        if not result.ok:
            logger.error(
                f"Could not read restart count for {self.config.deployment}: {result.error}. "
                f"Retrying in {format_seconds(self.config.failure_backoff)} seconds..."
            )
            return self.config.failure_backoff

        snapshot = result.output
        self.last_snapshot = snapshot
        logger.info(f"Current restart count for {self.config.deployment}: {snapshot}")

        if snapshot <= self.config.threshold:
            logger.info(
                f"Restart count within limits. Checking again in "
                f"{format_seconds(self.config.poll_interval)} seconds..."
            )
            self._transition(LoopState.RUNNING)
            return self.config.poll_interval

        logger.warning("Restart limit exceeded. Scaling down the deployment...")
        self._transition(LoopState.SCALING_DOWN)
        return None

    def scale_down(self) -> Optional[float]:
        """Scale the deployment to zero; halt once it succeeds."""
        operation = ScaleDeployment(self.config.namespace, self.config.deployment, 0)

        if self.config.dry_run:
            logger.info(f"[DRY-RUN] Would scale deployment {self.config.namespace}/{self.config.deployment} to 0")
        else:
            result = self.cluster.execute(operation)
            if not result.ok:
                logger.error(f"Error scaling down deployment, will retry... ({result.error})")
                self._transition(LoopState.SCALING_DOWN)
                return self.config.failure_backoff

        self.report_network_events()
        if self.config.dry_run:
            logger.info("[DRY-RUN] Deployment left running. Monitoring halted.")
        else:
            logger.info("Deployment scaled down due to excessive restarts. Monitoring halted.")
        self._transition(LoopState.HALTED)
        return None

    def report_network_events(self) -> ClusterResult:
        """Log recent namespace events that mention network problems."""
        logger.info("Checking for network-related issues...")
        result = self.cluster.execute(ListEvents(self.config.namespace))

        if not result.ok:
            logger.error(f"Could not list events in {self.config.namespace}: {result.error}")
            return result

        matches = network_events(result.output)
        for event in matches:
            logger.warning(f"{event.timestamp}  {event.message}")
        if not matches:
            logger.info("No network-related events found")
        return result

    def tick(self) -> Optional[float]:
        """
        Run one iteration of the loop.

        Returns:
            Seconds to sleep before the next tick, or None once halted
        """
        if self.state is LoopState.HALTED:
            return None

        self._maintain_logs()

        if self.state is LoopState.RUNNING:
            delay = self.check_restarts()
            if delay is not None:
                return delay

        # Breach detected this tick, or a previous scale-down failed
        return self.scale_down()

    def run(self) -> LoopState:
        """Run ticks until halted or stopped."""
        logger.info("=" * 60)
        logger.info("Starting Restart Guard")
        logger.info("=" * 60)
        logger.info(f"Deployment: {self.config.namespace}/{self.config.deployment}")
        logger.info(f"Selector: {self.config.label_selector}")
        logger.info(f"Restart threshold: {self.config.threshold}")
        logger.info(f"Dry run: {self.config.dry_run}")

        while not self._stop_event.is_set():
            delay = self.tick()
            if delay is None:
                break
            if self._stop_event.wait(delay):
                logger.info("Shutdown requested...")
                break

        logger.info("Script completed.")
        return self.state

    def stop(self) -> None:
        """Stop the monitor; interrupts any pending sleep."""
        self._stop_event.set()
