"""Cluster access for the Restart Guard.

The monitor talks to the cluster through a ``ClusterBackend`` with three
operations. ``RetryingClusterClient`` wraps a backend with bounded retry
and turns every failure into a ``ClusterResult`` instead of an exception.
"""

import json
import logging
import subprocess
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Union

from kubernetes import client

from .errors import ClusterCommandError, MalformedResponseError
from .utils import format_seconds, sum_restart_counts, sum_restart_counts_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadRestartCount:
    """Sum of container restarts for pods matching a label selector."""
    namespace: str
    selector: str

    def __str__(self) -> str:
        return f"get pods --namespace={self.namespace} -l {self.selector}"


@dataclass(frozen=True)
class ScaleDeployment:
    """Set a deployment's replica count."""
    namespace: str
    name: str
    replicas: int

    def __str__(self) -> str:
        return f"scale deployment/{self.name} --replicas={self.replicas} --namespace={self.namespace}"


@dataclass(frozen=True)
class ListEvents:
    """Recent events in a namespace."""
    namespace: str

    def __str__(self) -> str:
        return f"get events --namespace {self.namespace}"


Operation = Union[ReadRestartCount, ScaleDeployment, ListEvents]


@dataclass(frozen=True)
class ClusterEvent:
    """A cluster event reduced to the fields the monitor reports."""
    timestamp: str
    message: str
    reason: str = ""


@dataclass
class ClusterResult:
    """Outcome of a retried cluster operation."""
    operation: Operation
    ok: bool
    output: Any = None
    error: Optional[BaseException] = None
    attempts: int = 0


class ClusterBackend:
    """Interface for the cluster operations the monitor needs."""

    def read_restart_count(self, namespace: str, selector: str) -> int:
        raise NotImplementedError

    def scale_deployment(self, namespace: str, name: str, replicas: int) -> str:
        raise NotImplementedError

    def list_events(self, namespace: str) -> List[ClusterEvent]:
        raise NotImplementedError


def _event_time(event) -> str:
    stamp = event.last_timestamp or event.event_time or getattr(event.metadata, "creation_timestamp", None)
    return stamp.isoformat() if stamp is not None else "<none>"


class KubernetesBackend(ClusterBackend):
    """Backend using the official Kubernetes Python client."""

    def __init__(
        self,
        request_timeout: float,
        core_api: Optional[client.CoreV1Api] = None,
        apps_api: Optional[client.AppsV1Api] = None
    ):
        """
        Initialize the backend.

        Args:
            request_timeout: Timeout in seconds for every API request
            core_api: CoreV1Api instance (created if omitted)
            apps_api: AppsV1Api instance (created if omitted)
        """
        self.request_timeout = request_timeout
        self.v1 = core_api or client.CoreV1Api()
        self.apps = apps_api or client.AppsV1Api()

    def read_restart_count(self, namespace: str, selector: str) -> int:
        pods = self.v1.list_namespaced_pod(
            namespace=namespace,
            label_selector=selector,
            _request_timeout=self.request_timeout
        )
        return sum_restart_counts(pods.items or [])

    def scale_deployment(self, namespace: str, name: str, replicas: int) -> str:
        self.apps.patch_namespaced_deployment_scale(
            name=name,
            namespace=namespace,
            body={"spec": {"replicas": replicas}},
            _request_timeout=self.request_timeout
        )
        return f"deployment.apps/{name} scaled"

    def list_events(self, namespace: str) -> List[ClusterEvent]:
        events = self.v1.list_namespaced_event(
            namespace=namespace,
            _request_timeout=self.request_timeout
        )
        return [
            ClusterEvent(
                timestamp=_event_time(event),
                message=event.message or "",
                reason=event.reason or ""
            )
            for event in events.items or []
        ]


class KubectlBackend(ClusterBackend):
    """Backend shelling out to the kubectl CLI."""

    def __init__(self, request_timeout: float, kubectl: str = "kubectl"):
        self.request_timeout = request_timeout
        self.kubectl = kubectl

    def _run(self, args: List[str]) -> str:
        cmd = [self.kubectl] + args
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            completed = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.request_timeout
            )
        except subprocess.TimeoutExpired:
            raise ClusterCommandError(
                f"kubectl {' '.join(args)} timed out after {format_seconds(self.request_timeout)}s"
            )
        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout or "").strip()
            raise ClusterCommandError(
                f"kubectl {' '.join(args)} exited with {completed.returncode}: {detail}"
            )
        return completed.stdout

    def _run_json(self, args: List[str]) -> Any:
        output = self._run(args)
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"kubectl returned invalid JSON: {e}")

    def read_restart_count(self, namespace: str, selector: str) -> int:
        pod_list = self._run_json(["get", "pods", f"--namespace={namespace}", "-l", selector, "-o", "json"])
        return sum_restart_counts_json(pod_list)

    def scale_deployment(self, namespace: str, name: str, replicas: int) -> str:
        output = self._run(["scale", f"deployment/{name}", f"--replicas={replicas}", f"--namespace={namespace}"])
        return output.strip()

    def list_events(self, namespace: str) -> List[ClusterEvent]:
        event_list = self._run_json(["get", "events", "--namespace", namespace, "-o", "json"])
        if not isinstance(event_list, dict):
            raise MalformedResponseError("Expected an event list object")

        events = []
        for item in event_list.get("items") or []:
            events.append(ClusterEvent(
                timestamp=item.get("lastTimestamp") or item.get("eventTime") or "<none>",
                message=item.get("message") or "",
                reason=item.get("reason") or ""
            ))
        return events


class RetryingClusterClient:
    """Runs cluster operations with a bounded number of attempts."""

    def __init__(
        self,
        backend: ClusterBackend,
        retry_count: int = 3,
        retry_delay: float = 10,
        backoff_multiplier: float = 1.0,
        wait: Optional[Callable[[float], bool]] = None
    ):
        """
        Initialize the client.

        Args:
            backend: Backend performing the actual calls
            retry_count: Total attempts per operation, first one included
            retry_delay: Seconds to wait after the first failed attempt
            backoff_multiplier: Factor applied to the delay after each failure
            wait: Sleep function returning True if shutdown was requested
        """
        self.backend = backend
        self.retry_count = retry_count
        self.retry_delay = retry_delay
        self.backoff_multiplier = backoff_multiplier
        self.wait = wait or threading.Event().wait

    def _call(self, operation: Operation) -> Any:
        if isinstance(operation, ReadRestartCount):
            return self.backend.read_restart_count(operation.namespace, operation.selector)
        if isinstance(operation, ScaleDeployment):
            return self.backend.scale_deployment(operation.namespace, operation.name, operation.replicas)
        if isinstance(operation, ListEvents):
            return self.backend.list_events(operation.namespace)
        raise TypeError(f"Unsupported operation: {operation!r}")

    def execute(self, operation: Operation) -> ClusterResult:
        """
        Run an operation, retrying failed attempts.

        Returns:
            ClusterResult with the output, or the last error once all
            attempts are exhausted
        """
        delay = self.retry_delay
        last_error = None

        for attempt in range(1, self.retry_count + 1):
            try:
                output = self._call(operation)
                return ClusterResult(operation=operation, ok=True, output=output, attempts=attempt)
            except Exception as e:
                last_error = e

            if attempt >= self.retry_count:
                logger.warning(f"Attempt {attempt} failed: {last_error}")
                break

            logger.warning(f"Attempt {attempt} failed! Retrying in {format_seconds(delay)} seconds... ({last_error})")
            if self.wait(delay):
                logger.info("Shutdown requested, abandoning retries")
                return ClusterResult(operation=operation, ok=False, error=last_error, attempts=attempt)
            delay *= self.backoff_multiplier

        logger.error(f"Command failed after {self.retry_count} attempts: {operation}")
        return ClusterResult(operation=operation, ok=False, error=last_error, attempts=self.retry_count)
