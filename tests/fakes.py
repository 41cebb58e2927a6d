"""Test doubles for the cluster backend and sleeps."""

from restart_guard.cluster_client import ClusterBackend
from restart_guard.errors import ClusterCommandError


class FakeBackend(ClusterBackend):
    """Scripted backend: each call pops the next outcome for its operation."""

    def __init__(self, restart_counts=None, scale_results=None, events=None):
        self.restart_counts = list(restart_counts or [])
        self.scale_results = list(scale_results or [])
        self.events = events if events is not None else []
        self.calls = []

    @staticmethod
    def _next(outcomes, default):
        outcome = outcomes.pop(0) if outcomes else default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def read_restart_count(self, namespace, selector):
        self.calls.append(("read", namespace, selector))
        return self._next(self.restart_counts, 0)

    def scale_deployment(self, namespace, name, replicas):
        self.calls.append(("scale", namespace, name, replicas))
        return self._next(self.scale_results, f"deployment.apps/{name} scaled")

    def list_events(self, namespace):
        self.calls.append(("events", namespace))
        if isinstance(self.events, BaseException):
            raise self.events
        return self.events

    def count(self, kind):
        return sum(1 for call in self.calls if call[0] == kind)


class RecordingWait:
    """Stand-in for Event.wait that records delays instead of sleeping."""

    def __init__(self, stop_after=None):
        self.delays = []
        self.stop_after = stop_after

    def __call__(self, seconds):
        self.delays.append(seconds)
        return self.stop_after is not None and len(self.delays) >= self.stop_after


def failure(message="connection refused"):
    return ClusterCommandError(message)
