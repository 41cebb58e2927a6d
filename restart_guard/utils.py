"""Utility functions for parsing settings and cluster responses."""

import glob
import os
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List

from .config import NETWORK_EVENT_KEYWORD, ROTATED_SUFFIX
from .errors import MalformedResponseError


def parse_size(size_string: str) -> int:
    """
    Parse a size string to bytes.

    Examples:
        "1Mi" -> 1048576
        "512K" -> 512000
        "2048" -> 2048
    """
    if not size_string:
        return 0

    size_string = str(size_string).strip()

    units = {
        'Ki': 1024,
        'Mi': 1024 ** 2,
        'Gi': 1024 ** 3,
        'K': 1000,
        'M': 1000 ** 2,
        'G': 1000 ** 3,
    }

    for suffix, multiplier in units.items():
        if size_string.endswith(suffix):
            value = float(size_string[:-len(suffix)])
            return int(value * multiplier)

    # Plain bytes
    return int(float(size_string))


def parse_duration(duration_string: str) -> float:
    """
    Parse a duration string to seconds.

    Examples:
        "7d" -> 604800.0
        "12h" -> 43200.0
        "30m" -> 1800.0
        "45" -> 45.0
    """
    if not duration_string:
        return 0.0

    duration_string = str(duration_string).strip()

    units = {
        'd': 24 * 60 * 60,
        'h': 60 * 60,
        'm': 60,
        's': 1,
    }

    suffix = duration_string[-1]
    if suffix in units:
        return float(duration_string[:-1]) * units[suffix]
    return float(duration_string)


def format_seconds(seconds: float) -> str:
    """Render a delay the way log messages show it ("60", "2.5")."""
    if float(seconds).is_integer():
        return str(int(seconds))
    return f"{seconds:g}"


def _to_restart_count(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    raise MalformedResponseError(f"Unparsable restart count: {value!r}")


def sum_restart_counts(pods: Iterable) -> int:
    """
    Sum restart counts across all containers of the given pods.

    Works on V1Pod objects from the Kubernetes client. Pods without
    container statuses contribute 0.
    """
    total = 0
    for pod in pods:
        status = getattr(pod, "status", None)
        statuses = getattr(status, "container_statuses", None) or []
        for container in statuses:
            total += _to_restart_count(getattr(container, "restart_count", None))
    return total


def sum_restart_counts_json(pod_list: Dict[str, Any]) -> int:
    """
    Sum restart counts from a `kubectl get pods -o json` document.

    An empty or missing item list yields 0.
    """
    if not isinstance(pod_list, dict):
        raise MalformedResponseError(f"Expected a pod list object, got {type(pod_list).__name__}")

    total = 0
    for item in pod_list.get("items") or []:
        if not isinstance(item, dict):
            raise MalformedResponseError("Pod list item is not an object")
        statuses = (item.get("status") or {}).get("containerStatuses") or []
        for container in statuses:
            total += _to_restart_count(container.get("restartCount"))
    return total


def is_network_event(event_message: str) -> bool:
    """Check if an event message mentions a network problem."""
    if not event_message:
        return False
    return re.search(NETWORK_EVENT_KEYWORD, event_message, re.IGNORECASE) is not None


def rotated_name(log_file: str, now: datetime) -> str:
    """
    Pick an unused name for a rotated copy of the log file.

    Names look like "app.log.old.20240421-153000"; a numeric suffix is
    appended when a rotation already happened within the same second.
    """
    base = f"{log_file}{ROTATED_SUFFIX}.{now.strftime('%Y%m%d-%H%M%S')}"
    candidate = base
    generation = 1
    while os.path.exists(candidate):
        candidate = f"{base}.{generation}"
        generation += 1
    return candidate


def rotated_pattern(log_file: str) -> str:
    """Glob pattern matching every rotated copy of the log file."""
    return f"{glob.escape(os.path.basename(log_file))}{ROTATED_SUFFIX}*"


def network_events(events: List) -> List:
    """Filter events down to those mentioning network issues."""
    return [event for event in events if is_network_event(event.message)]
