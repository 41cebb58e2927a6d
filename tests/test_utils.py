"""Tests for parsing helpers."""

from datetime import datetime
from types import SimpleNamespace

import pytest

from restart_guard.errors import MalformedResponseError
from restart_guard.utils import (
    format_seconds,
    is_network_event,
    parse_duration,
    parse_size,
    rotated_name,
    rotated_pattern,
    sum_restart_counts,
    sum_restart_counts_json,
)


def make_pod(*restart_counts):
    statuses = [SimpleNamespace(restart_count=count) for count in restart_counts]
    return SimpleNamespace(status=SimpleNamespace(container_statuses=statuses or None))


class TestParseSize:
    def test_binary_units(self):
        assert parse_size("1Mi") == 1048576
        assert parse_size("4Ki") == 4096

    def test_decimal_units(self):
        assert parse_size("512K") == 512000

    def test_plain_bytes(self):
        assert parse_size("2048") == 2048

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_size("lots")


class TestParseDuration:
    def test_units(self):
        assert parse_duration("7d") == 604800
        assert parse_duration("12h") == 43200
        assert parse_duration("30m") == 1800
        assert parse_duration("15s") == 15

    def test_plain_seconds(self):
        assert parse_duration("45") == 45.0
        assert parse_duration("2.5") == 2.5

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_duration("soon")


def test_format_seconds():
    assert format_seconds(60) == "60"
    assert format_seconds(60.0) == "60"
    assert format_seconds(2.5) == "2.5"


class TestSumRestartCounts:
    def test_sums_all_containers_of_all_pods(self):
        pods = [make_pod(1, 2), make_pod(0), make_pod(4)]
        assert sum_restart_counts(pods) == 7

    def test_empty_result_is_zero(self):
        assert sum_restart_counts([]) == 0

    def test_pod_without_statuses_counts_zero(self):
        assert sum_restart_counts([make_pod()]) == 0

    def test_non_numeric_count_is_malformed(self):
        with pytest.raises(MalformedResponseError):
            sum_restart_counts([make_pod("many")])

    def test_missing_count_is_malformed(self):
        with pytest.raises(MalformedResponseError):
            sum_restart_counts([make_pod(None)])

    def test_negative_count_is_malformed(self):
        with pytest.raises(MalformedResponseError):
            sum_restart_counts([make_pod(-1)])


class TestSumRestartCountsJson:
    def test_sums_items(self):
        doc = {"items": [
            {"status": {"containerStatuses": [{"restartCount": 2}, {"restartCount": 1}]}},
            {"status": {"containerStatuses": [{"restartCount": "3"}]}},
        ]}
        assert sum_restart_counts_json(doc) == 6

    def test_missing_items_is_zero(self):
        assert sum_restart_counts_json({}) == 0
        assert sum_restart_counts_json({"items": []}) == 0

    def test_pending_pod_without_status(self):
        assert sum_restart_counts_json({"items": [{"metadata": {"name": "p"}}]}) == 0

    def test_not_an_object(self):
        with pytest.raises(MalformedResponseError):
            sum_restart_counts_json(["items"])

    def test_bad_count(self):
        doc = {"items": [{"status": {"containerStatuses": [{"restartCount": 1.5}]}}]}
        with pytest.raises(MalformedResponseError):
            sum_restart_counts_json(doc)


class TestNetworkEvents:
    def test_matches_case_insensitively(self):
        assert is_network_event("NetworkPlugin cni failed")
        assert is_network_event("failed to set up pod network")

    def test_ignores_other_events(self):
        assert not is_network_event("Back-off restarting failed container")
        assert not is_network_event("")
        assert not is_network_event(None)


class TestRotatedName:
    def test_timestamped_name(self, tmp_path):
        log_file = str(tmp_path / "app.log")
        name = rotated_name(log_file, datetime(2024, 4, 21, 15, 30, 0))
        assert name == f"{log_file}.old.20240421-153000"

    def test_same_second_gets_generation_suffix(self, tmp_path):
        log_file = str(tmp_path / "app.log")
        now = datetime(2024, 4, 21, 15, 30, 0)
        (tmp_path / "app.log.old.20240421-153000").write_text("x")
        (tmp_path / "app.log.old.20240421-153000.1").write_text("x")
        assert rotated_name(log_file, now) == f"{log_file}.old.20240421-153000.2"

    def test_pattern_uses_basename(self, tmp_path):
        assert rotated_pattern(str(tmp_path / "app.log")) == "app.log.old*"
