#!/usr/bin/env python3
"""Tests for merging personal and fleet collections."""

from datetime import datetime, timedelta, timezone

import pytest
from garage import ServiceLog, Vehicle
from garage.merge import (
    FLEET,
    PERSONAL,
    MergedCollection,
    merge_by_id,
    merge_logs,
    merge_vehicles,
    resolve_active_vehicle_id,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def make_vehicle(id, days_ago=0, nickname=None):
    return Vehicle(id, "Subaru", "BRZ", 2015, 48000, NOW - timedelta(days=days_ago), nickname=nickname)


def make_log(id, days_ago):
    date = NOW - timedelta(days=days_ago)
    return ServiceLog(id, "v1", "t1", "Oil Change", date, 48000, date)


class TestMergeById:
    """Tests for merge_by_id."""

    def test_overlapping_ids_deduplicated(self):
        personal = [make_vehicle("1"), make_vehicle("2")]
        fleet = [make_vehicle("2"), make_vehicle("3")]
        merged = merge_by_id(personal, fleet)
        assert [v.id for v in merged] == ["1", "2", "3"]

    def test_first_source_wins(self):
        personal = [make_vehicle("2", nickname="mine")]
        fleet = [make_vehicle("2", nickname="fleet copy")]
        assert merge_by_id(personal, fleet)[0].nickname == "mine"

    def test_empty_sources(self):
        assert merge_by_id([], []) == []


class TestSortedMerges:
    """Tests for merge_vehicles and merge_logs ordering."""

    def test_vehicles_newest_first(self):
        merged = merge_vehicles([make_vehicle("old", 30)], [make_vehicle("new", 1), make_vehicle("mid", 10)])
        assert [v.id for v in merged] == ["new", "mid", "old"]

    def test_logs_most_recent_first(self):
        merged = merge_logs([make_log("a", 20), make_log("b", 2)], [make_log("c", 5), make_log("b", 2)])
        assert [l.id for l in merged] == ["b", "c", "a"]


class TestResolveActiveVehicleId:
    """Tests for resolve_active_vehicle_id."""

    def test_keeps_previous_when_present(self):
        vehicles = [make_vehicle("1"), make_vehicle("2")]
        assert resolve_active_vehicle_id("2", vehicles) == "2"

    def test_falls_back_to_first_when_removed(self):
        vehicles = [make_vehicle("1"), make_vehicle("3")]
        assert resolve_active_vehicle_id("2", vehicles) == "1"

    def test_first_when_nothing_selected(self):
        assert resolve_active_vehicle_id(None, [make_vehicle("1")]) == "1"

    def test_none_when_no_vehicles(self):
        assert resolve_active_vehicle_id("2", []) is None


class TestMergedCollection:
    """Tests for MergedCollection."""

    @pytest.fixture
    def view(self):
        return MergedCollection("vehicles", merge=merge_vehicles)

    def test_either_side_updates_view(self, view):
        view.update(PERSONAL, [make_vehicle("1", 5)])
        assert [v.id for v in view.items] == ["1"]
        view.update(FLEET, [make_vehicle("2", 1), make_vehicle("1", 5)])
        assert [v.id for v in view.items] == ["2", "1"]
        view.update(PERSONAL, [])
        assert [v.id for v in view.items] == ["2", "1"]

    def test_listeners_notified(self, view):
        seen = []
        unsubscribe = view.subscribe(lambda items: seen.append([v.id for v in items]))
        view.update(PERSONAL, [make_vehicle("1")])
        unsubscribe()
        view.update(FLEET, [make_vehicle("2")])
        assert seen == [["1"]]

    def test_failed_source_degrades_to_empty(self, view):
        view.update(PERSONAL, [make_vehicle("1")])
        view.update(FLEET, [make_vehicle("2")])
        view.fail(FLEET, RuntimeError("missing index"))
        assert [v.id for v in view.items] == ["1"]
        assert view.source(FLEET) == []

    def test_unknown_source_rejected(self, view):
        with pytest.raises(KeyError):
            view.update("other", [])
