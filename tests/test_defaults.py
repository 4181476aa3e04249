#!/usr/bin/env python3
"""Tests for the default maintenance templates."""

import pytest

from garage import ValidationError, VehicleType
from garage.defaults import applicable_defaults, load_defaults, load_schema


class TestLoadDefaults:
    """Tests for load_defaults."""

    def test_builtin_templates(self):
        defaults = load_defaults()
        oil = next(d for d in defaults if d.type_id == "oil_change")
        assert oil.name == "Oil Change"
        assert oil.miles_interval == 5000
        assert oil.months_interval == 6
        assert oil.vehicle_types == [VehicleType.CAR, VehicleType.PICKUP]
        assert len({d.type_id for d in defaults}) == len(defaults)

    def test_custom_file(self, tmp_path):
        path = tmp_path / "defaults.yaml"
        path.write_text("""
defaults:
  - typeId: wipers
    name: Wiper Blades
    category: Exterior
    milesInterval: 10000
    monthsInterval: 12
""")
        defaults = load_defaults(path)
        assert len(defaults) == 1
        assert defaults[0].vehicle_types is None
        assert defaults[0].description == ""

    def test_non_positive_interval_rejected(self, tmp_path):
        path = tmp_path / "defaults.yaml"
        path.write_text("""
defaults:
  - typeId: wipers
    name: Wiper Blades
    category: Exterior
    milesInterval: 0
    monthsInterval: 12
""")
        with pytest.raises(ValidationError):
            load_defaults(path)

    def test_unknown_vehicle_type_rejected(self, tmp_path):
        path = tmp_path / "defaults.yaml"
        path.write_text("""
defaults:
  - typeId: wipers
    name: Wiper Blades
    category: Exterior
    milesInterval: 10000
    monthsInterval: 12
    vehicleTypes: [boat]
""")
        with pytest.raises(ValidationError):
            load_defaults(path)


class TestApplicableDefaults:
    """Tests for applicable_defaults."""

    @pytest.fixture
    def defaults(self):
        return load_defaults()

    @pytest.mark.parametrize(
        "vehicle_type,count",
        [(VehicleType.CAR, 10), (VehicleType.PICKUP, 11), (VehicleType.SEMI, 11)],
    )
    def test_counts_per_type(self, defaults, vehicle_type, count):
        assert len(applicable_defaults(defaults, vehicle_type)) == count

    def test_untyped_templates_apply_to_all(self, defaults):
        for vehicle_type in VehicleType:
            ids = {d.type_id for d in applicable_defaults(defaults, vehicle_type)}
            assert "brake_inspection" in ids


class TestLoadSchema:
    """Tests for load_schema."""

    def test_named_schemas(self):
        assert load_schema("defaults")["required"] == ["defaults"]
        assert "vehicles" in load_schema("store")["properties"]
