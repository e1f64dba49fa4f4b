"""
Unit tests for firing log rules: cone lookup, titles, warnings, validation.
"""

import datetime as dt

import pytest

from src.modules.firing import rules
from src.modules.shared.exceptions import ValidationError

NOW = 1_700_000_000.0


class TestCones:
    @pytest.mark.parametrize(
        "temperature, cone",
        [
            (1070, "04"),
            (1060, "04"),
            (1050, "05"),
            (1000, "06"),
            (960, "07"),
            (915, "08"),
            (900, "09"),
            (885, "10"),
        ],
    )
    def test_known_ranges(self, temperature, cone):
        assert rules.cone_from_temperature(temperature) == cone

    def test_outside_table(self):
        assert rules.cone_from_temperature(1280) == "1280°C"

    def test_title(self):
        title = rules.generate_firing_log_title(1000, dt.date(2025, 3, 4))

        assert title == "Cone 06, Mar 04, 2025"

    def test_display_title_prefers_stored_title(self):
        assert rules.display_title({"title": "Test tiles"}) == "Test tiles"

    def test_display_title_falls_back_to_cone(self):
        log = {"title": None, "target_temperature": 1000, "date": "2025-03-04"}

        assert rules.display_title(log) == "Cone 06, Mar 04, 2025"


class TestWarnings:
    def test_quiet_firing(self):
        assert rules.calculate_warnings(150, 1000, 1010, 8, now=NOW) == []

    def test_high_ramp_rate(self):
        (warning,) = rules.calculate_warnings(250, 1000, 1000, 8, now=NOW)

        assert warning["type"] == "high_ramp_rate"
        assert warning["severity"] == "warning"
        assert warning["triggered_at"] == int(NOW * 1000)

    def test_critical_ramp_rate(self):
        (warning,) = rules.calculate_warnings(301, 1000, 1000, 8, now=NOW)

        assert warning["severity"] == "critical"

    def test_ramp_rate_threshold_is_exclusive(self):
        assert rules.calculate_warnings(200, 1000, 1050, 24, now=NOW) == []

    def test_overshoot_and_duration(self):
        warnings = rules.calculate_warnings(100, 1000, 1060, 25, now=NOW)

        assert [w["type"] for w in warnings] == ["temperature_exceeded", "duration_exceeded"]
        assert warnings[0]["message"] == "Temperature exceeded target by 60°C"


class TestNewLog:
    def _payload(self, **overrides):
        data = {
            "kiln_name": "Skutt",
            "firing_type": "bisque",
            "target_temperature": 1000,
            "actual_temperature": 1005,
            "date": "2025-03-04",
        }
        data.update(overrides)
        return data

    def test_defaults(self):
        values = rules.validate_new_log(self._payload(), now=NOW)

        assert values["title"] == "Cone 06, Mar 04, 2025"
        assert values["firing_duration_hours"] == 0
        assert values["ramp_rate"] == 0
        assert values["warning_flags"] == []
        assert values["notes"] is None
        assert values["temperature_entries"] is None

    def test_warnings_computed(self):
        values = rules.validate_new_log(self._payload(ramp_rate=350), now=NOW)

        assert values["warning_flags"][0]["severity"] == "critical"

    def test_provided_warnings_kept(self):
        flags = [{"type": "high_ramp_rate", "message": "m"}]

        values = rules.validate_new_log(self._payload(ramp_rate=350, warning_flags=flags))

        assert values["warning_flags"] == flags

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"kiln_name": ""}, "kiln_name"),
            ({"firing_type": "pit"}, "firing_type"),
            ({"target_temperature": 0}, "target_temperature"),
            ({"actual_temperature": None}, "actual_temperature"),
            ({"actual_temperature": 1000.5}, "actual_temperature"),
            ({"target_temperature": 1222.2}, "target_temperature"),
            ({"ramp_rate": -5}, "ramp_rate"),
            ({"warning_flags": "none"}, "warning_flags"),
        ],
    )
    def test_rejects(self, overrides, field):
        with pytest.raises(ValidationError) as excinfo:
            rules.validate_new_log(self._payload(**overrides), now=NOW)

        assert excinfo.value.field == field


class TestLogUpdates:
    def test_keeps_truthy_fields(self):
        values = rules.validate_log_updates({"notes": "Even", "title": "", "ramp_rate": 0})

        assert values == {"notes": "Even"}

    def test_numbers_validated(self):
        with pytest.raises(ValidationError):
            rules.validate_log_updates({"actual_temperature": "hot"})

    def test_temperatures_must_be_whole_degrees(self):
        with pytest.raises(ValidationError):
            rules.validate_log_updates({"target_temperature": 999.9})

        assert rules.validate_log_updates({"target_temperature": 1000.0}) == {
            "target_temperature": 1000
        }

    def test_touches_warning_inputs(self):
        assert rules.touches_warning_inputs({"ramp_rate": 210})
        assert not rules.touches_warning_inputs({"notes": "x"})
