"""Tests for the sizing engine."""

import math

import pytest

from models import (
    Appliance,
    CalculationMode,
    InvalidInputError,
    InverterType,
    SizingInput,
)
from utils import (
    array_power_kwp,
    calculate_battery_capacity,
    calculate_panel_count,
    calculate_requirements,
    calculate_system,
    derive_monthly_consumption,
    format_cop,
    generate_hourly_profile,
    size_inverter,
    storage_capacity_kwh,
    validate_input,
)


class TestBillModeSizing:
    def test_reference_system(self, bill_input) -> None:
        result = calculate_system(bill_input)
        assert result.daily_consumption_wh == pytest.approx(9800)
        assert result.max_power_demand_w == pytest.approx(2450)
        assert result.number_of_panels == 6
        assert result.inverter.suggested_size_w == 3100
        assert result.inverter.suggested_breaker_amps == 170
        assert result.battery_capacity_ah == pytest.approx(816.67, abs=0.01)

    def test_requirements(self) -> None:
        req = calculate_requirements(9800, 0.75, 4.5)
        assert req["required_generation_wh"] == pytest.approx(13066.67, abs=0.01)
        assert req["total_power_needed_w"] == pytest.approx(2903.70, abs=0.01)

    def test_estimated_generation_uses_rounded_panels(self, bill_input) -> None:
        result = calculate_system(bill_input)
        assert result.estimated_generation_daily_wh == pytest.approx(6 * 550 * 4.5 * 0.75)
        assert result.estimated_generation_daily_wh >= 9800

    def test_zero_consumption(self, bill_input) -> None:
        bill_input.monthly_consumption = 0
        result = calculate_system(bill_input)
        assert result.daily_consumption_wh == 0
        assert result.number_of_panels == 1
        assert result.battery_capacity_ah == 0

    def test_deterministic(self, bill_input) -> None:
        assert calculate_system(bill_input) == calculate_system(bill_input)


class TestLoadAnalysisSizing:
    def test_single_fridge(self, load_input) -> None:
        result = calculate_system(load_input)
        assert result.daily_consumption_wh == pytest.approx(3600)
        assert result.max_power_demand_w == 500

    def test_peak_is_connected_load_above_floor(self, load_input) -> None:
        load_input.appliances.append(Appliance(id="a2", name="Microwave", power=1200, quantity=1, hours=0.2))
        result = calculate_system(load_input)
        assert result.max_power_demand_w == 1350
        assert result.daily_consumption_wh == pytest.approx(3600 + 240)

    def test_empty_inventory_keeps_floor(self, load_input) -> None:
        load_input.appliances = []
        result = calculate_system(load_input)
        assert result.daily_consumption_wh == 0
        assert result.max_power_demand_w == 500

    @pytest.mark.parametrize("field", ["power", "quantity", "hours"])
    @pytest.mark.parametrize("index", [0, 1, 2])
    @pytest.mark.parametrize("delta", [1, -1])
    def test_single_field_change_moves_consumption(self, load_input, field, index, delta) -> None:
        load_input.appliances = [
            Appliance(id="a", name="Refrigerator", power=150, quantity=1, hours=10),
            Appliance(id="b", name="LED bulb", power=10, quantity=6, hours=5),
            Appliance(id="c", name="TV", power=80, quantity=2, hours=4),
        ]
        before = calculate_system(load_input).daily_consumption_wh

        appliance = load_input.appliances[index]
        setattr(appliance, field, getattr(appliance, field) + delta)
        after = calculate_system(load_input).daily_consumption_wh

        assert (after - before) * delta > 0
        assert after == pytest.approx(sum(a.power * a.quantity * a.hours for a in load_input.appliances))

    def test_quantity_multiplies(self, load_input) -> None:
        load_input.appliances = [Appliance(id="b", name="LED bulb", power=10, quantity=8, hours=5)]
        result = calculate_system(load_input)
        assert result.daily_consumption_wh == 400


class TestPanelCount:
    @pytest.mark.parametrize("needed,panel,expected", [
        (2903.7, 550, 6),
        (550, 550, 1),
        (551, 550, 2),
        (0, 550, 1),
    ])
    def test_smallest_covering_count(self, needed, panel, expected) -> None:
        assert calculate_panel_count(needed, panel) == expected

    def test_minimality(self, bill_input) -> None:
        result = calculate_system(bill_input)
        req = calculate_requirements(result.daily_consumption_wh, 0.75, 4.5)
        panel_w = bill_input.selected_panel.power
        assert result.number_of_panels * panel_w >= req["total_power_needed_w"]
        assert (result.number_of_panels - 1) * panel_w < req["total_power_needed_w"]


class TestInverterSizing:
    @pytest.mark.parametrize("peak", [1, 480, 500, 2450, 3999, 10000])
    def test_multiples_with_margin(self, peak) -> None:
        inverter = size_inverter(peak, InverterType.OFF_GRID, 24)
        assert inverter.suggested_size_w % 100 == 0
        assert inverter.suggested_size_w >= peak * 1.25
        assert inverter.suggested_size_w - 100 < peak * 1.25
        assert inverter.suggested_breaker_amps % 10 == 0
        assert inverter.suggested_breaker_amps >= inverter.suggested_size_w / 24 * 1.25

    def test_type_labels(self) -> None:
        assert size_inverter(1000, "ON_GRID", 48).type_label == "Grid-Tie"
        assert size_inverter(1000, "HYBRID", 48).type_label == "Hybrid (Grid+Battery)"
        assert size_inverter(1000, "OFF_GRID", 48).type_label == "Off-Grid Pure Sine"

    def test_unknown_type_falls_back_to_off_grid(self) -> None:
        assert size_inverter(1000, "MICRO", 48).type_label == "Off-Grid Pure Sine"

    def test_fixed_efficiency_and_voltage(self) -> None:
        inverter = size_inverter(1000, InverterType.HYBRID, 48)
        assert inverter.efficiency == 0.92
        assert inverter.input_voltage == 48


class TestBatteryCapacity:
    def test_half_depth_of_discharge(self) -> None:
        assert calculate_battery_capacity(9800, 1, 24) == pytest.approx(9800 / 12)

    def test_scales_with_autonomy(self) -> None:
        assert calculate_battery_capacity(1000, 3, 12) == pytest.approx(3 * calculate_battery_capacity(1000, 1, 12))

    def test_no_autonomy(self) -> None:
        assert calculate_battery_capacity(5000, 0, 48) == 0


class TestDeriveMonthlyConsumption:
    def test_bill_over_rate(self) -> None:
        assert derive_monthly_consumption(250000, 850) == 294

    def test_rounds_half_up(self) -> None:
        assert derive_monthly_consumption(150, 100) == 2
        assert derive_monthly_consumption(149, 100) == 1

    @pytest.mark.parametrize("bill,rate", [
        (0, 850), (250000, 0), (-5, 850), (math.nan, 850), (math.inf, 850), (250000, math.nan),
    ])
    def test_missing_figure_returns_none(self, bill, rate) -> None:
        assert derive_monthly_consumption(bill, rate) is None


class TestValidation:
    def test_valid_input_has_no_errors(self, bill_input, load_input) -> None:
        assert validate_input(bill_input) == []
        assert validate_input(load_input) == []

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    @pytest.mark.parametrize("field", [
        "monthly_consumption", "peak_sun_hours", "system_efficiency", "battery_voltage", "autonomy_days",
    ])
    def test_non_finite_field_rejected(self, bill_input, field, value) -> None:
        setattr(bill_input, field, value)
        with pytest.raises(InvalidInputError) as exc:
            calculate_system(bill_input)
        assert len(exc.value.errors) == 1
        assert "finite number" in exc.value.errors[0]

    @pytest.mark.parametrize("value", [math.nan, math.inf])
    @pytest.mark.parametrize("field", ["power", "quantity", "hours"])
    def test_non_finite_appliance_rejected(self, load_input, field, value) -> None:
        setattr(load_input.appliances[0], field, value)
        with pytest.raises(InvalidInputError) as exc:
            calculate_system(load_input)
        assert exc.value.errors == ["Refrigerator: power, quantity and hours must be finite numbers"]

    def test_oversized_input_rejected(self, bill_input) -> None:
        bill_input.monthly_consumption = 1e308
        with pytest.raises(InvalidInputError):
            calculate_system(bill_input)

    def test_zero_peak_sun_hours(self, bill_input) -> None:
        bill_input.peak_sun_hours = 0
        with pytest.raises(InvalidInputError) as exc:
            calculate_system(bill_input)
        assert "Peak sun hours must be greater than zero" in exc.value.errors

    def test_zero_efficiency_and_voltage(self, bill_input) -> None:
        bill_input.system_efficiency = 0
        bill_input.battery_voltage = 0
        errors = validate_input(bill_input)
        assert len(errors) == 2

    def test_error_is_value_error(self, bill_input) -> None:
        bill_input.system_efficiency = 1.5
        with pytest.raises(ValueError):
            calculate_system(bill_input)

    def test_negative_appliance(self, load_input) -> None:
        load_input.appliances.append(Appliance(id="x", name="Pump", power=-10, quantity=1, hours=1))
        errors = validate_input(load_input)
        assert errors == ["Pump: power, quantity and hours cannot be negative"]

    def test_appliance_hours_cap(self, load_input) -> None:
        load_input.appliances[0].hours = 25
        errors = validate_input(load_input)
        assert errors == ["Refrigerator: usage cannot exceed 24 hours per day"]

    def test_negative_consumption(self, bill_input) -> None:
        bill_input.monthly_consumption = -1
        assert "Monthly consumption cannot be negative" in validate_input(bill_input)

    def test_results_are_finite(self, bill_input) -> None:
        result = calculate_system(bill_input)
        for value in (result.daily_consumption_wh, result.battery_capacity_ah, result.estimated_generation_daily_wh):
            assert math.isfinite(value)


class TestInputRecord:
    def test_enum_coercion(self, panel_550) -> None:
        sizing_input = SizingInput(selected_panel=panel_550, calculation_mode="LOAD_ANALYSIS", inverter_type="bogus")
        assert sizing_input.calculation_mode == CalculationMode.LOAD_ANALYSIS
        assert sizing_input.inverter_type == InverterType.OFF_GRID

    def test_to_dict_uses_plain_values(self, bill_input) -> None:
        data = bill_input.to_dict()
        assert data["calculation_mode"] == "BILL"
        assert data["inverter_type"] == "OFF_GRID"
        assert data["selected_panel"]["id"] == "cs-550"


class TestDerivedFigures:
    def test_kwp_and_kwh(self, bill_input) -> None:
        result = calculate_system(bill_input)
        assert array_power_kwp(bill_input, result) == pytest.approx(3.3)
        assert storage_capacity_kwh(bill_input, result) == pytest.approx(19.6)

    def test_hourly_profile_shape(self, bill_input) -> None:
        result = calculate_system(bill_input)
        profile = generate_hourly_profile(bill_input, result)
        assert len(profile) == 24
        assert profile[0]["hour"] == "0:00"
        assert profile[0]["production"] == 0
        assert profile[23]["production"] == 0
        assert profile[12]["production"] == max(p["production"] for p in profile)
        assert all(p["consumption"] == round(9800 / 24) for p in profile)
        assert all(p["production"] >= 0 for p in profile)


class TestFormatCop:
    def test_thousands_with_dots(self) -> None:
        assert format_cop(1250000) == "$1.250.000"

    def test_rounds_to_whole_pesos(self) -> None:
        assert format_cop(999.6) == "$1.000"
        assert format_cop(0) == "$0"
