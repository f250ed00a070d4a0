"""Sizing functions for off-grid, hybrid and grid-tie PV systems."""

import logging
import math

from constants import (
    DAYS_PER_MONTH,
    HOURS_PER_DAY,
    BILL_MODE_PEAK_HOURS,
    MIN_PEAK_DEMAND_W,
    INVERTER_SAFETY_FACTOR,
    INVERTER_SIZE_STEP_W,
    INVERTER_EFFICIENCY,
    BREAKER_SIZE_STEP_A,
    DEPTH_OF_DISCHARGE,
    INVERTER_TYPE_LABELS,
)
from models import (
    CalculationMode,
    InverterType,
    InverterSpec,
    InvalidInputError,
    SizingInput,
    SizingResult,
)

logger = logging.getLogger(__name__)


def _round_up_to(value: float, step: float) -> int:
    return int(math.ceil(value / step) * step)


def _is_finite(value) -> bool:
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def derive_monthly_consumption(monthly_bill_amount: float, electricity_rate: float):
    """Estimate monthly kWh from the bill amount and the per-kWh rate.

    Returns None when either figure is missing, so the caller can keep
    whatever consumption it already had.
    """
    if not (_is_finite(monthly_bill_amount) and _is_finite(electricity_rate)):
        return None
    if monthly_bill_amount > 0 and electricity_rate > 0:
        kwh = monthly_bill_amount / electricity_rate
        if _is_finite(kwh):
            return int(math.floor(kwh + 0.5))
    return None


def calculate_daily_consumption(sizing_input: SizingInput) -> float:
    """Daily energy use in Wh for the active calculation mode."""
    if sizing_input.calculation_mode == CalculationMode.LOAD_ANALYSIS:
        return sum(app.power * app.quantity * app.hours for app in sizing_input.appliances)
    return sizing_input.monthly_consumption * 1000 / DAYS_PER_MONTH


def calculate_peak_demand(sizing_input: SizingInput, daily_consumption_wh: float) -> float:
    """Maximum simultaneous power demand in W."""
    if sizing_input.calculation_mode == CalculationMode.LOAD_ANALYSIS:
        connected_w = sum(app.power * app.quantity for app in sizing_input.appliances)
        return max(connected_w, MIN_PEAK_DEMAND_W)
    return daily_consumption_wh / BILL_MODE_PEAK_HOURS


def calculate_requirements(
    daily_consumption_wh: float,
    system_efficiency: float,
    peak_sun_hours: float
) -> dict:
    """Generation needed after losses and the array power that delivers it."""
    required_generation_wh = daily_consumption_wh / system_efficiency
    total_power_needed_w = required_generation_wh / peak_sun_hours

    return {
        "required_generation_wh": required_generation_wh,
        "total_power_needed_w": total_power_needed_w,
    }


def calculate_panel_count(total_power_needed_w: float, panel_power_w: float) -> int:
    """Smallest whole number of panels covering the array power, at least one."""
    return max(1, int(math.ceil(total_power_needed_w / panel_power_w)))


def size_inverter(
    max_power_demand_w: float,
    inverter_type,
    battery_voltage: float
) -> InverterSpec:
    """Suggest an inverter rating and its DC breaker.

    Both figures carry a 25% margin: the inverter over peak demand, rounded
    up to the next 100 W, and the breaker over the DC current the inverter
    draws at rated power, rounded up to the next 10 A.
    """
    inverter_type = InverterType.coerce(inverter_type)
    size_w = _round_up_to(max_power_demand_w * INVERTER_SAFETY_FACTOR, INVERTER_SIZE_STEP_W)

    max_dc_current = size_w / battery_voltage
    breaker_amps = _round_up_to(max_dc_current * INVERTER_SAFETY_FACTOR, BREAKER_SIZE_STEP_A)

    return InverterSpec(
        suggested_size_w=size_w,
        type_label=INVERTER_TYPE_LABELS[inverter_type.value],
        input_voltage=battery_voltage,
        suggested_breaker_amps=breaker_amps,
        efficiency=INVERTER_EFFICIENCY,
    )


def calculate_battery_capacity(
    daily_consumption_wh: float,
    autonomy_days: float,
    battery_voltage: float
) -> float:
    """Battery bank capacity in Ah, never discharging below 50%."""
    return (daily_consumption_wh * autonomy_days) / (battery_voltage * DEPTH_OF_DISCHARGE)


def calculate_estimated_generation(
    number_of_panels: int,
    panel_power_w: float,
    peak_sun_hours: float,
    system_efficiency: float
) -> float:
    """Daily energy the rounded-up array actually delivers (Wh)."""
    return number_of_panels * panel_power_w * peak_sun_hours * system_efficiency


def validate_input(sizing_input: SizingInput) -> list:
    """Check the numeric domain the sizing formulas rely on.

    Returns a list of error messages; an empty list means the input is safe
    to size.
    """
    errors = []

    if not _is_finite(sizing_input.peak_sun_hours):
        errors.append("Peak sun hours must be a finite number")
    elif not sizing_input.peak_sun_hours > 0:
        errors.append("Peak sun hours must be greater than zero")

    if not _is_finite(sizing_input.system_efficiency):
        errors.append("System efficiency must be a finite number")
    elif not 0 < sizing_input.system_efficiency <= 1:
        errors.append("System efficiency must be between 0 and 1")

    if not _is_finite(sizing_input.battery_voltage):
        errors.append("Battery voltage must be a finite number")
    elif not sizing_input.battery_voltage > 0:
        errors.append("Battery voltage must be greater than zero")

    panel = sizing_input.selected_panel
    if panel is None or not _is_finite(panel.power) or not panel.power > 0:
        errors.append("Please select a solar panel with a positive power rating")

    if not _is_finite(sizing_input.autonomy_days):
        errors.append("Autonomy days must be a finite number")
    elif sizing_input.autonomy_days < 0:
        errors.append("Autonomy days cannot be negative")

    if sizing_input.calculation_mode == CalculationMode.BILL:
        if not _is_finite(sizing_input.monthly_consumption):
            errors.append("Monthly consumption must be a finite number")
        elif sizing_input.monthly_consumption < 0:
            errors.append("Monthly consumption cannot be negative")
    else:
        for app in sizing_input.appliances:
            if not all(_is_finite(value) for value in (app.power, app.quantity, app.hours)):
                errors.append(f"{app.name}: power, quantity and hours must be finite numbers")
            elif app.power < 0 or app.quantity < 0 or app.hours < 0:
                errors.append(f"{app.name}: power, quantity and hours cannot be negative")
            elif app.hours > HOURS_PER_DAY:
                errors.append(f"{app.name}: usage cannot exceed {HOURS_PER_DAY} hours per day")

    return errors


def calculate_system(sizing_input: SizingInput) -> SizingResult:
    """Size panels, inverter and battery bank for one set of inputs."""
    errors = validate_input(sizing_input)
    if errors:
        raise InvalidInputError(errors)

    panel = sizing_input.selected_panel

    # 1. Consumption and peak demand
    daily_consumption_wh = calculate_daily_consumption(sizing_input)
    max_power_demand_w = calculate_peak_demand(sizing_input, daily_consumption_wh)

    # 2-3. Generation after losses and array power
    requirements = calculate_requirements(
        daily_consumption_wh,
        sizing_input.system_efficiency,
        sizing_input.peak_sun_hours
    )

    derived = (
        daily_consumption_wh,
        max_power_demand_w,
        requirements["total_power_needed_w"],
        max_power_demand_w * INVERTER_SAFETY_FACTOR / sizing_input.battery_voltage,
        daily_consumption_wh * sizing_input.autonomy_days,
    )
    if not all(_is_finite(value) for value in derived):
        raise InvalidInputError(["Input values are too large to size a system"])

    # 4. Panels
    number_of_panels = calculate_panel_count(requirements["total_power_needed_w"], panel.power)

    # 5. Inverter
    inverter = size_inverter(
        max_power_demand_w,
        sizing_input.inverter_type,
        sizing_input.battery_voltage
    )

    # 6. Battery bank, computed for grid-tie too so the caller can decide
    battery_capacity_ah = calculate_battery_capacity(
        daily_consumption_wh,
        sizing_input.autonomy_days,
        sizing_input.battery_voltage
    )

    # 7. Forward estimate from the rounded panel count
    estimated_generation = calculate_estimated_generation(
        number_of_panels,
        panel.power,
        sizing_input.peak_sun_hours,
        sizing_input.system_efficiency
    )

    logger.debug(
        "Sized %s system: %.0f Wh/day, %d x %sW panels, %dW inverter, %.1f Ah",
        sizing_input.calculation_mode.value, daily_consumption_wh,
        number_of_panels, panel.power, inverter.suggested_size_w, battery_capacity_ah
    )

    return SizingResult(
        daily_consumption_wh=daily_consumption_wh,
        max_power_demand_w=max_power_demand_w,
        number_of_panels=number_of_panels,
        inverter=inverter,
        battery_capacity_ah=battery_capacity_ah,
        estimated_generation_daily_wh=estimated_generation,
    )


def array_power_kwp(sizing_input: SizingInput, result: SizingResult) -> float:
    """Installed array power in kWp."""
    return result.number_of_panels * sizing_input.selected_panel.power / 1000


def storage_capacity_kwh(sizing_input: SizingInput, result: SizingResult) -> float:
    """Battery bank energy in kWh."""
    return result.battery_capacity_ah * sizing_input.battery_voltage / 1000


def generate_hourly_profile(sizing_input: SizingInput, result: SizingResult) -> list:
    """Approximate hour-by-hour production against flat consumption.

    Production follows a sine bell between 06:00 and 18:00. This is an
    illustration for charts, not an irradiance model.
    """
    hourly_consumption = result.daily_consumption_wh / HOURS_PER_DAY
    normalisation = sizing_input.peak_sun_hours * 1.5

    profile = []
    for hour in range(HOURS_PER_DAY):
        production_factor = 0.0
        if 6 <= hour <= 18:
            production_factor = math.sin((hour - 6) * math.pi / 12)

        production = result.estimated_generation_daily_wh * production_factor / normalisation
        profile.append({
            "hour": f"{hour}:00",
            "production": max(0, round(production)),
            "consumption": round(hourly_consumption),
        })

    return profile


def format_cop(value: float) -> str:
    """Format an amount as Colombian pesos, e.g. $1.250.000."""
    formatted = f"{value:,.0f}".replace(",", ".")
    return f"${formatted}"
