"""Shared test fixtures for SolarCalc."""

import pytest

from equipment import load_catalog, default_input
from models import Appliance, CalculationMode, InverterType, SizingInput


@pytest.fixture
def catalog():
    """Provide the default panel and city catalog."""
    return load_catalog()


@pytest.fixture
def panel_550(catalog):
    return catalog.get_panel("cs-550")


@pytest.fixture
def bill_input(panel_550) -> SizingInput:
    """294 kWh/month at 4.5 HSP, 24 V, one day of autonomy."""
    return SizingInput(
        selected_panel=panel_550,
        calculation_mode=CalculationMode.BILL,
        city_name="Medellín",
        monthly_bill_amount=250000,
        electricity_rate=850,
        monthly_consumption=294,
        peak_sun_hours=4.5,
        battery_voltage=24,
        autonomy_days=1,
        system_efficiency=0.75,
        inverter_type=InverterType.OFF_GRID,
    )


@pytest.fixture
def load_input(panel_550) -> SizingInput:
    """A single fridge running all day."""
    return SizingInput(
        selected_panel=panel_550,
        calculation_mode=CalculationMode.LOAD_ANALYSIS,
        city_name="Cali",
        peak_sun_hours=4.8,
        battery_voltage=24,
        autonomy_days=1,
        system_efficiency=0.75,
        appliances=[Appliance(id="a1", name="Refrigerator", power=150, quantity=1, hours=24)],
    )


@pytest.fixture
def default_form(catalog) -> SizingInput:
    return default_input(catalog)
