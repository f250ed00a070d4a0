"""Data records shared by the sizing engine, quote generator and exporters."""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional


class CalculationMode(str, Enum):
    BILL = "BILL"
    LOAD_ANALYSIS = "LOAD_ANALYSIS"


class InverterType(str, Enum):
    OFF_GRID = "OFF_GRID"
    ON_GRID = "ON_GRID"
    HYBRID = "HYBRID"

    @classmethod
    def coerce(cls, value) -> "InverterType":
        """Map any value onto an inverter type, falling back to OFF_GRID."""
        try:
            return cls(value)
        except ValueError:
            return cls.OFF_GRID


class QuoteCategory(str, Enum):
    GENERATION = "GENERATION"
    POWER_ELECTRONICS = "POWER_ELECTRONICS"
    STORAGE = "STORAGE"
    STRUCTURE = "STRUCTURE"
    PROTECTION = "PROTECTION"
    WIRING = "WIRING"
    INSTALLATION = "INSTALLATION"


class InvalidInputError(ValueError):
    """Raised when a sizing input would produce non-finite results."""

    def __init__(self, errors: list):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


@dataclass(frozen=True)
class PanelSpec:
    id: str
    brand: str
    model: str
    power: float
    cell_type: str
    price_estimate: Optional[float] = None

    @property
    def label(self) -> str:
        return f"{self.brand} {self.model} ({self.power:g}W)"


@dataclass(frozen=True)
class CityEntry:
    name: str
    hsp: float


@dataclass
class Appliance:
    id: str
    name: str
    power: float
    quantity: int = 1
    hours: float = 4

    @property
    def daily_wh(self) -> float:
        return self.power * self.quantity * self.hours


@dataclass
class SizingInput:
    selected_panel: PanelSpec
    calculation_mode: CalculationMode = CalculationMode.BILL
    city_name: str = ""
    customer_name: str = ""
    customer_address: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    monthly_bill_amount: float = 0
    electricity_rate: float = 0
    monthly_consumption: float = 0
    peak_sun_hours: float = 4.5
    battery_voltage: float = 24
    autonomy_days: float = 1
    system_efficiency: float = 0.75
    inverter_type: InverterType = InverterType.OFF_GRID
    appliances: list = field(default_factory=list)

    def __post_init__(self):
        self.calculation_mode = CalculationMode(self.calculation_mode)
        self.inverter_type = InverterType.coerce(self.inverter_type)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["calculation_mode"] = self.calculation_mode.value
        data["inverter_type"] = self.inverter_type.value
        return data


@dataclass(frozen=True)
class InverterSpec:
    suggested_size_w: int
    type_label: str
    input_voltage: float
    suggested_breaker_amps: int
    efficiency: float


@dataclass(frozen=True)
class SizingResult:
    daily_consumption_wh: float
    max_power_demand_w: float
    number_of_panels: int
    inverter: InverterSpec
    battery_capacity_ah: float
    estimated_generation_daily_wh: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class QuoteItem:
    id: str
    category: QuoteCategory
    name: str
    description: str
    quantity: float
    unit_price: float
    image_url: Optional[str] = None

    def __post_init__(self):
        self.category = QuoteCategory(self.category)

    @property
    def subtotal(self) -> float:
        return self.quantity * self.unit_price

    def to_dict(self) -> dict:
        data = asdict(self)
        data["category"] = self.category.value
        data["subtotal"] = self.subtotal
        return data
