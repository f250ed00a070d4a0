"""Equipment catalog and quotation module.

Provides the panel catalog, city peak-sun-hour table and the rules that turn
a sizing result into a priced bill of materials.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field

import pandas as pd

from constants import (
    CITY_PEAK_SUN_HOURS,
    CUSTOM_CITY,
    BATTERY_CABLE_GAUGES,
    DEFAULT_BATTERY_CABLE_GAUGE,
)
from models import (
    CalculationMode,
    CityEntry,
    InverterType,
    PanelSpec,
    QuoteCategory,
    QuoteItem,
    SizingInput,
    SizingResult,
)

logger = logging.getLogger(__name__)

# Panels commonly stocked in the Colombian market
PANEL_OPTIONS = [
    {"id": "trina-700", "brand": "Trina Solar", "model": "Vertex N Gen2 (Bifacial)", "power": 700, "cell_type": "Monocrystalline N-Type"},
    {"id": "cs-665", "brand": "Canadian Solar", "model": "HiKu7 Mono PERC", "power": 665, "cell_type": "Monocrystalline"},
    {"id": "jinko-625", "brand": "Jinko Solar", "model": "Tiger Neo N-Type", "power": 625, "cell_type": "Monocrystalline N-Type"},
    {"id": "risen-600", "brand": "Risen", "model": "Titan Series", "power": 600, "cell_type": "Monocrystalline"},
    {"id": "trina-580", "brand": "Trina Solar", "model": "Vertex S+", "power": 580, "cell_type": "Monocrystalline"},
    {"id": "longi-570", "brand": "Longi", "model": "Hi-MO 6 Scientist", "power": 570, "cell_type": "Monocrystalline"},
    {"id": "cs-550", "brand": "Canadian Solar", "model": "HiKu6 Mono PERC", "power": 550, "cell_type": "Monocrystalline"},
    {"id": "jinko-470", "brand": "Jinko Solar", "model": "Tiger Neo", "power": 470, "cell_type": "Monocrystalline"},
    {"id": "era-400", "brand": "Era Solar", "model": "Half-Cut Cell", "power": 400, "cell_type": "Monocrystalline"},
]

DEFAULT_PANEL_ID = "cs-550"  # Most popular size
DEFAULT_CITY = "Medellín"

# Product photos shown next to quote lines
EQUIPMENT_IMAGES = {
    "panel": "https://image.made-in-china.com/2f0j00UZuqiabrnyod/Jinko-Tiger-Neo-Bifacial-Solar-Panel-615-620-635-Watts-N-Type-PV-Modules.jpg",
    "inverter_off_grid": "https://www.emergente.com.co/wp-content/uploads/2024/11/Inversor-Off-Grid-Growatt-SPF-3000TL-LVM-24V.webp",
    "inverter_on_grid": "https://www.ecozaque.com/wp-content/uploads/2025/10/ph11-eu-001-600x600.jpg",
    "inverter_hybrid": "https://www.ecogreensolar.co/wp-content/uploads/2024/11/Inversor-Hibrido-Must-4000W-48V-PV3300-Fase-Dividida-Ecogreensolar-02.webp",
    "controller": "https://www.emergente.com.co/wp-content/uploads/2024/07/Controlador-Regulador-De-Carga-MPPT-de-20A-1.jpg",
    "battery": "https://cosostenible.com/wp-content/uploads/2025/07/varias-baterias-de-litio-1024x576.png",
    "structure": "https://selfersac.com.pe/wp-content/uploads/2023/11/accesorios.png",
    "surge_protection": "https://cdn.autosolar.co/images/7102527/dps-solar-dc-2p-600vdc-2040ka-moreday.jpg",
    "breaker": "https://www.solar4rvs.com.au/assets/full/Noa-84453.png?20230529192912",
    "combiner_box": "https://m.media-amazon.com/images/I/71lplr1DvOL._AC_SL1500_.jpg",
    "pv_cable": "https://m.media-amazon.com/images/I/717imcxp-VL.jpg",
    "battery_cable": "https://www.sunrichenergy.com/cdn/shop/files/Sunrich_Energy_Inverter_Battery_Cables_2.jpg?v=1721716195",
    "grounding": "https://transequipos.com/wp-content/uploads/2024/08/importancia-sistema-puesta-tierra.jpg",
    "labor": "https://unies.edu.co/wp-content/uploads/2021/10/ENERGIAS-LIMPIAS-768x576.png",
}


@dataclass(frozen=True)
class PriceBook:
    """Reference unit prices in COP used for the initial quote."""

    panel: float = 350000
    inverter_per_watt: float = 950
    charge_controller: float = 450000
    battery_block: float = 950000
    battery_block_voltage: float = 12
    battery_block_ah: float = 150
    structure_per_panel: float = 120000
    surge_protection: float = 150000
    dc_breaker: float = 85000
    combiner_box: float = 120000
    pv_cable_kit: float = 150000
    battery_cable: float = 35000
    battery_cable_runs: int = 6
    grounding: float = 180000
    conduits: float = 250000
    labor_base: float = 800000
    labor_per_panel: float = 50000
    images: dict = field(default_factory=lambda: dict(EQUIPMENT_IMAGES))

    @property
    def battery_block_wh(self) -> float:
        return self.battery_block_voltage * self.battery_block_ah


@dataclass(frozen=True)
class Catalog:
    """Read-only panel and city reference tables."""

    panels: tuple
    cities: tuple

    def get_panel(self, panel_id: str) -> PanelSpec:
        for panel in self.panels:
            if panel.id == panel_id:
                return panel
        raise KeyError(f"Unknown panel: {panel_id}")

    def get_city(self, name: str) -> CityEntry:
        for city in self.cities:
            if city.name == name:
                return city
        raise KeyError(f"Unknown city: {name}")

    @property
    def default_panel(self) -> PanelSpec:
        return self.get_panel(DEFAULT_PANEL_ID)

    @property
    def panel_ids(self) -> list:
        return [panel.id for panel in self.panels]

    @property
    def city_names(self) -> list:
        return [city.name for city in self.cities]

    @staticmethod
    def is_custom_city(name: str) -> bool:
        return name == CUSTOM_CITY


def load_catalog(panel_options: list = None, city_hsp: dict = None) -> Catalog:
    """Build the immutable catalog from the reference tables."""
    panel_options = PANEL_OPTIONS if panel_options is None else panel_options
    city_hsp = CITY_PEAK_SUN_HOURS if city_hsp is None else city_hsp

    panels = tuple(PanelSpec(**option) for option in panel_options)
    cities = tuple(CityEntry(name=name, hsp=hsp) for name, hsp in city_hsp.items())
    return Catalog(panels=panels, cities=cities)


def default_input(catalog: Catalog) -> SizingInput:
    """Starting form values: a 250.000 COP bill in Medellín."""
    return SizingInput(
        selected_panel=catalog.default_panel,
        calculation_mode=CalculationMode.BILL,
        city_name=DEFAULT_CITY,
        monthly_bill_amount=250000,
        electricity_rate=850,
        monthly_consumption=294,
        peak_sun_hours=catalog.get_city(DEFAULT_CITY).hsp,
        battery_voltage=24,
        autonomy_days=1,
        system_efficiency=0.75,
        inverter_type=InverterType.OFF_GRID,
        appliances=[],
    )


def needs_battery_bank(sizing_input: SizingInput) -> bool:
    """Grid-tie systems only get batteries when autonomy was requested."""
    return sizing_input.inverter_type != InverterType.ON_GRID or sizing_input.autonomy_days > 0


def needs_charge_controller(sizing_input: SizingInput, result: SizingResult) -> bool:
    """Off-grid inverters need a separate MPPT; hybrids carry their own."""
    return (
        sizing_input.inverter_type == InverterType.OFF_GRID
        and "hybrid" not in result.inverter.type_label.lower()
    )


def select_battery_cable_gauge(current_a: float) -> str:
    """Pick the battery cable gauge for a DC current."""
    for threshold, gauge in BATTERY_CABLE_GAUGES:
        if current_a > threshold:
            return gauge
    return DEFAULT_BATTERY_CABLE_GAUGE


def _inverter_line(sizing_input: SizingInput, result: SizingResult, prices: PriceBook) -> QuoteItem:
    size_w = result.inverter.suggested_size_w

    if sizing_input.inverter_type == InverterType.ON_GRID:
        image = prices.images.get("inverter_on_grid")
        description = f"Grid-Tie {size_w}W - Grid connection - WiFi monitoring"
    elif sizing_input.inverter_type == InverterType.HYBRID:
        image = prices.images.get("inverter_hybrid")
        description = f"Hybrid {size_w}W - Smart grid/battery management"
    else:
        image = prices.images.get("inverter_off_grid")
        description = f"Capacity {size_w}W - Pure sine wave"

    return QuoteItem(
        id="inverter-main",
        category=QuoteCategory.POWER_ELECTRONICS,
        name=f"Inverter {result.inverter.type_label}",
        description=description,
        quantity=1,
        unit_price=size_w * prices.inverter_per_watt,
        image_url=image,
    )


def generate_quote(
    sizing_input: SizingInput,
    result: SizingResult,
    prices: PriceBook = None
) -> list:
    """Build the initial bill of materials for a sizing result.

    Always returns a fresh list in a fixed rule order; manual edits made to a
    previous quote are not carried over.
    """
    prices = PriceBook() if prices is None else prices
    panel = sizing_input.selected_panel
    n_panels = result.number_of_panels
    images = prices.images
    items = []

    # Solar panels
    items.append(QuoteItem(
        id="panel-main",
        category=QuoteCategory.GENERATION,
        name=f"Solar Panel {panel.brand} {panel.power:g}W",
        description=f"{panel.cell_type} - High efficiency - RETIE certified",
        quantity=n_panels,
        unit_price=panel.price_estimate if panel.price_estimate is not None else prices.panel,
        image_url=images.get("panel"),
    ))

    # Inverter
    items.append(_inverter_line(sizing_input, result, prices))

    # Charge controller
    if needs_charge_controller(sizing_input, result):
        controller_amps = math.ceil((n_panels * panel.power) / sizing_input.battery_voltage)
        items.append(QuoteItem(
            id="controller",
            category=QuoteCategory.POWER_ELECTRONICS,
            name=f"MPPT Charge Controller {controller_amps}A",
            description=f"98% efficiency - LCD display - {sizing_input.battery_voltage:g}V auto",
            quantity=1,
            unit_price=prices.charge_controller,
            image_url=images.get("controller"),
        ))

    has_batteries = needs_battery_bank(sizing_input)

    # Battery bank
    if has_batteries:
        total_wh_storage = result.battery_capacity_ah * sizing_input.battery_voltage
        n_blocks = max(1, math.ceil(total_wh_storage / prices.battery_block_wh))
        items.append(QuoteItem(
            id="battery-bank",
            category=QuoteCategory.STORAGE,
            name=f"Deep Cycle Gel Battery {prices.battery_block_voltage:g}V {prices.battery_block_ah:g}Ah",
            description="VRLA - Maintenance free - 5-7 year service life",
            quantity=n_blocks,
            unit_price=prices.battery_block,
            image_url=images.get("battery"),
        ))

    # Mounting structure
    items.append(QuoteItem(
        id="structure",
        category=QuoteCategory.STRUCTURE,
        name="Certified Aluminium Mounting System",
        description=f"Anodised rails, clamps, L-feet and stainless hardware for {n_panels} modules",
        quantity=1,
        unit_price=n_panels * prices.structure_per_panel,
        image_url=images.get("structure"),
    ))

    # Protection
    items.append(QuoteItem(
        id="dps-dc",
        category=QuoteCategory.PROTECTION,
        name="DC Surge Protector 600V",
        description="Lightning and overvoltage protection (Class II)",
        quantity=1,
        unit_price=prices.surge_protection,
        image_url=images.get("surge_protection"),
    ))
    items.append(QuoteItem(
        id="breaker-dc",
        category=QuoteCategory.PROTECTION,
        name=f"DC Breaker {result.inverter.suggested_breaker_amps}A 2P (C curve)",
        description=f"Thermal-magnetic DC breaker rated {result.inverter.suggested_breaker_amps}A",
        quantity=1,
        unit_price=prices.dc_breaker,
        image_url=images.get("breaker"),
    ))
    items.append(QuoteItem(
        id="box-combiner",
        category=QuoteCategory.PROTECTION,
        name="IP65 Combiner Box",
        description="Outdoor distribution board with DIN rail",
        quantity=1,
        unit_price=prices.combiner_box,
        image_url=images.get("combiner_box"),
    ))

    # Wiring
    items.append(QuoteItem(
        id="cable-pv-kit",
        category=QuoteCategory.WIRING,
        name="PV Cable Kit 10 AWG (Red/Black)",
        description="XLPE 90°C UV-resistant 1.5kV PV cable - 40 m total",
        quantity=1,
        unit_price=prices.pv_cable_kit,
        image_url=images.get("pv_cable"),
    ))

    if has_batteries:
        battery_current = result.inverter.suggested_size_w / sizing_input.battery_voltage
        gauge = select_battery_cable_gauge(battery_current)
        items.append(QuoteItem(
            id="cable-batt",
            category=QuoteCategory.WIRING,
            name=f"Battery Power Cable {gauge}",
            description="Heavy-duty flexible cable for power connections",
            quantity=prices.battery_cable_runs,
            unit_price=prices.battery_cable,
            image_url=images.get("battery_cable"),
        ))

    # Installation
    items.append(QuoteItem(
        id="grounding",
        category=QuoteCategory.INSTALLATION,
        name="Grounding System",
        description="2.4m copperweld rod, connectors and bare conductor",
        quantity=1,
        unit_price=prices.grounding,
        image_url=images.get("grounding"),
    ))
    items.append(QuoteItem(
        id="conduits",
        category=QuoteCategory.INSTALLATION,
        name="Conduit and Accessories",
        description="EMT/PVC conduit, bends, condulets and terminals",
        quantity=1,
        unit_price=prices.conduits,
        image_url=images.get("structure"),
    ))
    items.append(QuoteItem(
        id="labor",
        category=QuoteCategory.INSTALLATION,
        name="Certified Engineering and Installation",
        description="Design, installation and commissioning by licensed staff",
        quantity=1,
        unit_price=prices.labor_base + n_panels * prices.labor_per_panel,
        image_url=images.get("labor"),
    ))

    logger.debug("Generated quote with %d items", len(items))
    return items


def quote_total(items: list) -> float:
    """Sum of quantity x unit price over all lines."""
    return sum(item.subtotal for item in items)


def group_quote_by_category(items: list) -> dict:
    """Group lines by category in display order, skipping empty categories."""
    grouped = {}
    for category in QuoteCategory:
        category_items = [item for item in items if item.category == category]
        if category_items:
            grouped[category] = category_items
    return grouped


def new_custom_item() -> QuoteItem:
    """Blank line for manual additions to a quote."""
    return QuoteItem(
        id=str(uuid.uuid4()),
        category=QuoteCategory.INSTALLATION,
        name="Additional item",
        description="Item description",
        quantity=1,
        unit_price=0,
    )


QUOTE_COLUMNS = ["id", "category", "name", "description", "quantity", "unit_price", "image_url"]


def quote_to_dataframe(items: list) -> pd.DataFrame:
    """Quote lines as an editable table."""
    rows = []
    for item in items:
        row = item.to_dict()
        row.pop("subtotal")
        rows.append(row)
    return pd.DataFrame(rows, columns=QUOTE_COLUMNS)


def quote_from_dataframe(df: pd.DataFrame) -> list:
    """Rebuild quote lines from an edited table.

    Raises ValueError when a row carries a category outside the fixed set.
    """
    items = []
    for row in df.to_dict(orient="records"):
        quantity = pd.to_numeric(row.get("quantity"), errors="coerce")
        unit_price = pd.to_numeric(row.get("unit_price"), errors="coerce")
        image_url = row.get("image_url")
        item_id = row.get("id")

        items.append(QuoteItem(
            id=str(uuid.uuid4()) if pd.isna(item_id) or not item_id else str(item_id),
            category=row.get("category"),
            name=str(row.get("name") or ""),
            description=str(row.get("description") or ""),
            quantity=0 if pd.isna(quantity) else float(quantity),
            unit_price=0 if pd.isna(unit_price) else float(unit_price),
            image_url=None if pd.isna(image_url) else image_url,
        ))
    return items
