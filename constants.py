"""Constants for photovoltaic system sizing and quoting."""

# Average peak sun hours (HSP) for major Colombian cities
CITY_PEAK_SUN_HOURS = {
    "Bogotá D.C.": 4.2,
    "Medellín": 4.5,
    "Cali": 4.8,
    "Barranquilla": 5.6,
    "Cartagena": 5.4,
    "Bucaramanga": 4.9,
    "Pereira": 4.4,
    "Santa Marta": 5.8,
    "Cúcuta": 5.1,
    "Villavicencio": 4.6,
    "Ibagué": 4.5,
    "Riohacha (La Guajira)": 6.0,  # Highest resource in the country
    "Pasto": 3.8,
    "Manizales": 4.2,
    "Montería": 5.2,
    "Valledupar": 5.7,
    "Personalizado": 4.5,
}

# Placeholder city that lets the user type HSP by hand
CUSTOM_CITY = "Personalizado"

DAYS_PER_MONTH = 30  # Flat month, no calendar variation
HOURS_PER_DAY = 24

# Bill mode has no appliance list, so peak demand assumes a 4h-equivalent day
BILL_MODE_PEAK_HOURS = 4

MIN_PEAK_DEMAND_W = 500  # Simultaneous-start baseline for small loads
INVERTER_SAFETY_FACTOR = 1.25
INVERTER_SIZE_STEP_W = 100
INVERTER_EFFICIENCY = 0.92
BREAKER_SIZE_STEP_A = 10
DEPTH_OF_DISCHARGE = 0.5

BATTERY_VOLTAGES = [12, 24, 48]

INVERTER_TYPE_LABELS = {
    "ON_GRID": "Grid-Tie",
    "HYBRID": "Hybrid (Grid+Battery)",
    "OFF_GRID": "Off-Grid Pure Sine",
}

CALCULATION_MODE_LABELS = {
    "BILL": "Monthly bill",
    "LOAD_ANALYSIS": "Load analysis",
}

# Display order and labels for quote categories
QUOTE_CATEGORY_LABELS = {
    "GENERATION": "Solar Generation",
    "POWER_ELECTRONICS": "Power Electronics",
    "STORAGE": "Batteries",
    "STRUCTURE": "Structure & Mounting",
    "PROTECTION": "Electrical Protection",
    "WIRING": "Conductors & Conduit",
    "INSTALLATION": "Services & Engineering",
}

# Battery cable gauge by DC current, highest threshold first
BATTERY_CABLE_GAUGES = [
    (150, "1/0 AWG"),
    (100, "2 AWG"),
]
DEFAULT_BATTERY_CABLE_GAUGE = "4 AWG"

# Common household loads offered as presets in the load inventory
APPLIANCE_PRESETS = {
    "LED bulb": {"power": 10, "hours": 4},
    "Phone charger": {"power": 10, "hours": 4},
    "Refrigerator": {"power": 150, "hours": 24},
    "LED TV": {"power": 80, "hours": 4},
    "WiFi router": {"power": 10, "hours": 24},
    "Laptop": {"power": 60, "hours": 4},
    "Fan": {"power": 50, "hours": 4},
    "Washing machine": {"power": 500, "hours": 4},
    "Air conditioner (9000 BTU)": {"power": 1000, "hours": 4},
    "Microwave": {"power": 1000, "hours": 4},
    "Water pump (0.5 HP)": {"power": 375, "hours": 4},
}

# Loads with motors or compressors that draw a start-up surge
INDUCTIVE_LOAD_KEYWORDS = ["refrigerator", "fridge", "pump", "motor", "washing", "air conditioner", "compressor", "fan"]
