"""SolarCalc Streamlit Dashboard.

An interactive dashboard for sizing off-grid, hybrid and grid-tie
residential PV systems in Colombia, with an editable quotation,
JSON/PDF export and an optional AI technical narrative.
"""

import logging
import uuid

import streamlit as st
import pandas as pd
import plotly.graph_objects as go

from constants import (
    APPLIANCE_PRESETS,
    BATTERY_VOLTAGES,
    CALCULATION_MODE_LABELS,
    INVERTER_TYPE_LABELS,
    QUOTE_CATEGORY_LABELS,
)
from models import Appliance, CalculationMode, InverterType, InvalidInputError, SizingInput
from utils import (
    array_power_kwp,
    calculate_requirements,
    calculate_system,
    derive_monthly_consumption,
    format_cop,
    generate_hourly_profile,
    storage_capacity_kwh,
)
from equipment import (
    QUOTE_COLUMNS,
    default_input,
    generate_quote,
    group_quote_by_category,
    load_catalog,
    needs_battery_bank,
    new_custom_item,
    quote_from_dataframe,
    quote_to_dataframe,
    quote_total,
)
from quotation import generate_report_pdf, report_filename, resolve_company_name
from export import export_json, export_filename
from ai_report import generate_ai_report, get_api_key

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

st.set_page_config(
    page_title="SolarCalc AI",
    page_icon="☀️",
    layout="wide"
)

# Custom CSS for darker sidebar text
st.markdown("""
<style>
    [data-testid="stSidebar"] {
        background-color: #fef9e7;
    }
    [data-testid="stSidebar"] .stMarkdown,
    [data-testid="stSidebar"] label,
    [data-testid="stSidebar"] p,
    [data-testid="stSidebar"] span {
        color: #1a1a1a !important;
        font-weight: 500 !important;
    }
    [data-testid="stSidebar"] h1,
    [data-testid="stSidebar"] h2,
    [data-testid="stSidebar"] h3 {
        color: #0d0d0d !important;
        font-weight: 700 !important;
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def get_catalog():
    return load_catalog()


catalog = get_catalog()
defaults = default_input(catalog)

if "appliances" not in st.session_state:
    st.session_state.appliances = []
if "ai_report" not in st.session_state:
    st.session_state.ai_report = None

BILL_FIELDS = ("monthly_bill_amount", "electricity_rate", "monthly_consumption")

if "monthly_bill_amount" not in st.session_state:
    st.session_state.monthly_bill_amount = float(defaults.monthly_bill_amount)
    st.session_state.electricity_rate = float(defaults.electricity_rate)
    st.session_state.monthly_consumption = float(defaults.monthly_consumption)

# Bill inputs are hidden in load-analysis mode; re-assigning keeps Streamlit
# from discarding their values while the widgets are not rendered
for key in BILL_FIELDS:
    st.session_state[key] = st.session_state[key]


def on_bill_change():
    """Keep monthly consumption in step with the bill and rate."""
    kwh = derive_monthly_consumption(
        st.session_state.monthly_bill_amount,
        st.session_state.electricity_rate
    )
    if kwh is not None:
        st.session_state.monthly_consumption = float(kwh)


def on_city_change():
    city_name = st.session_state.city_name
    if not catalog.is_custom_city(city_name):
        st.session_state.peak_sun_hours = catalog.get_city(city_name).hsp


def add_appliance(name: str = "New device", power: float = 100, hours: float = 4):
    current = st.session_state.get("current_appliances", st.session_state.appliances)
    st.session_state.appliances = current + [
        Appliance(id=str(uuid.uuid4()), name=name, power=power, quantity=1, hours=hours)
    ]
    st.session_state.loads_version = st.session_state.get("loads_version", 0) + 1


st.title("☀️ SolarCalc AI")
st.caption("Professional photovoltaic sizing (Colombia)")

# --- Sidebar form ---
st.sidebar.header("Customer")
customer_name = st.sidebar.text_input("Name", key="customer_name")
customer_phone = st.sidebar.text_input("Phone", key="customer_phone")
customer_email = st.sidebar.text_input("Email", key="customer_email")
customer_address = st.sidebar.text_input("Address", key="customer_address")

st.sidebar.header("Location")
city_name = st.sidebar.selectbox(
    "City",
    catalog.city_names,
    index=catalog.city_names.index(defaults.city_name),
    key="city_name",
    on_change=on_city_change
)
if "peak_sun_hours" not in st.session_state:
    st.session_state.peak_sun_hours = defaults.peak_sun_hours
peak_sun_hours = st.sidebar.number_input(
    "Peak sun hours (HSP)",
    min_value=0.1, max_value=10.0, step=0.1,
    key="peak_sun_hours",
    disabled=not catalog.is_custom_city(city_name),
    help="Equivalent hours of full sun per day. Editable for the custom location."
)

st.sidebar.header("Consumption")
calculation_mode = st.sidebar.radio(
    "Calculation mode",
    [mode.value for mode in CalculationMode],
    format_func=lambda value: CALCULATION_MODE_LABELS[value],
    key="calculation_mode"
)

if calculation_mode == CalculationMode.BILL.value:
    monthly_bill_amount = st.sidebar.number_input(
        "Monthly bill (COP)", min_value=0.0, step=10000.0,
        key="monthly_bill_amount", on_change=on_bill_change
    )
    electricity_rate = st.sidebar.number_input(
        "Rate (COP/kWh)", min_value=0.0, step=10.0,
        key="electricity_rate", on_change=on_bill_change
    )
    monthly_consumption = st.sidebar.number_input(
        "Monthly consumption (kWh)", min_value=0.0, step=1.0,
        key="monthly_consumption",
        help="Derived from bill / rate; can be overridden"
    )
else:
    monthly_bill_amount = st.session_state.monthly_bill_amount
    electricity_rate = st.session_state.electricity_rate
    monthly_consumption = st.session_state.monthly_consumption
    st.sidebar.info("Edit the load inventory in the Load Analysis tab.")

st.sidebar.header("Equipment")
panel_id = st.sidebar.selectbox(
    "Solar panel",
    catalog.panel_ids,
    index=catalog.panel_ids.index(defaults.selected_panel.id),
    format_func=lambda pid: catalog.get_panel(pid).label
)
selected_panel = catalog.get_panel(panel_id)
st.sidebar.caption(f"{selected_panel.cell_type}")

inverter_type = st.sidebar.selectbox(
    "Inverter type",
    [t.value for t in InverterType],
    format_func=lambda value: INVERTER_TYPE_LABELS[value]
)
battery_voltage = st.sidebar.selectbox(
    "Battery bank voltage (V)",
    BATTERY_VOLTAGES,
    index=BATTERY_VOLTAGES.index(int(defaults.battery_voltage))
)
autonomy_days = st.sidebar.slider(
    "Autonomy (days)",
    min_value=0, max_value=7, value=int(defaults.autonomy_days), step=1
)
system_efficiency = st.sidebar.slider(
    "System efficiency (%)",
    min_value=50, max_value=95, value=int(defaults.system_efficiency * 100), step=1
) / 100

tab_loads, tab_results, tab_quote, tab_reports = st.tabs(["Load Analysis", "Results", "Quotation", "Reports"])

with tab_loads:
    st.header("Load Inventory")
    st.markdown("Add the appliances in the home. Used when the calculation mode is **Load analysis**.")

    preset_cols = st.columns(4)
    for i, (preset_name, preset) in enumerate(APPLIANCE_PRESETS.items()):
        with preset_cols[i % 4]:
            if st.button(f"+ {preset_name}", key=f"preset_{i}"):
                add_appliance(preset_name, preset["power"], preset["hours"])
                st.rerun()
    if st.button("+ Custom device"):
        add_appliance()
        st.rerun()

    df_loads = pd.DataFrame(
        [{"id": a.id, "name": a.name, "power": a.power, "quantity": a.quantity, "hours": a.hours}
         for a in st.session_state.appliances],
        columns=["id", "name", "power", "quantity", "hours"]
    )
    edited_loads = st.data_editor(
        df_loads,
        num_rows="dynamic",
        hide_index=True,
        use_container_width=True,
        column_config={
            "id": None,
            "name": st.column_config.TextColumn("Appliance"),
            "power": st.column_config.NumberColumn("Power (W)", min_value=0, step=1),
            "quantity": st.column_config.NumberColumn("Qty", min_value=0, step=1),
            "hours": st.column_config.NumberColumn("Hours/day", min_value=0, max_value=24, step=0.5),
        },
        key=f"loads_editor_{st.session_state.get('loads_version', 0)}"
    )

    appliances = []
    for row in edited_loads.fillna({"name": "Device", "power": 0, "quantity": 0, "hours": 0}).to_dict(orient="records"):
        appliances.append(Appliance(
            id=row["id"] if isinstance(row["id"], str) and row["id"] else str(uuid.uuid4()),
            name=row["name"],
            power=float(row["power"]),
            quantity=int(row["quantity"]),
            hours=float(row["hours"]),
        ))
    st.session_state.current_appliances = appliances

    col_l1, col_l2 = st.columns(2)
    with col_l1:
        st.metric("Daily consumption", f"{sum(a.daily_wh for a in appliances):,.0f} Wh")
    with col_l2:
        st.metric("Connected load", f"{sum(a.power * a.quantity for a in appliances):,.0f} W")

sizing_input = SizingInput(
    selected_panel=selected_panel,
    calculation_mode=calculation_mode,
    city_name=city_name,
    customer_name=customer_name,
    customer_address=customer_address,
    customer_phone=customer_phone,
    customer_email=customer_email,
    monthly_bill_amount=monthly_bill_amount,
    electricity_rate=electricity_rate,
    monthly_consumption=monthly_consumption,
    peak_sun_hours=peak_sun_hours,
    battery_voltage=battery_voltage,
    autonomy_days=autonomy_days,
    system_efficiency=system_efficiency,
    inverter_type=inverter_type,
    appliances=appliances,
)

# --- Sizing ---
try:
    result = calculate_system(sizing_input)
except InvalidInputError as e:
    result = None
    for error in e.errors:
        st.sidebar.error(error)

if result is not None:
    # Quotes are rebuilt whenever the sizing changes; manual edits are discarded
    quote_signature = (result, sizing_input.battery_voltage, sizing_input.inverter_type, sizing_input.autonomy_days, selected_panel.id)
    if st.session_state.get("quote_signature") != quote_signature:
        if "quote_signature" in st.session_state:
            st.toast("Sizing changed: quotation regenerated, manual edits were reset.")
        st.session_state.quote_signature = quote_signature
        st.session_state.quote_items = generate_quote(sizing_input, result)
        st.session_state.pop("current_quote", None)
        st.session_state.quote_version = st.session_state.get("quote_version", 0) + 1
        st.session_state.ai_report = None

with tab_results:
    if result is None:
        st.warning("Fix the input errors shown in the sidebar to see results.")
    else:
        st.header("System Results")

        col_r1, col_r2, col_r3, col_r4 = st.columns(4)
        with col_r1:
            st.metric("Location", sizing_input.city_name, help=f"HSP: {sizing_input.peak_sun_hours:g} h")
        with col_r2:
            st.metric("Panel", f"{selected_panel.power:g} W", help=f"{selected_panel.brand} {selected_panel.model}")
        with col_r3:
            st.metric("Voltage", f"{sizing_input.battery_voltage} VDC")
        with col_r4:
            st.metric("Autonomy", f"{sizing_input.autonomy_days} day(s)")

        st.markdown("---")

        col_p, col_b, col_i = st.columns(3)
        with col_p:
            st.subheader("Solar Panels")
            st.metric("Units", result.number_of_panels)
            st.write(f"**{selected_panel.brand}** {selected_panel.model}")
            st.write(f"Array power: **{array_power_kwp(sizing_input, result):.2f} kWp**")
        with col_b:
            st.subheader("Battery Bank")
            st.metric("Capacity", f"{round(result.battery_capacity_ah)} Ah")
            st.write(f"@ {sizing_input.battery_voltage} V ({sizing_input.autonomy_days} day(s) autonomy)")
            st.write(f"Storage: **{storage_capacity_kwh(sizing_input, result):.2f} kWh**")
            if not needs_battery_bank(sizing_input):
                st.caption("Grid-tie with no autonomy: no batteries quoted.")
        with col_i:
            st.subheader("Inverter")
            st.metric("Size", f"{result.inverter.suggested_size_w} W")
            st.write(f"Type: **{result.inverter.type_label}**")
            st.write(f"DC input: {result.inverter.input_voltage} V")
            st.write(f"DC breaker: {result.inverter.suggested_breaker_amps} A")
            st.write(f"Efficiency: {result.inverter.efficiency:.0%}")

        requirements = calculate_requirements(
            result.daily_consumption_wh, sizing_input.system_efficiency, sizing_input.peak_sun_hours
        )
        st.info(f"""
        **How the numbers are derived:**
        - *Daily consumption {result.daily_consumption_wh:,.0f} Wh ÷ efficiency {sizing_input.system_efficiency:.0%}
          = {requirements['required_generation_wh']:,.0f} Wh required generation.*
        - *÷ {sizing_input.peak_sun_hours:g} HSP = {requirements['total_power_needed_w']:,.0f} W array, rounded up to whole panels.*
        - *Peak demand {result.max_power_demand_w:,.0f} W × 1.25 margin sets the inverter size.*
        """)

        st.subheader("Estimate: Production vs Consumption")
        df_profile = pd.DataFrame(generate_hourly_profile(sizing_input, result))
        fig = go.Figure()
        fig.add_trace(go.Scatter(
            x=df_profile["hour"], y=df_profile["production"],
            name="Solar Production", fill="tozeroy", line=dict(color="#F59E0B", width=3)
        ))
        fig.add_trace(go.Scatter(
            x=df_profile["hour"], y=df_profile["consumption"],
            name="Estimated Consumption", fill="tozeroy", line=dict(color="#3B82F6", width=3)
        ))
        fig.update_layout(
            yaxis_title="W",
            legend=dict(orientation="h", yanchor="bottom", y=1.02),
            height=400
        )
        st.plotly_chart(fig, use_container_width=True)

with tab_quote:
    if result is None:
        st.warning("Fix the input errors shown in the sidebar to build a quotation.")
    else:
        st.header("Detailed Quotation")
        st.caption("Bill of materials and estimated budget. Edits are reset when the sizing changes.")

        if st.button("+ Add item"):
            current = st.session_state.get("current_quote", st.session_state.quote_items)
            st.session_state.quote_items = current + [new_custom_item()]
            st.session_state.quote_version += 1
            st.rerun()

        edited_quote = st.data_editor(
            quote_to_dataframe(st.session_state.quote_items),
            num_rows="dynamic",
            hide_index=True,
            use_container_width=True,
            column_order=[c for c in QUOTE_COLUMNS if c not in ("id", "image_url")],
            column_config={
                "category": st.column_config.SelectboxColumn(
                    "Category",
                    options=list(QUOTE_CATEGORY_LABELS.keys()),
                    required=True
                ),
                "name": st.column_config.TextColumn("Item"),
                "description": st.column_config.TextColumn("Description"),
                "quantity": st.column_config.NumberColumn("Qty", min_value=0, step=1),
                "unit_price": st.column_config.NumberColumn("Unit price (COP)", min_value=0, step=1000, format="%d"),
            },
            key=f"quote_editor_{st.session_state.quote_version}"
        )

        try:
            quote_items = quote_from_dataframe(edited_quote.fillna({"category": "INSTALLATION"}))
        except ValueError as e:
            st.error(f"Invalid quotation row: {e}")
            quote_items = st.session_state.quote_items
        st.session_state.current_quote = quote_items

        for category, items in group_quote_by_category(quote_items).items():
            with st.expander(f"{QUOTE_CATEGORY_LABELS[category.value]} - {format_cop(sum(i.subtotal for i in items))}"):
                for item in items:
                    col_img, col_txt = st.columns([1, 4])
                    with col_img:
                        if item.image_url:
                            st.image(item.image_url, width=80)
                    with col_txt:
                        st.write(f"**{item.name}** × {item.quantity:g} = {format_cop(item.subtotal)}")
                        st.caption(item.description)

        st.success(f"**Total estimated investment: {format_cop(quote_total(quote_items))}**")

with tab_reports:
    if result is None:
        st.warning("Fix the input errors shown in the sidebar to export reports.")
    else:
        quote_items = st.session_state.get("current_quote", st.session_state.quote_items)

        st.header("AI Technical Assistant")
        if not get_api_key():
            st.caption("Set GEMINI_API_KEY to enable the AI analysis.")

        label = "Regenerate analysis" if st.session_state.ai_report else "Analyse with AI"
        if st.button(label):
            with st.spinner("Generating technical report..."):
                st.session_state.ai_report = generate_ai_report(sizing_input, result)

        if st.session_state.ai_report:
            st.markdown(st.session_state.ai_report)

        st.markdown("---")
        st.header("Export")

        col_e1, col_e2 = st.columns(2)
        with col_e1:
            st.download_button(
                label="Download JSON",
                data=export_json(sizing_input, result, quote_items, st.session_state.ai_report),
                file_name=export_filename(),
                mime="application/json"
            )
        with col_e2:
            company_name = st.text_input("Company name", value=resolve_company_name())
            if st.button("Generate PDF Offer", type="primary"):
                try:
                    with st.spinner("Generating PDF..."):
                        pdf_bytes = generate_report_pdf(
                            sizing_input,
                            result,
                            quote_items,
                            st.session_state.ai_report,
                            company_name=company_name
                        )
                    st.download_button(
                        label="Download PDF",
                        data=pdf_bytes,
                        file_name=report_filename(sizing_input),
                        mime="application/pdf"
                    )
                except Exception as e:
                    logger.exception("PDF generation failed")
                    st.warning(f"Could not generate the PDF: {e}")

    st.caption("Peak sun hours are static per-city averages. This is a sizing aid, not an irradiance simulation or electrical-code check.")
