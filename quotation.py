"""PDF technical and economic proposal for a sized PV system."""

import logging
import os
import re
from datetime import datetime
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, PageBreak
)
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.graphics.shapes import Drawing, String, Rect
from reportlab.graphics.charts.lineplots import LinePlot
from reportlab.graphics.charts.barcharts import VerticalBarChart
from reportlab.graphics.widgets.markers import makeMarker

from constants import QUOTE_CATEGORY_LABELS, CALCULATION_MODE_LABELS
from equipment import quote_total, group_quote_by_category
from models import CalculationMode
from utils import (
    array_power_kwp,
    calculate_requirements,
    format_cop,
    generate_hourly_profile,
    storage_capacity_kwh,
)

logger = logging.getLogger(__name__)

DEFAULT_COMPANY_NAME = "SolarCalc AI"
SOLAR_ORANGE = '#F59E0B'
CONSUMPTION_BLUE = '#3B82F6'


def create_daily_profile_chart(profile: list) -> Drawing:
    """Create hourly production vs consumption chart."""

    drawing = Drawing(170*mm, 70*mm)

    chart = LinePlot()
    chart.x = 15*mm
    chart.y = 12*mm
    chart.width = 145*mm
    chart.height = 45*mm

    prod_data = [(i, point["production"]) for i, point in enumerate(profile)]
    cons_data = [(i, point["consumption"]) for i, point in enumerate(profile)]

    chart.data = [prod_data, cons_data]

    # Line styling
    chart.lines[0].strokeColor = colors.HexColor(SOLAR_ORANGE)
    chart.lines[0].strokeWidth = 2
    chart.lines[0].symbol = makeMarker('Circle', size=3)
    chart.lines[0].symbol.fillColor = colors.HexColor(SOLAR_ORANGE)

    chart.lines[1].strokeColor = colors.HexColor(CONSUMPTION_BLUE)
    chart.lines[1].strokeWidth = 2
    chart.lines[1].symbol = makeMarker('Square', size=3)
    chart.lines[1].symbol.fillColor = colors.HexColor(CONSUMPTION_BLUE)

    # X axis - hours
    chart.xValueAxis.valueMin = 0
    chart.xValueAxis.valueMax = 23
    chart.xValueAxis.valueStep = 3
    chart.xValueAxis.labels.fontSize = 7
    chart.xValueAxis.labelTextFormat = lambda x: f"{int(x)}:00"

    # Y axis
    chart.yValueAxis.valueMin = 0
    chart.yValueAxis.labels.fontSize = 8
    chart.yValueAxis.labelTextFormat = '%d W'

    drawing.add(chart)

    title = String(chart.x + chart.width / 2, chart.y + chart.height + 8*mm, 'Estimated Production vs Consumption (W)')
    title.fontSize = 10
    title.fontName = 'Helvetica-Bold'
    title.textAnchor = 'middle'
    drawing.add(title)

    # Legend
    legend_y = 3*mm
    prod_marker = Rect(chart.x + 30*mm, legend_y, 8, 8)
    prod_marker.fillColor = colors.HexColor(SOLAR_ORANGE)
    drawing.add(prod_marker)
    prod_label = String(chart.x + 40*mm, legend_y + 1, 'Solar Production')
    prod_label.fontSize = 7
    drawing.add(prod_label)

    cons_marker = Rect(chart.x + 80*mm, legend_y, 8, 8)
    cons_marker.fillColor = colors.HexColor(CONSUMPTION_BLUE)
    drawing.add(cons_marker)
    cons_label = String(chart.x + 90*mm, legend_y + 1, 'Consumption')
    cons_label.fontSize = 7
    drawing.add(cons_label)

    return drawing


def create_energy_balance_chart(daily_consumption_wh: float, required_generation_wh: float, estimated_generation_wh: float) -> Drawing:
    """Bar chart of daily consumption against required and delivered generation."""

    drawing = Drawing(170*mm, 65*mm)

    chart = VerticalBarChart()
    chart.x = 25*mm
    chart.y = 12*mm
    chart.width = 125*mm
    chart.height = 40*mm

    chart.data = [[
        daily_consumption_wh / 1000,
        required_generation_wh / 1000,
        estimated_generation_wh / 1000,
    ]]
    chart.categoryAxis.categoryNames = ['Consumption', 'Required\nGeneration', 'Estimated\nGeneration']
    chart.categoryAxis.labels.fontSize = 7
    chart.categoryAxis.labels.dy = -5

    chart.valueAxis.valueMin = 0
    chart.valueAxis.labels.fontSize = 8
    chart.valueAxis.labelTextFormat = '%.1f kWh'

    bar_colors = [CONSUMPTION_BLUE, '#9B59B6', SOLAR_ORANGE]
    for i, color in enumerate(bar_colors):
        chart.bars[(0, i)].fillColor = colors.HexColor(color)

    drawing.add(chart)

    title = String(chart.x + chart.width / 2, chart.y + chart.height + 6*mm, 'Daily Energy Balance')
    title.fontSize = 10
    title.fontName = 'Helvetica-Bold'
    title.textAnchor = 'middle'
    drawing.add(title)

    return drawing


def clean_markdown(text: str) -> str:
    """Strip the markdown markers a PDF paragraph cannot render."""
    text = text.replace("**", "")
    text = re.sub(r"^#+\s*", "", text, flags=re.MULTILINE)
    text = re.sub(r"^(\s*)[*-]\s+", r"\1• ", text, flags=re.MULTILINE)
    return text.replace("*", "")


def resolve_company_name(company_name: str = None) -> str:
    """Explicit name, else COMPANY_NAME from the environment, else the default."""
    return company_name or os.getenv("COMPANY_NAME") or DEFAULT_COMPANY_NAME


def report_filename(sizing_input, now: datetime = None) -> str:
    """Offer file name for a named customer, generic report name otherwise."""
    if sizing_input.customer_name:
        customer = re.sub(r'\s', '_', sizing_input.customer_name)
        return f"Oferta_Solar_{customer}.pdf"
    now = now or datetime.now()
    city = re.sub(r'\s', '_', sizing_input.city_name or 'Colombia')
    return f"Reporte_Solar_{city}_{int(now.timestamp() * 1000)}.pdf"


def _info_table(rows: list, background: str = '#f5f5f5', border=colors.grey) -> Table:
    table = Table(rows, colWidths=[60*mm, 110*mm])
    table.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('BACKGROUND', (0, 0), (-1, -1), colors.HexColor(background)),
        ('BOX', (0, 0), (-1, -1), 0.5, border),
        ('INNERGRID', (0, 0), (-1, -1), 0.25, border),
        ('PADDING', (0, 0), (-1, -1), 6),
    ]))
    return table


def _add_page_footer(company_name: str, customer_name: str):
    date_str = datetime.now().strftime('%d/%m/%Y')

    def draw(canvas, doc):
        canvas.saveState()
        canvas.setFont('Helvetica', 8)
        canvas.setFillColor(colors.grey)
        canvas.drawCentredString(
            A4[0] / 2, 10*mm,
            f"{company_name} - Proposal for {customer_name or 'Customer'} - {date_str} - Page {doc.page}"
        )
        canvas.restoreState()

    return draw


def generate_report_pdf(
    sizing_input,
    result,
    quote_items: list = None,
    ai_report_text: str = None,
    company_name: str = None,
    quote_ref: str = None
) -> bytes:
    """Generate the technical and economic proposal PDF.

    Returns PDF as bytes.
    """
    quote_items = quote_items or []
    company_name = resolve_company_name(company_name)
    panel = sizing_input.selected_panel

    # --- Calculations ---
    requirements = calculate_requirements(
        result.daily_consumption_wh,
        sizing_input.system_efficiency,
        sizing_input.peak_sun_hours
    )
    profile = generate_hourly_profile(sizing_input, result)

    # --- PDF Generation ---
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=20*mm,
        leftMargin=20*mm,
        topMargin=20*mm,
        bottomMargin=20*mm
    )

    styles = getSampleStyleSheet()

    # Custom styles
    styles.add(ParagraphStyle(
        name='CompanyName',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=colors.HexColor(SOLAR_ORANGE),
        spaceAfter=5*mm
    ))
    styles.add(ParagraphStyle(
        name='QuoteTitle',
        parent=styles['Heading1'],
        fontSize=18,
        textColor=colors.HexColor('#1a1a1a'),
        alignment=TA_CENTER,
        spaceBefore=5*mm,
        spaceAfter=10*mm
    ))
    styles.add(ParagraphStyle(
        name='SectionHeader',
        parent=styles['Heading2'],
        fontSize=14,
        textColor=colors.HexColor('#212121'),
        spaceBefore=8*mm,
        spaceAfter=4*mm
    ))
    styles.add(ParagraphStyle(
        name='BodyTextRight',
        parent=styles['Normal'],
        alignment=TA_RIGHT
    ))
    styles.add(ParagraphStyle(
        name='ItemText',
        parent=styles['Normal'],
        fontSize=8,
        leading=10
    ))

    elements = []

    # --- Header ---
    if quote_ref is None:
        quote_ref = f"SC-{datetime.now().strftime('%Y%m%d-%H%M%S')}"

    header_data = [
        [Paragraph(f"<b>{escape(company_name)}</b>", styles['CompanyName']),
         Paragraph(f"Ref: {escape(quote_ref)}<br/>Date: {datetime.now().strftime('%d/%m/%Y')}", styles['BodyTextRight'])]
    ]
    header_table = Table(header_data, colWidths=[100*mm, 70*mm])
    header_table.setStyle(TableStyle([
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('LINEABOVE', (0, 0), (-1, 0), 3, colors.HexColor(SOLAR_ORANGE)),
    ]))
    elements.append(header_table)

    elements.append(Paragraph("Technical and Economic Proposal", styles['QuoteTitle']))

    # --- Customer Details ---
    customer_data = [
        ["Name:", sizing_input.customer_name or "N/A", "Email:", sizing_input.customer_email or "N/A"],
        ["Phone:", sizing_input.customer_phone or "N/A", "Address:", sizing_input.customer_address or "N/A"],
    ]
    customer_table = Table(customer_data, colWidths=[22*mm, 60*mm, 22*mm, 66*mm])
    customer_table.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTNAME', (2, 0), (2, -1), 'Helvetica-Bold'),
        ('BACKGROUND', (0, 0), (-1, -1), colors.HexColor('#f0f0f0')),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('PADDING', (0, 0), (-1, -1), 6),
    ]))
    elements.append(customer_table)

    # --- 1. Location and financial data ---
    elements.append(Paragraph("1. Location and Financial Data", styles['SectionHeader']))

    location_data = [
        ["City:", sizing_input.city_name or "N/A"],
        ["Solar Resource (HSP):", f"{sizing_input.peak_sun_hours:g} h"],
        ["Calculation Mode:", CALCULATION_MODE_LABELS[sizing_input.calculation_mode.value]],
    ]
    if sizing_input.calculation_mode == CalculationMode.BILL:
        location_data.extend([
            ["Average Monthly Bill:", format_cop(sizing_input.monthly_bill_amount)],
            ["Rate per kWh:", format_cop(sizing_input.electricity_rate)],
            ["Calculated Consumption:", f"{sizing_input.monthly_consumption:g} kWh/month"],
        ])
    else:
        location_data.append(["Calculated Daily Load:", f"{result.daily_consumption_wh / 1000:.2f} kWh/day"])
    location_data.extend([
        ["System Voltage:", f"{sizing_input.battery_voltage:g} VDC"],
        ["Autonomy:", f"{sizing_input.autonomy_days:g} day(s)"],
        ["System Efficiency:", f"{sizing_input.system_efficiency:.0%}"],
    ])
    elements.append(_info_table(location_data))

    # --- Appliance inventory ---
    if sizing_input.calculation_mode == CalculationMode.LOAD_ANALYSIS and sizing_input.appliances:
        elements.append(Paragraph("Load Inventory", styles['SectionHeader']))
        load_data = [["Appliance", "Power (W)", "Qty", "Hours/day", "Wh/day"]]
        for app in sizing_input.appliances:
            load_data.append([
                app.name, f"{app.power:g}", f"{app.quantity:g}", f"{app.hours:g}", f"{app.daily_wh:,.0f}"
            ])
        load_data.append(["Total", "", "", "", f"{result.daily_consumption_wh:,.0f}"])

        load_table = Table(load_data, colWidths=[70*mm, 25*mm, 20*mm, 25*mm, 30*mm])
        load_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#323232')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
            ('BOX', (0, 0), (-1, -1), 0.5, colors.grey),
            ('INNERGRID', (0, 0), (-1, -1), 0.25, colors.grey),
            ('PADDING', (0, 0), (-1, -1), 4),
        ]))
        elements.append(load_table)

    # --- 2. Generation equipment ---
    elements.append(Paragraph("2. Generation Equipment (Panels)", styles['SectionHeader']))
    panel_data = [
        ["Brand:", panel.brand],
        ["Model:", panel.model],
        ["Unit Power:", f"{panel.power:g} W"],
        ["Technology:", panel.cell_type],
    ]
    elements.append(_info_table(panel_data))

    # --- 3. System summary ---
    elements.append(Paragraph("3. System Summary (Results)", styles['SectionHeader']))
    summary_data = [
        ["Number of Panels:", f"{result.number_of_panels} units"],
        ["Installed Array Power:", f"{array_power_kwp(sizing_input, result):.2f} kWp"],
        ["Estimated Daily Generation:", f"{result.estimated_generation_daily_wh / 1000:.2f} kWh/day"],
        ["Battery Bank:", f"{round(result.battery_capacity_ah)} Ah (@ {sizing_input.battery_voltage:g}V)"],
        ["Storage Capacity:", f"{storage_capacity_kwh(sizing_input, result):.2f} kWh"],
        ["Suggested Inverter:", f"{result.inverter.suggested_size_w} W"],
        ["Inverter Type:", result.inverter.type_label],
        ["Suggested DC Protection:", f"{result.inverter.suggested_breaker_amps} A breaker"],
    ]
    elements.append(_info_table(summary_data, background='#ecfdf5', border=colors.HexColor('#4CAF50')))

    elements.append(Spacer(1, 8*mm))
    elements.append(create_energy_balance_chart(
        result.daily_consumption_wh,
        requirements["required_generation_wh"],
        result.estimated_generation_daily_wh
    ))
    elements.append(Spacer(1, 5*mm))
    elements.append(create_daily_profile_chart(profile))

    # --- 4. Economic offer ---
    if quote_items:
        elements.append(PageBreak())
        elements.append(Paragraph("4. Economic Offer (Bill of Materials)", styles['SectionHeader']))

        quote_data = [["Item / Description", "Qty", "Unit Price", "Total"]]
        category_rows = []
        for category, items in group_quote_by_category(quote_items).items():
            category_rows.append(len(quote_data))
            quote_data.append([QUOTE_CATEGORY_LABELS[category.value], "", "", ""])
            for item in items:
                quote_data.append([
                    Paragraph(f"<b>{escape(item.name)}</b><br/>{escape(item.description)}", styles['ItemText']),
                    f"{item.quantity:g}",
                    format_cop(item.unit_price),
                    format_cop(item.subtotal),
                ])
        quote_data.append(["TOTAL PROJECT:", "", "", format_cop(quote_total(quote_items))])

        quote_style = [
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#323232')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('BOX', (0, 0), (-1, -1), 0.5, colors.grey),
            ('INNERGRID', (0, 0), (-1, -2), 0.25, colors.lightgrey),
            ('PADDING', (0, 0), (-1, -1), 4),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, -1), (-1, -1), 12),
            ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor(SOLAR_ORANGE)),
            ('TEXTCOLOR', (0, -1), (-1, -1), colors.white),
        ]
        for row in category_rows:
            quote_style.extend([
                ('SPAN', (0, row), (-1, row)),
                ('FONTNAME', (0, row), (-1, row), 'Helvetica-Bold'),
                ('BACKGROUND', (0, row), (-1, row), colors.HexColor('#fef3c7')),
            ])

        quote_table = Table(quote_data, colWidths=[95*mm, 15*mm, 30*mm, 30*mm], repeatRows=1)
        quote_table.setStyle(TableStyle(quote_style))
        elements.append(quote_table)

    # --- 5. AI analysis ---
    if ai_report_text:
        elements.append(Paragraph("5. Detailed Technical Analysis (AI)", styles['SectionHeader']))
        for block in clean_markdown(ai_report_text).split("\n\n"):
            block = block.strip()
            if block:
                elements.append(Paragraph(escape(block).replace("\n", "<br/>"), styles['Normal']))
                elements.append(Spacer(1, 3*mm))

    # --- Notes ---
    elements.append(Spacer(1, 10*mm))
    notes_text = """
    <font size=8>
    Peak sun hours are average reference values per city, not an irradiance simulation.
    Prices are market estimates in Colombian pesos and may vary with supplier and exchange rate.
    This proposal is valid for 30 days from the date shown above.
    </font>
    """
    elements.append(Paragraph(notes_text, styles['Normal']))

    footer = _add_page_footer(company_name, sizing_input.customer_name)
    doc.build(elements, onFirstPage=footer, onLaterPages=footer)

    logger.info("Generated PDF report (%d quote items, AI text: %s)", len(quote_items), bool(ai_report_text))
    return buffer.getvalue()
