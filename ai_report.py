"""Technical narrative for a sized system, written by Google Gemini.

The request is optional: any failure returns a fixed message and leaves the
computed sizing and quote untouched.
"""

import logging
import os

from google import genai
from dotenv import load_dotenv

from constants import INDUCTIVE_LOAD_KEYWORDS
from models import CalculationMode

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_MODEL = "gemini-2.5-flash"

AI_EMPTY_MESSAGE = "No se pudo generar el reporte detallado."
AI_UNAVAILABLE_MESSAGE = (
    "Ocurrió un error al conectar con el asistente de IA. "
    "Por favor verifica tu conexión o clave API."
)


def get_api_key() -> str:
    return os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")


def get_model_name() -> str:
    return os.getenv("GEMINI_MODEL", DEFAULT_MODEL)


def has_inductive_loads(appliances: list) -> bool:
    """True when any appliance looks like a motor or compressor load."""
    for app in appliances:
        name = app.name.lower()
        if any(keyword in name for keyword in INDUCTIVE_LOAD_KEYWORDS):
            return True
    return False


def build_prompt(sizing_input, result) -> str:
    """Engineering brief for the model, in Spanish for the local market."""
    panel = sizing_input.selected_panel

    appliances_context = ""
    if sizing_input.calculation_mode == CalculationMode.LOAD_ANALYSIS and sizing_input.appliances:
        app_list = "\n".join(
            f"- {app.quantity}x {app.name} ({app.power:g}W, {app.hours:g}h/día)"
            for app in sizing_input.appliances
        )
        appliances_context = f"""
ANÁLISIS DE CARGA DETALLADO (LISTA DE EQUIPOS):
{app_list}

Por favor, analiza si hay equipos inductivos (motores, bombas, neveras) que requieran consideraciones especiales de pico de arranque para el inversor.
"""
        if has_inductive_loads(sizing_input.appliances):
            appliances_context += "Se detectaron cargas inductivas en la lista.\n"

    mode_label = (
        "Basado en Recibo Mensual"
        if sizing_input.calculation_mode == CalculationMode.BILL
        else "Análisis de Carga Manual"
    )

    return f"""
Actúa como un ingeniero senior en energías renovables. Genera un informe técnico conciso y recomendaciones basadas en los siguientes datos de un sistema solar fotovoltaico:

DATOS DE ENTRADA:
- Modo de Cálculo: {mode_label}
- Consumo Diario Estimado: {result.daily_consumption_wh / 1000:.2f} kWh
- Horas Sol Pico (HSP): {sizing_input.peak_sun_hours:g} h
- Panel Seleccionado: {panel.brand} {panel.model} ({panel.power:g}W)
- Voltaje del Sistema: {sizing_input.battery_voltage:g} V
- Días de Autonomía: {sizing_input.autonomy_days:g} días
{appliances_context}
RESULTADOS TÉCNICOS CALCULADOS:
- Generación FV Requerida: {result.number_of_panels} paneles de {panel.power:g}W (Total: {result.number_of_panels * panel.power:g} Wp)
- Inversor Recomendado: {result.inverter.suggested_size_w}W ({result.inverter.type_label})
- Banco de Baterías: {round(result.battery_capacity_ah)} Ah a {sizing_input.battery_voltage:g}V
- Demanda Máxima Estimada: {result.max_power_demand_w:g} W

ESTRUCTURA DEL REPORTE (Formato Markdown):
1. **Análisis de Viabilidad**: Evalúa si el sistema está bien equilibrado. Si hay cargas inductivas mencionadas, comenta sobre el inversor.
2. **Especificaciones del Inversor**: Explica por qué se sugiere un inversor de {result.inverter.suggested_size_w}W y tipo {result.inverter.type_label}. Valida si el breaker de DC sugerido ({result.inverter.suggested_breaker_amps}A) es adecuado.
3. **Panel Solar y Eficiencia**: Comenta brevemente sobre la calidad del panel {panel.brand} seleccionado.
4. **Banco de Baterías**: Comenta sobre la autonomía real esperada.
5. **Recomendaciones de Instalación**: Tips sobre orientación, inclinación y cableado (menciona calibre AWG grueso para baterías).

Tono profesional, técnico pero educativo.
"""


def generate_ai_report(sizing_input, result, api_key: str = None, model_name: str = None) -> str:
    """Ask Gemini for a narrative report.

    Never raises: a missing key or a failed request yields
    AI_UNAVAILABLE_MESSAGE, an empty answer yields AI_EMPTY_MESSAGE.
    """
    api_key = api_key or get_api_key()
    model_name = model_name or get_model_name()

    if not api_key:
        logger.warning("No Gemini API key configured; skipping AI report")
        return AI_UNAVAILABLE_MESSAGE

    prompt = build_prompt(sizing_input, result)

    try:
        client = genai.Client(api_key=api_key)
        response = client.models.generate_content(model=model_name, contents=prompt)
        text = getattr(response, "text", None)
    except Exception:
        logger.exception("Error generating solar report with %s", model_name)
        return AI_UNAVAILABLE_MESSAGE

    if not text:
        logger.warning("Gemini returned an empty report")
        return AI_EMPTY_MESSAGE

    logger.info("AI report generated (%d chars)", len(text))
    return text.strip()
