"""Tests for the Gemini narrative report."""

from types import SimpleNamespace

import pytest

import ai_report
from ai_report import (
    AI_EMPTY_MESSAGE,
    AI_UNAVAILABLE_MESSAGE,
    build_prompt,
    generate_ai_report,
    get_api_key,
    get_model_name,
    has_inductive_loads,
)
from models import Appliance
from utils import calculate_system


class FakeClient:
    """Stands in for genai.Client."""

    calls = []
    text = "## Informe\nSistema viable"
    error = None

    def __init__(self, api_key=None):
        self.api_key = api_key
        self.models = self

    def generate_content(self, model, contents):
        FakeClient.calls.append((self.api_key, model, contents))
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


@pytest.fixture
def fake_genai(monkeypatch):
    FakeClient.calls = []
    monkeypatch.setattr(FakeClient, "text", "## Informe\nSistema viable")
    monkeypatch.setattr(FakeClient, "error", None)
    monkeypatch.setattr(ai_report.genai, "Client", FakeClient)
    return FakeClient


class TestConfiguration:
    def test_api_key_precedence(self, monkeypatch) -> None:
        monkeypatch.setenv("API_KEY", "fallback")
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        assert get_api_key() == "fallback"
        monkeypatch.setenv("GEMINI_API_KEY", "primary")
        assert get_api_key() == "primary"

    def test_model_name(self, monkeypatch) -> None:
        monkeypatch.delenv("GEMINI_MODEL", raising=False)
        assert get_model_name() == "gemini-2.5-flash"
        monkeypatch.setenv("GEMINI_MODEL", "gemini-pro")
        assert get_model_name() == "gemini-pro"


class TestPrompt:
    def test_bill_prompt_has_results(self, bill_input) -> None:
        prompt = build_prompt(bill_input, calculate_system(bill_input))
        assert "Basado en Recibo Mensual" in prompt
        assert "6 paneles de 550W" in prompt
        assert "3100W" in prompt
        assert "817 Ah" in prompt
        assert "LISTA DE EQUIPOS" not in prompt

    def test_load_prompt_lists_appliances(self, load_input) -> None:
        prompt = build_prompt(load_input, calculate_system(load_input))
        assert "1x Refrigerator (150W, 24h/día)" in prompt
        assert "Se detectaron cargas inductivas" in prompt

    def test_inductive_detection(self) -> None:
        assert has_inductive_loads([Appliance(id="1", name="Water Pump", power=750)])
        assert not has_inductive_loads([Appliance(id="1", name="LED bulb", power=10)])


class TestGenerateReport:
    def test_success(self, bill_input, fake_genai) -> None:
        result = calculate_system(bill_input)
        text = generate_ai_report(bill_input, result, api_key="k", model_name="m")
        assert text == "## Informe\nSistema viable"
        api_key, model, contents = fake_genai.calls[0]
        assert api_key == "k"
        assert model == "m"
        assert contents == build_prompt(bill_input, result)

    def test_missing_key(self, bill_input, fake_genai, monkeypatch) -> None:
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("API_KEY", raising=False)
        assert generate_ai_report(bill_input, calculate_system(bill_input)) == AI_UNAVAILABLE_MESSAGE
        assert fake_genai.calls == []

    def test_request_failure(self, bill_input, fake_genai, monkeypatch) -> None:
        monkeypatch.setattr(fake_genai, "error", RuntimeError("quota exceeded"))
        result = calculate_system(bill_input)
        assert generate_ai_report(bill_input, result, api_key="k") == AI_UNAVAILABLE_MESSAGE

    def test_empty_answer(self, bill_input, fake_genai, monkeypatch) -> None:
        monkeypatch.setattr(fake_genai, "text", "")
        result = calculate_system(bill_input)
        assert generate_ai_report(bill_input, result, api_key="k") == AI_EMPTY_MESSAGE
