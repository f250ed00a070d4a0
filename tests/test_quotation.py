"""Tests for PDF proposal generation."""

from datetime import datetime

from reportlab.graphics.shapes import Drawing

import quotation
from equipment import generate_quote
from quotation import (
    clean_markdown,
    create_daily_profile_chart,
    create_energy_balance_chart,
    generate_report_pdf,
    report_filename,
    resolve_company_name,
)
from utils import calculate_system, generate_hourly_profile


class TestReportPdf:
    def test_full_proposal(self, bill_input) -> None:
        bill_input.customer_name = "Ana María <Pérez>"
        result = calculate_system(bill_input)
        pdf = generate_report_pdf(
            bill_input,
            result,
            generate_quote(bill_input, result),
            "## Análisis\n**Viable** system\n- item one",
            company_name="Sol & Co",
        )
        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 2000

    def test_without_quote_or_narrative(self, load_input) -> None:
        result = calculate_system(load_input)
        pdf = generate_report_pdf(load_input, result)
        assert pdf.startswith(b"%PDF")

    def test_company_name_from_environment(self, bill_input, monkeypatch) -> None:
        monkeypatch.setenv("COMPANY_NAME", "Energía Andina")
        footers = []
        build_footer = quotation._add_page_footer

        def recording_footer(company_name, customer_name):
            footers.append(company_name)
            return build_footer(company_name, customer_name)

        monkeypatch.setattr(quotation, "_add_page_footer", recording_footer)

        pdf = generate_report_pdf(bill_input, calculate_system(bill_input), quote_ref="SC-1")
        assert pdf.startswith(b"%PDF")
        assert footers == ["Energía Andina"]

        generate_report_pdf(bill_input, calculate_system(bill_input), company_name="Sol & Co")
        assert footers[-1] == "Sol & Co"


class TestCharts:
    def test_profile_chart(self, bill_input) -> None:
        profile = generate_hourly_profile(bill_input, calculate_system(bill_input))
        assert isinstance(create_daily_profile_chart(profile), Drawing)

    def test_energy_balance_chart(self) -> None:
        assert isinstance(create_energy_balance_chart(9800, 13066, 11137), Drawing)


class TestReportHelpers:
    def test_filename_with_customer(self, bill_input) -> None:
        bill_input.customer_name = "Juan Carlos Diaz"
        assert report_filename(bill_input) == "Oferta_Solar_Juan_Carlos_Diaz.pdf"

    def test_filename_without_customer(self, bill_input) -> None:
        now = datetime(2024, 5, 1, 12, 0, 0)
        expected = f"Reporte_Solar_Medellín_{int(now.timestamp() * 1000)}.pdf"
        assert report_filename(bill_input, now) == expected

    def test_clean_markdown(self) -> None:
        text = "# Title\n**Bold** text\n* bullet\n- dash"
        assert clean_markdown(text) == "Title\nBold text\n• bullet\n• dash"

    def test_company_name_resolution(self, monkeypatch) -> None:
        monkeypatch.delenv("COMPANY_NAME", raising=False)
        assert resolve_company_name() == "SolarCalc AI"
        monkeypatch.setenv("COMPANY_NAME", "Energía Andina")
        assert resolve_company_name() == "Energía Andina"
        assert resolve_company_name("Sol & Co") == "Sol & Co"
