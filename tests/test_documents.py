"""Tests des exports Word / PDF d'un devis."""

import io
import json
import re
import zipfile
from datetime import date

from docx import Document

from Quoting.document import export_filename, fmt_money, quote_document_fields
from Quoting.pdf_writer import render_quote_pdf
from Quoting.writer import render_quote_docx


def stored_quote(service_type="Project", **overrides):
    estimate = {
        "services": [{"service": "Pipelines", "quantity": 3, "unit_price": 500.0, "monthly_cost": 1500.0}],
        "roles_cost": 7000.0,
        "services_cost": 1500.0,
        "l2_support_cost": 850.0,
        "risk_cost": 935.0,
        "total_monthly_cost": 9350.0,
        "total_with_risk": 10285.0,
        "total_project_cost": 61710.0,
        "duration_months": 6,
        "criticality": {"label": "MEDIA", "margin": 0.10, "score": 10},
    }
    quote = {
        "id": "a1b2c3d4-0000-4000-8000-000000000000",
        "client_name": "Banco Global",
        "service_type": service_type,
        "technical_parameters": json.dumps({"description": "Migración a Lakehouse.", "estimate": estimate}),
        "estimated_cost": 9350.0,
        "staffing_requirements": json.dumps([
            {"role": "Data Engineer", "level": "Sr", "count": 2, "allocation": 50,
             "unit_price": 7000.0, "monthly_cost": 7000.0},
        ]),
        "diagram_definition": "graph TD\n  Source --> Pipe\n",
        "status": "BORRADOR",
        "created_at": "2026-03-05T10:00:00Z",
    }
    quote.update(overrides)
    return quote


class TestFields:
    def test_header(self):
        fields = quote_document_fields(stored_quote(), consultant="Ana")
        assert fields["reference"] == "A1B2C3D4"
        assert fields["date"] == "05/03/2026"
        assert fields["validity"] == "30 días"
        assert fields["consultant"] == "Ana"
        assert fields["description"] == "Migración a Lakehouse."

    def test_rows_and_totals(self):
        fields = quote_document_fields(stored_quote())
        assert fields["staffing_rows"] == [{
            "label": "Data Engineer (Sr)",
            "meta": "2 x 50%",
            "monthly": "$7,000",
            "total": "$42,000",
        }]
        labels = [row["label"] for row in fields["cost_rows"]]
        assert labels == ["Pipelines", "Soporte L2", "Fee de Gestión y Riesgo"]
        assert fields["cost_rows"][2]["meta"] == "10%"
        assert fields["monthly_total"] == "$10,285"
        assert fields["project_total"] == "$61,710"

    def test_crm_revised_cost_overrides_totals(self):
        fields = quote_document_fields(stored_quote(estimated_cost=12000.0))
        assert fields["monthly_total"] == "$12,000"
        assert fields["project_total"] == "$72,000"

    def test_staffing_has_no_l2_row(self):
        fields = quote_document_fields(stored_quote("Staffing"))
        assert "Soporte L2" not in [row["label"] for row in fields["cost_rows"]]

    def test_defaults_on_sparse_quote(self):
        fields = quote_document_fields({"client_name": "X", "technical_parameters": "not json"})
        assert fields["reference"] == "PENDIENTE"
        assert fields["consultant"] == "Equipo Comercial"
        assert fields["staffing_rows"] == []
        assert fields["cost_rows"] == []
        assert fields["duration_months"] == 1

    def test_money_format(self):
        assert fmt_money(1234567.4) == "$1,234,567"
        assert fmt_money(None) == "$0"


class TestFilename:
    def test_sanitized(self):
        name = export_filename("Banco Global S.A.", "pdf", today=date(2026, 3, 5))
        assert name == "cotizacion_Banco_Global_S_A__2026-03-05.pdf"

    def test_empty_client(self):
        assert export_filename("", "docx", today=date(2026, 3, 5)) == "cotizacion_proyecto_2026-03-05.docx"


class TestRender:
    def test_docx(self):
        content = render_quote_docx(quote_document_fields(stored_quote(), consultant="Ana"))
        assert content[:2] == b"PK"
        assert "word/document.xml" in zipfile.ZipFile(io.BytesIO(content)).namelist()

        text = "\n".join(p.text for p in Document(io.BytesIO(content)).paragraphs)
        assert "BANCO GLOBAL" in text.upper()

    def test_pdf(self):
        content = render_quote_pdf(quote_document_fields(stored_quote()))
        assert content.startswith(b"%PDF")
        assert content.rstrip().endswith(b"%%EOF")

    def test_pdf_many_rows_paginates(self):
        staffing = [
            {"role": f"Rol {i}", "level": "Sr", "count": 1, "allocation": 100, "monthly_cost": 1000.0}
            for i in range(80)
        ]
        quote = stored_quote(staffing_requirements=json.dumps(staffing))
        content = render_quote_pdf(quote_document_fields(quote))
        assert len(re.findall(rb"/Type /Page[^s]", content)) >= 2
