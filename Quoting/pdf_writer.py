# Quoting/pdf_writer.py
from io import BytesIO
from typing import Any, Dict, List

from reportlab.lib.colors import Color, HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

DARK = HexColor("#242423")
ACCENT = HexColor("#F5CB5C")
GRAY = HexColor("#6B7280")
BLACK = HexColor("#000000")
WHITE = HexColor("#FFFFFF")
ALT_ROW = Color(0.96, 0.96, 0.98)

PAGE_W, PAGE_H = A4
MARGIN_L = 40
MARGIN_R = 40
MARGIN_T = 40
MARGIN_B = 60
CONTENT_W = PAGE_W - MARGIN_L - MARGIN_R
ROW_H = 16


def _draw_header(c, fields: Dict[str, Any]) -> float:
    y = PAGE_H - MARGIN_T
    c.setFillColor(DARK)
    c.setFont("Helvetica-Bold", 18)
    c.drawString(MARGIN_L, y - 18, "PROPUESTA COMERCIAL")

    c.setFillColor(GRAY)
    c.setFont("Helvetica", 8)
    c.drawRightString(MARGIN_L + CONTENT_W, y - 8, f"Ref: #{fields['reference']}")
    c.drawRightString(MARGIN_L + CONTENT_W, y - 18, f"Fecha: {fields['date']}")
    c.drawRightString(MARGIN_L + CONTENT_W, y - 28, f"Validez: {fields['validity']}")

    c.setStrokeColor(ACCENT)
    c.setLineWidth(2)
    c.line(MARGIN_L, y - 36, MARGIN_L + CONTENT_W, y - 36)

    c.setFillColor(BLACK)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(MARGIN_L, y - 54, "Cliente:")
    c.drawString(MARGIN_L, y - 68, "Consultor:")
    c.setFont("Helvetica", 10)
    c.drawString(MARGIN_L + 70, y - 54, fields["client_name"].upper()[:60])
    c.drawString(MARGIN_L + 70, y - 68, fields["consultant"][:60])
    return y - 86


def _draw_section_title(c, y: float, title: str) -> float:
    c.setFillColor(DARK)
    c.setFont("Helvetica-Bold", 11)
    c.drawString(MARGIN_L, y - 12, title.upper())
    return y - 20


def _draw_paragraph(c, y: float, text: str, size: int = 9, color=BLACK) -> float:
    c.setFillColor(color)
    c.setFont("Helvetica", size)
    for line in simpleSplit(text, "Helvetica", size, CONTENT_W):
        c.drawString(MARGIN_L, y - size, line)
        y -= size + 3
    return y - 4


def _draw_table(c, y: float, headers: List[str], rows: List[Dict[str, str]]) -> float:
    cols = [MARGIN_L + 4, MARGIN_L + 270, MARGIN_L + 390, MARGIN_L + CONTENT_W - 4]

    c.setFillColor(DARK)
    c.rect(MARGIN_L, y - ROW_H, CONTENT_W, ROW_H, fill=1, stroke=0)
    c.setFillColor(WHITE)
    c.setFont("Helvetica-Bold", 8)
    c.drawString(cols[0], y - 11, headers[0])
    c.drawString(cols[1], y - 11, headers[1])
    c.drawRightString(cols[2] + 60, y - 11, headers[2])
    c.drawRightString(cols[3], y - 11, headers[3])
    y -= ROW_H

    for idx, row in enumerate(rows):
        if y < MARGIN_B + ROW_H:
            c.showPage()
            y = PAGE_H - MARGIN_T
        if idx % 2 == 1:
            c.setFillColor(ALT_ROW)
            c.rect(MARGIN_L, y - ROW_H, CONTENT_W, ROW_H, fill=1, stroke=0)
        c.setFillColor(BLACK)
        c.setFont("Helvetica", 8)
        c.drawString(cols[0], y - 11, row["label"][:55])
        c.drawString(cols[1], y - 11, row["meta"])
        c.drawRightString(cols[2] + 60, y - 11, row["monthly"])
        c.setFont("Helvetica-Bold", 8)
        c.drawRightString(cols[3], y - 11, row["total"])
        y -= ROW_H
    return y - 8


def _draw_totals(c, y: float, fields: Dict[str, Any]) -> float:
    x_label = MARGIN_L + 330
    x_val = MARGIN_L + CONTENT_W - 8

    c.setFillColor(BLACK)
    c.setFont("Helvetica", 9)
    c.drawRightString(x_label, y - 12, "Inversión mensual:")
    c.drawRightString(x_val, y - 12, fields["monthly_total"])
    y -= 20

    c.setFillColor(DARK)
    c.rect(MARGIN_L + 200, y - 18, CONTENT_W - 200, 22, fill=1, stroke=0)
    c.setFillColor(ACCENT)
    c.setFont("Helvetica-Bold", 11)
    c.drawRightString(x_label, y - 12, f"TOTAL ({fields['duration_months']} meses):")
    c.drawRightString(x_val, y - 12, fields["project_total"])
    return y - 30


def _draw_footer(c, fields: Dict[str, Any]):
    c.setFillColor(GRAY)
    c.setFont("Helvetica", 7)
    c.drawCentredString(
        PAGE_W / 2, MARGIN_B - 30,
        f"Propuesta #{fields['reference']} · {fields['client_name']}",
    )


def render_quote_pdf(fields: Dict[str, Any]) -> bytes:
    """
    Rend la proposition en PDF (A4) avec le canvas reportlab.
    Mêmes sections que l'export Word, sans le diagramme Mermaid
    (il n'est pas rendu en image côté serveur).
    """
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(f"Cotización {fields['reference']}")
    c.setAuthor(fields["consultant"])

    y = _draw_header(c, fields)

    y = _draw_section_title(c, y, f"1. Objetivo ({fields['service_type']})")
    y = _draw_paragraph(c, y, fields["objective"])
    if fields.get("description"):
        y = _draw_paragraph(c, y, fields["description"], color=GRAY)

    y = _draw_section_title(c, y, "2. Equipo de trabajo")
    if fields["staffing_rows"]:
        y = _draw_table(c, y, ["PERFIL", "DEDICACIÓN", "MENSUAL", "TOTAL"], fields["staffing_rows"])
    else:
        y = _draw_paragraph(c, y, "Sin perfiles asignados.", color=GRAY)

    if fields["cost_rows"]:
        y = _draw_section_title(c, y, "3. Servicios y cargos")
        y = _draw_table(c, y, ["CONCEPTO", "CANTIDAD", "MENSUAL", "TOTAL"], fields["cost_rows"])

    if y < MARGIN_B + 80:
        _draw_footer(c, fields)
        c.showPage()
        y = PAGE_H - MARGIN_T
    y = _draw_section_title(c, y, "4. Resumen financiero")
    _draw_totals(c, y, fields)

    _draw_footer(c, fields)
    c.save()
    return buf.getvalue()
