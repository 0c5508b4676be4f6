# Quoting/writer.py
from io import BytesIO
from typing import Any, Dict, List

from docx import Document as DocxDocument
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt, RGBColor

DEFAULT_FONT = "Calibri"
BRAND_COLOR = RGBColor(0x24, 0x24, 0x23)
ACCENT_COLOR = RGBColor(0xF5, 0xCB, 0x5C)
MUTED_COLOR = RGBColor(0x6B, 0x72, 0x80)


def _run(par, text: str, bold: bool = False, size: int = 10, color: RGBColor = None):
    r = par.add_run(text)
    r.bold = bold
    r.font.name = DEFAULT_FONT
    r.font.size = Pt(size)
    if color is not None:
        r.font.color.rgb = color
    return r


def _heading(doc: DocxDocument, text: str):
    par = doc.add_paragraph()
    par.paragraph_format.space_before = Pt(12)
    par.paragraph_format.space_after = Pt(4)
    _run(par, text.upper(), bold=True, size=12, color=BRAND_COLOR)
    return par


def _table(doc: DocxDocument, headers: List[str], rows: List[List[str]]):
    table = doc.add_table(rows=1, cols=len(headers))
    table.style = "Table Grid"

    for cell, label in zip(table.rows[0].cells, headers):
        cell.text = ""
        _run(cell.paragraphs[0], label, bold=True, size=9)

    for values in rows:
        cells = table.add_row().cells
        for idx, (cell, value) in enumerate(zip(cells, values)):
            cell.text = ""
            par = cell.paragraphs[0]
            if idx >= 2:
                par.alignment = WD_ALIGN_PARAGRAPH.RIGHT
            _run(par, value, size=9)
    return table


def render_quote_docx(fields: Dict[str, Any]) -> bytes:
    """
    Construit la proposition commerciale au format .docx :
    en-tête, objectif, équipe, coûts, résumé financier et architecture.
    `fields` vient de Quoting.document.quote_document_fields.
    """
    doc = DocxDocument()

    style = doc.styles["Normal"]
    style.font.name = DEFAULT_FONT
    style.font.size = Pt(10)

    # En-tête
    title = doc.add_paragraph()
    _run(title, "PROPUESTA COMERCIAL", bold=True, size=20, color=BRAND_COLOR)

    meta = doc.add_paragraph()
    _run(meta, f"Ref: #{fields['reference']}", size=9, color=MUTED_COLOR)
    _run(meta, f"    Fecha: {fields['date']}", size=9, color=MUTED_COLOR)
    _run(meta, f"    Validez: {fields['validity']}", size=9, color=MUTED_COLOR)

    client = doc.add_paragraph()
    _run(client, "Cliente: ", bold=True)
    _run(client, fields["client_name"].upper())

    consultant = doc.add_paragraph()
    _run(consultant, "Consultor: ", bold=True)
    _run(consultant, fields["consultant"])

    # 1. Objectif
    _heading(doc, f"1. Objetivo ({fields['service_type']})")
    doc.add_paragraph().add_run(fields["objective"]).font.name = DEFAULT_FONT
    if fields.get("description"):
        par = doc.add_paragraph()
        _run(par, fields["description"], size=10, color=MUTED_COLOR)

    # 2. Équipe
    _heading(doc, "2. Equipo de trabajo")
    if fields["staffing_rows"]:
        _table(
            doc,
            ["Perfil", "Dedicación", "Mensual", "Total"],
            [[r["label"], r["meta"], r["monthly"], r["total"]] for r in fields["staffing_rows"]],
        )
    else:
        _run(doc.add_paragraph(), "Sin perfiles asignados.", color=MUTED_COLOR)

    # 3. Services et frais
    if fields["cost_rows"]:
        _heading(doc, "3. Servicios y cargos")
        _table(
            doc,
            ["Concepto", "Cantidad", "Mensual", "Total"],
            [[r["label"], r["meta"], r["monthly"], r["total"]] for r in fields["cost_rows"]],
        )

    # 4. Résumé financier
    _heading(doc, "4. Resumen financiero")
    monthly = doc.add_paragraph()
    _run(monthly, "Inversión mensual: ", bold=True)
    _run(monthly, fields["monthly_total"])

    total = doc.add_paragraph()
    _run(total, f"Total proyecto ({fields['duration_months']} meses): ", bold=True)
    _run(total, fields["project_total"], bold=True, size=12, color=BRAND_COLOR)

    # 5. Architecture (définition Mermaid brute)
    if fields.get("diagram_definition"):
        _heading(doc, "5. Arquitectura propuesta")
        for line in fields["diagram_definition"].splitlines():
            par = doc.add_paragraph()
            par.paragraph_format.space_after = Pt(0)
            r = _run(par, line, size=8, color=MUTED_COLOR)
            r.font.name = "Consolas"

    footer = doc.sections[0].footer.paragraphs[0]
    footer.alignment = WD_ALIGN_PARAGRAPH.CENTER
    _run(footer, f"Propuesta #{fields['reference']} · {fields['client_name']}", size=8, color=MUTED_COLOR)

    buf = BytesIO()
    doc.save(buf)
    return buf.getvalue()
