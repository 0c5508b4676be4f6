# Quoting/document.py
import json
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

VALIDITY_DAYS = 30

OBJECTIVES = {
    "Project": (
        "Diseñar e implementar la solución de datos descrita, con un equipo "
        "dedicado durante la duración del proyecto y entregables acordados."
    ),
    "Sustain": (
        "Operar y mantener la solución en producción, garantizando su "
        "disponibilidad, la resolución de incidentes y la mejora continua."
    ),
    "Staffing": (
        "Proveer perfiles especializados que se integran al equipo del cliente "
        "bajo su dirección, con dedicación y seniority acordados."
    ),
}

_SAFE_RE = re.compile(r"[^a-zA-Z0-9]")


def fmt_money(value: float) -> str:
    return f"${float(value or 0):,.0f}"


def _loads(raw: Any, default):
    if isinstance(raw, (dict, list)):
        return raw
    try:
        value = json.loads(raw or "")
    except (TypeError, ValueError):
        return default
    return value if isinstance(value, type(default)) else default


def _created_date(raw: Optional[str]) -> date:
    if raw:
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    return date.today()


def export_filename(client_name: str, ext: str, today: Optional[date] = None) -> str:
    safe = _SAFE_RE.sub("_", client_name or "") or "proyecto"
    day = (today or date.today()).isoformat()
    return f"cotizacion_{safe}_{day}.{ext}"


def quote_document_fields(quote: Dict[str, Any], consultant: str = "") -> Dict[str, Any]:
    """
    Aplatit un devis stocké en un dictionnaire prêt pour le rendu :
    en-tête, lignes de staffing, lignes de coûts, totaux et diagramme.
    """
    params = _loads(quote.get("technical_parameters"), {})
    staffing = _loads(quote.get("staffing_requirements"), [])
    estimate = params.get("estimate") or {}
    duration = int(estimate.get("duration_months") or params.get("duration_months") or 1)
    service_type = quote.get("service_type") or "Project"

    staffing_rows: List[Dict[str, str]] = []
    for line in staffing:
        monthly = float(line.get("monthly_cost", 0))
        staffing_rows.append({
            "label": f"{line.get('role', '')} ({line.get('level', '')})",
            "meta": f"{line.get('count', 1)} x {line.get('allocation', 100)}%",
            "monthly": fmt_money(monthly),
            "total": fmt_money(monthly * duration),
        })

    cost_rows: List[Dict[str, str]] = []
    for line in estimate.get("services") or []:
        monthly = float(line.get("monthly_cost", 0))
        cost_rows.append({
            "label": line.get("service", ""),
            "meta": str(line.get("quantity", 0)),
            "monthly": fmt_money(monthly),
            "total": fmt_money(monthly * duration),
        })

    l2 = float(estimate.get("l2_support_cost") or 0)
    if service_type != "Staffing" and l2 > 0:
        cost_rows.append({
            "label": "Soporte L2",
            "meta": "10%",
            "monthly": fmt_money(l2),
            "total": fmt_money(l2 * duration),
        })

    risk = float(estimate.get("risk_cost") or 0)
    if risk > 0:
        margin = float((estimate.get("criticality") or {}).get("margin", 0))
        cost_rows.append({
            "label": "Fee de Gestión y Riesgo",
            "meta": f"{margin * 100:.0f}%",
            "monthly": fmt_money(risk),
            "total": fmt_money(risk * duration),
        })

    monthly_total = float(estimate.get("total_with_risk") or quote.get("estimated_cost") or 0)
    project_total = float(estimate.get("total_project_cost") or monthly_total * duration)

    # montant révisé depuis le CRM (webhook) : il prime sur l'estimation enregistrée
    stored_cost = quote.get("estimated_cost")
    saved_cost = estimate.get("total_monthly_cost")
    if stored_cost is not None and saved_cost is not None \
            and round(float(stored_cost), 2) != round(float(saved_cost), 2):
        monthly_total = float(stored_cost)
        project_total = monthly_total * duration

    created = _created_date(quote.get("created_at"))

    return {
        "reference": (quote.get("id") or "")[:8].upper() or "PENDIENTE",
        "client_name": quote.get("client_name") or "CLIENTE",
        "service_type": service_type,
        "objective": OBJECTIVES.get(service_type, OBJECTIVES["Project"]),
        "description": (params.get("description") or "").strip(),
        "date": created.strftime("%d/%m/%Y"),
        "validity": f"{VALIDITY_DAYS} días",
        "consultant": consultant or "Equipo Comercial",
        "status": quote.get("status") or "",
        "duration_months": duration,
        "staffing_rows": staffing_rows,
        "cost_rows": cost_rows,
        "monthly_total": fmt_money(monthly_total),
        "project_total": fmt_money(project_total),
        "diagram_definition": quote.get("diagram_definition") or "",
    }
