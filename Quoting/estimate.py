# Quoting/estimate.py

from typing import Any, Dict, Iterable, List

L2_SUPPORT_RATE = 0.10

_IMPACT_POINTS = {"high": 5, "medium": 3, "low": 1}


def criticality_level(
    enabled: bool,
    impact_operative: str = "low",
    impact_financial: str = "low",
    countries_count: int = 1,
    report_users: int = 0,
) -> Dict[str, Any]:
    """
    Score de criticité et marge de risque associée.
    >= 15 : ALTA (20 %), >= 9 : MEDIA (10 %), sinon BAJA (0 %).
    """
    if not enabled:
        return {"label": "BAJA", "margin": 0.0, "score": 0}

    score = _IMPACT_POINTS.get(impact_operative, 1)
    score += _IMPACT_POINTS.get(impact_financial, 1)

    if countries_count > 3:
        score += 5
    elif countries_count > 1:
        score += 2
    else:
        score += 1

    if report_users > 100:
        score += 5
    elif report_users > 10:
        score += 3
    else:
        score += 1

    if score >= 15:
        return {"label": "ALTA", "margin": 0.20, "score": score}
    if score >= 9:
        return {"label": "MEDIA", "margin": 0.10, "score": score}
    return {"label": "BAJA", "margin": 0.0, "score": score}


def staffing_line_cost(unit_price: float, allocation: int = 100, count: int = 1) -> float:
    return float(unit_price) * (allocation / 100.0) * count


def aggregate_profiles(lines: Iterable[Dict[str, Any]]) -> float:
    """Somme des profils sélectionnés (prix x dédication x nombre)."""
    return sum(
        staffing_line_cost(l["unit_price"], l.get("allocation", 100), l.get("count", 1))
        for l in lines
    )


def build_estimate(
    staffing: List[Dict[str, Any]],
    services: List[Dict[str, Any]],
    service_type: str,
    duration_months: int,
    criticality: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Totaux mensuels et projet.

    - support L2 = 10 % de (profils + services), sauf pour le Staffing pur ;
    - frais de risque = marge de criticité x total mensuel ;
    - total projet = total mensuel avec risque x durée.
    """
    roles_cost = aggregate_profiles(staffing)
    services_cost = sum(float(s["unit_price"]) * int(s["quantity"]) for s in services)

    base = roles_cost + services_cost
    l2_support_cost = 0.0 if service_type == "Staffing" else base * L2_SUPPORT_RATE
    total_monthly = base + l2_support_cost
    risk_cost = total_monthly * float(criticality.get("margin", 0.0))
    total_with_risk = total_monthly + risk_cost

    return {
        "roles_cost": round(roles_cost, 2),
        "services_cost": round(services_cost, 2),
        "l2_support_cost": round(l2_support_cost, 2),
        "risk_cost": round(risk_cost, 2),
        "total_monthly_cost": round(total_monthly, 2),
        "total_with_risk": round(total_with_risk, 2),
        "total_project_cost": round(total_with_risk * duration_months, 2),
        "duration_months": duration_months,
    }
