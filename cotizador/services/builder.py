# cotizador/services/builder.py
"""
Chiffrage côté serveur d'un brouillon de devis.

Les prix envoyés par le client ne sont jamais repris : chaque profil est
re-résolu contre la table de tarifs, chaque service contre les tarifs de
run, puis les totaux sont recalculés.
"""
from typing import Mapping, Sequence

from Quoting.estimate import build_estimate, criticality_level, staffing_line_cost
from Quoting.pricing import default_role_price, find_service_rate, resolve_price

from cotizador.models.quote import (
    CriticalityLevel,
    QuoteDraft,
    QuoteEstimate,
    ServiceLine,
    StaffingLine,
)


class UnavailableProfile(Exception):
    """Un profil demandé n'a pas de prix pour ce niveau."""

    def __init__(self, role: str, level: str):
        super().__init__(f"Perfil no disponible: {role} ({level})")
        self.role = role
        self.level = level


def estimate_draft(
    draft: QuoteDraft,
    rates: Sequence,
    multipliers: Mapping[str, float],
) -> QuoteEstimate:
    staffing = []
    for p in draft.profiles:
        unit_price = resolve_price(
            p.role,
            p.level,
            rates,
            default_price=default_role_price(p.role),
            multipliers=multipliers,
        )
        if unit_price <= 0:
            raise UnavailableProfile(p.role, p.level)
        staffing.append(StaffingLine(
            role=p.role,
            level=p.level,
            count=p.count,
            allocation=p.allocation,
            unit_price=round(unit_price, 2),
            monthly_cost=round(staffing_line_cost(unit_price, p.allocation, p.count), 2),
        ))

    services = []
    for s in draft.services:
        if s.quantity <= 0:
            continue
        unit_price = find_service_rate(rates, s.service, draft.update_frequency, draft.project_type)
        services.append(ServiceLine(
            service=s.service,
            quantity=s.quantity,
            unit_price=round(unit_price, 2),
            monthly_cost=round(unit_price * s.quantity, 2),
        ))

    crit = draft.criticality
    level = criticality_level(
        crit.enabled,
        crit.impact_operative,
        crit.impact_financial,
        crit.countries_count,
        draft.report_users,
    )

    totals = build_estimate(
        [l.model_dump() for l in staffing],
        [l.model_dump() for l in services],
        draft.service_type,
        draft.duration_months,
        level,
    )
    return QuoteEstimate(
        staffing=staffing,
        services=services,
        criticality=CriticalityLevel(**level),
        **totals,
    )
