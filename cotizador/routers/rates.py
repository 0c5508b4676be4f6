# cotizador/routers/rates.py
from typing import List

from fastapi import APIRouter, Depends, Query

from Quoting.pricing import default_role_price, seniority_options

from cotizador.auth_session import get_current_identity
from cotizador.config import settings
from cotizador.deps import get_store
from cotizador.models.rate import SeniorityOption, ServiceRate
from cotizador.services.cosmos_client import CosmosStore
from cotizador.services.rates_service import list_rates
from cotizador.services.session_reconciler import Identity

router = APIRouter()


@router.get("", response_model=List[ServiceRate])
def get_rates(
    _: Identity = Depends(get_current_identity),
    store: CosmosStore = Depends(get_store),
):
    return list_rates(store)


@router.get("/options", response_model=List[SeniorityOption])
def get_seniority_options(
    role: str = Query(min_length=1),
    _: Identity = Depends(get_current_identity),
    store: CosmosStore = Depends(get_store),
):
    """Niveaux proposables pour un profil ; liste vide = profil non disponible."""
    options = seniority_options(
        role,
        list_rates(store),
        default_price=default_role_price(role),
        multipliers=settings.SENIORITY_MULTIPLIERS,
    )
    return [SeniorityOption(level=level, price=round(price, 2)) for level, price in options]
