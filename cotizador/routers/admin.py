# cotizador/routers/admin.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from cotizador.auth_session import require_admin
from cotizador.deps import get_store
from cotizador.models.auth import AppUser, NewUser, UpdateUserInput
from cotizador.models.quote import AdminStats, Quote, ReviewInput
from cotizador.models.rate import ServiceRate, ServiceRateInput
from cotizador.services.cosmos_client import CosmosStore
from cotizador.services.quotes_service import (
    QuoteNotFound,
    admin_stats,
    delete_quote,
    list_all_quotes,
    review_quote,
)
from cotizador.services.rates_service import RateConflict, delete_rate, list_rates, save_rate
from cotizador.services.session_reconciler import Identity
from cotizador.services.users_service import UserExists, create_user, list_users, update_user

router = APIRouter()


# ---------- Devis ----------

@router.get("/quotes", response_model=List[Quote])
def admin_list_quotes(
    _: Identity = Depends(require_admin),
    store: CosmosStore = Depends(get_store),
):
    return list_all_quotes(store)


@router.get("/stats", response_model=AdminStats)
def admin_get_stats(
    _: Identity = Depends(require_admin),
    store: CosmosStore = Depends(get_store),
):
    return admin_stats(store)


@router.patch("/quotes/{quote_id}/review", response_model=Quote)
def admin_review_quote(
    quote_id: str,
    body: ReviewInput,
    _: Identity = Depends(require_admin),
    store: CosmosStore = Depends(get_store),
):
    try:
        return review_quote(store, quote_id, body.status, body.comment)
    except QuoteNotFound:
        raise HTTPException(status_code=404, detail="Devis introuvable.")


@router.delete("/quotes/{quote_id}")
def admin_delete_quote(
    quote_id: str,
    _: Identity = Depends(require_admin),
    store: CosmosStore = Depends(get_store),
):
    try:
        delete_quote(store, quote_id)
    except QuoteNotFound:
        raise HTTPException(status_code=404, detail="Devis introuvable.")
    return {"ok": True}


# ---------- Tarifs ----------

@router.get("/rates", response_model=List[ServiceRate])
def admin_list_rates(
    _: Identity = Depends(require_admin),
    store: CosmosStore = Depends(get_store),
):
    return list_rates(store)


@router.post("/rates", response_model=ServiceRate)
def admin_save_rate(
    body: ServiceRateInput,
    _: Identity = Depends(require_admin),
    store: CosmosStore = Depends(get_store),
):
    try:
        rate = save_rate(store, body)
    except RateConflict as e:
        raise HTTPException(status_code=409, detail=f"Tarif déjà défini: {e}")
    if rate is None:
        raise HTTPException(status_code=404, detail="Tarif introuvable.")
    return rate


@router.delete("/rates/{rate_id}")
def admin_delete_rate(
    rate_id: str,
    _: Identity = Depends(require_admin),
    store: CosmosStore = Depends(get_store),
):
    if not delete_rate(store, rate_id):
        raise HTTPException(status_code=404, detail="Tarif introuvable.")
    return {"ok": True}


# ---------- Utilisateurs ----------

@router.get("/users", response_model=List[AppUser])
def admin_list_users(
    _: Identity = Depends(require_admin),
    store: CosmosStore = Depends(get_store),
):
    return list_users(store)


@router.post("/users", response_model=AppUser, status_code=201)
def admin_create_user(
    body: NewUser,
    _: Identity = Depends(require_admin),
    store: CosmosStore = Depends(get_store),
):
    try:
        return create_user(store, body)
    except UserExists:
        raise HTTPException(status_code=409, detail="Utilisateur déjà existant.")


@router.patch("/users/{email}", response_model=AppUser)
def admin_update_user(
    email: str,
    body: UpdateUserInput,
    _: Identity = Depends(require_admin),
    store: CosmosStore = Depends(get_store),
):
    u = update_user(store, email, body.model_dump(exclude_none=True))
    if not u:
        raise HTTPException(status_code=404, detail="Utilisateur introuvable.")
    return u
