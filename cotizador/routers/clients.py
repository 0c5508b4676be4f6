# cotizador/routers/clients.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from cotizador.auth_session import get_current_identity
from cotizador.deps import get_store
from cotizador.models.client import Client, ClientInput
from cotizador.services.clients_service import (
    ClientInUse,
    ClientNotFound,
    create_client,
    delete_client,
    get_client,
    list_clients,
    update_client,
)
from cotizador.services.cosmos_client import CosmosStore
from cotizador.services.session_reconciler import Identity

router = APIRouter()


@router.get("", response_model=List[Client])
def search_clients(
    q: str = Query(default=""),
    _: Identity = Depends(get_current_identity),
    store: CosmosStore = Depends(get_store),
):
    return list_clients(store, q)


@router.post("", response_model=Client, status_code=201)
def new_client(
    body: ClientInput,
    identity: Identity = Depends(get_current_identity),
    store: CosmosStore = Depends(get_store),
):
    return create_client(store, body, identity.id)


@router.get("/{client_id}", response_model=Client)
def read_client(
    client_id: str,
    _: Identity = Depends(get_current_identity),
    store: CosmosStore = Depends(get_store),
):
    try:
        return get_client(store, client_id)
    except ClientNotFound:
        raise HTTPException(status_code=404, detail="Client introuvable.")


@router.put("/{client_id}", response_model=Client)
def edit_client(
    client_id: str,
    body: ClientInput,
    _: Identity = Depends(get_current_identity),
    store: CosmosStore = Depends(get_store),
):
    try:
        return update_client(store, client_id, body)
    except ClientNotFound:
        raise HTTPException(status_code=404, detail="Client introuvable.")


@router.delete("/{client_id}")
def remove_client(
    client_id: str,
    _: Identity = Depends(get_current_identity),
    store: CosmosStore = Depends(get_store),
):
    try:
        delete_client(store, client_id)
    except ClientNotFound:
        raise HTTPException(status_code=404, detail="Client introuvable.")
    except ClientInUse:
        raise HTTPException(status_code=409, detail="Des devis référencent ce client.")
    return {"ok": True}
