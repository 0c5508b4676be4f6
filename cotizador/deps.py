# cotizador/deps.py
# Clients construits une fois dans le lifespan (app.state) puis injectés par Depends.
from typing import Optional

from fastapi import HTTPException, Request

from cotizador.services.blob_client import BlobArchiver
from cotizador.services.cosmos_client import CosmosStore
from cotizador.services.identity_provider import SupabaseIdentityProvider


def get_optional_store(request: Request) -> Optional[CosmosStore]:
    return getattr(request.app.state, "store", None)


def get_store(request: Request) -> CosmosStore:
    store = get_optional_store(request)
    if store is None:
        raise HTTPException(status_code=503, detail="Cosmos DB non configuré.")
    return store


def get_optional_identity_provider(request: Request) -> Optional[SupabaseIdentityProvider]:
    return getattr(request.app.state, "identity_provider", None)


def get_identity_provider(request: Request) -> SupabaseIdentityProvider:
    provider = get_optional_identity_provider(request)
    if provider is None:
        raise HTTPException(status_code=503, detail="Supabase non configuré.")
    return provider


def get_archiver(request: Request) -> Optional[BlobArchiver]:
    return getattr(request.app.state, "archiver", None)
