# cotizador/auth_session.py
import time
from functools import partial
from typing import Optional

import requests
from azure.cosmos import exceptions as cosmos_exceptions
from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from cotizador.config import settings
from cotizador.deps import get_optional_store, get_store
from cotizador.services.cosmos_client import CosmosStore
from cotizador.services.identity_provider import ProviderUser
from cotizador.services.session_reconciler import (
    ACCESS_TOKEN_COOKIE,
    DegradedFallback,
    Identity,
    ReconcileResult,
    Unauthenticated,
    apply_result,
    reconcile,
)
from cotizador.services.users_service import get_user_by_email, get_user_record

security = HTTPBearer(auto_error=False)


class NotAuthenticated(Exception):
    """Traduit en 401 (+ effacement des cookies) par le handler de main.py."""


# Cache JWKS + TTL (rotation clés)
_JWKS_CACHE = {"value": None, "ts": 0.0}
_JWKS_TTL_SECONDS = 6 * 60 * 60  # 6h


def _fetch_jwks() -> dict:
    if not settings.SUPABASE_JWKS_URL:
        raise RuntimeError("SUPABASE_URL non configuré.")
    r = requests.get(settings.SUPABASE_JWKS_URL, timeout=10)
    r.raise_for_status()
    return r.json()


def _get_jwks(force_refresh: bool = False) -> dict:
    now = time.time()
    if (
        force_refresh
        or _JWKS_CACHE["value"] is None
        or (now - float(_JWKS_CACHE["ts"])) > _JWKS_TTL_SECONDS
    ):
        _JWKS_CACHE["value"] = _fetch_jwks()
        _JWKS_CACHE["ts"] = now
    return _JWKS_CACHE["value"]


def _pick_signing_key(jwks: dict, kid: Optional[str]):
    if not kid:
        return None
    for k in jwks.get("keys", []) or []:
        if k.get("kid") == kid:
            return k
    return None


def decode_supabase_token(token: str) -> dict:
    """
    Vérifie un access token Supabase.
    HS256 avec le secret du projet s'il est configuré, sinon clés asymétriques via JWKS.
    Lève JWTError si le token est invalide ou expiré.
    """
    if settings.SUPABASE_JWT_SECRET:
        key = settings.SUPABASE_JWT_SECRET
        algorithms = ["HS256"]
    else:
        kid = jwt.get_unverified_header(token).get("kid")
        key = _pick_signing_key(_get_jwks(), kid)
        if not key:
            key = _pick_signing_key(_get_jwks(force_refresh=True), kid)
        if not key:
            raise JWTError("Clé de signature introuvable (JWKS).")
        algorithms = ["RS256", "ES256"]

    claims = jwt.decode(
        token,
        key,
        algorithms=algorithms,
        audience=settings.SUPABASE_JWT_AUDIENCE,
        options={"verify_iss": False},
    )

    expected_iss = settings.SUPABASE_ISSUER
    if expected_iss and (claims.get("iss") or "").rstrip("/") != expected_iss:
        raise JWTError(f"Issuer invalide: {claims.get('iss')}")
    return claims


def _user_from_claims(claims: dict) -> Optional[ProviderUser]:
    user_id = claims.get("sub")
    email = (claims.get("email") or "").lower().strip()
    if not user_id or not email:
        return None
    meta = claims.get("user_metadata") or {}
    return ProviderUser(
        id=str(user_id),
        email=email,
        name=meta.get("name") or meta.get("full_name") or "",
    )


def access_token_from_request(
    request: Request, creds: Optional[HTTPAuthorizationCredentials]
) -> str:
    if creds is not None and creds.credentials:
        return creds.credentials
    return request.cookies.get(ACCESS_TOKEN_COOKIE, "")


def get_provider_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[ProviderUser]:
    """Session Supabase courante ; None si absente, invalide ou expirée."""
    token = access_token_from_request(request, creds)
    if not token:
        return None
    try:
        claims = decode_supabase_token(token)
    except (JWTError, requests.RequestException, RuntimeError):
        return None
    return _user_from_claims(claims)


def _lookup(store: Optional[CosmosStore], email: str) -> Optional[dict]:
    if store is None:
        raise RuntimeError("Cosmos DB non configuré.")
    return get_user_record(store, email)


def get_session(
    request: Request,
    response: Response,
    provider_user: Optional[ProviderUser] = Depends(get_provider_user),
    store: Optional[CosmosStore] = Depends(get_optional_store),
) -> ReconcileResult:
    result = reconcile(
        provider_user,
        request.cookies,
        partial(_lookup, store),
        settings.DEFAULT_ROLE,
    )
    apply_result(response, result, request.cookies, secure=settings.is_production)
    return result


def get_current_identity(result: ReconcileResult = Depends(get_session)) -> Identity:
    if isinstance(result, Unauthenticated):
        raise NotAuthenticated()
    return result.identity


def verify_admin(result: ReconcileResult, store: CosmosStore) -> Identity:
    """
    Décision privilégiée : jamais sur une identité dégradée ni sur le seul
    cookie de rôle, toujours revérifiée contre la fiche Cosmos.
    """
    if isinstance(result, Unauthenticated):
        raise NotAuthenticated()
    if isinstance(result, DegradedFallback):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Rôle non vérifiable pour le moment.",
        )

    identity = result.identity
    try:
        user = get_user_by_email(store, identity.email)
    except cosmos_exceptions.CosmosHttpResponseError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Base utilisateurs indisponible.",
        )
    except ValidationError:
        # fiche illisible : aucun droit privilégié
        user = None

    if not user or not user.active or user.role != "ADMIN":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Accès réservé aux administrateurs.",
        )
    return Identity(id=identity.id, name=user.name, role=user.role, email=identity.email)


def require_admin(
    result: ReconcileResult = Depends(get_session),
    store: CosmosStore = Depends(get_store),
) -> Identity:
    return verify_admin(result, store)
