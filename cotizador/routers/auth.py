# cotizador/routers/auth.py
import logging
from functools import partial
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials

from cotizador.auth_session import NotAuthenticated, access_token_from_request, get_session, security
from cotizador.config import settings
from cotizador.deps import get_identity_provider, get_optional_identity_provider, get_store
from cotizador.models.auth import LoginInput, RegisterInput, SessionIdentity, SessionState
from cotizador.services.cosmos_client import CosmosStore
from cotizador.services.identity_provider import (
    USER_EXISTS,
    ProviderAuthError,
    SupabaseIdentityProvider,
)
from cotizador.services.legacy_bridge import BridgeState, LegacyLoginBridge
from cotizador.services.session_reconciler import (
    PROVIDER_COOKIES,
    SESSION_COOKIES,
    Identity,
    ReconcileResult,
    Unauthenticated,
    clear_cookies,
    set_provider_cookies,
    set_session_cookies,
    state_tag,
)
from cotizador.services.users_service import get_user_record, upsert_user_from_provider

log = logging.getLogger("cotizador.auth")

router = APIRouter()

FAILURE_STATUS = {
    BridgeState.EMAIL_NOT_VERIFIED: 403,
    BridgeState.INVALID_CREDENTIALS: 401,
    BridgeState.MIGRATION_FAILED: 502,
    BridgeState.RETRY_FAILED: 502,
    BridgeState.SYNC_FAILED: 503,
    BridgeState.ACCOUNT_DISABLED: 403,
}


def landing_path(role: str) -> str:
    return "/admin" if (role or "").upper() == "ADMIN" else "/quote/new"


@router.post("/login")
def login(
    body: LoginInput,
    response: Response,
    store: CosmosStore = Depends(get_store),
    provider: SupabaseIdentityProvider = Depends(get_identity_provider),
):
    bridge = LegacyLoginBridge(
        provider,
        lookup_record=partial(get_user_record, store),
        upsert_user=partial(upsert_user_from_provider, store, default_role=settings.DEFAULT_ROLE),
    )
    outcome = bridge.run(body.email, body.password)

    if not outcome.ok:
        raise HTTPException(status_code=FAILURE_STATUS[outcome.state], detail=outcome.message)

    user = outcome.user
    secure = settings.is_production
    set_provider_cookies(response, outcome.session.access_token, outcome.session.refresh_token, secure)
    set_session_cookies(response, Identity(user.user_id, user.name, user.role, user.email), secure)

    return {
        "user": user,
        "migrated": outcome.migrated,
        "redirect": landing_path(user.role),
    }


@router.post("/register", status_code=201)
def register(
    body: RegisterInput,
    store: CosmosStore = Depends(get_store),
    provider: SupabaseIdentityProvider = Depends(get_identity_provider),
):
    try:
        user = provider.sign_up(
            body.email,
            body.password,
            name=body.name,
            redirect_to=f"{settings.APP_BASE_URL.rstrip('/')}/auth/callback",
        )
    except ProviderAuthError as e:
        if e.code == USER_EXISTS:
            raise HTTPException(status_code=409, detail="Un compte existe déjà pour cet e-mail.")
        raise HTTPException(status_code=400, detail="Inscription impossible.")

    upsert_user_from_provider(store, user.id, user.email or body.email, body.name, settings.DEFAULT_ROLE)
    return {"ok": True, "email_confirmation_required": not user.email_confirmed}


def _revoke(provider: SupabaseIdentityProvider, access_token: str) -> None:
    try:
        provider.sign_out(access_token)
    except ProviderAuthError as e:
        log.error("Révocation de session échouée: %s", e.message)


@router.get("/callback")
def auth_callback(
    code: Optional[str] = Query(default=None),
    store: CosmosStore = Depends(get_store),
    provider: SupabaseIdentityProvider = Depends(get_identity_provider),
):
    """
    Retour du lien de confirmation / OAuth : échange du code, synchronisation
    de la fiche, cookies, puis redirection selon le rôle.
    """
    base = settings.APP_BASE_URL.rstrip("/")
    if not code:
        return RedirectResponse(f"{base}/login?error=missing_code", status_code=303)

    try:
        session = provider.exchange_code_for_session(code)
    except ProviderAuthError as e:
        log.warning("Échange du code refusé: %s", e.message)
        return RedirectResponse(f"{base}/login?error=auth", status_code=303)

    try:
        user = upsert_user_from_provider(
            store, session.user.id, session.user.email, session.user.name, settings.DEFAULT_ROLE
        )
    except Exception as e:
        log.error("Synchronisation de la fiche échouée: %s", e, extra={"email": session.user.email})
        _revoke(provider, session.access_token)
        return RedirectResponse(f"{base}/login?error=sync", status_code=303)

    if not user.active:
        log.info("Compte désactivé", extra={"email": user.email})
        _revoke(provider, session.access_token)
        return RedirectResponse(f"{base}/login?error=disabled", status_code=303)

    redirect = RedirectResponse(f"{base}{landing_path(user.role)}", status_code=303)
    secure = settings.is_production
    set_provider_cookies(redirect, session.access_token, session.refresh_token, secure)
    set_session_cookies(redirect, Identity(user.user_id, user.name, user.role, user.email), secure)
    return redirect


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(security),
    provider: Optional[SupabaseIdentityProvider] = Depends(get_optional_identity_provider),
):
    token = access_token_from_request(request, creds)
    if token and provider is not None:
        try:
            provider.sign_out(token)
        except ProviderAuthError as e:
            log.warning("Déconnexion Supabase échouée: %s", e.message)

    clear_cookies(response, SESSION_COOKIES + PROVIDER_COOKIES, secure=settings.is_production)
    return {"ok": True}


@router.get("/me", response_model=SessionState)
def me(result: ReconcileResult = Depends(get_session)):
    if isinstance(result, Unauthenticated):
        raise NotAuthenticated()
    ident = result.identity
    return SessionState(
        state=state_tag(result),
        identity=SessionIdentity(id=ident.id, email=ident.email, name=ident.name, role=ident.role),
    )
