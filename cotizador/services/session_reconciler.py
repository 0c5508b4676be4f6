# cotizador/services/session_reconciler.py
"""
Réconciliation des cookies de session avec la session Supabase.

La session du fournisseur fait foi. Les trois cookies (rôle, nom, id) ne
sont qu'un cache de la fiche utilisateur Cosmos :

- pas de session fournisseur  -> Unauthenticated, cookies effacés ;
- cookies complets et cohérents -> Synced, lus tels quels (aucune écriture) ;
- sinon (désynchronisé)        -> relecture de la fiche par e-mail,
                                   RepairedFromStore + réécriture des 3 cookies ;
- fiche illisible ou absente   -> DegradedFallback (affichage seulement),
                                   aucune écriture, nouvel essai à la requête suivante.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Union
from urllib.parse import quote, unquote

from cotizador.models.auth import normalize_role
from cotizador.services.identity_provider import ProviderUser

log = logging.getLogger("cotizador.session")

COOKIE_ROLE = "session_role"
COOKIE_USER = "session_user"
COOKIE_USER_ID = "session_user_id"
SESSION_COOKIES = (COOKIE_ROLE, COOKIE_USER, COOKIE_USER_ID)

ACCESS_TOKEN_COOKIE = "sb-access-token"
REFRESH_TOKEN_COOKIE = "sb-refresh-token"
PROVIDER_COOKIES = (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE)

SESSION_MAX_AGE = 60 * 60 * 24 * 7  # 7 jours


@dataclass(frozen=True)
class Identity:
    id: str
    name: str
    role: str
    email: str = ""


@dataclass(frozen=True)
class Unauthenticated:
    reason: str = "no_provider_session"


@dataclass(frozen=True)
class Synced:
    identity: Identity


@dataclass(frozen=True)
class RepairedFromStore:
    identity: Identity


@dataclass(frozen=True)
class DegradedFallback:
    identity: Identity
    reason: str


ReconcileResult = Union[Unauthenticated, Synced, RepairedFromStore, DegradedFallback]

STATE_TAGS = {
    Unauthenticated: "unauthenticated",
    Synced: "synced",
    RepairedFromStore: "repaired",
    DegradedFallback: "degraded",
}


def state_tag(result: ReconcileResult) -> str:
    return STATE_TAGS[type(result)]


def _display_name(provider_user: ProviderUser) -> str:
    return provider_user.name or provider_user.email.split("@")[0]


def reconcile(
    provider_user: Optional[ProviderUser],
    cookies: Mapping[str, str],
    lookup_user: Callable[[str], Optional[dict]],
    default_role: str,
) -> ReconcileResult:
    if provider_user is None:
        return Unauthenticated()

    role = cookies.get(COOKIE_ROLE)
    name = cookies.get(COOKIE_USER)
    user_id = cookies.get(COOKIE_USER_ID)

    if role and name and user_id and user_id == provider_user.id:
        return Synced(Identity(
            id=user_id,
            name=unquote(name),
            role=role,
            email=provider_user.email,
        ))

    try:
        record = lookup_user(provider_user.email)
    except Exception as e:
        log.warning(
            "Fiche utilisateur illisible, identité dégradée: %s", e,
            extra={"email": provider_user.email, "state": "degraded"},
        )
        return DegradedFallback(
            Identity(provider_user.id, _display_name(provider_user), default_role, provider_user.email),
            reason="store_unavailable",
        )

    if record is None:
        log.warning(
            "Aucune fiche utilisateur, identité dégradée",
            extra={"email": provider_user.email, "state": "degraded"},
        )
        return DegradedFallback(
            Identity(provider_user.id, _display_name(provider_user), default_role, provider_user.email),
            reason="record_missing",
        )

    if record.get("active") is False:
        log.info("Compte désactivé", extra={"email": provider_user.email})
        return Unauthenticated(reason="account_disabled")

    identity = Identity(
        id=provider_user.id,
        name=record.get("name") or _display_name(provider_user),
        role=normalize_role(record.get("role"), default_role),
        email=provider_user.email,
    )
    log.info("Cookies de session resynchronisés", extra={"email": identity.email, "state": "repaired"})
    return RepairedFromStore(identity)


def cookie_writes(result: ReconcileResult) -> Dict[str, str]:
    """Les trois cookies à écrire ensemble ; vide sauf après réparation."""
    if not isinstance(result, RepairedFromStore):
        return {}
    ident = result.identity
    return {
        COOKIE_ROLE: ident.role,
        COOKIE_USER: quote(ident.name),
        COOKIE_USER_ID: ident.id,
    }


def cookies_to_clear(result: ReconcileResult, cookies: Mapping[str, str]) -> List[str]:
    if not isinstance(result, Unauthenticated):
        return []
    return [name for name in SESSION_COOKIES + PROVIDER_COOKIES if name in cookies]


def set_session_cookies(response, identity: Identity, secure: bool) -> None:
    for name, value in cookie_writes(RepairedFromStore(identity)).items():
        response.set_cookie(
            name, value,
            max_age=SESSION_MAX_AGE, httponly=True, samesite="lax", secure=secure, path="/",
        )


def set_provider_cookies(response, access_token: str, refresh_token: str, secure: bool) -> None:
    for name, value in ((ACCESS_TOKEN_COOKIE, access_token), (REFRESH_TOKEN_COOKIE, refresh_token)):
        response.set_cookie(
            name, value,
            max_age=SESSION_MAX_AGE, httponly=True, samesite="lax", secure=secure, path="/",
        )


def clear_cookies(response, names, secure: bool) -> None:
    for name in names:
        response.delete_cookie(name, path="/", httponly=True, samesite="lax", secure=secure)


def apply_result(response, result: ReconcileResult, cookies: Mapping[str, str], secure: bool) -> None:
    if isinstance(result, RepairedFromStore):
        set_session_cookies(response, result.identity, secure)
    clear_cookies(response, cookies_to_clear(result, cookies), secure)
