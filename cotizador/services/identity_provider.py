# cotizador/services/identity_provider.py
"""
Adaptateur Supabase Auth.

Un client anonyme neuf par appel (le client supabase garde la session en
mémoire, on ne la partage pas entre requêtes) ; un client admin
(service role) construit une fois pour la création de comptes et la
déconnexion globale.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from supabase import AuthApiError, AuthError, Client, ClientOptions, create_client

from cotizador.config import Settings

log = logging.getLogger("cotizador.identity")

# Codes d'erreur normalisés
EMAIL_NOT_CONFIRMED = "email_not_confirmed"
INVALID_CREDENTIALS = "invalid_credentials"
USER_EXISTS = "user_exists"
PROVIDER_ERROR = "provider_error"

_EXISTS_CODES = {"email_exists", "user_already_exists"}


@dataclass
class ProviderUser:
    id: str
    email: str
    name: str = ""
    email_confirmed: bool = True


@dataclass
class ProviderSession:
    access_token: str
    refresh_token: str
    user: ProviderUser


class ProviderAuthError(Exception):
    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code
        self.message = message or code


def _classify(err: AuthError) -> str:
    code = (getattr(err, "code", None) or "").lower()
    message = (getattr(err, "message", None) or str(err)).lower()
    if code == EMAIL_NOT_CONFIRMED or "email not confirmed" in message:
        return EMAIL_NOT_CONFIRMED
    if code in _EXISTS_CODES or "already been registered" in message or "already registered" in message:
        return USER_EXISTS
    if code == INVALID_CREDENTIALS or "invalid login credentials" in message:
        return INVALID_CREDENTIALS
    if isinstance(err, AuthApiError) and getattr(err, "status", 0) in (400, 401):
        return INVALID_CREDENTIALS
    return PROVIDER_ERROR


def _to_user(user) -> ProviderUser:
    meta = getattr(user, "user_metadata", None) or {}
    return ProviderUser(
        id=str(user.id),
        email=(user.email or "").lower(),
        name=meta.get("name") or meta.get("full_name") or "",
        email_confirmed=bool(getattr(user, "email_confirmed_at", None)),
    )


def _to_session(response) -> ProviderSession:
    session = response.session
    if session is None or response.user is None:
        raise ProviderAuthError(PROVIDER_ERROR, "Session absente de la réponse Supabase.")
    return ProviderSession(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        user=_to_user(response.user),
    )


class SupabaseIdentityProvider:
    def __init__(self, url: str, anon_key: str, service_role_key: str = ""):
        self._url = url
        self._anon_key = anon_key
        self._admin: Optional[Client] = None
        if service_role_key:
            self._admin = create_client(
                url,
                service_role_key,
                options=ClientOptions(auto_refresh_token=False, persist_session=False),
            )

    def _anon(self) -> Client:
        return create_client(
            self._url,
            self._anon_key,
            options=ClientOptions(
                auto_refresh_token=False, persist_session=False, flow_type="pkce"
            ),
        )

    def _require_admin(self) -> Client:
        if self._admin is None:
            raise ProviderAuthError(PROVIDER_ERROR, "SUPABASE_SERVICE_ROLE_KEY non configuré.")
        return self._admin

    def sign_in_with_password(self, email: str, password: str) -> ProviderSession:
        try:
            response = self._anon().auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except AuthError as e:
            raise ProviderAuthError(_classify(e), str(e))
        return _to_session(response)

    def sign_up(self, email: str, password: str, name: str = "", redirect_to: str = "") -> ProviderUser:
        options = {"data": {"name": name}}
        if redirect_to:
            options["email_redirect_to"] = redirect_to
        try:
            response = self._anon().auth.sign_up(
                {"email": email, "password": password, "options": options}
            )
        except AuthError as e:
            raise ProviderAuthError(_classify(e), str(e))
        if response.user is None:
            raise ProviderAuthError(PROVIDER_ERROR, "Inscription refusée par Supabase.")
        return _to_user(response.user)

    def exchange_code_for_session(self, code: str, code_verifier: str = "") -> ProviderSession:
        params = {"auth_code": code}
        if code_verifier:
            params["code_verifier"] = code_verifier
        try:
            response = self._anon().auth.exchange_code_for_session(params)
        except AuthError as e:
            raise ProviderAuthError(_classify(e), str(e))
        return _to_session(response)

    def create_user(self, email: str, password: str, name: str = "") -> Optional[ProviderUser]:
        """
        Création admin, e-mail déjà confirmé. Idempotent sur l'e-mail :
        un compte existant renvoie None (pas d'erreur, pas de doublon).
        """
        admin = self._require_admin()
        try:
            response = admin.auth.admin.create_user({
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {"name": name},
            })
        except AuthError as e:
            if _classify(e) == USER_EXISTS:
                log.info("Compte Supabase déjà existant", extra={"email": email})
                return None
            raise ProviderAuthError(PROVIDER_ERROR, str(e))
        return _to_user(response.user)

    def sign_out(self, access_token: str) -> None:
        """Révocation globale (toutes les sessions de l'utilisateur)."""
        admin = self._require_admin()
        try:
            admin.auth.admin.sign_out(access_token, scope="global")
        except AuthError as e:
            raise ProviderAuthError(PROVIDER_ERROR, str(e))


def build_identity_provider(settings: Settings) -> SupabaseIdentityProvider:
    if not (settings.SUPABASE_URL and settings.SUPABASE_ANON_KEY):
        raise RuntimeError("SUPABASE_URL ou SUPABASE_ANON_KEY non configuré.")
    return SupabaseIdentityProvider(
        settings.SUPABASE_URL,
        settings.SUPABASE_ANON_KEY,
        settings.SUPABASE_SERVICE_ROLE_KEY,
    )
