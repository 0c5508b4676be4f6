# cotizador/services/legacy_bridge.py
"""
Connexion par mot de passe avec migration des comptes hérités.

Les utilisateurs créés avant Supabase n'ont qu'une fiche Cosmos avec un
hash bcrypt. Au premier login, si Supabase refuse les identifiants et que
le hash correspond, le compte est créé côté Supabase (clé = e-mail,
idempotent) puis la connexion est rejouée.

    CREDENTIALS_SUBMITTED -> SESSION_ESTABLISHED
                          -> EMAIL_NOT_VERIFIED
                          -> PROVIDER_AUTH_FAILED -> INVALID_CREDENTIALS
                                                  -> LEGACY_RECORD_FOUND
    LEGACY_RECORD_FOUND   -> MIGRATION_ATTEMPTED -> MIGRATION_FAILED
                                                 -> RETRY_LOGIN -> RETRY_FAILED
                                                                -> SESSION_ESTABLISHED
    SESSION_ESTABLISHED   -> SYNC_FAILED (fiche Cosmos non écrite, session révoquée)
                          -> ACCOUNT_DISABLED (fiche active=false, session révoquée)
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

import bcrypt

from cotizador.models.auth import AppUser
from cotizador.services.identity_provider import (
    EMAIL_NOT_CONFIRMED,
    ProviderAuthError,
    ProviderSession,
    SupabaseIdentityProvider,
)

log = logging.getLogger("cotizador.login")


class BridgeState(str, Enum):
    CREDENTIALS_SUBMITTED = "CREDENTIALS_SUBMITTED"
    PROVIDER_AUTH_FAILED = "PROVIDER_AUTH_FAILED"
    LEGACY_RECORD_FOUND = "LEGACY_RECORD_FOUND"
    MIGRATION_ATTEMPTED = "MIGRATION_ATTEMPTED"
    RETRY_LOGIN = "RETRY_LOGIN"
    SESSION_ESTABLISHED = "SESSION_ESTABLISHED"
    # terminaux en échec
    EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    MIGRATION_FAILED = "MIGRATION_FAILED"
    RETRY_FAILED = "RETRY_FAILED"
    SYNC_FAILED = "SYNC_FAILED"
    ACCOUNT_DISABLED = "ACCOUNT_DISABLED"


FAILURE_MESSAGES = {
    BridgeState.EMAIL_NOT_VERIFIED: "E-mail non vérifié. Consultez votre boîte de réception.",
    BridgeState.INVALID_CREDENTIALS: "Identifiants invalides.",
    BridgeState.MIGRATION_FAILED: "Migration du compte impossible. Contactez un administrateur.",
    BridgeState.RETRY_FAILED: "Compte migré, mais la connexion a échoué. Réessayez.",
    BridgeState.SYNC_FAILED: "Profil utilisateur indisponible. Réessayez plus tard.",
    BridgeState.ACCOUNT_DISABLED: "Compte désactivé. Contactez un administrateur.",
}


@dataclass
class BridgeOutcome:
    state: BridgeState
    trail: List[BridgeState] = field(default_factory=list)
    session: Optional[ProviderSession] = None
    user: Optional[AppUser] = None
    migrated: bool = False

    @property
    def ok(self) -> bool:
        return self.state == BridgeState.SESSION_ESTABLISHED

    @property
    def message(self) -> str:
        return FAILURE_MESSAGES.get(self.state, "")


def password_matches(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


@dataclass
class _Attempt:
    email: str
    password: str
    out: BridgeOutcome
    record: Optional[dict] = None


class LegacyLoginBridge:
    """
    lookup_record(email) -> dict | None   (fiche Cosmos brute)
    upsert_user(provider_user_id, email, name) -> AppUser
    """

    def __init__(
        self,
        provider: SupabaseIdentityProvider,
        lookup_record: Callable[[str], Optional[dict]],
        upsert_user: Callable[[str, str, str], AppUser],
    ):
        self.provider = provider
        self.lookup_record = lookup_record
        self.upsert_user = upsert_user
        self._steps = {
            BridgeState.CREDENTIALS_SUBMITTED: self._submit,
            BridgeState.PROVIDER_AUTH_FAILED: self._find_legacy,
            BridgeState.LEGACY_RECORD_FOUND: lambda a: BridgeState.MIGRATION_ATTEMPTED,
            BridgeState.MIGRATION_ATTEMPTED: self._migrate,
            BridgeState.RETRY_LOGIN: self._retry,
            BridgeState.SESSION_ESTABLISHED: self._sync,
        }

    def run(self, email: str, password: str) -> BridgeOutcome:
        email = (email or "").lower().strip()
        attempt = _Attempt(email, password, BridgeOutcome(BridgeState.CREDENTIALS_SUBMITTED))
        out = attempt.out

        while True:
            out.trail.append(out.state)
            step = self._steps.get(out.state)
            next_state = step(attempt) if step else None
            if next_state is None:
                break
            out.state = next_state

        log.info(
            "Login terminé: %s", out.state.value,
            extra={"email": email, "state": out.state.value},
        )
        return out

    # --- étapes -------------------------------------------------------

    def _submit(self, a: _Attempt) -> BridgeState:
        try:
            a.out.session = self.provider.sign_in_with_password(a.email, a.password)
        except ProviderAuthError as e:
            if e.code == EMAIL_NOT_CONFIRMED:
                return BridgeState.EMAIL_NOT_VERIFIED
            return BridgeState.PROVIDER_AUTH_FAILED
        return BridgeState.SESSION_ESTABLISHED

    def _find_legacy(self, a: _Attempt) -> BridgeState:
        try:
            record = self.lookup_record(a.email)
        except Exception as e:
            log.warning("Recherche du compte hérité impossible: %s", e, extra={"email": a.email})
            return BridgeState.INVALID_CREDENTIALS
        if not record or not password_matches(a.password, record.get("password_hash")):
            return BridgeState.INVALID_CREDENTIALS
        a.record = record
        return BridgeState.LEGACY_RECORD_FOUND

    def _migrate(self, a: _Attempt) -> BridgeState:
        try:
            self.provider.create_user(a.email, a.password, (a.record or {}).get("name", ""))
        except ProviderAuthError as e:
            log.error("Migration Supabase échouée: %s", e.message, extra={"email": a.email})
            return BridgeState.MIGRATION_FAILED
        a.out.migrated = True
        return BridgeState.RETRY_LOGIN

    def _retry(self, a: _Attempt) -> BridgeState:
        try:
            a.out.session = self.provider.sign_in_with_password(a.email, a.password)
        except ProviderAuthError as e:
            log.error("Connexion après migration échouée: %s", e.message, extra={"email": a.email})
            return BridgeState.RETRY_FAILED
        return BridgeState.SESSION_ESTABLISHED

    def _revoke(self, a: _Attempt) -> None:
        try:
            self.provider.sign_out(a.out.session.access_token)
        except ProviderAuthError as err:
            log.error("Révocation de session échouée: %s", err.message, extra={"email": a.email})
        a.out.session = None

    def _sync(self, a: _Attempt) -> Optional[BridgeState]:
        user = a.out.session.user
        try:
            a.out.user = self.upsert_user(user.id, user.email or a.email, user.name)
        except Exception as e:
            log.error("Synchronisation de la fiche échouée: %s", e, extra={"email": a.email})
            self._revoke(a)
            return BridgeState.SYNC_FAILED
        if not a.out.user.active:
            self._revoke(a)
            return BridgeState.ACCOUNT_DISABLED
        return None
