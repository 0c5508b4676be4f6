# cotizador/services/users_service.py
import logging
from typing import List, Optional

from azure.cosmos import exceptions

from cotizador.models.auth import AppUser, NewUser, normalize_role
from cotizador.services.cosmos_client import CosmosStore

log = logging.getLogger("cotizador.users")


class UserExists(Exception):
    pass


def _key(email: str) -> str:
    return (email or "").lower().strip()


def get_user_record(store: CosmosStore, email: str) -> Optional[dict]:
    """
    Document brut (avec password_hash éventuel).
    None si absent ; les autres erreurs Cosmos remontent à l'appelant.
    """
    email = _key(email)
    if not email:
        return None
    try:
        return store.users.read_item(item=email, partition_key=email)
    except exceptions.CosmosResourceNotFoundError:
        return None


def get_user_by_email(store: CosmosStore, email: str) -> Optional[AppUser]:
    doc = get_user_record(store, email)
    return AppUser(**doc) if doc else None


def get_user_by_id(store: CosmosStore, user_id: str) -> Optional[AppUser]:
    """Recherche par id Supabase (user_id), hors clé de partition."""
    if not user_id:
        return None
    items = store.users.query_items(
        query="SELECT * FROM c WHERE c.user_id = @user_id",
        parameters=[{"name": "@user_id", "value": user_id}],
        enable_cross_partition_query=True,
    )
    doc = next(iter(items), None)
    return AppUser(**doc) if doc else None


def list_users(store: CosmosStore) -> List[AppUser]:
    items = store.users.query_items(
        query="SELECT * FROM c ORDER BY c.email",
        enable_cross_partition_query=True,
    )
    return [AppUser(**it) for it in items]


def create_user(store: CosmosStore, user: NewUser) -> AppUser:
    """Pré-provisionne un utilisateur (rôle choisi par l'admin) avant sa première connexion."""
    email = _key(user.email)
    doc = {
        "id": email,
        "user_id": "",
        "email": email,
        "name": user.name,
        "role": user.role,
        "active": user.active,
    }
    try:
        store.users.create_item(doc)
    except exceptions.CosmosResourceExistsError:
        raise UserExists(email)
    log.info("Utilisateur pré-provisionné", extra={"email": email})
    return AppUser(**doc)


def update_user(store: CosmosStore, email: str, data: dict) -> Optional[AppUser]:
    email = _key(email)
    doc = get_user_record(store, email)
    if doc is None:
        return None
    doc.update({k: v for k, v in data.items() if v is not None})
    user = AppUser(**doc)
    doc["role"] = user.role
    store.users.replace_item(item=doc["id"], body=doc)
    return user


def upsert_user_from_provider(
    store: CosmosStore,
    provider_user_id: str,
    email: str,
    name: str = "",
    default_role: str = "CONSULTOR",
) -> AppUser:
    """
    Synchronise la fiche utilisateur après une authentification réussie.
    Le rôle pré-provisionné est conservé ; sinon rôle par défaut.
    Le hash de mot de passe hérité est effacé (le fournisseur fait foi).
    """
    email = _key(email)
    existing = get_user_record(store, email) or {}

    doc = dict(existing)
    doc.pop("password_hash", None)
    doc.update({
        "id": email,
        "user_id": provider_user_id,
        "email": email,
        "name": name or existing.get("name") or email.split("@")[0],
        "role": normalize_role(existing.get("role"), default_role),
        "active": existing.get("active", True),
    })
    # validée avant écriture : une fiche invalide n'est jamais persistée
    user = AppUser(**doc)
    store.users.upsert_item(doc)
    return user
