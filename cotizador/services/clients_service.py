# cotizador/services/clients_service.py
"""
Portefeuille clients (conteneur clients, partition key /id).
Annuaire commun : tout consultant connecté peut lire, créer et modifier.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List

from azure.cosmos import exceptions

from cotizador.models.client import Client, ClientInput
from cotizador.services.cosmos_client import CosmosStore

log = logging.getLogger("cotizador.clients")


class ClientNotFound(Exception):
    def __init__(self, client_id: str):
        super().__init__(f"Client introuvable: {client_id}")
        self.client_id = client_id


class ClientInUse(Exception):
    """Des devis référencent encore ce client."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _matches(client: Client, needle: str) -> bool:
    haystack = [client.company_name]
    for contact in client.contacts:
        haystack += [contact.name, contact.email]
    return any(needle in (value or "").lower() for value in haystack)


def list_clients(store: CosmosStore, q: str = "") -> List[Client]:
    """Tri par raison sociale ; `q` filtre sur société, nom ou e-mail de contact."""
    items = store.clients.query_items(
        query="SELECT * FROM c ORDER BY c.company_name",
        enable_cross_partition_query=True,
    )
    clients = [Client(**it) for it in items]
    needle = (q or "").strip().lower()
    if needle:
        clients = [c for c in clients if _matches(c, needle)]
    return clients


def get_client(store: CosmosStore, client_id: str) -> Client:
    try:
        return Client(**store.clients.read_item(item=client_id, partition_key=client_id))
    except exceptions.CosmosResourceNotFoundError:
        raise ClientNotFound(client_id)


def create_client(store: CosmosStore, data: ClientInput, user_id: str) -> Client:
    now = _now()
    doc = data.model_dump()
    doc.update({
        "id": str(uuid.uuid4()),
        "company_name": data.company_name.strip(),
        "created_by": user_id,
        "created_at": now,
        "updated_at": now,
    })
    store.clients.create_item(body=doc)
    log.info("Client créé: %s", doc["company_name"], extra={"client_id": doc["id"]})
    return Client(**doc)


def update_client(store: CosmosStore, client_id: str, data: ClientInput) -> Client:
    current = get_client(store, client_id)
    doc = current.model_dump()
    doc.update(data.model_dump())
    doc["company_name"] = data.company_name.strip()
    doc["updated_at"] = _now()
    try:
        store.clients.replace_item(item=client_id, body=doc)
    except exceptions.CosmosResourceNotFoundError:
        raise ClientNotFound(client_id)
    return Client(**doc)


def delete_client(store: CosmosStore, client_id: str) -> None:
    """Refusé tant qu'un devis pointe sur le client."""
    get_client(store, client_id)
    linked = store.quotes.query_items(
        query="SELECT c.id FROM c WHERE c.client_id = @client_id",
        parameters=[{"name": "@client_id", "value": client_id}],
        enable_cross_partition_query=True,
    )
    if next(iter(linked), None) is not None:
        raise ClientInUse(client_id)
    try:
        store.clients.delete_item(item=client_id, partition_key=client_id)
    except exceptions.CosmosResourceNotFoundError:
        raise ClientNotFound(client_id)
    log.info("Client supprimé", extra={"client_id": client_id})
