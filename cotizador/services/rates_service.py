# cotizador/services/rates_service.py
"""
Table de tarifs (conteneur rates, partition key /service).

Une seule entrée par (service, complexity, frequency). La clé unique Cosmos
ne couvre qu'une partition et distingue la casse du service : le triplet
est donc vérifié ici, service comparé sans casse, avant toute écriture.
"""
import logging
import uuid
from typing import List, Optional

from azure.cosmos import exceptions

from cotizador.models.rate import ServiceRate, ServiceRateInput
from cotizador.services.cosmos_client import CosmosStore

log = logging.getLogger("cotizador.rates")


class RateConflict(Exception):
    """Une entrée existe déjà pour (service, complexity, frequency)."""


def list_rates(store: CosmosStore) -> List[ServiceRate]:
    items = store.rates.query_items(
        query="SELECT * FROM c ORDER BY c.service",
        enable_cross_partition_query=True,
    )
    return [ServiceRate(**it) for it in items]


def _find_by_id(store: CosmosStore, rate_id: str) -> Optional[dict]:
    items = store.rates.query_items(
        query="SELECT * FROM c WHERE c.id = @id",
        parameters=[{"name": "@id", "value": rate_id}],
        enable_cross_partition_query=True,
    )
    return next(iter(items), None)


def _find_triplet(store: CosmosStore, service: str, complexity: str, frequency: str) -> List[dict]:
    items = store.rates.query_items(
        query=(
            "SELECT * FROM c WHERE LOWER(c.service) = @service "
            "AND c.complexity = @complexity AND c.frequency = @frequency"
        ),
        parameters=[
            {"name": "@service", "value": service.lower()},
            {"name": "@complexity", "value": complexity},
            {"name": "@frequency", "value": frequency},
        ],
        enable_cross_partition_query=True,
    )
    return list(items)


def save_rate(store: CosmosStore, data: ServiceRateInput) -> Optional[ServiceRate]:
    """
    Crée (sans id) ou remplace (avec id) une entrée.
    None si l'id fourni n'existe pas ; RateConflict si le triplet est déjà pris.
    """
    doc = data.model_dump()
    doc["service"] = doc["service"].strip()
    label = f"{doc['service']} / {doc['complexity']} / {doc['frequency']}"

    current = None
    if data.id:
        current = _find_by_id(store, data.id)
        if current is None:
            return None

    taken = _find_triplet(store, doc["service"], doc["complexity"], doc["frequency"])
    if any(d["id"] != data.id for d in taken):
        raise RateConflict(label)

    try:
        if current is None:
            doc["id"] = str(uuid.uuid4())
            store.rates.create_item(body=doc)
        elif current["service"] == doc["service"]:
            store.rates.replace_item(item=data.id, body=doc)
        else:
            # nouveau service = nouvelle partition
            store.rates.delete_item(item=data.id, partition_key=current["service"])
            store.rates.create_item(body=doc)
    except exceptions.CosmosResourceNotFoundError:
        return None
    except exceptions.CosmosResourceExistsError:
        raise RateConflict(label)

    log.info("Tarif enregistré: %s", label)
    return ServiceRate(**doc)


def delete_rate(store: CosmosStore, rate_id: str) -> bool:
    current = _find_by_id(store, rate_id)
    if current is None:
        return False
    try:
        store.rates.delete_item(item=rate_id, partition_key=current["service"])
    except exceptions.CosmosResourceNotFoundError:
        return False
    return True
