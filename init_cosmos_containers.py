#!/usr/bin/env python3
"""
Script d'initialisation des conteneurs Cosmos DB.
À exécuter une seule fois par environnement pour créer les conteneurs manquants.

Usage:
    python init_cosmos_containers.py
"""
import logging

from azure.cosmos import CosmosClient, PartitionKey, exceptions

from cotizador.config import settings
from cotizador.logging_config import setup_logging

log = logging.getLogger("cotizador.init")


def container_definitions():
    return [
        {
            "id": settings.COSMOS_CONTAINER_USERS,
            "partition_key": "/id",
            "description": "Utilisateurs (id = e-mail)",
        },
        {
            "id": settings.COSMOS_CONTAINER_QUOTES,
            "partition_key": "/id",
            "description": "Devis",
        },
        {
            "id": settings.COSMOS_CONTAINER_RATES,
            "partition_key": "/service",
            "description": "Table de tarifs",
            # clé unique vérifiée par partition, donc par service
            "unique_key_policy": {
                "uniqueKeys": [{"paths": ["/complexity", "/frequency"]}]
            },
        },
        {
            "id": settings.COSMOS_CONTAINER_CLIENTS,
            "partition_key": "/id",
            "description": "Portefeuille clients",
        },
    ]


def init_containers():
    """Crée la base et les conteneurs s'ils n'existent pas."""
    log.info("Connexion à Cosmos DB : %s", settings.COSMOS_URI)
    client = CosmosClient(settings.COSMOS_URI, credential=settings.COSMOS_KEY)

    database_name = settings.COSMOS_DB_NAME
    try:
        database = client.create_database_if_not_exists(id=database_name)
        log.info("Base de données '%s' OK", database_name)
    except exceptions.CosmosHttpResponseError as e:
        log.error("Erreur création base de données : %s", e)
        return

    for container_def in container_definitions():
        container_id = container_def["id"]
        kwargs = {}
        if "unique_key_policy" in container_def:
            kwargs["unique_key_policy"] = container_def["unique_key_policy"]
        try:
            database.create_container_if_not_exists(
                id=container_id,
                partition_key=PartitionKey(path=container_def["partition_key"]),
                offer_throughput=400,  # 400 RU/s (minimum)
                **kwargs,
            )
            log.info(
                "Conteneur '%s' OK (%s), partition key %s",
                container_id, container_def["description"], container_def["partition_key"],
            )
        except exceptions.CosmosHttpResponseError as e:
            log.error("Erreur création conteneur '%s' : %s", container_id, e)

    log.info("Initialisation terminée.")


if __name__ == "__main__":
    setup_logging()
    init_containers()
