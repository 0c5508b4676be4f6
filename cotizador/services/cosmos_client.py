# cotizador/services/cosmos_client.py
from azure.cosmos import CosmosClient

from cotizador.config import Settings


class CosmosStore:
    """
    Accès aux conteneurs Cosmos DB (users, quotes, rates, clients).
    rates est partitionné par /service, les autres par /id.
    Construit une seule fois au démarrage (lifespan) puis injecté via Depends.
    """

    def __init__(self, client: CosmosClient, db_name: str, containers: dict):
        self._db = client.get_database_client(db_name)
        self._names = containers

    def _container(self, key: str):
        return self._db.get_container_client(self._names[key])

    @property
    def users(self):
        return self._container("users")

    @property
    def quotes(self):
        return self._container("quotes")

    @property
    def rates(self):
        return self._container("rates")

    @property
    def clients(self):
        return self._container("clients")


def build_store(settings: Settings) -> CosmosStore:
    if not (settings.COSMOS_URI and settings.COSMOS_KEY):
        raise RuntimeError("COSMOS_URI ou COSMOS_KEY non configuré.")
    client = CosmosClient(settings.COSMOS_URI, credential=settings.COSMOS_KEY)
    return CosmosStore(
        client,
        settings.COSMOS_DB_NAME,
        {
            "users": settings.COSMOS_CONTAINER_USERS,
            "quotes": settings.COSMOS_CONTAINER_QUOTES,
            "rates": settings.COSMOS_CONTAINER_RATES,
            "clients": settings.COSMOS_CONTAINER_CLIENTS,
        },
    )
