# cotizador/services/blob_client.py
import logging
from typing import Optional

from azure.core.exceptions import ResourceExistsError
from azure.storage.blob import BlobServiceClient, ContentSettings

from cotizador.config import Settings

log = logging.getLogger("cotizador.blob")


class BlobArchiver:
    """Archive les exports (PDF) dans un conteneur Blob ; retourne l'URL du blob."""

    def __init__(self, service: BlobServiceClient, container_name: str):
        self._service = service
        self._container_name = container_name
        self._container_ready = False

    def _container(self):
        container = self._service.get_container_client(self._container_name)
        if not self._container_ready:
            try:
                container.create_container()
            except ResourceExistsError:
                pass
            self._container_ready = True
        return container

    def upload_bytes(self, blob_name: str, data: bytes, content_type: Optional[str] = None) -> str:
        if not data:
            raise ValueError("Aucune donnée à uploader.")

        content_settings = ContentSettings(content_type=content_type or "application/octet-stream")
        blob_client = self._container().get_blob_client(blob_name)
        blob_client.upload_blob(data, overwrite=True, content_settings=content_settings)
        log.info("Export archivé: %s", blob_name)
        return blob_client.url


def build_archiver(settings: Settings) -> Optional[BlobArchiver]:
    """None si le stockage Blob n'est pas configuré (l'archivage est alors désactivé)."""
    if settings.AZURE_STORAGE_CONNECTION_STRING:
        service = BlobServiceClient.from_connection_string(
            settings.AZURE_STORAGE_CONNECTION_STRING
        )
    elif settings.AZURE_STORAGE_ACCOUNT_URL and settings.AZURE_STORAGE_ACCOUNT_KEY:
        service = BlobServiceClient(
            account_url=settings.AZURE_STORAGE_ACCOUNT_URL,
            credential=settings.AZURE_STORAGE_ACCOUNT_KEY,
        )
    else:
        return None
    return BlobArchiver(service, settings.STORAGE_CONTAINER_OUTPUTS)
