# cotizador/services/webhook_service.py
"""
Mise à jour partielle d'un devis depuis le tableau Monday.com.

Payload : {"id": "...", "updates": {"status"?, "budget"?, "serviceType"?}}.
Seuls ces trois champs sont repris ; le reste est ignoré sans erreur.
Écriture en un seul patch Cosmos, sans contrôle de concurrence (dernier écrivain gagnant).
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from azure.cosmos import exceptions

from cotizador.services.cosmos_client import CosmosStore

log = logging.getLogger("cotizador.webhook")


class InvalidPayload(Exception):
    pass


@dataclass
class WebhookResult:
    quote_id: str
    updated: bool
    updated_fields: List[str] = field(default_factory=list)


def parse_budget(value: Any) -> Optional[float]:
    """Nombre fini ou None (booléens, NaN, infinis et texte non numérique rejetés)."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def build_update_set(updates: Dict[str, Any]) -> Dict[str, Any]:
    """Champs externes -> champs stockés."""
    data: Dict[str, Any] = {}

    status = updates.get("status")
    if isinstance(status, str) and status.strip():
        data["status"] = status.strip()

    if "budget" in updates:
        cost = parse_budget(updates["budget"])
        if cost is not None:
            data["estimated_cost"] = cost

    service_type = updates.get("serviceType")
    if isinstance(service_type, str) and service_type.strip():
        data["service_type"] = service_type.strip()

    return data


def validate_payload(body: Any) -> tuple:
    if not isinstance(body, dict):
        raise InvalidPayload("Corps JSON attendu.")
    quote_id = body.get("id")
    if not isinstance(quote_id, str) or not quote_id.strip():
        raise InvalidPayload("Champ 'id' manquant.")
    updates = body.get("updates")
    if not isinstance(updates, dict):
        raise InvalidPayload("Champ 'updates' manquant ou invalide.")
    return quote_id.strip(), updates


def apply_monday_update(store: CosmosStore, body: Any) -> WebhookResult:
    """
    Lève InvalidPayload (400) ou CosmosResourceNotFoundError (404) ;
    un ensemble vide est un succès sans écriture.
    """
    quote_id, updates = validate_payload(body)
    data = build_update_set(updates)

    if not data:
        log.info("Webhook Monday sans champ pertinent", extra={"quote_id": quote_id})
        return WebhookResult(quote_id=quote_id, updated=False)

    ops = [{"op": "set", "path": f"/{k}", "value": v} for k, v in data.items()]
    ops.append({
        "op": "set",
        "path": "/updated_at",
        "value": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    })

    try:
        store.quotes.patch_item(item=quote_id, partition_key=quote_id, patch_operations=ops)
    except exceptions.CosmosResourceNotFoundError:
        log.warning("Webhook Monday : devis introuvable", extra={"quote_id": quote_id})
        raise

    fields = list(data.keys())
    log.info(
        "Webhook Monday appliqué",
        extra={"quote_id": quote_id, "updated_fields": fields},
    )
    return WebhookResult(quote_id=quote_id, updated=True, updated_fields=fields)
