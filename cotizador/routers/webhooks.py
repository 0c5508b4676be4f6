# cotizador/routers/webhooks.py
import logging

from azure.cosmos import exceptions
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from cotizador.deps import get_store
from cotizador.services.cosmos_client import CosmosStore
from cotizador.services.webhook_service import InvalidPayload, apply_monday_update

log = logging.getLogger("cotizador.webhook")

router = APIRouter()


@router.post("/quotes/sync-monday")
async def sync_monday(request: Request, store: CosmosStore = Depends(get_store)):
    """
    Mise à jour partielle envoyée par Monday.com.
    Toujours une réponse structurée {success, ...}, jamais une erreur brute.
    """
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Corps JSON invalide."},
        )

    quote_id = body.get("id") if isinstance(body, dict) else None
    try:
        result = await run_in_threadpool(apply_monday_update, store, body)
    except InvalidPayload as e:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": f"Payload invalide ({e}). Attendu : {{id, updates: {{...}}}}",
            },
        )
    except exceptions.CosmosResourceNotFoundError:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "Devis introuvable.", "requestedId": quote_id},
        )
    except exceptions.CosmosHttpResponseError as e:
        log.error("Webhook Monday en échec: %s", e, extra={"quote_id": quote_id})
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Erreur de mise à jour du devis."},
        )

    if not result.updated:
        return {
            "success": True,
            "updated": False,
            "message": "Aucun champ pertinent à mettre à jour.",
        }
    return {
        "success": True,
        "updated": True,
        "message": "Devis mis à jour.",
        "quoteId": result.quote_id,
        "updatedFields": result.updated_fields,
    }
