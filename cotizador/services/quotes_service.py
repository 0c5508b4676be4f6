# cotizador/services/quotes_service.py
"""
Persistance des devis dans Cosmos DB (partition key /id).
"""
import json
import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import List

from azure.cosmos import exceptions

from cotizador.models.quote import (
    DEFAULT_STATUS,
    AdminStats,
    Quote,
    QuoteDraft,
    QuoteEstimate,
)
from cotizador.services.cosmos_client import CosmosStore

log = logging.getLogger("cotizador.quotes")


class QuoteNotFound(Exception):
    def __init__(self, quote_id: str):
        super().__init__(f"Devis introuvable: {quote_id}")
        self.quote_id = quote_id


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def create_quote(
    store: CosmosStore,
    draft: QuoteDraft,
    estimate: QuoteEstimate,
    user_id: str,
    diagram_definition: str,
) -> Quote:
    quote_id = str(uuid.uuid4())
    now = _now()

    params = {
        "description": draft.description,
        "duration_months": draft.duration_months,
        "update_frequency": draft.update_frequency,
        "services": [s.model_dump() for s in draft.services],
        "criticality": draft.criticality.model_dump(),
        "report_users": draft.report_users,
        "tech_stack": draft.tech_stack,
        "ds_models_count": draft.ds_models_count,
        **draft.technical_parameters,
        "estimate": estimate.model_dump(exclude={"staffing"}),
    }

    doc = {
        "id": quote_id,
        "client_name": draft.client_name.strip(),
        "client_id": draft.client_id,
        "project_type": draft.project_type,
        "service_type": draft.service_type,
        "technical_parameters": json.dumps(params, ensure_ascii=False),
        "estimated_cost": estimate.total_monthly_cost,
        "staffing_requirements": json.dumps(
            [s.model_dump() for s in estimate.staffing], ensure_ascii=False
        ),
        "diagram_definition": diagram_definition,
        "status": DEFAULT_STATUS,
        "user_id": user_id,
        "admin_comment": None,
        "pdf_snapshot": None,
        "created_at": now,
        "updated_at": now,
    }
    store.quotes.create_item(body=doc)
    log.info("Devis créé", extra={"quote_id": quote_id})
    return Quote(**doc)


def _read(store: CosmosStore, quote_id: str) -> dict:
    try:
        return store.quotes.read_item(item=quote_id, partition_key=quote_id)
    except exceptions.CosmosResourceNotFoundError:
        raise QuoteNotFound(quote_id)


def get_quote(store: CosmosStore, quote_id: str) -> Quote:
    return Quote(**_read(store, quote_id))


def list_quotes_for_user(store: CosmosStore, user_id: str) -> List[Quote]:
    items = store.quotes.query_items(
        query="SELECT * FROM c WHERE c.user_id = @user_id ORDER BY c.created_at DESC",
        parameters=[{"name": "@user_id", "value": user_id}],
        enable_cross_partition_query=True,
    )
    return [Quote(**it) for it in items]


def list_all_quotes(store: CosmosStore) -> List[Quote]:
    items = store.quotes.query_items(
        query="SELECT * FROM c ORDER BY c.created_at DESC",
        enable_cross_partition_query=True,
    )
    return [Quote(**it) for it in items]


def _patch(store: CosmosStore, quote_id: str, fields: dict) -> Quote:
    ops = [{"op": "set", "path": f"/{k}", "value": v} for k, v in fields.items()]
    ops.append({"op": "set", "path": "/updated_at", "value": _now()})
    try:
        doc = store.quotes.patch_item(
            item=quote_id, partition_key=quote_id, patch_operations=ops
        )
    except exceptions.CosmosResourceNotFoundError:
        raise QuoteNotFound(quote_id)
    return Quote(**doc)


def review_quote(store: CosmosStore, quote_id: str, status: str, comment: str = "") -> Quote:
    quote = _patch(store, quote_id, {"status": status, "admin_comment": comment or None})
    log.info("Devis revu: %s", status, extra={"quote_id": quote_id})
    return quote


def set_pdf_snapshot(store: CosmosStore, quote_id: str, url: str) -> Quote:
    return _patch(store, quote_id, {"pdf_snapshot": url})


def delete_quote(store: CosmosStore, quote_id: str) -> None:
    try:
        store.quotes.delete_item(item=quote_id, partition_key=quote_id)
    except exceptions.CosmosResourceNotFoundError:
        raise QuoteNotFound(quote_id)
    log.info("Devis supprimé", extra={"quote_id": quote_id})


def admin_stats(store: CosmosStore) -> AdminStats:
    quotes = list_all_quotes(store)
    total_value = sum(q.estimated_cost for q in quotes)

    per_client = defaultdict(float)
    for q in quotes:
        per_client[q.client_name] += q.estimated_cost
    top_client = max(per_client, key=per_client.get) if per_client else None

    return AdminStats(
        total_quotes=len(quotes),
        total_value=round(total_value, 2),
        avg_value=round(total_value / len(quotes), 2) if quotes else 0.0,
        top_client=top_client,
    )
