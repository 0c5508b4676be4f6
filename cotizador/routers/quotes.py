# cotizador/routers/quotes.py
import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from Quoting.diagram import build_architecture_diagram, update_diagram_from_prompt
from Quoting.document import export_filename, quote_document_fields
from Quoting.pdf_writer import render_quote_pdf
from Quoting.writer import render_quote_docx

from cotizador.auth_session import get_current_identity, get_session, verify_admin
from cotizador.config import settings
from cotizador.deps import get_archiver, get_store
from cotizador.models.quote import DiagramPrompt, DiagramUpdate, Quote, QuoteDraft, QuoteEstimate
from cotizador.services.blob_client import BlobArchiver
from cotizador.services.builder import UnavailableProfile, estimate_draft
from cotizador.services.clients_service import ClientNotFound, get_client
from cotizador.services.cosmos_client import CosmosStore
from cotizador.services.quotes_service import (
    QuoteNotFound,
    create_quote,
    get_quote,
    list_quotes_for_user,
    set_pdf_snapshot,
)
from cotizador.services.rates_service import list_rates
from cotizador.services.session_reconciler import Identity, ReconcileResult
from cotizador.services.users_service import get_user_by_id

log = logging.getLogger("cotizador.quotes")

router = APIRouter()

MEDIA_TYPES = {
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "pdf": "application/pdf",
}


def _estimate(draft: QuoteDraft, store: CosmosStore) -> QuoteEstimate:
    try:
        return estimate_draft(draft, list_rates(store), settings.SENIORITY_MULTIPLIERS)
    except UnavailableProfile as e:
        raise HTTPException(status_code=422, detail=str(e))


def _load_visible(
    quote_id: str,
    result: ReconcileResult,
    identity: Identity,
    store: CosmosStore,
) -> Quote:
    """Le propriétaire voit son devis ; sinon accès admin revérifié."""
    try:
        quote = get_quote(store, quote_id)
    except QuoteNotFound:
        raise HTTPException(status_code=404, detail="Devis introuvable.")
    if quote.user_id != identity.id:
        verify_admin(result, store)
    return quote


@router.post("/estimate", response_model=QuoteEstimate)
def estimate(
    draft: QuoteDraft,
    _: Identity = Depends(get_current_identity),
    store: CosmosStore = Depends(get_store),
):
    return _estimate(draft, store)


@router.post("/diagram", response_model=DiagramUpdate)
def edit_diagram(
    body: DiagramPrompt,
    _: Identity = Depends(get_current_identity),
):
    """Met à jour le diagramme Mermaid à partir d'une consigne en langage naturel."""
    return DiagramUpdate(diagram_definition=update_diagram_from_prompt(body.current_code, body.prompt))


@router.post("", response_model=Quote, status_code=201)
def save_quote(
    draft: QuoteDraft,
    identity: Identity = Depends(get_current_identity),
    store: CosmosStore = Depends(get_store),
):
    if draft.client_id:
        try:
            client = get_client(store, draft.client_id)
        except ClientNotFound:
            raise HTTPException(status_code=422, detail="Client inconnu.")
        draft = draft.model_copy(update={"client_name": client.company_name})

    est = _estimate(draft, store)
    diagram = draft.diagram_definition or build_architecture_diagram(
        draft.tech_stack,
        draft.criticality.enabled,
        draft.ds_models_count,
    )
    return create_quote(store, draft, est, identity.id, diagram)


@router.get("/me", response_model=List[Quote])
def my_quotes(
    identity: Identity = Depends(get_current_identity),
    store: CosmosStore = Depends(get_store),
):
    return list_quotes_for_user(store, identity.id)


@router.get("/{quote_id}", response_model=Quote)
def read_quote(
    quote_id: str,
    result: ReconcileResult = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
    store: CosmosStore = Depends(get_store),
):
    return _load_visible(quote_id, result, identity, store)


@router.get("/{quote_id}/export")
def export_quote(
    quote_id: str,
    format: Literal["docx", "pdf"] = Query(default="docx"),
    result: ReconcileResult = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
    store: CosmosStore = Depends(get_store),
    archiver: Optional[BlobArchiver] = Depends(get_archiver),
):
    quote = _load_visible(quote_id, result, identity, store)
    owner = get_user_by_id(store, quote.user_id)
    fields = quote_document_fields(quote.model_dump(), consultant=owner.name if owner else "")

    if format == "pdf":
        content = render_quote_pdf(fields)
    else:
        content = render_quote_docx(fields)
    filename = export_filename(quote.client_name, format)

    if format == "pdf" and archiver is not None:
        try:
            url = archiver.upload_bytes(f"{quote.id}/{filename}", content, MEDIA_TYPES["pdf"])
            set_pdf_snapshot(store, quote.id, url)
        except Exception as e:
            log.warning("Archivage de l'export impossible: %s", e, extra={"quote_id": quote.id})

    return Response(
        content=content,
        media_type=MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
