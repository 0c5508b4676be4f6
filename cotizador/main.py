# cotizador/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cotizador.auth_session import NotAuthenticated
from cotizador.config import settings
from cotizador.logging_config import setup_logging
from cotizador.routers import admin, auth, clients, health, quotes, rates, webhooks
from cotizador.services.blob_client import build_archiver
from cotizador.services.cosmos_client import build_store
from cotizador.services.identity_provider import build_identity_provider
from cotizador.services.session_reconciler import PROVIDER_COOKIES, SESSION_COOKIES, clear_cookies

log = logging.getLogger("cotizador")

openapi_tags = [
    {"name": "auth", "description": "Connexion Supabase, migration des comptes hérités, session."},
    {"name": "clients", "description": "Portefeuille clients partagé."},
    {"name": "quotes", "description": "Chiffrage, diagrammes, enregistrement et export des devis."},
    {"name": "rates", "description": "Table de tarifs (lecture)."},
    {"name": "admin", "description": "Revue des devis, tarifs et utilisateurs."},
    {"name": "webhooks", "description": "Synchronisation Monday.com."},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    # Un client par processus, réutilisé par toutes les requêtes.
    try:
        app.state.store = build_store(settings)
    except RuntimeError as e:
        log.warning("Cosmos DB indisponible: %s", e)
        app.state.store = None
    try:
        app.state.identity_provider = build_identity_provider(settings)
    except RuntimeError as e:
        log.warning("Supabase indisponible: %s", e)
        app.state.identity_provider = None
    app.state.archiver = build_archiver(settings)

    for r in app.routes:
        methods = ",".join(sorted(getattr(r, "methods", []) or []))
        log.debug("ROUTE: %-10s %s", methods, r.path)
    yield


app = FastAPI(
    title="Cotizador API",
    version="1.0.0",
    description="API interne de cotation : staffing, sustain et projets data.",
    openapi_tags=openapi_tags,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,   # cookies de session
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotAuthenticated)
async def _not_authenticated(request: Request, exc: NotAuthenticated):
    response = JSONResponse(status_code=401, content={"detail": "Non authentifié."})
    stale = [c for c in SESSION_COOKIES + PROVIDER_COOKIES if c in request.cookies]
    clear_cookies(response, stale, secure=settings.is_production)
    return response


app.include_router(health.router)
app.include_router(auth.router,     prefix="/auth", tags=["auth"])
app.include_router(clients.router,  prefix="/clients", tags=["clients"])
app.include_router(rates.router,    prefix="/rates", tags=["rates"])
app.include_router(quotes.router,   prefix="/quotes", tags=["quotes"])
app.include_router(admin.router,    prefix="/admin", tags=["admin"])
app.include_router(webhooks.router, prefix="/api", tags=["webhooks"])
