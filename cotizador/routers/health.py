# cotizador/routers/health.py
from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health(request: Request):
    state = request.app.state
    return {
        "status": "ok",
        "cosmos": getattr(state, "store", None) is not None,
        "supabase": getattr(state, "identity_provider", None) is not None,
        "blob": getattr(state, "archiver", None) is not None,
    }
