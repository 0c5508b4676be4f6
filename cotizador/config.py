# cotizador/config.py
import json
import os
from typing import Dict, List

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _json_env(name: str, default: dict) -> dict:
    raw = os.getenv(name, "")
    if not raw.strip():
        return dict(default)
    try:
        value = json.loads(raw)
    except ValueError:
        return dict(default)
    return value if isinstance(value, dict) else dict(default)


# Facteurs appliqués au prix par défaut d'un rôle quand la table de tarifs
# n'a pas d'entrée pour le niveau demandé.
DEFAULT_SENIORITY_MULTIPLIERS: Dict[str, float] = {
    "Jr": 0.7,
    "Ssr": 0.85,
    "Med": 1.0,
    "Sr": 1.3,
    "Expert": 1.5,
    "Lead": 1.6,
}


class Settings(BaseModel):
    # Application
    ENV: str = os.getenv("ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    APP_BASE_URL: str = os.getenv("APP_BASE_URL", "http://localhost:3000")
    CORS_ORIGINS: List[str] = [
        o.strip()
        for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
        if o.strip()
    ]
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Supabase Auth
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")
    SUPABASE_SERVICE_ROLE_KEY: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    # Secret HS256 du projet ; vide = vérification via JWKS (clés asymétriques)
    SUPABASE_JWT_SECRET: str = os.getenv("SUPABASE_JWT_SECRET", "")
    SUPABASE_JWT_AUDIENCE: str = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")

    # ===== Cosmos DB =====
    COSMOS_URI: str = os.getenv("COSMOS_URI", "")
    COSMOS_KEY: str = os.getenv("COSMOS_KEY", "")
    COSMOS_DB_NAME: str = os.getenv("COSMOS_DB_NAME", "cotizador-db")
    COSMOS_CONTAINER_USERS: str = os.getenv("COSMOS_CONTAINER_USERS", "users")
    COSMOS_CONTAINER_QUOTES: str = os.getenv("COSMOS_CONTAINER_QUOTES", "quotes")
    COSMOS_CONTAINER_RATES: str = os.getenv("COSMOS_CONTAINER_RATES", "rates")
    COSMOS_CONTAINER_CLIENTS: str = os.getenv("COSMOS_CONTAINER_CLIENTS", "clients")

    # ===== Azure Blob Storage (archives des exports) =====
    AZURE_STORAGE_CONNECTION_STRING: str = os.getenv("AZURE_STORAGE_CONNECTION_STRING", "")
    AZURE_STORAGE_ACCOUNT_URL: str = os.getenv("AZURE_STORAGE_ACCOUNT_URL", "")
    AZURE_STORAGE_ACCOUNT_KEY: str = os.getenv("AZURE_STORAGE_ACCOUNT_KEY", "")
    STORAGE_CONTAINER_OUTPUTS: str = os.getenv("STORAGE_CONTAINER_OUTPUTS", "quote-exports")

    # Métier
    DEFAULT_ROLE: str = os.getenv("DEFAULT_ROLE", "CONSULTOR")
    SENIORITY_MULTIPLIERS: Dict[str, float] = _json_env(
        "SENIORITY_MULTIPLIERS", DEFAULT_SENIORITY_MULTIPLIERS
    )

    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"

    @property
    def SUPABASE_ISSUER(self) -> str:
        if not self.SUPABASE_URL:
            return ""
        return f"{self.SUPABASE_URL.rstrip('/')}/auth/v1"

    @property
    def SUPABASE_JWKS_URL(self) -> str:
        if not self.SUPABASE_URL:
            return ""
        return f"{self.SUPABASE_URL.rstrip('/')}/auth/v1/.well-known/jwks.json"

    @property
    def blob_configured(self) -> bool:
        return bool(
            self.AZURE_STORAGE_CONNECTION_STRING
            or (self.AZURE_STORAGE_ACCOUNT_URL and self.AZURE_STORAGE_ACCOUNT_KEY)
        )


settings = Settings()
