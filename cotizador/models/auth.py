# cotizador/models/auth.py
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from cotizador.config import settings

Role = Literal["ADMIN", "CONSULTOR"]
ROLES = ("ADMIN", "CONSULTOR")


def normalize_role(value: Optional[str], default: str = "CONSULTOR") -> str:
    """Rôle connu en majuscules ; rôles hérités (USER...) ou vides -> rôle par défaut."""
    role = (value or "").strip().upper()
    if role in ROLES:
        return role
    default = (default or "").strip().upper()
    return default if default in ROLES else "CONSULTOR"


class AppUser(BaseModel):
    """Utilisateur tel que stocké dans Cosmos (id du document = email)."""
    user_id: str
    email: EmailStr
    name: str
    role: Role = "CONSULTOR"
    active: bool = True

    @field_validator("role", mode="before")
    @classmethod
    def _known_role(cls, value):
        return normalize_role(value, settings.DEFAULT_ROLE)


class SessionIdentity(BaseModel):
    """Identité portée par les cookies de session (cache de AppUser)."""
    id: str
    email: str = ""
    name: str
    role: str


class SessionState(BaseModel):
    state: Literal["unauthenticated", "synced", "repaired", "degraded"]
    identity: Optional[SessionIdentity] = None


class LoginInput(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RegisterInput(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = ""


class NewUser(BaseModel):
    email: EmailStr
    name: str
    role: Role = "CONSULTOR"
    active: bool = True


class UpdateUserInput(BaseModel):
    name: Optional[str] = None
    role: Optional[Role] = None
    active: Optional[bool] = None
