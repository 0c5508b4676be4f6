# cotizador/models/client.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ClientContact(BaseModel):
    name: str = Field(min_length=1)
    role: str = ""
    email: str = ""


class ClientInput(BaseModel):
    model_config = ConfigDict(json_schema_extra={"example": {
        "company_name": "Banco Global",
        "contacts": [{"name": "Marta Ruiz", "role": "CDO", "email": "marta.ruiz@bancoglobal.com"}],
        "client_logo_url": None,
    }})
    company_name: str = Field(min_length=1)
    contacts: List[ClientContact] = []
    client_logo_url: Optional[str] = None


class Client(BaseModel):
    """Fiche client partagée par tous les consultants (partition key /id)."""
    id: str
    company_name: str
    contacts: List[ClientContact] = []
    client_logo_url: Optional[str] = None
    created_by: str = ""
    created_at: str = ""
    updated_at: str = ""

    @model_validator(mode="before")
    @classmethod
    def _legacy_contact(cls, data):
        # anciennes fiches : un seul contact à plat (contact_name / email)
        if isinstance(data, dict) and not data.get("contacts") and data.get("contact_name"):
            data = dict(data)
            data["contacts"] = [{"name": data["contact_name"], "email": data.get("email") or ""}]
        return data
