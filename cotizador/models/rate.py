# cotizador/models/rate.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ServiceRate(BaseModel):
    """Entrée de la table de tarifs dans Cosmos DB."""
    model_config = ConfigDict(json_schema_extra={"example": {
        "id": "7f1c...",
        "service": "Data Engineer",
        "complexity": "Sr",
        "frequency": "Mensual",
        "base_price": 7077.78,
        "multiplier": 1.0,
    }})
    id: str
    service: str                 # Nom du service ou du profil
    complexity: str              # Niveau de séniorité (Jr, Sr...) ou complexité (Baja, Media, Alta)
    frequency: str = "Mensual"   # Mensual pour le staffing, fréquence de run pour le sustain
    base_price: float = 0.0
    multiplier: float = 1.0


class ServiceRateInput(BaseModel):
    id: Optional[str] = None
    service: str = Field(min_length=1)
    complexity: str = "Standard"
    frequency: str = "Mensual"
    base_price: float = Field(gt=0)
    multiplier: float = Field(default=1.0, gt=0)


class SeniorityOption(BaseModel):
    level: str
    price: float
