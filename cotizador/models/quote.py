# cotizador/models/quote.py
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

ServiceType = Literal["Project", "Sustain", "Staffing"]
Complexity = Literal["low", "medium", "high"]
UpdateFrequency = Literal["daily", "weekly", "monthly", "realtime"]
Level3 = Literal["low", "medium", "high"]
ReviewStatus = Literal["APROBADA", "RECHAZADA"]

DEFAULT_STATUS = "BORRADOR"


class ProfileSelection(BaseModel):
    """Profil de staffing choisi dans le formulaire."""
    role: str = Field(min_length=1)
    level: str = Field(min_length=1)
    allocation: int = Field(default=100, ge=1, le=100)   # % de dédication
    count: int = Field(default=1, ge=1)


class ServiceSelection(BaseModel):
    """Ligne de service (pipelines, dashboards...) valorisée via la table de tarifs."""
    service: str = Field(min_length=1)
    quantity: int = Field(default=0, ge=0)


class Criticality(BaseModel):
    enabled: bool = False
    impact_operative: Level3 = "low"
    impact_financial: Level3 = "low"
    data_exposure: Literal["internal", "partners", "public"] = "internal"
    countries_count: int = Field(default=1, ge=1)


class QuoteDraft(BaseModel):
    model_config = ConfigDict(json_schema_extra={"example": {
        "client_name": "Banco Global",
        "project_type": "medium",
        "service_type": "Project",
        "description": "Migración de reportes financieros a Lakehouse.",
        "duration_months": 6,
        "update_frequency": "daily",
        "profiles": [{"role": "Data Engineer", "level": "Sr", "allocation": 100, "count": 1}],
        "services": [{"service": "Pipe", "quantity": 4}],
        "criticality": {"enabled": True, "impact_operative": "high", "impact_financial": "medium",
                        "data_exposure": "internal", "countries_count": 2},
        "report_users": 40,
        "tech_stack": ["databricks", "powerbi"],
    }})
    client_name: str = ""
    client_id: Optional[str] = None      # fiche du portefeuille clients
    project_type: Complexity = "medium"
    service_type: ServiceType = "Project"
    description: str = ""
    duration_months: int = Field(default=6, ge=1)
    update_frequency: UpdateFrequency = "daily"
    profiles: List[ProfileSelection] = []
    services: List[ServiceSelection] = []
    criticality: Criticality = Field(default_factory=Criticality)
    report_users: int = Field(default=0, ge=0)
    tech_stack: List[str] = []
    ds_models_count: int = Field(default=0, ge=0)
    technical_parameters: Dict[str, Any] = {}
    diagram_definition: Optional[str] = None

    @model_validator(mode="after")
    def _client_required(self):
        if not self.client_name.strip() and not self.client_id:
            raise ValueError("client_name ou client_id requis")
        return self


class StaffingLine(BaseModel):
    role: str
    level: str
    count: int
    allocation: int
    unit_price: float
    monthly_cost: float


class ServiceLine(BaseModel):
    service: str
    quantity: int
    unit_price: float
    monthly_cost: float


class CriticalityLevel(BaseModel):
    label: Literal["BAJA", "MEDIA", "ALTA"]
    margin: float
    score: int


class QuoteEstimate(BaseModel):
    staffing: List[StaffingLine] = []
    services: List[ServiceLine] = []
    roles_cost: float = 0.0
    services_cost: float = 0.0
    l2_support_cost: float = 0.0
    risk_cost: float = 0.0
    total_monthly_cost: float = 0.0
    total_with_risk: float = 0.0
    total_project_cost: float = 0.0
    duration_months: int = 1
    criticality: CriticalityLevel


class Quote(BaseModel):
    """Devis persisté dans Cosmos DB."""
    id: str
    client_name: str
    client_id: Optional[str] = None
    project_type: str = "medium"
    service_type: str = "Project"
    technical_parameters: str = "{}"      # JSON sérialisé
    estimated_cost: float = 0.0
    staffing_requirements: str = "[]"     # JSON sérialisé
    diagram_definition: str = ""
    status: str = DEFAULT_STATUS
    user_id: str
    admin_comment: Optional[str] = None
    pdf_snapshot: Optional[str] = None
    created_at: str
    updated_at: str


class ReviewInput(BaseModel):
    status: ReviewStatus
    comment: str = ""


class AdminStats(BaseModel):
    total_quotes: int
    total_value: float
    avg_value: float
    top_client: Optional[str] = None


class DiagramPrompt(BaseModel):
    current_code: str = ""
    prompt: str = Field(min_length=1)


class DiagramUpdate(BaseModel):
    diagram_definition: str
