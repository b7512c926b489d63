# app/presentation/schemas.py
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Any, List, Optional, Literal

from app.domain.models import Interaction, Product, Resolution

# ── CATALOG ───────────────────────────────────────────────────────
class ProductList(BaseModel):
    items: List[Product]
    error: Optional[str] = None

class IngredientList(BaseModel):
    items: List[str]
    error: Optional[str] = None

# ── MIX / PREDICT ─────────────────────────────────────────────────
class MixRequest(BaseModel):
    items: List[str] = Field(default_factory=list, description="Free-text product or ingredient names")

class MixResponse(BaseModel):
    interactions: List[Interaction]
    resolved: List[Resolution]
    error: Optional[str] = None

class PredictRequest(BaseModel):
    items: List[str] = Field(default_factory=list)

class PredictResponse(BaseModel):
    interactions: List[Interaction]
    error: Optional[str] = None

# ── COMPARE ───────────────────────────────────────────────────────
class CompareRequest(BaseModel):
    products: List[str] = Field(default_factory=list, description="At least two product names")

class ProductDetail(BaseModel):
    id: int
    name: str
    kind: str
    brand: Optional[str] = None
    generic_name: Optional[str] = None
    dose: str = "N/A"
    form: str = "N/A"
    serving_size: str = "N/A"
    ingredients: List[str] = []
    suggested_use: str = "N/A"
    market_status: str = "Unknown"

class ComparisonGroup(BaseModel):
    products: List[ProductDetail]

class CompareResponse(BaseModel):
    comparison: List[ComparisonGroup]
    not_found: List[str] = []
    error: Optional[str] = None

# ── RECOMMENDATIONS ───────────────────────────────────────────────
class MedicalConsiderations(BaseModel):
    pregnancy: bool = False
    allergies: bool = False
    kidneyLiverIssues: bool = False
    bloodPressureConcerns: bool = False

class Preferences(BaseModel):
    preferenceType: str = "no_preference"
    avoidDrowsiness: bool = False
    avoidStimulants: bool = False

class RecommendationRequest(BaseModel):
    symptoms: List[str] = Field(default_factory=list)
    medications: List[str] = Field(default_factory=list)
    supplements: List[str] = Field(default_factory=list)
    medicalConsiderations: MedicalConsiderations = Field(default_factory=MedicalConsiderations)
    preferences: Preferences = Field(default_factory=Preferences)

class Recommendation(BaseModel):
    option: str
    category: str = ""
    whyDiscussed: str = ""
    keyCautions: str = ""
    evidenceStrength: str = ""
    interactionRisk: str = ""
    avoidIf: str = ""

class RecommendationResponse(BaseModel):
    disclaimer: str
    warnings: List[str] = []
    recommendations: List[Recommendation] = []
    nextSteps: List[str] = []
    blocked: Optional[bool] = None
    source: Optional[str] = None
    error: Optional[str] = None

# ── K2 CHAT (pass-through) ────────────────────────────────────────
class ChatRequest(BaseModel):
    # left loose so a non-list is answered with messages_required, not a 422
    messages: Any = None
    model: Optional[str] = None

# ── HEALTH ────────────────────────────────────────────────────────
class HealthResponse(BaseModel):
    ok: bool = True
    db: Literal["up", "down"]
    llm_configured: Optional[bool] = None
