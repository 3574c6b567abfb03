from typing import List, Optional, Literal, Any
from pydantic import BaseModel, Field, field_validator

from errors import AnalysisError


def _lower_level(value):
    if value is None:
        return "none"
    return str(value).strip().lower() or "none"


# Structured output expected from the analysis service
class IngredientAnalysis(BaseModel):
    name: str
    explanation: Optional[str] = ""
    concern_level: Optional[str] = Field("none", alias="concernLevel")
    concern_reason: Optional[str] = Field(None, alias="concernReason")

    class Config:
        populate_by_name = True

    @field_validator("explanation", mode="before")
    @classmethod
    def _explanation_not_null(cls, value):
        return "" if value is None else value

    @field_validator("concern_level", mode="before")
    @classmethod
    def _normalize_level(cls, value):
        return _lower_level(value)


class AdditiveAnalysis(BaseModel):
    name: str
    explanation: Optional[str] = ""
    concern_level: Optional[str] = Field("low", alias="concernLevel")

    class Config:
        populate_by_name = True

    @field_validator("explanation", mode="before")
    @classmethod
    def _explanation_not_null(cls, value):
        return "" if value is None else value

    @field_validator("concern_level", mode="before")
    @classmethod
    def _normalize_level(cls, value):
        return _lower_level(value)


class AnalysisResponse(BaseModel):
    """Shape of a successful label analysis answer.

    Only the ingredient list is required; every other field has a default
    that the decoder applies when the service leaves it out.
    """
    product_name: Optional[str] = Field(None, alias="productName")
    brand_name: Optional[str] = Field(None, alias="brandName")
    category: Optional[str] = None
    ingredients: List[IngredientAnalysis]
    allergens: Optional[List[str]] = None
    concerning_additives: Optional[List[AdditiveAnalysis]] = Field(None, alias="concerningAdditives")
    processing_level: Optional[str] = Field(None, alias="processingLevel")
    natural_content_percentage: Optional[float] = Field(None, alias="naturalContentPercentage")
    simple_summary: Optional[str] = Field(None, alias="simpleSummary")
    recommendations_for_healthier_options: Optional[str] = Field(None, alias="recommendationsForHealthierOptions")
    language: Optional[str] = None

    class Config:
        populate_by_name = True


class DecodeResult(BaseModel):
    """Tagged result of decoding one service answer."""
    kind: Literal["ok", "service_error", "malformed"]
    record: Optional[Any] = None
    analysis: Optional[AnalysisResponse] = None
    error: Optional[AnalysisError] = None
    message: Optional[str] = None

    class Config:
        arbitrary_types_allowed = True

    @property
    def ok(self) -> bool:
        return self.kind == "ok"

    def unwrap(self):
        if self.kind == "ok":
            return self.record
        raise self.error


# Fields recovered from a stored narrative block
class NarrativeNotes(BaseModel):
    summary: str = "No summary available"
    processing_level: str = "Unknown"
    natural_content: str = "Unknown natural content percentage"
    ingredient_explanations: List[IngredientAnalysis] = Field(default_factory=list)
    concerning_additives: List[AdditiveAnalysis] = Field(default_factory=list)
    healthier_alternatives: str = ""
    language: Optional[str] = None
