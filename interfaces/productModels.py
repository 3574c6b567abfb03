import base64
import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional, Literal

import pytz
from pydantic import BaseModel, Field, field_validator

from env import TIMEZONE


def now_in_timezone() -> datetime:
    return datetime.now(tz=pytz.timezone(TIMEZONE))


class ProductCategory(str, Enum):
    DAIRY = "Dairy"
    PRODUCE = "Produce"
    BAKERY = "Bakery"
    MEAT = "Meat"
    SEAFOOD = "Seafood"
    SNACKS = "Snacks"
    BEVERAGES = "Beverages"
    FROZEN = "Frozen"
    PANTRY = "Pantry"
    SUPPLEMENTS = "Supplements"
    OTHER = "Other"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "ProductCategory":
        if value:
            wanted = str(value).strip().lower()
            for category in cls:
                if category.value.lower() == wanted:
                    return category
        return cls.OTHER


class NotesFormat(str, Enum):
    NARRATIVE = "narrative"
    JSON = "json"
    PLAIN = "plain"


class NutritionFactsModel(BaseModel):
    """Nutrition facts owned by exactly one product.

    The defaults describe the zero-valued facts used whenever the label
    analysis did not provide real numbers.
    """
    id: Optional[int] = None
    serving_size: str = "N/A"
    calories: float = 0
    total_fat: float = 0
    saturated_fat: float = 0
    trans_fat: float = 0
    cholesterol: float = 0
    sodium: float = 0
    total_carbohydrates: float = 0
    dietary_fiber: float = 0
    sugars: float = 0
    protein: float = 0
    vitamin_d: float = 0
    calcium: float = 0
    iron: float = 0
    potassium: float = 0
    added_sugars: Optional[float] = None
    vitamin_a: Optional[float] = None
    vitamin_c: Optional[float] = None
    magnesium: Optional[float] = None

    class Config:
        from_attributes = True

    @classmethod
    def zero(cls) -> "NutritionFactsModel":
        return cls()


class ProductRecord(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    brand: Optional[str] = None
    barcode: Optional[str] = None
    image_url: Optional[str] = None
    date_scanned: datetime = Field(default_factory=now_in_timezone)
    health_score: Optional[int] = None
    user_notes: Optional[str] = None
    notes_format: Optional[NotesFormat] = None
    raw_analysis: Optional[str] = None
    is_favorite: bool = False
    category: str = ProductCategory.OTHER.value
    nutrition_facts_id: Optional[int] = None
    nutrition_facts: Optional[NutritionFactsModel] = None
    ingredients: List[str] = Field(default_factory=list)
    allergens: List[str] = Field(default_factory=list)
    images: List[bytes] = Field(default_factory=list)

    class Config:
        from_attributes = True
        validate_assignment = True

    @field_validator("health_score")
    @classmethod
    def _clamp_health_score(cls, value):
        if value is None:
            return None
        return max(0, min(100, int(value)))

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return ProductCategory.OTHER.value
        if isinstance(value, ProductCategory):
            return value.value
        return ProductCategory.from_string(value).value

    @field_validator("ingredients", "allergens", "images", mode="before")
    @classmethod
    def _collections_not_null(cls, value):
        return [] if value is None else value


# Scan request and response models
class ScanPreferences(BaseModel):
    offline_mode: bool = False
    keep_raw_payload: bool = False
    language: str = "English"

    # Dietary preferences/restrictions
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    is_lactose_intolerant: bool = False

    # User-specific allergen alerts
    allergen_alerts: List[str] = Field(default_factory=list)


class ScanRequest(BaseModel):
    raw_text: str
    preferences: ScanPreferences = Field(default_factory=ScanPreferences)


class ScanResult(BaseModel):
    product: ProductRecord
    source: Literal["analysis", "fallback"] = "analysis"
    error_message: Optional[str] = None


class NoteRequest(BaseModel):
    text: str


class ProductResponse(BaseModel):
    """Response model for one product, images as base64 strings"""
    id: str
    name: str
    brand: Optional[str] = None
    barcode: Optional[str] = None
    image_url: Optional[str] = None
    date_scanned: str
    health_score: Optional[int] = None
    user_notes: Optional[str] = None
    notes_format: Optional[str] = None
    is_favorite: bool = False
    category: str
    nutrition_facts: Optional[NutritionFactsModel] = None
    ingredients: List[str] = []
    allergens: List[str] = []
    images: List[str] = []

    @classmethod
    def from_record(cls, record: ProductRecord) -> "ProductResponse":
        return cls(
            id=record.id,
            name=record.name,
            brand=record.brand,
            barcode=record.barcode,
            image_url=record.image_url,
            date_scanned=record.date_scanned.isoformat(),
            health_score=record.health_score,
            user_notes=record.user_notes,
            notes_format=record.notes_format.value if record.notes_format else None,
            is_favorite=record.is_favorite,
            category=record.category,
            nutrition_facts=record.nutrition_facts,
            ingredients=list(record.ingredients),
            allergens=list(record.allergens),
            images=[base64.b64encode(image).decode("ascii") for image in record.images],
        )


class ScanResponse(BaseModel):
    product: ProductResponse
    source: str
    error_message: Optional[str] = None
    health_compatibility: Optional[float] = None
    contains_user_allergens: bool = False
