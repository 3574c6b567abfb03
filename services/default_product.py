import random
from typing import List, Optional

from interfaces.productModels import NotesFormat, NutritionFactsModel, ProductCategory, ProductRecord
from logger_manager import log_info
from utils.narrative_utils import (
    HEALTHIER_ALTERNATIVES, INGREDIENT_EXPLANATIONS, NATURAL_CONTENT, PROCESSING_LEVEL,
    SECTION_DELIMITER, SUMMARY,
)

UNKNOWN_PRODUCT = "Unknown Product"
UNKNOWN_BRAND = "Unknown Brand"

COMMON_INGREDIENTS = [
    "Water", "Sugar", "Salt", "Wheat Flour", "Milk", "Cream", "Vegetable Oil",
    "Modified Corn Starch", "Natural Flavors", "Artificial Flavors", "Citric Acid",
    "Lactic Acid", "Yeast", "Baking Powder", "Eggs", "Soy Lecithin", "Vanilla Extract",
    "Monosodium Glutamate", "Red 40", "Yellow 5", "High Fructose Corn Syrup",
    "Sodium Nitrite", "BHT", "Carrageenan", "Potassium Sorbate",
]

COMMON_ALLERGENS = ["Milk", "Wheat"]


def _placeholder_notes(ingredients: List[str]) -> str:
    explanations = SECTION_DELIMITER.join(
        f"{ingredient}: A common ingredient used in food processing." for ingredient in ingredients
    )
    return SECTION_DELIMITER.join([
        f"{SUMMARY}\nThis appears to be a processed food product with several ingredients.",
        f"{PROCESSING_LEVEL}\nModerately",
        f"{NATURAL_CONTENT}\nApproximately 60% natural ingredients",
        f"{INGREDIENT_EXPLANATIONS}\n{explanations}",
        f"{HEALTHIER_ALTERNATIVES}\nConsider looking for products with fewer processed ingredients.",
    ])


def generate_default_product(raw_text: Optional[str], rng: Optional[random.Random] = None) -> ProductRecord:
    """Build a clearly synthetic placeholder product from the scanned text.

    Used offline, after a failed analysis, or on request. Has no external
    dependency and cannot fail.
    """
    rng = rng or random.Random()
    words = (raw_text or "").split()

    name = " ".join(words[:3]) if len(words) >= 2 else UNKNOWN_PRODUCT
    brand = words[3] if len(words) > 3 else UNKNOWN_BRAND

    ingredients = rng.sample(COMMON_INGREDIENTS, rng.randint(5, 12))
    allergens = rng.sample(COMMON_ALLERGENS, rng.randint(0, len(COMMON_ALLERGENS)))

    product = ProductRecord(
        name=name,
        brand=brand,
        barcode=str(rng.randint(1000000000000, 9999999999999)),
        category=rng.choice(list(ProductCategory)).value,
        nutrition_facts=NutritionFactsModel.zero(),
        ingredients=ingredients,
        allergens=allergens,
        health_score=rng.randint(40, 75),
        user_notes=_placeholder_notes(ingredients),
        notes_format=NotesFormat.NARRATIVE,
    )
    log_info(f"Generated default product '{product.name}' with {len(ingredients)} ingredients")
    return product
