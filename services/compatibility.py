from typing import Iterable

from interfaces.productModels import ProductRecord, ScanPreferences

DIET_RULE_PENALTY = 50
ALLERGEN_PENALTY = 75

# preference flag -> ingredient keywords that break it
DIET_RULES = {
    "is_vegan": ("milk", "egg", "meat", "fish"),
    "is_vegetarian": ("meat", "fish", "chicken"),
    "is_gluten_free": ("wheat", "barley", "rye"),
    "is_lactose_intolerant": ("milk", "cream", "lactose"),
}


def _mentions_any(ingredients: Iterable[str], keywords) -> bool:
    return any(keyword in ingredient.lower() for ingredient in ingredients for keyword in keywords)


def contains_user_allergens(product: ProductRecord, preferences: ScanPreferences) -> bool:
    """True when one of the product's allergens is in the user's alert list."""
    alerts = {a.strip().lower() for a in preferences.allergen_alerts if a and a.strip()}
    if not alerts:
        return False
    return any(allergen.strip().lower() in alerts for allergen in product.allergens)


def calculate_health_compatibility(product: ProductRecord, preferences: ScanPreferences) -> float:
    score = 100.0
    for flag, keywords in DIET_RULES.items():
        if getattr(preferences, flag) and _mentions_any(product.ingredients, keywords):
            score -= DIET_RULE_PENALTY

    if contains_user_allergens(product, preferences):
        score -= ALLERGEN_PENALTY

    return max(0.0, min(score, 100.0))
