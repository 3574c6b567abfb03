"""
Reconciliation turns a possibly partial or stale product into one that can
always be rendered.

The recovery strategies run in order and each one returns a product or None
("try next"). Whatever comes out goes through ensure_product_has_valid_data,
which only fills gaps.
"""

from typing import Callable, List, Optional, Tuple

from db.repositories import ProductRepository
from interfaces.productModels import NutritionFactsModel, ProductCategory, ProductRecord
from logger_manager import log_debug, log_error, log_info, log_warning

NO_INGREDIENTS_PLACEHOLDER = "No ingredients information available"
NO_NOTES_PLACEHOLDER = "No detailed information available for this product."
DEFAULT_HEALTH_SCORE = 50

Strategy = Callable[[ProductRepository, ProductRecord], Optional[ProductRecord]]


def load_complete_strategy(repository: ProductRepository, product: ProductRecord) -> Optional[ProductRecord]:
    return repository.load_complete(product.id)


def _load_relation(description: str, loader, default):
    try:
        value = loader()
        log_debug(f"Loaded {description}")
        return value
    except Exception as e:
        log_error(f"Error loading {description}: {e}", e)
        return default


def manual_relations_strategy(repository: ProductRepository, product: ProductRecord) -> Optional[ProductRecord]:
    """Primary row plus each relation queried on its own.

    A relation that fails to load becomes empty without affecting the others.
    """
    existing = repository.fetch_primary(product.id)
    if existing is None:
        log_info(f"Product {product.id} does not exist in database")
        return None

    log_warning(f"Product {product.id} exists but its relationships did not load, loading them manually")
    if existing.nutrition_facts_id is not None:
        existing.nutrition_facts = _load_relation(
            f"nutrition facts {existing.nutrition_facts_id}",
            lambda: repository.load_nutrition_facts(existing.nutrition_facts_id),
            None,
        )
    existing.ingredients = _load_relation(
        f"ingredients for {product.id}", lambda: repository.load_ingredients(product.id), []
    )
    existing.allergens = _load_relation(
        f"allergens for {product.id}", lambda: repository.load_allergens(product.id), []
    )
    existing.images = _load_relation(
        f"images for {product.id}", lambda: repository.load_images(product.id), []
    )
    return existing


def in_memory_strategy(repository: ProductRepository, product: ProductRecord) -> Optional[ProductRecord]:
    log_info(f"Using in-memory product {product.id}")
    return product.model_copy(deep=True)


RECOVERY_STRATEGIES: List[Tuple[str, Strategy]] = [
    ("load_complete", load_complete_strategy),
    ("manual_relations", manual_relations_strategy),
    ("in_memory", in_memory_strategy),
]


def ensure_product_has_valid_data(product: ProductRecord) -> ProductRecord:
    """Fill every missing field with a safe default, keeping existing values."""
    if not product.category:
        product.category = ProductCategory.OTHER.value

    if product.nutrition_facts is None:
        log_debug(f"Creating default nutrition facts for {product.id}")
        product.nutrition_facts = NutritionFactsModel.zero()

    if product.health_score is None:
        product.health_score = DEFAULT_HEALTH_SCORE

    if not product.ingredients:
        product.ingredients = [NO_INGREDIENTS_PLACEHOLDER]

    if product.allergens is None:
        product.allergens = []

    if product.images is None:
        product.images = []

    if not product.user_notes:
        product.user_notes = NO_NOTES_PLACEHOLDER

    if not product.name or not product.name.strip():
        product.name = "Unknown Product"

    return product


def preload_product(
    repository: ProductRepository,
    product: ProductRecord,
    strategies: Optional[List[Tuple[str, Strategy]]] = None,
) -> ProductRecord:
    """Best renderable version of a product. Never raises."""
    log_info(f"Starting preload for product: {product.name}, ID: {product.id}")
    result = None
    for name, strategy in strategies or RECOVERY_STRATEGIES:
        try:
            result = strategy(repository, product)
        except Exception as e:
            log_error(f"Recovery strategy {name} failed for {product.id}: {e}", e)
            result = None
        if result is not None:
            log_debug(f"Recovery strategy {name} produced product {product.id}")
            break

    if result is None:
        result = product.model_copy(deep=True)
    return ensure_product_has_valid_data(result)
