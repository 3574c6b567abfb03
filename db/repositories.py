from typing import List, Optional

from sqlalchemy import func, inspect, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import StorageFailure
from logger_manager import log_debug, log_error, log_info, log_warning
from interfaces.productModels import NotesFormat, NutritionFactsModel, ProductCategory, ProductRecord
from . import models


PRODUCT_FIELDS = (
    "name", "brand", "barcode", "image_url", "date_scanned", "health_score",
    "user_notes", "raw_analysis", "is_favorite", "category", "nutrition_facts_id",
)


def _unique(values) -> List:
    seen = set()
    result = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def _notes_format(value) -> Optional[NotesFormat]:
    try:
        return NotesFormat(value) if value else None
    except ValueError:
        return None


def _like_pattern(query: str) -> str:
    escaped = query.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class ProductRepository:
    """Stores one ProductRecord across the product, nutrition facts and
    junction tables.

    Writes go nutrition facts first, then the product row, then the child
    tables, all inside a single transaction. Any failure rolls the whole
    write back and surfaces as StorageFailure.
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------ writes

    def insert(self, record: ProductRecord) -> ProductRecord:
        log_info(f"Inserting product: {record.name}, ID: {record.id}")
        record = record.model_copy(deep=True)
        try:
            self._persist_nutrition_facts(record, owned_id=None)
            row = models.FoodProduct(id=record.id)
            self._apply_fields(row, record)
            self.db.add(row)
            self.db.flush()
            self._insert_children(record)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            log_error(f"Error inserting product {record.id}: {e}", e)
            raise StorageFailure(f"Could not insert product {record.id}", e) from e
        log_info(f"Inserted product {record.id} with {len(record.ingredients)} ingredients, "
                 f"{len(record.allergens)} allergens, {len(record.images)} images")
        return record

    def update(self, record: ProductRecord) -> ProductRecord:
        log_info(f"Updating product: {record.name}, ID: {record.id}")
        record = record.model_copy(deep=True)
        try:
            row = self.db.get(models.FoodProduct, record.id)
            if row is None:
                raise LookupError(f"Product {record.id} does not exist")
            owned_id = row.nutrition_facts_id
            self._persist_nutrition_facts(record, owned_id)
            self._apply_fields(row, record)
            self.db.flush()
            self._drop_released_nutrition_facts(owned_id, record)
            self._delete_children(record.id)
            self._insert_children(record)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            log_error(f"Error updating product {record.id}: {e}", e)
            raise StorageFailure(f"Could not update product {record.id}", e) from e
        log_info(f"Updated product {record.id}")
        return record

    def save(self, record: ProductRecord) -> ProductRecord:
        """Update the product if a row with its id exists, insert it otherwise."""
        try:
            exists = self.db.get(models.FoodProduct, record.id) is not None
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error(f"Error checking product {record.id}: {e}", e)
            raise StorageFailure(f"Could not save product {record.id}", e) from e
        if exists:
            log_debug(f"Product {record.id} exists, performing update")
            return self.update(record)
        log_debug(f"Product {record.id} doesn't exist, performing insert")
        return self.insert(record)

    def delete_all(self):
        """Remove every product with its nutrition facts and child rows."""
        log_warning("Deleting all products and related rows")
        try:
            if self._image_table_exists():
                self.db.query(models.FoodProductImage).delete(synchronize_session=False)
            self.db.query(models.FoodProductIngredient).delete(synchronize_session=False)
            self.db.query(models.FoodProductAllergen).delete(synchronize_session=False)
            self.db.query(models.FoodProduct).delete(synchronize_session=False)
            self.db.query(models.NutritionFacts).delete(synchronize_session=False)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            log_error(f"Error deleting all products: {e}", e)
            raise StorageFailure("Could not delete all products", e) from e
        self.db.expunge_all()
        log_info("All products deleted")

    def toggle_favorite(self, product_id: str) -> Optional[bool]:
        try:
            row = self.db.get(models.FoodProduct, product_id)
            if row is None:
                return None
            row.is_favorite = not row.is_favorite
            self.db.commit()
            return row.is_favorite
        except Exception as e:
            self.db.rollback()
            log_error(f"Error toggling favorite for {product_id}: {e}", e)
            raise StorageFailure(f"Could not toggle favorite for {product_id}", e) from e

    def set_notes(self, product_id: str, notes: str, notes_format: NotesFormat = NotesFormat.PLAIN) -> bool:
        try:
            row = self.db.get(models.FoodProduct, product_id)
            if row is None:
                return False
            row.user_notes = notes
            row.notes_format = notes_format.value
            self.db.commit()
            return True
        except Exception as e:
            self.db.rollback()
            log_error(f"Error saving notes for {product_id}: {e}", e)
            raise StorageFailure(f"Could not save notes for {product_id}", e) from e

    def _persist_nutrition_facts(self, record: ProductRecord, owned_id: Optional[int]):
        """Write the record's nutrition facts into the row its product owns.

        owned_id is the facts row the stored product points at (None on
        insert). Ids carried by the record are never trusted, so a facts row
        always belongs to exactly one product.
        """
        facts = record.nutrition_facts
        if facts is None:
            if record.nutrition_facts_id is not None and record.nutrition_facts_id != owned_id:
                log_warning(f"Dropping nutrition facts id {record.nutrition_facts_id} not owned by {record.id}")
                record.nutrition_facts_id = None
            return

        values = facts.model_dump(exclude={"id"})
        row = self.db.get(models.NutritionFacts, owned_id) if owned_id is not None else None
        if row is None:
            row = models.NutritionFacts(**values)
            self.db.add(row)
            self.db.flush()
            log_debug(f"Nutrition facts inserted with ID: {row.id}")
        else:
            for key, value in values.items():
                setattr(row, key, value)
            self.db.flush()
            log_debug(f"Nutrition facts {row.id} updated")
        facts.id = row.id
        record.nutrition_facts_id = row.id

    def _drop_released_nutrition_facts(self, owned_id: Optional[int], record: ProductRecord):
        if owned_id is None or owned_id == record.nutrition_facts_id:
            return
        self.db.query(models.NutritionFacts).filter(models.NutritionFacts.id == owned_id) \
            .delete(synchronize_session="fetch")
        log_debug(f"Nutrition facts {owned_id} released by {record.id} deleted")

    def _apply_fields(self, row: models.FoodProduct, record: ProductRecord):
        for field in PRODUCT_FIELDS:
            setattr(row, field, getattr(record, field))
        row.notes_format = record.notes_format.value if record.notes_format else None

    def _delete_children(self, product_id: str):
        self.db.query(models.FoodProductIngredient).filter(
            models.FoodProductIngredient.food_product_id == product_id
        ).delete(synchronize_session="fetch")
        self.db.query(models.FoodProductAllergen).filter(
            models.FoodProductAllergen.food_product_id == product_id
        ).delete(synchronize_session="fetch")
        if self._image_table_exists():
            self.db.query(models.FoodProductImage).filter(
                models.FoodProductImage.food_product_id == product_id
            ).delete(synchronize_session="fetch")

    def _insert_children(self, record: ProductRecord):
        for position, ingredient in enumerate(_unique(record.ingredients)):
            self.db.add(models.FoodProductIngredient(
                food_product_id=record.id, ingredient=ingredient, position=position
            ))
        for allergen in _unique(record.allergens):
            self.db.add(models.FoodProductAllergen(food_product_id=record.id, allergen=allergen))
        if record.images:
            if self._image_table_exists():
                for image_data in record.images:
                    self.db.add(models.FoodProductImage(food_product_id=record.id, image_data=image_data))
            else:
                log_warning(f"food_product_images table missing, {len(record.images)} images not stored")
        self.db.flush()

    # ------------------------------------------------------------------- reads

    def load_complete(self, product_id: str) -> Optional[ProductRecord]:
        """Load a product with all its relationships, None when it does not exist."""
        log_debug(f"Loading complete product ID: {product_id}")
        try:
            row = self.db.get(models.FoodProduct, product_id)
            if row is None:
                log_info(f"Product not found with ID: {product_id}")
                return None
            record = self._to_record(row)
            if row.nutrition_facts_id is not None:
                record.nutrition_facts = self.load_nutrition_facts(row.nutrition_facts_id)
            record.ingredients = self.load_ingredients(product_id)
            record.allergens = self.load_allergens(product_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            log_error(f"Error loading complete product {product_id}: {e}", e)
            raise StorageFailure(f"Could not load product {product_id}", e) from e
        record.images = self.load_images(product_id)
        return record

    def fetch_primary(self, product_id: str) -> Optional[ProductRecord]:
        try:
            row = self.db.get(models.FoodProduct, product_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageFailure(f"Could not fetch product {product_id}", e) from e
        return self._to_record(row) if row is not None else None

    def load_nutrition_facts(self, nutrition_facts_id: int) -> Optional[NutritionFactsModel]:
        row = self.db.get(models.NutritionFacts, nutrition_facts_id)
        return NutritionFactsModel.model_validate(row) if row is not None else None

    def load_ingredients(self, product_id: str) -> List[str]:
        rows = self.db.query(models.FoodProductIngredient.ingredient).filter(
            models.FoodProductIngredient.food_product_id == product_id
        ).order_by(models.FoodProductIngredient.position).all()
        return [row[0] for row in rows]

    def load_allergens(self, product_id: str) -> List[str]:
        rows = self.db.query(models.FoodProductAllergen.allergen).filter(
            models.FoodProductAllergen.food_product_id == product_id
        ).all()
        return [row[0] for row in rows]

    def load_images(self, product_id: str) -> List[bytes]:
        """Images for a product; an absent image table means no images."""
        try:
            if not self._image_table_exists():
                log_warning("food_product_images table doesn't exist, skipping image loading")
                return []
            rows = self.db.query(models.FoodProductImage.image_data).filter(
                models.FoodProductImage.food_product_id == product_id
            ).order_by(models.FoodProductImage.id).all()
            return [bytes(row[0]) for row in rows]
        except SQLAlchemyError as e:
            self.db.rollback()
            log_warning(f"Error loading images for {product_id}: {e}")
            return []

    def count(self) -> int:
        return self.db.query(func.count(models.FoodProduct.id)).scalar() or 0

    def recent(self, limit: int = 10) -> List[ProductRecord]:
        rows = self.db.query(models.FoodProduct).order_by(
            models.FoodProduct.date_scanned.desc()
        ).limit(limit).all()
        return [self._to_record(row) for row in rows]

    def favorites(self) -> List[ProductRecord]:
        rows = self.db.query(models.FoodProduct).filter(
            models.FoodProduct.is_favorite.is_(True)
        ).order_by(models.FoodProduct.date_scanned.desc()).all()
        return [self._to_record(row) for row in rows]

    def by_category(self, category) -> List[ProductRecord]:
        category = ProductCategory.from_string(getattr(category, "value", category)).value
        rows = self.db.query(models.FoodProduct).filter(
            models.FoodProduct.category == category
        ).order_by(models.FoodProduct.date_scanned.desc()).all()
        return [self._to_record(row) for row in rows]

    def search(self, query: str) -> List[ProductRecord]:
        """Name/brand matches first, then products matched by an ingredient.

        Both matches are case-insensitive substring matches; each product
        appears once.
        """
        if not query or not query.strip():
            return []
        pattern = _like_pattern(query.strip())

        by_properties = self.db.query(models.FoodProduct).filter(
            or_(
                func.lower(models.FoodProduct.name).like(pattern, escape="\\"),
                func.lower(models.FoodProduct.brand).like(pattern, escape="\\"),
            )
        ).order_by(models.FoodProduct.date_scanned.desc()).all()

        ingredient_ids = [row[0] for row in self.db.query(
            models.FoodProductIngredient.food_product_id
        ).filter(
            func.lower(models.FoodProductIngredient.ingredient).like(pattern, escape="\\")
        ).distinct().all()]

        results = [self._to_record(row) for row in by_properties]
        existing_ids = {record.id for record in results}
        missing_ids = [product_id for product_id in ingredient_ids if product_id not in existing_ids]
        if missing_ids:
            by_ingredients = self.db.query(models.FoodProduct).filter(
                models.FoodProduct.id.in_(missing_ids)
            ).order_by(models.FoodProduct.date_scanned.desc()).all()
            results.extend(self._to_record(row) for row in by_ingredients)
        log_debug(f"Search '{query}' matched {len(results)} products")
        return results

    def _image_table_exists(self) -> bool:
        try:
            return inspect(self.db.connection()).has_table(models.FoodProductImage.__tablename__)
        except SQLAlchemyError as e:
            log_warning(f"Could not inspect image table: {e}")
            return False

    @staticmethod
    def _to_record(row: models.FoodProduct) -> ProductRecord:
        return ProductRecord(
            id=row.id,
            name=row.name,
            brand=row.brand,
            barcode=row.barcode,
            image_url=row.image_url,
            date_scanned=row.date_scanned,
            health_score=row.health_score,
            user_notes=row.user_notes,
            notes_format=_notes_format(row.notes_format),
            raw_analysis=row.raw_analysis,
            is_favorite=bool(row.is_favorite),
            category=row.category,
            nutrition_facts_id=row.nutrition_facts_id,
        )
