from sqlalchemy import Column, Integer, String, Boolean, Text, Float, ForeignKey, DateTime, LargeBinary, Index
from .database import Base


class NutritionFacts(Base):
    __tablename__ = "nutrition_facts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    serving_size = Column(String(255), nullable=False)
    calories = Column(Float, nullable=False)
    total_fat = Column(Float, nullable=False)
    saturated_fat = Column(Float, nullable=False)
    trans_fat = Column(Float, nullable=False)
    cholesterol = Column(Float, nullable=False)
    sodium = Column(Float, nullable=False)
    total_carbohydrates = Column(Float, nullable=False)
    dietary_fiber = Column(Float, nullable=False)
    sugars = Column(Float, nullable=False)
    protein = Column(Float, nullable=False)
    # percentage of daily value
    vitamin_d = Column(Float, nullable=False)
    calcium = Column(Float, nullable=False)
    iron = Column(Float, nullable=False)
    potassium = Column(Float, nullable=False)
    # only present on some labels
    added_sugars = Column(Float, nullable=True)
    vitamin_a = Column(Float, nullable=True)
    vitamin_c = Column(Float, nullable=True)
    magnesium = Column(Float, nullable=True)


class FoodProduct(Base):
    __tablename__ = "food_products"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    brand = Column(String(255), nullable=True)
    barcode = Column(String(64), nullable=True)
    image_url = Column(Text, nullable=True)
    date_scanned = Column(DateTime(timezone=True), nullable=False)
    health_score = Column(Integer, nullable=True)
    user_notes = Column(Text, nullable=True)
    notes_format = Column(String(32), nullable=True)
    raw_analysis = Column(Text, nullable=True)
    is_favorite = Column(Boolean, nullable=False, default=False)
    category = Column(String(64), nullable=False, default="Other")
    nutrition_facts_id = Column(Integer, ForeignKey("nutrition_facts.id", ondelete="CASCADE"), nullable=True)

    __table_args__ = (
        Index("food_products_date_scanned", "date_scanned"),
        Index("food_products_is_favorite", "is_favorite"),
        Index("food_products_category", "category"),
    )


# Junction tables for the multi-valued fields
class FoodProductIngredient(Base):
    __tablename__ = "food_product_ingredients"

    food_product_id = Column(String(64), ForeignKey("food_products.id", ondelete="CASCADE"), primary_key=True)
    ingredient = Column(String(512), primary_key=True)
    # keeps the label order of the ingredients
    position = Column(Integer, nullable=False, default=0)


class FoodProductAllergen(Base):
    __tablename__ = "food_product_allergens"

    food_product_id = Column(String(64), ForeignKey("food_products.id", ondelete="CASCADE"), primary_key=True)
    allergen = Column(String(255), primary_key=True)


class FoodProductImage(Base):
    __tablename__ = "food_product_images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    food_product_id = Column(String(64), ForeignKey("food_products.id", ondelete="CASCADE"), nullable=False, index=True)
    image_data = Column(LargeBinary, nullable=False)


CORE_TABLES = [
    NutritionFacts.__table__,
    FoodProduct.__table__,
    FoodProductIngredient.__table__,
    FoodProductAllergen.__table__,
]
IMAGE_TABLE = FoodProductImage.__table__
