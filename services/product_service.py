from datetime import timedelta
from typing import List, Optional

from fastapi import Request
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from db.database import Database
from db.repositories import ProductRepository
from errors import StorageFailure, TransportFailure
from interfaces.analysisModels import NarrativeNotes
from interfaces.productModels import (
    NotesFormat, NutritionFactsModel, ProductRecord, ScanPreferences, ScanResult, now_in_timezone,
)
from logger_manager import log_debug, log_error, log_info, log_warning
from services import compatibility
from services.analysis_request import build_analysis_request
from services.default_product import generate_default_product
from services.labelAnalyzerAgent import LabelAnalyzerAgent
from services.notes_reader import read_product_notes
from services.reconciliation import ensure_product_has_valid_data, preload_product
from services.response_decoder import decode_analysis_response

from env import KEEP_RAW_PAYLOAD, OFFLINE_MODE, SEED_SAMPLE_DATA


class ServiceSettings(BaseModel):
    offline_mode: bool = OFFLINE_MODE
    keep_raw_payload: bool = KEEP_RAW_PAYLOAD
    seed_sample_data: bool = SEED_SAMPLE_DATA


def sample_products() -> List[ProductRecord]:
    now = now_in_timezone()
    return [
        ProductRecord(
            name="Organic Whole Milk",
            brand="Green Farms",
            barcode="8901234567890",
            date_scanned=now,
            nutrition_facts=NutritionFactsModel(
                serving_size="240ml", calories=150, total_fat=8, saturated_fat=5, cholesterol=35,
                sodium=120, total_carbohydrates=12, sugars=12, protein=8, vitamin_d=25, calcium=30,
                potassium=10,
            ),
            ingredients=["Organic Whole Milk", "Vitamin D3"],
            allergens=["Milk"],
            health_score=75,
            is_favorite=True,
            category="Dairy",
        ),
        ProductRecord(
            name="Whole Wheat Bread",
            brand="Nature's Bakery",
            barcode="7651234567890",
            date_scanned=now - timedelta(days=1),
            nutrition_facts=NutritionFactsModel(
                serving_size="1 slice (40g)", calories=100, total_fat=1.5, sodium=180,
                total_carbohydrates=19, dietary_fiber=3, sugars=2, protein=4, calcium=2, iron=6,
                potassium=2,
            ),
            ingredients=["Whole Wheat Flour", "Water", "Yeast", "Salt", "Sugar"],
            allergens=["Wheat"],
            health_score=85,
            user_notes="Good for sandwiches",
            notes_format=NotesFormat.PLAIN,
            category="Bakery",
        ),
        ProductRecord(
            name="Greek Yogurt",
            brand="Mediterranean",
            barcode="6901834567890",
            date_scanned=now - timedelta(days=2),
            nutrition_facts=NutritionFactsModel(
                serving_size="170g", calories=120, cholesterol=10, sodium=70,
                total_carbohydrates=9, sugars=7, protein=22, calcium=20, potassium=8,
            ),
            ingredients=["Cultured Pasteurized Nonfat Milk", "Live Active Yogurt Cultures"],
            allergens=["Milk"],
            health_score=90,
            is_favorite=True,
            category="Dairy",
        ),
    ]


class ProductService:
    """Inbound operations on scanned products.

    Store access takes the Database read or write lock exactly once per call,
    so none of these methods may call each other while holding it.
    """

    def __init__(self, database: Database, analyzer: Optional[LabelAnalyzerAgent] = None,
                 settings: Optional[ServiceSettings] = None):
        self.database = database
        self.analyzer = analyzer or LabelAnalyzerAgent()
        self.settings = settings or ServiceSettings()

    # Scanning

    async def submit_scan(self, raw_text: str, preferences: Optional[ScanPreferences] = None) -> ScanResult:
        """Analyze scanned label text and store the resulting product.

        Every failure on the analysis side ends in a default product, so a
        scan always produces something. The store is only touched once a
        complete record exists.
        """
        preferences = preferences or ScanPreferences()
        if self.settings.offline_mode and not preferences.offline_mode:
            preferences = preferences.model_copy(update={"offline_mode": True})

        record, source, error_message = await self._analyze(raw_text, preferences)
        product = await run_in_threadpool(self._save_and_preload, record)
        return ScanResult(product=product, source=source, error_message=error_message)

    async def _analyze(self, raw_text: str, preferences: ScanPreferences):
        request = build_analysis_request(raw_text, preferences)
        if request is None:
            log_info("Offline mode, using default product")
            return generate_default_product(raw_text), "fallback", None

        try:
            response_text = await self.analyzer.analyze(request)
        except TransportFailure as e:
            log_warning(f"Analysis failed, using default product: {e.message}")
            return generate_default_product(raw_text), "fallback", None

        keep_raw = self.settings.keep_raw_payload or preferences.keep_raw_payload
        result = decode_analysis_response(response_text, keep_raw_payload=keep_raw)
        if result.ok:
            return result.record, "analysis", None
        if result.kind == "service_error":
            return generate_default_product(raw_text), "fallback", result.message
        log_warning(f"Could not decode analysis response, using default product: {result.message}")
        return generate_default_product(raw_text), "fallback", None

    def _save_and_preload(self, record: ProductRecord) -> ProductRecord:
        try:
            with self.database.writing() as db:
                saved = ProductRepository(db).save(record)
        except StorageFailure as e:
            log_error(f"Could not save scanned product {record.id}, returning it unsaved: {e.message}", e)
            return ensure_product_has_valid_data(record.model_copy(deep=True))

        with self.database.reading() as db:
            return preload_product(ProductRepository(db), saved)

    # Mutations

    def toggle_favorite(self, product_id: str) -> Optional[bool]:
        with self.database.writing() as db:
            return ProductRepository(db).toggle_favorite(product_id)

    def add_note(self, product_id: str, text: str) -> bool:
        with self.database.writing() as db:
            return ProductRepository(db).set_notes(product_id, text, NotesFormat.PLAIN)

    def clear_all(self):
        with self.database.writing() as db:
            ProductRepository(db).delete_all()

    def seed_sample_products(self) -> int:
        """Insert the sample products into an empty store. Returns how many were added."""
        if not self.settings.seed_sample_data:
            return 0
        with self.database.writing() as db:
            repository = ProductRepository(db)
            if repository.count() > 0:
                log_debug("Store already has products, skipping sample data")
                return 0
            products = sample_products()
            for product in products:
                repository.insert(product)
        log_info(f"Added {len(products)} sample products")
        return len(products)

    # Queries

    def _complete_all(self, repository: ProductRepository, products: List[ProductRecord]) -> List[ProductRecord]:
        results = []
        for product in products:
            try:
                complete = repository.load_complete(product.id)
            except StorageFailure as e:
                log_warning(f"Keeping product {product.id} without relationships: {e.message}")
                complete = None
            results.append(complete or product)
        return results

    def recent(self, limit: int = 10) -> List[ProductRecord]:
        with self.database.reading() as db:
            repository = ProductRepository(db)
            return self._complete_all(repository, repository.recent(limit))

    def favorites(self) -> List[ProductRecord]:
        with self.database.reading() as db:
            repository = ProductRepository(db)
            return self._complete_all(repository, repository.favorites())

    def by_category(self, category) -> List[ProductRecord]:
        with self.database.reading() as db:
            repository = ProductRepository(db)
            return self._complete_all(repository, repository.by_category(category))

    def search(self, query: str) -> List[ProductRecord]:
        if not query or not query.strip():
            return []
        with self.database.reading() as db:
            repository = ProductRepository(db)
            return self._complete_all(repository, repository.search(query))

    def get_product(self, product_id: str) -> Optional[ProductRecord]:
        with self.database.reading() as db:
            repository = ProductRepository(db)
            try:
                existing = repository.fetch_primary(product_id)
            except StorageFailure as e:
                log_error(f"Error fetching product {product_id}: {e.message}", e)
                return None
            if existing is None:
                return None
            return preload_product(repository, existing)

    def get_notes(self, product_id: str) -> Optional[NarrativeNotes]:
        product = self.get_product(product_id)
        if product is None:
            return None
        return read_product_notes(product)

    # Preference checks

    def contains_user_allergens(self, product: ProductRecord, preferences: ScanPreferences) -> bool:
        return compatibility.contains_user_allergens(product, preferences)

    def calculate_health_compatibility(self, product: ProductRecord, preferences: ScanPreferences) -> float:
        return compatibility.calculate_health_compatibility(product, preferences)


def get_product_service(request: Request) -> ProductService:
    """FastAPI dependency returning the service built at startup."""
    return request.app.state.product_service
