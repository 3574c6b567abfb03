from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from logger_manager import log_critical, log_error, log_info, log_warning
from .database import Base
from .models import CORE_TABLES, IMAGE_TABLE


def _create_initial_schema(engine: Engine):
    log_info("Running migration v1.createInitialSchema")
    Base.metadata.create_all(bind=engine, tables=CORE_TABLES)


def _add_food_product_images_table(engine: Engine):
    # older databases predate the image table
    if inspect(engine).has_table(IMAGE_TABLE.name):
        log_info(f"{IMAGE_TABLE.name} table already exists, skipping creation")
        return
    log_info(f"Creating {IMAGE_TABLE.name} table (was missing)")
    IMAGE_TABLE.create(bind=engine)


MIGRATIONS = [
    ("v1.createInitialSchema", _create_initial_schema),
    ("v2.addFoodProductImagesTable", _add_food_product_images_table),
]


def run_migrations(engine: Engine):
    """Apply every migration in order. Each one is idempotent."""
    for name, migration in MIGRATIONS:
        try:
            migration(engine)
        except Exception as e:
            log_critical(f"Migration {name} failed, the store cannot be used: {e}", e)
            raise
    log_info("Migrations completed successfully")


def verify_database(engine: Engine) -> dict:
    """Log which required tables exist and how many rows each one holds."""
    counts = {}
    try:
        existing = set(inspect(engine).get_table_names())
        log_info(f"Database tables: {sorted(existing)}")
        with engine.connect() as conn:
            for table in CORE_TABLES + [IMAGE_TABLE]:
                if table.name not in existing:
                    log_warning(f"Required table '{table.name}' is missing!")
                    continue
                count = conn.execute(text(f"SELECT COUNT(*) FROM {table.name}")).scalar()
                counts[table.name] = count
                log_info(f"Table '{table.name}' contains {count} records")
    except Exception as e:
        log_error(f"Error verifying database: {e}", e)
    return counts
