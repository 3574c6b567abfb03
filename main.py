from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
import uvicorn

from db.database import Database
from logger_manager import log_debug, log_info, log_warning
from routers.product import router as product_router
from routers.scan import router as scan_router
from services.product_service import ProductService
from env import (
    DATABASE_ECHO, DATABASE_URL, LANGSMITH_API_KEY, LANGSMITH_ENDPOINT, LANGSMITH_PROJECT, LANGSMITH_TRACING,
    LLM_API_KEY, OFFLINE_MODE, PORT,
)


def report_tracing_settings():
    if not LANGSMITH_TRACING:
        return
    if not LANGSMITH_API_KEY:
        log_warning("LANGSMITH_TRACING is on but LANGSMITH_API_KEY is not set, traces will not be sent")
    log_info(f"LangSmith tracing enabled for project {LANGSMITH_PROJECT} at {LANGSMITH_ENDPOINT}")


def create_app(database: Database = None, product_service: ProductService = None) -> FastAPI:
    """Build the application. Tests pass their own database and service."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Open the store once during startup
        db = database or Database(DATABASE_URL, echo=DATABASE_ECHO)
        db.init()
        service = product_service or ProductService(db)
        service.seed_sample_products()
        app.state.database = db
        app.state.product_service = service

        if not LLM_API_KEY and not OFFLINE_MODE:
            log_warning("LLM_API_KEY is not set, every scan will use a default product")
        report_tracing_settings()
        log_info("Label analyzer started")
        yield
        db.close()
        log_info("Label analyzer stopped")

    app = FastAPI(title="Label Analyzer API", lifespan=lifespan)

    @app.get("/")
    def read_root():
        return RedirectResponse("/docs")

    # log every request
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        log_debug(f"Request: {request.method} {request.url} -> {response.status_code}")
        return response

    app.include_router(scan_router, prefix="/api/scan")
    app.include_router(product_router, prefix="/api/products")
    return app


app = create_app()

# To run the FastAPI app, use the command: uvicorn main:app --reload
if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=PORT)
