import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
import database
import products
from auto_import import AutoDataFetcher
from errors import CatalogError, ValidationError
from logging_config import get_logger, setup_logging
from schemas import ImportRequest

logger = get_logger(__name__)

_fetcher: Optional[AutoDataFetcher] = None


def get_fetcher() -> AutoDataFetcher:
    """Process-wide fetcher; it owns the schema registry and the running watchers."""
    global _fetcher
    if _fetcher is None:
        _fetcher = AutoDataFetcher(database.get_db())
    return _fetcher


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    try:
        database.ensure_product_indexes(database.get_db())
    except (CatalogError, PyMongoError) as e:
        logger.error(f"Database setup failed, serving in degraded mode: {e}")
    yield
    if _fetcher is not None:
        _fetcher.stop_all()


app = FastAPI(title=config.PROJECT_NAME, version=config.VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, message: str, error: Optional[str] = None, **extra) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        content["error"] = error
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def product_error(e: Exception, message: str) -> JSONResponse:
    """Translate product service failures; details of 500s only leak in development."""
    if isinstance(e, ValidationError):
        extra = {"errors": e.errors} if e.errors else {}
        return error_response(400, e.message, **extra)
    if isinstance(e, CatalogError) and e.status_code < 500:
        return error_response(e.status_code, e.message)
    logger.error(f"{message}: {e}")
    return error_response(500, message, str(e) if config.is_development() else None)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(404, "Route not found", path=request.url.path, method=request.method)
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body")
        errors.append(f"{field}: {error['msg']}" if field else error["msg"])
    return error_response(400, "Validation failed", errors=errors)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(
        500, "Internal server error",
        str(exc) if config.is_development() else "Something went wrong",
    )


@app.get("/")
def read_root():
    return {
        "message": f"{config.PROJECT_NAME}",
        "version": config.VERSION,
        "endpoints": {
            "health": "/api/health",
            "autoImport": {
                "import": "POST /api/auto-import/import",
                "status": "GET /api/auto-import/status",
                "sync": "POST /api/auto-import/sync",
                "collections": "GET /api/auto-import/collections",
                "data": "GET /api/auto-import/data/{collection}",
            },
            "products": {
                "list": "GET /api/products",
                "create": "POST /api/products",
                "detail": "GET /api/products/{id}",
                "update": "PUT /api/products/{id}",
                "delete": "DELETE /api/products/{id}",
            },
        },
    }


@app.get("/api/health")
def health():
    return {
        "success": True,
        "message": f"{config.PROJECT_NAME} is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# Auto import endpoints
@app.post("/api/auto-import/import")
def auto_import(payload: Optional[ImportRequest] = Body(None)):
    payload = payload or ImportRequest()
    try:
        result = get_fetcher().auto_import_to_mongo(payload.collectionName)
        return {
            "success": True,
            "message": "Data imported successfully from frontend",
            "data": result.model_dump(mode="json", by_alias=True),
        }
    except Exception as e:
        logger.error(f"Auto-import error: {e}")
        return error_response(500, "Auto-import failed", str(e))


@app.get("/api/auto-import/status")
def auto_import_status(collectionName: str = config.DEFAULT_IMPORT_COLLECTION):
    try:
        stats = get_fetcher().get_collection_stats(collectionName)
        stats["sampleDocument"] = database.serialize_document(stats["sampleDocument"])
        return {"success": True, "data": stats}
    except Exception as e:
        logger.error(f"Status error: {e}")
        return error_response(500, "Failed to get status", str(e))


def _start_watching(collection_name: str):
    try:
        get_fetcher().start_watching(collection_name)
    except Exception as e:
        logger.error(f"Auto-sync for '{collection_name}' failed to start: {e}")


@app.post("/api/auto-import/sync")
def auto_import_sync(background_tasks: BackgroundTasks, payload: Optional[ImportRequest] = Body(None)):
    payload = payload or ImportRequest()
    background_tasks.add_task(_start_watching, payload.collectionName)
    return {
        "success": True,
        "message": "Auto-sync started",
        "collectionName": payload.collectionName,
    }


@app.get("/api/auto-import/collections")
def list_collections():
    try:
        db = database.get_db()
        collections = [
            {"name": name, "documentCount": db[name].count_documents({})}
            for name in db.list_collection_names()
        ]
        return {"success": True, "collections": collections}
    except Exception as e:
        logger.error(f"Collections error: {e}")
        return error_response(500, "Failed to get collections", str(e))


@app.get("/api/auto-import/data/{collection}")
def collection_data(collection: str, limit: str = "10", skip: str = "0"):
    try:
        db = database.get_db()
        count = db[collection].count_documents({})
        documents = database.get_documents(collection, {}, limit=int(limit), skip=int(skip))
        return {
            "success": True,
            "collection": {
                "name": collection,
                "documentCount": count,
                "documents": database.serialize_document(documents),
            },
        }
    except Exception as e:
        logger.error(f"Data fetch error: {e}")
        return error_response(500, "Failed to fetch data", str(e))


# Product endpoints
@app.post("/api/products", status_code=201)
def create_product(payload: Any = Body(None)):
    try:
        product = products.create_product(database.get_db(), payload or {})
        return {
            "success": True,
            "message": "Product created successfully",
            "data": database.serialize_document(product),
        }
    except Exception as e:
        return product_error(e, "Failed to create product")


@app.get("/api/products")
def list_products(
    page: str = "1",
    limit: str = "20",
    search: Optional[str] = None,
    status: Optional[str] = None,
    category: Optional[str] = None,
    sort: str = products.DEFAULT_SORT,
):
    try:
        result = products.list_products(
            database.get_db(), page=page, limit=limit, search=search,
            status=status, category=category, sort=sort,
        )
        return {"success": True, "data": database.serialize_document(result)}
    except Exception as e:
        return product_error(e, "Failed to fetch products")


@app.get("/api/products/{product_id}")
def get_product(product_id: str):
    try:
        product = products.get_product(database.get_db(), product_id)
        return {"success": True, "data": database.serialize_document(product)}
    except Exception as e:
        return product_error(e, "Failed to fetch product")


@app.put("/api/products/{product_id}")
def update_product(product_id: str, payload: Optional[Dict[str, Any]] = Body(None)):
    try:
        product = products.update_product(database.get_db(), product_id, payload or {})
        return {
            "success": True,
            "message": "Product updated successfully",
            "data": database.serialize_document(product),
        }
    except Exception as e:
        return product_error(e, "Failed to update product")


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str):
    try:
        products.delete_product(database.get_db(), product_id)
        return {"success": True, "message": "Product deleted successfully"}
    except Exception as e:
        return product_error(e, "Failed to delete product")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", config.PORT))
    uvicorn.run(app, host="0.0.0.0", port=port)
