"""
DreamCut Backend API (FastAPI)

Role:
    - HTTP layer of the DreamCut creative pipeline
    - Step 2a: Refiner (analyzer JSON → polished refiner JSON)
    - Step 3: Script Enhancer (refined JSON → studio-grade script)
    - Uniform error envelope: {"success": false, "error", "type", "details", "timestamp"}

Structure:
    main.py (app + handlers) → src/<domain>/router.py → services → repositories
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.src.common.config import API_CONFIG
from backend.src.common.database.connection import AsyncDatabaseEngine
from backend.src.common.enums import ErrorType
from backend.src.common.schemas.base import ErrorResponse
from backend.src.refiner.router import router as refiner_router
from backend.src.refiner.services.refiner_service import RefinerError
from backend.src.script.router import router as script_router
from backend.src.script.services.script_service import ScriptEnhancerError


# ============================================================
# Setup
# ============================================================
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

db_engine = AsyncDatabaseEngine()

app = FastAPI(
    title="DreamCut Backend API",
    description="Refiner and Script Enhancer steps of the DreamCut creative pipeline",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=API_CONFIG["cors_origins"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(refiner_router)
app.include_router(script_router)


# ============================================================
# Lifecycle
# ============================================================
@app.on_event("startup")
async def startup_event():
    logger.info(f"🚀 Starting DreamCut Backend API v{API_VERSION}...")
    await db_engine.initialize()
    logger.info("✓ Database ready")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("🛑 Shutting down API...")
    await db_engine.dispose()
    logger.info("✓ Database connections closed")


# ============================================================
# Health
# ============================================================
@app.get("/")
async def root():
    return {"status": "operational", "version": API_VERSION}


# ============================================================
# Error Handlers
# ============================================================
def _error_response(status_code: int, error: str, error_type: str | None = None, details=None) -> JSONResponse:
    body = ErrorResponse(error=error, type=error_type, details=details)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def _validation_details(errors: list[dict]) -> list[dict]:
    return [
        {"path": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg", "")}
        for error in errors
    ]


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _error_response(400, "Invalid request format", ErrorType.VALIDATION, _validation_details(exc.errors()))


@app.exception_handler(ValidationError)
async def pydantic_validation_handler(request: Request, exc: ValidationError):
    return _error_response(400, "Invalid request format", ErrorType.VALIDATION, _validation_details(exc.errors()))


@app.exception_handler(RefinerError)
@app.exception_handler(ScriptEnhancerError)
async def domain_error_handler(request: Request, exc: RefinerError | ScriptEnhancerError):
    status_code = 400 if exc.error_type == ErrorType.VALIDATION else 500
    logger.error(f"[API] {request.url.path} failed ({exc.error_type}): {exc.message}")
    details = exc.details if status_code == 400 or API_CONFIG["expose_error_details"] else None
    return _error_response(status_code, exc.message, exc.error_type, details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception(f"[API] Unhandled error on {request.url.path}: {exc}")
    details = str(exc) if API_CONFIG["expose_error_details"] else None
    return _error_response(500, "Internal server error", ErrorType.ANALYSIS, details)


# ============================================================
# Run guide
# ============================================================
"""
[Run]
1. From the project root:

   # development (auto reload)
   python -m uvicorn backend.main:app --reload --port 8000 --reload-dir backend

   # production
   python -m uvicorn backend.main:app --host 0.0.0.0 --port 8000 --workers 4

[Smoke checks]
1. Health:
   curl http://localhost:8000/

2. Refiner info / health:
   curl http://localhost:8000/api/dreamcut/refiner
   curl -I http://localhost:8000/api/dreamcut/refiner

3. Refine an analyzer document:
   curl -X POST http://localhost:8000/api/dreamcut/refiner \
     -H "Content-Type: application/json" \
     -d '{"analyzerOutput": {"user_request": {"original_prompt": "Explain compound interest", "intent": "video"}}}'

4. Generate a script from a refined document:
   curl -X POST http://localhost:8000/api/dreamcut/script-enhancer \
     -H "Content-Type: application/json" -d @refined.json

[API docs]
- Swagger UI: http://localhost:8000/docs
- ReDoc: http://localhost:8000/redoc
"""
