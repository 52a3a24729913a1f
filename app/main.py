import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from . import models  # noqa: F401
from .config import CORS_ORIGINS, LOG_LEVEL
from .database import Base, engine
from .domain.billing.router import router as billing_router
from .domain.business.router import router as business_router
from .domain.catalog.router import router as catalog_router
from .domain.customers.router import router as customers_router
from .domain.dashboard.router import router as dashboard_router
from .domain.public.router import router as public_router
from .domain.scheduling.router import router as scheduling_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Keep client libraries quiet unless they warn
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Operly API ({engine.dialect.name} database)")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
    except Exception as e:
        # Concurrent workers can race to create the schema
        if "already exists" not in str(e) and "duplicate key" not in str(e):
            logger.error(f"Schema creation failed: {e}")
            raise
        logger.info("Schema already created by another worker")

    yield
    logger.info("Operly API stopped")


app = FastAPI(title="Operly API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(ValidationError)
async def model_validation_exception_handler(request: Request, exc: ValidationError):
    """Query models built inside handlers raise plain pydantic errors"""
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors(include_url=False, include_context=False))},
    )


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error for {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(status_code=409, content={"detail": "Conflicting data"})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} failed: {e}")
        raise

    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.debug(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
    return response


logger.info(f"CORS allowed origins: {CORS_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(business_router)
app.include_router(catalog_router)
app.include_router(customers_router)
app.include_router(scheduling_router)
app.include_router(billing_router)
app.include_router(dashboard_router)
app.include_router(public_router)


@app.get("/")
def root():
    return {"message": "Operly API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
