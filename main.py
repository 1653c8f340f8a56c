import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import LOG_FORMAT, settings
from services.container import build_services
from services.errors import (
    ConcurrentModification,
    DuplicateId,
    LendingError,
    NotFound,
    RetryLimitExceeded,
    Unauthorized,
    ValidationError,
)
from api.admin import router as admin_router
from api.applications import router as applications_router
from api.catalog import router as catalog_router
from api.users import router as users_router

logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

# Most specific first
_STATUS_CODES = [
    (RetryLimitExceeded, 429),
    (ValidationError, 400),
    (NotFound, 404),
    (Unauthorized, 403),
    (ConcurrentModification, 409),
    (DuplicateId, 409),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests install their own services before startup
    owned = getattr(app.state, "services", None) is None
    if owned:
        app.state.services = await build_services(settings)
    yield
    if owned:
        await app.state.services.close()
        app.state.services = None


app = FastAPI(
    title=settings.app_name,
    description="Cross-border micro-lending verification and underwriting API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users_router)
app.include_router(applications_router)
app.include_router(admin_router)
app.include_router(catalog_router)


@app.exception_handler(LendingError)
async def lending_error_handler(request: Request, exc: LendingError):
    status_code = next((code for cls, code in _STATUS_CODES if isinstance(exc, cls)), 500)
    if status_code == 403:
        logger.warning("Unauthorized %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "error": type(exc).__name__})


@app.get("/health")
async def health():
    return {"status": "ok"}
