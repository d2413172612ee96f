import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from propflow.config import get_settings
from propflow.api.routes import imports
from propflow.core.exceptions import (
    FieldMappingError,
    ImportFileError,
    ImportJobNotFoundError,
    InvalidTransitionError,
    PropflowError,
    RollbackConflictError,
)
from propflow.db.session import engine

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tables are created via Alembic
    yield
    await engine.dispose()


app = FastAPI(
    title="Propflow",
    description="Property-management data import and delinquency automation",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(imports.router, prefix="/api")


@app.exception_handler(PropflowError)
async def propflow_error_handler(request: Request, exc: PropflowError):
    if isinstance(exc, ImportJobNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})
    if isinstance(exc, (InvalidTransitionError, RollbackConflictError)):
        return JSONResponse(status_code=409, content={"detail": str(exc)})
    if isinstance(exc, FieldMappingError):
        return JSONResponse(
            status_code=422,
            content={"detail": str(exc), "missingFields": exc.missing_fields, "invalidFields": exc.invalid_fields},
        )
    if isinstance(exc, ImportFileError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})
    logger.error("Unhandled %s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/health")
def health():
    return {"status": "ok"}
