# FastAPI Server for the Revu campaign lifecycle engine

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import sys

from config.app_config import CORS_ORIGINS, LOG_LEVEL
from core.errors import LifecycleError
from schemas.lifecycle import ErrorResponse
from database.config import init_db
from routers import (
    campaigns_router,
    applications_router,
    payments_router,
    settlements_router,
    revenue_router,
    notifications_router,
)

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Revu API",
    description="Campaign, application, payment and settlement lifecycle API",
    version="1.0.0"
)


@app.on_event("startup")
def startup_event():
    # Schema changes go through Alembic; this only creates missing tables
    init_db()
    logger.info("Revu API started")


@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = "; ".join(
        f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "validation_error", "detail": errors},
    )


# CORS Setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,  # Required when using "*"
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# LIFECYCLE ROUTERS
# ============================================================================
# Documented error bodies; every lifecycle error renders as ErrorResponse
ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 402, 403, 404, 409)}

app.include_router(campaigns_router, prefix="/api", responses=ERROR_RESPONSES)
app.include_router(applications_router, prefix="/api", responses=ERROR_RESPONSES)
app.include_router(payments_router, prefix="/api", responses=ERROR_RESPONSES)
app.include_router(settlements_router, prefix="/api", responses=ERROR_RESPONSES)
app.include_router(revenue_router, prefix="/api", responses=ERROR_RESPONSES)
app.include_router(notifications_router, prefix="/api", responses=ERROR_RESPONSES)


# Health Check
@app.get("/")
def root():
    return {
        "message": "Revu API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=8000)
