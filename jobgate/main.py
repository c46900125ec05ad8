import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

# ✅ Import All API Routes
from jobgate.api.routes import credits, health, jobs, plans, resume, usage
from jobgate.core.config import FRONTEND_URL, LOG_LEVEL
from jobgate.core.errors import ConcurrentModification, InsufficientCredits, StorageUnavailable
from jobgate.core.logging_config import setup_logging

setup_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

app = FastAPI(title="Jobgate Metering API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        FRONTEND_URL,
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)


# ============================================
# ✅ METERING ERRORS -> HTTP
# ============================================

@app.exception_handler(StorageUnavailable)
def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
    logger.error(f"Failing closed: path={request.url.path}, detail={exc.detail}")
    return JSONResponse(status_code=503, content={"detail": exc.to_dict()})


@app.exception_handler(SQLAlchemyError)
def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Failing closed on database error: path={request.url.path}, error={type(exc).__name__}")
    return JSONResponse(status_code=503, content={"detail": StorageUnavailable(request.url.path, cause=exc).to_dict()})


@app.exception_handler(ConcurrentModification)
def concurrent_modification_handler(request: Request, exc: ConcurrentModification):
    logger.warning(f"Concurrent modification: path={request.url.path}, entity={exc.entity}, key={exc.key}")
    return JSONResponse(status_code=409, content={"detail": exc.to_dict()})


@app.exception_handler(InsufficientCredits)
def insufficient_credits_handler(request: Request, exc: InsufficientCredits):
    return JSONResponse(status_code=402, content={"detail": exc.to_dict()})


# ============================================
# ✅ REGISTER ALL ROUTERS
# ============================================

app.include_router(usage.router)
app.include_router(credits.router)
app.include_router(plans.router)
app.include_router(jobs.router)
app.include_router(resume.router)
app.include_router(health.router)


@app.get("/")
def root():
    return {"status": "Jobgate metering API running"}
