"""FastAPI application entry point."""
import os

# Force UTC before anything caches timezone information
os.environ['TZ'] = 'UTC'

import time
import sys

if hasattr(time, "tzset"):
    time.tzset()

# Ensure console streams can emit Hebrew names and emoji on Windows
for stream in (sys.stdout, sys.stderr):
    if hasattr(stream, "reconfigure"):
        stream.reconfigure(encoding="utf-8", errors="backslashreplace")

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from contextlib import asynccontextmanager

from costume_contest.config import get_settings
from costume_contest.database import init_db
from costume_contest.version import APP_VERSION
from costume_contest.services.blob_storage import get_blob_storage
from costume_contest.routers import admin, contest, entries, health, votes

settings = get_settings()

logs_dir = Path(settings.log_dir)
logs_dir.mkdir(parents=True, exist_ok=True)

log_file = logs_dir / "costume_contest.log"
sql_log_file = logs_dir / "costume_contest_sql.log"
api_log_file = logs_dir / "costume_contest_api.log"

# General logs: 1MB per file, 5 backups
rotating_handler = RotatingFileHandler(
    log_file,
    maxBytes=1024 * 1024,
    backupCount=5,
    encoding='utf-8',
)
rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

sql_rotating_handler = RotatingFileHandler(
    sql_log_file,
    maxBytes=1024 * 1024,
    backupCount=5,
    encoding='utf-8',
)
sql_rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

# API request logs: 2MB per file, 15 backups
api_rotating_handler = RotatingFileHandler(api_log_file, maxBytes=2 * 1024 * 1024, backupCount=15, encoding='utf-8')
api_rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))

# force=True overrides any configuration uvicorn installed first
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        rotating_handler,
    ],
    force=True,
)

logger = logging.getLogger(__name__)

api_logger = logging.getLogger("costume_contest.api")
api_logger.handlers.clear()
api_logger.addHandler(api_rotating_handler)
api_logger.setLevel(logging.INFO)
api_logger.propagate = False

uvicorn_access_logger = logging.getLogger("uvicorn.access")
uvicorn_access_logger.setLevel(logging.INFO)
if rotating_handler not in uvicorn_access_logger.handlers:
    uvicorn_access_logger.addHandler(rotating_handler)

sqlalchemy_logger = logging.getLogger("sqlalchemy.engine.Engine")
sqlalchemy_logger.handlers.clear()
sqlalchemy_logger.addHandler(sql_rotating_handler)
sqlalchemy_logger.setLevel(logging.INFO)
sqlalchemy_logger.propagate = False


class SQLTransactionFilter(logging.Filter):
    def filter(self, record):
        if record.levelno == logging.INFO and hasattr(record, 'getMessage'):
            message = record.getMessage()

            # Drop transaction bookkeeping noise
            if any(keyword in message for keyword in ['ROLLBACK', 'BEGIN', 'COMMIT', 'generated in']):
                return False

            # Collapse multi-line statements onto one line
            if any(kw in message for kw in ['SELECT', 'DELETE', 'INSERT', 'UPDATE']):
                record.msg = ' '.join(message.split())
                record.args = ()

        return True


sqlalchemy_logger.addFilter(SQLTransactionFilter())


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    """Create tables, seed the contest state and make sure the image directory exists."""
    logger.info("=" * 60)
    logger.info("Costume Contest API Starting")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Database: {settings.database_url.split('@')[-1] if '@' in settings.database_url else 'SQLite'}")
    logger.info(f"Admin access: {'configured' if settings.admin_configured else 'NOT CONFIGURED'}")
    logger.info("=" * 60)

    await init_db()
    get_blob_storage().ensure_container()

    try:
        yield
    finally:
        logger.info("Costume Contest API Shutting Down... Goodbye!")


app = FastAPI(
    title="Costume Contest API",
    description="Costume contest: uploads, two voting rounds and admin phase control",
    version=APP_VERSION,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors with user-friendly messages."""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    errors = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field_path = " -> ".join(str(x) for x in loc[1:]) if len(loc) > 1 else "unknown field"
        errors.append({
            "field": field_path,
            "message": error.get("msg", "Validation error"),
            "type": error.get("type", "unknown"),
        })

    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "errors": errors
        }
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request and its outcome to the dedicated API log file."""
    start_time = time.time()

    client_ip = request.client.host if request.client else "unknown"
    user_agent = request.headers.get("user-agent", "unknown")
    method = request.method
    path = request.url.path

    request_id = f"{method}:{path}:{int(start_time * 1000) % 100000}"
    api_logger.info(f">> {request_id} | START | {method} {path} | IP: {client_ip} | UA: {user_agent[:50]}...")

    # Query strings can carry phone numbers, so only their keys are logged
    if request.query_params:
        api_logger.info(f">> {request_id} | QUERY KEYS | {sorted(request.query_params.keys())}")

    try:
        response = await call_next(request)
        process_time = time.time() - start_time

        api_logger.info(
            f"<< {request_id} | COMPLETE | {method} {path} | "
            f"Status: {response.status_code} | "
            f"Time: {process_time:.3f}s | "
            f"IP: {client_ip}"
        )
        if response.status_code >= 400:
            content_type = response.headers.get("content-type", "unknown")
            api_logger.warning(f"<< {request_id} | ERROR_RESPONSE | Content-Type: {content_type}")

        return response

    except Exception as e:
        process_time = time.time() - start_time
        api_logger.error(
            f"<< {request_id} | EXCEPTION | {method} {path} | "
            f"Error: {str(e)[:100]} | "
            f"Time: {process_time:.3f}s | "
            f"IP: {client_ip}"
        )
        raise


allowed_origins = os.getenv("ALLOWED_ORIGINS", "").split(",")
if not allowed_origins or allowed_origins == [""]:
    allowed_origins = [
        settings.frontend_url,
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(contest.router)
app.include_router(entries.router)
app.include_router(votes.router)
app.include_router(admin.router)

# check_dir=False: the directory is created in lifespan, after import
app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Costume Contest API",
        "version": APP_VERSION,
        "environment": settings.environment,
        "docs": "/docs",
    }
