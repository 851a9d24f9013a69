"""
GymDesk FastAPI Application - Main entry point.

GymDesk is the back office of a gym: member registration, recurring
membership billing, expenses and walk-in inquiries. Modules:

- Auth: staff login, admin bootstrap
- Members: profiles plus the billing cycle ledger (payments, adjustments,
  pause/resume, restart, extension)
- Expenses: outgoing money
- Inquiries: leads and their follow-ups
- Dashboard: member payment statistics

All endpoints live under /api/v1/{module}/ and answer with
{"success": true, ...} or {"success": false, "message": ..., "error": ...}.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.exceptions import GymDeskError
from app.db.base import init_db
from app.schemas.common import ErrorResponse, HealthResponse

from app.api.v1 import auth, members, expenses, inquiries
from app.api.v1.dashboard import dashboard_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    # Note: In production, use Alembic migrations instead
    await init_db()
    logger.info("%s started (%s)", settings.APP_NAME, settings.APP_ENV)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="""
GymDesk - gym membership and billing back office.

## Modules

- **Auth**: Staff login and first-admin bootstrap
- **Members**: Member profiles, billing cycles, payments and adjustments
- **Expenses**: Expense tracking
- **Inquiries**: Leads and follow-ups
- **Dashboard**: Payment statistics
    """,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# HEALTH CHECK
# ============================================================================

@app.get("/api/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(code=200, message="API is healthy.")


# ============================================================================
# V1 API
# ============================================================================

app.include_router(auth.router, prefix=f"{settings.API_V1_PREFIX}/auth", tags=["auth"])
app.include_router(members.router, prefix=f"{settings.API_V1_PREFIX}/members", tags=["members"])
app.include_router(expenses.router, prefix=f"{settings.API_V1_PREFIX}/expenses", tags=["expenses"])
app.include_router(inquiries.router, prefix=f"{settings.API_V1_PREFIX}/inquiries", tags=["inquiries"])
app.include_router(dashboard_router, prefix=f"{settings.API_V1_PREFIX}/dashboard", tags=["dashboard"])


# ============================================================================
# ERROR HANDLERS
# ============================================================================

def error_response(status_code: int, message: str, error=None) -> JSONResponse:
    body = ErrorResponse(message=message, error=error)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


@app.exception_handler(GymDeskError)
async def gymdesk_exception_handler(request: Request, exc: GymDeskError):
    """Domain errors carry their own status code."""
    logger.info("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    return error_response(exc.status_code, exc.message, exc.error)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed or missing input is a 400, like any other validation error."""
    errors = jsonable_encoder(exc.errors())
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg')}" if location else "Invalid request"
    return error_response(400, message, errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        500,
        "Internal server error",
        str(exc) if settings.DEBUG else None
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
