import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.deps import get_sync_scheduler
from app.api.health import router as health_router
from app.api.health import status_router
from app.api.routes_auth import router as auth_router
from app.api.routes_contacts import router as contacts_router
from app.api.routes_debug import router as debug_router
from app.api.routes_folders import router as folders_router
from app.api.routes_inventory import router as inventory_router
from app.api.routes_payments import router as payments_router
from app.api.routes_products import router as products_router
from app.api.routes_sync import router as sync_router
from app.api.routes_terminal import router as terminal_router
from app.config import settings
from app.db import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    init_db()
    log.info("Environment: %s", settings.ENVIRONMENT)
    log.info("GHL Location ID: %s", settings.GHL_LOCATION_ID or "Not configured")

    scheduler = get_sync_scheduler()
    if settings.ghl_configured:
        scheduler.start()
    else:
        log.warning(
            "GHL credentials missing, sync service disabled. "
            "Configure GHL_CLIENT_ID, GHL_CLIENT_SECRET and GHL_LOCATION_ID to enable it"
        )

    try:
        yield
    finally:
        scheduler.stop()


app = FastAPI(title="YMC POS - Backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=settings.FRONTEND_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# the POS frontend reads failures from `error` in the response body
@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    body = {"success": False}
    if isinstance(exc.detail, dict):
        body.update(exc.detail)
    else:
        body["error"] = exc.detail
    return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", [])[1:])
    message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    return JSONResponse({"success": False, "error": message, "details": errors}, status_code=400)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    log.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse({"success": False, "error": str(exc) or "Internal server error"}, status_code=500)


app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(status_router)

app.include_router(auth_router)

app.include_router(inventory_router)

app.include_router(sync_router)

app.include_router(terminal_router)

app.include_router(payments_router)

app.include_router(contacts_router)

app.include_router(debug_router)

app.include_router(folders_router)

app.include_router(products_router)
