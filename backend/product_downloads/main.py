"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from product_downloads.auth.routes import router as auth_router
from product_downloads.config import get_settings
from product_downloads.db.session import init_db
from product_downloads.errors import DownloadsError
from product_downloads.limiter import limiter
from product_downloads.products.routes import router as products_router
from product_downloads.proxy.routes import router as proxy_router
from product_downloads.shopify.oauth import is_valid_shop
from product_downloads.ui.routes import router as ui_router
from product_downloads.webhooks.routes import router as webhooks_router

log = logging.getLogger(__name__)


def _setup_logging() -> None:
    """Configure logging from settings (stderr always; optional file)."""
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    root = logging.getLogger("product_downloads")
    root.setLevel(level)
    root.handlers.clear()
    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(fmt)
    root.addHandler(sh)
    if settings.log_file and str(settings.log_file).strip():
        try:
            fh = logging.FileHandler(settings.log_file, encoding="utf-8")
            fh.setLevel(level)
            fh.setFormatter(fmt)
            root.addHandler(fh)
            root.info("Logging to file %s", settings.log_file)
        except OSError as e:
            root.warning("Could not open log file %s: %s", settings.log_file, e)
    else:
        root.debug("Logging to stderr only (no log_file set)")


_setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create session tables on startup when shop sessions are persisted."""
    settings = get_settings()
    if settings.session_backend == "sqlite":
        log.info("Startup: initializing session database %s", settings.db_path)
        await init_db()
    log.info("Startup complete (env=%s, shop=%s)", settings.environment, settings.shop)
    yield
    log.info("Shutdown")


app = FastAPI(title="Product Downloads", version="0.1.0", lifespan=lifespan)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers; only the shop's admin may embed the app."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    shop = request.query_params.get("shop", "")
    ancestors = "https://admin.shopify.com"
    if is_valid_shop(shop):
        ancestors = f"https://{shop} {ancestors}"
    response.headers["Content-Security-Policy"] = f"frame-ancestors {ancestors};"
    return response


@app.exception_handler(DownloadsError)
async def downloads_exception_handler(request: Request, exc: DownloadsError):
    """Plain-text message with the error's status."""
    if exc.status_code >= 500:
        log.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return PlainTextResponse(exc.message, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Return generic 500 without leaking stack trace or internals."""
    if isinstance(exc, HTTPException):
        raise exc
    log.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(webhooks_router)
app.include_router(proxy_router)
app.include_router(auth_router)
app.include_router(products_router)


@app.get("/health")
@limiter.exempt
def health() -> JSONResponse:
    """Health check. Exempt from rate limiting."""
    return JSONResponse(content={"status": "ok"})


# Registered last: claims every GET path not matched above
app.include_router(ui_router)


def run() -> None:
    """Console entry point: serve the app with uvicorn on the configured port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "product_downloads.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.is_dev,
    )
