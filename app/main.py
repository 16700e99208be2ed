import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded

from app.api.auth import router as auth_router
from app.api.public import router as public_router
from app.api.reclamos import router as reclamos_router
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.init_db import create_tables
from app.core.logger import get_logger
from app.core.security import limiter


# =========================================================
# CARGA DE ENTORNO
# =========================================================

load_dotenv()

logger = get_logger()

# StaticFiles exige que el directorio exista al montarse
settings.uploads_dir.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        tables = create_tables()
        logger.info("Schema ready", action="schema_ready", tables=tables)
    logger.info(
        "API started",
        action="startup",
        environment=settings.environment,
        version=settings.app_version,
    )
    yield
    logger.info("API stopped", action="shutdown")


# =========================================================
# FASTAPI APP (ENTRYPOINT ASGI)
# =========================================================

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    lifespan=lifespan,
)

register_exception_handlers(app)


# =========================================================
# RATE LIMITING
# =========================================================

app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def handle_rate_limit(request: Request, exc: RateLimitExceeded):
    logger.warning(
        "Rate limit exceeded",
        action="rate_limited",
        path=request.url.path,
        limit=str(exc.detail),
    )
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"message": "Demasiadas solicitudes", "error_code": "RATE_LIMITED"},
    )


# =========================================================
# MIDDLEWARE HTTP
# =========================================================

@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    return response


@app.middleware("http")
async def request_logging(request: Request, call_next):
    """Una línea por request. Nunca se registran headers ni cuerpos."""
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        f"{request.method} {request.url.path}",
        action="http_request",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 1),
    )
    return response


# CORS al final: queda como capa más externa y responde también los preflight
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=settings.cors_origin_regex or None,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# =========================================================
# ROUTERS
# =========================================================

app.include_router(public_router)
app.include_router(auth_router)
app.include_router(reclamos_router)

app.mount(
    settings.uploads_url_prefix,
    StaticFiles(directory=str(settings.uploads_dir)),
    name="uploads",
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port, reload=settings.is_development)
