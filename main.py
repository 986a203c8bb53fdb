from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.requests import Request
from fdcatalog.api.fd_scheme_routes import router as fd_scheme_router
from fdcatalog.api.audit_routes import router as audit_router
from contextlib import asynccontextmanager
from fdcatalog.database.connection import init_db
from fdcatalog.core.config import settings
from fdcatalog.core.exceptions import CatalogError
from fdcatalog.helpers.response_builder import build_catalog_error_body, build_error_body
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
import logging
import traceback


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers to every non-OPTIONS response.

    OPTIONS requests are left to CORSMiddleware, which is registered after
    this middleware and therefore runs first.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        if request.method != "OPTIONS":
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
            response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield

app = FastAPI(
    title="FD Product Catalog",
    description="Fixed-deposit issuer, scheme and rate slab catalog with interest-rate resolution",
    version="1.0.0",
    lifespan=lifespan
)


logger = logging.getLogger("server_exception_handler")


@app.exception_handler(CatalogError)
async def catalog_exception_handler(request: Request, exc: CatalogError):
    # Not-found, conflicts and business-rule violations map 1:1 to client errors
    logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=build_catalog_error_body(exc))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    body = build_error_body(
        code="http_error",
        message=str(exc.detail) if exc.detail else str(exc.status_code),
        status_code=exc.status_code,
    )
    logger.warning(f"HTTPException handled: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    body = build_error_body(
        code="validation_error",
        message="Request validation failed",
        status_code=422,
        details=jsonable_encoder(exc.errors()),
    )
    logger.warning(f"Validation error: {exc.errors()}")
    return JSONResponse(status_code=422, content=body)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exc()
    logger.error(f"Unhandled exception: {str(exc)}\n{tb}")
    body = build_error_body(
        code="internal_server_error",
        message="An unexpected error occurred",
        status_code=500,
    )
    return JSONResponse(status_code=500, content=body)

# Supports comma-separated CLIENT_URL values (e.g. "http://localhost:3000,http://localhost:3001")
raw_origins = settings.CLIENT_URL or ""
allowed_origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

# Starlette runs middleware LIFO: CORSMiddleware is added last so it handles preflights first
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
        "Accept-Language",
        "Content-Language",
        "X-Requested-With",
        "Cache-Control",
        "If-Modified-Since",
        "If-None-Match",
        "Pragma",
    ],
    expose_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.include_router(fd_scheme_router)
app.include_router(audit_router)

@app.get("/")
async def root():
    return {"message": "FD Product Catalog API is running!"}

@app.get("/health")
async def health_check():
    return {"status": "healthy", "message": "API is running"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
