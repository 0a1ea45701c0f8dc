# main.py
import os
import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from inspectly.database import init_db
from inspectly.routers import (
    auth_router,
    configurations_router,
    inspections_router,
    organizations_router,
    templates_router,
)
from inspectly.stores.registry import StoreRegistry

logger = logging.getLogger("uvicorn.error")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# tables first; the registry and routers assume they exist
init_db()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # drop every realtime channel held by the per-organization stores
    app.state.store_registry.close()


app = FastAPI(title="Inspectly API", version="1.0.0", description="Inspection templates, checklists and reports", lifespan=lifespan)
app.state.store_registry = StoreRegistry()


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(auth_router.router)
app.include_router(organizations_router.router)
app.include_router(templates_router.router)
app.include_router(configurations_router.router)
app.include_router(inspections_router.router)

DOC_PATHS = ("/docs", "/redoc", "/openapi")
ENVELOPE_KEYS = {"success", "message", "data"}


def envelope(success: bool, message: str, data=None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        content={"success": success, "message": message, "data": data if data is not None else {}},
        status_code=status_code,
    )


class EnvelopeMiddleware(BaseHTTPMiddleware):
    """Bare JSON bodies go out as ``{"success", "message", "data"}``; downloads pass untouched."""

    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            if request.url.path.startswith(DOC_PATHS):
                return response
            if "application/json" not in response.headers.get("content-type", ""):
                return response

            raw = b"".join([chunk async for chunk in response.body_iterator])
            headers = {k: v for k, v in response.headers.items() if k.lower() != "content-length"}
            try:
                body = json.loads(raw.decode()) if raw else None
            except ValueError:
                body = None
            else:
                if not (isinstance(body, dict) and ENVELOPE_KEYS.issubset(body.keys())):
                    return envelope(True, "Operation successful", body, response.status_code)
            return Response(content=raw, status_code=response.status_code, headers=headers)
        except Exception:
            logger.exception("Envelope middleware failed on %s", request.url.path)
            return envelope(False, "Internal server error", status_code=500)


app.add_middleware(EnvelopeMiddleware)


@app.exception_handler(HTTPException)
async def http_error(request: Request, exc: HTTPException):
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return envelope(False, message or "Error", status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = [{"loc": [str(part) for part in e.get("loc", ())], "msg": e.get("msg", "")} for e in exc.errors()]
    return envelope(False, "Validation error", {"errors": errors}, status_code=422)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s: %s", request.url.path, exc)
    return envelope(False, "Internal server error", status_code=500)


@app.get("/")
def root():
    return {"message": "Inspectly API is running"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


BEARER_SCHEME = {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}


def bearer_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    schema = get_openapi(title=app.title, version=app.version, description=app.description, routes=app.routes)
    schema.setdefault("components", {}).setdefault("securitySchemes", {})["BearerAuth"] = BEARER_SCHEME
    requirement = {"BearerAuth": []}
    for path_item in schema.get("paths", {}).values():
        for operation in path_item.values():
            if isinstance(operation, dict) and requirement not in operation.setdefault("security", []):
                operation["security"].append(requirement)

    app.openapi_schema = schema
    return schema


app.openapi = bearer_openapi
