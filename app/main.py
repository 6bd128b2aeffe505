import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import ConfigurationError, EntityNotFound, OperationCancelled, ValidationFailed
from app.core.http_hardening import configure_logging, install_http_hardening
from app.api.router import router as api_router
from app.services import filter_handlers  # noqa: F401  populates filter_registry
from app.services.data_sets import DataSetsQueryService
from app.services.filter_registry import filter_registry
from app.services.logs import LogsQueryService
from app.services.project_instances import ProjectInstancesQueryService
from app.services.translations import TranslationsQueryService

_LOG = logging.getLogger("app.main")

QUERY_SERVICES = (LogsQueryService, ProjectInstancesQueryService, DataSetsQueryService, TranslationsQueryService)

# Not a registered IANA status; the de facto code for "client closed request".
CLIENT_CLOSED_REQUEST = 499


def validate_filter_wiring() -> None:
    for service_cls in QUERY_SERVICES:
        filter_registry.ensure_registered(service_cls.model, service_cls.supported_filters)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    validate_filter_wiring()
    _LOG.info("%s started (env=%s)", settings.APP_NAME, settings.APP_ENV)
    yield


app = FastAPI(title=settings.APP_NAME, version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_http_hardening(app)

app.include_router(api_router, prefix="/api")


@app.exception_handler(EntityNotFound)
async def _entity_not_found(request: Request, exc: EntityNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationFailed)
async def _validation_failed(request: Request, exc: ValidationFailed):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(OperationCancelled)
async def _operation_cancelled(request: Request, exc: OperationCancelled):
    return JSONResponse(status_code=CLIENT_CLOSED_REQUEST, content={"detail": str(exc)})


@app.exception_handler(ConfigurationError)
async def _configuration_error(request: Request, exc: ConfigurationError):
    _LOG.error("configuration error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Server configuration error"})


@app.get("/", include_in_schema=False)
def landing():
    return JSONResponse({"service": settings.APP_NAME, "status": "ok"})


@app.get("/health")
def health():
    return {"status": "ok"}
