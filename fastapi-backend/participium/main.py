from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, Response
import logging

from .config import get_settings
from .database import init_db
from .dependencies import get_dispatcher
from .errors import AppError
from .observability import (
    setup_logging,
    init_sentry,
    setup_metrics_middleware,
    metrics_endpoint,
    get_health_check,
)
from .routes import notifications as notifications_routes
from .routes import reports as reports_routes
from .routes import sessions as sessions_routes
from .routes import threads as threads_routes
from .routes import users as users_routes

# Setup observability
setup_logging()
init_sentry()

logger = logging.getLogger("participium")

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield
    # Let in-flight notification tasks finish before the loop closes
    await app.dependency_overrides.get(get_dispatcher, get_dispatcher)().drain()


app = FastAPI(title="Participium API", lifespan=lifespan)

# Setup metrics middleware
setup_metrics_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for dev; restrict in prod
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=list(settings.allowed_hosts) or ["*"])

app.include_router(sessions_routes.router)
app.include_router(users_routes.router)
app.include_router(reports_routes.router)
app.include_router(threads_routes.router)
app.include_router(notifications_routes.router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(status_code=400, content={"error": message, "kind": "validation_error"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error", "kind": "internal"})


@app.get("/health")
async def health():
    dispatcher = app.dependency_overrides.get(get_dispatcher, get_dispatcher)()
    return get_health_check(dispatcher.pending)


@app.get("/metrics")
def metrics(request: Request) -> Response:
    return metrics_endpoint(request)
