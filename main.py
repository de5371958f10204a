import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app.core.config import settings
from app.core.database import init_db
from app.core.exceptions import ComplaintDeskError, InvalidInputError
from app.routers import auth, complaints, messages, notifications, maintenance, live, health
from app.services.retention_sweeper import run_periodic_sweeps

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("complaintdesk")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler"""
    # Startup
    logger.info("Starting %s API...", settings.APP_NAME)
    # Auto-create tables for dev (use Alembic in production)
    try:
        await init_db()
        logger.info("Database tables ensured (init_db)")
    except Exception as e:
        logger.warning("Failed to init_db: %s", e)

    sweeper_task = None
    if settings.RETENTION_SWEEP_INTERVAL_MINUTES > 0:
        sweeper_task = asyncio.create_task(
            run_periodic_sweeps(settings.RETENTION_SWEEP_INTERVAL_MINUTES * 60)
        )

    yield
    # Shutdown
    if sweeper_task is not None:
        sweeper_task.cancel()
        try:
            await sweeper_task
        except asyncio.CancelledError:
            pass
    logger.info("Shutting down %s API...", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Complaint management for students and administrators",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=[
        {"name": "Authentication", "description": "Student registration and student/admin login"},
        {"name": "Complaints", "description": "Complaint submission and admin status transitions"},
        {"name": "Complaint Chat", "description": "Per-complaint message threads and read state"},
        {"name": "Notifications", "description": "Unread messages addressed to the caller"},
        {"name": "Live Updates", "description": "WebSocket streams of complaint and message changes"},
        {"name": "Maintenance", "description": "Retention sweep of resolved complaints"},
    ],
    swagger_ui_parameters={
        "persistAuthorization": True,
        "displayRequestDuration": True,
    },
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ComplaintDeskError)
async def complaint_desk_error_handler(request: Request, exc: ComplaintDeskError):
    """Map service-layer errors to HTTP responses"""
    if isinstance(exc, InvalidInputError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Custom OpenAPI schema with Bearer token support
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=f"{settings.APP_NAME} v1",
        version=settings.APP_VERSION,
        description="Complaint management API",
        routes=app.routes,
    )

    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "Enter JWT token from /auth/login/student or /auth/login/admin",
        }
    }

    # Mark protected endpoints (all except login/register/maintenance)
    public = ("/auth/login", "/auth/register", "/maintenance/", "/health")
    for path, path_item in openapi_schema["paths"].items():
        if path == "/" or any(path.startswith(prefix) for prefix in public):
            continue
        for method in path_item.values():
            if isinstance(method, dict):
                method["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(complaints.router)
app.include_router(messages.router)
app.include_router(notifications.router)
app.include_router(live.router)
app.include_router(maintenance.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
