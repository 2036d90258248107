from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from teams_timesheet.routers import bot_router, projects_router, settings_router, timesheets_router, users_router
from teams_timesheet.routers.common import bad_request, error_response
from teams_timesheet.database import init_db
from teams_timesheet.services.graph_service import GraphServiceError
from teams_timesheet.utils.scheduler import TaskScheduler
from teams_timesheet.utils.logging_config import setup_logging, get_log_files_info
from teams_timesheet.config import get_settings
import logging

settings = get_settings()

# Setup comprehensive logging
logs_dir = setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

scheduler = TaskScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Teams Timesheet service...")
    init_db()
    if settings.scheduler_enabled:
        scheduler.start()
    logger.info("Application started successfully")

    yield

    # Shutdown
    logger.info("Shutting down...")
    if settings.scheduler_enabled:
        scheduler.stop()
    logger.info("Application stopped")


app = FastAPI(
    title="Teams Timesheet",
    description="Timesheet tab and bot for Microsoft Teams",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "; ".join(str(error.get("msg", "")) for error in errors) or "Invalid request"
    logger.info(f"Validation failed for {request.method} {request.url.path}: {message}")
    return bad_request(message)


@app.exception_handler(GraphServiceError)
async def graph_exception_handler(request: Request, exc: GraphServiceError):
    logger.error(f"Graph call failed for {request.method} {request.url.path}: {str(exc)}")
    return error_response(502, "Unable to reach Microsoft Graph.")


# Include routers
app.include_router(projects_router.router)
app.include_router(timesheets_router.router)
app.include_router(users_router.router)
app.include_router(settings_router.router)
app.include_router(bot_router.router)


@app.get("/")
async def root():
    return {
        "message": "Teams Timesheet API",
        "status": "running",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "database": "connected",
        "scheduler": "running" if scheduler.scheduler.running else "stopped"
    }


@app.get("/logs/info")
async def logs_info():
    """Get information about current log files."""
    return {
        "logs_directory": str(logs_dir.absolute()),
        "log_files": get_log_files_info()
    }
