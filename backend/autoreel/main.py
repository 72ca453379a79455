"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from autoreel import __version__
from autoreel.config import settings
from autoreel.api.routes import router
from autoreel.models.job import JobType
from autoreel.pipeline.errors import PipelineError
from autoreel.workers.job_runner import job_runner
from autoreel.workers.handlers import (
    handle_analyze,
    handle_export,
    handle_preview,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting AutoReel...")

    # Register job handlers
    job_runner.register_handler(JobType.ANALYZE, handle_analyze)
    job_runner.register_handler(JobType.EXPORT, handle_export)
    job_runner.register_handler(JobType.PREVIEW, handle_preview)
    logger.info("Job handlers registered")

    yield

    # Shutdown
    logger.info("Shutting down AutoReel...")
    await job_runner.shutdown()
    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Highlight extraction and timeline compositing",
    version=__version__,
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PipelineError)
@app.exception_handler(ValueError)
async def bad_request_handler(request: Request, exc: Exception):
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


# Include API routes
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "version": __version__,
        "api": "/api",
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "autoreel.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
