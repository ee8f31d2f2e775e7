"""
FastAPI block editing backend
Main application entry point
"""
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from mailblocks import __version__
from mailblocks.config import settings
from mailblocks.logging_config import configure_logging
from mailblocks.routers import blocks

configure_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info(
        "Starting up block editing API...",
        ai_provider=settings.ai_provider,
        anthropic_configured=settings.is_anthropic_configured,
        openrouter_configured=settings.is_openrouter_configured,
    )

    yield

    logger.info("Shutdown complete")


app = FastAPI(
    title="Block Editing API",
    description="Block-marker parsing, editing and validation for AI-generated HTML emails and posters",
    version=__version__,
    lifespan=lifespan
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health Check
@app.get("/")
async def root():
    return {
        "status": "ok",
        "message": "Block Editing API is running",
        "version": __version__,
        "features": ["block_parsing", "block_updates", "ai_block_edit", "email_validation"]
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "ai_provider": settings.ai_provider,
        "anthropic_configured": settings.is_anthropic_configured,
        "openrouter_configured": settings.is_openrouter_configured,
    }


# Include API routers
app.include_router(blocks.router, prefix="/api", tags=["Blocks"])


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error("Unhandled error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": str(exc)
        }
    )
