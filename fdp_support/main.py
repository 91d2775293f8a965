"""
FastAPI Main Application
Social support allocation for the Family Development Program
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from pathlib import Path
import logging
from typing import AsyncGenerator
from sqlalchemy import text

from fdp_support.config import settings
from fdp_support.infrastructure.db.database import init_db, close_db
from fdp_support.domain.services.policy_config_engine import PolicyConfigEngine
from fdp_support.api.errors import register_exception_handlers
from fdp_support.utils.logging_redaction import install_redaction_filter

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)
install_redaction_filter()

# Reduce noisy loggers in production
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)


# Global instances
policy_engine: PolicyConfigEngine | None = None


def resolve_config_dir() -> Path:
    """POLICY_CONFIG_DIR, relative paths taken from the project root"""
    config_dir = Path(settings.POLICY_CONFIG_DIR)
    if not config_dir.is_absolute():
        config_dir = Path(__file__).resolve().parent.parent / config_dir
    return config_dir


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Handles startup and shutdown
    """
    global policy_engine

    # ===================
    # STARTUP
    # ===================
    logger.info("="*60)
    logger.info("🚀 Starting FDP Social Support Service")
    logger.info(f"   Environment: {settings.APP_ENV}, timezone: {settings.TIMEZONE}")
    logger.info("="*60)

    # 1. Initialize database
    logger.info("📊 Step 1/2: Initializing database...")
    await init_db()
    logger.info("✅ Database initialized")

    # 2. Load poverty policy
    logger.info("⚙️  Step 2/2: Loading poverty policy...")
    policy_engine = PolicyConfigEngine(resolve_config_dir(), settings.POLICY_FILE)
    policy_engine.load_all()
    logger.info("✅ Poverty policy loaded")
    logger.info(f"   📈 Policy Version: {policy_engine.policy_version}")

    logger.info(f"   ✅ API Server: http://{settings.API_HOST}:{settings.API_PORT}")
    logger.info(f"   ✅ API Docs: http://{settings.API_HOST}:{settings.API_PORT}/docs")
    logger.info("="*60)

    yield

    # ===================
    # SHUTDOWN
    # ===================
    logger.info("🛑 Shutting down FDP Social Support Service...")
    await close_db()
    logger.info("✅ Database connections closed")


# Create FastAPI app
app = FastAPI(
    title="FDP Social Support Allocation",
    description="Per-family social support budgets capped by poverty level",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Service, database and policy health"""
    db_status = "disconnected"
    db_error = None
    try:
        from fdp_support.infrastructure.db.database import engine
        if engine is None:
            db_status = "not_initialized"
        else:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            db_status = "connected"
    except Exception as exc:
        db_status = "error"
        db_error = str(exc)

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "service": "FDP Social Support",
        "version": "1.0.0",
        "environment": settings.APP_ENV,
        "policy_version": policy_engine.policy_version if policy_engine else "Not loaded",
        "services": {
            "api": "running",
            "database": db_status,
        },
        "database_error": db_error,
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "FDP Social Support Allocation",
        "version": "1.0.0",
        "docs": "/docs"
    }


# Import and include routers
from fdp_support.api.routes import families, support, approval, config as config_routes  # noqa: E402

app.include_router(families.router, prefix="/api/v1/families", tags=["Families"])
app.include_router(support.router, prefix="/api/v1/support", tags=["Social Support"])
app.include_router(approval.router, prefix="/api/v1/approval", tags=["Approval"])
app.include_router(config_routes.router, prefix="/api/v1/config", tags=["Config"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("fdp_support.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
