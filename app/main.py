import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# ✅ Import All API Routes
from app.api.routes import auth, jobs, screening, health

from app.core import config
from app.core.errors import register_error_handlers
from app.core.logging_config import setup_logging
from app.db.session import SessionLocal
from app.llm.provider import get_default_provider
from app.services.resume_analysis_service import ResumeScreener
from app.services.screening_queue import ScreeningTaskQueue

logger = logging.getLogger(__name__)


# ============================================
# ✅ STARTUP / SHUTDOWN
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.RUN_MIGRATIONS:
        from app.db.migrate import run_migrations
        run_migrations()

    # tests install their own queue before the app starts
    owns_queue = getattr(app.state, "screening_queue", None) is None
    if owns_queue:
        app.state.screening_queue = ScreeningTaskQueue(
            SessionLocal,
            ResumeScreener(get_default_provider()),
            max_workers=config.SCREENING_MAX_WORKERS,
            max_attempts=config.SCREENING_MAX_ATTEMPTS,
            retry_base_delay=config.SCREENING_RETRY_BASE_DELAY,
        )

    logger.info(f"Resume Screening API started: env={config.APP_ENV}")
    yield

    if owns_queue:
        app.state.screening_queue.shutdown(wait_for_tasks=False)
        app.state.screening_queue = None


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

def create_app() -> FastAPI:
    setup_logging(config.LOG_LEVEL, config.LOG_DIR)

    app = FastAPI(title="Resume Screening API", lifespan=lifespan)
    app.state.screening_queue = None

    # ✅ CORS: only the configured frontends
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )

    register_error_handlers(app)

    # ============================================
    # ✅ REGISTER ALL ROUTERS
    # ============================================

    app.include_router(auth.router)
    app.include_router(jobs.router)
    app.include_router(screening.router)
    app.include_router(health.router)

    @app.get("/")
    def root():
        return {"status": "Resume Screening API running"}

    return app


app = create_app()
