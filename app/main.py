# app/main.py
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.admin.routes import router as admin_router
from app.core.config import get_settings
from app.core.database import Base, engine
from app.core.errors import register_exception_handlers
from app.core.logging import configure_logging
from app.guide.routes import router as guide_router
from app.report.routes import router as report_router
from app.ticket.routes import router as ticket_router

settings = get_settings()
configure_logging(log_level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    log.info("app.started", version=settings.APP_VERSION, bucket=settings.GCS_BUCKET_NAME)
    yield
    engine.dispose()
    log.info("app.stopped")


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESC,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

# Routers
app.include_router(ticket_router, prefix=settings.API_PREFIX)
app.include_router(admin_router, prefix=settings.API_PREFIX)
app.include_router(report_router, prefix=settings.API_PREFIX)
app.include_router(guide_router, prefix=settings.API_PREFIX)

# Local attachments; a configured bucket serves its own objects
if not settings.uses_bucket:
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    app.mount(settings.UPLOAD_URL_PATH, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}
