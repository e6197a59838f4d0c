import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.db import base  # noqa: F401 - registers every model on Base.metadata
from app.db.base_class import Base
from app.db import session as db_session
from app.api.v2.api import api_router

# --- Logging configuration ---
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Farsi Practice API",
    openapi_url="/api/v2/openapi.json"
)


def _sanitize_origin(origin: str | None) -> str | None:
    if not origin:
        return None
    value = origin.strip()
    if not value:
        return None
    if not value.startswith("http"):
        value = f"https://{value}"
    return value.rstrip("/")


def _build_cors_origins() -> list[str]:
    base_origins = {_sanitize_origin(o) for o in settings.BACKEND_CORS_ORIGINS}

    base_origins.add(_sanitize_origin(os.getenv("VERCEL_URL")))

    additional = os.getenv("ADDITIONAL_CORS_ORIGINS")
    if additional:
        for origin in additional.split(","):
            base_origins.add(_sanitize_origin(origin))

    allow_origins = sorted({origin for origin in base_origins if origin})
    logger.info("CORS origins: %s", allow_origins)
    return allow_origins


cors_origins = _build_cors_origins()

cors_kwargs: dict[str, object] = {
    "allow_origins": cors_origins,
    "allow_credentials": True,
    "allow_methods": ["*"],
    "allow_headers": ["Authorization", "Content-Type", "X-Access-Token"],
}

if any("vercel.app" in origin for origin in cors_origins):
    cors_kwargs["allow_origin_regex"] = r"^https://.*\.vercel\.app$"

app.add_middleware(CORSMiddleware, **cors_kwargs)

app.include_router(api_router, prefix="/api/v2")


@app.on_event("startup")
def startup():
    logger.info("Checking database tables...")
    Base.metadata.create_all(bind=db_session.engine)
    logger.info("Database tables are ready.")


@app.get("/")
def read_root():
    return {"message": "Welcome to the Farsi Practice API!"}
