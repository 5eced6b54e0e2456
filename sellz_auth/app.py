# sellz_auth/app.py
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import Settings, configure_logging, get_settings
from .database import init_db
from .errors import register_exception_handlers
from .routers import api_router

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Sellz Account Service")

    # CORS setup
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(api_router)

    os.makedirs(settings.MEDIA_DIR, exist_ok=True)
    app.mount(settings.MEDIA_URL, StaticFiles(directory=settings.MEDIA_DIR), name="media")

    @app.get("/health")
    def health_check():
        return {"status": "ok", "message": "Sellz account service is running"}

    # --- CREATE TABLES ON STARTUP ---
    @app.on_event("startup")
    def startup_event():
        init_db()
        logger.info("Database tables checked/created.")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("sellz_auth.app:app", host="127.0.0.1", port=8000, reload=True)
