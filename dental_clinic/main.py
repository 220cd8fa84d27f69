# dental_clinic/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dental_clinic.core.config import settings
from dental_clinic.api.router import api_router
from dental_clinic.api.exception_handlers import register_exception_handlers


def create_app() -> FastAPI:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title=settings.PROJECT_NAME,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/")
    def root():
        return {"message": f"{settings.PROJECT_NAME} running"}

    return app


app = create_app()
