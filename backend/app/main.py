# Pipeline automations backend entrypoint: CRM pipelines with column automations.

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from backend.app.core.logging import configure_logging
from backend.app.core.settings import get_settings
from backend.app.api import automations
from backend.app.api import cards
from backend.app.api import pipelines
from backend.app.db.base import Base
from backend.app.db.session import engine
from backend.app.services.engine_services import shutdown_engine_services

settings = get_settings()
app = FastAPI(title=settings.app_name, version=settings.api_version)

origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(pipelines.router)
app.include_router(cards.router)
app.include_router(automations.router)


@app.get("/")
def read_root():
    return {"app": settings.app_name, "status": "ok"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.on_event("startup")
def startup():
    configure_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)


@app.on_event("shutdown")
def shutdown():
    shutdown_engine_services()
