from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskvision.core.config import settings
from taskvision.core.database import create_tables
from taskvision.core.logging import setup_logging
from taskvision.api.v1.push import router as push_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    # Tabellen beim Start anlegen (SQLite / lokale Entwicklung)
    await create_tables()
    yield


app = FastAPI(
    title="Task Vision API",
    description="Aufgabenverwaltung – Web-Push-Benachrichtigungen",
    version="1.0.0",
    lifespan=lifespan,
    # Swagger UI nur in Entwicklung – in Produktion DEBUG=false setzen
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

API_PREFIX = "/api/v1"

app.include_router(push_router, prefix=API_PREFIX)


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "Task Vision API", "version": "1.0.0"}
