"""Главный файл приложения."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from apexcare.config import settings
from apexcare.api.v1 import router as api_v1_router
from apexcare.core.cache import cache_service

# Настройка логирования
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения."""
    # Startup
    await cache_service.connect()
    logger.info(f"Apex Care API started (environment: {settings.environment})")

    yield

    # Shutdown
    await cache_service.disconnect()


app = FastAPI(
    title="Apex Care API",
    description="Backend API для промоакций Apex Care",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS - в development режиме разрешаем все origins
if settings.is_development:
    cors_origins = ["*"]
    # Нельзя использовать allow_credentials=True с allow_origins=["*"]
    allow_creds = False
else:
    cors_origins = list(set(settings.cors_origins))
    allow_creds = True

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_creds,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Подключаем роутеры
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Корневой endpoint."""
    return {
        "message": "Apex Care API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}
