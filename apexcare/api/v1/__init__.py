"""API v1 роутеры."""
from fastapi import APIRouter

from apexcare.api.v1 import promotions

router = APIRouter()

# Подключаем все роутеры
router.include_router(promotions.router, prefix="/promotions", tags=["promotions"])
