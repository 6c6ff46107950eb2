"""Модели базы данных."""
from apexcare.models.service import Service
from apexcare.models.promotion import Promotion, PromotionUsage

__all__ = [
    "Service",
    "Promotion",
    "PromotionUsage",
]
