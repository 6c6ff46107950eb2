"""Хранилище промоакций и каталог услуг."""
import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from apexcare.models.promotion import Promotion, PromotionUsage
from apexcare.models.service import Service
from apexcare.schemas.promotion import PromotionSnapshot, ServiceInfo

logger = logging.getLogger(__name__)


def _active_on(as_of: date):
    """Условие: акция включена и её период (включительно) покрывает дату."""
    return and_(
        Promotion.is_active == True,  # noqa: E712
        or_(Promotion.start_date.is_(None), Promotion.start_date <= as_of),
        or_(Promotion.end_date.is_(None), Promotion.end_date >= as_of),
    )


def to_snapshot(promotion: Promotion) -> PromotionSnapshot:
    """Преобразовать строку БД в снимок для движка."""
    return PromotionSnapshot.model_validate(
        {
            "id": str(promotion.id),
            "name": promotion.name,
            "description": promotion.description,
            "active": promotion.is_active,
            "start_date": promotion.start_date,
            "end_date": promotion.end_date,
            "discount_type": promotion.discount_type,
            "discount_value": promotion.discount_value,
            "eligible_service_ids": promotion.eligible_service_ids or [],
            "minimum_quantity": promotion.minimum_quantity,
            "minimum_value": promotion.minimum_value,
            "uses_per_client": promotion.uses_per_client,
            "combo_config": promotion.combo_config,
        }
    )


class PromotionStore:
    """Чтение активных акций и учёт их использования."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_active_promotions(self, as_of: date) -> list[PromotionSnapshot]:
        """
        Получить акции, действующие на дату.

        Строки с некорректными данными пропускаются с предупреждением:
        битая акция не должна ломать расчёт для остальных.
        """
        stmt = (
            select(Promotion)
            .where(_active_on(as_of))
            .order_by(Promotion.created_at, Promotion.id)
        )
        result = await self.db.execute(stmt)

        snapshots = []
        for promotion in result.scalars().all():
            try:
                snapshots.append(to_snapshot(promotion))
            except ValidationError as e:
                logger.warning(f"Skipping malformed promotion {promotion.id}: {e}")

        logger.info(f"Active promotions loaded for {as_of}: {len(snapshots)}")
        return snapshots

    async def count_usage(self, client_id: UUID, promotion_ids: list[str | UUID]) -> dict[str, int]:
        """Сколько раз клиент использовал каждую из акций."""
        if not promotion_ids:
            return {}

        stmt = (
            select(PromotionUsage.promotion_id, func.count(PromotionUsage.id))
            .where(
                and_(
                    PromotionUsage.client_id == client_id,
                    PromotionUsage.promotion_id.in_([UUID(str(pid)) for pid in promotion_ids]),
                )
            )
            .group_by(PromotionUsage.promotion_id)
        )
        result = await self.db.execute(stmt)
        return {str(promotion_id): count for promotion_id, count in result.all()}

    async def usage_exists(self, promotion_id: UUID, order_id: UUID, client_id: UUID) -> bool:
        """Есть ли уже запись об использовании для тройки (акция, заказ, клиент)."""
        stmt = (
            select(PromotionUsage.id)
            .where(
                PromotionUsage.promotion_id == promotion_id,
                PromotionUsage.order_id == order_id,
                PromotionUsage.client_id == client_id,
            )
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def insert_usage(
        self,
        promotion_id: UUID,
        order_id: UUID,
        client_id: UUID,
        discount_amount: Decimal,
    ) -> PromotionUsage:
        """Создать запись об использовании акции. Ошибки БД пробрасываются."""
        usage = PromotionUsage(
            promotion_id=promotion_id,
            order_id=order_id,
            client_id=client_id,
            discount_amount=discount_amount,
        )
        self.db.add(usage)
        await self.db.flush()
        return usage


class ServiceCatalog:
    """Каталог услуг: названия для текстов подсказок."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_service_names(self, service_ids: list[int]) -> dict[int, str]:
        """Получить названия услуг по id. Неизвестные id просто отсутствуют в ответе."""
        if not service_ids:
            return {}

        stmt = select(Service.id, Service.name).where(Service.id.in_(set(service_ids)))
        result = await self.db.execute(stmt)
        return {service_id: name for service_id, name in result.all()}

    async def list_services(self, service_ids: list[int]) -> list[ServiceInfo]:
        names = await self.resolve_service_names(service_ids)
        return [ServiceInfo(id=service_id, name=name) for service_id, name in names.items()]
