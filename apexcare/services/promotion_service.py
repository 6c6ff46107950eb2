"""Сервис промоакций: чтение из хранилища, расчёт скидки, учёт использования."""
import asyncio
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from uuid import UUID
from zoneinfo import ZoneInfo

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from apexcare.config import settings
from apexcare.core.cache import CacheService, cache_service, get_cache_key_active_promotions
from apexcare.database import AsyncSessionLocal
from apexcare.schemas.promotion import (
    AppointmentUsageResult,
    CartItem,
    EvaluationResult,
    PromotionSnapshot,
    ServiceInfo,
    UsageRegistration,
)
from apexcare.services.appointment_promotions import extract_promotion_from_appointment
from apexcare.services.promotion_engine import evaluate
from apexcare.services.promotion_store import PromotionStore, ServiceCatalog

logger = logging.getLogger(__name__)


def today() -> date:
    """Текущая дата в часовом поясе бизнеса."""
    return datetime.now(ZoneInfo(settings.timezone)).date()


def _as_uuid(value) -> UUID | None:
    """UUID из строки; None, если значение не является UUID."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class PromotionService:
    """
    Сервис промоакций.

    Каждое чтение открывает свою сессию: счётчики использования клиента
    и названия услуг читаются параллельно.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
        cache: CacheService | None = cache_service,
        cache_ttl: int | None = None,
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.cache_ttl = settings.promotions_cache_ttl if cache_ttl is None else cache_ttl

    async def get_active_promotions(self, as_of: date) -> list[PromotionSnapshot]:
        """Получить активные акции на дату (через кэш, если он настроен)."""
        use_cache = self.cache is not None and self.cache_ttl > 0
        cache_key = get_cache_key_active_promotions(as_of)

        if use_cache:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                try:
                    return [PromotionSnapshot.model_validate(item) for item in cached]
                except ValidationError as e:
                    logger.warning(f"Ignoring stale promotions cache {cache_key}: {e}")

        async with self.session_factory() as db:
            promotions = await PromotionStore(db).list_active_promotions(as_of)

        if use_cache:
            await self.cache.set(
                cache_key,
                [promotion.model_dump(mode="json") for promotion in promotions],
                ttl=self.cache_ttl,
            )

        return promotions

    async def get_usage_counts(self, client_id: UUID, promotion_ids: list[str]) -> dict[str, int]:
        """Счётчики использования клиентом указанных акций. Всегда из БД, без кэша."""
        if not promotion_ids:
            return {}
        async with self.session_factory() as db:
            return await PromotionStore(db).count_usage(client_id, promotion_ids)

    async def get_catalog(self, service_ids: list[int]) -> list[ServiceInfo]:
        if not service_ids:
            return []
        async with self.session_factory() as db:
            return await ServiceCatalog(db).list_services(service_ids)

    async def evaluate_cart(
        self,
        items: list[CartItem],
        subtotal: Decimal,
        client_id: UUID | None = None,
        as_of: date | None = None,
    ) -> EvaluationResult:
        """
        Рассчитать лучшую скидку для корзины клиента.

        Счётчики использования читаются только для акций с лимитом на клиента,
        параллельно с названиями услуг для подсказок.
        Ошибка чтения из БД пробрасывается: расчёт на неполных данных мог бы
        как лишить клиента скидки, так и выдать уже исчерпанную.
        Для анонимного клиента лимиты использования не проверяются.
        """
        as_of = as_of or today()
        promotions = await self.get_active_promotions(as_of)

        capped_ids = []
        if client_id is not None:
            capped_ids = [promotion.id for promotion in promotions if promotion.uses_per_client]
        service_ids = sorted({sid for promotion in promotions for sid in promotion.eligible_service_ids})

        usage_counts, catalog = await asyncio.gather(
            self.get_usage_counts(client_id, capped_ids),
            self.get_catalog(service_ids),
        )

        return evaluate(items, subtotal, promotions, usage_counts, catalog)

    async def register_usage(
        self,
        promotion_id,
        order_id,
        discount_amount,
        client_id,
    ) -> UsageRegistration:
        """
        Зарегистрировать использование акции после подтверждения записи.

        Повторный вызов для той же тройки (акция, заказ, клиент) ничего не пишет.
        Проверка и вставка не атомарны: при гонке двух вызовов окончательно
        решает уникальный индекс в БД, и IntegrityError пробрасывается.
        """
        if not client_id or not promotion_id or not order_id or discount_amount is None:
            return UsageRegistration(inserted=False)

        try:
            amount = abs(Decimal(str(discount_amount)))
        except InvalidOperation:
            return UsageRegistration(inserted=False)
        if not amount.is_finite() or amount <= 0:
            return UsageRegistration(inserted=False)

        promotion_uuid = _as_uuid(promotion_id)
        order_uuid = _as_uuid(order_id)
        client_uuid = _as_uuid(client_id)
        if promotion_uuid is None or order_uuid is None or client_uuid is None:
            logger.warning(
                f"Invalid promotion usage ids: promotion_id={promotion_id!r}, "
                f"order_id={order_id!r}, client_id={client_id!r}"
            )
            return UsageRegistration(inserted=False)

        async with self.session_factory() as db:
            store = PromotionStore(db)
            if await store.usage_exists(promotion_uuid, order_uuid, client_uuid):
                logger.info(
                    f"Promotion usage already registered: promotion_id={promotion_uuid}, "
                    f"order_id={order_uuid}, client_id={client_uuid}"
                )
                return UsageRegistration(inserted=False, already_exists=True)

            await store.insert_usage(promotion_uuid, order_uuid, client_uuid, amount)
            await db.commit()

        logger.info(
            f"Promotion usage registered: promotion_id={promotion_uuid}, "
            f"order_id={order_uuid}, client_id={client_uuid}, discount={amount}"
        )
        return UsageRegistration(inserted=True)

    async def register_usage_for_appointment(
        self,
        appointment: dict,
        client_id=None,
    ) -> AppointmentUsageResult:
        """Зарегистрировать акцию, если в записи есть строка скидки по ней."""
        promotion = extract_promotion_from_appointment(appointment)
        if promotion is None or not appointment.get("id"):
            return AppointmentUsageResult(registered=False)

        usage = await self.register_usage(
            promotion_id=promotion.promotion_id,
            order_id=appointment["id"],
            discount_amount=promotion.discount_amount,
            client_id=client_id or appointment.get("cliente_id"),
        )
        return AppointmentUsageResult(registered=usage.inserted, promotion=promotion, usage=usage)
