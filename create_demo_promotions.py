"""Скрипт для создания демо-услуг и промоакций."""
import asyncio
import logging
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select

from apexcare.core.cache import cache_service
from apexcare.database import AsyncSessionLocal
from apexcare.models import Service, Promotion

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


SERVICES = [
    {"name": "Sofá 2 lugares", "price": Decimal("180.00")},
    {"name": "Sofá 3 lugares", "price": Decimal("240.00")},
    {"name": "Colchão casal", "price": Decimal("200.00")},
    {"name": "Cadeira de jantar", "price": Decimal("35.00")},
    {"name": "Poltrona", "price": Decimal("120.00")},
]


async def create_demo_promotions():
    """Создать демо-услуги и промоакции, если их ещё нет."""
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(Service))
        services = {service.name: service for service in result.scalars().all()}

        for data in SERVICES:
            if data["name"] not in services:
                service = Service(**data)
                db.add(service)
                services[data["name"]] = service
                logger.info(f"✅ Создана услуга: {data['name']}")
        await db.flush()

        result = await db.execute(select(Promotion.name))
        existing = set(result.scalars().all())

        today = date.today()
        chair_id = services["Cadeira de jantar"].id
        sofa_ids = [services["Sofá 2 lugares"].id, services["Sofá 3 lugares"].id]

        promotions = [
            Promotion(
                name="Semana do Sofá",
                description="10% de desconto na limpeza de sofás.",
                discount_type="percentual",
                discount_value=Decimal("10"),
                eligible_service_ids=sofa_ids,
                start_date=today,
                end_date=today + timedelta(days=14),
            ),
            Promotion(
                name="Leve 4 cadeiras, pague 3",
                description="A cadeira mais barata sai de graça.",
                discount_type="combo",
                eligible_service_ids=[chair_id],
                combo_config={"kind": "buy_x_get_y", "buy": 4, "get": 1},
                end_date=today + timedelta(days=30),
            ),
            Promotion(
                name="Quanto mais, melhor",
                discount_type="combo",
                combo_config={
                    "kind": "percentual_progressivo",
                    "tiers": [
                        {"min": 3, "max": 4, "percent_off": 5},
                        {"min": 5, "max": 99, "percent_off": 10},
                    ],
                },
            ),
            Promotion(
                name="Primeira limpeza",
                description="R$ 30,00 de desconto na primeira compra acima de R$ 200,00.",
                discount_type="combo",
                discount_value=Decimal("30"),
                combo_config={"kind": "primeira_compra", "minimum_value": 200},
                uses_per_client=1,
            ),
        ]

        for promotion in promotions:
            if promotion.name in existing:
                continue
            db.add(promotion)
            logger.info(f"✅ Создана промоакция: {promotion.name}")

        await db.commit()

    # Сбрасываем кэш, чтобы новые акции были видны сразу
    await cache_service.delete_pattern("promotions:active:*")
    await cache_service.disconnect()


if __name__ == "__main__":
    asyncio.run(create_demo_promotions())
