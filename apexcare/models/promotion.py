"""Модели промоакций и их использования."""
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String,
    Numeric,
    Boolean,
    ForeignKey,
    Integer,
    Date,
    Text,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from apexcare.database import Base


class Promotion(Base):
    """Модель промоакции."""

    __tablename__ = "promotions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Тип скидки: 'percentual', 'valor_fixo' или 'combo'
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False)
    discount_value: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    # Список id услуг, на которые действует акция. Пустой - вся корзина
    eligible_service_ids: Mapped[list | None] = mapped_column(JSON, nullable=True)
    minimum_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    minimum_value: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    # Лимит использований на одного клиента. None = без ограничений
    uses_per_client: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Настройки комбо: buy_x_get_y, прогрессивные faixas, primeira_compra
    combo_config: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Даты действия (включительно)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    usages: Mapped[list["PromotionUsage"]] = relationship("PromotionUsage", back_populates="promotion")


class PromotionUsage(Base):
    """Модель использования промоакции клиентом."""

    __tablename__ = "promotion_usages"
    __table_args__ = (
        UniqueConstraint("promotion_id", "order_id", "client_id", name="uq_promotion_usages_promotion_order_client"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    promotion_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("promotions.id"), nullable=False, index=True)
    client_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    # Id записи (agendamento), к которой применена скидка
    order_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)

    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)

    # Relationships
    promotion: Mapped["Promotion"] = relationship("Promotion", back_populates="usages")
