"""Схемы промоакций, корзины и результата расчёта скидки."""
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class DiscountType(str, Enum):
    PERCENTAGE = "percentual"
    FIXED_AMOUNT = "valor_fixo"
    COMBO = "combo"


class ComboKind(str, Enum):
    BUY_X_GET_Y = "buy_x_get_y"
    PROGRESSIVE = "percentual_progressivo"
    FIRST_PURCHASE = "primeira_compra"


class ComboTier(BaseModel):
    """Прогрессивная ступень: процент скидки для количества в [min, max]."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    min: int
    max: int
    percent_off: Decimal = Field(validation_alias=AliasChoices("percent_off", "desconto", "percentual"))


class ComboConfig(BaseModel):
    """
    Настройки комбо-акции.

    Все поля необязательны: неполная конфигурация даёт нулевую скидку,
    а не ошибку. Принимает и старые ключи из Supabase (tipo, compre, faixas...).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    kind: str | None = Field(default=None, validation_alias=AliasChoices("kind", "tipo"))
    buy: int | None = Field(
        default=None,
        validation_alias=AliasChoices("buy", "compre", "comprar", "quantidade_compra", "buyQuantity"),
    )
    get: int | None = Field(
        default=None,
        validation_alias=AliasChoices("get", "ganhe", "ganhar", "quantidade_ganha", "getQuantity"),
    )
    tiers: list[ComboTier] | None = Field(default=None, validation_alias=AliasChoices("tiers", "faixas"))
    minimum_value: Decimal | None = Field(
        default=None,
        validation_alias=AliasChoices("minimum_value", "valor_minimo"),
    )
    description: str | None = Field(default=None, validation_alias=AliasChoices("description", "descricao"))


class PromotionSnapshot(BaseModel):
    """Неизменяемый снимок активной промоакции, передаваемый в движок."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str | None = None
    active: bool = True
    start_date: date | None = None
    end_date: date | None = None
    discount_type: DiscountType
    discount_value: Decimal | None = None
    eligible_service_ids: list[int] = Field(default_factory=list)
    minimum_quantity: int | None = None
    minimum_value: Decimal | None = None
    uses_per_client: int | None = None
    combo_config: ComboConfig | None = None


class CartItem(BaseModel):
    """Позиция корзины: услуга, цена за единицу и количество."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    service_id: int = Field(validation_alias=AliasChoices("service_id", "id"))
    unit_price: Decimal = Field(ge=0, validation_alias=AliasChoices("unit_price", "price"))
    quantity: int = Field(default=1, ge=1, validation_alias=AliasChoices("quantity", "qty"))

    @property
    def total(self) -> Decimal:
        return self.unit_price * self.quantity


class ServiceInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str


class Opportunity(BaseModel):
    """Акция, до которой корзине не хватает совсем немного."""

    promotion_id: str
    promotion_name: str
    message: str
    kind: Literal["quantity", "value"]
    missing_quantity: int | None = None
    missing_value: Decimal | None = None
    benefit_description: str


class EvaluationResult(BaseModel):
    """Результат расчёта лучшей скидки для корзины."""

    discount: Decimal = Decimal("0")
    promotion: PromotionSnapshot | None = None
    message: str | None = None
    opportunities: list[Opportunity] = Field(default_factory=list)


class UsageRegistration(BaseModel):
    """Результат регистрации использования промоакции."""

    inserted: bool
    already_exists: bool | None = None


class AppointmentPromotion(BaseModel):
    """Скидка по акции, найденная в записи (agendamento)."""

    promotion_id: str
    discount_amount: Decimal
    promotion_name: str | None = None


class AppointmentUsageResult(BaseModel):
    """Результат регистрации акции по записи."""

    registered: bool
    promotion: AppointmentPromotion | None = None
    usage: UsageRegistration | None = None
