"""Promotions API."""
import logging
import uuid
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from apexcare.schemas.promotion import CartItem, EvaluationResult
from apexcare.services.promotion_display import calculate_days_left, describe_discount, sort_for_display
from apexcare.services.promotion_service import PromotionService, today

logger = logging.getLogger(__name__)

router = APIRouter()


def get_promotion_service() -> PromotionService:
    """Dependency для получения сервиса промоакций."""
    return PromotionService()


class ActivePromotionResponse(BaseModel):
    """Акция для витрины."""

    id: str
    name: str
    description: str | None
    discount_label: str
    start_date: str | None
    end_date: str | None
    days_left: int | None
    minimum_quantity: int | None
    uses_per_client: int | None


class EvaluateRequest(BaseModel):
    """Запрос на расчёт скидки для корзины."""

    client_id: uuid.UUID | None = None
    items: List[CartItem]
    subtotal: Decimal | None = None  # Если не передан - сумма позиций


class OpportunityResponse(BaseModel):
    promotion_id: str
    promotion_name: str
    message: str
    kind: str  # "quantity" или "value"
    missing_quantity: int | None = None
    missing_value: float | None = None
    benefit_description: str


class EvaluateResponse(BaseModel):
    """Ответ с лучшей скидкой и подсказками."""

    discount: float
    promotion_id: str | None = None
    promotion_name: str | None = None
    message: str | None = None
    opportunities: List[OpportunityResponse]


class UsageRequest(BaseModel):
    """Запрос на регистрацию использования акции."""

    promotion_id: uuid.UUID | None = None
    order_id: uuid.UUID | None = None
    discount_amount: Decimal | None = None
    client_id: uuid.UUID | None = None


class UsageResponse(BaseModel):
    inserted: bool
    already_exists: bool | None = None


class AppointmentUsageRequest(BaseModel):
    """Запись (agendamento) в том виде, в каком она хранится."""

    appointment: dict = Field(default_factory=dict)
    client_id: uuid.UUID | None = None


class AppointmentUsageResponse(BaseModel):
    registered: bool
    promotion_id: str | None = None
    discount_amount: float | None = None
    usage: UsageResponse | None = None


def _to_evaluate_response(result: EvaluationResult) -> EvaluateResponse:
    return EvaluateResponse(
        discount=float(result.discount),
        promotion_id=result.promotion.id if result.promotion else None,
        promotion_name=result.promotion.name if result.promotion else None,
        message=result.message,
        opportunities=[
            OpportunityResponse(
                promotion_id=op.promotion_id,
                promotion_name=op.promotion_name,
                message=op.message,
                kind=op.kind,
                missing_quantity=op.missing_quantity,
                missing_value=float(op.missing_value) if op.missing_value is not None else None,
                benefit_description=op.benefit_description,
            )
            for op in result.opportunities
        ],
    )


@router.get("/active", response_model=List[ActivePromotionResponse])
async def get_active_promotions(
    service: PromotionService = Depends(get_promotion_service),
):
    """Получить активные акции для витрины, ближайшие к окончанию - первыми."""
    as_of = today()
    try:
        promotions = await service.get_active_promotions(as_of)
    except SQLAlchemyError as e:
        logger.error(f"Failed to load active promotions: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Não foi possível carregar as promoções agora. Tente novamente em instantes.",
        )

    return [
        ActivePromotionResponse(
            id=promotion.id,
            name=promotion.name,
            description=promotion.description,
            discount_label=describe_discount(promotion),
            start_date=promotion.start_date.isoformat() if promotion.start_date else None,
            end_date=promotion.end_date.isoformat() if promotion.end_date else None,
            days_left=calculate_days_left(promotion.end_date, as_of),
            minimum_quantity=promotion.minimum_quantity,
            uses_per_client=promotion.uses_per_client,
        )
        for promotion in sort_for_display(promotions)
    ]


@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate_cart(
    request: EvaluateRequest,
    service: PromotionService = Depends(get_promotion_service),
):
    """
    Рассчитать лучшую скидку для корзины.

    Возвращает размер скидки, акцию, которая её даёт, и подсказки по акциям,
    до которых корзине не хватает совсем немного.
    """
    subtotal = request.subtotal
    if subtotal is None:
        subtotal = sum((item.total for item in request.items), Decimal("0"))

    try:
        result = await service.evaluate_cart(
            items=request.items,
            subtotal=subtotal,
            client_id=request.client_id,
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to evaluate promotions: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Erro ao calcular promoções: {str(e)}",
        )

    return _to_evaluate_response(result)


@router.post("/usage", response_model=UsageResponse)
async def register_usage(
    request: UsageRequest,
    service: PromotionService = Depends(get_promotion_service),
):
    """Зарегистрировать использование акции после подтверждения записи."""
    try:
        result = await service.register_usage(
            promotion_id=request.promotion_id,
            order_id=request.order_id,
            discount_amount=request.discount_amount,
            client_id=request.client_id,
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to register promotion usage: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Erro ao registrar uso da promoção: {str(e)}",
        )

    return UsageResponse(inserted=result.inserted, already_exists=result.already_exists)


@router.post("/usage/appointment", response_model=AppointmentUsageResponse)
async def register_usage_for_appointment(
    request: AppointmentUsageRequest,
    service: PromotionService = Depends(get_promotion_service),
):
    """Зарегистрировать акцию по строке скидки в записи."""
    try:
        result = await service.register_usage_for_appointment(
            request.appointment,
            client_id=request.client_id,
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to register promotion usage: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Erro ao registrar uso da promoção: {str(e)}",
        )

    return AppointmentUsageResponse(
        registered=result.registered,
        promotion_id=result.promotion.promotion_id if result.promotion else None,
        discount_amount=float(result.promotion.discount_amount) if result.promotion else None,
        usage=(
            UsageResponse(inserted=result.usage.inserted, already_exists=result.usage.already_exists)
            if result.usage
            else None
        ),
    )
