"""
Движок промоакций.

Чистые функции без обращений к БД: по корзине и снимку активных акций
находит лучшую скидку и собирает подсказки "добавьте ещё N услуг", чтобы
клиент разблокировал акцию, до которой ему не хватает совсем немного.
"""
import math
from decimal import Decimal
from typing import Iterable, Mapping, NamedTuple

from apexcare.schemas.promotion import (
    CartItem,
    ComboKind,
    ComboTier,
    DiscountType,
    EvaluationResult,
    Opportunity,
    PromotionSnapshot,
    ServiceInfo,
)
from apexcare.services.formatting import format_currency, format_number, join_service_names

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Подсказку по сумме показываем, если не хватает не больше max(30, 25% от минимума)
VALUE_GAP_FLOOR = Decimal("30")
VALUE_GAP_RATIO = Decimal("0.25")


class PromotionGap(NamedTuple):
    """Сколько не хватает корзине до акции."""

    kind: str  # "quantity" или "value"
    missing: int | Decimal


# ---------------------------------------------------------------------------
# Элегибельность
# ---------------------------------------------------------------------------

def get_eligible_items(cart: Iterable[CartItem], promotion: PromotionSnapshot) -> list[CartItem]:
    """Позиции корзины, на которые действует акция (все, если список услуг пуст)."""
    if not promotion.eligible_service_ids:
        return list(cart)
    service_ids = set(promotion.eligible_service_ids)
    return [item for item in cart if item.service_id in service_ids]


def get_eligible_quantity(cart: Iterable[CartItem], promotion: PromotionSnapshot) -> int:
    return sum(item.quantity for item in get_eligible_items(cart, promotion))


def get_eligible_subtotal(cart: Iterable[CartItem], promotion: PromotionSnapshot) -> Decimal:
    return sum((item.total for item in get_eligible_items(cart, promotion)), ZERO)


def is_eligible(cart: list[CartItem], promotion: PromotionSnapshot) -> bool:
    """
    Проверить, подходит ли корзина под акцию.

    Без ограничения по услугам подходит любая корзина. Иначе в корзине
    должно быть не меньше minimum_quantity единиц подходящих услуг.
    """
    if not promotion.eligible_service_ids:
        return True
    return get_eligible_quantity(cart, promotion) >= (promotion.minimum_quantity or 1)


def is_usage_capped(promotion: PromotionSnapshot, prior_usage_counts: Mapping[str, int]) -> bool:
    """Клиент уже использовал акцию максимальное количество раз."""
    if not promotion.uses_per_client:
        return False
    return prior_usage_counts.get(promotion.id, 0) >= promotion.uses_per_client


# ---------------------------------------------------------------------------
# Расчёт скидки
# ---------------------------------------------------------------------------

def calculate_discount(cart: list[CartItem], subtotal: Decimal, promotion: PromotionSnapshot) -> Decimal:
    """
    Рассчитать скидку по акции для корзины.

    Скидка не ограничивается суммой корзины: итог ниже нуля - забота
    вызывающего кода.
    """
    value = promotion.discount_value
    combo = promotion.combo_config

    if promotion.discount_type == DiscountType.PERCENTAGE and value:
        base = subtotal
        if promotion.eligible_service_ids:
            base = get_eligible_subtotal(cart, promotion)
        return base * value / HUNDRED

    if promotion.discount_type == DiscountType.FIXED_AMOUNT and value:
        if combo and combo.minimum_value and subtotal < combo.minimum_value:
            return ZERO
        return value

    if promotion.discount_type == DiscountType.COMBO and combo:
        return calculate_combo_discount(cart, subtotal, promotion)

    return ZERO


def calculate_combo_discount(cart: list[CartItem], subtotal: Decimal, promotion: PromotionSnapshot) -> Decimal:
    """Скидка для комбо: leve X pague Y, прогрессивные faixas или primeira compra."""
    combo = promotion.combo_config

    if combo.kind == ComboKind.BUY_X_GET_Y:
        return _buy_x_get_y_discount(cart, promotion)

    if combo.tiers:
        return _progressive_discount(cart, subtotal, combo.tiers)

    if combo.kind == ComboKind.FIRST_PURCHASE:
        # Что это действительно первая покупка, проверяет бэкенд до расчёта
        if combo.minimum_value is not None and promotion.discount_value and subtotal >= combo.minimum_value:
            return promotion.discount_value

    return ZERO


def _buy_x_get_y_discount(cart: list[CartItem], promotion: PromotionSnapshot) -> Decimal:
    combo = promotion.combo_config
    if combo.buy is None or combo.get is None:
        return ZERO

    items = get_eligible_items(cart, promotion)
    if sum(item.quantity for item in items) < combo.buy:
        return ZERO

    # Бесплатными становятся самые дешёвые единицы, а не позиции целиком
    discount = ZERO
    remaining = combo.get
    for item in sorted(items, key=lambda i: i.unit_price):
        if remaining <= 0:
            break
        units = min(item.quantity, remaining)
        discount += item.unit_price * units
        remaining -= units
    return discount


def _progressive_discount(cart: list[CartItem], subtotal: Decimal, tiers: list[ComboTier]) -> Decimal:
    # Количество считается по всей корзине, процент - от полного subtotal
    total_quantity = sum(item.quantity for item in cart)
    for tier in tiers:
        if tier.min <= total_quantity <= tier.max:
            return subtotal * tier.percent_off / HUNDRED
    return ZERO


# ---------------------------------------------------------------------------
# Подсказки "осталось чуть-чуть"
# ---------------------------------------------------------------------------

def is_quantity_gap_near(missing: int, required: int) -> bool:
    """Не хватает не больше min(3, max(1, ceil(40% от требуемого))) единиц."""
    threshold = min(3, max(1, math.ceil(required * 0.4)))
    return 0 < missing <= threshold


def is_value_gap_near(missing: Decimal, required: Decimal) -> bool:
    threshold = max(VALUE_GAP_FLOOR, required * VALUE_GAP_RATIO)
    return ZERO < missing <= threshold


def calculate_promotion_gap(
    cart: list[CartItem],
    subtotal: Decimal,
    promotion: PromotionSnapshot,
) -> PromotionGap | None:
    """
    Найти, чего не хватает корзине до акции.

    Проверки идут по приоритету: leve X pague Y, прогрессивные faixas,
    минимальная сумма, минимальное количество. Возвращается первый разрыв,
    который достаточно мал, чтобы его стоило показать клиенту.
    """
    combo = promotion.combo_config
    selected_quantity = get_eligible_quantity(cart, promotion)

    if combo and combo.kind == ComboKind.BUY_X_GET_Y and combo.buy:
        missing = combo.buy - selected_quantity
        if is_quantity_gap_near(missing, combo.buy):
            return PromotionGap("quantity", missing)

    if combo and combo.tiers:
        total_quantity = sum(item.quantity for item in cart)
        next_tier = next(
            (tier for tier in sorted(combo.tiers, key=lambda t: t.min) if tier.min > total_quantity),
            None,
        )
        if next_tier is not None:
            missing = next_tier.min - total_quantity
            if is_quantity_gap_near(missing, next_tier.min):
                return PromotionGap("quantity", missing)

    minimum_value = promotion.minimum_value
    if minimum_value is None and combo:
        minimum_value = combo.minimum_value
    if minimum_value is not None:
        compared = subtotal
        if promotion.eligible_service_ids:
            compared = get_eligible_subtotal(cart, promotion)
        missing = minimum_value - compared
        if is_value_gap_near(missing, minimum_value):
            return PromotionGap("value", missing)

    if promotion.minimum_quantity and selected_quantity < promotion.minimum_quantity:
        missing = promotion.minimum_quantity - selected_quantity
        if is_quantity_gap_near(missing, promotion.minimum_quantity):
            return PromotionGap("quantity", missing)

    return None


def describe_benefit(promotion: PromotionSnapshot) -> str:
    """Короткое описание выгоды: "10% de desconto", "1 item grátis"..."""
    value = promotion.discount_value
    combo = promotion.combo_config

    if promotion.discount_type == DiscountType.PERCENTAGE and value:
        return f"{format_number(value)}% de desconto"

    if promotion.discount_type == DiscountType.FIXED_AMOUNT and value:
        return f"{format_currency(value)} de desconto"

    if promotion.discount_type == DiscountType.COMBO and combo:
        if combo.kind == ComboKind.BUY_X_GET_Y and combo.get:
            return f"{combo.get} item grátis" if combo.get == 1 else f"{combo.get} itens grátis"
        if combo.tiers:
            best = max(tier.percent_off for tier in combo.tiers)
            return f"{format_number(best)}% de desconto"
        if combo.kind == ComboKind.FIRST_PURCHASE and value:
            return f"{format_currency(value)} de desconto"

    return "um desconto especial"


def build_opportunity(
    promotion: PromotionSnapshot,
    gap: PromotionGap,
    service_names: Mapping[int, str],
) -> Opportunity:
    """Собрать подсказку для клиента по найденному разрыву."""
    benefit = describe_benefit(promotion)
    names = [service_names[sid] for sid in promotion.eligible_service_ids if sid in service_names]
    label = join_service_names(names)

    if gap.kind == "quantity":
        target = label or "serviço(s)"
        message = f'Adicione +{gap.missing} {target} para ganhar {benefit} na promoção "{promotion.name}"'
        return Opportunity(
            promotion_id=promotion.id,
            promotion_name=promotion.name,
            message=message,
            kind="quantity",
            missing_quantity=gap.missing,
            benefit_description=benefit,
        )

    scope = f" em {label}" if label else ""
    message = (
        f"Faltam {format_currency(gap.missing)}{scope} para ganhar {benefit} "
        f'na promoção "{promotion.name}"'
    )
    return Opportunity(
        promotion_id=promotion.id,
        promotion_name=promotion.name,
        message=message,
        kind="value",
        missing_value=gap.missing,
        benefit_description=benefit,
    )


def _opportunity_distance(opportunity: Opportunity):
    if opportunity.missing_quantity is not None:
        return opportunity.missing_quantity
    if opportunity.missing_value is not None:
        return opportunity.missing_value
    return math.inf


def build_message(promotion: PromotionSnapshot, discount: Decimal) -> str:
    return f'🎉 Promoção "{promotion.name}" aplicada! Você economizou {format_currency(discount)}'


# ---------------------------------------------------------------------------
# Точка входа
# ---------------------------------------------------------------------------

def evaluate(
    cart: list[CartItem],
    subtotal: Decimal,
    active_promotions: list[PromotionSnapshot],
    prior_usage_counts: Mapping[str, int] | None = None,
    catalog: Iterable[ServiceInfo] = (),
) -> EvaluationResult:
    """
    Рассчитать лучшую скидку для корзины.

    Args:
        cart: Позиции корзины
        subtotal: Сумма корзины, посчитанная вызывающим кодом
        active_promotions: Акции, уже отфильтрованные по дате и флагу активности
        prior_usage_counts: Сколько раз клиент использовал акции с лимитом {promotion_id: count}
        catalog: Услуги каталога, нужны только для текста подсказок

    Returns:
        EvaluationResult с максимальной скидкой, акцией-победителем и
        подсказками, отсортированными по близости к разблокировке
    """
    if not active_promotions:
        return EvaluationResult()

    subtotal = Decimal(str(subtotal))
    usage_counts = prior_usage_counts or {}
    service_names = {service.id: service.name for service in catalog}

    best_discount = ZERO
    best_promotion: PromotionSnapshot | None = None
    opportunities: list[Opportunity] = []

    for promotion in active_promotions:
        # Исчерпанная акция не даёт ни скидки, ни подсказки
        if is_usage_capped(promotion, usage_counts):
            continue

        discount = ZERO
        if is_eligible(cart, promotion):
            discount = calculate_discount(cart, subtotal, promotion)

        # При равной скидке остаётся первая найденная акция
        if discount > best_discount:
            best_discount = discount
            best_promotion = promotion

        if discount == ZERO:
            gap = calculate_promotion_gap(cart, subtotal, promotion)
            if gap is not None:
                opportunities.append(build_opportunity(promotion, gap, service_names))

    opportunities.sort(key=_opportunity_distance)

    return EvaluationResult(
        discount=best_discount,
        promotion=best_promotion,
        message=build_message(best_promotion, best_discount) if best_promotion else None,
        opportunities=opportunities,
    )
