"""Подписи и сортировка акций для витрины на сайте."""
from datetime import date

from apexcare.schemas.promotion import ComboKind, DiscountType, PromotionSnapshot
from apexcare.services.formatting import format_currency, format_number


def describe_discount(promotion: PromotionSnapshot) -> str:
    """Бейдж скидки: "10% OFF", "Economize R$ 50,00", "Leve 3, pague 2"..."""
    value = promotion.discount_value
    combo = promotion.combo_config

    if promotion.discount_type == DiscountType.PERCENTAGE and value:
        return f"{format_number(value)}% OFF"

    if promotion.discount_type == DiscountType.FIXED_AMOUNT and value:
        return f"Economize {format_currency(value)}"

    if promotion.discount_type == DiscountType.COMBO and combo:
        if combo.description:
            return combo.description

        if combo.kind == ComboKind.BUY_X_GET_Y and combo.buy and combo.get:
            return f"Leve {combo.buy}, pague {max(1, combo.buy - combo.get)}"

        if combo.kind == ComboKind.PROGRESSIVE and combo.tiers:
            best = max(tier.percent_off for tier in combo.tiers)
            return f"{format_number(best)}% OFF progressivo"

        return "Condições especiais em combo"

    return "Desconto especial"


def calculate_days_left(end_date: date | None, today: date) -> int | None:
    """Сколько дней осталось до конца акции. 0 - последний день."""
    if end_date is None:
        return None
    return max(0, (end_date - today).days)


def sort_for_display(promotions: list[PromotionSnapshot]) -> list[PromotionSnapshot]:
    """Сначала акции, которые заканчиваются раньше; бессрочные - в конце."""
    return sorted(promotions, key=lambda p: (p.end_date is None, p.end_date or date.max))
