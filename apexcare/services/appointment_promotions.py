"""Извлечение применённой акции из записи (agendamento)."""
import json
import logging
from decimal import Decimal, InvalidOperation

from apexcare.schemas.promotion import AppointmentPromotion

logger = logging.getLogger(__name__)

PROMOTION_ID_KEYS = ("promotion_id", "promotionId", "promocao_id")
# Порядок важен: берётся первое присутствующее значение
AMOUNT_KEYS = ("valor_desconto", "valor", "amount", "line_total", "price")


def parse_selected_services(raw) -> list:
    """
    Привести поле servicos_escolhidos к списку позиций.

    Поле хранится по-разному: список, JSON-строка, объект {"items": [...]}
    или объект, значения которого и есть позиции.
    """
    if not raw:
        return []

    if isinstance(raw, list):
        return raw

    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Could not parse servicos_escolhidos: {e}")
            return []
        return parsed if isinstance(parsed, list) else []

    if isinstance(raw, dict):
        if isinstance(raw.get("items"), list):
            return raw["items"]
        return list(raw.values())

    return []


def _promotion_id_of(item: dict):
    for key in PROMOTION_ID_KEYS:
        if item.get(key):
            return item[key]
    return None


def _is_discount_line(item) -> bool:
    if not isinstance(item, dict):
        return False
    if item.get("type") == "discount" and _promotion_id_of(item):
        return True
    if item.get("id") == "promotion-discount" and (item.get("promotion_id") or item.get("promotionId")):
        return True
    return False


def extract_promotion_from_appointment(appointment: dict | None) -> AppointmentPromotion | None:
    """
    Найти в записи строку скидки по акции.

    Returns:
        AppointmentPromotion или None, если акции нет или сумма скидки не положительна
    """
    if not appointment:
        return None

    items = parse_selected_services(appointment.get("servicos_escolhidos"))
    discount_line = next((item for item in items if _is_discount_line(item)), None)
    if discount_line is None:
        return None

    promotion_id = _promotion_id_of(discount_line)
    if not promotion_id:
        return None

    raw_amount = next(
        (discount_line[key] for key in AMOUNT_KEYS if discount_line.get(key) is not None),
        appointment.get("desconto_aplicado"),
    )
    try:
        amount = abs(Decimal(str(raw_amount if raw_amount is not None else 0)))
    except InvalidOperation:
        amount = Decimal("0")
    if not amount.is_finite() or amount <= 0:
        return None

    return AppointmentPromotion(
        promotion_id=str(promotion_id),
        discount_amount=amount,
        promotion_name=discount_line.get("promotion_nome") or discount_line.get("nome"),
    )
