"""Форматирование сумм и подписей для сообщений о промоакциях (pt-BR)."""
from decimal import Decimal


def format_currency(value) -> str | None:
    """
    Отформатировать сумму в реалах: Decimal("1234.5") -> "R$ 1.234,50".

    Возвращает None, если значение не число.
    """
    if value is None:
        return None
    try:
        amount = Decimal(str(value))
    except ArithmeticError:
        return None
    if not amount.is_finite():
        return None

    formatted = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    sign = "-" if amount < 0 else ""
    return f"{sign}R$ {formatted}"


def format_number(value) -> str:
    """Число без лишних нулей с запятой: 10.00 -> "10", 12.5 -> "12,5"."""
    amount = Decimal(str(value)).normalize()
    return f"{amount:f}".replace(".", ",")


def join_service_names(names: list[str]) -> str:
    """
    Собрать подпись из названий услуг.

    Одно название - как есть, два - через "ou", три и больше - первые два
    и "outros serviços elegíveis".
    """
    names = [name for name in names if name]
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]} ou {names[1]}"
    return f"{names[0]}, {names[1]} ou outros serviços elegíveis"
