import json
from decimal import Decimal

from apexcare.services.appointment_promotions import (
    extract_promotion_from_appointment,
    parse_selected_services,
)

PROMOTION_ID = "6f1c2d9e-2b7a-4c55-9d1e-1f2a3b4c5d6e"


def test_parse_selected_services_shapes():
    items = [{"id": 1}]

    assert parse_selected_services(None) == []
    assert parse_selected_services(items) == items
    assert parse_selected_services(json.dumps(items)) == items
    assert parse_selected_services("{not json") == []
    assert parse_selected_services(json.dumps({"id": 1})) == []
    assert parse_selected_services({"items": items}) == items
    assert parse_selected_services({"a": {"id": 1}, "b": {"id": 2}}) == [{"id": 1}, {"id": 2}]


def test_extract_discount_line():
    appointment = {
        "id": "a1",
        "servicos_escolhidos": [
            {"id": 1, "price": 180, "quantity": 1},
            {"type": "discount", "promotion_id": PROMOTION_ID, "valor_desconto": -18, "nome": "Semana do Sofá"},
        ],
    }

    promotion = extract_promotion_from_appointment(appointment)

    assert promotion.promotion_id == PROMOTION_ID
    assert promotion.discount_amount == Decimal("18")
    assert promotion.promotion_name == "Semana do Sofá"


def test_extract_falls_back_to_appointment_discount():
    appointment = {
        "servicos_escolhidos": json.dumps([{"id": "promotion-discount", "promotionId": PROMOTION_ID}]),
        "desconto_aplicado": "25.50",
    }

    promotion = extract_promotion_from_appointment(appointment)

    assert promotion.discount_amount == Decimal("25.50")


def test_extract_ignores_missing_or_zero_discount():
    assert extract_promotion_from_appointment(None) is None
    assert extract_promotion_from_appointment({"servicos_escolhidos": [{"id": 1, "price": 10}]}) is None
    assert extract_promotion_from_appointment(
        {"servicos_escolhidos": [{"type": "discount", "promocao_id": PROMOTION_ID, "valor": 0}]}
    ) is None
    assert extract_promotion_from_appointment(
        {"servicos_escolhidos": [{"type": "discount", "valor": 10}]}
    ) is None
