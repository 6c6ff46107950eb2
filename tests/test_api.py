import uuid
from decimal import Decimal

import httpx
import pytest

from apexcare.api.v1.promotions import get_promotion_service
from apexcare.main import app
from apexcare.models import Promotion, Service
from apexcare.services.promotion_service import today


@pytest.fixture
async def client(promotion_service):
    app.dependency_overrides[get_promotion_service] = lambda: promotion_service
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def promotions(session_factory):
    sofa_week = Promotion(
        id=uuid.uuid4(),
        name="Semana do Sofá",
        discount_type="percentual",
        discount_value=Decimal("10"),
        end_date=today(),
    )
    chairs = Promotion(
        id=uuid.uuid4(),
        name="Leve 4 cadeiras",
        discount_type="combo",
        eligible_service_ids=[3],
        combo_config={"kind": "buy_x_get_y", "buy": 4, "get": 1},
    )
    async with session_factory() as db:
        db.add_all([Service(id=3, name="Cadeira", price=Decimal("35")), sofa_week, chairs])
        await db.commit()
    return {"sofa_week": sofa_week, "chairs": chairs}


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_active_promotions(client, promotions):
    response = await client.get("/api/v1/promotions/active")

    assert response.status_code == 200
    data = response.json()
    assert [p["name"] for p in data] == ["Semana do Sofá", "Leve 4 cadeiras"]
    assert data[0]["discount_label"] == "10% OFF"
    assert data[0]["days_left"] == 0
    assert data[1]["discount_label"] == "Leve 4, pague 3"
    assert data[1]["days_left"] is None


async def test_evaluate(client, promotions):
    response = await client.post(
        "/api/v1/promotions/evaluate",
        json={
            "items": [
                {"service_id": 1, "unit_price": "100.00", "quantity": 2},
                {"service_id": 3, "unit_price": "35.00", "quantity": 2},
            ],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["discount"] == pytest.approx(27.0)
    assert data["promotion_name"] == "Semana do Sofá"
    assert "R$ 27,00" in data["message"]
    [opportunity] = data["opportunities"]
    assert opportunity["promotion_id"] == str(promotions["chairs"].id)
    assert opportunity["missing_quantity"] == 2
    assert "+2 Cadeira" in opportunity["message"]


async def test_evaluate_rejects_invalid_items(client):
    response = await client.post(
        "/api/v1/promotions/evaluate",
        json={"items": [{"service_id": 1, "unit_price": -5, "quantity": 0}]},
    )

    assert response.status_code == 422


async def test_register_usage_twice(client, promotions):
    payload = {
        "promotion_id": str(promotions["sofa_week"].id),
        "order_id": str(uuid.uuid4()),
        "client_id": str(uuid.uuid4()),
        "discount_amount": "27.00",
    }

    first = await client.post("/api/v1/promotions/usage", json=payload)
    second = await client.post("/api/v1/promotions/usage", json=payload)

    assert first.json() == {"inserted": True, "already_exists": None}
    assert second.json() == {"inserted": False, "already_exists": True}


async def test_register_usage_without_client(client, promotions):
    response = await client.post(
        "/api/v1/promotions/usage",
        json={
            "promotion_id": str(promotions["sofa_week"].id),
            "order_id": str(uuid.uuid4()),
            "discount_amount": 10,
        },
    )

    assert response.status_code == 200
    assert response.json()["inserted"] is False


async def test_register_usage_for_appointment(client, promotions):
    response = await client.post(
        "/api/v1/promotions/usage/appointment",
        json={
            "client_id": str(uuid.uuid4()),
            "appointment": {
                "id": str(uuid.uuid4()),
                "servicos_escolhidos": [
                    {"type": "discount", "promotion_id": str(promotions["sofa_week"].id), "valor": -27},
                ],
            },
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["registered"] is True
    assert data["discount_amount"] == pytest.approx(27.0)
    assert data["usage"]["inserted"] is True


async def test_register_usage_for_appointment_with_malformed_ids(client):
    response = await client.post(
        "/api/v1/promotions/usage/appointment",
        json={
            "client_id": str(uuid.uuid4()),
            "appointment": {
                "id": "not-a-uuid",
                "servicos_escolhidos": [{"type": "discount", "promotion_id": "also-bad", "valor": 5}],
            },
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["registered"] is False
    assert data["usage"] == {"inserted": False, "already_exists": None}
