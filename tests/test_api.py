import os
import sys

import pytest
from fastapi.testclient import TestClient

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from service_pricing.api.main import app


@pytest.fixture(scope="module")
def client():
    return TestClient(app)


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "online"


def test_config_reports_active_version(client):
    data = client.get("/config").json()
    assert data["config"]["version"] == "v1.0.2_Summer_2024"
    assert data["using_fallback"] is False


def test_tiers(client):
    tiers = client.get("/tiers").json()
    assert [t["tier"] for t in tiers] == ["STARTER", "PRO", "ELITE"]


@pytest.mark.parametrize("points,tier", [(0, "STARTER"), (750, "PRO"), (1000, "ELITE")])
def test_classify_points(client, points, tier):
    response = client.get("/tiers/classify", params={"points": points})
    assert response.json()["tier"] == tier


def test_classify_negative_points_is_unprocessable(client):
    response = client.get("/tiers/classify", params={"points": -3})
    assert response.status_code == 422


def test_estimate(client):
    response = client.post("/estimate", json={"square_meters": 20, "ai_estimated_hours": 1})
    assert response.status_code == 200

    data = response.json()
    assert data["total"] == 10525
    assert data["worker_net"] == 7500
    assert data["platform_fee"] == 2500
    assert data["taxes"] == 525
    assert data["display_total"] == "$ 10.525"
    assert data["calculation_snapshot"]["applied_surcharges"] == ["Ajuste por Mínimo Horario"]


def test_estimate_rejects_invalid_job(client):
    response = client.post("/estimate", json={"square_meters": 20, "ai_estimated_hours": 1,
                                              "ai_difficulty_multiplier": 3.0})
    assert response.status_code == 422


def test_cancellation_fee(client):
    response = client.post("/cancellation-fee", json={"total_price": 10525})
    assert response.json()["fee"] == 3158


def test_evaluate_cancellation(client):
    response = client.post("/cancellation/evaluate", json={"total_price": 10000, "status": "IN_PROGRESS"})
    data = response.json()
    assert data["penalty"] == 5000
    assert data["worker_share"] == 0


def test_extra_time(client):
    response = client.post("/extra-time", json={"square_meters": 20, "ai_estimated_hours": 1,
                                                "extra_minutes": 30})
    data = response.json()
    assert data["adjustment"]["total"] == 4210
    assert data["combined"]["total"] == 14735
    assert data["original"]["total"] == 10525


def test_increment_limit_conflict(client):
    response = client.post("/increment", json={"request_id": "r1", "base_price": 10000, "increment_count": 3})
    assert response.status_code == 409

    response = client.post("/increment", json={"request_id": "r1", "base_price": 10000})
    assert response.json()["estimated_final_price"] == 11000
