"""
Integration tests for the HTTP API.

The application is built around the fixed-seed dataset and a chat-completion
client served in-process, so no network access is needed.
"""
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from fleet_nl2sql import config
from fleet_nl2sql.main import create_app
from fleet_nl2sql.services.sql_generator import SAMPLE_PROMPTS, generate_mock_sql


@pytest.fixture
def make_client(dataset, fake_llm):
    def factory(**llm_kwargs):
        fake, llm_client = fake_llm(**llm_kwargs)
        app = create_app(dataset=dataset, llm_client=llm_client, execution_delay=0)
        return fake, TestClient(app)
    return factory


@pytest.fixture
def client(make_client):
    return make_client()[1]


def test_ping(client):
    response = client.get("/ping")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}

def test_prompts(client):
    assert client.get("/prompts").json() == SAMPLE_PROMPTS

def test_mock_sql(client):
    response = client.post("/sql/mock", json={"query": "ETA variation by traffic level"})
    assert response.status_code == 200
    data = response.json()
    assert data["intent"] == "traffic_eta"
    assert data["sql"] == generate_mock_sql("ETA variation by traffic level")

def test_execute_sql(client):
    response = client.post("/sql/execute", json={"sql": "SELECT Order_Status, COUNT(*) FROM fact_operations"})
    assert response.status_code == 200
    data = response.json()
    assert data["columns"] == ["Order_Status", "Count"]
    assert len(data["rows"]) == 5

def test_nl2sql_remote(make_client):
    fake, client = make_client(content="```sql\nSELECT Warehouse_ID, AVG(Loading_Time) FROM fact_operations\n```")
    response = client.post("/nl2sql", json={"query": "Warehouse delivery rates comparison", "api_key": "k"})
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["source"] == "remote"
    assert data["sql"] == "SELECT Warehouse_ID, AVG(Loading_Time) FROM fact_operations LIMIT 100;"
    assert data["view"] == "warehouse_performance"
    assert data["columns"] == ["Warehouse", "Operations", "Avg_Loading_Time", "Delivery_Rate%"]
    assert len(data["rows"]) == 5
    assert data["chart"]["id"] == "nlResultChart"
    assert data["chart"]["datasets"][0]["label"] == "Operations"
    assert data["table_html"].startswith('<div class="table-wrap">')
    assert data["status"] == "✓ 5 rows returned"
    assert data["reveal_frames"] is None
    assert len(fake.requests) == 1

def test_nl2sql_key_from_header(make_client):
    fake, client = make_client()
    with patch.object(config, "GROQ_API_KEY", ""):
        response = client.post(
            "/nl2sql",
            json={"query": "anything"},
            headers={"X-Groq-Api-Key": "header-key"},
        )
    assert response.json()["source"] == "remote"
    assert len(fake.requests) == 1

def test_nl2sql_missing_key(make_client):
    fake, client = make_client()
    with patch.object(config, "GROQ_API_KEY", ""):
        response = client.post("/nl2sql", json={"query": "Analyze route risk scores"})
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is False
    assert data["error_kind"] == "missing_credentials"
    assert data["status"] == "Please enter your Groq API key above."
    assert data["rows"] == []
    assert data["chart"] is None
    assert fake.requests == []

def test_nl2sql_missing_key_always_fallback(make_client):
    _, client = make_client()
    with patch.object(config, "GROQ_API_KEY", ""):
        response = client.post("/nl2sql", json={"query": "Analyze route risk scores", "fallback": "always"})
    data = response.json()
    assert data["ok"] is True
    assert data["source"] == "mock"
    assert data["intent"] == "route_risk"
    assert data["view"] == "risk_distribution"
    assert [row["Risk_Class"] for row in data["rows"]] == ["Low", "Medium", "High", "Critical"]

def test_nl2sql_invalid_key(make_client):
    _, client = make_client(status_code=401)
    response = client.post("/nl2sql", json={"query": "fuel by capacity", "api_key": "bad"})
    data = response.json()
    assert data["ok"] is False
    assert data["error_kind"] == "invalid_credentials"
    assert data["status"] == "Invalid API key. Get one free at console.groq.com"

def test_nl2sql_html_gateway_page_falls_back(make_client):
    _, client = make_client(html="<html><body>502 Bad Gateway</body></html>")
    response = client.post("/nl2sql", json={"query": "fuel by capacity", "api_key": "k"})
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["source"] == "mock"
    assert data["error_kind"] == "empty_completion"

def test_nl2sql_reveal_frames(make_client):
    _, client = make_client(content="SELECT 1 LIMIT 100;")
    with patch.object(config, "REVEAL_DELAY", 0.0001):
        response = client.post("/nl2sql", json={"query": "q", "api_key": "k", "reveal": True})
    frames = response.json()["reveal_frames"]
    assert frames[0] == "S"
    assert frames[-1] == "SELECT 1 LIMIT 100;"

def test_nl2sql_validation(client):
    assert client.post("/nl2sql", json={"query": ""}).status_code == 422
    assert client.post("/nl2sql", json={"query": "q", "fallback": "sometimes"}).status_code == 422

def test_stats(client):
    data = client.get("/stats").json()
    assert set(data) == {"total_errors", "error_types", "recent_errors"}

def test_dashboard_views(client, dataset):
    assert client.get("/dashboard/kpis").json() == dataset.kpis()
    assert client.get("/dashboard/risk").json() == dataset.risk_distribution()
    assert client.get("/dashboard/fuel").json() == dataset.fuel_by_capacity()
    assert client.get("/dashboard/traffic").json() == dataset.traffic_vs_eta()
    assert client.get("/dashboard/orders").json() == dataset.order_status_breakdown()
    assert client.get("/dashboard/warehouses").json() == dataset.warehouse_performance()
    assert len(client.get("/dashboard/disruption").json()) == 14
    assert len(client.get("/dashboard/disruption?days=7").json()) == 7

def test_dashboard_operations(client, dataset):
    operations = client.get("/dashboard/operations?limit=5").json()
    assert len(operations) == 5
    assert operations[0]["vehicle_id"] == dataset.records[0].vehicle_id

    vehicle_id = dataset.records[0].vehicle_id
    filtered = client.get(f"/dashboard/operations?q={vehicle_id.lower()}").json()
    assert filtered
    assert all(row["vehicle_id"] == vehicle_id for row in filtered)

def test_dashboard_vehicle_routes(client, dataset):
    vehicle_id = dataset.records[0].vehicle_id
    routes = client.get(f"/dashboard/vehicles/{vehicle_id}/routes").json()
    assert routes
    assert all(route["vehicle_id"] == vehicle_id for route in routes)
    assert client.get("/dashboard/vehicles/VH-999/routes").status_code == 404

def test_dashboard_vehicle_alerts(client, dataset):
    vehicle_id = dataset.records[0].vehicle_id
    latest = dataset.driver_routes(vehicle_id, limit=1)[0]
    data = client.get(f"/dashboard/vehicles/{vehicle_id}/alerts").json()
    assert data["vehicle_id"] == vehicle_id
    assert data["operation"]["route_id"] == latest.route_id
    assert data["alerts"]
    assert all(alert["type"] in ("red", "amber", "teal") for alert in data["alerts"])
    assert client.get("/dashboard/vehicles/VH-999/alerts").status_code == 404
