"""
Unit tests for the mock query engine.
"""
import pytest

from fleet_nl2sql.schemas.results import QueryResult
from fleet_nl2sql.services.query_engine import (
    ENGINE_RULES, RECENT_OPERATIONS_LIMIT, VIEW_BUILDERS, MockQueryEngine,
)
from fleet_nl2sql.services.rules import KeywordRule
from fleet_nl2sql.services.sql_generator import SQL_RULES

# Which engine view each local SQL template lands on
TEMPLATE_VIEWS = {
    "fuel_by_capacity": "fuel_by_capacity",
    "route_risk": "risk_distribution",
    "order_status": "order_status_breakdown",
    "disruption_by_class": "risk_distribution",
    "traffic_eta": "traffic_vs_eta",
    "warehouse_performance": "warehouse_performance",
    "driver_fatigue": "fatigue_risk",
    "recent_operations": "recent_operations",
}


def test_engine_rules_end_with_catch_all():
    assert ENGINE_RULES[-1].is_catch_all
    assert all(rule.target in VIEW_BUILDERS for rule in ENGINE_RULES)

@pytest.mark.parametrize("rule", SQL_RULES, ids=lambda rule: rule.name)
def test_templates_route_to_their_view(engine, rule):
    assert engine.route(rule.target).target == TEMPLATE_VIEWS[rule.name]

def test_unmatched_sql_returns_recent_operations(engine, dataset):
    result = engine.execute("hello")
    assert result.columns == ("Vehicle_ID", "Route_ID", "Order_Status", "Risk_Class", "Disruption_Score")
    assert result.row_count == RECENT_OPERATIONS_LIMIT
    assert result.rows[0][0] == dataset.records[0].vehicle_id

def test_fuel_by_capacity_view(engine, dataset):
    sql = "SELECT dv.Vehicle_Capacity, AVG(fo.Fuel_Rate) FROM fact_operations fo LIMIT 100;"
    result = engine.execute(sql)
    assert result.columns == ("Vehicle_Capacity", "Avg_Fuel_Rate", "Count")
    assert result.row_count == len(dataset.fuel_by_capacity())
    assert all(row[0].endswith("T") for row in result.rows)

def test_fuel_rate_alone_does_not_select_fuel_view(engine):
    assert engine.route("SELECT fo.Fuel_Rate FROM fact_operations fo").target == "recent_operations"

def test_risk_distribution_view(engine):
    result = engine.execute("select risk_class, count(*) from dim_vehicles group by risk_class")
    assert result.columns == ("Risk_Class", "Count", "Avg_Disruption")
    assert [row[0] for row in result.rows] == ["Low", "Medium", "High", "Critical"]

def test_traffic_view(engine):
    result = engine.execute("SELECT Traffic_Level FROM fact_operations")
    assert result.columns == ("Traffic_Level", "Avg_ETA_Var", "Avg_Delay_Prob")
    assert result.row_count == 4

def test_order_status_view(engine):
    result = engine.execute("SELECT COUNT(*) FROM fact_operations WHERE status = 'Delivered'")
    assert result.columns == ("Order_Status", "Count")
    assert result.row_count == 5

def test_warehouse_view(engine):
    result = engine.execute("SELECT Warehouse_ID FROM fact_operations")
    assert result.columns == ("Warehouse", "Operations", "Avg_Loading_Time", "Delivery_Rate%")
    assert result.row_count == 5

def test_fatigue_view(engine):
    result = engine.execute("SELECT Driver_Fatigue FROM dim_risk")
    assert result.columns == ("Risk_Class", "Count", "Avg_Disruption_Score")

def test_routing_is_case_insensitive(engine):
    assert engine.route("SELECT TRAFFIC_LEVEL FROM FACT_OPERATIONS").target == "traffic_vs_eta"

def test_every_view_has_consistent_shape(dataset):
    for name, build in VIEW_BUILDERS.items():
        result = build(dataset)
        assert isinstance(result, QueryResult), name
        assert all(len(row) == len(result.columns) for row in result.rows), name

def test_custom_rules(dataset):
    rules = [
        KeywordRule(name="orders", keywords=[["order"]], target="order_status_breakdown"),
        KeywordRule(name="any", target="recent_operations"),
    ]
    engine = MockQueryEngine(dataset, rules=rules)
    assert engine.route("order by x").target == "order_status_breakdown"
    assert engine.execute("traffic").row_count == RECENT_OPERATIONS_LIMIT
