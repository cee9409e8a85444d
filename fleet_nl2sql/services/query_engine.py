"""
Mock query engine for Fleet NL2SQL.

SQL text is never parsed. The engine lowercases it, picks the first view whose
keyword rule matches and returns that view as a QueryResult computed from the
dataset snapshot. Unrelated queries sharing keywords resolve to the same view.
"""
import logging
from typing import Callable, Dict, List, Optional, Sequence

from fleet_nl2sql.schemas.results import QueryResult
from fleet_nl2sql.services.dataset import FleetDataset
from fleet_nl2sql.services.rules import KeywordRule, first_match, load_rules

logger = logging.getLogger(__name__)

ENGINE_VIEWS_YAML = "engine_views.yaml"
RECENT_OPERATIONS_LIMIT = 8


def _fuel_by_capacity(dataset: FleetDataset) -> QueryResult:
    return QueryResult(
        columns=("Vehicle_Capacity", "Avg_Fuel_Rate", "Count"),
        rows=tuple((r["capacity"], r["avg_fuel"], r["count"]) for r in dataset.fuel_by_capacity()),
    )


def _risk_distribution(dataset: FleetDataset) -> QueryResult:
    return QueryResult(
        columns=("Risk_Class", "Count", "Avg_Disruption"),
        rows=tuple((r["label"], r["count"], r["avg_disruption"]) for r in dataset.risk_distribution()),
    )


def _traffic_vs_eta(dataset: FleetDataset) -> QueryResult:
    return QueryResult(
        columns=("Traffic_Level", "Avg_ETA_Var", "Avg_Delay_Prob"),
        rows=tuple((r["traffic"], r["avg_eta_var"], r["avg_delay_prob"]) for r in dataset.traffic_vs_eta()),
    )


def _order_status_breakdown(dataset: FleetDataset) -> QueryResult:
    return QueryResult(
        columns=("Order_Status", "Count"),
        rows=tuple((r["status"], r["count"]) for r in dataset.order_status_breakdown()),
    )


def _warehouse_performance(dataset: FleetDataset) -> QueryResult:
    return QueryResult(
        columns=("Warehouse", "Operations", "Avg_Loading_Time", "Delivery_Rate%"),
        rows=tuple(
            (r["warehouse"], r["operations"], r["avg_loading"], r["delivery_rate"])
            for r in dataset.warehouse_performance()
        ),
    )


def _fatigue_risk(dataset: FleetDataset) -> QueryResult:
    # Fatigue questions are answered with the risk distribution
    return QueryResult(
        columns=("Risk_Class", "Count", "Avg_Disruption_Score"),
        rows=tuple((r["label"], r["count"], r["avg_disruption"]) for r in dataset.risk_distribution()),
    )


def _recent_operations(dataset: FleetDataset) -> QueryResult:
    return QueryResult(
        columns=("Vehicle_ID", "Route_ID", "Order_Status", "Risk_Class", "Disruption_Score"),
        rows=tuple(
            (r.vehicle_id, r.route_id, r.order_status, r.risk_class, r.disruption_score)
            for r in dataset.records[:RECENT_OPERATIONS_LIMIT]
        ),
    )


VIEW_BUILDERS: Dict[str, Callable[[FleetDataset], QueryResult]] = {
    "fuel_by_capacity": _fuel_by_capacity,
    "risk_distribution": _risk_distribution,
    "traffic_vs_eta": _traffic_vs_eta,
    "order_status_breakdown": _order_status_breakdown,
    "warehouse_performance": _warehouse_performance,
    "fatigue_risk": _fatigue_risk,
    "recent_operations": _recent_operations,
}


def load_engine_rules(filename: str = ENGINE_VIEWS_YAML) -> List[KeywordRule]:
    rules = load_rules(filename, "view")
    unknown = [rule.target for rule in rules if rule.target not in VIEW_BUILDERS]
    if unknown:
        raise ValueError(f"Unknown views in {filename}: {unknown}")
    return rules


ENGINE_RULES = load_engine_rules()


class MockQueryEngine:
    """Routes SQL text to precomputed aggregate views over a FleetDataset."""

    def __init__(self, dataset: FleetDataset, rules: Optional[Sequence[KeywordRule]] = None):
        self.dataset = dataset
        self.rules = list(rules) if rules is not None else ENGINE_RULES

    def route(self, sql: str) -> KeywordRule:
        """Return the view rule selected for `sql`."""
        return first_match(self.rules, sql.strip().lower())

    def execute(self, sql: str) -> QueryResult:
        """
        Execute mock SQL.

        Args:
            sql: Any text; no syntax validation is performed

        Returns:
            QueryResult of the first matching view
        """
        rule = self.route(sql)
        result = VIEW_BUILDERS[rule.target](self.dataset)
        logger.info("Mock query routed to view '%s' (%d rows)", rule.target, result.row_count)
        return result
