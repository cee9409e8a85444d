"""
Synthetic logistics dataset for Fleet NL2SQL.

This module provides functionality for:
1. Generating seeded operation records for the fleet
2. Aggregation helpers (group by, average, count)
3. The precomputed views read by the dashboard and the mock query engine
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Literal, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

ORDER_STATUSES = ["Delivered", "In Transit", "Delayed", "Loading", "Cancelled"]
CARGO_CONDITIONS = ["Excellent", "Good", "Fair", "Damaged"]
RISK_CLASSES = ["Low", "Medium", "High", "Critical"]
TRAFFIC_LEVELS = ["Light", "Moderate", "Heavy", "Severe"]
WEATHER_SEVERITIES = ["Clear", "Light Rain", "Heavy Rain", "Storm", "Fog"]
VEHICLE_CAPACITIES = [10, 20, 30, 40, 50]

WAREHOUSES = [
    {"id": "WH-001", "name": "Gaborone Central", "lat": -24.653, "lon": 25.908},
    {"id": "WH-002", "name": "Francistown Depot", "lat": -21.170, "lon": 27.500},
    {"id": "WH-003", "name": "Palapye Hub", "lat": -22.550, "lon": 27.132},
    {"id": "WH-004", "name": "Maun Gateway", "lat": -19.983, "lon": 23.416},
    {"id": "WH-005", "name": "Lobatse Port", "lat": -25.226, "lon": 25.678},
]

ROUTES = [f"RT-{i:03d}" for i in range(1, 13)]
VEHICLE_COUNT = 50
HISTORY_DAYS = 30

# Inclusive disruption score band for each risk class
DISRUPTION_BANDS = {
    "Critical": (80, 100),
    "High": (55, 79),
    "Medium": (30, 54),
    "Low": (5, 29),
}


class OperationRecord(BaseModel):
    """One synthetic logistics event."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    vehicle_id: str
    route_id: str
    warehouse_id: str
    warehouse_name: str
    vehicle_capacity: int
    gps_latitude: float
    gps_longitude: float
    traffic_level: Literal["Light", "Moderate", "Heavy", "Severe"]
    eta_variation: int
    fuel_rate: float = Field(gt=0)
    weather_severity: Literal["Clear", "Light Rain", "Heavy Rain", "Storm", "Fog"]
    loading_time: int = Field(ge=0)
    order_status: Literal["Delivered", "In Transit", "Delayed", "Loading", "Cancelled"]
    cargo_condition: Literal["Excellent", "Good", "Fair", "Damaged"]
    driver_fatigue: int = Field(ge=1, le=10)
    route_risk: float = Field(ge=1.0, le=10.0)
    delivery_time_deviation: int
    disruption_score: int = Field(ge=0, le=100)
    delay_probability: float = Field(ge=0.0, le=1.0)
    risk_class: Literal["Low", "Medium", "High", "Critical"]


def group_by(records: Sequence[OperationRecord], key: str) -> Dict[Any, List[OperationRecord]]:
    """Group records by an attribute, keeping first-seen key order."""
    groups: Dict[Any, List[OperationRecord]] = {}
    for record in records:
        groups.setdefault(getattr(record, key), []).append(record)
    return groups


def average(records: Sequence[OperationRecord], key: str) -> float:
    """Mean of an attribute rounded to 2 dp; 0 for an empty sequence."""
    if not records:
        return 0.0
    return round(sum(getattr(r, key) for r in records) / len(records), 2)


def count_where(records: Sequence[OperationRecord], key: str, value: Any) -> int:
    return sum(1 for r in records if getattr(r, key) == value)


FATIGUE_ALERT_LEVEL = 7
DELAY_ALERT_PROBABILITY = 0.65
SEVERE_WEATHER = ("Storm", "Heavy Rain")


def driver_alerts(record: OperationRecord) -> List[Dict[str, str]]:
    """
    Operational alerts for the driver of one operation.

    Each alert has a severity `type` ('red', 'amber' or 'teal') and a `message`.
    A record raising no alert yields a single 'teal' all-clear.
    """
    alerts = []
    if record.driver_fatigue >= FATIGUE_ALERT_LEVEL:
        alerts.append({
            "type": "amber",
            "message": f"High fatigue score ({record.driver_fatigue}/10) — consider rest stop",
        })
    if record.risk_class in ("High", "Critical"):
        alerts.append({
            "type": "red",
            "message": f"{record.risk_class} risk route — enhanced monitoring active",
        })
    if record.delay_probability > DELAY_ALERT_PROBABILITY:
        alerts.append({
            "type": "amber",
            "message": f"Delay probability {record.delay_probability * 100:.0f}% — check traffic ahead",
        })
    if record.weather_severity in SEVERE_WEATHER:
        alerts.append({
            "type": "red",
            "message": f"Weather alert: {record.weather_severity} — reduce speed",
        })
    if not alerts:
        alerts.append({"type": "teal", "message": "All systems nominal — safe travels"})
    return alerts


def _rand_int(rng: np.random.Generator, low: int, high: int) -> int:
    return int(rng.integers(low, high + 1))


def _rand_float(rng: np.random.Generator, low: float, high: float, dp: int) -> float:
    return round(float(rng.uniform(low, high)), dp)


def _pick(rng: np.random.Generator, options: Sequence[Any]) -> Any:
    return options[int(rng.integers(len(options)))]


def generate_records(size: int, seed: int, now: datetime) -> List[OperationRecord]:
    """
    Generate synthetic operation records.

    Args:
        size: Number of records to generate
        seed: Seed for the random generator
        now: Reference time; timestamps fall within the trailing HISTORY_DAYS

    Returns:
        Records sorted newest first
    """
    rng = np.random.default_rng(seed)
    span_ms = HISTORY_DAYS * 24 * 3600 * 1000
    records = []

    for _ in range(size):
        warehouse = _pick(rng, WAREHOUSES)
        risk_class = _pick(rng, RISK_CLASSES)
        low, high = DISRUPTION_BANDS[risk_class]
        disruption_score = _rand_int(rng, low, high)
        delay_probability = min(
            1.0, round(disruption_score / 100 * _rand_float(rng, 70, 110, 2) / 100, 2)
        )

        records.append(OperationRecord(
            timestamp=now - timedelta(milliseconds=_rand_int(rng, 0, span_ms)),
            vehicle_id=f"VH-{_rand_int(rng, 1, VEHICLE_COUNT):03d}",
            route_id=_pick(rng, ROUTES),
            warehouse_id=warehouse["id"],
            warehouse_name=warehouse["name"],
            vehicle_capacity=_pick(rng, VEHICLE_CAPACITIES),
            gps_latitude=round(warehouse["lat"] + _rand_float(rng, -2, 2, 3), 4),
            gps_longitude=round(warehouse["lon"] + _rand_float(rng, -2, 2, 3), 4),
            traffic_level=_pick(rng, TRAFFIC_LEVELS),
            eta_variation=_rand_int(rng, -45, 120),
            fuel_rate=_rand_float(rng, 8.5, 28.0, 1),
            weather_severity=_pick(rng, WEATHER_SEVERITIES),
            loading_time=_rand_int(rng, 15, 180),
            order_status=_pick(rng, ORDER_STATUSES),
            cargo_condition=_pick(rng, CARGO_CONDITIONS),
            driver_fatigue=_rand_int(rng, 1, 10),
            route_risk=_rand_float(rng, 1, 10, 1),
            delivery_time_deviation=_rand_int(rng, -30, 180),
            disruption_score=disruption_score,
            delay_probability=delay_probability,
            risk_class=risk_class,
        ))

    records.sort(key=lambda r: r.timestamp, reverse=True)
    return records


class FleetDataset:
    """Read-only snapshot of operation records and the views derived from it."""

    def __init__(self, records: Sequence[OperationRecord], now: Optional[datetime] = None):
        self._records: Tuple[OperationRecord, ...] = tuple(
            sorted(records, key=lambda r: r.timestamp, reverse=True)
        )
        if now is None:
            now = self._records[0].timestamp if self._records else datetime.now(timezone.utc)
        self.now = now

    @classmethod
    def generate(cls, seed: int = 42, size: int = 200, now: Optional[datetime] = None) -> "FleetDataset":
        """Build a dataset from seeded synthetic records."""
        now = now or datetime.now(timezone.utc)
        records = generate_records(size, seed, now)
        logger.info("Generated %d synthetic operation records (seed=%d)", len(records), seed)
        return cls(records, now=now)

    @property
    def records(self) -> Tuple[OperationRecord, ...]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[OperationRecord]:
        return iter(self._records)

    def kpis(self) -> Dict[str, Any]:
        total = len(self._records)
        delivered = count_where(self._records, "order_status", "Delivered")
        high_risk = sum(1 for r in self._records if r.risk_class in ("High", "Critical"))
        active_vehicles = {r.vehicle_id for r in self._records[:50]}
        return {
            "total_operations": total,
            "delivery_rate": round(delivered / total * 100, 1) if total else 0.0,
            "active_vehicles": len(active_vehicles),
            "avg_fuel_rate": average(self._records, "fuel_rate"),
            "high_risk_count": high_risk,
            "avg_disruption": average(self._records, "disruption_score"),
        }

    def risk_distribution(self) -> List[Dict[str, Any]]:
        by_risk = group_by(self._records, "risk_class")
        return [
            {
                "label": risk_class,
                "count": len(by_risk.get(risk_class, [])),
                "avg_disruption": average(by_risk.get(risk_class, []), "disruption_score"),
            }
            for risk_class in RISK_CLASSES
        ]

    def fuel_by_capacity(self) -> List[Dict[str, Any]]:
        """Average fuel rate per vehicle capacity present in the data, ascending."""
        by_capacity = group_by(self._records, "vehicle_capacity")
        return [
            {
                "capacity": f"{capacity}T",
                "avg_fuel": average(by_capacity[capacity], "fuel_rate"),
                "count": len(by_capacity[capacity]),
            }
            for capacity in sorted(by_capacity)
        ]

    def traffic_vs_eta(self) -> List[Dict[str, Any]]:
        by_traffic = group_by(self._records, "traffic_level")
        return [
            {
                "traffic": level,
                "avg_eta_var": average(by_traffic.get(level, []), "eta_variation"),
                "avg_delay_prob": average(by_traffic.get(level, []), "delay_probability"),
                "count": len(by_traffic.get(level, [])),
            }
            for level in TRAFFIC_LEVELS
        ]

    def order_status_breakdown(self) -> List[Dict[str, Any]]:
        return [
            {"status": status, "count": count_where(self._records, "order_status", status)}
            for status in ORDER_STATUSES
        ]

    def disruption_time_series(self, days: int = 14) -> List[Dict[str, Any]]:
        """
        Daily averages for the trailing `days` days, oldest first.

        Each bucket is the 24h window ending `d` days before the reference time.
        """
        series = []
        for d in range(days - 1, -1, -1):
            day_end = self.now - timedelta(days=d)
            day_start = day_end - timedelta(days=1)
            day_records = [r for r in self._records if day_start <= r.timestamp < day_end]
            series.append({
                "date": f"{day_start.month}/{day_start.day}",
                "avg_disruption": average(day_records, "disruption_score"),
                "avg_fuel": average(day_records, "fuel_rate"),
                "count": len(day_records),
            })
        return series

    def warehouse_performance(self) -> List[Dict[str, Any]]:
        by_warehouse = group_by(self._records, "warehouse_id")
        performance = []
        for warehouse in WAREHOUSES:
            rows = by_warehouse.get(warehouse["id"], [])
            delivered = count_where(rows, "order_status", "Delivered")
            performance.append({
                "warehouse": warehouse["name"],
                "id": warehouse["id"],
                "operations": len(rows),
                "avg_loading": average(rows, "loading_time"),
                "avg_disruption": average(rows, "disruption_score"),
                "delivery_rate": round(delivered / len(rows) * 100, 1) if rows else 0.0,
            })
        return performance

    def recent_operations(self, n: int = 20) -> List[Dict[str, Any]]:
        """The `n` newest records with a display timestamp added."""
        operations = []
        for record in self._records[:n]:
            row = record.model_dump()
            row["timestamp_fmt"] = record.timestamp.strftime("%d %b, %H:%M")
            operations.append(row)
        return operations

    def filter_operations(self, term: str, n: int = 50) -> List[Dict[str, Any]]:
        """Recent operations whose vehicle, route, status or risk class contains `term`."""
        term = term.lower()
        return [
            row for row in self.recent_operations(n)
            if any(term in row[key].lower() for key in ("vehicle_id", "route_id", "order_status", "risk_class"))
        ]

    def driver_routes(self, vehicle_id: str, limit: int = 10) -> List[OperationRecord]:
        return [r for r in self._records if r.vehicle_id == vehicle_id][:limit]
