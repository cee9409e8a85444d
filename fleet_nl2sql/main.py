"""
Main application module for Fleet NL2SQL.

This module defines the FastAPI application, routes, and middleware.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from fleet_nl2sql import __version__, config
from fleet_nl2sql.schemas.requests import ExecuteRequest, MockSQLRequest, NL2SQLRequest
from fleet_nl2sql.schemas.responses import MockSQLResponse, NL2SQLResponse
from fleet_nl2sql.schemas.results import QueryResult
from fleet_nl2sql.services.dataset import FleetDataset, OperationRecord, driver_alerts
from fleet_nl2sql.services.error_handler import error_handler
from fleet_nl2sql.services.orchestrator import QueryOrchestrator, RenderSinks
from fleet_nl2sql.services.query_engine import MockQueryEngine
from fleet_nl2sql.services.reveal import SqlRevealer
from fleet_nl2sql.services.shaping import render_result_table, to_chart_payload, to_table_payload
from fleet_nl2sql.services.sql_generator import SAMPLE_PROMPTS, classify_intent

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

router = APIRouter()


def get_dataset(request: Request) -> FleetDataset:
    return request.app.state.dataset


def get_engine(request: Request) -> MockQueryEngine:
    return request.app.state.engine


@router.get("/ping")
@router.head("/ping")
async def ping():
    """Health check endpoint. Supports both GET and HEAD methods."""
    return {"status": "ok"}


@router.get("/stats")
async def stats():
    """SQL generation error statistics."""
    return error_handler.get_error_stats()


@router.get("/prompts")
async def prompts() -> List[str]:
    """Sample questions for the analyst console."""
    return SAMPLE_PROMPTS


@router.post("/nl2sql", response_model=NL2SQLResponse)
async def nl2sql(
    request: Request,
    body: NL2SQLRequest,
    x_groq_api_key: Optional[str] = Header(None),
    engine: MockQueryEngine = Depends(get_engine),
):
    """
    Translate a question to SQL and run it against the mock engine.

    Args:
        body: Question, optional API key and fallback policy
        x_groq_api_key: API key header, used when the body carries none

    Returns:
        NL2SQLResponse with SQL, rows, chart payload and status messages
    """
    api_key = body.api_key or x_groq_api_key or config.GROQ_API_KEY
    frames: List[str] = []
    shaped: Dict[str, Any] = {}

    sinks = RenderSinks(
        sql=frames.append,
        chart=lambda chart_id, result: shaped.update(chart=to_chart_payload(chart_id, result)),
        table=lambda _, result: shaped.update(table_html=render_result_table(result)),
    )
    orchestrator = QueryOrchestrator(
        engine,
        revealer=SqlRevealer(delay=config.REVEAL_DELAY, enabled=body.reveal),
        execution_delay=request.app.state.execution_delay,
        policy=body.fallback,
        client=request.app.state.llm_client,
    )

    try:
        outcome = await orchestrator.run(body.query, api_key=api_key, sinks=sinks)
    except Exception as e:
        logger.exception("Unexpected error while processing query")
        raise HTTPException(status_code=500, detail=str(e))

    table = to_table_payload(outcome.result) if outcome.result else {}
    return NL2SQLResponse(
        ok=outcome.ok,
        sql=outcome.sql,
        source=outcome.source,
        intent=outcome.intent,
        view=outcome.view,
        status=outcome.status,
        status_log=outcome.status_log,
        error_kind=outcome.error_kind,
        columns=table.get("columns", []),
        rows=table.get("rows", []),
        chart=shaped.get("chart"),
        table_html=shaped.get("table_html"),
        reveal_frames=frames if body.reveal else None,
    )


@router.post("/sql/mock", response_model=MockSQLResponse)
async def mock_sql(body: MockSQLRequest):
    """Generate SQL from the local keyword templates only."""
    rule = classify_intent(body.query)
    return MockSQLResponse(sql=rule.target, intent=rule.name)


@router.post("/sql/execute", response_model=QueryResult)
async def execute_sql(body: ExecuteRequest, engine: MockQueryEngine = Depends(get_engine)):
    """Run SQL text against the mock query engine."""
    return engine.execute(body.sql)


@router.get("/dashboard/kpis")
async def dashboard_kpis(dataset: FleetDataset = Depends(get_dataset)):
    return dataset.kpis()


@router.get("/dashboard/risk")
async def dashboard_risk(dataset: FleetDataset = Depends(get_dataset)):
    return dataset.risk_distribution()


@router.get("/dashboard/fuel")
async def dashboard_fuel(dataset: FleetDataset = Depends(get_dataset)):
    return dataset.fuel_by_capacity()


@router.get("/dashboard/traffic")
async def dashboard_traffic(dataset: FleetDataset = Depends(get_dataset)):
    return dataset.traffic_vs_eta()


@router.get("/dashboard/orders")
async def dashboard_orders(dataset: FleetDataset = Depends(get_dataset)):
    return dataset.order_status_breakdown()


@router.get("/dashboard/disruption")
async def dashboard_disruption(
    days: int = Query(14, ge=1, le=30),
    dataset: FleetDataset = Depends(get_dataset),
):
    return dataset.disruption_time_series(days)


@router.get("/dashboard/warehouses")
async def dashboard_warehouses(dataset: FleetDataset = Depends(get_dataset)):
    return dataset.warehouse_performance()


@router.get("/dashboard/operations")
async def dashboard_operations(
    limit: int = Query(20, ge=1, le=200),
    q: Optional[str] = Query(None, description="Filter on vehicle, route, status or risk class"),
    dataset: FleetDataset = Depends(get_dataset),
):
    """Most recent operations, optionally filtered."""
    if q:
        return dataset.filter_operations(q, limit)
    return dataset.recent_operations(limit)


@router.get("/dashboard/vehicles/{vehicle_id}/routes", response_model=List[OperationRecord])
async def dashboard_vehicle_routes(vehicle_id: str, dataset: FleetDataset = Depends(get_dataset)):
    routes = dataset.driver_routes(vehicle_id)
    if not routes:
        raise HTTPException(status_code=404, detail=f"No operations found for vehicle {vehicle_id}")
    return routes


@router.get("/dashboard/vehicles/{vehicle_id}/alerts")
async def dashboard_vehicle_alerts(vehicle_id: str, dataset: FleetDataset = Depends(get_dataset)):
    """Alerts for the vehicle's most recent operation."""
    latest = dataset.driver_routes(vehicle_id, limit=1)
    if not latest:
        raise HTTPException(status_code=404, detail=f"No operations found for vehicle {vehicle_id}")
    return {
        "vehicle_id": vehicle_id,
        "operation": latest[0],
        "alerts": driver_alerts(latest[0]),
    }


def create_app(
    dataset: Optional[FleetDataset] = None,
    llm_client: Optional[AsyncOpenAI] = None,
    execution_delay: Optional[float] = None,
) -> FastAPI:
    """
    Build the application around an explicitly provided (or freshly seeded) dataset.

    Args:
        dataset: Data source; generated from DATASET_SEED/DATASET_SIZE when omitted
        llm_client: Client for the remote model; built per request when omitted
        execution_delay: Seconds to wait before running mock SQL
    """
    if dataset is None:
        dataset = FleetDataset.generate(seed=config.DATASET_SEED, size=config.DATASET_SIZE)

    app = FastAPI(
        title="Fleet NL2SQL",
        description="Natural language analytics over a synthetic logistics dataset",
        version=__version__,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.dataset = dataset
    app.state.engine = MockQueryEngine(dataset)
    app.state.llm_client = llm_client
    app.state.execution_delay = config.EXECUTION_DELAY if execution_delay is None else execution_delay
    app.include_router(router)
    return app


app = create_app()
