"""
Query orchestration for Fleet NL2SQL.

This module drives a question end to end:
1. Obtain SQL from the remote model, or from the local templates on recoverable failures
2. Reveal the SQL progressively to the SQL sink
3. Execute it against the mock query engine
4. Hand the result to the chart and table sinks and report the row count
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Callable, List, Optional

from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from fleet_nl2sql import config
from fleet_nl2sql.schemas.results import QueryResult
from fleet_nl2sql.services.error_handler import ErrorHandler, error_handler
from fleet_nl2sql.services.errors import ErrorKind, NL2SQLError
from fleet_nl2sql.services.query_engine import MockQueryEngine
from fleet_nl2sql.services.reveal import SqlRevealer
from fleet_nl2sql.services.sql_generator import classify_intent, generate_sql

logger = logging.getLogger(__name__)

GENERATING_STATUS = "Generating SQL..."
REMOTE_SUCCESS_STATUS = "✓ SQL generated via Groq"
EXECUTING_STATUS = "Executing query..."


class FallbackPolicy(str, Enum):
    """Which generation failures are replaced by locally generated SQL."""
    STRICT = "strict"  # only kinds flagged recoverable
    ALWAYS = "always"  # every failure, including a missing key


def _ignore(*args: Any) -> None:
    return None


class RenderSinks:
    """Callbacks receiving the progressive SQL, the result and status text."""

    def __init__(
        self,
        sql: Optional[Callable[[str], None]] = None,
        chart: Optional[Callable[[str, QueryResult], None]] = None,
        table: Optional[Callable[[Any, QueryResult], None]] = None,
        status: Optional[Callable[[str], None]] = None,
        chart_id: str = "nlResultChart",
        table_container: Any = None,
    ):
        self.sql = sql or _ignore
        self.chart = chart or _ignore
        self.table = table or _ignore
        self.status = status or _ignore
        self.chart_id = chart_id
        self.table_container = table_container


class QueryOutcome(BaseModel):
    """What happened to one question."""
    ok: bool
    query: str
    sql: Optional[str] = None
    source: Optional[str] = Field(None, description="'remote' or 'mock'")
    intent: Optional[str] = Field(None, description="Template rule used for mock SQL")
    view: Optional[str] = Field(None, description="Engine view that answered the SQL")
    result: Optional[QueryResult] = None
    error_kind: Optional[ErrorKind] = None
    status: str = ""
    status_log: List[str] = Field(default_factory=list)


class QueryOrchestrator:
    def __init__(
        self,
        engine: MockQueryEngine,
        revealer: Optional[SqlRevealer] = None,
        execution_delay: Optional[float] = None,
        policy: FallbackPolicy = FallbackPolicy.STRICT,
        client: Optional[AsyncOpenAI] = None,
        handler: Optional[ErrorHandler] = None,
    ):
        self.engine = engine
        self.revealer = revealer or SqlRevealer(delay=config.REVEAL_DELAY)
        self.execution_delay = config.EXECUTION_DELAY if execution_delay is None else execution_delay
        self.policy = policy
        self.client = client
        self.error_handler = handler or error_handler

    def should_fall_back(self, kind: ErrorKind) -> bool:
        if self.policy == FallbackPolicy.ALWAYS:
            return True
        return self.error_handler.is_recoverable(kind)

    async def run(
        self,
        query: str,
        api_key: Optional[str] = None,
        sinks: Optional[RenderSinks] = None,
    ) -> QueryOutcome:
        """
        Process a natural language query end to end.

        Args:
            query: Natural language question
            api_key: Key for the remote model; absence is a MissingCredentials failure
            sinks: Rendering callbacks

        Returns:
            QueryOutcome; failures are reported through it and the status sink, never raised
        """
        sinks = sinks or RenderSinks()
        status_log: List[str] = []

        def report(message: str):
            status_log.append(message)
            sinks.status(message)

        report(GENERATING_STATUS)
        source = "remote"
        intent = None
        error_kind = None

        try:
            sql = await generate_sql(query, api_key, client=self.client)
            report(REMOTE_SUCCESS_STATUS)
        except NL2SQLError as e:
            self.error_handler.track_error(e, query)
            error_kind = e.kind
            if not self.should_fall_back(e.kind):
                message = self.error_handler.get_user_message(e)
                logger.info("Query aborted after %s", e.kind.value)
                report(message)
                return QueryOutcome(
                    ok=False, query=query, error_kind=error_kind,
                    status=message, status_log=status_log,
                )
            rule = classify_intent(query)
            sql = rule.target
            source = "mock"
            intent = rule.name
            logger.info("Falling back to local SQL (%s) after %s", rule.name, e.kind.value)
            report(self.error_handler.get_fallback_message(e.kind))

        await self.revealer.reveal(sql, sinks.sql)

        report(EXECUTING_STATUS)
        if self.execution_delay > 0:
            await asyncio.sleep(self.execution_delay)

        view = self.engine.route(sql).target
        result = self.engine.execute(sql)
        sinks.chart(sinks.chart_id, result)
        sinks.table(sinks.table_container, result)

        done = f"✓ {result.row_count} rows returned"
        report(done)
        return QueryOutcome(
            ok=True, query=query, sql=sql, source=source, intent=intent, view=view,
            result=result, error_kind=error_kind, status=done, status_log=status_log,
        )
