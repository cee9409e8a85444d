"""
SQL generation for Fleet NL2SQL.

This module handles both ways of turning a question into SQL:
1. Remote generation through an OpenAI-compatible chat-completion API (Groq)
2. Local generation from an ordered list of keyword rules and fixed templates
"""
import logging
from typing import List, Optional

import httpx
import openai
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from fleet_nl2sql import config
from fleet_nl2sql.guardrails import sanitize_completion, validate_sql
from fleet_nl2sql.services.errors import (
    EmptyCompletion, GenericApiError, InvalidCredentials, MissingCredentials,
    NetworkFailure, NL2SQLError, RateLimited,
)
from fleet_nl2sql.services.rules import KeywordRule, first_match, load_rules

logger = logging.getLogger(__name__)

SQL_TEMPLATES_YAML = "sql_templates.yaml"

TEMPERATURE = 0.1
MAX_TOKENS = 512

SCHEMA_PROMPT = """You are an expert SQL generator for the Bytells Logistics Intelligence Platform.
Convert natural language questions into precise PostgreSQL SELECT statements.

DATABASE SCHEMA (star schema, 3 tables):

Table 1: dim_vehicles
  - Vehicle_ID        VARCHAR  PRIMARY KEY
  - Vehicle_Capacity  INTEGER  (10, 20, 30, 40, 50 tonnes)
  - Cargo_Condition   VARCHAR  ('Excellent', 'Good', 'Fair', 'Damaged')
  - Risk_Class        VARCHAR  ('Low', 'Medium', 'High', 'Critical')

Table 2: fact_operations
  - Operation_ID      SERIAL   PRIMARY KEY
  - Vehicle_ID        VARCHAR  FOREIGN KEY -> dim_vehicles
  - Route_ID          VARCHAR
  - Warehouse_ID      VARCHAR
  - Timestamp         TIMESTAMPTZ
  - Fuel_Rate         DECIMAL  (litres/100km)
  - Traffic_Level     VARCHAR  ('Light', 'Moderate', 'Heavy', 'Severe')
  - ETA_Variation     INTEGER  (minutes, negative = early, positive = late)
  - Loading_Time      INTEGER  (minutes)
  - Order_Status      VARCHAR  ('Delivered', 'In Transit', 'Delayed', 'Loading', 'Cancelled')
  - Weather_Severity  VARCHAR  ('Clear', 'Light Rain', 'Heavy Rain', 'Storm', 'Fog')

Table 3: dim_risk
  - Route_ID                 VARCHAR  PRIMARY KEY
  - Driver_Fatigue           INTEGER  (1-10 scale)
  - Route_Risk               DECIMAL  (1.0-10.0 scale)
  - Delivery_Time_Deviation  INTEGER  (minutes)
  - Disruption_Score         INTEGER  (0-100)
  - Delay_Probability        DECIMAL  (0.00-1.00)

RULES:
1. ALWAYS output ONLY a valid SQL SELECT statement. No explanation, no markdown, no backticks.
2. Use proper JOINs when data spans multiple tables.
3. Use aggregates (AVG, COUNT, SUM) and GROUP BY when asked for summaries.
4. Always include LIMIT 100 at the end.
5. Use table aliases: fo (fact_operations), dv (dim_vehicles), dr (dim_risk).
6. Example join: SELECT fo.Vehicle_ID, dv.Vehicle_Capacity, fo.Fuel_Rate FROM fact_operations fo JOIN dim_vehicles dv ON fo.Vehicle_ID = dv.Vehicle_ID LIMIT 100;"""

SAMPLE_PROMPTS = [
    "Show fuel rate for vehicles with low capacity",
    "Analyze route risk scores",
    "Count operations by order status",
    "Average disruption score by risk class",
    "ETA variation by traffic level",
    "Warehouse delivery rates comparison",
    "Driver fatigue vs delay probability",
]


def load_sql_rules(filename: str = SQL_TEMPLATES_YAML) -> List[KeywordRule]:
    """Load the template rules and check every template passes the guardrails."""
    rules = load_rules(filename, "sql")
    for rule in rules:
        is_valid, error = validate_sql(rule.target)
        if not is_valid:
            raise ValueError(f"Template '{rule.name}' in {filename} is invalid: {error}")
    return rules


SQL_RULES = load_sql_rules()


def classify_intent(question: str) -> KeywordRule:
    """Return the first template rule matching the question."""
    return first_match(SQL_RULES, (question or "").lower())


def generate_mock_sql(question: str) -> str:
    """
    Generate SQL locally from the keyword rules.

    Never raises: questions matching no rule get the recent-operations template.
    """
    rule = classify_intent(question)
    logger.info("Local SQL generation matched rule '%s'", rule.name)
    return rule.target


def create_client(api_key: str, base_url: Optional[str] = None, timeout: Optional[float] = None) -> AsyncOpenAI:
    """Build a client for the chat-completion endpoint without automatic retries."""
    return AsyncOpenAI(
        api_key=api_key,
        base_url=base_url or config.GROQ_BASE_URL,
        max_retries=0,
        http_client=httpx.AsyncClient(timeout=timeout or config.LLM_TIMEOUT),
    )


def _map_api_error(error: openai.APIError) -> NL2SQLError:
    """Translate an SDK error into the matching NL2SQLError."""
    if isinstance(error, openai.AuthenticationError):
        return InvalidCredentials("The API rejected the key", status_code=401)
    if isinstance(error, openai.RateLimitError):
        return RateLimited("The API is throttling requests", status_code=429)
    if isinstance(error, openai.APIStatusError):
        return GenericApiError(error.status_code)
    if isinstance(error, openai.APIConnectionError):
        return NetworkFailure(f"Could not reach the API: {str(error)}")
    return GenericApiError(None, str(error))


async def _request_completion(client: AsyncOpenAI, question: str, model: str) -> Optional[str]:
    completion = await client.chat.completions.create(
        messages=[
            {"role": "system", "content": SCHEMA_PROMPT},
            {"role": "user", "content": f'Convert to SQL: "{question}"'},
        ],
        model=model,
        temperature=TEMPERATURE,
        max_tokens=MAX_TOKENS,
        stream=False,
    )
    if not isinstance(completion, ChatCompletion):
        # Gateways can answer 200 with an HTML page, which the SDK hands back as text
        raise EmptyCompletion("Response was not a chat completion")
    if not completion.choices:
        return None
    return completion.choices[0].message.content


async def generate_sql(
    question: str,
    api_key: Optional[str],
    client: Optional[AsyncOpenAI] = None,
    model: Optional[str] = None,
) -> str:
    """
    Generate SQL with the remote language model.

    Args:
        question: Natural language question
        api_key: Key for the chat-completion API
        client: Pre-built client; one is created (and closed) per call when omitted
        model: Model identifier, defaults to GROQ_MODEL

    Returns:
        A SELECT statement carrying a LIMIT clause

    Raises:
        MissingCredentials, InvalidCredentials, RateLimited, NetworkFailure,
        EmptyCompletion, NonSelectBlocked, GenericApiError
    """
    if not api_key or not api_key.strip():
        raise MissingCredentials("No API key provided")

    owns_client = client is None
    if owns_client:
        client = create_client(api_key.strip())

    logger.info("Requesting SQL from remote model for question: %s", question[:100])
    try:
        content = await _request_completion(client, question, model or config.GROQ_MODEL)
    except openai.APIError as e:
        error = _map_api_error(e)
        logger.warning("Remote SQL generation failed: %s (%s)", error.kind.value, error.message)
        raise error from e
    finally:
        if owns_client:
            await client.close()

    sql = sanitize_completion(content or "")
    logger.info("Remote SQL generated: %s", sql[:100])
    return sql
