"""
API request schemas for Fleet NL2SQL.
"""
from typing import Optional
from pydantic import BaseModel, Field

from fleet_nl2sql.services.orchestrator import FallbackPolicy


class NL2SQLRequest(BaseModel):
    """Request model for the /nl2sql endpoint."""
    query: str = Field(..., min_length=1, description="Natural language question")
    api_key: Optional[str] = Field(
        None,
        description="Groq API key; falls back to the X-Groq-Api-Key header and GROQ_API_KEY"
    )
    fallback: FallbackPolicy = Field(
        FallbackPolicy.STRICT,
        description="'strict' recovers only transient failures, 'always' recovers every failure"
    )
    reveal: bool = Field(False, description="Record each step of the progressive SQL reveal")


class MockSQLRequest(BaseModel):
    """Request model for the /sql/mock endpoint."""
    query: str = Field(..., description="Natural language question")


class ExecuteRequest(BaseModel):
    """Request model for the /sql/execute endpoint."""
    sql: str = Field(..., description="SQL text; routed by keywords, never parsed")
